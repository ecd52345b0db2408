"""Callback interfaces to the rendering and persistence collaborators.

Both are invoked synchronously after a mutation has completed, so a
callback always sees the model in a consistent state.
"""

import logging
from typing import Callable

from neume_editor.models import ChangeDescriptor, CommandResult, EditCommand

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[ChangeDescriptor], None]
CommandSink = Callable[[EditCommand], CommandResult | None]


class ChangeNotifier:
    """Fan-out of change descriptors to subscribed renderers."""

    def __init__(self):
        self._callbacks: list[ChangeCallback] = []

    def subscribe(self, callback: ChangeCallback) -> None:
        self._callbacks.append(callback)

    def unsubscribe(self, callback: ChangeCallback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def emit(self, descriptor: ChangeDescriptor) -> None:
        for callback in list(self._callbacks):
            callback(descriptor)


class CommandLog:
    """In-memory persistence sink that records every command it receives.

    Generates sequential identifiers for commands that create elements, the
    way a document store would. Useful for tests and for batching commands
    before they are sent elsewhere.

    Args:
        prefix: Prefix of the generated identifiers.
    """

    CREATES = frozenset(
        {"insert/neume", "insert/division", "insert/clef", "insert/custos", "neumify"}
    )

    def __init__(self, prefix: str = "m-"):
        self.prefix = prefix
        self.commands: list[EditCommand] = []
        self._counter = 0

    def _next_id(self) -> str:
        self._counter += 1
        return f"{self.prefix}{self._counter}"

    def __call__(self, command: EditCommand) -> CommandResult:
        self.commands.append(command)
        logger.debug(f"Recorded {command.action.value} command for {command.ids}")

        if command.action.value == "ungroup":
            count = sum(len(boxes) for boxes in command.zones or [])
        else:
            count = 1 if command.action.value in self.CREATES else 0
        return CommandResult(ids=[self._next_id() for _ in range(count)])

    def actions(self) -> list[str]:
        """Actions of the recorded commands, in order."""
        return [command.action.value for command in self.commands]
