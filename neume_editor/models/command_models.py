"""Models exchanged with the rendering and persistence collaborators.

The editing model never performs I/O itself. After each completed
mutation it hands out two kinds of messages:

- ``ChangeDescriptor``: what the rendering layer needs to redraw one element.
- ``EditCommand``: a serializable payload describing the change to the
  authoritative document, with zones already converted back to the
  original document scale.

The persistence layer answers each command with a ``CommandResult``.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from neume_editor.models.core_models import ElementKind, PitchInfo, Zone


class ChangeType(str, Enum):
    """What happened to an element, from the renderer's point of view."""

    RENDER = "render"
    UPDATE = "update"
    ERASE = "erase"


class ChangeDescriptor(BaseModel):
    """Redraw request for a single element.

    Attributes:
        element_id: Identifier of the element, None until the persistence
            layer assigns one.
        element_kind: Kind of the element that changed.
        change: Whether the element was drawn, updated or erased.
        zone: Current bounding box of the element in display coordinates.
        pitch_info: Pitches of the element's notes; None for unpitched elements.
        name: Derived display name, set for neumes and clefs.
    """

    element_id: str | None = Field(None, description="Element identifier")
    element_kind: ElementKind
    change: ChangeType = Field(ChangeType.UPDATE, description="Kind of change")
    zone: Zone | None = Field(None, description="Bounding box in display space")
    pitch_info: list[PitchInfo] | None = Field(
        None, description="Pitches of the element's notes"
    )
    name: str | None = Field(None, description="Derived display name")


class CommandAction(str, Enum):
    """Document operations understood by the persistence layer."""

    INSERT_NEUME = "insert/neume"
    INSERT_DIVISION = "insert/division"
    INSERT_CLEF = "insert/clef"
    INSERT_CUSTOS = "insert/custos"
    INSERT_DOT = "insert/dot"
    MOVE_NEUME = "move/neume"
    MOVE_CLEF = "move/clef"
    MOVE_DIVISION = "move/division"
    MOVE_CUSTOS = "move/custos"
    DELETE_NEUME = "delete/neume"
    DELETE_CLEF = "delete/clef"
    DELETE_DIVISION = "delete/division"
    DELETE_CUSTOS = "delete/custos"
    DELETE_DOT = "delete/dot"
    NEUMIFY = "neumify"
    UNGROUP = "ungroup"
    UPDATE_HEAD_SHAPE = "update/neume/headshape"
    UPDATE_CLEF_SHAPE = "update/clef/shape"


class PitchUpdate(BaseModel):
    """New pitches of one neume after a clef change.

    Attributes:
        id: Identifier of the neume.
        note_info: Pitch of every component, in component order.
    """

    id: str | None = None
    note_info: list[PitchInfo] = Field(default_factory=list)


class EditCommand(BaseModel):
    """Serializable change to the authoritative document.

    Only the fields relevant to ``action`` are set. Zones are in the
    original document's coordinate scale.

    Attributes:
        action: The document operation to perform.
        ids: Identifiers of the affected elements.
        zone: New bounding box of the affected element.
        zones: Bounding boxes of several new elements (ungroup), one list per
            ungrouped neume.
        before_id: Identifier of the element (or next staff) to insert before.
        pitches: Pitches of the new or moved element's notes.
        pitch_updates: Pitch changes of other neumes caused by a clef change.
        attributes: Remaining typed attributes, e.g. ``shape``, ``line``,
            ``typeid``, ``head_shapes``, ``dot_form`` or ``form``.
    """

    action: CommandAction
    ids: list[str | None] = Field(default_factory=list)
    zone: Zone | None = None
    zones: list[list[Zone]] | None = None
    before_id: str | None = None
    pitches: list[PitchInfo] | None = None
    pitch_updates: list[PitchUpdate] | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)


class CommandResult(BaseModel):
    """Answer of the persistence layer to one ``EditCommand``.

    Attributes:
        ok: Whether the document was written successfully.
        ids: Identifiers generated for newly created elements, in creation
            order.
        message: Optional error description when ``ok`` is False.
    """

    ok: bool = True
    ids: list[str] = Field(default_factory=list)
    message: str = ""
