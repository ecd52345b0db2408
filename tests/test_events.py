from neume_editor.events import ChangeNotifier, CommandLog
from neume_editor.models import (
    ChangeDescriptor,
    CommandAction,
    EditCommand,
    ElementKind,
    Zone,
)


def test_notifier_fan_out_and_unsubscribe():
    notifier = ChangeNotifier()
    first, second = [], []
    notifier.subscribe(first.append)
    notifier.subscribe(second.append)

    desc = ChangeDescriptor(element_id="n1", element_kind=ElementKind.NEUME)
    notifier.emit(desc)
    notifier.unsubscribe(second.append)
    notifier.emit(desc)

    assert len(first) == 2
    assert len(second) == 1
    # unsubscribing twice is harmless
    notifier.unsubscribe(second.append)


def test_command_log_generates_ids_for_creations():
    log = CommandLog(prefix="x-")
    created = log(EditCommand(action=CommandAction.INSERT_NEUME))
    moved = log(EditCommand(action=CommandAction.MOVE_NEUME, ids=["x-1"]))
    clef = log(EditCommand(action=CommandAction.INSERT_CLEF))

    assert created.ids == ["x-1"]
    assert moved.ids == []
    assert clef.ids == ["x-2"]
    assert log.actions() == ["insert/neume", "move/neume", "insert/clef"]


def test_command_log_ungroup_one_id_per_zone():
    log = CommandLog()
    zone = Zone.from_bbox([0, 0, 10, 10])
    res = log(
        EditCommand(
            action=CommandAction.UNGROUP,
            ids=["n1", "n2"],
            zones=[[zone, zone, zone], [zone, zone]],
        )
    )
    assert res.ids == ["m-1", "m-2", "m-3", "m-4", "m-5"]
