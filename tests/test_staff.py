import pytest

from neume_editor.elements import Clef, Custos, Division
from neume_editor.exceptions import (
    ForbiddenOperation,
    InvalidElementReference,
    NoActingClef,
)
from neume_editor.models import ChangeType, ClefShape, Coords, ElementKind
from neume_editor.staff import Staff

STAFF_BB = [190, 302, 1450, 461]
NEUME1_BB = [240, 328, 258, 349]
NEUME2_BB = [265, 326, 315, 376]


def pitches(neume):
    return [(p.pname, p.oct) for p in neume.get_pitch_info()]


def test_delta_y(staff):
    assert staff.delta_y == pytest.approx(53.0)


@pytest.mark.parametrize("shape", ["c", "f"])
@pytest.mark.parametrize("clef_pos", [0, -2, -4, 2])
@pytest.mark.parametrize("staff_pos", range(-10, 11))
def test_pitch_staff_pos_round_trip(staff, shape, clef_pos, staff_pos):
    clef = Clef(shape, staff_pos=clef_pos)
    pitch = staff.calc_pitch_from_staff_pos(staff_pos, clef)
    assert staff.calc_staff_pos_from_pitch(pitch.pname, pitch.oct, clef) == staff_pos


@pytest.mark.parametrize(
    "shape, clef_pos, staff_pos, expected",
    [
        ("c", 0, 0, ("c", 4)),
        ("c", 0, -1, ("b", 3)),
        ("c", 0, -2, ("a", 3)),
        ("c", 0, 1, ("d", 4)),
        ("c", 0, 7, ("c", 5)),
        ("c", 0, -7, ("c", 3)),
        ("c", -4, -2, ("e", 4)),
        ("f", 2, 2, ("f", 3)),
        ("f", 2, 0, ("d", 3)),
        ("f", 2, -2, ("b", 2)),
        ("f", 2, 6, ("c", 4)),
        ("f", 0, -2, ("d", 3)),
    ],
)
def test_calc_pitch_from_staff_pos(staff, shape, clef_pos, staff_pos, expected):
    pitch = staff.calc_pitch_from_staff_pos(staff_pos, Clef(shape, staff_pos=clef_pos))
    assert (pitch.pname, pitch.oct) == expected


def test_calc_pitch_without_clef_raises(staff):
    with pytest.raises(NoActingClef):
        staff.calc_pitch_from_staff_pos(0, None)
    with pytest.raises(NoActingClef):
        staff.calc_staff_pos_from_pitch("c", 4, None)


def test_staff_pos_and_y_are_inverse(staff):
    for pos in range(-8, 3):
        y = staff.calc_y_from_staff_pos(pos)
        assert staff.calc_staff_pos_from_coords(Coords(x=0, y=y)) == pos


def test_add_neume_derives_position_and_contour(staff_with_clef, neume_factory):
    neume = neume_factory(NEUME1_BB, ("a", 3), ("g", 3), ("a", 3))
    n_ind = staff_with_clef.add_neume(neume)

    assert n_ind == 1
    assert neume.staff is staff_with_clef
    assert neume.root_staff_pos == -2
    assert [nc.pitch_diff for nc in neume.components] == [0, -1, 0]
    assert neume.typeid == "porrectus"


def test_add_neume_before_clef_raises(staff_with_clef, neume_factory):
    neume = neume_factory([195, 328, 205, 349], ("a", 3))
    with pytest.raises(NoActingClef):
        staff_with_clef.add_neume(neume)
    assert neume not in staff_with_clef.elements


def test_add_neume_rejects_other_elements(staff_with_clef):
    with pytest.raises(InvalidElementReference):
        staff_with_clef.add_neume(Division("small"))


def test_clef_shape_change_repitches_neumes(staff_with_clef, clef, neume_factory):
    neume = neume_factory(NEUME1_BB, ("a", 3), ("g", 3), ("a", 3))
    staff_with_clef.add_neume(neume)

    clef.set_shape("f")

    assert pitches(neume) == [("d", 3), ("c", 3), ("d", 3)]
    assert clef.staff_pos == 0
    assert neume.root_staff_pos == -2


def test_clef_move_repitches_neumes(staff_with_clef, clef, neume_factory):
    neume = neume_factory(NEUME1_BB, ("a", 3), ("g", 3))
    staff_with_clef.add_neume(neume)

    clef.set_staff_position(-4)

    assert pitches(neume) == [("e", 4), ("d", 4)]


def test_elements_sorted_by_left_edge(staff_with_clef, neume_factory):
    n2 = neume_factory(NEUME2_BB, ("a", 3))
    n1 = neume_factory(NEUME1_BB, ("a", 3))
    staff_with_clef.add_neume(n2)
    assert staff_with_clef.add_neume(n1) == 1

    ulx = [e.zone.ulx for e in staff_with_clef.elements]
    assert ulx == sorted(ulx)
    assert staff_with_clef.elements[1:] == [n1, n2]


def test_custos_stays_last(staff_with_clef, neume_factory):
    custos = Custos("c", 4)
    custos.set_bounding_box([1400, 300, 1418, 318])
    staff_with_clef.set_custos(custos)

    assert custos.root_staff_pos == 0
    assert custos.zone.as_bbox() == [1400, 293, 1418, 311]

    late = neume_factory([1420, 328, 1438, 349], ("a", 3))
    staff_with_clef.add_neume(late)
    assert staff_with_clef.elements[-1] is custos
    assert staff_with_clef.elements[-2] is late


def test_set_custos_replaces_existing(staff_with_clef):
    first = Custos("c", 4)
    first.set_bounding_box([1400, 300, 1418, 318])
    staff_with_clef.set_custos(first)

    second = Custos("d", 4)
    second.set_bounding_box([1400, 300, 1418, 318])
    staff_with_clef.set_custos(second)

    assert staff_with_clef.custos is second
    assert first not in staff_with_clef.elements
    assert first.staff is None


def test_clef_change_moves_custos_keeps_pitch(staff_with_clef, clef):
    custos = Custos("c", 4)
    custos.set_bounding_box([1400, 300, 1418, 318])
    staff_with_clef.set_custos(custos)

    clef.set_staff_position(-4)

    assert (custos.pname, custos.oct) == ("c", 4)
    assert custos.root_staff_pos == -4
    assert custos.zone.cy == pytest.approx(staff_with_clef.calc_y_from_staff_pos(-4))


def test_update_limited_to_clef_span(staff_with_clef, clef, neume_factory):
    n1 = neume_factory(NEUME1_BB, ("a", 3))
    staff_with_clef.add_neume(n1)

    clef2 = Clef("f", staff_pos=0)
    clef2.set_bounding_box([600, 278, 618, 331])
    staff_with_clef.add_clef(clef2)

    n2 = neume_factory([700, 328, 718, 349], ("d", 3))
    staff_with_clef.add_neume(n2)
    assert n2.root_staff_pos == -2

    assert staff_with_clef.get_pitched_elements(clef=clef) == [n1]

    clef.set_staff_position(-4)
    assert pitches(n1) == [("e", 4)]
    assert pitches(n2) == [("d", 3)]


def test_get_pitched_elements_unmounted_clef_raises(staff_with_clef):
    with pytest.raises(InvalidElementReference):
        staff_with_clef.get_pitched_elements(clef=Clef("c"))


def test_add_clef_repitches_following_neumes(staff_with_clef, neume_factory):
    neume = neume_factory([700, 328, 718, 349], ("a", 3))
    staff_with_clef.add_neume(neume)

    clef2 = Clef("f", staff_pos=0)
    clef2.set_bounding_box([600, 278, 618, 331])
    staff_with_clef.add_clef(clef2)

    assert staff_with_clef.elements.index(clef2) == 1
    assert pitches(neume) == [("d", 3)]


def test_remove_first_clef_forbidden(staff_with_clef, clef):
    with pytest.raises(ForbiddenOperation):
        staff_with_clef.remove_clef(clef)
    assert clef in staff_with_clef.elements


def test_remove_clef_repitches_under_previous(staff_with_clef, neume_factory):
    clef2 = Clef("f", staff_pos=0)
    clef2.set_bounding_box([600, 278, 618, 331])
    staff_with_clef.add_clef(clef2)
    neume = neume_factory([700, 328, 718, 349], ("d", 3))
    staff_with_clef.add_neume(neume)

    affected = staff_with_clef.remove_clef(clef2)

    assert affected == [neume]
    assert clef2 not in staff_with_clef.elements
    assert pitches(neume) == [("a", 3)]


def test_remove_element_by_id(staff_with_clef, neume_factory):
    staff_with_clef.add_neume(neume_factory(NEUME1_BB, ("a", 3), nid="n1"))
    staff_with_clef.add_neume(neume_factory(NEUME2_BB, ("a", 3), nid="n2"))

    assert staff_with_clef.remove_element_by_id("n1") == 1
    assert staff_with_clef.remove_element_by_id("missing") == 0
    assert [e.id for e in staff_with_clef.elements] == ["c1", "n2"]


def test_remove_element_by_null_id_is_ignored(staff_with_clef, caplog):
    assert staff_with_clef.remove_element_by_id(None) == 0
    assert len(staff_with_clef.elements) == 1
    assert "null id" in caplog.text


def test_remove_element_by_ref(staff_with_clef, neume_factory):
    neume = neume_factory(NEUME1_BB, ("a", 3))
    staff_with_clef.add_neume(neume)

    assert staff_with_clef.remove_element_by_ref(neume)
    assert not staff_with_clef.remove_element_by_ref(neume)
    assert neume.staff is None


def test_acting_clef_by_coords(staff_with_clef, clef):
    assert staff_with_clef.get_acting_clef_by_coords(Coords(x=200, y=330)) is None
    assert staff_with_clef.get_acting_clef_by_coords(Coords(x=209, y=330)) is clef


def test_acting_clef_by_ele(staff_with_clef, clef, neume_factory):
    neume = neume_factory(NEUME1_BB, ("a", 3))
    staff_with_clef.add_neume(neume)
    assert staff_with_clef.get_acting_clef_by_ele(neume) is clef
    assert staff_with_clef.get_previous_clef(clef) is None


def test_oh_snap_to_space(staff_with_clef):
    snapped = staff_with_clef.oh_snap(Coords(x=400, y=330), width=18)
    assert snapped.x == pytest.approx(400)
    assert snapped.y == pytest.approx(328.5)


def test_oh_snap_tie_goes_to_line(staff_with_clef):
    snapped = staff_with_clef.oh_snap(Coords(x=400, y=315.25), width=18)
    assert snapped.y == pytest.approx(302)


def test_oh_snap_does_not_mutate_input(staff_with_clef):
    coords = Coords(x=400, y=330)
    staff_with_clef.oh_snap(coords, width=18)
    assert coords == Coords(x=400, y=330)


@pytest.mark.parametrize(
    "x, y", [(400, 330), (200, 410), (1445, 280), (700, 461), (290, 340)]
)
def test_oh_snap_is_idempotent(staff_with_clef, neume_factory, x, y):
    staff_with_clef.add_neume(neume_factory(NEUME2_BB, ("a", 3)))
    once = staff_with_clef.oh_snap(Coords(x=x, y=y), width=18)
    twice = staff_with_clef.oh_snap(once, width=18)
    assert twice.x == pytest.approx(once.x)
    assert twice.y == pytest.approx(once.y)


def test_oh_snap_clears_first_clef(staff_with_clef):
    snapped = staff_with_clef.oh_snap(Coords(x=200, y=330), width=18)
    assert snapped.x == pytest.approx(218)


def test_oh_snap_keeps_staff_end_margin(staff_with_clef):
    snapped = staff_with_clef.oh_snap(Coords(x=1445, y=330), width=18)
    assert snapped.x == pytest.approx(1438)


def test_oh_snap_only_vertical(staff_with_clef):
    snapped = staff_with_clef.oh_snap(Coords(x=200, y=330), width=18, x=False)
    assert snapped.x == pytest.approx(200)
    assert snapped.y == pytest.approx(328.5)


def test_notifications(notifier, recorded, neume_factory, clef):
    staff = Staff(STAFF_BB, notifier=notifier)
    staff.add_clef(clef)
    neume = neume_factory(NEUME1_BB, ("a", 3), nid="n1")
    staff.add_neume(neume)
    staff.remove_element_by_ref(neume)

    changes = [(d.element_id, d.change) for d in recorded]
    assert changes == [
        ("c1", ChangeType.RENDER),
        ("n1", ChangeType.RENDER),
        ("n1", ChangeType.ERASE),
    ]
    assert recorded[1].name == "Punctum"


def test_insert_element_goes_before_equal_left_edge(staff_with_clef, neume_factory):
    division = Division("minor")
    division.set_bounding_box([240, 302, 245, 461])
    staff_with_clef.add_division(division)

    neume = neume_factory(NEUME1_BB, ("a", 3))
    assert staff_with_clef.add_neume(neume) == 1
    assert staff_with_clef.elements[1:] == [neume, division]


def test_just_push_then_sort(staff_with_clef, neume_factory):
    n2 = neume_factory(NEUME2_BB, ("a", 3))
    n1 = neume_factory(NEUME1_BB, ("a", 3))
    staff_with_clef.add_neume(n2, just_push=True)
    staff_with_clef.add_neume(n1, just_push=True)
    assert staff_with_clef.elements[1:] == [n2, n1]

    staff_with_clef.sort_elements()
    assert staff_with_clef.elements[1:] == [n1, n2]


def test_calc_pitch_from_coords(staff_with_clef):
    pitch = staff_with_clef.calc_pitch_from_coords(Coords(x=400, y=355))
    assert (pitch.pname, pitch.oct) == ("a", 3)

    with pytest.raises(NoActingClef):
        staff_with_clef.calc_pitch_from_coords(Coords(x=100, y=355))


def test_update_pitched_elements_whole_staff(staff_with_clef, clef, neume_factory):
    neume = neume_factory(NEUME1_BB, ("a", 3))
    staff_with_clef.add_neume(neume)
    custos = Custos("c", 4)
    custos.set_bounding_box([1400, 300, 1418, 318])
    staff_with_clef.set_custos(custos)

    # change the shape without triggering the clef's own update
    clef.shape = ClefShape.F
    staff_with_clef.update_pitched_elements()

    assert pitches(neume) == [("d", 3)]
    assert neume.root_staff_pos == -2
    assert (custos.pname, custos.oct) == ("c", 4)
    assert custos.root_staff_pos == 4


def test_update_ele_pitch_info_rejects_unpitched(staff_with_clef, clef):
    with pytest.raises(InvalidElementReference):
        staff_with_clef.update_ele_pitch_info(clef, clef=clef)


def test_oh_snap_next_to_crowded_clef_is_stable(staff_with_clef, neume_factory):
    staff_with_clef.add_neume(neume_factory([210, 328, 228, 349], ("a", 3)))

    once = staff_with_clef.oh_snap(Coords(x=215, y=330), width=18)
    twice = staff_with_clef.oh_snap(once, width=18)

    # clear of both the clef and the neume flush against it
    assert once.x == pytest.approx(237)
    assert once.x - 9 >= 228
    assert twice.x == pytest.approx(once.x)


def test_oh_snap_narrow_gap_pushes_past_both_neighbours(staff_with_clef, neume_factory):
    staff_with_clef.add_neume(neume_factory([400, 328, 418, 349], ("a", 3)))
    staff_with_clef.add_neume(neume_factory([425, 328, 443, 349], ("a", 3)))

    once = staff_with_clef.oh_snap(Coords(x=430, y=330), width=18)
    twice = staff_with_clef.oh_snap(once, width=18)

    assert once.x == pytest.approx(391)
    assert twice.x == pytest.approx(once.x)


def test_oh_snap_before_custos_is_stable(staff_with_clef, neume_factory):
    custos = Custos("c", 4)
    custos.set_bounding_box([1400, 300, 1418, 318])
    staff_with_clef.set_custos(custos)
    staff_with_clef.add_neume(neume_factory([1380, 328, 1398, 349], ("a", 3)))

    once = staff_with_clef.oh_snap(Coords(x=1405, y=330), width=18)
    twice = staff_with_clef.oh_snap(once, width=18)

    assert once.x == pytest.approx(1371)
    assert twice.x == pytest.approx(once.x)


@pytest.mark.parametrize(
    "ops",
    [
        [("add", 500), ("add", 300), ("add", 300), ("remove", 0), ("add", 400)],
        [("add", 700), ("add", 700), ("add", 250), ("remove", 1), ("add", 700), ("remove", 0)],
        [("add", 1300), ("add", 209), ("remove", 1), ("add", 1300), ("add", 600), ("remove", 2)],
        [("add", 209), ("add", 209), ("add", 209), ("remove", 1), ("remove", 0), ("add", 209)],
    ],
)
def test_order_kept_under_inserts_and_removes(staff_with_clef, ops):
    custos = Custos("c", 4)
    custos.set_bounding_box([1400, 300, 1418, 318])
    staff_with_clef.set_custos(custos)

    added = []
    for op, value in ops:
        if op == "add":
            division = Division("small")
            division.set_bounding_box([value, 293, value + 18, 311])
            staff_with_clef.add_division(division)
            added.append(division)
        else:
            assert staff_with_clef.remove_element_by_ref(added.pop(value))

        ulx = [e.zone.ulx for e in staff_with_clef.elements]
        assert ulx == sorted(ulx)
        assert staff_with_clef.elements[0].kind == ElementKind.CLEF
        assert staff_with_clef.elements[-1] is custos


def test_just_push_keeps_custos_last(staff_with_clef, neume_factory):
    custos = Custos("c", 4)
    custos.set_bounding_box([1400, 300, 1418, 318])
    staff_with_clef.set_custos(custos)

    neume = neume_factory([1200, 328, 1218, 349], ("a", 3))
    assert staff_with_clef.add_neume(neume, just_push=True) == 1
    assert staff_with_clef.elements[-1] is custos
