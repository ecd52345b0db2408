"""Staff elements other than neumes, and the notes that make up a neume.

Every element mounted on a staff derives from ``StaffElement``. The kinds
form a closed set (``ElementKind``): clefs, neumes, divisions and the
custos. Ownership runs from the staff to its elements; an element only
keeps a weak reference back to its staff for lookups.
"""

import logging
import weakref
from typing import ClassVar

from neume_editor.exceptions import InvalidClefShape, InvalidStaffReference
from neume_editor.models import (
    ChangeDescriptor,
    ChangeType,
    ClefShape,
    DivisionKind,
    ElementKind,
    HeadShape,
    Ornament,
    OrnamentKind,
    PitchInfo,
    Zone,
)

logger = logging.getLogger(__name__)


class StaffElement:
    """Base class of everything that can be mounted on a staff.

    Attributes:
        id: Identifier assigned by the document store, None until then.
        zone: Bounding box in display coordinates, None until set.
    """

    kind: ClassVar[ElementKind]

    def __init__(self):
        self.id: str | None = None
        self.zone: Zone | None = None
        self._staff_ref = None

    def set_id(self, eid: str | None) -> None:
        self.id = eid

    @property
    def staff(self):
        """The staff this element is mounted on, or None."""
        if self._staff_ref is None:
            return None
        return self._staff_ref()

    def set_staff(self, staff) -> None:
        """Record the staff this element is mounted on.

        Raises:
            InvalidStaffReference: If ``staff`` is not a Staff.
        """
        from neume_editor.staff import Staff

        if not isinstance(staff, Staff):
            raise InvalidStaffReference(f"{self.kind.value}: invalid staff reference")
        self._staff_ref = weakref.ref(staff)

    def clear_staff(self) -> None:
        self._staff_ref = None

    def set_bounding_box(self, bb) -> None:
        """Set the bounding box from a Zone or a ``[ulx, uly, lrx, lry]`` list.

        Float coordinates are rounded.

        Raises:
            InvalidBoundingBox: If the box is degenerate.
        """
        self.zone = bb if isinstance(bb, Zone) else Zone.from_bbox(bb)

    def get_pitch_info(self) -> list[PitchInfo] | None:
        """Pitches carried by this element, None if it is unpitched."""
        return None

    def describe(self, change: ChangeType = ChangeType.UPDATE) -> ChangeDescriptor:
        """Build the redraw request for this element."""
        return ChangeDescriptor(
            element_id=self.id,
            element_kind=self.kind,
            change=change,
            zone=self.zone,
            pitch_info=self.get_pitch_info(),
            name=getattr(self, "name", None),
        )

    def notify(self, change: ChangeType = ChangeType.UPDATE) -> None:
        """Send a change descriptor to the staff's notifier, if there is one."""
        staff = self.staff
        if staff is not None and staff.notifier is not None:
            staff.notifier.emit(self.describe(change))


def _clef_shape(shape) -> ClefShape:
    try:
        return ClefShape(shape)
    except ValueError:
        raise InvalidClefShape(f"Clef: invalid clef shape {shape!r}") from None


class Clef(StaffElement):
    """A movable c or f clef.

    Args:
        shape: "c" or "f".
        staff_pos: Staff position of the line the clef marks, in half-line
            steps from the top line (0 is the top line, negative is lower).
            Defaults to 0 for a c clef and 2 for an f clef.

    Raises:
        InvalidClefShape: If the shape is not "c" or "f".
    """

    kind = ElementKind.CLEF

    NAMES = {ClefShape.C: "Doh Clef", ClefShape.F: "Fah Clef"}
    DEFAULT_STAFF_POS = {ClefShape.C: 0, ClefShape.F: 2}
    # octave of the clef's own note
    BASE_OCTAVE = {ClefShape.C: 4, ClefShape.F: 3}

    def __init__(self, shape, staff_pos: int | None = None):
        super().__init__()
        self.shape = _clef_shape(shape)
        if staff_pos is None:
            staff_pos = self.DEFAULT_STAFF_POS[self.shape]
        self.staff_pos = staff_pos

    @property
    def name(self) -> str:
        return self.NAMES[self.shape]

    @property
    def base_octave(self) -> int:
        return self.BASE_OCTAVE[self.shape]

    def set_shape(self, shape) -> None:
        """Change the clef shape and re-derive the pitches it governs.

        Raises:
            InvalidClefShape: If the shape is not "c" or "f".
        """
        self.shape = _clef_shape(shape)
        self._update_governed()

    def set_staff_position(self, staff_pos: int) -> None:
        """Move the clef to another line and re-derive the pitches it governs."""
        self.staff_pos = staff_pos
        self._update_governed()

    def _update_governed(self) -> None:
        staff = self.staff
        if staff is not None:
            staff.update_pitched_elements(clef=self)
        self.notify()

    def staff_line(self) -> float:
        """Line number as written in the encoding document (1 is the bottom line)."""
        return self.staff.num_lines + self.staff_pos / 2


class Division(StaffElement):
    """A barline-like phrase marker.

    Args:
        kind: One of "small", "minor", "major" or "final".
    """

    kind = ElementKind.DIVISION

    def __init__(self, kind):
        super().__init__()
        self.division_kind = DivisionKind(kind)

    @property
    def name(self) -> str:
        return f"{self.division_kind.value.capitalize()} Division"


class Custos(StaffElement):
    """End-of-staff glyph announcing the first pitch of the next staff.

    The pitch is tied to the next staff; only the vertical position is
    derived from the clef acting on the custos.

    Attributes:
        pname: Pitch name of the announced note.
        oct: Octave of the announced note.
        root_staff_pos: Staff position the custos is drawn at, None until
            mounted.
    """

    kind = ElementKind.CUSTOS
    name = "Custos"

    def __init__(self, pname: str, oct: int):
        super().__init__()
        self.pname = pname
        self.oct = oct
        self.root_staff_pos: int | None = None

    def set_root_note(self, pname: str, oct: int) -> None:
        self.pname = pname
        self.oct = oct

    def get_pitch_info(self) -> list[PitchInfo]:
        return [PitchInfo(pname=self.pname, oct=self.oct)]

    def set_root_staff_pos(self, staff_pos: int) -> None:
        """Set the drawing position and recentre the zone on it."""
        self.root_staff_pos = staff_pos
        staff = self.staff
        if staff is not None and self.zone is not None:
            y = staff.calc_y_from_staff_pos(staff_pos)
            self.zone = self.zone.shifted(dy=y - self.zone.cy)
        self.notify()


class NeumeComponent:
    """A single note of a neume.

    Args:
        pname: Pitch name, one of a..g.
        oct: Octave number.
        head_shape: Note head shape.
        ornaments: Ornaments to attach; a later ornament of the same kind
            replaces an earlier one.

    Attributes:
        pitch_diff: Offset in staff positions from the neume's root note.
            Set when the neume is mounted; always 0 for the root.
    """

    def __init__(
        self,
        pname: str,
        oct: int,
        head_shape=HeadShape.PUNCTUM,
        ornaments=(),
    ):
        self.pname = pname
        self.oct = oct
        self.pitch_diff = 0
        self.head_shape = HeadShape(head_shape)
        self.ornaments: dict[OrnamentKind, Ornament] = {}
        for ornament in ornaments:
            self.add_ornament(ornament)

    def __repr__(self) -> str:
        return (
            f"NeumeComponent({self.pname!r}, {self.oct}, "
            f"head_shape={self.head_shape.value!r}, pitch_diff={self.pitch_diff})"
        )

    @property
    def pitch_info(self) -> PitchInfo:
        return PitchInfo(pname=self.pname, oct=self.oct)

    def set_pitch_info(self, pname: str, oct: int) -> None:
        self.pname = pname
        self.oct = oct

    def set_pitch_difference(self, diff: int) -> None:
        self.pitch_diff = diff

    def set_head_shape(self, shape) -> None:
        self.head_shape = HeadShape(shape)

    def add_ornament(self, ornament: Ornament) -> None:
        self.ornaments[ornament.kind] = ornament

    def remove_ornament(self, kind) -> None:
        self.ornaments.pop(OrnamentKind(kind), None)

    def has_ornament(self, kind) -> bool:
        return OrnamentKind(kind) in self.ornaments
