"""Staff model: element ordering, pitch arithmetic and snapping.

Staff positions count half-line steps from the top staff line: 0 is the
top line, -1 the space below it, -2 the second line and so on. A pitch is
only defined relative to the clef acting at a horizontal position, which
is the nearest clef to the left.
"""

import logging

import numpy as np

from neume_editor.elements import Clef, Custos, Division, StaffElement
from neume_editor.exceptions import (
    ForbiddenOperation,
    InvalidElementReference,
    NoActingClef,
)
from neume_editor.models import (
    NEUMATIC_CHROMA,
    ChangeType,
    Coords,
    ElementKind,
    PitchInfo,
    Zone,
    round_half_up,
)
from neume_editor.neume import Neume

logger = logging.getLogger(__name__)

_NUM_CHROMA = len(NEUMATIC_CHROMA)
_C_INDEX = NEUMATIC_CHROMA.index("c")


class Staff:
    """A staff of the page and the elements mounted on it.

    Elements are kept sorted by the left edge of their zone. The custos,
    if any, is always the last element.

    Args:
        bb: Staff bounding box, a Zone or ``[ulx, uly, lrx, lry]``. The top
            and bottom edges are the first and last staff lines.
        num_lines: Number of staff lines (default 4).
        notifier: ChangeNotifier that receives redraw requests from the
            elements of this staff, or None.

    Attributes:
        delta_y: Distance in pixels between two staff lines.
        elements: Mounted elements in horizontal order.
        custos: The mounted custos, or None.
    """

    def __init__(self, bb, num_lines: int = 4, notifier=None):
        self.num_lines = num_lines
        self.id: str | None = None
        self.custos: Custos | None = None
        self.elements: list[StaffElement] = []
        self.notifier = notifier
        self.set_bounding_box(bb)

    def __repr__(self) -> str:
        return f"Staff(id={self.id!r}, zone={self.zone.as_bbox()}, elements={len(self.elements)})"

    def set_id(self, sid: str | None) -> None:
        self.id = sid

    def set_bounding_box(self, bb) -> None:
        """Set the staff zone and refresh the cached line spacing.

        Raises:
            InvalidBoundingBox: If the box is degenerate.
        """
        self.zone = bb if isinstance(bb, Zone) else Zone.from_bbox(bb)
        self.delta_y = abs(self.zone.lry - self.zone.uly) / (self.num_lines - 1)

    def _index(self, ele) -> int:
        for i, e in enumerate(self.elements):
            if e is ele:
                return i
        return -1

    def get_pitched_elements(
        self, clef: Clef | None = None, neumes: bool = True, custos: bool = True
    ) -> list[StaffElement]:
        """Return the neumes and custos on the staff.

        Args:
            clef: If given, only the elements between this clef and the next
                clef are returned.
            neumes: Include neumes.
            custos: Include the custos.

        Raises:
            InvalidElementReference: If ``clef`` is not mounted on this staff.
        """
        if clef is not None:
            c_ind = self._index(clef)
            if c_ind < 0:
                raise InvalidElementReference("Staff: clef is not mounted on this staff")
            candidates = []
            for e in self.elements[c_ind + 1 :]:
                if e.kind == ElementKind.CLEF:
                    break
                candidates.append(e)
        else:
            candidates = self.elements

        return [
            e
            for e in candidates
            if (e.kind == ElementKind.NEUME and neumes)
            or (e.kind == ElementKind.CUSTOS and custos)
        ]

    def calc_pitch_from_staff_pos(self, staff_pos: int, acting_clef: Clef | None) -> PitchInfo:
        """Convert a staff position to a pitch under a clef.

        Args:
            staff_pos: Staff position of the note.
            acting_clef: Clef acting on the note.

        Returns:
            The pitch name and octave of the note.

        Raises:
            NoActingClef: If ``acting_clef`` is None.
        """
        if acting_clef is None:
            raise NoActingClef("Staff: no clef acting on staff position")

        y_step = staff_pos - acting_clef.staff_pos
        i_clef = NEUMATIC_CHROMA.index(acting_clef.shape.value)
        i_pitch = (i_clef + y_step) % _NUM_CHROMA

        # octaves turn over at c, not at the clef's letter
        oct_over = int(y_step / _NUM_CHROMA)
        if y_step > 0 and _C_INDEX <= i_pitch < i_clef:
            oct_over += 1
        elif y_step < 0 and (i_pitch < _C_INDEX or i_pitch > i_clef):
            oct_over -= 1

        return PitchInfo(
            pname=NEUMATIC_CHROMA[i_pitch], oct=acting_clef.base_octave + oct_over
        )

    def calc_staff_pos_from_pitch(self, pname: str, oct: int, acting_clef: Clef | None) -> int:
        """Convert a pitch to a staff position under a clef.

        This is the inverse of ``calc_pitch_from_staff_pos``.

        Raises:
            NoActingClef: If ``acting_clef`` is None.
        """
        if acting_clef is None:
            raise NoActingClef("Staff: no clef acting on pitch")

        i_clef = NEUMATIC_CHROMA.index(acting_clef.shape.value)
        i_pitch = NEUMATIC_CHROMA.index(pname)

        clef_diff = i_pitch - i_clef + _NUM_CHROMA * (oct - acting_clef.base_octave)
        if i_pitch < _C_INDEX:
            clef_diff += _NUM_CHROMA

        return acting_clef.staff_pos + clef_diff

    def calc_staff_pos_from_coords(self, coords: Coords) -> int:
        """Staff position of a vertical page coordinate; snap it first."""
        return round_half_up((self.zone.uly - coords.y) / (self.delta_y / 2))

    def calc_y_from_staff_pos(self, staff_pos: int) -> float:
        """Vertical page coordinate of a staff position."""
        return self.zone.uly - staff_pos * self.delta_y / 2

    def calc_pitch_from_coords(self, coords: Coords) -> PitchInfo:
        """Pitch of a note drawn at snapped page coordinates.

        Raises:
            NoActingClef: If no clef lies left of ``coords``.
        """
        staff_pos = self.calc_staff_pos_from_coords(coords)
        acting_clef = self.get_acting_clef_by_coords(coords)
        return self.calc_pitch_from_staff_pos(staff_pos, acting_clef)

    def update_pitched_elements(
        self, clef: Clef | None = None, neumes: bool = True, custos: bool = False
    ) -> None:
        """Re-derive stored pitches after a clef was inserted or changed.

        Neume pitches are recomputed from their unchanged staff positions.
        The custos keeps its pitch, which belongs to the next staff, and has
        its staff position recomputed instead, unless ``custos`` is set.

        Args:
            clef: Update the elements between this clef and the next clef.
                If None, walk the whole staff clef by clef.
            neumes: Update neumes.
            custos: Overwrite the custos pitch rather than moving it.
        """
        if clef is not None:
            pitched = self.get_pitched_elements(clef=clef, neumes=neumes, custos=True)
            if self.custos is not None and pitched and pitched[-1] is self.custos and not custos:
                self.custos.set_root_staff_pos(
                    self.calc_staff_pos_from_pitch(self.custos.pname, self.custos.oct, clef)
                )
                pitched.pop()

            for e in pitched:
                self.update_ele_pitch_info(e, clef=clef)
            return

        cur_clef = None
        for e in self.elements:
            if e.kind == ElementKind.CLEF:
                cur_clef = e
            elif e.kind in (ElementKind.NEUME, ElementKind.CUSTOS) and cur_clef is None:
                logger.debug(f"Skipping {e.kind.value} {e.id!r}: no acting clef")
            elif e.kind == ElementKind.NEUME and neumes:
                self.update_ele_pitch_info(e, clef=cur_clef)
            elif e.kind == ElementKind.CUSTOS and custos:
                self.update_ele_pitch_info(e, clef=cur_clef)
            elif e.kind == ElementKind.CUSTOS:
                e.set_root_staff_pos(self.calc_staff_pos_from_pitch(e.pname, e.oct, cur_clef))

    def update_ele_pitch_info(self, pitched_ele: StaffElement, clef: Clef | None = None) -> None:
        """Recompute the pitch of a neume or custos from its staff position.

        Args:
            pitched_ele: A mounted neume or custos.
            clef: Acting clef; looked up when None.

        Raises:
            NoActingClef: If no clef acts on the element.
            InvalidElementReference: If the element is not pitched.
        """
        if clef is None:
            clef = self.get_acting_clef_by_ele(pitched_ele)

        if pitched_ele.kind == ElementKind.NEUME:
            for nc in pitched_ele.components:
                pitch = self.calc_pitch_from_staff_pos(
                    pitched_ele.root_staff_pos + nc.pitch_diff, clef
                )
                nc.set_pitch_info(pitch.pname, pitch.oct)
        elif pitched_ele.kind == ElementKind.CUSTOS:
            pitch = self.calc_pitch_from_staff_pos(pitched_ele.root_staff_pos, clef)
            pitched_ele.set_root_note(pitch.pname, pitch.oct)
        else:
            raise InvalidElementReference(
                f"Staff: {pitched_ele.kind.value} is not a pitched element"
            )

        pitched_ele.notify()

    def sort_elements(self) -> None:
        """Sort elements by left edge; stable for equal edges."""
        self.elements.sort(key=lambda e: e.zone.ulx)

    def insert_element(self, ele: StaffElement) -> int:
        """Insert an element before the first element whose left edge is not less.

        Elements are never inserted after the custos.

        Returns:
            Index of the new element.
        """
        end = len(self.elements)
        if self.custos is not None and end and self.elements[-1] is self.custos:
            end -= 1

        i_insert = end
        for i in range(end):
            if ele.zone.ulx <= self.elements[i].zone.ulx:
                i_insert = i
                break

        self.elements.insert(i_insert, ele)
        return i_insert

    def _append(self, ele: StaffElement, just_push: bool) -> int:
        if just_push:
            # the custos stays last even in document order
            if self.custos is not None and self.elements and self.elements[-1] is self.custos:
                self.elements.insert(len(self.elements) - 1, ele)
                return len(self.elements) - 2
            self.elements.append(ele)
            return len(self.elements) - 1
        return self.insert_element(ele)

    def _detach(self, index: int) -> StaffElement:
        ele = self.elements[index]
        ele.notify(ChangeType.ERASE)
        del self.elements[index]
        if ele is self.custos:
            self.custos = None
        ele.clear_staff()
        return ele

    def remove_element_by_id(self, eid: str | None) -> int:
        """Remove every element with the given identifier.

        Clefs are removed without re-deriving the pitches they governed;
        use ``remove_clef`` for that.

        Returns:
            The number of removed elements.
        """
        if eid is None:
            logger.warning("Refusing to remove elements by a null id")
            return 0

        removed = 0
        for i in range(len(self.elements) - 1, -1, -1):
            if self.elements[i].id == eid:
                self._detach(i)
                removed += 1
        return removed

    def remove_element_by_ref(self, ele: StaffElement) -> bool:
        """Remove an element from the staff.

        Clefs are removed without re-deriving the pitches they governed;
        use ``remove_clef`` for that.

        Returns:
            True if the element was mounted on this staff.
        """
        index = self._index(ele)
        if index < 0:
            return False
        self._detach(index)
        return True

    def get_acting_clef_by_ele(self, element: StaffElement) -> Clef | None:
        """Nearest clef at or before the element, or None."""
        for i in range(self._index(element), -1, -1):
            e = self.elements[i]
            if e.kind == ElementKind.CLEF:
                return e
        return None

    def get_acting_clef_by_coords(self, coords: Coords) -> Clef | None:
        """Rightmost clef whose right edge lies left of ``coords.x``, or None."""
        for e in reversed(self.elements):
            if e.kind == ElementKind.CLEF and coords.x > e.zone.lrx:
                return e
        return None

    def get_previous_clef(self, clef: Clef) -> Clef | None:
        """Clef acting before ``clef`` on this staff, or None for the first clef."""
        for i in range(self._index(clef) - 1, -1, -1):
            if self.elements[i].kind == ElementKind.CLEF:
                return self.elements[i]
        return None

    def add_clef(self, clef: Clef, just_push: bool = False) -> int:
        """Mount a clef and re-derive the pitches of the elements it governs.

        Args:
            clef: The clef to mount.
            just_push: Append without a sorted insert, for document load
                where elements already come in order.

        Returns:
            Index of the clef in the element list.

        Raises:
            InvalidElementReference: If ``clef`` is not a Clef.
        """
        if not isinstance(clef, Clef):
            raise InvalidElementReference("Staff: invalid clef")

        c_ind = self._append(clef, just_push)
        clef.set_staff(self)

        self.update_pitched_elements(clef=clef, custos=False)

        clef.notify(ChangeType.RENDER)
        return c_ind

    def set_custos(self, custos: Custos) -> int:
        """Mount a custos at the end of the staff, replacing any existing one.

        The drawing position is derived from the custos pitch and the clef
        acting at its left edge.

        Returns:
            Index of the custos, always the last one.

        Raises:
            InvalidElementReference: If ``custos`` is not a Custos.
            NoActingClef: If no clef lies left of the custos.
        """
        if not isinstance(custos, Custos):
            raise InvalidElementReference("Staff: invalid custos")

        clef = self.get_acting_clef_by_coords(Coords(x=custos.zone.ulx, y=custos.zone.uly))
        if clef is None:
            raise NoActingClef("Staff: no clef acting on custos")

        custos.root_staff_pos = self.calc_staff_pos_from_pitch(custos.pname, custos.oct, clef)
        y = self.calc_y_from_staff_pos(custos.root_staff_pos)
        custos.set_bounding_box(custos.zone.shifted(dy=y - custos.zone.cy))

        if self.elements and self.elements[-1].kind == ElementKind.CUSTOS:
            self._detach(len(self.elements) - 1)
        self.elements.append(custos)

        custos.set_staff(self)
        self.custos = custos

        custos.notify(ChangeType.RENDER)
        return len(self.elements) - 1

    def add_neume(self, neume: Neume, just_push: bool = False) -> int:
        """Mount a neume, deriving its staff position and contour.

        The root staff position and every component's pitch difference are
        computed against the clef acting at the neume's left edge, from the
        pitches already stored on the components.

        Args:
            neume: The neume to mount, with at least one component.
            just_push: Append without a sorted insert, for document load.

        Returns:
            Index of the neume in the element list.

        Raises:
            InvalidElementReference: If ``neume`` is not a non-empty Neume.
            NoActingClef: If no clef lies left of the neume.
        """
        if not isinstance(neume, Neume):
            raise InvalidElementReference("Staff: invalid neume")
        if not neume.components:
            raise InvalidElementReference("Staff: cannot mount a neume without notes")

        clef = self.get_acting_clef_by_coords(Coords(x=neume.zone.ulx, y=neume.zone.uly))
        if clef is None:
            raise NoActingClef("Staff: no clef acting on neume")

        root = neume.components[0]
        neume.root_staff_pos = self.calc_staff_pos_from_pitch(root.pname, root.oct, clef)
        root.set_pitch_difference(0)
        for nc in neume.components[1:]:
            nc.set_pitch_difference(
                self.calc_staff_pos_from_pitch(nc.pname, nc.oct, clef) - neume.root_staff_pos
            )

        n_ind = self._append(neume, just_push)
        neume.set_staff(self)

        neume.derive_name()
        neume.notify(ChangeType.RENDER)
        return n_ind

    def add_division(self, division: Division, just_push: bool = False) -> int:
        """Mount a division.

        Raises:
            InvalidElementReference: If ``division`` is not a Division.
        """
        if not isinstance(division, Division):
            raise InvalidElementReference("Staff: invalid division")

        d_ind = self._append(division, just_push)
        division.set_staff(self)

        division.notify(ChangeType.RENDER)
        return d_ind

    def remove_clef(self, clef: Clef) -> list[StaffElement]:
        """Delete a clef and re-derive its span under the previous clef.

        Returns:
            The pitched elements that were governed by the deleted clef.

        Raises:
            InvalidElementReference: If ``clef`` is not a Clef on this staff.
            ForbiddenOperation: If ``clef`` is the first clef of the staff.
        """
        if not isinstance(clef, Clef) or self._index(clef) < 0:
            raise InvalidElementReference("Staff: clef is not mounted on this staff")

        prev_clef = self.get_previous_clef(clef)
        if prev_clef is None:
            raise ForbiddenOperation("Staff: the first clef of a staff cannot be deleted")

        affected = self.get_pitched_elements(clef=clef)
        self.remove_element_by_ref(clef)
        self.update_pitched_elements(clef=prev_clef)
        return affected

    def oh_snap(
        self,
        coords: Coords,
        width: float = 0,
        ignore_ele: StaffElement | None = None,
        x: bool = True,
        y: bool = True,
        clef_margin: float = 1.0,
        custos_margin: float = 3.0,
    ) -> Coords:
        """Snap coordinates to a line or space and away from other elements.

        Args:
            coords: Requested centre of the new element.
            width: Width of the element being placed.
            ignore_ele: Element to leave out of the collision check, usually
                the element being moved.
            x: Snap horizontally.
            y: Snap vertically.
            clef_margin: Gap kept right of the first clef or staff start.
            custos_margin: Gap kept left of the custos or staff end.

        Returns:
            New snapped coordinates; ``coords`` is left unchanged.
        """
        new_x, new_y = coords.x, coords.y

        if y:
            lines_root = self.zone.uly
            spaces_root = self.zone.uly + self.delta_y / 2
            mults = (coords.y - np.array([lines_root, spaces_root])) / self.delta_y
            errs = np.abs(np.round(np.abs(mults)) - np.abs(mults))
            # argmin keeps the first minimum, so lines win ties
            if int(np.argmin(errs)) == 0:
                new_y = lines_root + round_half_up(mults[0]) * self.delta_y
            else:
                new_y = spaces_root + round_half_up(mults[1]) * self.delta_y

        if x:
            new_x = self._clear_of_elements(coords.x, width, ignore_ele)

            left = new_x - width / 2
            first = self.elements[0] if self.elements else None
            if (
                first is not None
                and first.kind == ElementKind.CLEF
                and first is not ignore_ele
                and left <= first.zone.lrx
            ):
                new_x = first.zone.lrx + width / 2 + clef_margin
                new_x = self._clear_of_elements(new_x, width, ignore_ele, direction=1)
            elif left <= self.zone.ulx:
                new_x = self.zone.ulx + width / 2 + clef_margin
                new_x = self._clear_of_elements(new_x, width, ignore_ele, direction=1)

            right = new_x + width / 2
            if (
                self.custos is not None
                and ignore_ele is not self.custos
                and right >= self.custos.zone.ulx
            ):
                new_x = self.custos.zone.ulx - width / 2 - custos_margin
                new_x = self._clear_of_elements(new_x, width, ignore_ele, direction=-1)
            elif right >= self.zone.lrx:
                new_x = self.zone.lrx - width / 2 - custos_margin
                new_x = self._clear_of_elements(new_x, width, ignore_ele, direction=-1)

        return Coords(x=float(new_x), y=float(new_y))

    def _clear_of_elements(
        self,
        x: float,
        width: float,
        ignore_ele: StaffElement | None = None,
        direction: int = 0,
    ) -> float:
        """Push an interval centred on ``x`` off every element it overlaps.

        The first collision picks the side closer to ``x`` unless
        ``direction`` is set (-1 left, 1 right). Later pushes keep that
        side, so the interval never bounces between two neighbours.
        Touching edges do not count as an overlap.
        """
        for _ in range(len(self.elements) + 1):
            left, right = x - width / 2, x + width / 2
            hit = next(
                (
                    e
                    for e in self.elements
                    if e is not ignore_ele and left < e.zone.lrx and right > e.zone.ulx
                ),
                None,
            )
            if hit is None:
                break
            if direction == 0:
                direction = -1 if x < hit.zone.cx else 1
            if direction < 0:
                x = hit.zone.ulx - width / 2
            else:
                x = hit.zone.lrx + width / 2
        return x
