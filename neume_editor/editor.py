"""User-level editing operations on a page.

Each operation composes the staff and element mutators into one complete
edit, then describes the edit to the persistence layer as one or more
``EditCommand`` payloads. Zones in the payloads are converted back to the
original document scale. Identifiers the persistence layer returns for
new elements are assigned to them.
"""

import logging

from neume_editor.elements import Clef, Custos, Division, StaffElement
from neume_editor.events import CommandLog, CommandSink
from neume_editor.exceptions import InvalidStaffReference
from neume_editor.models import (
    CommandAction,
    CommandResult,
    Coords,
    DivisionKind,
    EditCommand,
    EditorSettings,
    ElementKind,
    HeadShape,
    Ornament,
    OrnamentKind,
    PitchUpdate,
    Zone,
)
from neume_editor.neume import Neume
from neume_editor.page import Page
from neume_editor.staff import Staff

logger = logging.getLogger(__name__)

DEFAULT_DOT_FORM = "aug"


class NeumeEditor:
    """Editing operations on a page, reported to a persistence sink.

    Every operation returns the commands it sent, in the order they were
    sent. A command that the sink answers with ``ok=False`` is logged as an
    error; the local model keeps the edit.

    Args:
        page: The page being edited.
        settings: Glyph sizes and snapping margins. Defaults are used when
            None.
        sink: Callable receiving each EditCommand. An in-memory CommandLog
            is used when None.
    """

    def __init__(
        self,
        page: Page,
        settings: EditorSettings | None = None,
        sink: CommandSink | None = None,
    ):
        self.page = page
        self.settings = settings or EditorSettings()
        self.sink = sink if sink is not None else CommandLog()

    def _send(
        self,
        command: EditCommand,
        commands: list[EditCommand],
        created: list[StaffElement] = (),
    ) -> CommandResult | None:
        """Send a command, record it and assign generated ids to ``created``."""
        commands.append(command)
        result = self.sink(command)
        if result is None:
            return None

        if not result.ok:
            logger.error(
                f"Failed to apply {command.action.value} for {command.ids}: "
                f"{result.message}. Client and server are not synchronized."
            )
            return result

        for ele, eid in zip(created, result.ids):
            ele.set_id(eid)
        return result

    def _output_zone(self, ele) -> Zone:
        return self.page.get_output_bounding_box(ele.zone)

    def _closest_staff(self, coords: Coords) -> Staff:
        staff = self.page.get_closest_staff(coords)
        if staff is None:
            raise InvalidStaffReference("Page has no staves to edit")
        return staff

    def _snap(self, staff: Staff, coords: Coords, width: float, **kwargs) -> Coords:
        return staff.oh_snap(
            coords,
            width,
            clef_margin=self.settings.clef_margin,
            custos_margin=self.settings.custos_margin,
            **kwargs,
        )

    def _before_id(self, staff: Staff, index: int) -> str | None:
        """Id of the element after ``index``, or of the next staff at the end."""
        if index + 1 < len(staff.elements):
            return staff.elements[index + 1].id
        next_staff = self.page.get_next_staff(staff)
        if next_staff is not None:
            return next_staff.id
        return None

    @staticmethod
    def _centred_box(center: Coords, width: float, height: float) -> list[float]:
        ulx = center.x - width / 2
        uly = center.y - height / 2
        return [ulx, uly, ulx + width, uly + height]

    @staticmethod
    def _division_y(staff: Staff, kind: DivisionKind) -> float:
        if kind == DivisionKind.SMALL:
            return staff.zone.uly
        return staff.zone.uly + (staff.zone.lry - staff.zone.uly) / 2

    def _is_first_neume(self, staff: Staff, neume: Neume) -> bool:
        neumes = staff.get_pitched_elements(neumes=True, custos=False)
        return bool(neumes) and neumes[0] is neume

    def _governed_pitch_updates(
        self, staff: Staff, pitched: list[StaffElement], commands: list[EditCommand]
    ) -> list[PitchUpdate]:
        """Collect new neume pitches and move the custos after a clef change.

        The custos keeps its pitch, so only its new position is sent.
        """
        updates = []
        for e in pitched:
            if e.kind == ElementKind.NEUME:
                updates.append(PitchUpdate(id=e.id, note_info=e.get_pitch_info()))
            elif e.kind == ElementKind.CUSTOS:
                self._send(
                    EditCommand(
                        action=CommandAction.MOVE_CUSTOS,
                        ids=[e.id],
                        zone=self._output_zone(e),
                    ),
                    commands,
                )
        return updates

    def _refresh_previous_custos(
        self, staff: Staff, clef: Clef, commands: list[EditCommand]
    ) -> None:
        # only needed when the clef governs the first neume of the staff
        neumes = staff.get_pitched_elements(neumes=True, custos=False)
        if not neumes or staff.get_acting_clef_by_ele(neumes[0]) is not clef:
            return
        prev_staff = self.page.get_previous_staff(staff)
        if prev_staff is not None:
            root = neumes[0].get_root_pitch_info()
            commands.extend(self.update_previous_custos(root.pname, root.oct, prev_staff))

    def update_previous_custos(
        self, pname: str, oct: int, prev_staff: Staff, insert: bool = True
    ) -> list[EditCommand]:
        """Point the custos of ``prev_staff`` at a new first pitch.

        An existing custos is re-pitched and moved. Otherwise a new custos
        is inserted at the end of the staff, unless ``insert`` is False.

        Raises:
            NoActingClef: If no clef acts on the end of ``prev_staff``.
        """
        commands = []
        custos = prev_staff.custos
        if custos is not None:
            custos.set_root_note(pname, oct)
            acting_clef = prev_staff.get_acting_clef_by_ele(custos)
            custos.set_root_staff_pos(prev_staff.calc_staff_pos_from_pitch(pname, oct, acting_clef))
            self._send(
                EditCommand(
                    action=CommandAction.MOVE_CUSTOS,
                    ids=[custos.id],
                    zone=self._output_zone(custos),
                    pitches=custos.get_pitch_info(),
                ),
                commands,
            )
            return commands

        if not insert:
            return commands

        custos = Custos(pname, oct)
        pw, ph = self.settings.punct_width, self.settings.punct_height
        ulx = prev_staff.zone.lrx - pw / 2
        uly = prev_staff.zone.uly
        custos.set_bounding_box([ulx, uly, ulx + pw, uly + ph])
        prev_staff.set_custos(custos)

        next_staff = self.page.get_next_staff(prev_staff)
        self._send(
            EditCommand(
                action=CommandAction.INSERT_CUSTOS,
                zone=self._output_zone(custos),
                pitches=custos.get_pitch_info(),
                before_id=next_staff.id if next_staff is not None else None,
            ),
            commands,
            created=[custos],
        )
        return commands

    def insert_punctum(self, coords: Coords, dot: bool = False) -> list[EditCommand]:
        """Insert a punctum on the staff closest to ``coords``.

        Args:
            coords: Requested centre of the punctum.
            dot: Attach an augmentation dot.

        Raises:
            NoActingClef: If no clef lies left of the snapped position.
        """
        commands = []
        staff = self._closest_staff(coords)
        pw, ph = self.settings.punct_width, self.settings.punct_height

        snapped = self._snap(staff, coords, pw)
        pitch = staff.calc_pitch_from_coords(snapped)

        ornaments = []
        attributes = {}
        if dot:
            ornaments.append(Ornament(kind=OrnamentKind.DOT, attributes={"form": DEFAULT_DOT_FORM}))
            attributes["dot_form"] = DEFAULT_DOT_FORM

        neume = Neume()
        neume.set_bounding_box(self._centred_box(snapped, pw, ph))
        neume.add_component(HeadShape.PUNCTUM, pitch.pname, pitch.oct, ornaments=ornaments)
        n_ind = staff.add_neume(neume)

        if self._is_first_neume(staff, neume):
            prev_staff = self.page.get_previous_staff(staff)
            if prev_staff is not None:
                commands.extend(self.update_previous_custos(pitch.pname, pitch.oct, prev_staff))

        self._send(
            EditCommand(
                action=CommandAction.INSERT_NEUME,
                zone=self._output_zone(neume),
                pitches=neume.get_pitch_info(),
                before_id=self._before_id(staff, n_ind),
                attributes=attributes,
            ),
            commands,
            created=[neume],
        )
        return commands

    def insert_division(
        self,
        coords: Coords,
        kind=DivisionKind.SMALL,
        width: float | None = None,
        height: float | None = None,
    ) -> list[EditCommand]:
        """Insert a division on the staff closest to ``coords``.

        A small division hangs from the top line; the others are centred
        on the staff.
        """
        commands = []
        kind = DivisionKind(kind)
        width = width or self.settings.punct_width
        height = height or self.settings.punct_height
        staff = self._closest_staff(coords)

        snapped = self._snap(staff, coords, width, y=False)
        snapped = Coords(x=snapped.x, y=self._division_y(staff, kind))

        division = Division(kind)
        division.set_bounding_box(self._centred_box(snapped, width, height))
        d_ind = staff.add_division(division)

        self._send(
            EditCommand(
                action=CommandAction.INSERT_DIVISION,
                zone=self._output_zone(division),
                before_id=self._before_id(staff, d_ind),
                attributes={"form": kind.value},
            ),
            commands,
            created=[division],
        )
        return commands

    def insert_clef(
        self,
        coords: Coords,
        shape="c",
        width: float | None = None,
        height: float | None = None,
    ) -> list[EditCommand]:
        """Insert a clef and re-pitch the elements it now governs."""
        commands = []
        width = width or self.settings.punct_width
        height = height or 2 * self.settings.punct_height
        staff = self._closest_staff(coords)

        snapped = self._snap(staff, coords, width)
        clef = Clef(shape, staff_pos=staff.calc_staff_pos_from_coords(snapped))
        clef.set_bounding_box(self._centred_box(snapped, width, height))
        c_ind = staff.add_clef(clef)
        before_id = self._before_id(staff, c_ind)

        self._refresh_previous_custos(staff, clef, commands)
        updates = self._governed_pitch_updates(
            staff, staff.get_pitched_elements(clef=clef), commands
        )

        self._send(
            EditCommand(
                action=CommandAction.INSERT_CLEF,
                zone=self._output_zone(clef),
                before_id=before_id,
                pitch_updates=updates,
                attributes={"shape": clef.shape.value, "line": clef.staff_line()},
            ),
            commands,
            created=[clef],
        )
        return commands

    def move_neume(self, neume: Neume, coords: Coords) -> list[EditCommand]:
        """Move a neume so that its root note lands near ``coords``.

        The neume is re-mounted on the staff closest to the new position.
        Pitches are only sent when the root staff position changes.

        Args:
            neume: A mounted neume.
            coords: Requested centre of the root note.

        Raises:
            NoActingClef: If no clef lies left of the new position.
        """
        commands = []
        old_staff = neume.staff
        if old_staff is None:
            raise InvalidStaffReference(f"Neume {neume.id!r} is not mounted")

        width, height = neume.zone.width, neume.zone.height
        root_offset = neume.zone.uly - old_staff.calc_y_from_staff_pos(neume.root_staff_pos)

        staff = self._closest_staff(coords)
        snapped = self._snap(staff, coords, width, ignore_ele=neume)
        new_root_staff_pos = staff.calc_staff_pos_from_coords(snapped)
        old_root_staff_pos = neume.root_staff_pos

        pitches = [
            staff.calc_pitch_from_coords(
                Coords(x=snapped.x, y=snapped.y - staff.delta_y / 2 * nc.pitch_diff)
            )
            for nc in neume.components
        ]

        ulx = snapped.x - width / 2
        uly = snapped.y + root_offset
        neume.set_bounding_box([ulx, uly, ulx + width, uly + height])
        for nc, pitch in zip(neume.components, pitches):
            nc.set_pitch_info(pitch.pname, pitch.oct)

        old_staff.remove_element_by_ref(neume)
        n_ind = staff.add_neume(neume)

        pitch_shift = old_root_staff_pos != new_root_staff_pos
        if pitch_shift and self._is_first_neume(staff, neume):
            prev_staff = self.page.get_previous_staff(staff)
            if prev_staff is not None:
                root = neume.get_root_pitch_info()
                commands.extend(self.update_previous_custos(root.pname, root.oct, prev_staff))

        self._send(
            EditCommand(
                action=CommandAction.MOVE_NEUME,
                ids=[neume.id],
                zone=self._output_zone(neume),
                pitches=neume.get_pitch_info() if pitch_shift else None,
                before_id=self._before_id(staff, n_ind),
            ),
            commands,
        )
        return commands

    def move_clef(self, clef: Clef, coords: Coords) -> list[EditCommand]:
        """Move a clef vertically to the line or space nearest ``coords``.

        Clefs stay on their staff and keep their horizontal position.
        """
        commands = []
        staff = clef.staff
        if staff is None:
            raise InvalidStaffReference(f"Clef {clef.id!r} is not mounted")

        snapped = self._snap(staff, coords, clef.zone.width, ignore_ele=clef, x=False)
        staff_pos = staff.calc_staff_pos_from_coords(snapped)

        clef.set_bounding_box(clef.zone.shifted(dy=staff.calc_y_from_staff_pos(staff_pos) - clef.zone.cy))
        clef.set_staff_position(staff_pos)

        self._refresh_previous_custos(staff, clef, commands)
        updates = self._governed_pitch_updates(
            staff, staff.get_pitched_elements(clef=clef), commands
        )

        self._send(
            EditCommand(
                action=CommandAction.MOVE_CLEF,
                ids=[clef.id],
                zone=self._output_zone(clef),
                pitch_updates=updates,
                attributes={"line": clef.staff_line()},
            ),
            commands,
        )
        return commands

    def move_division(self, division: Division, coords: Coords) -> list[EditCommand]:
        """Move a division to the staff closest to ``coords``."""
        commands = []
        old_staff = division.staff
        if old_staff is None:
            raise InvalidStaffReference(f"Division {division.id!r} is not mounted")

        width, height = division.zone.width, division.zone.height
        staff = self._closest_staff(coords)
        snapped = self._snap(staff, coords, width, ignore_ele=division, y=False)
        snapped = Coords(x=snapped.x, y=self._division_y(staff, division.division_kind))

        old_staff.remove_element_by_ref(division)
        division.set_bounding_box(self._centred_box(snapped, width, height))
        d_ind = staff.add_division(division)

        self._send(
            EditCommand(
                action=CommandAction.MOVE_DIVISION,
                ids=[division.id],
                zone=self._output_zone(division),
                before_id=self._before_id(staff, d_ind),
            ),
            commands,
        )
        return commands

    def delete(self, elements: list[StaffElement]) -> list[EditCommand]:
        """Delete a selection of elements.

        The first clef of a staff is never deleted and is skipped with a
        warning. Deleting the only neume of a staff deletes the custos of
        the previous staff; deleting the first neume points that custos at
        the new first neume.

        Returns:
            Custos commands followed by one delete command per element kind.
        """
        commands = []
        clef_ids, neume_ids, division_ids, custos_ids = [], [], [], []
        clef_updates = []

        for ele in elements:
            staff = ele.staff
            if staff is None:
                logger.warning(f"Skipping delete of unmounted {ele.kind.value} {ele.id!r}")
                continue

            if ele.kind == ElementKind.CLEF:
                if staff.get_previous_clef(ele) is None:
                    logger.warning(f"Ignoring delete of the first clef {ele.id!r} of a staff")
                    continue
                affected = staff.remove_clef(ele)
                clef_ids.append(ele.id)
                clef_updates.extend(self._governed_pitch_updates(staff, affected, commands))

            elif ele.kind == ElementKind.NEUME:
                neumes = staff.get_pitched_elements(neumes=True, custos=False)
                staff.remove_element_by_ref(ele)
                neume_ids.append(ele.id)

                prev_staff = self.page.get_previous_staff(staff)
                if prev_staff is None or prev_staff.custos is None:
                    continue
                if len(neumes) == 1:
                    custos = prev_staff.custos
                    prev_staff.remove_element_by_ref(custos)
                    self._send(
                        EditCommand(action=CommandAction.DELETE_CUSTOS, ids=[custos.id]),
                        commands,
                    )
                elif neumes[0] is ele:
                    root = neumes[1].get_root_pitch_info()
                    commands.extend(
                        self.update_previous_custos(root.pname, root.oct, prev_staff, insert=False)
                    )

            elif ele.kind == ElementKind.DIVISION:
                staff.remove_element_by_ref(ele)
                division_ids.append(ele.id)

            elif ele.kind == ElementKind.CUSTOS:
                staff.remove_element_by_ref(ele)
                custos_ids.append(ele.id)

        if clef_ids:
            self._send(
                EditCommand(
                    action=CommandAction.DELETE_CLEF, ids=clef_ids, pitch_updates=clef_updates
                ),
                commands,
            )
        if neume_ids:
            self._send(EditCommand(action=CommandAction.DELETE_NEUME, ids=neume_ids), commands)
        if division_ids:
            self._send(
                EditCommand(action=CommandAction.DELETE_DIVISION, ids=division_ids), commands
            )
        if custos_ids:
            self._send(EditCommand(action=CommandAction.DELETE_CUSTOS, ids=custos_ids), commands)

        return commands

    def neumify(self, elements: list[StaffElement], modifier=None) -> list[EditCommand]:
        """Merge the selected neumes of one staff into a single neume.

        Only neumes on the staff of the first selected neume take part.

        Args:
            elements: The selection.
            modifier: Optional neume modifier, e.g. liquescence.

        Returns:
            The neumify command, or nothing if fewer than two neumes were
            selected.
        """
        commands = []
        neumes = [e for e in elements if e.kind == ElementKind.NEUME and e.staff is not None]
        if neumes:
            staff = neumes[0].staff
            neumes = [n for n in neumes if n.staff is staff]
        if len(neumes) < 2:
            logger.warning(f"Neumify needs at least 2 neumes on one staff, got {len(neumes)}")
            return commands

        neumes.sort(key=lambda n: n.zone.ulx)

        new_neume = Neume(modifier=modifier)
        for n in neumes:
            new_neume.components.extend(n.components)

        ulx = min(n.zone.ulx for n in neumes)
        uly = min(n.zone.uly for n in neumes)
        lry = max(n.zone.lry for n in neumes)
        lrx = ulx + len(new_neume.components) * self.settings.punct_width

        for n in neumes:
            staff.remove_element_by_ref(n)

        new_neume.set_bounding_box([ulx, uly, lrx, lry])
        staff.add_neume(new_neume)

        self._send(
            EditCommand(
                action=CommandAction.NEUMIFY,
                ids=[n.id for n in neumes],
                zone=self._output_zone(new_neume),
                attributes={
                    "typeid": new_neume.typeid,
                    "head_shapes": [nc.head_shape.value for nc in new_neume.components],
                },
            ),
            commands,
            created=[new_neume],
        )
        return commands

    def ungroup(self, elements: list[StaffElement]) -> list[EditCommand]:
        """Split every selected neume of two or more notes into puncta.

        Each note becomes its own neume, laid out left to right from the
        left edge of the old neume.
        """
        commands = []
        neumes = [
            e
            for e in elements
            if e.kind == ElementKind.NEUME and len(e.components) > 1 and e.staff is not None
        ]
        if not neumes:
            return commands

        pw, ph = self.settings.punct_width, self.settings.punct_height
        nids, zones, puncta = [], [], []

        for neume in neumes:
            staff = neume.staff
            nids.append(neume.id)
            ulx = neume.zone.ulx
            staff.remove_element_by_ref(neume)

            punct_zones = []
            for i, nc in enumerate(neume.components):
                uly = (
                    staff.zone.uly
                    - (neume.root_staff_pos + nc.pitch_diff) * staff.delta_y / 2
                    - ph / 2
                )
                punct = Neume()
                punct.components.append(nc)
                punct.set_bounding_box([ulx + i * pw, uly, ulx + (i + 1) * pw, uly + ph])
                staff.add_neume(punct)

                punct_zones.append(self._output_zone(punct))
                puncta.append(punct)

            zones.append(punct_zones)

        self._send(
            EditCommand(action=CommandAction.UNGROUP, ids=nids, zones=zones),
            commands,
            created=puncta,
        )
        return commands

    def toggle_dot(self, punctum: Neume) -> list[EditCommand]:
        """Add or remove the augmentation dot of a neume's first note."""
        commands = []
        nc = punctum.components[0]
        has_dot = nc.has_ornament(OrnamentKind.DOT)
        if has_dot:
            nc.remove_ornament(OrnamentKind.DOT)
        else:
            nc.add_ornament(Ornament(kind=OrnamentKind.DOT, attributes={"form": DEFAULT_DOT_FORM}))

        punctum.sync_drawing()

        self._send(
            EditCommand(
                action=CommandAction.DELETE_DOT if has_dot else CommandAction.INSERT_DOT,
                ids=[punctum.id],
                zone=self._output_zone(punctum),
                attributes={"dot_form": DEFAULT_DOT_FORM},
            ),
            commands,
        )
        return commands

    def change_head_shape(self, punctum: Neume, shape) -> list[EditCommand]:
        """Change the head shape of a neume's first note.

        A punctum becomes a virga or cavum when given that head shape.
        """
        commands = []
        shape = HeadShape(shape)
        punctum.components[0].set_head_shape(shape)
        punctum.sync_drawing()

        self._send(
            EditCommand(
                action=CommandAction.UPDATE_HEAD_SHAPE,
                ids=[punctum.id],
                zone=self._output_zone(punctum),
                attributes={"shape": shape.value},
            ),
            commands,
        )
        return commands

    def change_clef_shape(self, clef: Clef, shape) -> list[EditCommand]:
        """Switch a clef between c and f and re-pitch what it governs.

        Nothing is sent if the shape is unchanged.

        Raises:
            InvalidClefShape: If the shape is not "c" or "f".
        """
        commands = []
        if clef.shape.value == shape:
            return commands

        clef.set_shape(shape)

        staff = clef.staff
        updates = []
        if staff is not None:
            self._refresh_previous_custos(staff, clef, commands)
            updates = self._governed_pitch_updates(
                staff, staff.get_pitched_elements(clef=clef), commands
            )

        self._send(
            EditCommand(
                action=CommandAction.UPDATE_CLEF_SHAPE,
                ids=[clef.id],
                zone=self._output_zone(clef),
                pitch_updates=updates,
                attributes={"shape": clef.shape.value},
            ),
            commands,
        )
        return commands
