"""Building a page from parsed document records.

The document parser delivers staves and their elements in document order.
Since that order is already sorted, elements are mounted with the fast
append mode of the staff instead of a sorted insert.
"""

import logging
from typing import Iterable

from neume_editor.elements import Clef, Custos, Division, StaffElement
from neume_editor.exceptions import InvalidElementReference, InvalidStaffReference
from neume_editor.models import (
    EditorSettings,
    ElementKind,
    ElementRecord,
    HeadShape,
    NeumeModifier,
    NoteRecord,
    Ornament,
    OrnamentKind,
    StaffRecord,
)
from neume_editor.neume import Neume
from neume_editor.page import Page
from neume_editor.search_tree import SearchTree
from neume_editor.staff import Staff

logger = logging.getLogger(__name__)

# neumes encoded under their own name that the editor treats as a
# liquescent variant of another neume
LIQUESCENT_ALIASES = {
    "epiphonus": "podatus",
    "cephalicus": "clivis",
}

VIRGA_NAMES = frozenset({"virga", "bivirga", "trivirga"})


def _head_shape(note: NoteRecord, neume_name: str) -> HeadShape:
    if note.inclinatum:
        if note.deminutus:
            return HeadShape.PUNCTUM_INCLINATUM_PARVUM
        return HeadShape.PUNCTUM_INCLINATUM
    if note.quilisma:
        return HeadShape.QUILISMA
    if neume_name in VIRGA_NAMES:
        return HeadShape.VIRGA
    if neume_name == "cavum":
        return HeadShape.CAVUM
    return HeadShape.PUNCTUM


def neume_from_record(record: ElementRecord, search_tree: SearchTree | None = None) -> Neume:
    """Build an unmounted neume from an encoded neume record.

    Args:
        record: A neume record with ``name`` and ``notes`` attributes.
        search_tree: Classifier for the new neume.

    Returns:
        The neume with its zone, id and components set.
    """
    name = str(record.attributes.get("name", "punctum")).lower()
    modifier = record.attributes.get("variant")
    if name in LIQUESCENT_ALIASES:
        name = LIQUESCENT_ALIASES[name]
        modifier = NeumeModifier.LIQUESCENCE

    neume = Neume(modifier=modifier, search_tree=search_tree)
    neume.set_id(record.id)
    neume.set_bounding_box(record.zone)

    for raw_note in record.attributes.get("notes", []):
        note = NoteRecord.model_validate(raw_note)
        ornaments = []
        if note.dot_form:
            ornaments.append(Ornament(kind=OrnamentKind.DOT, attributes={"form": note.dot_form}))
        neume.add_component(_head_shape(note, name), note.pname, note.oct, ornaments=ornaments)

    return neume


class DocumentLoader:
    """Mounts document records onto a page, in document order.

    Zones in the records are in original document coordinates and are
    multiplied by the configured page scale.

    Args:
        page: Page to fill.
        settings: Editor settings; supplies the page scale and default
            number of staff lines.
        search_tree: Classifier passed to every loaded neume.
    """

    def __init__(
        self,
        page: Page,
        settings: EditorSettings | None = None,
        search_tree: SearchTree | None = None,
    ):
        self.page = page
        self.settings = settings or EditorSettings()
        self.search_tree = search_tree
        self.page.set_page_scale(self.settings.page_scale)
        self._staff: Staff | None = None

    def load(self, records: Iterable[StaffRecord | ElementRecord]) -> Page:
        """Mount every record and return the page."""
        num_elements = 0
        for record in records:
            if isinstance(record, StaffRecord):
                self.add_staff(record)
            else:
                self.add_element(record)
                num_elements += 1

        logger.info(f"Loaded {len(self.page.staves)} staves with {num_elements} elements")
        return self.page

    def add_staff(self, record: StaffRecord) -> Staff:
        staff = Staff(
            record.zone.scaled(self.page.scale),
            num_lines=record.num_lines or self.settings.num_lines,
        )
        staff.set_id(record.id)
        self.page.add_staff(staff)
        self._staff = staff
        return staff

    def add_element(self, record: ElementRecord) -> StaffElement:
        """Mount one element on the most recently loaded staff.

        Raises:
            InvalidStaffReference: If no staff has been loaded yet.
            NoActingClef: If a neume or custos comes before any clef.
        """
        staff = self._staff
        if staff is None:
            raise InvalidStaffReference(f"{record.kind.value} {record.id!r} precedes every staff")

        attrs = record.attributes
        zone = record.zone.scaled(self.page.scale)

        if record.kind == ElementKind.CLEF:
            line = float(attrs.get("line", staff.num_lines))
            ele = Clef(attrs.get("shape", "c"), staff_pos=round(2 * (line - staff.num_lines)))
            ele.set_id(record.id)
            ele.set_bounding_box(zone)
            staff.add_clef(ele, just_push=True)
        elif record.kind == ElementKind.DIVISION:
            ele = Division(attrs.get("form", "small"))
            ele.set_id(record.id)
            ele.set_bounding_box(zone)
            staff.add_division(ele, just_push=True)
        elif record.kind == ElementKind.CUSTOS:
            ele = Custos(attrs["pname"], int(attrs["oct"]))
            ele.set_id(record.id)
            ele.set_bounding_box(zone)
            staff.set_custos(ele)
        elif record.kind == ElementKind.NEUME:
            ele = neume_from_record(record.model_copy(update={"zone": zone}), self.search_tree)
            staff.add_neume(ele, just_push=True)
        else:
            raise InvalidElementReference(f"unknown element kind {record.kind!r}")

        return ele
