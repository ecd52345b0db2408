"""Neumes: ordered clusters of notes classified by their melodic contour."""

import logging

from neume_editor.elements import NeumeComponent, StaffElement
from neume_editor.exceptions import ClassificationUnmatched, NoActingClef
from neume_editor.models import (
    ElementKind,
    HeadShape,
    NeumeModifier,
    PitchInfo,
)
from neume_editor.search_tree import SearchTree, default_search_tree

logger = logging.getLogger(__name__)

UNKNOWN_TYPEID = "unknown"
UNKNOWN_NAME = "Unknown"


def _head_shape_rules() -> dict[str, tuple[int, int]]:
    # typeid -> (first inclinatum index, number of trailing notes left alone)
    rules = {}
    for i in range(1, 5):
        rules[f"climacus.{i}"] = (1, 0)
        rules[f"climacus.resupinus.{i}"] = (1, 1)
        rules[f"podatus.subpunctis.{i}"] = (2, 0)
    for i in range(1, 4):
        rules[f"podatus.subpunctis.resupinus.{i}"] = (2, 1)
    for i in range(1, 3):
        rules[f"scandicus.subpunctis.{i}"] = (3, 0)
        rules[f"porrectus.subpunctis.{i}"] = (3, 0)
        rules[f"porrectus.subpunctis.resupinus.{i}"] = (3, 1)
    for i in range(3, 5):
        rules[f"torculus.resupinus.{i}"] = (4, 0)
    return rules


# descending runs inside these neumes are drawn with inclinatum heads
INCLINATUM_RULES = _head_shape_rules()


class Neume(StaffElement):
    """An ordered cluster of notes moved and drawn as one symbol.

    The type id and name are derived from the melodic contour of the
    components and are recomputed on every structural change.

    Args:
        modifier: Optional variant; liquescence turns a podatus into an
            epiphonus and a clivis into a cephalicus.
        search_tree: Classifier to use. Defaults to the shared tree.

    Attributes:
        components: Notes of the neume; the first one is the root.
        root_staff_pos: Staff position of the root note, set when mounted.
        typeid: Derived type identifier, e.g. "climacus.2" or "compound".
        name: Derived display name, e.g. "Climacus".
        neume_prefix: For compound neumes, the typeid of the longest known
            shape the contour starts with.
    """

    kind = ElementKind.NEUME

    def __init__(self, modifier=None, search_tree: SearchTree | None = None):
        super().__init__()
        self.modifier = NeumeModifier(modifier) if modifier is not None else None
        self.search_tree = search_tree or default_search_tree()
        self.components: list[NeumeComponent] = []
        self.root_staff_pos: int | None = None
        self.typeid: str | None = None
        self.name: str | None = None
        self.neume_prefix: str | None = None

    def __repr__(self) -> str:
        return f"Neume(id={self.id!r}, typeid={self.typeid!r}, components={len(self.components)})"

    def add_component(
        self,
        head_shape,
        pname: str,
        oct: int,
        index: int | None = None,
        ornaments=(),
    ) -> NeumeComponent:
        """Insert a note into the neume.

        Args:
            head_shape: Note head shape of the new component.
            pname: Pitch name.
            oct: Octave.
            index: Position to insert at; appended when None.
            ornaments: Ornaments of the new component.

        Returns:
            The new NeumeComponent.
        """
        nc = NeumeComponent(pname, oct, head_shape=head_shape, ornaments=ornaments)
        if index is None:
            index = len(self.components)
        self.components.insert(index, nc)
        return nc

    def get_root_pitch_info(self) -> PitchInfo | None:
        if not self.components:
            return None
        return self.components[0].pitch_info

    def get_pitch_info(self) -> list[PitchInfo]:
        return [nc.pitch_info for nc in self.components]

    def get_differences(self) -> list[int]:
        """Pitch differences of every component after the root."""
        return [nc.pitch_diff for nc in self.components[1:]]

    def diff_to_melodic_move(self) -> list[int]:
        """Collapse the pitch differences into a contour of 1, 0 and -1.

        Returns:
            One symbol per component after the root: 1 if it is higher than
            the previous note, -1 if lower and 0 if repeated.
        """
        contour = []
        prev_diff = 0
        for diff in self.get_differences():
            if diff > prev_diff:
                contour.append(1)
            elif diff < prev_diff:
                contour.append(-1)
            else:
                contour.append(0)
            prev_diff = diff
        return contour

    def derive_name(self, enforce_head_shapes: bool = True) -> str:
        """Classify the neume and store its type id and name.

        Contours longer than the known vocabulary become "Compound" neumes
        with ``neume_prefix`` set. Head shapes and the liquescence modifier
        are applied after the contour lookup.

        Args:
            enforce_head_shapes: Redraw trailing descending notes as
                inclinatum heads where the neume type requires it.

        Returns:
            The derived name, "Unknown" if the contour is not classifiable.
        """
        if not self.components:
            self._set_unknown()
            return self.name

        contour = self.diff_to_melodic_move()
        try:
            res = self.search_tree.search(contour, allow_prefix=True)
        except ClassificationUnmatched as e:
            logger.warning(f"Unknown neume {self.id!r}: {e}")
            self._set_unknown()
            return self.name

        if res.prefix:
            self.neume_prefix = res.result.typeid
            self.name = "Compound"
            self.typeid = "compound"
        else:
            self.neume_prefix = None
            self.name = res.result.name
            self.typeid = res.result.typeid

        root_shape = self.components[0].head_shape
        if self.typeid == "punctum" and root_shape == HeadShape.VIRGA:
            self.name, self.typeid = "Virga", "virga"
        elif self.typeid == "distropha" and root_shape == HeadShape.VIRGA:
            self.name, self.typeid = "Bivirga", "bivirga"
        elif self.typeid == "tristropha" and root_shape == HeadShape.VIRGA:
            self.name, self.typeid = "Trivirga", "trivirga"
        elif self.typeid == "punctum" and root_shape == HeadShape.CAVUM:
            self.name, self.typeid = "Cavum", "cavum"
        elif self.typeid == "podatus" and self.modifier == NeumeModifier.LIQUESCENCE:
            self.name, self.typeid = "Epiphonus", "epiphonus"
        elif self.typeid == "clivis" and self.modifier == NeumeModifier.LIQUESCENCE:
            self.name, self.typeid = "Cephalicus", "cephalicus"

        if enforce_head_shapes:
            self.enforce_head_shapes()

        return self.name

    def _set_unknown(self) -> None:
        self.name = UNKNOWN_NAME
        self.typeid = UNKNOWN_TYPEID
        self.neume_prefix = None

    def enforce_head_shapes(self) -> None:
        """Force the inclinatum head shape on the notes the neume type dictates."""
        rule = INCLINATUM_RULES.get(self.typeid)
        if rule is None:
            return
        start, trailing = rule
        for nc in self.components[start : len(self.components) - trailing]:
            nc.set_head_shape(HeadShape.PUNCTUM_INCLINATUM)

    def set_root_staff_pos(self, staff_pos: int) -> None:
        """Move the root note to a staff position, keeping the contour.

        Every component is re-pitched from its fixed pitch difference under
        the clef acting on this neume. Nothing happens if the position is
        unchanged.

        Raises:
            NoActingClef: If the neume is mounted before any clef.
        """
        if staff_pos == self.root_staff_pos:
            return

        self.root_staff_pos = staff_pos

        staff = self.staff
        if staff is not None:
            acting_clef = staff.get_acting_clef_by_ele(self)
            if acting_clef is None:
                raise NoActingClef(f"Neume {self.id!r} has no acting clef")
            for nc in self.components:
                pitch = staff.calc_pitch_from_staff_pos(staff_pos + nc.pitch_diff, acting_clef)
                nc.set_pitch_info(pitch.pname, pitch.oct)

        self.sync_drawing()

    def sync_drawing(self) -> None:
        """Re-derive the name and notify the renderer.

        Call after the notes or their ornaments have changed.
        """
        self.derive_name()
        self.notify()
