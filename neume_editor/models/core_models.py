"""Core value models for the neume editor.

Zones, coordinates and pitches are small immutable-by-convention values:
mutators on the model replace them (usually with ``model_copy``) rather
than editing them in place.
"""

import math
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator

from neume_editor.exceptions import InvalidBoundingBox

# cyclic pitch alphabet used for all staff position arithmetic
NEUMATIC_CHROMA: tuple[str, ...] = ("a", "b", "c", "d", "e", "f", "g")


def round_half_up(value: float) -> int:
    """Round a coordinate to the nearest integer, with halves rounded up.

    Args:
        value: Coordinate to round.

    Returns:
        The rounded integer (``2.5 -> 3``, ``-2.5 -> -2``).
    """
    return int(math.floor(value + 0.5))


class ClefShape(str, Enum):
    """Shapes a clef can take; the value is the pitch name the clef marks."""

    C = "c"
    F = "f"


class HeadShape(str, Enum):
    """Note head shapes of a neume component."""

    PUNCTUM = "punctum"
    PUNCTUM_INCLINATUM = "punctum_inclinatum"
    PUNCTUM_INCLINATUM_PARVUM = "punctum_inclinatum_parvum"
    CAVUM = "cavum"
    VIRGA = "virga"
    QUILISMA = "quilisma"


class NeumeModifier(str, Enum):
    """Neume variants chosen while neumifying; liquescence renames some neumes."""

    LIQUESCENCE = "liquescence"
    VARIANT_2 = "variant 2"
    VARIANT_3 = "variant 3"
    VARIANT_4 = "variant 4"


class DivisionKind(str, Enum):
    """Barline-like phrase markers."""

    SMALL = "small"
    MINOR = "minor"
    MAJOR = "major"
    FINAL = "final"


class ElementKind(str, Enum):
    """Closed set of element kinds that can be mounted on a staff."""

    CLEF = "clef"
    NEUME = "neume"
    DIVISION = "division"
    CUSTOS = "custos"


class OrnamentKind(str, Enum):
    """Ornaments that can decorate a neume component."""

    DOT = "dot"
    EPISEMA_HORIZ = "episema-horiz"
    EPISEMA_VERT = "episema-vert"


class Zone(BaseModel):
    """Axis-aligned bounding box in page coordinates.

    Coordinates follow the facsimile convention with (0,0) at the top-left
    of the page: ``(ulx, uly)`` is the upper-left corner and ``(lrx, lry)``
    the lower-right one. Float coordinates are rounded to integers on
    construction.

    Attributes:
        ulx: Left edge position in pixels.
        uly: Top edge position in pixels.
        lrx: Right edge position in pixels, strictly greater than ulx.
        lry: Bottom edge position in pixels, strictly greater than uly.

    Raises:
        InvalidBoundingBox: If ``ulx >= lrx`` or ``uly >= lry``.
    """

    ulx: int = Field(..., description="Left edge position in pixels")
    uly: int = Field(..., description="Top edge position in pixels")
    lrx: int = Field(..., description="Right edge position in pixels")
    lry: int = Field(..., description="Bottom edge position in pixels")

    @model_validator(mode="before")
    @classmethod
    def _accept_bbox(cls, data):
        # allow [ulx, uly, lrx, lry] wherever a Zone field is expected
        if isinstance(data, (list, tuple)):
            ulx, uly, lrx, lry = data
            return {"ulx": ulx, "uly": uly, "lrx": lrx, "lry": lry}
        return data

    @field_validator("ulx", "uly", "lrx", "lry", mode="before")
    @classmethod
    def _round_coordinate(cls, value):
        if isinstance(value, (int, str)):
            return value
        return round_half_up(float(value))

    @model_validator(mode="after")
    def _check_corners(self) -> "Zone":
        if self.ulx >= self.lrx or self.uly >= self.lry:
            raise InvalidBoundingBox(f"invalid bounding box {self.as_bbox()}")
        return self

    @classmethod
    def from_bbox(cls, bb) -> "Zone":
        """Build a zone from a ``[ulx, uly, lrx, lry]`` sequence.

        Args:
            bb: Four coordinates, integers or floats.

        Returns:
            A validated Zone with rounded coordinates.
        """
        ulx, uly, lrx, lry = bb
        return cls(ulx=ulx, uly=uly, lrx=lrx, lry=lry)

    def as_bbox(self) -> list[int]:
        """Return the zone as a ``[ulx, uly, lrx, lry]`` list."""
        return [self.ulx, self.uly, self.lrx, self.lry]

    @property
    def width(self) -> int:
        return self.lrx - self.ulx

    @property
    def height(self) -> int:
        return self.lry - self.uly

    @property
    def cx(self) -> float:
        """Horizontal centre of the zone."""
        return self.ulx + self.width / 2

    @property
    def cy(self) -> float:
        """Vertical centre of the zone."""
        return self.uly + self.height / 2

    def scaled(self, factor: float) -> "Zone":
        """Return a new zone with every coordinate multiplied by ``factor``."""
        return Zone.from_bbox([c * factor for c in self.as_bbox()])

    def shifted(self, dx: float = 0, dy: float = 0) -> "Zone":
        """Return a new zone translated by ``(dx, dy)``."""
        return Zone.from_bbox(
            [self.ulx + dx, self.uly + dy, self.lrx + dx, self.lry + dy]
        )


class Coords(BaseModel):
    """A point on the page, as delivered by pointer events."""

    x: float = Field(..., description="Horizontal page position")
    y: float = Field(..., description="Vertical page position")


class PitchInfo(BaseModel):
    """Pitch name and octave of a note.

    Octaves change at c, so ``b3`` lies immediately below ``c4``.

    Attributes:
        pname: Pitch name, one of a..g.
        oct: Octave number.
    """

    pname: str = Field(..., pattern="^[a-g]$", description="Pitch name")
    oct: int = Field(..., description="Octave number")

    @property
    def name_with_octave(self) -> str:
        """Human-readable pitch, e.g. ``"A3"``."""
        return f"{self.pname.upper()}{self.oct}"


class Ornament(BaseModel):
    """An ornament attached to a neume component.

    Attributes:
        kind: Which ornament this is; a component carries at most one per kind.
        attributes: Extra encoding attributes, e.g. ``{"form": "aug"}`` for a dot.
    """

    kind: OrnamentKind
    attributes: dict[str, str] = Field(
        default_factory=dict, description="Extra encoding attributes"
    )
