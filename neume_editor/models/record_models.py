"""Records delivered by the document parser for loading a page.

The parser of the position-annotated encoding document lives outside this
package. It resolves every staff and staff element into one of these
records, with coordinates already taken from the facsimile zones.
"""

from typing import Any

from pydantic import BaseModel, Field

from neume_editor.models.core_models import ElementKind, Zone


class NoteRecord(BaseModel):
    """One note of an encoded neume.

    Attributes:
        pname: Pitch name, one of a..g.
        oct: Octave number.
        inclinatum: Whether the note is drawn as a punctum inclinatum.
        deminutus: Whether an inclinatum note is the small (parvum) form.
        quilisma: Whether the note is a quilisma.
        dot_form: Form of an attached dot, e.g. "aug", or None.
    """

    pname: str = Field(..., pattern="^[a-g]$")
    oct: int
    inclinatum: bool = False
    deminutus: bool = False
    quilisma: bool = False
    dot_form: str | None = None


class StaffRecord(BaseModel):
    """A staff of the document, in reading order.

    Attributes:
        id: Identifier of the staff in the document.
        zone: Staff bounding box in original document coordinates.
        num_lines: Number of staff lines, None for the configured default.
    """

    id: str | None = None
    zone: Zone
    num_lines: int | None = Field(None, ge=2)


class ElementRecord(BaseModel):
    """An element mounted on the most recently loaded staff.

    Attributes:
        kind: Which element this is.
        id: Identifier of the element in the document.
        zone: Bounding box in original document coordinates.
        attributes: Kind specific values. Clefs carry ``shape`` and ``line``,
            divisions ``form``, custodes ``pname`` and ``oct``, and neumes
            ``name``, optional ``variant`` and ``notes`` (a list of
            NoteRecord or dicts).
    """

    kind: ElementKind
    id: str | None = None
    zone: Zone
    attributes: dict[str, Any] = Field(default_factory=dict)
