"""Configuration models for the neume editor.

These models gather the tunable constants of the editor: staff geometry
defaults, the display scale of the page image and the glyph sizes used to
build bounding-box hints for newly created symbols.
"""

from pydantic import BaseModel, Field


class EditorSettings(BaseModel):
    """Configuration for the editing model and its snapping behaviour.

    Attributes:
        num_lines: Number of staff lines on a new staff (2-10, default 4).
        page_scale: Ratio of display coordinates to original document
            coordinates (default 1.0). Zones are divided by this value
            before they are sent to the persistence layer.
        punct_width: Width in pixels of a punctum glyph, used for
            bounding-box hints of inserted or ungrouped puncta.
        punct_height: Height in pixels of a punctum glyph.
        clef_margin: Gap in pixels kept right of the staff's first clef.
        custos_margin: Gap in pixels kept left of the custos or staff end.
    """

    num_lines: int = Field(4, ge=2, le=10, description="Number of staff lines")
    page_scale: float = Field(
        1.0, gt=0.0, description="Display to original document scale factor"
    )
    punct_width: int = Field(18, ge=1, description="Punctum glyph width in pixels")
    punct_height: int = Field(18, ge=1, description="Punctum glyph height in pixels")
    clef_margin: float = Field(
        1.0, ge=0.0, description="Gap kept right of the first clef"
    )
    custos_margin: float = Field(
        3.0, ge=0.0, description="Gap kept left of the custos or staff end"
    )
