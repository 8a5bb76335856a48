"""Runtime representation of bitmap font metadata.

These are plain data holders. Encoding them is the job of
:mod:`raster_fonts.serialization`, which keeps one codec per format.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

MAX_RECT_SIDE = 255
MAX_RECT_OFFSET = 0xFFFF


@dataclass(frozen=True)
class SourceRect:
    """Coordinates and size of a rendered glyph in the packed bitmap."""

    x: int
    y: int
    width: int
    height: int

    def __post_init__(self) -> None:
        for name in ("x", "y"):
            value = getattr(self, name)
            if not 0 <= value <= MAX_RECT_OFFSET:
                raise ValueError(f"{name}={value} outside 0..{MAX_RECT_OFFSET}")
        for name in ("width", "height"):
            value = getattr(self, name)
            if not 1 <= value <= MAX_RECT_SIDE:
                raise ValueError(f"{name}={value} outside 1..{MAX_RECT_SIDE}")

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def overlaps(self, other: SourceRect) -> bool:
        return (
            self.x < other.right
            and other.x < self.right
            and self.y < other.bottom
            and other.y < self.bottom
        )


@dataclass(frozen=True)
class BitmapGlyph:
    """Source rectangle and horizontal metrics of a glyph.

    ``bitmap_source`` is None for glyphs without visible ink, such as
    whitespace. ``ascent`` is the offset from the baseline to the top of the
    unpadded glyph box and is 0.0 when there is no box.
    """

    bitmap_source: Optional[SourceRect]
    advance_width: float
    left_side_bearing: float
    ascent: float = 0.0


@dataclass(frozen=True)
class BitmapFont:
    """All metadata for a single bitmap font.

    Does not own or reference the bitmap itself. ``padding`` is the margin
    between each glyph's ink box and its ``bitmap_source``, which is also the
    saturation radius of a distance field atlas.
    """

    glyphs: Dict[str, BitmapGlyph]
    kerning_table: Optional[Dict[Tuple[str, str], float]]
    ascent: float
    descent: float
    line_gap: float
    padding: int
