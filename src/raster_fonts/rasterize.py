from __future__ import annotations

import io
import logging
import math
import os
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Tuple

# macOS only: cairocffi looks up Homebrew's libcairo through DYLD_LIBRARY_PATH
# when cairosvg is first imported. Linux reads LD_LIBRARY_PATH at process start,
# so setting it here would do nothing.
if sys.platform == "darwin":
    os.environ.setdefault("DYLD_LIBRARY_PATH", "/opt/homebrew/lib")

import numpy as np
from cairosvg import svg2png
from fontTools.pens.svgPathPen import SVGPathPen
from fontTools.ttLib import TTFont
from PIL import Image, ImageOps
from svgpathtools import parse_path

logger = logging.getLogger(__name__)

PixelBox = Tuple[int, int, int, int]


class GlyphRasterizer:
    """Outline access and anti-aliased rendering for a single font.

    ``scale`` arguments are pixel heights: one pixel height spans the font's
    ``hhea`` ascent to descent. Pixel boxes use y growing downward with the
    glyph origin on the baseline at (0, 0).
    """

    def __init__(self, font: TTFont) -> None:
        self.font = font
        self._cmap: Dict[int, str] = font.getBestCmap() or {}
        self._notdef = font.getGlyphOrder()[0]
        self._glyph_set = font.getGlyphSet()
        hhea = font["hhea"]
        self._ascent = hhea.ascent
        self._descent = hhea.descent
        self._line_gap = hhea.lineGap
        self._outlines: Dict[str, Any] = {}
        self._kerning = self._load_kerning(font)

    @classmethod
    def from_path(cls, font_path: Path) -> GlyphRasterizer:
        return cls(TTFont(str(font_path)))

    @staticmethod
    def _load_kerning(font: TTFont) -> Dict[Tuple[str, str], int]:
        kerning: Dict[Tuple[str, str], int] = {}
        if "kern" not in font:
            return kerning
        for subtable in font["kern"].kernTables:
            pairs = getattr(subtable, "kernTable", None)
            if pairs is None:
                logger.debug("skipping kern subtable format %s", getattr(subtable, "format", "?"))
                continue
            for pair, value in pairs.items():
                kerning[pair] = kerning.get(pair, 0) + value
        return kerning

    def units_to_px(self, scale: float) -> float:
        unit_height = self._ascent - self._descent
        if unit_height == 0:
            return 1.0
        return scale / unit_height

    def glyph_name(self, char: str) -> str:
        return self._cmap.get(ord(char), self._notdef)

    def path_data(self, char: str) -> str:
        pen = SVGPathPen(self._glyph_set)
        self._glyph_set[self.glyph_name(char)].draw(pen)
        return pen.getCommands()

    def _outline(self, char: str) -> Any:
        name = self.glyph_name(char)
        if name not in self._outlines:
            path_data = self.path_data(char)
            self._outlines[name] = parse_path(path_data) if path_data else None
        return self._outlines[name]

    def bounding_box(self, char: str, scale: float) -> PixelBox | None:
        outline = self._outline(char)
        if outline is None:
            return None
        try:
            xmin, xmax, ymin, ymax = outline.bbox()
        except ValueError:
            return None

        factor = self.units_to_px(scale)
        box = (
            math.floor(xmin * factor),
            math.floor(-ymax * factor),
            math.ceil(xmax * factor),
            math.ceil(-ymin * factor),
        )
        if box[2] <= box[0] or box[3] <= box[1]:
            return None
        return box

    def render(self, char: str, scale: float) -> Image.Image | None:
        """Coverage mask of the glyph's pixel box, ink white on black."""
        box = self.bounding_box(char, scale)
        if box is None:
            return None
        min_x, min_y, max_x, max_y = box
        width = max_x - min_x
        height = max_y - min_y
        factor = self.units_to_px(scale)

        svg = (
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="{height}" '
            f'viewBox="0 0 {width} {height}">'
            f'<rect width="100%" height="100%" fill="#ffffff" />'
            f'<g transform="translate({-min_x},{-min_y}) scale({factor},{-factor})">'
            f'<path d="{self.path_data(char)}" fill="#000000" />'
            "</g></svg>"
        )
        png_bytes = svg2png(
            bytestring=svg.encode("utf-8"),
            output_width=width,
            output_height=height,
        )
        image = Image.open(io.BytesIO(png_bytes)).convert("L")
        return ImageOps.invert(image)

    def draw(self, char: str, scale: float) -> Iterator[Tuple[int, int, float]]:
        mask = self.render(char, scale)
        if mask is None:
            return
        coverage = np.asarray(mask, dtype=np.float64) / 255.0
        height, width = coverage.shape
        for y in range(height):
            for x in range(width):
                yield x, y, float(coverage[y, x])

    def h_metrics(self, char: str, scale: float) -> Tuple[float, float]:
        advance_width, left_side_bearing = self.font["hmtx"][self.glyph_name(char)]
        factor = self.units_to_px(scale)
        return advance_width * factor, left_side_bearing * factor

    def v_metrics(self, scale: float) -> Tuple[float, float, float]:
        factor = self.units_to_px(scale)
        return self._ascent * factor, self._descent * factor, self._line_gap * factor

    def kerning(self, first: str, second: str, scale: float) -> float:
        value = self._kerning.get((self.glyph_name(first), self.glyph_name(second)), 0)
        return value * self.units_to_px(scale)

    def kerning_pairs(self, chars: Iterable[str], scale: float) -> Iterator[Tuple[str, str, float]]:
        """Non-zero kerning between ordered pairs drawn from ``chars``."""
        by_glyph: Dict[str, List[str]] = {}
        for char in chars:
            by_glyph.setdefault(self.glyph_name(char), []).append(char)

        factor = self.units_to_px(scale)
        for (left, right), value in self._kerning.items():
            if value == 0 or left not in by_glyph or right not in by_glyph:
                continue
            for first in by_glyph[left]:
                for second in by_glyph[right]:
                    yield first, second, value * factor
