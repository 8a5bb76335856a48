"""Atlas generation: measure, pack, render, then collect metadata."""

from __future__ import annotations

import io
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Protocol, Sequence, Tuple

import numpy as np
from PIL import Image

from .distance_field import DistanceFieldGenerator
from .errors import UnsupportedFormatError
from .models import BitmapFont, BitmapGlyph, SourceRect
from .packing import PACKERS
from .serialization import MetadataFormat, encode_font, format_for_path

logger = logging.getLogger(__name__)


class Rasterizer(Protocol):
    def bounding_box(self, char: str, scale: float) -> Tuple[int, int, int, int] | None: ...

    def draw(self, char: str, scale: float) -> Iterator[Tuple[int, int, float]]: ...

    def h_metrics(self, char: str, scale: float) -> Tuple[float, float]: ...

    def v_metrics(self, scale: float) -> Tuple[float, float, float]: ...

    def kerning_pairs(self, chars: Sequence[str], scale: float) -> Iterator[Tuple[str, str, float]]: ...


@dataclass(frozen=True)
class AtlasConfig:
    scale: float = 24.0
    padding: int = 4
    output_image_size: int = 512
    coverage_levels: int | None = None
    skip_kerning_table: bool = False
    packer: str = "exhaustive"

    def __post_init__(self) -> None:
        if not self.scale > 0:
            raise ValueError(f"scale must be positive, got {self.scale}")
        if self.padding < 0:
            raise ValueError(f"padding must not be negative, got {self.padding}")
        if self.output_image_size <= 0:
            raise ValueError(f"output_image_size must be positive, got {self.output_image_size}")
        if self.coverage_levels is not None and self.coverage_levels <= 0:
            raise ValueError(f"coverage_levels must be positive, got {self.coverage_levels}")
        if self.packer not in PACKERS:
            raise ValueError(f"unknown packer {self.packer!r}; choose from {', '.join(PACKERS)}")


@dataclass
class Atlas:
    font: BitmapFont
    canvas: np.ndarray

    @property
    def packed_count(self) -> int:
        return sum(1 for glyph in self.font.glyphs.values() if glyph.bitmap_source is not None)


@dataclass
class _Measured:
    char: str
    box: Tuple[int, int, int, int] | None
    advance_width: float
    left_side_bearing: float


def measure_glyphs(rasterizer: Rasterizer, charset: Sequence[str], scale: float) -> List[_Measured]:
    measured: List[_Measured] = []
    for char in charset:
        advance_width, left_side_bearing = rasterizer.h_metrics(char, scale)
        if char.isspace():
            box = None
        else:
            box = rasterizer.bounding_box(char, scale)
            if box is None:
                logger.warning("U+%04X has no outline to render; keeping metrics only", ord(char))
        measured.append(_Measured(char, box, advance_width, left_side_bearing))
    return measured


def collect_kerning(
    rasterizer: Rasterizer, charset: Sequence[str], scale: float
) -> Dict[Tuple[str, str], float] | None:
    table: Dict[Tuple[str, str], float] = {}
    for first, second, value in rasterizer.kerning_pairs(charset, scale):
        if value != 0:
            table[(first, second)] = value
    return table or None


def build_atlas(rasterizer: Rasterizer, charset: Sequence[str], config: AtlasConfig) -> Atlas:
    """Render ``charset`` into a square atlas and describe it.

    Every rectangle is placed before any pixel is written, so a packing
    failure leaves nothing half done.
    """
    padding = config.padding
    measured = measure_glyphs(rasterizer, charset, config.scale)
    boxed = [entry for entry in measured if entry.box is not None]

    sizes = [
        (entry.box[2] - entry.box[0] + 2 * padding, entry.box[3] - entry.box[1] + 2 * padding)
        for entry in boxed
    ]
    positions = PACKERS[config.packer](sizes, config.output_image_size)
    rects: Dict[str, SourceRect] = {
        entry.char: SourceRect(x, y, width, height)
        for entry, (x, y), (width, height) in zip(boxed, positions, sizes)
    }
    generator = DistanceFieldGenerator(padding, config.coverage_levels)
    logger.info(
        "packed %d of %d glyphs into %dx%d px with the %s packer; rendering %s",
        len(rects),
        len(measured),
        config.output_image_size,
        config.output_image_size,
        config.packer,
        generator.mode,
    )

    canvas = np.zeros((config.output_image_size, config.output_image_size), dtype=np.uint8)
    for entry in boxed:
        generator.render(canvas, rects[entry.char], rasterizer.draw(entry.char, config.scale))

    glyphs: Dict[str, BitmapGlyph] = {}
    for entry in measured:
        glyphs[entry.char] = BitmapGlyph(
            bitmap_source=rects.get(entry.char),
            advance_width=entry.advance_width,
            left_side_bearing=entry.left_side_bearing,
            ascent=float(-entry.box[1]) if entry.box is not None else 0.0,
        )

    kerning_table = None
    if not config.skip_kerning_table:
        kerning_table = collect_kerning(rasterizer, charset, config.scale)

    ascent, descent, line_gap = rasterizer.v_metrics(config.scale)
    font = BitmapFont(
        glyphs=glyphs,
        kerning_table=kerning_table,
        ascent=ascent,
        descent=descent,
        line_gap=line_gap,
        padding=padding,
    )
    return Atlas(font=font, canvas=canvas)


def image_format_for_path(image_path: Path) -> str:
    suffix = image_path.suffix.lower()
    image_format = Image.registered_extensions().get(suffix)
    if image_format is None:
        raise UnsupportedFormatError(f"cannot tell image format of {image_path}")
    if image_format not in Image.SAVE:
        raise UnsupportedFormatError(f"Pillow can read but not write {image_format} images ({image_path})")
    return image_format


def encode_image(canvas: np.ndarray, image_format: str) -> bytes:
    image_bytes = io.BytesIO()
    try:
        Image.fromarray(canvas).save(image_bytes, format=image_format)
    except (KeyError, OSError, ValueError) as exc:
        raise UnsupportedFormatError(f"cannot write a greyscale atlas as {image_format}: {exc}") from exc
    return image_bytes.getvalue()


def write_files(outputs: Sequence[Tuple[Path, bytes]]) -> None:
    """Write every file or none of them.

    Each file is written to a hidden sibling first; they are renamed into
    place only once all of them are on disk.
    """
    staged: List[Tuple[Path, Path]] = []
    replaced: List[Path] = []
    try:
        for path, data in outputs:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(dir=path.parent, prefix=f".{path.name}.", delete=False) as handle:
                staged.append((Path(handle.name), path))
                handle.write(data)
        for temp_path, path in staged:
            os.replace(temp_path, path)
            replaced.append(path)
    except OSError:
        for temp_path, _ in staged:
            temp_path.unlink(missing_ok=True)
        for path in replaced:
            path.unlink(missing_ok=True)
        raise


def write_outputs(atlas: Atlas, image_path: Path, metadata_path: Path) -> MetadataFormat:
    """Encode both artifacts in memory, then write both or neither."""
    image_format = image_format_for_path(image_path)
    metadata_format = format_for_path(metadata_path)
    metadata = encode_font(atlas.font, metadata_format)
    image = encode_image(atlas.canvas, image_format)

    write_files([(image_path, image), (metadata_path, metadata)])
    return metadata_format
