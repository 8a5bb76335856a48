"""Encoders and decoders for :class:`~raster_fonts.models.BitmapFont`.

Each format is a :class:`MetadataFormat` entry in :data:`FORMATS`. The data
model knows nothing about them. Formats whose maps cannot be keyed by a pair
of characters drop the kerning table, with a warning, before encoding.
"""

from __future__ import annotations

import json
import logging
import shlex
import struct
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Dict, List, Tuple

from .errors import UnsupportedFormatError
from .models import BitmapFont, BitmapGlyph, SourceRect

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MetadataFormat:
    name: str
    extensions: Tuple[str, ...]
    encode: Callable[[BitmapFont], bytes]
    decode: Callable[[bytes], BitmapFont]
    supports_pair_keys: bool


# --- JSON -----------------------------------------------------------------


def _rect_to_json(rect: SourceRect | None) -> Dict[str, int] | None:
    if rect is None:
        return None
    return {"x": rect.x, "y": rect.y, "width": rect.width, "height": rect.height}


def _glyph_to_json(glyph: BitmapGlyph) -> Dict[str, Any]:
    return {
        "bitmap_source": _rect_to_json(glyph.bitmap_source),
        "advance_width": glyph.advance_width,
        "left_side_bearing": glyph.left_side_bearing,
        "ascent": glyph.ascent,
    }


def encode_json(font: BitmapFont) -> bytes:
    if font.kerning_table is not None:
        raise ValueError("JSON objects cannot be keyed by character pairs")
    payload = {
        "glyphs": {char: _glyph_to_json(glyph) for char, glyph in font.glyphs.items()},
        "kerning_table": None,
        "ascent": font.ascent,
        "descent": font.descent,
        "line_gap": font.line_gap,
        "padding": font.padding,
    }
    return json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")


def decode_json(data: bytes) -> BitmapFont:
    payload = json.loads(data.decode("utf-8"))
    if not isinstance(payload, dict):
        raise ValueError("Unexpected metadata format: top level is not an object")

    glyphs: Dict[str, BitmapGlyph] = {}
    for char, entry in payload.get("glyphs", {}).items():
        source = entry.get("bitmap_source")
        glyphs[char] = BitmapGlyph(
            bitmap_source=SourceRect(**source) if source is not None else None,
            advance_width=float(entry["advance_width"]),
            left_side_bearing=float(entry["left_side_bearing"]),
            ascent=float(entry.get("ascent", 0.0)),
        )
    return BitmapFont(
        glyphs=glyphs,
        kerning_table=None,
        ascent=float(payload["ascent"]),
        descent=float(payload["descent"]),
        line_gap=float(payload["line_gap"]),
        padding=int(payload["padding"]),
    )


# --- binary ---------------------------------------------------------------
#
# Little endian. Header: magic, version, padding, ascent, descent, line_gap,
# glyph count. Glyph: code point, has-rect flag, [x, y, width, height],
# advance, bearing, ascent. Trailer: has-kerning flag, pair count, then
# (first, second, value) per pair.

BINARY_MAGIC = b"RFNT"
BINARY_VERSION = 1

_HEADER = struct.Struct("<4sBIdddI")
_GLYPH_HEAD = struct.Struct("<IB")
_RECT = struct.Struct("<HHBB")
_GLYPH_METRICS = struct.Struct("<ddd")
_KERNING_HEAD = struct.Struct("<BI")
_KERNING_PAIR = struct.Struct("<IId")


def encode_binary(font: BitmapFont) -> bytes:
    chunks: List[bytes] = [
        _HEADER.pack(
            BINARY_MAGIC,
            BINARY_VERSION,
            font.padding,
            font.ascent,
            font.descent,
            font.line_gap,
            len(font.glyphs),
        )
    ]
    for char, glyph in font.glyphs.items():
        rect = glyph.bitmap_source
        chunks.append(_GLYPH_HEAD.pack(ord(char), rect is not None))
        if rect is not None:
            chunks.append(_RECT.pack(rect.x, rect.y, rect.width, rect.height))
        chunks.append(_GLYPH_METRICS.pack(glyph.advance_width, glyph.left_side_bearing, glyph.ascent))

    table = font.kerning_table
    chunks.append(_KERNING_HEAD.pack(table is not None, len(table) if table else 0))
    for (first, second), value in (table or {}).items():
        chunks.append(_KERNING_PAIR.pack(ord(first), ord(second), value))
    return b"".join(chunks)


class _Reader:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self.offset = 0

    def read(self, layout: struct.Struct) -> Tuple[Any, ...]:
        end = self.offset + layout.size
        if end > len(self.data):
            raise ValueError(f"truncated binary metadata at byte {self.offset}")
        values = layout.unpack_from(self.data, self.offset)
        self.offset = end
        return values


def decode_binary(data: bytes) -> BitmapFont:
    reader = _Reader(data)
    magic, version, padding, ascent, descent, line_gap, glyph_count = reader.read(_HEADER)
    if magic != BINARY_MAGIC:
        raise ValueError(f"not a binary font metadata file (magic {magic!r})")
    if version != BINARY_VERSION:
        raise ValueError(f"unsupported binary metadata version {version}")

    glyphs: Dict[str, BitmapGlyph] = {}
    for _ in range(glyph_count):
        code_point, has_rect = reader.read(_GLYPH_HEAD)
        rect = SourceRect(*reader.read(_RECT)) if has_rect else None
        advance_width, left_side_bearing, glyph_ascent = reader.read(_GLYPH_METRICS)
        glyphs[chr(code_point)] = BitmapGlyph(rect, advance_width, left_side_bearing, glyph_ascent)

    has_kerning, pair_count = reader.read(_KERNING_HEAD)
    kerning_table: Dict[Tuple[str, str], float] | None = {} if has_kerning else None
    for _ in range(pair_count):
        first, second, value = reader.read(_KERNING_PAIR)
        if kerning_table is not None:
            kerning_table[(chr(first), chr(second))] = value

    if reader.offset != len(data):
        raise ValueError(f"{len(data) - reader.offset} trailing bytes after binary metadata")
    return BitmapFont(glyphs, kerning_table, ascent, descent, line_gap, padding)


# --- text -----------------------------------------------------------------
#
# One record per line, a tag followed by space separated key=value fields,
# in the manner of BMFont .fnt descriptors:
#
#   info padding=4 ascent=19.2 descent=-4.8 line_gap=0.0
#   chars count=2
#   char id=65 x=0 y=0 width=20 height=24 advance=12.0 bearing=1.0 ascent=16.0
#   char id=32 advance=6.0 bearing=0.0 ascent=0.0
#   kernings count=1
#   kerning first=65 second=86 amount=-1.5
#
# A font without a kerning table has no kernings line at all.


def _text_line(tag: str, fields: Dict[str, Any]) -> str:
    return "{} {}\n".format(tag, " ".join(f"{key}={value!r}" for key, value in fields.items()))


def encode_text(font: BitmapFont) -> bytes:
    lines = [
        _text_line(
            "info",
            {
                "padding": font.padding,
                "ascent": float(font.ascent),
                "descent": float(font.descent),
                "line_gap": float(font.line_gap),
            },
        ),
        _text_line("chars", {"count": len(font.glyphs)}),
    ]
    for char, glyph in font.glyphs.items():
        fields: Dict[str, Any] = {"id": ord(char)}
        rect = glyph.bitmap_source
        if rect is not None:
            fields.update(x=rect.x, y=rect.y, width=rect.width, height=rect.height)
        fields.update(
            advance=float(glyph.advance_width),
            bearing=float(glyph.left_side_bearing),
            ascent=float(glyph.ascent),
        )
        lines.append(_text_line("char", fields))

    if font.kerning_table is not None:
        lines.append(_text_line("kernings", {"count": len(font.kerning_table)}))
        for (first, second), amount in font.kerning_table.items():
            lines.append(
                _text_line("kerning", {"first": ord(first), "second": ord(second), "amount": float(amount)})
            )
    return "".join(lines).encode("utf-8")


def _parse_text_fields(line: str) -> Tuple[str, Dict[str, str]]:
    """Split a line into its tag and its key=value fields."""
    tag, _, rest = line.strip().partition(" ")
    return tag, dict(item.split("=", 1) for item in shlex.split(rest))


def decode_text(data: bytes) -> BitmapFont:
    info: Tuple[int, float, float, float] | None = None
    char_count: int | None = None
    kerning_count = 0
    glyphs: Dict[str, BitmapGlyph] = {}
    kerning_table: Dict[Tuple[str, str], float] | None = None

    for number, line in enumerate(data.decode("utf-8").splitlines(), 1):
        if not line.strip():
            continue
        try:
            tag, fields = _parse_text_fields(line)
            if tag == "info":
                info = (
                    int(fields["padding"]),
                    float(fields["ascent"]),
                    float(fields["descent"]),
                    float(fields["line_gap"]),
                )
            elif tag == "chars":
                char_count = int(fields["count"])
            elif tag == "char":
                rect = None
                if "x" in fields:
                    rect = SourceRect(
                        int(fields["x"]), int(fields["y"]), int(fields["width"]), int(fields["height"])
                    )
                glyphs[chr(int(fields["id"]))] = BitmapGlyph(
                    rect, float(fields["advance"]), float(fields["bearing"]), float(fields["ascent"])
                )
            elif tag == "kernings":
                kerning_table = {}
                kerning_count = int(fields["count"])
            elif tag == "kerning":
                if kerning_table is None:
                    raise ValueError("kerning pair before the kernings line")
                pair = (chr(int(fields["first"])), chr(int(fields["second"])))
                kerning_table[pair] = float(fields["amount"])
            else:
                raise ValueError(f"unknown record {tag!r}")
        except KeyError as exc:
            raise ValueError(f"line {number}: missing field {exc}") from None
        except ValueError as exc:
            raise ValueError(f"line {number}: {exc}") from None

    if info is None:
        raise ValueError("text metadata has no info line")
    if char_count != len(glyphs):
        raise ValueError(f"chars count is {char_count} but {len(glyphs)} glyphs follow")
    if len(kerning_table or {}) != kerning_count:
        raise ValueError(f"kernings count is {kerning_count} but {len(kerning_table or {})} pairs follow")
    padding, ascent, descent, line_gap = info
    return BitmapFont(glyphs, kerning_table, ascent, descent, line_gap, padding)


FORMATS: Dict[str, MetadataFormat] = {
    "json": MetadataFormat("json", (".json",), encode_json, decode_json, supports_pair_keys=False),
    "binary": MetadataFormat("binary", (".bin", ".rfnt"), encode_binary, decode_binary, supports_pair_keys=True),
    "text": MetadataFormat("text", (".fnt",), encode_text, decode_text, supports_pair_keys=True),
}


def format_for_path(path: Path) -> MetadataFormat:
    suffix = Path(path).suffix.lower()
    for fmt in FORMATS.values():
        if suffix in fmt.extensions:
            return fmt
    known = ", ".join(ext for fmt in FORMATS.values() for ext in fmt.extensions)
    raise UnsupportedFormatError(f"cannot tell metadata format of {path} (known extensions: {known})")


def encode_font(font: BitmapFont, fmt: MetadataFormat) -> bytes:
    if font.kerning_table is not None and not fmt.supports_pair_keys:
        logger.warning(
            "%s metadata cannot store a kerning table; dropping %d pairs",
            fmt.name,
            len(font.kerning_table),
        )
        font = replace(font, kerning_table=None)
    return fmt.encode(font)


def decode_font(data: bytes, fmt: MetadataFormat) -> BitmapFont:
    return fmt.decode(data)
