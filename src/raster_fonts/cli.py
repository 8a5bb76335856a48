"""``font2img``: render a font into an atlas image plus layout metadata."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Sequence

from dotenv import load_dotenv

from .charset import DEFAULT_CHARSET, parse_charset
from .errors import AtlasError
from .packing import PACKERS
from .pipeline import AtlasConfig, Rasterizer, build_atlas, image_format_for_path, write_outputs
from .serialization import format_for_path

load_dotenv()

logger = logging.getLogger(__name__)


def positive_int(text: str) -> int:
    value = int(text)
    if value <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {text}")
    return value


def non_negative_int(text: str) -> int:
    value = int(text)
    if value < 0:
        raise argparse.ArgumentTypeError(f"expected a non-negative integer, got {text}")
    return value


def positive_float(text: str) -> float:
    value = float(text)
    if not value > 0:
        raise argparse.ArgumentTypeError(f"expected a positive number, got {text}")
    return value


def charset_arg(text: str) -> List[str]:
    try:
        return parse_charset(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments, with defaults taken from the environment."""
    parser = argparse.ArgumentParser(
        prog="font2img",
        description="Render a font into a packed glyph atlas and layout metadata.",
    )
    parser.add_argument("font", type=Path, help="Path to a TrueType/OpenType font.")
    parser.add_argument("image", type=Path, help="Atlas image to write (format from extension, e.g. .png).")
    parser.add_argument("metadata", type=Path, help="Metadata file to write (.json, .bin or .rfnt).")
    parser.add_argument(
        "-s",
        "--scale",
        type=positive_float,
        default=os.environ.get("RASTER_FONTS_SCALE", "24"),
        help="Glyph height in pixels (default: 24).",
    )
    parser.add_argument(
        "-p",
        "--padding",
        type=non_negative_int,
        default=os.environ.get("RASTER_FONTS_PADDING", "4"),
        help="Margin around each glyph and distance field radius in pixels (default: 4).",
    )
    parser.add_argument(
        "-S",
        "--output-image-size",
        type=positive_int,
        default=os.environ.get("RASTER_FONTS_IMAGE_SIZE", "512"),
        help="Side length of the square atlas in pixels (default: 512).",
    )
    parser.add_argument(
        "-c",
        "--charset",
        type=charset_arg,
        default=os.environ.get("RASTER_FONTS_CHARSET", DEFAULT_CHARSET),
        help=f"Comma separated hex code points and ranges (default: {DEFAULT_CHARSET}).",
    )
    parser.add_argument(
        "-l",
        "--coverage-levels",
        type=positive_int,
        default=None,
        help="Store coverage quantized to this many levels instead of a distance field.",
    )
    parser.add_argument(
        "--skip-kerning-table",
        action="store_true",
        help="Do not compute kerning pairs.",
    )
    parser.add_argument(
        "--packer",
        choices=sorted(PACKERS),
        default=os.environ.get("RASTER_FONTS_PACKER", "exhaustive"),
        help="Rectangle packing strategy (default: exhaustive).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output.")
    return parser.parse_args(argv)


def load_rasterizer(font_path: Path) -> Rasterizer:
    if not font_path.exists():
        raise FileNotFoundError(f"font not found at {font_path}")
    # cairosvg needs the cairo shared library, so load it only when rendering
    from .rasterize import GlyphRasterizer

    return GlyphRasterizer.from_path(font_path)


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    try:
        config = AtlasConfig(
            scale=args.scale,
            padding=args.padding,
            output_image_size=args.output_image_size,
            coverage_levels=args.coverage_levels,
            skip_kerning_table=args.skip_kerning_table,
            packer=args.packer,
        )
        logger.debug("atlas config: %s", config)
        image_format_for_path(args.image)
        format_for_path(args.metadata)

        rasterizer = load_rasterizer(args.font.expanduser().resolve())
        atlas = build_atlas(rasterizer, args.charset, config)
        metadata_format = write_outputs(atlas, args.image, args.metadata)
    except (AtlasError, ValueError, OSError) as exc:
        print(f"font2img: error: {exc}", file=sys.stderr)
        raise SystemExit(1) from None

    kerning_pairs = len(atlas.font.kerning_table or {})
    if not metadata_format.supports_pair_keys:
        kerning_pairs = 0
    print(f"Wrote atlas to {args.image}")
    print(f"Wrote {metadata_format.name} metadata to {args.metadata}")
    print(
        f"{len(atlas.font.glyphs)} glyphs, {atlas.packed_count} packed, "
        f"{kerning_pairs} kerning pairs"
    )


if __name__ == "__main__":
    main()
