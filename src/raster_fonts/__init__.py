"""Bitmap font atlas generation and its metadata model."""

from .errors import AtlasError, GlyphTooLargeError, PackingError, UnsupportedFormatError
from .models import BitmapFont, BitmapGlyph, SourceRect

__all__ = [
    "AtlasError",
    "BitmapFont",
    "BitmapGlyph",
    "GlyphTooLargeError",
    "PackingError",
    "SourceRect",
    "UnsupportedFormatError",
]
