"""Exceptions raised while building an atlas."""

from __future__ import annotations


class AtlasError(Exception):
    """Base class for failures that abort a whole atlas run."""


class PackingError(AtlasError):
    """A glyph rectangle could not be placed on the canvas."""


class GlyphTooLargeError(PackingError):
    """A padded glyph does not fit the single-byte rectangle size."""


class UnsupportedFormatError(AtlasError, ValueError):
    """An output path names an image or metadata format we cannot write."""
