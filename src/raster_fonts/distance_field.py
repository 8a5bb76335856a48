"""Pixel encodings written into packed glyph rectangles.

Two encodings exist. Coverage mode quantizes the rasterizer's anti-aliased
coverage to a fixed number of levels. Signed distance field mode (the
default) stores, per pixel of the padded rectangle, an approximate signed
distance to the ink boundary that saturates at the padding radius.
"""

from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np

from .models import SourceRect

Sample = Tuple[int, int, float]

INK_THRESHOLD = 0.5


def round_half_up(values: np.ndarray) -> np.ndarray:
    # numpy rounds halves to even; byte encodings round them up
    return np.floor(values + 0.5)


def quantize_coverage(coverage: np.ndarray, levels: int) -> np.ndarray:
    """Snap coverage in [0, 1] to ``levels + 1`` evenly spaced bytes."""
    steps = round_half_up(np.asarray(coverage, dtype=np.float64) * levels)
    return round_half_up(steps / levels * 255).astype(np.uint8)


def encode_signed_distance(signed: np.ndarray) -> np.ndarray:
    """Map a normalized signed distance in [-1, 1] onto 0..255."""
    return round_half_up((np.asarray(signed, dtype=np.float64) + 1) / 2 * 255).astype(np.uint8)


def propagate_columns(field: np.ndarray) -> None:
    """Approximate squared vertical distance to the nearest zero seed.

    Runs down then up every column, adding odd steps 1, 3, 5, ... while a
    cell keeps improving and starting over at 1 when it does not. All columns
    advance together.
    """
    height, width = field.shape
    step = np.ones(width)
    for y in range(1, height):
        candidate = field[y - 1] + step
        improved = candidate < field[y]
        field[y] = np.where(improved, candidate, field[y])
        step = np.where(improved, step + 2, 1.0)

    step = np.ones(width)
    for y in range(height - 2, -1, -1):
        candidate = field[y + 1] + step
        improved = candidate < field[y]
        field[y] = np.where(improved, candidate, field[y])
        step = np.where(improved, step + 2, 1.0)


def minimize_rows(field: np.ndarray) -> np.ndarray:
    """Combine column distances with squared horizontal offsets.

    For each cell, the minimum over its row of ``field[y, x'] + (x - x')**2``.
    """
    columns = np.arange(field.shape[1])
    offsets = (columns[:, np.newaxis] - columns[np.newaxis, :]) ** 2
    return (field[:, np.newaxis, :] + offsets[np.newaxis, :, :]).min(axis=2)


def distance_transform(seeds: np.ndarray, max_dist: float) -> np.ndarray:
    """Normalized squared distance from each cell to the nearest seed cell."""
    field = np.where(seeds, 0.0, max_dist)
    propagate_columns(field)
    field = minimize_rows(field)
    return np.clip(field / max_dist, 0.0, 1.0)


def signed_distance(ink: np.ndarray, padding: int) -> np.ndarray:
    """Signed distance for a padded ink mask: negative outside, positive inside."""
    if padding == 0:
        return np.where(ink, 1.0, -1.0)
    max_dist = float(padding * padding)
    outside = distance_transform(ink, max_dist)
    inside = distance_transform(~ink, max_dist)
    return np.where(outside > 0, -outside, inside)


class DistanceFieldGenerator:
    """Writes one glyph at a time into its packed canvas rectangle."""

    def __init__(self, padding: int, coverage_levels: int | None = None) -> None:
        if padding < 0:
            raise ValueError(f"padding must not be negative, got {padding}")
        if coverage_levels is not None and coverage_levels <= 0:
            raise ValueError(f"coverage_levels must be positive, got {coverage_levels}")
        self.padding = padding
        self.coverage_levels = coverage_levels

    @property
    def mode(self) -> str:
        return "coverage" if self.coverage_levels is not None else "sdf"

    def render(self, canvas: np.ndarray, rect: SourceRect, samples: Iterable[Sample]) -> None:
        """Fill ``rect`` of ``canvas`` from coverage samples of the unpadded box.

        ``samples`` yields ``(x, y, coverage)`` relative to the glyph's ink box;
        ``rect`` is the padded rectangle assigned by the packer.
        """
        padding = self.padding
        sampled = np.zeros((rect.height, rect.width), dtype=bool)
        coverage = np.zeros((rect.height, rect.width), dtype=np.float64)
        for x, y, value in samples:
            sampled[y + padding, x + padding] = True
            coverage[y + padding, x + padding] = value

        region = canvas[rect.y:rect.bottom, rect.x:rect.right]
        if self.coverage_levels is not None:
            quantized = quantize_coverage(coverage, self.coverage_levels)
            region[sampled] = quantized[sampled]
            return

        ink = sampled & (coverage > INK_THRESHOLD)
        region[:, :] = encode_signed_distance(signed_distance(ink, padding))
