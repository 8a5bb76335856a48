"""Rectangle packers that place padded glyph boxes on a square canvas.

Every packer takes ``(width, height)`` pairs and the canvas side length and
returns the ``(x, y)`` top-left corner of each rectangle, in input order.
A rectangle that cannot be placed aborts the whole run with
:class:`PackingError`; a partial atlas is of no use to a client.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Sequence, Tuple

import numpy as np

from .errors import GlyphTooLargeError, PackingError
from .models import MAX_RECT_SIDE

logger = logging.getLogger(__name__)

Size = Tuple[int, int]
Position = Tuple[int, int]


def check_sizes(sizes: Sequence[Size]) -> None:
    for index, (width, height) in enumerate(sizes):
        if not (0 < width <= MAX_RECT_SIDE and 0 < height <= MAX_RECT_SIDE):
            raise GlyphTooLargeError(
                f"rectangle {index} is {width}x{height}px; "
                f"sides must be between 1 and {MAX_RECT_SIDE}px"
            )


def _first_free_position(occupied: np.ndarray, canvas_size: int, width: int, height: int) -> Position | None:
    """Return the first fully unoccupied window in row-major order.

    Rows are tried top to bottom and the scan stops at the first hit. A row
    is skipped outright when no window in it has four free corners;
    otherwise every pixel of the band of rows it starts is checked.
    """
    if width > canvas_size or height > canvas_size:
        return None

    grid = occupied.reshape(canvas_size, canvas_size)
    cols = canvas_size - width + 1
    for y in range(canvas_size - height + 1):
        top = grid[y]
        bottom = grid[y + height - 1]
        corners_free = ~(top[:cols] | top[width - 1:] | bottom[:cols] | bottom[width - 1:])
        if not corners_free.any():
            continue

        blocked = grid[y:y + height].any(axis=0)
        blocked_before = np.concatenate(([0], np.cumsum(blocked)))
        window_free = blocked_before[width:] == blocked_before[:cols]
        free = np.flatnonzero(corners_free & window_free)
        if free.size:
            return int(free[0]), y
    return None


def pack_exhaustive(sizes: Sequence[Size], canvas_size: int) -> List[Position]:
    """Largest-area-first placement at the first free row-major position.

    Occupancy is a flat boolean array indexed ``y * canvas_size + x``.
    """
    check_sizes(sizes)
    occupied = np.zeros(canvas_size * canvas_size, dtype=bool)
    grid = occupied.reshape(canvas_size, canvas_size)
    positions: List[Position | None] = [None] * len(sizes)

    # sorted() is stable, so equal areas keep their input order
    order = sorted(range(len(sizes)), key=lambda i: -(sizes[i][0] * sizes[i][1]))
    for index in order:
        width, height = sizes[index]
        position = _first_free_position(occupied, canvas_size, width, height)
        if position is None:
            raise PackingError(
                f"no room for a {width}x{height}px glyph on a "
                f"{canvas_size}x{canvas_size}px canvas "
                f"({len(sizes)} glyphs requested)"
            )
        x, y = position
        grid[y:y + height, x:x + width] = True
        positions[index] = position

    logger.debug("packed %d rectangles largest-first", len(sizes))
    return positions  # type: ignore[return-value]


def pack_shelf(sizes: Sequence[Size], canvas_size: int) -> List[Position]:
    """Row-by-row placement in arrival order, without backtracking."""
    check_sizes(sizes)
    next_x = 0
    next_y = 0
    next_row_height = 0
    positions: List[Position] = []

    for width, height in sizes:
        if next_x + width > canvas_size:
            next_x = 0
            next_y += next_row_height
            next_row_height = 0
        if next_x + width > canvas_size or next_y + height > canvas_size:
            raise PackingError(
                f"shelf at y={next_y} has no room for a {width}x{height}px glyph "
                f"on a {canvas_size}x{canvas_size}px canvas"
            )
        positions.append((next_x, next_y))
        next_x += width
        next_row_height = max(next_row_height, height)

    logger.debug("packed %d rectangles on shelves", len(sizes))
    return positions


PACKERS: Dict[str, Callable[[Sequence[Size], int], List[Position]]] = {
    "exhaustive": pack_exhaustive,
    "shelf": pack_shelf,
}
