from __future__ import annotations

from typing import Dict, Iterator, Sequence, Tuple

import pytest


class FakeRasterizer:
    """Every non-space character is a solid square of ``size`` pixels."""

    def __init__(
        self,
        size: int = 4,
        boxes: Dict[str, Tuple[int, int, int, int] | None] | None = None,
        kerning: Dict[Tuple[str, str], float] | None = None,
    ) -> None:
        self.size = size
        self.boxes = boxes or {}
        self.kerning_table = kerning or {}
        self.drawn: list = []

    def bounding_box(self, char: str, scale: float) -> Tuple[int, int, int, int] | None:
        if char in self.boxes:
            return self.boxes[char]
        if char.isspace():
            return None
        return (0, -self.size, self.size, 0)

    def draw(self, char: str, scale: float) -> Iterator[Tuple[int, int, float]]:
        self.drawn.append(char)
        box = self.bounding_box(char, scale)
        if box is None:
            return
        for y in range(box[3] - box[1]):
            for x in range(box[2] - box[0]):
                yield x, y, 1.0

    def h_metrics(self, char: str, scale: float) -> Tuple[float, float]:
        return scale / 2, 1.0

    def v_metrics(self, scale: float) -> Tuple[float, float, float]:
        return scale * 0.8, scale * -0.2, 1.5

    def kerning_pairs(self, chars: Sequence[str], scale: float) -> Iterator[Tuple[str, str, float]]:
        wanted = set(chars)
        for (first, second), value in self.kerning_table.items():
            if first in wanted and second in wanted:
                yield first, second, value


@pytest.fixture
def fake_rasterizer():
    return FakeRasterizer
