from __future__ import annotations

import numpy as np
import pytest

from raster_fonts.distance_field import (
    DistanceFieldGenerator,
    encode_signed_distance,
    minimize_rows,
    propagate_columns,
    quantize_coverage,
    signed_distance,
)
from raster_fonts.models import SourceRect


def solid_square(size: int, coverage: float = 1.0):
    return [(x, y, coverage) for y in range(size) for x in range(size)]


def test_columns_accumulate_squared_distance():
    field = np.array([[0.0], [100.0], [100.0], [100.0]])
    propagate_columns(field)
    assert field[:, 0].tolist() == [0.0, 1.0, 4.0, 9.0]


def test_columns_pick_up_seeds_below():
    field = np.array([[100.0], [100.0], [100.0], [0.0], [100.0]])
    propagate_columns(field)
    assert field[:, 0].tolist() == [9.0, 4.0, 1.0, 0.0, 1.0]


def test_single_seed_gives_squared_euclidean_distance():
    seeds = np.zeros((5, 5), dtype=bool)
    seeds[2, 2] = True
    max_dist = 100.0
    field = np.where(seeds, 0.0, max_dist)
    propagate_columns(field)
    result = minimize_rows(field)
    assert result[0, 0] == 8.0
    assert result[2, 4] == 4.0
    assert result[1, 2] == 1.0


def test_padding_ring_edge_is_fully_outside():
    padding = 3
    generator = DistanceFieldGenerator(padding)
    canvas = np.zeros((10, 10), dtype=np.uint8)
    generator.render(canvas, SourceRect(0, 0, 10, 10), solid_square(4))

    # middle of the left outer edge, three pixels from the ink
    assert canvas[5, 0] == 0
    # one pixel inside the left ink boundary
    assert canvas[5, 4] > 127.5
    # every ink pixel encodes a positive distance
    assert (canvas[3:7, 3:7] > 127).all()
    # every padding pixel encodes a negative one
    assert (canvas[:3, :] < 128).all()


def test_sdf_only_touches_its_rectangle():
    generator = DistanceFieldGenerator(2)
    canvas = np.full((16, 16), 7, dtype=np.uint8)
    rect = SourceRect(3, 5, 7, 8)
    samples = [(x, y, 1.0) for y in range(4) for x in range(3)]
    generator.render(canvas, rect, samples)

    outside = np.ones_like(canvas, dtype=bool)
    outside[rect.y:rect.bottom, rect.x:rect.right] = False
    assert (canvas[outside] == 7).all()


def test_low_coverage_counts_as_background():
    generator = DistanceFieldGenerator(2)
    canvas = np.zeros((6, 6), dtype=np.uint8)
    generator.render(canvas, SourceRect(0, 0, 6, 6), solid_square(2, coverage=0.5))
    assert (canvas == 0).all()


def test_zero_padding_thresholds_ink():
    ink = np.array([[True, False], [False, True]])
    assert signed_distance(ink, 0).tolist() == [[1.0, -1.0], [-1.0, 1.0]]


def test_encoding_endpoints():
    assert encode_signed_distance(np.array([-1.0, 0.0, 1.0])).tolist() == [0, 128, 255]


def test_coverage_levels_quantize_to_exact_bytes():
    assert quantize_coverage(np.array([0.1, 0.3, 0.6, 0.9]), 4).tolist() == [0, 64, 128, 255]

    every = set(quantize_coverage(np.linspace(0.0, 1.0, 1001), 4).tolist())
    assert every == {0, 64, 128, 191, 255}


def test_coverage_mode_leaves_background_alone():
    generator = DistanceFieldGenerator(1, coverage_levels=4)
    assert generator.mode == "coverage"
    canvas = np.zeros((4, 4), dtype=np.uint8)
    samples = [(0, 0, 0.3), (1, 0, 0.9), (0, 1, 0.6), (1, 1, 0.75)]
    generator.render(canvas, SourceRect(0, 0, 4, 4), samples)

    assert canvas[1:3, 1:3].tolist() == [[64, 255], [128, 191]]
    assert canvas[0].tolist() == [0, 0, 0, 0]
    assert canvas[:, 3].tolist() == [0, 0, 0, 0]


@pytest.mark.parametrize("kwargs", [{"padding": -1}, {"padding": 2, "coverage_levels": 0}])
def test_invalid_settings(kwargs):
    with pytest.raises(ValueError):
        DistanceFieldGenerator(**kwargs)
