from __future__ import annotations

import pytest

from raster_fonts.charset import DEFAULT_CHARSET, parse_charset


def test_range():
    assert parse_charset("41-43") == ["A", "B", "C"]


def test_order_is_kept_and_duplicates_dropped():
    assert parse_charset("43, 41-43,U+20") == ["C", "A", "B", " "]


def test_default_is_printable_ascii():
    chars = parse_charset(DEFAULT_CHARSET)
    assert chars[0] == " " and chars[-1] == "~"
    assert len(chars) == 95


def test_surrogates_are_skipped_in_ranges():
    assert parse_charset("d7ff-e000") == ["\ud7ff", "\ue000"]


@pytest.mark.parametrize("spec", ["", "zz", "43-41", "110000", "d800", ","])
def test_invalid(spec):
    with pytest.raises(ValueError):
        parse_charset(spec)
