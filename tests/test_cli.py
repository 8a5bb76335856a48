from __future__ import annotations

import pytest

from raster_fonts import cli
from raster_fonts.serialization import FORMATS, decode_font


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ("SCALE", "PADDING", "IMAGE_SIZE", "CHARSET", "PACKER"):
        monkeypatch.delenv(f"RASTER_FONTS_{name}", raising=False)


@pytest.fixture
def loaded(monkeypatch, fake_rasterizer):
    calls = []

    def load(font_path):
        calls.append(font_path)
        return fake_rasterizer(kerning={("A", "B"): -1.0})

    monkeypatch.setattr(cli, "load_rasterizer", load)
    return calls


def test_defaults():
    args = cli.parse_args(["font.ttf", "atlas.png", "atlas.json"])
    assert args.scale == 24.0
    assert args.padding == 4
    assert args.output_image_size == 512
    assert len(args.charset) == 95
    assert args.coverage_levels is None
    assert args.skip_kerning_table is False
    assert args.packer == "exhaustive"


def test_environment_defaults(monkeypatch):
    monkeypatch.setenv("RASTER_FONTS_SCALE", "32")
    monkeypatch.setenv("RASTER_FONTS_CHARSET", "41-42")
    monkeypatch.setenv("RASTER_FONTS_PACKER", "shelf")
    args = cli.parse_args(["font.ttf", "atlas.png", "atlas.json"])
    assert args.scale == 32.0
    assert args.charset == ["A", "B"]
    assert args.packer == "shelf"


@pytest.mark.parametrize("flag", [["-s", "0"], ["-p", "-1"], ["-S", "0"], ["-l", "0"], ["-c", "zz"]])
def test_bad_arguments(flag, capsys):
    with pytest.raises(SystemExit):
        cli.parse_args(["font.ttf", "atlas.png", "atlas.json", *flag])


def test_writes_atlas_and_metadata(loaded, tmp_path, capsys):
    image = tmp_path / "atlas.png"
    metadata = tmp_path / "atlas.bin"

    cli.main(["font.ttf", str(image), str(metadata), "-c", "20,41-43", "-S", "64", "-p", "2"])

    out = capsys.readouterr().out
    assert "Wrote atlas to" in out
    assert "4 glyphs, 3 packed, 1 kerning pairs" in out
    font = decode_font(metadata.read_bytes(), FORMATS["binary"])
    assert font.kerning_table == {("A", "B"): -1.0}
    assert font.glyphs[" "].bitmap_source is None
    assert image.exists()


def test_canvas_overflow_writes_nothing(loaded, tmp_path, capsys):
    image = tmp_path / "atlas.png"
    metadata = tmp_path / "atlas.bin"

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["font.ttf", str(image), str(metadata), "-c", "4e00-750f", "-s", "24", "-S", "16"])

    assert excinfo.value.code == 1
    assert "no room" in capsys.readouterr().err
    assert not image.exists()
    assert not metadata.exists()


def test_unknown_image_format_fails_before_loading_the_font(loaded, tmp_path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["font.ttf", str(tmp_path / "atlas.xyz"), str(tmp_path / "atlas.json")])

    assert excinfo.value.code == 1
    assert loaded == []
    assert list(tmp_path.iterdir()) == []


def test_unwritable_metadata_path_exits_cleanly(loaded, tmp_path, capsys):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["font.ttf", str(tmp_path / "atlas.png"), str(blocker / "atlas.json"), "-c", "41-43"])

    assert excinfo.value.code == 1
    assert capsys.readouterr().err.startswith("font2img: error:")
    assert list(tmp_path.iterdir()) == [blocker]


def test_missing_font(tmp_path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main([str(tmp_path / "missing.ttf"), str(tmp_path / "atlas.png"), str(tmp_path / "atlas.json")])
    assert excinfo.value.code == 1
