"""Tests for CLI crop handling (no network, no camera)."""

import os

import pytest
from PIL import Image

from miletrack.cli import main, parse_area
from miletrack.utils.selection import SelectionRect


@pytest.fixture(autouse=True)
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("MILETRACK_DATA_DIR", str(tmp_path / "data"))
    return tmp_path / "data"


@pytest.fixture
def odometer_image(tmp_path):
    path = tmp_path / "odo.png"
    Image.new("RGB", (400, 300), (30, 30, 30)).save(path)
    return str(path)


def test_parse_area():
    assert parse_area("10,20,30.5,40") == SelectionRect(10, 20, 30.5, 40)


@pytest.mark.parametrize("value", ["10,20,30", "a,b,c,d", "1,2,-3,4"])
def test_parse_area_rejects_bad_values(value):
    with pytest.raises(ValueError):
        parse_area(value)


def test_crop_area_and_save(odometer_image, tmp_path, capsys):
    out_dir = tmp_path / "out"
    code = main(["--image", odometer_image, "--area", "100,80,120,40", "--no-upload", "-o", str(out_dir)])

    assert code == 0
    saved = os.listdir(out_dir)
    assert len(saved) == 1
    with Image.open(out_dir / saved[0]) as crop:
        assert crop.size == (120, 40)
    assert "Cropped 120x40 region" in capsys.readouterr().out


def test_center_crop_is_default(odometer_image, capsys):
    assert main(["--image", odometer_image, "--no-upload"]) == 0
    assert "Cropped 240x90 region" in capsys.readouterr().out


def test_too_small_area_fails(odometer_image, capsys):
    assert main(["--image", odometer_image, "--area", "0,0,10,40", "--no-upload"]) == 1
    assert "too small" in capsys.readouterr().out


def test_missing_image_file_fails(tmp_path):
    assert main(["--image", str(tmp_path / "missing.jpg"), "--no-upload"]) == 1


@pytest.mark.parametrize("option", [["--center-width", "0"], ["--center-height", "1.5"]])
def test_bad_center_fractions_fail(odometer_image, capsys, option):
    assert main(["--image", odometer_image, "--no-upload"] + option) == 1
    assert "Center crop fractions" in capsys.readouterr().out


def test_area_and_center_crop_are_exclusive(odometer_image):
    with pytest.raises(SystemExit) as exc:
        main(["--image", odometer_image, "--area", "100,80,120,40", "--center-crop", "--no-upload"])
    assert exc.value.code == 2
