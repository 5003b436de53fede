"""Tests for the Pillow pixel-crop primitive."""

import pytest
from PIL import Image

from iCrop.core.pixel_crop import pillow_crop
from iCrop.errors import DecodeFailure

RED = (255, 0, 0)
BLUE = (0, 0, 255)


@pytest.fixture
def split_image(tmp_path):
    """40x20 PNG: red left half, blue right half."""

    path = tmp_path / "split.png"
    image = Image.new("RGB", (40, 20), BLUE)
    image.paste(RED, (0, 0, 20, 20))
    image.save(path)
    return path


def _crop(source, destination, left, top, width, height, *, angle=0.0, resize=1.0,
          fmt=1, quality=100, degrees=0, translation=1):
    return pillow_crop(
        str(source), str(destination), left, top, width, height,
        angle, resize, fmt, quality, degrees, translation,
    )


def test_plain_crop_extracts_region(split_image, tmp_path):
    out = tmp_path / "out.png"
    assert _crop(split_image, out, 15, 5, 10, 10) is True
    with Image.open(out) as img:
        assert img.size == (10, 10)
        assert img.getpixel((2, 5)) == RED
        assert img.getpixel((7, 5)) == BLUE


def test_exif_rotation_is_applied_clockwise_first(split_image, tmp_path):
    out = tmp_path / "out.png"
    _crop(split_image, out, 0, 0, 20, 40, degrees=90)
    with Image.open(out) as img:
        assert img.size == (20, 40)
        assert img.getpixel((10, 5)) == RED
        assert img.getpixel((10, 35)) == BLUE


def test_exif_mirror_flips_horizontally(split_image, tmp_path):
    out = tmp_path / "out.png"
    _crop(split_image, out, 0, 0, 40, 20, translation=-1)
    with Image.open(out) as img:
        assert img.getpixel((5, 10)) == BLUE
        assert img.getpixel((35, 10)) == RED


def test_view_angle_rotates_clockwise_with_expanded_canvas(split_image, tmp_path):
    out = tmp_path / "out.png"
    _crop(split_image, out, 0, 0, 20, 40, angle=90.0)
    with Image.open(out) as img:
        assert img.size == (20, 40)
        assert img.getpixel((10, 5)) == RED
        assert img.getpixel((10, 35)) == BLUE


def test_resize_happens_before_extraction(split_image, tmp_path):
    out = tmp_path / "out.png"
    _crop(split_image, out, 0, 0, 20, 10, resize=0.5)
    with Image.open(out) as img:
        assert img.size == (20, 10)


def test_jpeg_output_is_rgb(tmp_path):
    source = tmp_path / "alpha.png"
    Image.new("RGBA", (30, 30), (0, 255, 0, 128)).save(source)
    out = tmp_path / "out.jpg"

    _crop(source, out, 0, 0, 30, 30, fmt=0, quality=80)

    with Image.open(out) as img:
        assert img.format == "JPEG"
        assert img.mode == "RGB"


def test_webp_output(split_image, tmp_path):
    out = tmp_path / "out.webp"
    _crop(split_image, out, 0, 0, 10, 10, fmt=2, quality=75)
    with Image.open(out) as img:
        assert img.format == "WEBP"


def test_no_temporary_files_are_left(split_image, tmp_path):
    out = tmp_path / "result" / "out.png"
    _crop(split_image, out, 0, 0, 10, 10)
    assert [p.name for p in out.parent.iterdir()] == ["out.png"]


def test_non_positive_size_is_rejected(split_image, tmp_path):
    with pytest.raises(ValueError):
        _crop(split_image, tmp_path / "out.png", 0, 0, 0, 10)


def test_missing_source_is_a_decode_failure(tmp_path):
    with pytest.raises(DecodeFailure):
        _crop(tmp_path / "nope.png", tmp_path / "out.png", 0, 0, 1, 1)


def test_unreadable_source_is_a_decode_failure(tmp_path):
    source = tmp_path / "garbage.jpg"
    source.write_bytes(b"not an image")
    with pytest.raises(DecodeFailure):
        _crop(source, tmp_path / "out.png", 0, 0, 1, 1)
    assert not (tmp_path / "out.png").exists()


def test_corrupt_pixel_data_is_a_decode_failure(broken_png, tmp_path):
    destination = tmp_path / "out.png"
    with pytest.raises(DecodeFailure):
        _crop(broken_png(), destination, 0, 0, 10, 10)
    assert not destination.exists()
