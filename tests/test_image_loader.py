"""Tests for the Pillow-backed decode service."""

import pytest

from iCrop.errors import DecodeFailure
from iCrop.models.crop import SourceDimensions
from iCrop.utils.image_loader import (
    calculate_in_sample_size,
    calculate_max_bitmap_size,
    decode_bitmap,
    probe_source_dimensions,
    read_exif_info,
    read_exif_orientation,
)


def test_probe_reads_stored_size(make_image):
    path = make_image(size=(400, 300), orientation=6)
    assert probe_source_dimensions(path) == SourceDimensions(400, 300)


def test_orientation_defaults_to_upright(make_image):
    assert read_exif_orientation(make_image()) == 1


@pytest.mark.parametrize("orientation, degrees, translation", [
    (6, 90, 1),
    (3, 180, 1),
    (8, 270, 1),
    (2, 0, -1),
    (7, 270, -1),
])
def test_exif_info_from_file(make_image, orientation, degrees, translation):
    info = read_exif_info(make_image(orientation=orientation))
    assert info.exif_orientation == orientation
    assert info.exif_degrees == degrees
    assert info.exif_translation == translation


def test_in_sample_size_is_power_of_two():
    assert calculate_in_sample_size(4000, 3000, 1000, 1000) == 4
    assert calculate_in_sample_size(4000, 3000, 2000, 2000) == 2
    assert calculate_in_sample_size(100, 100, 200, 200) == 1
    assert calculate_in_sample_size(4000, 3000, 0, 0) == 1


def test_max_bitmap_size_is_screen_diagonal():
    assert calculate_max_bitmap_size(300, 400) == 500
    assert calculate_max_bitmap_size(300, 400, max_texture_size=256) == 256


def test_decode_downsamples_and_uprights(make_image, tmp_path):
    path = make_image(size=(400, 300), orientation=6)

    decoded = decode_bitmap(path, 100, 100, output_path=tmp_path / "out.jpg")

    assert decoded.sample_size == 4
    assert (decoded.width, decoded.height) == (75, 100)
    assert decoded.source_size == SourceDimensions(400, 300)
    assert decoded.exif_info.exif_degrees == 90
    assert decoded.input_path == str(path)
    assert decoded.output_path == str(tmp_path / "out.jpg")


def test_small_images_are_decoded_at_full_size(make_image):
    decoded = decode_bitmap(make_image(size=(64, 48), name="small.png"), 4096, 4096)
    assert (decoded.width, decoded.height) == (64, 48)
    assert decoded.sample_size == 1
    assert decoded.output_path is None


def test_release_marks_display_bitmap_unusable(make_image):
    decoded = decode_bitmap(make_image(), 4096, 4096)
    decoded.release()
    decoded.release()
    assert decoded.displayed().released is True


def test_missing_file_is_a_decode_failure(tmp_path):
    with pytest.raises(DecodeFailure):
        decode_bitmap(tmp_path / "missing.jpg", 100, 100)


def test_garbage_file_is_a_decode_failure(tmp_path):
    path = tmp_path / "garbage.jpg"
    path.write_bytes(b"\x00" * 32)
    with pytest.raises(DecodeFailure):
        probe_source_dimensions(path)


def test_corrupt_pixel_data_is_a_decode_failure(broken_png):
    with pytest.raises(DecodeFailure):
        decode_bitmap(broken_png(), 100, 100)
