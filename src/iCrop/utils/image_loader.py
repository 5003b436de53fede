"""Pillow-backed bitmap decode service.

The crop engine needs three things from a source file: its true pixel size,
its EXIF orientation and a display-sized upright bitmap.  Size and
orientation are read from the header only so that probing a 50 MP file stays
cheap.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from ..errors import DecodeFailure
from ..models.crop import DisplayedImage, ExifInfo, SourceDimensions

_LOGGER = logging.getLogger(__name__)

_EXIF_ORIENTATION_TAG = 0x0112

# Sources larger than Pillow's decompression-bomb threshold are legitimate
# camera files here; the display bitmap is always downsampled.
Image.MAX_IMAGE_PIXELS = None


@dataclass
class DecodedBitmap:
    """Result of decoding a source for display."""

    image: Image.Image
    source_size: SourceDimensions
    exif_info: ExifInfo
    input_path: str
    output_path: str | None = None
    sample_size: int = 1
    released: bool = False

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    def displayed(self) -> DisplayedImage:
        return DisplayedImage(width=self.width, height=self.height, released=self.released)

    def release(self) -> None:
        """Drop the pixel buffer; the bitmap can no longer back a crop."""

        if not self.released:
            self.image.close()
            self.released = True


def _open(path: Path) -> Image.Image:
    try:
        return Image.open(path)
    except FileNotFoundError as exc:
        raise DecodeFailure(f"Source image does not exist: {path}") from exc
    except UnidentifiedImageError as exc:
        raise DecodeFailure(f"Unrecognised image format: {path}") from exc
    except (OSError, SyntaxError, ValueError) as exc:
        raise DecodeFailure(f"Failed to read {path}: {exc}") from exc


def probe_source_dimensions(path: str | Path) -> SourceDimensions:
    """Return the stored pixel size of *path* without decoding pixel data."""

    with _open(Path(path)) as img:
        width, height = img.size
    return SourceDimensions(width=width, height=height)


def read_exif_orientation(path: str | Path) -> int:
    """Return the EXIF orientation tag of *path*, ``1`` when absent."""

    with _open(Path(path)) as img:
        try:
            orientation = img.getexif().get(_EXIF_ORIENTATION_TAG, 1)
        except (OSError, SyntaxError, ValueError):
            _LOGGER.warning("Unreadable EXIF block in %s; assuming upright", path)
            return 1
    try:
        orientation = int(orientation)
    except (TypeError, ValueError):
        return 1
    return orientation if 1 <= orientation <= 8 else 1


def read_exif_info(path: str | Path) -> ExifInfo:
    return ExifInfo.from_orientation(read_exif_orientation(path))


def calculate_in_sample_size(width: int, height: int, req_width: int, req_height: int) -> int:
    """Return the largest power-of-two divisor keeping the image within the request."""

    sample = 1
    if req_width <= 0 or req_height <= 0:
        return sample
    if height > req_height or width > req_width:
        while (height // sample) > req_height or (width // sample) > req_width:
            sample *= 2
    return sample


def calculate_max_bitmap_size(screen_width: int, screen_height: int, max_texture_size: int = 0) -> int:
    """Return the display bitmap bound: the screen diagonal, capped by the GPU texture limit."""

    size = int(math.sqrt(screen_width ** 2 + screen_height ** 2))
    if max_texture_size > 0:
        size = min(size, max_texture_size)
    return size


def apply_exif_orientation(image: Image.Image, exif_info: ExifInfo) -> Image.Image:
    """Rotate clockwise by ``exif_degrees`` then mirror when flagged."""

    result = image
    if exif_info.exif_degrees == 90:
        result = result.transpose(Image.Transpose.ROTATE_270)
    elif exif_info.exif_degrees == 180:
        result = result.transpose(Image.Transpose.ROTATE_180)
    elif exif_info.exif_degrees == 270:
        result = result.transpose(Image.Transpose.ROTATE_90)
    if exif_info.is_mirrored:
        result = result.transpose(Image.Transpose.FLIP_LEFT_RIGHT)
    return result


def decode_bitmap(
    path: str | Path,
    required_width: int,
    required_height: int,
    output_path: str | Path | None = None,
) -> DecodedBitmap:
    """Decode *path* for display, downsampled to fit the requested box.

    The returned bitmap is upright: EXIF rotation and mirroring have been
    applied.  ``source_size`` still reports the stored (uncorrected) size.
    """

    source = Path(path)
    exif_info = read_exif_info(source)
    with _open(source) as img:
        width, height = img.size
        sample = calculate_in_sample_size(width, height, required_width, required_height)
        try:
            if sample > 1:
                target_w = max(1, width // sample)
                target_h = max(1, height // sample)
                # JPEG decoders can scale by 1/2..1/8 while decoding.
                img.draft(img.mode, (target_w, target_h))
                img.load()
                scaled = img.reduce(max(1, img.width // target_w))
            else:
                img.load()
                scaled = img.copy()
        except MemoryError as exc:
            raise DecodeFailure(f"Not enough memory to decode {source}") from exc
        except (OSError, SyntaxError, ValueError) as exc:
            raise DecodeFailure(f"Failed to decode {source}: {exc}") from exc

    bitmap = apply_exif_orientation(scaled, exif_info)
    _LOGGER.debug(
        "Decoded %s: source %dx%d, sample %d, display %dx%d",
        source, width, height, sample, bitmap.width, bitmap.height,
    )
    return DecodedBitmap(
        image=bitmap,
        source_size=SourceDimensions(width=width, height=height),
        exif_info=exif_info,
        input_path=str(source),
        output_path=str(output_path) if output_path is not None else None,
        sample_size=sample,
    )


__all__ = [
    "DecodedBitmap",
    "apply_exif_orientation",
    "calculate_in_sample_size",
    "calculate_max_bitmap_size",
    "decode_bitmap",
    "probe_source_dimensions",
    "read_exif_info",
    "read_exif_orientation",
]
