"""Default pixel-crop primitive built on Pillow.

Order of operations on the stored source pixels:

1. EXIF rotation (clockwise) followed by the EXIF mirror;
2. resize by ``resize_scale``;
3. rotation by ``angle`` (clockwise on screen, canvas expanded);
4. extraction of ``(left, top, width, height)``;
5. encoding in the requested format and quality.

Offsets and sizes are expressed in the space produced by steps 1-3, which
is exactly the space the geometry resolver measures against.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from PIL import Image, UnidentifiedImageError

from ..errors import DecodeFailure
from ..models.crop import CompressFormat, ExifInfo
from ..utils.image_loader import apply_exif_orientation

_LOGGER = logging.getLogger(__name__)


class PixelCropPrimitive(Protocol):
    """Signature of the external routine that writes the cropped pixels."""

    def __call__(
        self,
        input_path: str,
        output_path: str,
        left: int,
        top: int,
        width: int,
        height: int,
        angle: float,
        resize_scale: float,
        format_code: int,
        quality: int,
        exif_degrees: int,
        exif_translation: int,
    ) -> bool: ...


def _save_atomically(image: Image.Image, destination: Path, fmt: CompressFormat, quality: int) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{destination.stem}-", suffix=fmt.extension, dir=str(destination.parent)
    )
    os.close(fd)
    try:
        if fmt is CompressFormat.JPEG:
            if image.mode not in ("RGB", "L"):
                image = image.convert("RGB")
            image.save(tmp_name, fmt.pil_format, quality=quality)
        elif fmt is CompressFormat.WEBP:
            image.save(tmp_name, fmt.pil_format, quality=quality)
        else:
            image.save(tmp_name, fmt.pil_format)
        os.replace(tmp_name, destination)
    except BaseException:
        try:
            os.remove(tmp_name)
        except OSError:
            pass
        raise


def pillow_crop(
    input_path: str,
    output_path: str,
    left: int,
    top: int,
    width: int,
    height: int,
    angle: float,
    resize_scale: float,
    format_code: int,
    quality: int,
    exif_degrees: int,
    exif_translation: int,
) -> bool:
    """Crop *input_path* into *output_path*; see the module docstring."""

    if width <= 0 or height <= 0:
        raise ValueError(f"Crop size must be positive, got {width}x{height}")

    fmt = CompressFormat(format_code)
    exif_info = ExifInfo(exif_degrees=exif_degrees, exif_translation=exif_translation)
    try:
        source = Image.open(input_path)
    except FileNotFoundError as exc:
        raise DecodeFailure(f"Source image does not exist: {input_path}") from exc
    except UnidentifiedImageError as exc:
        raise DecodeFailure(f"Unrecognised image format: {input_path}") from exc
    except (OSError, SyntaxError, ValueError) as exc:
        raise DecodeFailure(f"Failed to read {input_path}: {exc}") from exc

    with source:
        try:
            source.load()
        except (OSError, SyntaxError, ValueError) as exc:
            raise DecodeFailure(f"Failed to decode {input_path}: {exc}") from exc
        image = apply_exif_orientation(source, exif_info)

        if resize_scale != 1:
            size = (
                max(1, round(image.width * resize_scale)),
                max(1, round(image.height * resize_scale)),
            )
            image = image.resize(size, Image.Resampling.LANCZOS)

        if angle != 0:
            # Pillow rotates counter-clockwise for positive angles.
            image = image.rotate(-angle, resample=Image.Resampling.BICUBIC, expand=True)

        image = image.crop((left, top, left + width, top + height))
        _save_atomically(image, Path(output_path), fmt, quality)

    _LOGGER.debug(
        "Cropped %s -> %s at (%d, %d) %dx%d, angle %.2f, resize %.4f",
        input_path, output_path, left, top, width, height, angle, resize_scale,
    )
    return True


__all__ = ["PixelCropPrimitive", "pillow_crop"]
