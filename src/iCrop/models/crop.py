"""Value objects exchanged between the view layer and the crop engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from PySide6.QtCore import QRectF

# EXIF orientation tag values (TIFF/EXIF 2.3, tag 0x0112).
ORIENTATION_NORMAL = 1
ORIENTATION_FLIP_HORIZONTAL = 2
ORIENTATION_ROTATE_180 = 3
ORIENTATION_FLIP_VERTICAL = 4
ORIENTATION_TRANSPOSE = 5
ORIENTATION_ROTATE_90 = 6
ORIENTATION_TRANSVERSE = 7
ORIENTATION_ROTATE_270 = 8

_VALID_DEGREES = frozenset({0, 90, 180, 270})
_VALID_TRANSLATIONS = frozenset({1, -1})


def exif_to_degrees(orientation: int) -> int:
    """Return the clockwise rotation that makes a stored image upright."""

    if orientation in (ORIENTATION_ROTATE_90, ORIENTATION_TRANSPOSE):
        return 90
    if orientation in (ORIENTATION_ROTATE_180, ORIENTATION_FLIP_VERTICAL):
        return 180
    if orientation in (ORIENTATION_ROTATE_270, ORIENTATION_TRANSVERSE):
        return 270
    return 0


def exif_to_translation(orientation: int) -> int:
    """Return ``-1`` when the stored image is mirrored, ``1`` otherwise."""

    if orientation in (
        ORIENTATION_FLIP_HORIZONTAL,
        ORIENTATION_FLIP_VERTICAL,
        ORIENTATION_TRANSPOSE,
        ORIENTATION_TRANSVERSE,
    ):
        return -1
    return 1


class CompressFormat(Enum):
    """Output encodings understood by the pixel-crop primitive.

    The member value is the integer format code handed to the primitive.
    """

    JPEG = 0
    PNG = 1
    WEBP = 2

    @property
    def pil_format(self) -> str:
        return self.name

    @property
    def extension(self) -> str:
        return {"JPEG": ".jpg", "PNG": ".png", "WEBP": ".webp"}[self.name]

    @classmethod
    def parse(cls, value: "CompressFormat | str | int") -> "CompressFormat":
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls(value)
        key = str(value).strip().upper()
        if key == "JPG":
            key = "JPEG"
        try:
            return cls[key]
        except KeyError as exc:
            raise ValueError(f"Unsupported output format: {value!r}") from exc


@dataclass(frozen=True)
class ExifInfo:
    """Orientation correction still pending on the stored source pixels."""

    exif_degrees: int = 0
    exif_translation: int = 1
    exif_orientation: int = ORIENTATION_NORMAL

    def __post_init__(self) -> None:
        if self.exif_degrees not in _VALID_DEGREES:
            raise ValueError(f"exif_degrees must be one of 0/90/180/270, got {self.exif_degrees}")
        if self.exif_translation not in _VALID_TRANSLATIONS:
            raise ValueError(f"exif_translation must be 1 or -1, got {self.exif_translation}")

    @classmethod
    def from_orientation(cls, orientation: int | None) -> "ExifInfo":
        tag = int(orientation) if orientation else ORIENTATION_NORMAL
        return cls(
            exif_degrees=exif_to_degrees(tag),
            exif_translation=exif_to_translation(tag),
            exif_orientation=tag,
        )

    @property
    def swaps_sides(self) -> bool:
        return self.exif_degrees in (90, 270)

    @property
    def is_mirrored(self) -> bool:
        return self.exif_translation == -1


@dataclass(frozen=True)
class ImageState:
    """Snapshot of the view taken at the moment a crop is requested.

    ``crop_rect`` is the fixed crop window and ``current_image_rect`` the
    bounding rect of the displayed image, both in viewport coordinates.
    """

    crop_rect: QRectF
    current_image_rect: QRectF
    current_scale: float
    current_angle: float

    def __post_init__(self) -> None:
        # QRectF is mutable; keep private copies so later edits by the view
        # never leak into the snapshot.
        object.__setattr__(self, "crop_rect", QRectF(self.crop_rect))
        object.__setattr__(self, "current_image_rect", QRectF(self.current_image_rect))
        object.__setattr__(self, "current_scale", float(self.current_scale))
        object.__setattr__(self, "current_angle", float(self.current_angle))


@dataclass(frozen=True)
class CropParameters:
    """Output configuration for one crop request.

    ``max_output_width``/``max_output_height`` of zero or below mean the
    output is not bounded.
    """

    max_output_width: int
    max_output_height: int
    output_format: CompressFormat
    output_quality: int
    input_path: str
    output_path: str
    exif_info: ExifInfo = ExifInfo()

    def __post_init__(self) -> None:
        object.__setattr__(self, "output_format", CompressFormat.parse(self.output_format))
        object.__setattr__(self, "input_path", str(self.input_path))
        object.__setattr__(self, "output_path", str(self.output_path))
        if not 0 <= int(self.output_quality) <= 100:
            raise ValueError(f"output_quality must be within 0..100, got {self.output_quality}")

    @property
    def has_output_bound(self) -> bool:
        return self.max_output_width > 0 and self.max_output_height > 0

    @property
    def input(self) -> Path:
        return Path(self.input_path)

    @property
    def output(self) -> Path:
        return Path(self.output_path)


@dataclass(frozen=True)
class SourceDimensions:
    """True pixel size of the stored source file (before EXIF correction)."""

    width: int
    height: int


@dataclass(frozen=True)
class DisplayedImage:
    """The (possibly downsampled) bitmap the view is showing."""

    width: int
    height: int
    released: bool = False


@dataclass(frozen=True)
class ScaleStage:
    """One named factor of the display-to-output scale pipeline."""

    name: str
    factor: float


@dataclass(frozen=True)
class ResolvedCrop:
    """Pixel-space crop parameters for the destination image."""

    offset_x: int
    offset_y: int
    width: int
    height: int
    resize_scale: float
    should_crop: bool
    needs_crop: bool = False
    needs_resize: bool = False
    current_scale: float = 1.0
    resize_base: float = 1.0
    angle: float = 0.0
    stages: tuple[ScaleStage, ...] = ()


__all__ = [
    "CompressFormat",
    "CropParameters",
    "DisplayedImage",
    "ExifInfo",
    "ImageState",
    "ResolvedCrop",
    "ScaleStage",
    "SourceDimensions",
    "exif_to_degrees",
    "exif_to_translation",
]
