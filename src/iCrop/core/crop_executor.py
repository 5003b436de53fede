"""Turn a :class:`ResolvedCrop` into an output file.

A crop request ends in exactly one :class:`CropResult`: success carrying the
pixel geometry, or failure carrying the cause.  A failed metadata copy after
a successful JPEG crop is logged and does not turn the result into a
failure.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from ..errors import (
    CropPrimitiveFailure,
    DecodeFailure,
    ICropError,
    MetadataCopyFailure,
)
from ..errors.handler import ErrorHandler, ErrorSeverity
from ..events import CropFailedEvent, CropSucceededEvent, EventBus
from ..models.crop import (
    CompressFormat,
    CropParameters,
    DisplayedImage,
    ImageState,
    ResolvedCrop,
)
from ..utils.exiftool import copy_exif
from .crop_geometry import CropGeometryResolver
from .pixel_crop import PixelCropPrimitive, pillow_crop

_LOGGER = logging.getLogger(__name__)

MetadataCopier = Callable[[Path, Path, int, int], None]


@dataclass(frozen=True)
class CropResult:
    """Terminal outcome of one crop request."""

    success: bool
    output_path: str | None = None
    offset_x: int = 0
    offset_y: int = 0
    width: int = 0
    height: int = 0
    cropped: bool = False
    metadata_copied: bool = False
    error: Exception | None = None

    @classmethod
    def failure(cls, error: Exception) -> "CropResult":
        return cls(success=False, error=error)


class CropExecutor:
    """Run the pixel-crop primitive (or a byte copy) for resolved crops.

    Parameters
    ----------
    resolver:
        Geometry resolver used by :meth:`run`.
    crop_primitive:
        External routine that writes the cropped pixels.
    metadata_copier:
        Called after a successful JPEG crop as
        ``(source, destination, width, height)``.
    error_handler:
        Receives non-fatal metadata copy failures.
    event_bus:
        When given, :class:`CropSucceededEvent`/:class:`CropFailedEvent` are
        published for every request handled by :meth:`run`.
    """

    def __init__(
        self,
        *,
        resolver: CropGeometryResolver | None = None,
        crop_primitive: PixelCropPrimitive = pillow_crop,
        metadata_copier: MetadataCopier | None = copy_exif,
        error_handler: ErrorHandler | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self._resolver = resolver or CropGeometryResolver()
        self._crop_primitive = crop_primitive
        self._metadata_copier = metadata_copier
        self._error_handler = error_handler
        self._event_bus = event_bus

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def run(
        self,
        displayed: DisplayedImage | None,
        state: ImageState,
        params: CropParameters,
    ) -> CropResult:
        """Resolve and execute a crop, reporting failures as results."""

        try:
            resolved = self._resolver.resolve(displayed, state, params)
            result = self.execute(resolved, params)
        except ICropError as exc:
            _LOGGER.error("Crop of %s failed: %s", params.input_path, exc)
            result = CropResult.failure(exc)
        self._publish(result, params)
        return result

    def execute(self, resolved: ResolvedCrop, params: CropParameters) -> CropResult:
        """Write the output for *resolved*.

        Raises
        ------
        DecodeFailure
            The source could not be read.
        CropPrimitiveFailure
            Pixel extraction failed; no output file is left behind.
        """

        source = params.input
        destination = params.output

        if not resolved.should_crop:
            self._copy_source(source, destination)
            return CropResult(
                success=True,
                output_path=str(destination),
                offset_x=resolved.offset_x,
                offset_y=resolved.offset_y,
                width=resolved.width,
                height=resolved.height,
                cropped=False,
            )

        self._run_primitive(resolved, params)

        metadata_copied = False
        if params.output_format is CompressFormat.JPEG and self._metadata_copier is not None:
            metadata_copied = self._copy_metadata(source, destination, resolved)

        return CropResult(
            success=True,
            output_path=str(destination),
            offset_x=resolved.offset_x,
            offset_y=resolved.offset_y,
            width=resolved.width,
            height=resolved.height,
            cropped=True,
            metadata_copied=metadata_copied,
        )

    # ------------------------------------------------------------------
    # Internal utilities
    # ------------------------------------------------------------------
    @staticmethod
    def _copy_source(source: Path, destination: Path) -> None:
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, destination)
        except FileNotFoundError as exc:
            if not source.exists():
                raise DecodeFailure(f"Source image does not exist: {source}") from exc
            raise CropPrimitiveFailure(f"Failed to copy {source} to {destination}: {exc}") from exc
        except OSError as exc:
            raise CropPrimitiveFailure(f"Failed to copy {source} to {destination}: {exc}") from exc

    def _run_primitive(self, resolved: ResolvedCrop, params: CropParameters) -> None:
        destination = params.output
        existed_before = destination.exists()
        try:
            cropped = self._crop_primitive(
                params.input_path,
                params.output_path,
                resolved.offset_x,
                resolved.offset_y,
                resolved.width,
                resolved.height,
                resolved.angle,
                resolved.resize_scale,
                params.output_format.value,
                params.output_quality,
                params.exif_info.exif_degrees,
                params.exif_info.exif_translation,
            )
        except DecodeFailure:
            self._discard_partial(destination, existed_before)
            raise
        except (OSError, MemoryError, ValueError) as exc:
            self._discard_partial(destination, existed_before)
            raise CropPrimitiveFailure(f"Pixel crop failed: {exc}") from exc
        except Exception as exc:
            self._discard_partial(destination, existed_before)
            _LOGGER.exception("Pixel crop of %s raised unexpectedly", params.input_path)
            raise CropPrimitiveFailure(f"Pixel crop failed: {exc!r}") from exc

        if not cropped:
            self._discard_partial(destination, existed_before)
            raise CropPrimitiveFailure("Pixel crop reported failure")

    @staticmethod
    def _discard_partial(destination: Path, existed_before: bool) -> None:
        if existed_before:
            return
        try:
            destination.unlink(missing_ok=True)
        except OSError:
            _LOGGER.warning("Could not remove partial output %s", destination)

    def _copy_metadata(self, source: Path, destination: Path, resolved: ResolvedCrop) -> bool:
        try:
            self._metadata_copier(source, destination, resolved.width, resolved.height)
        except (ICropError, OSError) as exc:
            failure = MetadataCopyFailure(f"EXIF copy to {destination} failed: {exc}")
            failure.__cause__ = exc
            if self._error_handler is not None:
                self._error_handler.handle(
                    failure,
                    ErrorSeverity.WARNING,
                    context={"source": str(source), "destination": str(destination)},
                )
            else:
                _LOGGER.warning("%s", failure)
            return False
        return True

    def _publish(self, result: CropResult, params: CropParameters) -> None:
        if self._event_bus is None:
            return
        if result.success:
            self._event_bus.publish(CropSucceededEvent(
                output_path=result.output_path or "",
                offset_x=result.offset_x,
                offset_y=result.offset_y,
                width=result.width,
                height=result.height,
                cropped=result.cropped,
            ))
        else:
            self._event_bus.publish(CropFailedEvent(
                input_path=params.input_path,
                error=result.error,
            ))


__all__ = ["CropExecutor", "CropResult", "MetadataCopier"]
