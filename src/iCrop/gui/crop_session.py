"""View-layer owner of the transform, the gesture controller and crop requests."""

from __future__ import annotations

import logging
from pathlib import Path

from PySide6.QtCore import QObject, QRectF, QThreadPool, Signal

from ..config import DEFAULT_COMPRESS_FORMAT, DEFAULT_COMPRESS_QUALITY, DEFAULT_MAX_BITMAP_SIZE
from ..core.crop_executor import CropExecutor, CropResult
from ..core.transform import AffineTransformState, cover_matrix
from ..errors import CropInProgressError, PreconditionViolation
from ..models.crop import CompressFormat, CropParameters, ImageState
from ..settings.manager import CropOptions
from ..utils.image_loader import DecodedBitmap
from .ui.tasks import BitmapLoadWorker, CropWorker
from .ui.widgets import GestureTransformController, ZoomAnimator

_LOGGER = logging.getLogger(__name__)


class CropSession(QObject):
    """Tie the interactive transform to background decode and crop work.

    The session owns the mutable view state.  Crop requests capture an
    :class:`ImageState` snapshot on the calling (GUI) thread and hand it to a
    :class:`CropWorker`, so gestures performed while the crop runs never
    change its output.  At most one crop is in flight at a time.
    """

    scaleChanged = Signal(float)
    angleChanged = Signal(float)
    loadComplete = Signal()
    loadFailed = Signal(str)
    cropSucceeded = Signal(str, int, int, int, int)
    cropFailed = Signal(object)
    gestureEnded = Signal()

    def __init__(
        self,
        crop_rect: QRectF,
        *,
        executor: CropExecutor | None = None,
        thread_pool: QThreadPool | None = None,
        options: CropOptions | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._crop_rect = QRectF(crop_rect)
        self._executor = executor or CropExecutor()
        self._pool = thread_pool or QThreadPool.globalInstance()
        self._options = options

        self._transform = AffineTransformState(
            on_scale_changed=self.scaleChanged.emit,
            on_angle_changed=self.angleChanged.emit,
        )
        self._animator = ZoomAnimator(
            on_animation_frame=self._apply_animation_frame,
            timer_parent=self,
        )
        self._gestures = GestureTransformController(
            self._transform,
            animator=self._animator,
            on_gesture_ended=self.gestureEnded.emit,
        )
        if options is not None:
            self._apply_options(options)

        self._decoded: DecodedBitmap | None = None
        self._load_worker: BitmapLoadWorker | None = None
        self._load_request = 0
        self._crop_worker: CropWorker | None = None

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def transform(self) -> AffineTransformState:
        return self._transform

    @property
    def gestures(self) -> GestureTransformController:
        return self._gestures

    @property
    def animator(self) -> ZoomAnimator:
        return self._animator

    @property
    def decoded(self) -> DecodedBitmap | None:
        return self._decoded

    def crop_rect(self) -> QRectF:
        return QRectF(self._crop_rect)

    def set_crop_rect(self, rect: QRectF) -> None:
        """Move or resize the crop window and refresh the zoom limits."""

        self._crop_rect = QRectF(rect)
        if self._decoded is not None:
            self._gestures.update_scale_bounds(
                self._crop_rect, self._decoded.width, self._decoded.height
            )

    def is_crop_in_flight(self) -> bool:
        return self._crop_worker is not None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def load_image(self, path: str | Path, output_path: str | Path | None = None) -> None:
        """Decode *path* on the thread pool and lay it out once ready.

        A newer call supersedes any load still running; the older result is
        dropped when it arrives.
        """

        max_size = self._options.max_bitmap_size if self._options else DEFAULT_MAX_BITMAP_SIZE
        worker = BitmapLoadWorker(
            str(path),
            str(output_path) if output_path is not None else None,
            max_size,
            request_id=self._load_request + 1,
        )
        worker.signals.bitmapLoaded.connect(self._on_bitmap_loaded)
        worker.signals.loadFailed.connect(self._on_bitmap_failed)
        self._load_request = worker.request_id
        self._load_worker = worker
        self._pool.start(worker)

    def apply_decoded(self, decoded: DecodedBitmap) -> None:
        """Show *decoded*, fitted to cover the crop window and centred on it."""

        previous = self._decoded
        self._decoded = decoded
        if previous is not None and previous is not decoded:
            previous.release()

        self._animator.stop_animation()
        width, height = decoded.width, decoded.height
        self._transform.set_image_bounds(width, height)

        self._transform.set_matrix(cover_matrix(self._crop_rect, width, height))
        self._gestures.update_scale_bounds(self._crop_rect, width, height)
        self._transform.log_matrix("Initial image position")

        self.angleChanged.emit(self._transform.current_angle())
        self.scaleChanged.emit(self._transform.current_scale())
        self.loadComplete.emit()

    def release(self) -> None:
        """Drop the displayed bitmap; later crop requests will fail."""

        self._animator.stop_animation()
        if self._decoded is not None:
            self._decoded.release()

    # ------------------------------------------------------------------
    # Cropping
    # ------------------------------------------------------------------
    def snapshot_state(self) -> ImageState:
        return ImageState(
            crop_rect=self._crop_rect,
            current_image_rect=self._transform.current_image_rect(),
            current_scale=self._transform.current_scale(),
            current_angle=self._transform.current_angle(),
        )

    def crop_and_save(
        self,
        output_format: CompressFormat | str | None = None,
        quality: int | None = None,
        max_width: int | None = None,
        max_height: int | None = None,
    ) -> None:
        """Dispatch one crop of the current framing.

        Exactly one of :attr:`cropSucceeded` or :attr:`cropFailed` is emitted
        for every request that is accepted.

        Raises
        ------
        CropInProgressError
            A previous request has not finished yet.
        """

        if self._crop_worker is not None:
            raise CropInProgressError("A crop is already running for this session")

        decoded = self._decoded
        if decoded is None:
            self.cropFailed.emit(PreconditionViolation("No image has been loaded"))
            return

        options = self._options
        if output_format is None:
            output_format = options.output_format if options else DEFAULT_COMPRESS_FORMAT
        if quality is None:
            quality = options.output_quality if options else DEFAULT_COMPRESS_QUALITY
        if max_width is None:
            max_width = options.max_output_width if options else 0
        if max_height is None:
            max_height = options.max_output_height if options else 0

        output_path = decoded.output_path
        if output_path is None:
            self.cropFailed.emit(PreconditionViolation("No output path was given for the image"))
            return

        try:
            params = CropParameters(
                max_output_width=int(max_width),
                max_output_height=int(max_height),
                output_format=output_format,
                output_quality=int(quality),
                input_path=decoded.input_path,
                output_path=output_path,
                exif_info=decoded.exif_info,
            )
        except (TypeError, ValueError) as exc:
            failure = PreconditionViolation(f"Invalid crop parameters: {exc}")
            failure.__cause__ = exc
            self.cropFailed.emit(failure)
            return

        worker = CropWorker(self._executor, decoded.displayed(), self.snapshot_state(), params)
        worker.signals.finished.connect(self._on_crop_finished)
        self._crop_worker = worker
        _LOGGER.debug("Dispatching crop of %s to %s", params.input_path, params.output_path)
        self._pool.start(worker)

    # ------------------------------------------------------------------
    # Internal utilities
    # ------------------------------------------------------------------
    def _apply_options(self, options: CropOptions) -> None:
        self._gestures.set_scale_enabled(options.scale_enabled)
        self._gestures.set_rotate_enabled(options.rotate_enabled)
        self._gestures.set_double_tap_scale_steps(options.double_tap_scale_steps)
        self._gestures.set_double_tap_duration_ms(options.double_tap_duration_ms)
        self._gestures.set_max_scale_multiplier(options.max_scale_multiplier)

    def _apply_animation_frame(self, scale, center) -> None:
        self._gestures.apply_animation_frame(scale, center)

    def _on_bitmap_loaded(self, request_id: int, decoded: DecodedBitmap) -> None:
        if request_id != self._load_request:
            _LOGGER.debug("Dropping superseded load of %s", decoded.input_path)
            decoded.release()
            return
        self._load_worker = None
        self.apply_decoded(decoded)

    def _on_bitmap_failed(self, request_id: int, path: str, message: str) -> None:
        if request_id != self._load_request:
            _LOGGER.debug("Ignoring failure of superseded load of %s", path)
            return
        self._load_worker = None
        _LOGGER.error("Failed to load %s: %s", path, message)
        self.loadFailed.emit(message)

    def _on_crop_finished(self, result: CropResult) -> None:
        self._crop_worker = None
        if result.success:
            self.cropSucceeded.emit(
                result.output_path or "",
                result.offset_x,
                result.offset_y,
                result.width,
                result.height,
            )
        else:
            self.cropFailed.emit(result.error)


__all__ = ["CropSession"]
