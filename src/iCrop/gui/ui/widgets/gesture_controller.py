"""
Gesture routing for the crop view.

Touch decoding happens elsewhere; this controller receives already
recognised pan, pinch, rotate and double-tap events and turns them into
mutations of the :class:`AffineTransformState`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from PySide6.QtCore import QPointF, QRectF

from ....config import (
    DEFAULT_MAX_SCALE_MULTIPLIER,
    DOUBLE_TAP_SCALE_STEPS,
    DOUBLE_TAP_ZOOM_DURATION_MS,
)
from ....core.transform import AffineTransformState, Point, compute_min_scale
from .zoom_animator import ZoomAnimator

_LOGGER = logging.getLogger(__name__)


def double_tap_step(min_scale: float, max_scale: float, steps: int) -> float:
    """Return the factor applied by each double tap."""

    return (max_scale / min_scale) ** (1.0 / steps)


class GestureTransformController:
    """Apply gesture deltas to the transform subject to the zoom policy.

    Parameters
    ----------
    transform:
        The transform state owned by the view.
    animator:
        Drives animated zooms; when ``None`` zooms are applied at once.
    on_gesture_started:
        Called on the first touch-down after running animations were
        cancelled.
    on_gesture_ended:
        Called once the last finger is lifted.  The view uses it to settle
        the image back inside the crop bounds.
    """

    def __init__(
        self,
        transform: AffineTransformState,
        *,
        animator: ZoomAnimator | None = None,
        on_gesture_started: Callable[[], None] | None = None,
        on_gesture_ended: Callable[[], None] | None = None,
    ) -> None:
        self._transform = transform
        self._animator = animator
        self._on_gesture_started = on_gesture_started
        self._on_gesture_ended = on_gesture_ended

        self._scale_enabled: bool = True
        self._rotate_enabled: bool = True
        self._double_tap_steps: int = DOUBLE_TAP_SCALE_STEPS
        self._double_tap_duration_ms: int = DOUBLE_TAP_ZOOM_DURATION_MS
        self._min_scale: float = 1.0
        self._max_scale: float = DEFAULT_MAX_SCALE_MULTIPLIER
        self._max_scale_multiplier: float = DEFAULT_MAX_SCALE_MULTIPLIER
        self._pointers: tuple[Point, ...] = ()
        self._mid_x: float = 0.0
        self._mid_y: float = 0.0

    # ------------------------------------------------------------------
    # Policy
    # ------------------------------------------------------------------
    def is_scale_enabled(self) -> bool:
        return self._scale_enabled

    def set_scale_enabled(self, enabled: bool) -> None:
        self._scale_enabled = bool(enabled)

    def is_rotate_enabled(self) -> bool:
        return self._rotate_enabled

    def set_rotate_enabled(self, enabled: bool) -> None:
        self._rotate_enabled = bool(enabled)

    def double_tap_scale_steps(self) -> int:
        return self._double_tap_steps

    def set_double_tap_scale_steps(self, steps: int) -> None:
        if int(steps) < 1:
            raise ValueError(f"Double tap needs at least one step, got {steps}")
        self._double_tap_steps = int(steps)

    def set_double_tap_duration_ms(self, duration_ms: int) -> None:
        self._double_tap_duration_ms = max(0, int(duration_ms))

    def min_scale(self) -> float:
        return self._min_scale

    def max_scale(self) -> float:
        return self._max_scale

    def set_max_scale_multiplier(self, multiplier: float) -> None:
        self._max_scale_multiplier = float(multiplier)
        self._max_scale = self._min_scale * self._max_scale_multiplier

    def set_scale_bounds(self, min_scale: float, max_scale: float) -> None:
        if min_scale <= 0 or max_scale < min_scale:
            raise ValueError(f"Invalid scale bounds: [{min_scale}, {max_scale}]")
        self._min_scale = float(min_scale)
        self._max_scale = float(max_scale)

    def update_scale_bounds(self, crop_rect: QRectF, image_width: float, image_height: float) -> None:
        """Derive the bounds from the crop window and the displayed image size."""

        min_scale = compute_min_scale(crop_rect, image_width, image_height)
        self.set_scale_bounds(min_scale, min_scale * self._max_scale_multiplier)

    def double_tap_target_scale(self) -> float:
        """Return the scale reached by the next double tap.

        ``double_tap_scale_steps`` taps always span ``[min_scale, max_scale]``
        because each tap multiplies the scale by the same factor.
        """

        step = double_tap_step(self._min_scale, self._max_scale, self._double_tap_steps)
        return self._transform.current_scale() * step

    def pivot(self) -> QPointF:
        return QPointF(self._mid_x, self._mid_y)

    # ------------------------------------------------------------------
    # Touch lifecycle
    # ------------------------------------------------------------------
    def touch_down(self, points: Sequence[Point]) -> bool:
        first_touch = not self._pointers
        self._track(points)
        if first_touch:
            self.cancel_animations()
            if self._on_gesture_started is not None:
                self._on_gesture_started()
        return True

    def touch_move(self, points: Sequence[Point]) -> bool:
        self._track(points)
        return True

    def touch_up(self, remaining: Sequence[Point] = ()) -> bool:
        self._track(remaining)
        if not self._pointers and self._on_gesture_ended is not None:
            self._on_gesture_ended()
        return True

    def cancel_animations(self) -> None:
        if self._animator is not None:
            self._animator.stop_animation()

    # ------------------------------------------------------------------
    # Gestures
    # ------------------------------------------------------------------
    def pan(self, dx: float, dy: float) -> bool:
        self._transform.translate(dx, dy)
        return True

    def pinch(self, factor: float) -> bool:
        if self._scale_enabled:
            self._transform.scale_about(factor, self._mid_x, self._mid_y)
        return True

    def rotate(self, delta_degrees: float) -> bool:
        if self._rotate_enabled:
            self._transform.rotate_about(delta_degrees, self._mid_x, self._mid_y)
        return True

    def double_tap(self, x: float, y: float) -> bool:
        self.zoom_image_to_position(
            self.double_tap_target_scale(), x, y, self._double_tap_duration_ms
        )
        return True

    # ------------------------------------------------------------------
    # Zoom helpers
    # ------------------------------------------------------------------
    def zoom_in_image(self, target_scale: float, px: float, py: float) -> None:
        """Scale to *target_scale* about ``(px, py)`` unless it exceeds ``max_scale``."""

        if target_scale <= self._max_scale:
            self._transform.scale_about(target_scale / self._transform.current_scale(), px, py)

    def zoom_out_image(self, target_scale: float, px: float, py: float) -> None:
        """Scale to *target_scale* about ``(px, py)`` unless it drops below ``min_scale``."""

        if target_scale >= self._min_scale:
            self._transform.scale_about(target_scale / self._transform.current_scale(), px, py)

    def zoom_image_to_position(self, scale: float, px: float, py: float, duration_ms: int) -> None:
        """Animate the scale towards *scale* (clamped to ``max_scale``) about a fixed point."""

        target = min(scale, self._max_scale)
        start = self._transform.current_scale()
        _LOGGER.debug("Zooming from %.4f to %.4f about (%.1f, %.1f)", start, target, px, py)
        if self._animator is None or duration_ms <= 0:
            self.zoom_in_image(target, px, py)
            return
        pivot = QPointF(px, py)
        self._animator.start_animation(start, target, pivot, pivot, duration_ms / 1000.0)

    def apply_animation_frame(self, scale: float, center: QPointF) -> None:
        """Frame callback for :class:`ZoomAnimator`."""

        self.zoom_in_image(scale, center.x(), center.y())

    # ------------------------------------------------------------------
    # Internal utilities
    # ------------------------------------------------------------------
    def _track(self, points: Sequence[Point]) -> None:
        self._pointers = tuple((float(x), float(y)) for x, y in points)
        if len(self._pointers) > 1:
            (x0, y0), (x1, y1) = self._pointers[0], self._pointers[1]
            self._mid_x = (x0 + x1) / 2.0
            self._mid_y = (y0 + y1) / 2.0


__all__ = [
    "GestureTransformController",
    "compute_min_scale",
    "double_tap_step",
]
