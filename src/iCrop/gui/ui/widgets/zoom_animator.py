"""
Timer-driven zoom animation for the crop view.

The animator only interpolates a ``(scale, pivot)`` pair; applying the
frames to the transform is left to the caller.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from PySide6.QtCore import QObject, QPointF, QTimer

from ....config import ANIMATION_FRAME_INTERVAL_MS


def ease_out_cubic(t: float) -> float:
    t = max(0.0, min(1.0, t))
    return 1.0 - (1.0 - t) ** 3


def _lerp(start: float, end: float, amount: float) -> float:
    return start + (end - start) * amount


@dataclass(frozen=True)
class _ZoomSpan:
    start_scale: float
    target_scale: float
    start_center: QPointF
    target_center: QPointF
    started_at: float
    duration: float

    def progress(self, now: float) -> float:
        if self.duration <= 0:
            return 1.0
        return (now - self.started_at) / self.duration

    def frame(self, eased: float) -> tuple[float, QPointF]:
        return (
            _lerp(self.start_scale, self.target_scale, eased),
            QPointF(
                _lerp(self.start_center.x(), self.target_center.x(), eased),
                _lerp(self.start_center.y(), self.target_center.y(), eased),
            ),
        )


class ZoomAnimator:
    """Emit eased zoom frames on a ~60 fps timer until the target is reached.

    Parameters
    ----------
    on_animation_frame:
        Receives ``(scale, center)`` for every frame, the last one being the
        exact target.
    on_animation_complete:
        Called once after the final frame.  Not called for stopped animations.
    timer_parent:
        Parent QObject for the frame timer (optional).
    clock:
        Monotonic time source in seconds.
    """

    def __init__(
        self,
        *,
        on_animation_frame: Callable[[float, QPointF], None],
        on_animation_complete: Callable[[], None] | None = None,
        timer_parent: QObject | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._on_animation_frame = on_animation_frame
        self._on_animation_complete = on_animation_complete
        self._clock = clock
        self._span: _ZoomSpan | None = None

        self._frame_timer = QTimer(timer_parent)
        self._frame_timer.setInterval(ANIMATION_FRAME_INTERVAL_MS)
        self._frame_timer.timeout.connect(self._handle_anim_tick)

    def is_animating(self) -> bool:
        return self._span is not None

    def stop_animation(self) -> None:
        """Drop the running animation without emitting further frames."""

        self._span = None
        self._frame_timer.stop()

    def start_animation(
        self,
        start_scale: float,
        target_scale: float,
        start_center: QPointF,
        target_center: QPointF,
        duration: float = 0.2,
    ) -> None:
        """Replace any running animation with a new one lasting *duration* seconds."""

        self._span = _ZoomSpan(
            start_scale=float(start_scale),
            target_scale=float(target_scale),
            start_center=QPointF(start_center),
            target_center=QPointF(target_center),
            started_at=self._clock(),
            duration=max(0.0, float(duration)),
        )
        self._frame_timer.start()

    def _handle_anim_tick(self) -> None:
        span = self._span
        if span is None:
            self._frame_timer.stop()
            return

        progress = span.progress(self._clock())
        if progress < 1.0:
            self._on_animation_frame(*span.frame(ease_out_cubic(progress)))
            return

        self.stop_animation()
        self._on_animation_frame(span.target_scale, QPointF(span.target_center))
        if self._on_animation_complete is not None:
            self._on_animation_complete()


__all__ = ["ZoomAnimator", "ease_out_cubic"]
