"""Affine transform state for an image displayed behind a fixed crop window.

The :class:`QTransform` held by :class:`AffineTransformState` is the only
source of truth.  Scale, angle and the mapped corner/center points are
derived from it after every mutation and can never be assigned directly.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from PySide6.QtCore import QPointF, QRectF
from PySide6.QtGui import QTransform

_LOGGER = logging.getLogger(__name__)

Point = tuple[float, float]


# ---------------------------------------------------------------------------
# Rect helpers
# ---------------------------------------------------------------------------
def corners_from_rect(rect: QRectF) -> tuple[Point, Point, Point, Point]:
    """Return the corners of *rect* clockwise from the top-left corner."""

    return (
        (rect.left(), rect.top()),
        (rect.right(), rect.top()),
        (rect.right(), rect.bottom()),
        (rect.left(), rect.bottom()),
    )


def center_from_rect(rect: QRectF) -> Point:
    return (rect.center().x(), rect.center().y())


def trap_to_rect(points: Sequence[Point]) -> QRectF:
    """Return the axis-aligned bounding rect of an arbitrary quadrilateral."""

    if not points:
        return QRectF()
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    left, right = min(xs), max(xs)
    top, bottom = min(ys), max(ys)
    return QRectF(left, top, right - left, bottom - top)


# ---------------------------------------------------------------------------
# Matrix derivations
# ---------------------------------------------------------------------------
def matrix_scale(matrix: QTransform) -> float:
    """Return the uniform scale encoded in *matrix*."""

    return math.sqrt(matrix.m11() ** 2 + matrix.m21() ** 2)


def matrix_angle(matrix: QTransform) -> float:
    """Return the rotation encoded in *matrix* in degrees."""

    return -math.degrees(math.atan2(matrix.m21(), matrix.m11()))


def compute_min_scale(crop_rect: QRectF, image_width: float, image_height: float) -> float:
    """Return the smallest scale at which the image still covers *crop_rect*."""

    if image_width <= 0 or image_height <= 0:
        return 1.0
    return max(crop_rect.width() / float(image_width), crop_rect.height() / float(image_height))


def cover_matrix(crop_rect: QRectF, image_width: float, image_height: float) -> QTransform:
    """Return the matrix that fits the image to cover *crop_rect*, centred on it."""

    scale = compute_min_scale(crop_rect, image_width, image_height)
    center = crop_rect.center()
    return QTransform.fromScale(scale, scale) * QTransform.fromTranslate(
        center.x() - image_width * scale / 2.0,
        center.y() - image_height * scale / 2.0,
    )


def _map_points(matrix: QTransform, points: Sequence[Point]) -> tuple[Point, ...]:
    mapped = []
    for x, y in points:
        result = matrix.map(QPointF(x, y))
        mapped.append((result.x(), result.y()))
    return tuple(mapped)


def _pivoted(transform: QTransform, px: float, py: float) -> QTransform:
    # Row-vector convention: move the pivot to the origin, apply, move back.
    return QTransform.fromTranslate(-px, -py) * transform * QTransform.fromTranslate(px, py)


@dataclass(frozen=True)
class TransformSnapshot:
    """Immutable view of the transform at a single moment."""

    values: tuple[float, ...]
    scale: float
    angle: float
    corners: tuple[Point, ...]
    center: Point | None

    def to_qtransform(self) -> QTransform:
        return QTransform(*self.values)

    def image_rect(self) -> QRectF:
        return trap_to_rect(self.corners)


class AffineTransformState:
    """Track how the displayed image is translated, scaled and rotated.

    Parameters
    ----------
    on_scale_changed:
        Called with the new scale after a mutation changed it.
    on_angle_changed:
        Called with the new angle after a mutation changed it.
    """

    def __init__(
        self,
        *,
        on_scale_changed: Callable[[float], None] | None = None,
        on_angle_changed: Callable[[float], None] | None = None,
    ) -> None:
        self._on_scale_changed = on_scale_changed
        self._on_angle_changed = on_angle_changed
        self._matrix = QTransform()
        self._initial_corners: tuple[Point, ...] = ()
        self._initial_center: Point | None = None
        self._corners: tuple[Point, ...] = ()
        self._center: Point | None = None

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------
    def set_image_bounds(self, width: float, height: float) -> None:
        """Record the intrinsic size of the displayed image."""

        rect = QRectF(0.0, 0.0, float(width), float(height))
        self._initial_corners = corners_from_rect(rect)
        self._initial_center = center_from_rect(rect)
        _LOGGER.debug("Image size: [%d:%d]", int(width), int(height))
        self._update_points()

    def is_laid_out(self) -> bool:
        return bool(self._initial_corners)

    def set_matrix(self, matrix: QTransform) -> None:
        """Replace the whole transform, e.g. when fitting a freshly loaded image."""

        self._matrix = QTransform(matrix)
        self._update_points()

    def reset(self) -> None:
        self.set_matrix(QTransform())

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------
    def translate(self, dx: float, dy: float) -> None:
        if dx == 0 and dy == 0:
            return
        scale_before = self.current_scale()
        angle_before = self.current_angle()
        self._matrix = self._matrix * QTransform.fromTranslate(dx, dy)
        self._update_points()
        scale_after = self.current_scale()
        angle_after = self.current_angle()
        if scale_after != scale_before and self._on_scale_changed is not None:
            self._on_scale_changed(scale_after)
        if angle_after != angle_before and self._on_angle_changed is not None:
            self._on_angle_changed(angle_after)

    def scale_about(self, factor: float, px: float, py: float) -> None:
        """Scale uniformly about the viewport point ``(px, py)``."""

        if factor == 0:
            return
        self._matrix = self._matrix * _pivoted(QTransform.fromScale(factor, factor), px, py)
        self._update_points()
        if self._on_scale_changed is not None:
            self._on_scale_changed(self.current_scale())

    def rotate_about(self, degrees: float, px: float, py: float) -> None:
        """Rotate by *degrees* about the viewport point ``(px, py)``."""

        if degrees == 0:
            return
        self._matrix = self._matrix * _pivoted(QTransform().rotate(degrees), px, py)
        self._update_points()
        if self._on_angle_changed is not None:
            self._on_angle_changed(self.current_angle())

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------
    def matrix(self) -> QTransform:
        """Return a copy of the current matrix."""

        return QTransform(self._matrix)

    def current_scale(self) -> float:
        return matrix_scale(self._matrix)

    def current_angle(self) -> float:
        return matrix_angle(self._matrix)

    def corners(self) -> tuple[Point, ...]:
        return self._corners

    def center(self) -> Point | None:
        return self._center

    def current_image_rect(self) -> QRectF:
        """Return the bounding rect of the transformed image in viewport space."""

        return trap_to_rect(self._corners)

    def map_point(self, x: float, y: float) -> Point:
        result = self._matrix.map(QPointF(x, y))
        return (result.x(), result.y())

    def snapshot(self) -> TransformSnapshot:
        m = self._matrix
        return TransformSnapshot(
            values=(
                m.m11(), m.m12(), m.m13(),
                m.m21(), m.m22(), m.m23(),
                m.m31(), m.m32(), m.m33(),
            ),
            scale=self.current_scale(),
            angle=self.current_angle(),
            corners=self._corners,
            center=self._center,
        )

    def log_matrix(self, prefix: str) -> None:
        _LOGGER.debug(
            "%s: matrix: { x: %s, y: %s, scale: %s, angle: %s }",
            prefix,
            self._matrix.dx(),
            self._matrix.dy(),
            self.current_scale(),
            self.current_angle(),
        )

    # ------------------------------------------------------------------
    # Internal utilities
    # ------------------------------------------------------------------
    def _update_points(self) -> None:
        self._corners = _map_points(self._matrix, self._initial_corners)
        if self._initial_center is None:
            self._center = None
        else:
            self._center = _map_points(self._matrix, (self._initial_center,))[0]


__all__ = [
    "AffineTransformState",
    "TransformSnapshot",
    "center_from_rect",
    "compute_min_scale",
    "corners_from_rect",
    "cover_matrix",
    "matrix_angle",
    "matrix_scale",
    "trap_to_rect",
]
