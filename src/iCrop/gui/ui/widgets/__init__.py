"""Gesture handling for the crop view."""

from .gesture_controller import GestureTransformController, compute_min_scale
from .zoom_animator import ZoomAnimator, ease_out_cubic

__all__ = [
    "GestureTransformController",
    "ZoomAnimator",
    "compute_min_scale",
    "ease_out_cubic",
]
