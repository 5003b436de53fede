"""Default configuration values for iCrop."""

from __future__ import annotations

from typing import Final

# ---------------------------------------------------------------------------
# Gesture interaction constants
# ---------------------------------------------------------------------------

# Number of consecutive double taps needed to travel from the minimum to the
# maximum zoom level.  The step is geometric so every tap multiplies the
# current scale by the same factor.
DOUBLE_TAP_SCALE_STEPS: Final[int] = 5
DOUBLE_TAP_ZOOM_DURATION_MS: Final[int] = 200

# ``max_scale`` is derived from the fit-to-crop scale using this multiplier.
DEFAULT_MAX_SCALE_MULTIPLIER: Final[float] = 10.0

# Frame interval used by the zoom animator timer (~60 fps).
ANIMATION_FRAME_INTERVAL_MS: Final[int] = 16

# ---------------------------------------------------------------------------
# Crop output constants
# ---------------------------------------------------------------------------

# One pixel of slack is granted for every ``PIXEL_ERROR_STEP`` pixels of crop
# dimension when deciding whether the source already matches the framed
# region.
PIXEL_ERROR_BASE: Final[int] = 1
PIXEL_ERROR_STEP: Final[float] = 1000.0

DEFAULT_COMPRESS_FORMAT: Final[str] = "JPEG"
DEFAULT_COMPRESS_QUALITY: Final[int] = 90

# Longest side used when decoding the on-screen bitmap.  The view may lower
# it further based on the screen diagonal (see ``calculate_max_bitmap_size``).
DEFAULT_MAX_BITMAP_SIZE: Final[int] = 4096

