"""Reduce the on-screen crop framing to pixel-space crop parameters.

Three coordinate spaces meet here:

* viewport pixels, where ``ImageState`` rects live;
* displayed-bitmap pixels, which are possibly downsampled for the screen;
* stored source pixels, which may still need EXIF rotation.

The transform scale is re-based from the displayed bitmap onto the source
file and then, when an output bound is configured, onto the bounded output.
Both steps are :class:`ScaleStage` entries applied strictly in pipeline
order.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass

from ..config import PIXEL_ERROR_BASE, PIXEL_ERROR_STEP
from ..errors import PreconditionViolation
from ..models.crop import (
    CropParameters,
    DisplayedImage,
    ImageState,
    ResolvedCrop,
    ScaleStage,
    SourceDimensions,
)
from ..utils.image_loader import probe_source_dimensions

_LOGGER = logging.getLogger(__name__)

DISPLAY_TO_SOURCE = "display_to_source"
SOURCE_TO_OUTPUT = "source_to_output"


def round_half_up(value: float) -> int:
    """Round half-way cases towards positive infinity."""

    return int(math.floor(value + 0.5))


def pixel_error_tolerance(width: int, height: int) -> int:
    """Return the allowed edge mismatch: 1px plus 1px per 1000px of crop."""

    return PIXEL_ERROR_BASE + round_half_up(max(width, height) / PIXEL_ERROR_STEP)


@dataclass(frozen=True)
class _StageContext:
    state: ImageState
    params: CropParameters
    source: SourceDimensions
    displayed: DisplayedImage


def _display_to_source_stage(context: _StageContext, current_scale: float) -> ScaleStage | None:
    """Ratio between the stored source and the displayed (downsampled) bitmap."""

    swap_sides = context.params.exif_info.swaps_sides
    source_w = context.source.height if swap_sides else context.source.width
    source_h = context.source.width if swap_sides else context.source.height
    scale_x = source_w / float(context.displayed.width)
    scale_y = source_h / float(context.displayed.height)
    return ScaleStage(DISPLAY_TO_SOURCE, min(scale_x, scale_y))


def _source_to_output_stage(context: _StageContext, current_scale: float) -> ScaleStage | None:
    """Extra downscale needed to respect the configured output bound."""

    params = context.params
    if not params.has_output_bound:
        return None
    crop_width = context.state.crop_rect.width() / current_scale
    crop_height = context.state.crop_rect.height() / current_scale
    if crop_width <= params.max_output_width and crop_height <= params.max_output_height:
        return None
    return ScaleStage(
        SOURCE_TO_OUTPUT,
        min(params.max_output_width / crop_width, params.max_output_height / crop_height),
    )


# Order matters: the output bound is measured in source pixels, so the
# display-to-source stage must run first.
SCALE_PIPELINE: tuple[Callable[[_StageContext, float], ScaleStage | None], ...] = (
    _display_to_source_stage,
    _source_to_output_stage,
)


def apply_scale_pipeline(scale: float, stages: tuple[ScaleStage, ...]) -> float:
    """Divide *scale* by every stage factor in order."""

    for stage in stages:
        scale /= stage.factor
    return scale


def build_scale_pipeline(
    state: ImageState,
    params: CropParameters,
    source: SourceDimensions,
    displayed: DisplayedImage,
) -> tuple[ScaleStage, ...]:
    """Return the stages that apply to this crop, in application order.

    Each stage sees the scale already re-based by the stages before it.
    """

    context = _StageContext(state=state, params=params, source=source, displayed=displayed)
    stages: list[ScaleStage] = []
    current_scale = state.current_scale
    for build_stage in SCALE_PIPELINE:
        stage = build_stage(context, current_scale)
        if stage is None:
            continue
        stages.append(stage)
        current_scale = apply_scale_pipeline(current_scale, (stage,))
    return tuple(stages)


def _check_preconditions(displayed: DisplayedImage | None, state: ImageState) -> DisplayedImage:
    if displayed is None:
        raise PreconditionViolation("Displayed bitmap is missing")
    if displayed.released:
        raise PreconditionViolation("Displayed bitmap has been released")
    if displayed.width <= 0 or displayed.height <= 0:
        raise PreconditionViolation("Displayed bitmap has no pixels")
    if state.current_image_rect.isEmpty():
        raise PreconditionViolation("Current image rect is empty")
    if state.current_scale <= 0:
        raise PreconditionViolation("Current scale must be positive")
    return displayed


class CropGeometryResolver:
    """Compute the :class:`ResolvedCrop` for a view snapshot.

    Parameters
    ----------
    dimension_probe:
        Callable returning the stored pixel size for a source path.  It must
        not decode pixel data.  Defaults to a Pillow header probe.
    """

    def __init__(
        self,
        dimension_probe: Callable[[str], SourceDimensions] | None = None,
    ) -> None:
        self._probe = dimension_probe or probe_source_dimensions

    def resolve(
        self,
        displayed: DisplayedImage | None,
        state: ImageState,
        params: CropParameters,
    ) -> ResolvedCrop:
        displayed = _check_preconditions(displayed, state)
        source = self._probe(params.input_path)
        stages = build_scale_pipeline(state, params, source, displayed)
        current_scale = apply_scale_pipeline(state.current_scale, stages)

        resize_base = stages[0].factor
        resize_scale = 1.0
        for stage in stages:
            if stage.name == SOURCE_TO_OUTPUT:
                resize_scale = stage.factor

        crop_rect = state.crop_rect
        image_rect = state.current_image_rect
        offset_x = round_half_up((crop_rect.left() - image_rect.left()) / current_scale)
        offset_y = round_half_up((crop_rect.top() - image_rect.top()) / current_scale)
        width = round_half_up(crop_rect.width() / current_scale)
        height = round_half_up(crop_rect.height() / current_scale)

        needs_resize = params.has_output_bound
        needs_crop = self._needs_crop(state, width, height)
        should_crop = needs_resize or needs_crop
        _LOGGER.info("Should crop: %s", should_crop)

        return ResolvedCrop(
            offset_x=offset_x,
            offset_y=offset_y,
            width=width,
            height=height,
            resize_scale=resize_scale,
            should_crop=should_crop,
            needs_crop=needs_crop,
            needs_resize=needs_resize,
            current_scale=current_scale,
            resize_base=resize_base,
            angle=state.current_angle,
            stages=stages,
        )

    @staticmethod
    def _needs_crop(state: ImageState, width: int, height: int) -> bool:
        """Return True when the framed region differs from the whole image."""

        pixel_error = pixel_error_tolerance(width, height)
        crop_rect = state.crop_rect
        image_rect = state.current_image_rect
        return (
            abs(crop_rect.left() - image_rect.left()) > pixel_error
            or abs(crop_rect.top() - image_rect.top()) > pixel_error
            or abs(crop_rect.bottom() - image_rect.bottom()) > pixel_error
            or abs(crop_rect.right() - image_rect.right()) > pixel_error
            or state.current_angle != 0
        )


def resolve_crop(
    displayed: DisplayedImage | None,
    state: ImageState,
    params: CropParameters,
    *,
    dimension_probe: Callable[[str], SourceDimensions] | None = None,
) -> ResolvedCrop:
    """Shortcut for ``CropGeometryResolver(dimension_probe).resolve(...)``."""

    return CropGeometryResolver(dimension_probe).resolve(displayed, state, params)


__all__ = [
    "DISPLAY_TO_SOURCE",
    "SCALE_PIPELINE",
    "SOURCE_TO_OUTPUT",
    "CropGeometryResolver",
    "apply_scale_pipeline",
    "build_scale_pipeline",
    "pixel_error_tolerance",
    "resolve_crop",
    "round_half_up",
]
