"""Schema helpers for the crop settings file."""

from __future__ import annotations

from copy import deepcopy
from typing import Any

from jsonschema import Draft202012Validator

from ..config import (
    DEFAULT_COMPRESS_FORMAT,
    DEFAULT_COMPRESS_QUALITY,
    DEFAULT_MAX_BITMAP_SIZE,
    DEFAULT_MAX_SCALE_MULTIPLIER,
    DOUBLE_TAP_SCALE_STEPS,
    DOUBLE_TAP_ZOOM_DURATION_MS,
)

SETTINGS_SCHEMA: dict[str, Any] = {
    "$id": "iCrop/settings.schema.json",
    "type": "object",
    "required": ["schema", "gestures", "output"],
    "properties": {
        "schema": {"const": "iCrop/settings@1"},
        "gestures": {
            "type": "object",
            "properties": {
                "scale_enabled": {"type": "boolean"},
                "rotate_enabled": {"type": "boolean"},
                "double_tap_scale_steps": {"type": "integer", "minimum": 1},
                "double_tap_duration_ms": {"type": "integer", "minimum": 0},
                "max_scale_multiplier": {"type": "number", "exclusiveMinimum": 1},
            },
            "additionalProperties": True,
        },
        "output": {
            "type": "object",
            "properties": {
                "format": {"type": "string", "enum": ["JPEG", "PNG", "WEBP"]},
                "quality": {"type": "integer", "minimum": 0, "maximum": 100},
                "max_width": {"type": "integer", "minimum": 0},
                "max_height": {"type": "integer", "minimum": 0},
                "max_bitmap_size": {"type": "integer", "minimum": 1},
            },
            "additionalProperties": True,
        },
        "last_output_directory": {"type": ["string", "null"]},
    },
    "additionalProperties": True,
}

DEFAULT_SETTINGS: dict[str, Any] = {
    "schema": "iCrop/settings@1",
    "gestures": {
        "scale_enabled": True,
        "rotate_enabled": True,
        "double_tap_scale_steps": DOUBLE_TAP_SCALE_STEPS,
        "double_tap_duration_ms": DOUBLE_TAP_ZOOM_DURATION_MS,
        "max_scale_multiplier": DEFAULT_MAX_SCALE_MULTIPLIER,
    },
    "output": {
        "format": DEFAULT_COMPRESS_FORMAT,
        "quality": DEFAULT_COMPRESS_QUALITY,
        "max_width": 0,
        "max_height": 0,
        "max_bitmap_size": DEFAULT_MAX_BITMAP_SIZE,
    },
    "last_output_directory": None,
}

_SECTIONS = ("gestures", "output")

_validator = Draft202012Validator(SETTINGS_SCHEMA)


def merge_with_defaults(data: dict[str, Any] | None) -> dict[str, Any]:
    """Merge *data* with :data:`DEFAULT_SETTINGS` and validate the result."""

    merged = deepcopy(DEFAULT_SETTINGS)
    if data:
        for key, value in data.items():
            if key in _SECTIONS:
                # Non-object sections fall back to the defaults.
                if isinstance(value, dict):
                    merged[key].update(value)
                continue
            merged[key] = value
    _validator.validate(merged)
    return merged


def validate_settings(data: dict[str, Any]) -> None:
    """Validate *data* against the settings schema."""

    _validator.validate(data)


__all__ = ["DEFAULT_SETTINGS", "SETTINGS_SCHEMA", "merge_with_defaults", "validate_settings"]
