"""Settings file management with validation and change notifications."""

from __future__ import annotations

import os
import sys
from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from jsonschema import ValidationError
from PySide6.QtCore import QObject, Signal

from ..errors import SettingsLoadError, SettingsValidationError
from ..models.crop import CompressFormat
from ..utils.jsonio import read_json, write_json
from .schema import DEFAULT_SETTINGS, merge_with_defaults


def default_settings_path() -> Path:
    """Return the default settings.json location for the current platform."""

    if os.name == "nt":
        base = os.environ.get("APPDATA")
        if base:
            return Path(base) / "iCrop" / "settings.json"
        return Path.home() / "AppData" / "Roaming" / "iCrop" / "settings.json"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "iCrop" / "settings.json"
    base = os.environ.get("XDG_CONFIG_HOME")
    if base:
        return Path(base) / "iCrop" / "settings.json"
    return Path.home() / ".config" / "iCrop" / "settings.json"


@dataclass(frozen=True)
class CropOptions:
    """Typed view over the ``gestures`` and ``output`` settings sections."""

    scale_enabled: bool
    rotate_enabled: bool
    double_tap_scale_steps: int
    double_tap_duration_ms: int
    max_scale_multiplier: float
    output_format: CompressFormat
    output_quality: int
    max_output_width: int
    max_output_height: int
    max_bitmap_size: int


class SettingsManager(QObject):
    """Load, validate and persist the user's crop settings."""

    settingsChanged = Signal(str, object)

    def __init__(self, path: Path | None = None) -> None:
        super().__init__()
        self._path = path
        self._data: dict[str, Any] = deepcopy(DEFAULT_SETTINGS)

    @property
    def path(self) -> Path:
        return self._path or default_settings_path()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def load(self) -> None:
        """Load the settings JSON from disk, creating defaults if missing."""

        path = self.path
        self._path = path
        if path.exists():
            try:
                payload = read_json(path)
            except (OSError, ValueError) as exc:
                raise SettingsLoadError(f"Could not read {path}: {exc}") from exc
            if not isinstance(payload, dict):
                raise SettingsLoadError(f"{path} does not contain a JSON object")
        else:
            payload = None
        try:
            self._data = merge_with_defaults(payload)
        except ValidationError as exc:
            raise SettingsValidationError(exc.message) from exc
        self._write()

    def get(self, key: str, default: Any | None = None) -> Any:
        """Return the value for *key*, supporting dotted access for nested keys."""

        target = self._data
        parts = key.split(".")
        for index, part in enumerate(parts):
            if not isinstance(target, dict) or part not in target:
                return default
            value = target[part]
            if index == len(parts) - 1:
                return value
            target = value
        return default

    def set(self, key: str, value: Any) -> None:
        """Update *key* with *value* and persist the change.

        The stored settings are left untouched when the new value fails
        validation.
        """

        if isinstance(value, Path):
            value = str(value)
        elif isinstance(value, CompressFormat):
            value = value.name

        candidate = deepcopy(self._data)
        parts = key.split(".")
        target: dict[str, Any] = candidate
        for part in parts[:-1]:
            branch = target.get(part)
            if not isinstance(branch, dict):
                branch = {}
                target[part] = branch
            target = branch
        target[parts[-1]] = value
        try:
            self._data = merge_with_defaults(candidate)
        except ValidationError as exc:
            raise SettingsValidationError(f"Invalid value for {key!r}: {exc.message}") from exc
        self._write()
        self.settingsChanged.emit(key, value)

    def crop_options(self) -> CropOptions:
        gestures = self._data["gestures"]
        output = self._data["output"]
        return CropOptions(
            scale_enabled=bool(gestures["scale_enabled"]),
            rotate_enabled=bool(gestures["rotate_enabled"]),
            double_tap_scale_steps=int(gestures["double_tap_scale_steps"]),
            double_tap_duration_ms=int(gestures["double_tap_duration_ms"]),
            max_scale_multiplier=float(gestures["max_scale_multiplier"]),
            output_format=CompressFormat.parse(output["format"]),
            output_quality=int(output["quality"]),
            max_output_width=int(output["max_width"]),
            max_output_height=int(output["max_height"]),
            max_bitmap_size=int(output["max_bitmap_size"]),
        )

    # ------------------------------------------------------------------
    # Internal utilities
    # ------------------------------------------------------------------
    def _write(self) -> None:
        path = self.path
        self._path = path
        path.parent.mkdir(parents=True, exist_ok=True)
        write_json(path, self._data)


__all__ = ["CropOptions", "SettingsManager", "default_settings_path"]
