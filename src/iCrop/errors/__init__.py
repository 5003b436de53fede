"""Custom exception hierarchy for iCrop."""

from __future__ import annotations


class ICropError(Exception):
    """Base class for all custom errors raised by iCrop."""


# --- 3-layer hierarchy ---

class DomainError(ICropError):
    """Base class for domain-level errors."""


class InfrastructureError(ICropError):
    """Base class for infrastructure-level errors."""


class ApplicationError(ICropError):
    """Base class for application-level errors."""


# --- Domain errors ---

class PreconditionViolation(DomainError):
    """Raised when a crop is requested before the view was laid out.

    Covers a missing or released display bitmap, an empty current image
    rectangle and crop parameters the session cannot accept.  No output is
    written when this is raised.
    """


# --- Infrastructure errors ---

class DecodeFailure(InfrastructureError):
    """Raised when the source image cannot be read or decoded."""


class CropPrimitiveFailure(InfrastructureError):
    """Raised when pixel extraction fails; any partial output is invalid."""


class MetadataCopyFailure(InfrastructureError):
    """Raised when EXIF copy-through fails after a successful crop."""


class ExternalToolError(InfrastructureError):
    """Raised when an external tool such as exiftool fails."""


# --- Application errors ---

class CropInProgressError(ApplicationError):
    """Raised when a crop is requested while another one is still running."""


# --- Settings errors ---

class SettingsError(ICropError):
    """Base class for settings related failures."""


class SettingsLoadError(SettingsError):
    """Raised when the settings file cannot be parsed or loaded."""


class SettingsValidationError(SettingsError):
    """Raised when settings data fails schema validation."""
