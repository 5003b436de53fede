from dataclasses import dataclass

from .bus import Event


@dataclass(kw_only=True)
class CropSucceededEvent(Event):
    output_path: str = ""
    offset_x: int = 0
    offset_y: int = 0
    width: int = 0
    height: int = 0
    cropped: bool = True


@dataclass(kw_only=True)
class CropFailedEvent(Event):
    input_path: str = ""
    error: Exception | None = None
