from .bus import Event, EventBus, Subscription
from .crop_events import CropFailedEvent, CropSucceededEvent

__all__ = [
    "CropFailedEvent",
    "CropSucceededEvent",
    "Event",
    "EventBus",
    "Subscription",
]
