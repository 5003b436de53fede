"""Background tasks used by the crop view."""

from .bitmap_load_worker import BitmapLoadWorker, BitmapLoadWorkerSignals
from .crop_worker import CropWorker, CropWorkerSignals

__all__ = [
    "BitmapLoadWorker",
    "BitmapLoadWorkerSignals",
    "CropWorker",
    "CropWorkerSignals",
]
