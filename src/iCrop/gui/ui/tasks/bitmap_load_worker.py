"""Worker that decodes the display bitmap off the UI thread."""

from __future__ import annotations

import logging

from PySide6.QtCore import QObject, QRunnable, Signal

from ....errors import DecodeFailure
from ....utils import image_loader

_LOGGER = logging.getLogger(__name__)


class BitmapLoadWorkerSignals(QObject):
    """Signals exposed by :class:`BitmapLoadWorker`.

    The signal container is kept separate from the runnable itself so slots
    always execute on the GUI thread regardless of which pool thread picked
    up the job.
    """

    bitmapLoaded = Signal(int, object)
    """Emitted with ``(request_id, DecodedBitmap)``."""

    loadFailed = Signal(int, str, str)
    """Emitted with ``(request_id, path, message)`` when decoding fails."""


class BitmapLoadWorker(QRunnable):
    """Decode a source image, downsampled to ``max_bitmap_size``."""

    def __init__(
        self,
        source: str,
        output: str | None,
        max_bitmap_size: int,
        *,
        request_id: int = 0,
    ) -> None:
        super().__init__()
        self._source = source
        self._output = output
        self._max_bitmap_size = max_bitmap_size
        self._request_id = request_id
        self.signals = BitmapLoadWorkerSignals()

    @property
    def source(self) -> str:
        return self._source

    @property
    def request_id(self) -> int:
        return self._request_id

    def run(self) -> None:  # type: ignore[override]
        """Execute the file I/O and decoding work on a background thread."""

        try:
            decoded = image_loader.decode_bitmap(
                self._source,
                self._max_bitmap_size,
                self._max_bitmap_size,
                output_path=self._output,
            )
        except DecodeFailure as exc:
            self.signals.loadFailed.emit(self._request_id, self._source, str(exc))
            return
        except Exception as exc:  # pragma: no cover - best effort propagation
            _LOGGER.exception("Unexpected error while decoding %s", self._source)
            self.signals.loadFailed.emit(self._request_id, self._source, str(exc))
            return

        self.signals.bitmapLoaded.emit(self._request_id, decoded)


__all__ = ["BitmapLoadWorker", "BitmapLoadWorkerSignals"]
