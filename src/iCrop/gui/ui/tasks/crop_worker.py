"""Worker that resolves and writes a crop off the UI thread."""

from __future__ import annotations

import logging

from PySide6.QtCore import QObject, QRunnable, Signal

from ....core.crop_executor import CropExecutor, CropResult
from ....models.crop import CropParameters, DisplayedImage, ImageState

_LOGGER = logging.getLogger(__name__)


class CropWorkerSignals(QObject):
    """Signals emitted by :class:`CropWorker`."""

    finished = Signal(object)
    """Emitted with the :class:`CropResult`, successful or not."""


class CropWorker(QRunnable):
    """Run one crop request from an immutable view snapshot.

    The worker only ever sees the snapshot taken when the request was made,
    so gestures that continue on the GUI thread cannot affect the output.
    """

    def __init__(
        self,
        executor: CropExecutor,
        displayed: DisplayedImage,
        state: ImageState,
        params: CropParameters,
    ) -> None:
        super().__init__()
        self._executor = executor
        self._displayed = displayed
        self._state = state
        self._params = params
        self.signals = CropWorkerSignals()

    @property
    def params(self) -> CropParameters:
        return self._params

    def run(self) -> None:  # type: ignore[override]
        try:
            result = self._executor.run(self._displayed, self._state, self._params)
        except Exception as exc:  # pragma: no cover - the executor reports its own errors
            _LOGGER.exception("Unexpected error while cropping %s", self._params.input_path)
            result = CropResult.failure(exc)
        self.signals.finished.emit(result)


__all__ = ["CropWorker", "CropWorkerSignals"]
