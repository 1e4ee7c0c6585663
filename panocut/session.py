"""Session state for one image being sliced with changing settings."""

import logging
import threading
from typing import Callable, Optional

import numpy as np

from .config import default_slice_config, settings
from .export import generate_base_name
from .schemas import SliceConfig
from .slicer import SliceResult
from .surfaces import SurfaceProvider
from .throttle import throttle_with_debounce
from .worker import SliceMessage, SliceWorker

logger = logging.getLogger(__name__)


class SlicingSession:
    """
    Current image, configuration and latest result for one user.

    Each new image or configuration supersedes the previous request; the
    previous result is released once a newer one arrives.
    """

    def __init__(
        self,
        config: Optional[SliceConfig] = None,
        provider: Optional[SurfaceProvider] = None,
        on_update: Optional[Callable[["SlicingSession"], None]] = None,
        interval_ms: Optional[float] = None,
        max_workers: Optional[int] = None,
    ):
        self.config = config if config is not None else default_slice_config()
        self.on_update = on_update
        self.image: Optional[np.ndarray] = None
        self.filename: Optional[str] = None
        self.result: Optional[SliceResult] = None
        self.error: Optional[str] = None
        self._current_id: Optional[int] = None
        self._lock = threading.Lock()
        self._worker = SliceWorker(
            self._handle_message,
            provider=provider,
            max_workers=max_workers or settings.worker_threads,
        )
        if interval_ms is None:
            interval_ms = settings.reprocess_interval_ms
        self._schedule = throttle_with_debounce(self.process, interval_ms)

    @property
    def busy(self) -> bool:
        return self._worker.busy

    @property
    def base_name(self) -> str:
        if not self.filename:
            return "slide"
        return generate_base_name(self.filename)

    def load_image(self, image: np.ndarray, filename: str) -> Optional[int]:
        """Replace the current image and slice it right away."""
        self.image = image
        self.filename = filename
        return self.process()

    def update_config(self, config: SliceConfig) -> None:
        """Apply new settings; reprocessing is throttled."""
        self.config = config
        if self.image is not None:
            self._schedule()

    def process(self) -> Optional[int]:
        """Submit the current image and config; returns the request id."""
        if self.image is None:
            return None
        with self._lock:
            request_id = self._worker.submit(self.image, self.config)
            self._current_id = request_id
        logger.debug(f"Submitted slicing request {request_id} for {self.filename}")
        return request_id

    def _handle_message(self, message: SliceMessage) -> None:
        with self._lock:
            if message.request_id != self._current_id:
                if message.result is not None:
                    message.result.release()
                return
            if message.success:
                previous, self.result = self.result, message.result
                self.error = None
                if previous is not None:
                    previous.release()
            else:
                self.error = message.error
        if self.on_update is not None:
            self.on_update(self)

    def wait(self, timeout: Optional[float] = None) -> None:
        self._worker.wait(timeout)

    def reset(self) -> None:
        """Forget the current image and its result."""
        with self._lock:
            self._current_id = None
            self.image = None
            self.filename = None
            self.error = None
            if self.result is not None:
                self.result.release()
            self.result = None

    def close(self) -> None:
        self._worker.shutdown()
