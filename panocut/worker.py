"""Background slicing where only the latest request is delivered."""

import concurrent.futures
import itertools
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import numpy as np

from .schemas import SliceConfig
from .slicer import SliceResult, slice_image
from .surfaces import SurfaceProvider

logger = logging.getLogger(__name__)


@dataclass
class SliceMessage:
    """Outcome of one slicing request."""

    request_id: int
    result: Optional[SliceResult] = None
    error: Optional[str] = None
    exception: Optional[Exception] = None

    @property
    def success(self) -> bool:
        return self.error is None


class SliceWorker:
    """
    Run slicing requests on a thread pool, tagging each with an increasing id.

    A request that has been superseded by a newer one is cancelled if it has
    not started yet; if it is already running, its result is released when it
    finishes instead of being delivered.
    """

    def __init__(
        self,
        on_message: Callable[[SliceMessage], None],
        provider: Optional[SurfaceProvider] = None,
        max_workers: int = 1,
    ):
        self.on_message = on_message
        self.provider = provider
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="panocut-slicer"
        )
        self._ids = itertools.count(1)
        self._latest_id = 0
        self._pending: Dict[int, Future] = {}
        self._lock = threading.Lock()

    @property
    def latest_request_id(self) -> int:
        return self._latest_id

    @property
    def busy(self) -> bool:
        with self._lock:
            return bool(self._pending)

    def submit(self, image: np.ndarray, config: SliceConfig) -> int:
        """Queue a slicing request and return its id."""
        with self._lock:
            request_id = next(self._ids)
            self._latest_id = request_id
            for stale_id, future in list(self._pending.items()):
                if future.cancel():
                    logger.debug(f"Cancelled stale request {stale_id} before it started")
                    del self._pending[stale_id]
            self._pending[request_id] = self._executor.submit(
                self._run, request_id, image, config
            )
        return request_id

    def is_stale(self, request_id: int) -> bool:
        return request_id != self._latest_id

    def _run(self, request_id: int, image: np.ndarray, config: SliceConfig) -> None:
        try:
            result = slice_image(image, config, self.provider)
            message = SliceMessage(request_id=request_id, result=result)
        except Exception as e:
            logger.warning(f"Slicing request {request_id} failed: {e}")
            message = SliceMessage(request_id=request_id, error=str(e), exception=e)

        with self._lock:
            self._pending.pop(request_id, None)
            stale = self.is_stale(request_id)

        if stale:
            logger.debug(f"Dropping result of stale request {request_id}")
            if message.result is not None:
                message.result.release()
            return
        self.on_message(message)

    def wait(self, timeout: Optional[float] = None) -> None:
        """Block until every queued request has finished."""
        with self._lock:
            futures = list(self._pending.values())
        concurrent.futures.wait(futures, timeout=timeout)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True, cancel_futures=True)

    def __enter__(self) -> "SliceWorker":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()
