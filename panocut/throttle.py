"""Caller-side rate limiting for reprocessing requests."""

import threading
from typing import Callable, Optional


def throttle(func: Callable, interval_ms: float) -> Callable:
    """Call ``func`` at most once per ``interval_ms``; extra calls are dropped."""
    lock = threading.Lock()
    blocked = False

    def unblock():
        nonlocal blocked
        with lock:
            blocked = False

    def throttled(*args, **kwargs):
        nonlocal blocked
        with lock:
            if blocked:
                return
            blocked = True
        timer = threading.Timer(interval_ms / 1000, unblock)
        timer.daemon = True
        timer.start()
        func(*args, **kwargs)

    return throttled


def debounce(func: Callable, wait_ms: float) -> Callable:
    """Delay ``func`` until ``wait_ms`` have passed without another call."""
    lock = threading.Lock()
    timer: Optional[threading.Timer] = None

    def debounced(*args, **kwargs):
        nonlocal timer
        with lock:
            if timer is not None:
                timer.cancel()
            timer = threading.Timer(wait_ms / 1000, func, args, kwargs)
            timer.daemon = True
            timer.start()

    return debounced


def throttle_with_debounce(func: Callable, interval_ms: float) -> Callable:
    """
    Throttle ``func`` while guaranteeing the last call still runs.

    The first call in a burst runs immediately; the final call of the burst
    runs again once ``interval_ms`` have passed without further calls.
    """
    throttled = throttle(func, interval_ms)
    trailing = debounce(func, interval_ms)

    def wrapper(*args, **kwargs):
        throttled(*args, **kwargs)
        trailing(*args, **kwargs)

    return wrapper
