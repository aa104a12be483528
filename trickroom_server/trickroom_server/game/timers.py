"""Cancelable timers for turn, trick and reconnection deadlines."""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable

logger = logging.getLogger(__name__)


class TimerHandle(ABC):
    """A scheduled callback.

    cancel() may be called any number of times, before or after the
    callback fires.
    """

    @abstractmethod
    def cancel(self) -> None:
        pass

    @property
    @abstractmethod
    def active(self) -> bool:
        """True until the callback has run or the timer was canceled."""
        pass


class Scheduler(ABC):
    """Creates timers."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run callback once after delay seconds."""
        pass


class _ThreadTimerHandle(TimerHandle):
    def __init__(self, delay: float, callback: Callable[[], None]):
        self._callback = callback
        self._lock = threading.Lock()
        self._active = True
        self._timer = threading.Timer(delay, self._run)
        self._timer.daemon = True

    def start(self) -> None:
        self._timer.start()

    def _run(self) -> None:
        with self._lock:
            if not self._active:
                return
            self._active = False
        try:
            self._callback()
        except Exception:
            logger.exception("Timer callback failed")

    def cancel(self) -> None:
        with self._lock:
            self._active = False
        self._timer.cancel()

    @property
    def active(self) -> bool:
        return self._active


class ThreadingScheduler(Scheduler):
    """Scheduler backed by daemon threading.Timer threads."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = _ThreadTimerHandle(delay, callback)
        handle.start()
        return handle


def cancel_timer(handle: TimerHandle | None) -> None:
    """Cancel a timer that may not exist."""
    if handle is not None:
        handle.cancel()
