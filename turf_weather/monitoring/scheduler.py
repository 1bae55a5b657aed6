"""
Job scheduling for monitoring ticks and batch flush timers.

The engine never creates timers directly; it goes through a Scheduler so
tests can drive time with a fake implementation.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class CancelToken:
    """Handle returned by a Scheduler; cancelling stops any further runs"""

    def __init__(self, name: str = ''):
        self.name = name
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Block up to timeout seconds; True if cancelled meanwhile"""
        return self._event.wait(timeout)


class Scheduler(ABC):
    """Schedules recurring and one-shot jobs"""

    @abstractmethod
    def schedule(self, interval_seconds: float, fn: Callable[[], None], name: str = '') -> CancelToken:
        """Run fn every interval_seconds until the token is cancelled"""
        pass

    @abstractmethod
    def schedule_once(self, delay_seconds: float, fn: Callable[[], None], name: str = '') -> CancelToken:
        """Run fn once after delay_seconds unless cancelled first"""
        pass

    def shutdown(self) -> None:
        pass


class ThreadScheduler(Scheduler):
    """
    Runs each job on its own daemon thread.

    A run already in progress when the token is cancelled completes, but no
    further run starts.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._jobs: List[tuple] = []

    def schedule(self, interval_seconds: float, fn: Callable[[], None], name: str = '') -> CancelToken:
        token = CancelToken(name)

        def loop() -> None:
            while not token.wait(interval_seconds):
                self._run(fn, token)

        self._start(loop, token)
        return token

    def schedule_once(self, delay_seconds: float, fn: Callable[[], None], name: str = '') -> CancelToken:
        token = CancelToken(name)

        def once() -> None:
            if not token.wait(delay_seconds):
                self._run(fn, token)

        self._start(once, token)
        return token

    def shutdown(self, timeout: float = 5.0) -> None:
        with self._lock:
            jobs, self._jobs = self._jobs, []
        for token, thread in jobs:
            token.cancel()
        for token, thread in jobs:
            if thread.is_alive() and thread is not threading.current_thread():
                thread.join(timeout=timeout)
                if thread.is_alive():
                    logger.warning(f"Scheduled job '{token.name}' did not stop within timeout")

    def _start(self, target: Callable[[], None], token: CancelToken) -> None:
        thread = threading.Thread(target=target, name=f"turf-weather-{token.name or 'job'}", daemon=True)
        with self._lock:
            self._jobs = [(t, th) for t, th in self._jobs if th.is_alive()]
            self._jobs.append((token, thread))
        thread.start()

    @staticmethod
    def _run(fn: Callable[[], None], token: Optional[CancelToken]) -> None:
        try:
            fn()
        except Exception as exc:  # noqa: BLE001
            logger.exception(f"Unhandled error in scheduled job '{token.name if token else ''}': {exc}")
