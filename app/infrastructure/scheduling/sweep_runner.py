from __future__ import annotations

import logging
import threading
from typing import Callable


class PeriodicSweepRunner:
    """
    Runs `job` every `interval_seconds` on a daemon thread until stopped.

    A failing tick is logged and the loop carries on with the next one.
    """

    def __init__(self, job: Callable[[], object], interval_seconds: float, name: str = "reminder-sweep") -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._job = job
        self._interval = interval_seconds
        self._name = name
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._logger = logging.getLogger(__name__)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name=self._name, daemon=True)
        self._thread.start()
        self._logger.info("Sweep runner started", extra={"reason": self._name, "interval": self._interval})

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        self._logger.info("Sweep runner stopped", extra={"reason": self._name})

    def run_once(self) -> None:
        try:
            self._job()
        except Exception:
            self._logger.exception("Sweep tick failed", extra={"reason": self._name})

    def _loop(self) -> None:
        while not self._stop.is_set():
            self.run_once()
            self._stop.wait(self._interval)
