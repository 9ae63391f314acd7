"""Background thread that periodically purges expired limiter entries."""

from __future__ import annotations

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """Run ``sweep`` every ``interval_seconds`` on a daemon thread until stopped."""

    def __init__(
        self,
        sweep: Callable[[], int],
        *,
        interval_seconds: float,
        name: str = "rate-limit-sweeper",
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")

        self._sweep = sweep
        self._interval_seconds = interval_seconds
        self._name = name
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._runs = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def runs(self) -> int:
        """Number of completed sweep passes."""
        return self._runs

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name=self._name, daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        self._thread = None

    def _loop(self) -> None:
        while not self._stop_event.wait(self._interval_seconds):
            try:
                removed = self._sweep()
            except Exception:
                # Keep sweeping on later ticks; check() never relies on this pass.
                logger.exception("rate_limit.sweep_failed", extra={"sweeper": self._name})
                continue
            finally:
                self._runs += 1
            if removed:
                logger.debug(
                    "rate_limit.sweep",
                    extra={"removed": removed, "sweeper": self._name},
                )
