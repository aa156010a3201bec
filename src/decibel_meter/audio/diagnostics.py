"""Sampled logging of live readings."""

import logging
import time
from typing import Callable, Optional

from .publisher import MeterEvent

logger = logging.getLogger(__name__)


class ReadingLogHook:
    """
    Subscriber that logs at most one reading per interval.

    Runs on the notifier thread, so the capture path never writes logs.
    """

    def __init__(
        self,
        interval: float = 1.0,
        level: int = logging.DEBUG,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.interval = interval
        self.level = level
        self._clock = clock
        self._last_logged: Optional[float] = None
        self.skipped = 0

    def __call__(self, event: MeterEvent) -> None:
        if not event.is_reading:
            logger.log(self.level, f"Meter state: recording={event.is_recording}, target={event.target_db}")
            return

        now = self._clock()
        if self._last_logged is not None and now - self._last_logged < self.interval:
            self.skipped += 1
            return

        self._last_logged = now
        reading = event.reading
        logger.log(
            self.level,
            f"Level #{reading.sequence}: {reading.rms_db:.1f} dB (peak {reading.peak_db:.1f} dB), "
            f"{self.skipped} reading(s) skipped",
        )
        self.skipped = 0
