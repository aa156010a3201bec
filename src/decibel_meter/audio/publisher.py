"""Hand-off of readings from the capture thread to observers."""

import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List, Optional, Tuple

from .level_meter import LevelReading

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MeterEvent:
    """Notification delivered to subscribers."""
    kind: str                          # "reading" or "state"
    reading: Optional[LevelReading]
    is_recording: bool
    target_db: Optional[float]

    @property
    def is_reading(self) -> bool:
        return self.kind == "reading"


Subscriber = Callable[[MeterEvent], None]


class ReadingPublisher:
    """
    Single-slot latest-value channel drained by a notifier thread.

    post_reading() only swaps the slot and sets an event, so the producer
    never waits for subscribers. Readings posted faster than they are
    delivered are coalesced; state events are queued and never dropped.
    Each drain delivers queued state events before the pending reading.
    """

    def __init__(
        self,
        state_source: Callable[[], Tuple[bool, Optional[float]]],
        accept: Optional[Callable[[LevelReading], bool]] = None,
    ):
        """
        Initialize publisher.

        Args:
            state_source: Returns the current (is_recording, target_db) for
                reading events
            accept: Gate checked right before a reading is delivered; a
                reading it rejects is discarded
        """
        self._accept = accept
        self._slot_lock = threading.Lock()
        self._pending: Optional[LevelReading] = None
        self._events: Deque[object] = deque()
        self._wakeup = threading.Event()
        self._dispatch_lock = threading.RLock()
        self._subscribers: List[Subscriber] = []
        self._subscribers_lock = threading.Lock()
        self._closed = False
        self._state_source = state_source

        self.coalesced = 0
        self.readings_delivered = 0

        self._thread = threading.Thread(target=self._run, name="meter-notifier", daemon=True)
        self._thread.start()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a subscriber.

        Returns:
            Callable that removes the subscriber
        """
        with self._subscribers_lock:
            self._subscribers = self._subscribers + [callback]

        def unsubscribe() -> None:
            with self._subscribers_lock:
                self._subscribers = [s for s in self._subscribers if s is not callback]

        return unsubscribe

    def post_reading(self, reading: LevelReading) -> None:
        """Replace the pending reading (non-blocking)."""
        with self._slot_lock:
            if self._pending is not None:
                self.coalesced += 1
            self._pending = reading
        self._wakeup.set()

    def post_state(self, is_recording: bool, target_db: Optional[float]) -> None:
        """Queue a state-change notification carrying the state at post time."""
        self._events.append(
            MeterEvent(kind="state", reading=None, is_recording=is_recording, target_db=target_db)
        )
        self._wakeup.set()

    def barrier(self) -> None:
        """Wait for any delivery in progress to finish."""
        with self._dispatch_lock:
            pass

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until everything posted so far has been delivered.

        Returns:
            True if drained before the timeout
        """
        if self._closed or threading.current_thread() is self._thread:
            return True
        marker = threading.Event()
        self._events.append(marker)
        self._wakeup.set()
        return marker.wait(timeout)

    def close(self) -> None:
        """Stop the notifier thread after delivering what is queued."""
        if self._closed:
            return
        self._closed = True
        self._wakeup.set()
        if threading.current_thread() is not self._thread:
            self._thread.join()

    def _run(self) -> None:
        while True:
            self._wakeup.wait()
            self._wakeup.clear()
            self._drain()
            if self._closed:
                self._drain()
                return

    def _drain(self) -> None:
        with self._dispatch_lock:
            while self._events:
                item = self._events.popleft()
                if isinstance(item, threading.Event):
                    # Deliver the reading posted before this flush marker
                    self._deliver_pending()
                    item.set()
                else:
                    self._notify(item)
            self._deliver_pending()

    def _deliver_pending(self) -> None:
        with self._slot_lock:
            reading = self._pending
            self._pending = None
        if reading is None:
            return
        if self._accept is not None and not self._accept(reading):
            return
        self.readings_delivered += 1
        is_recording, target_db = self._state_source()
        self._notify(
            MeterEvent(kind="reading", reading=reading, is_recording=is_recording, target_db=target_db)
        )

    def _notify(self, event: MeterEvent) -> None:
        for callback in self._subscribers:
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Subscriber error: {e}", exc_info=True)
