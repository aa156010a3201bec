"""Live level tracking with session state management."""

import logging
import math
import threading
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Optional

from ..config import DecibelMeterConfig
from ..exceptions import AlreadyRecordingError, ConfigurationError
from .capture import CaptureSource, SoundDeviceCapture
from .level_meter import Calibration, LevelMeter, LevelReading
from .publisher import ReadingPublisher, Subscriber

logger = logging.getLogger(__name__)


class MeterState(Enum):
    """Session state machine."""
    STOPPED = "stopped"
    RECORDING = "recording"


@dataclass(frozen=True)
class MeterStats:
    """Counters for the tracker's lifetime."""
    blocks_processed: int
    blocks_dropped: int
    readings_published: int
    readings_coalesced: int
    sessions_started: int


class LevelTracker:
    """
    Owns a capture session and republishes one reading per block.

    Features:
    - Single active capture session (Stopped <-> Recording)
    - Non-blocking hand-off from the capture thread to subscribers
    - No reading delivered for a session once stop() has returned
    - Per-block failures drop the block and keep the previous reading
    """

    def __init__(
        self,
        capture: CaptureSource,
        meter: Optional[LevelMeter] = None,
        target_db: Optional[float] = None,
    ):
        """
        Initialize tracker.

        Args:
            capture: Capture source to drive
            meter: Block processor (default calibration if None)
            target_db: Optional initial threshold for observers
        """
        self.capture = capture
        self.meter = meter or LevelMeter()

        # State
        self._state = MeterState.STOPPED
        self._control_lock = threading.Lock()
        self._session = 0
        self._target_db: Optional[float] = None
        self._latest: Optional[LevelReading] = None

        # Counters written by the capture thread only
        self._sequence = 0
        self._blocks_processed = 0
        self._blocks_dropped = 0
        self._last_block_error: Optional[Exception] = None
        self._sessions_started = 0

        # Totals at the start of the current session
        self._dropped_at_start = 0
        self._flags_at_start = 0

        if target_db is not None:
            self._validate_target(target_db)
            self._target_db = float(target_db)

        self._publisher = ReadingPublisher(
            state_source=lambda: (self.is_recording, self._target_db),
            accept=self._is_current,
        )

        logger.info("LevelTracker initialized")

    @classmethod
    def from_config(
        cls,
        config: DecibelMeterConfig,
        capture: Optional[CaptureSource] = None,
    ) -> 'LevelTracker':
        """Build a tracker on the default input using a loaded configuration."""
        if capture is None:
            capture = SoundDeviceCapture(
                sample_rate=config.audio.sample_rate,
                block_size=config.audio.block_size,
            )
        meter = LevelMeter(Calibration.from_config(config.calibration))
        return cls(capture, meter=meter, target_db=config.meter.target_db)

    @property
    def state(self) -> MeterState:
        """Get current session state."""
        return self._state

    @property
    def is_recording(self) -> bool:
        """Check if a capture session is active."""
        return self._state == MeterState.RECORDING

    @property
    def latest(self) -> Optional[LevelReading]:
        """Most recent reading, or None before the first block."""
        return self._latest

    @property
    def rms_db(self) -> Optional[float]:
        reading = self._latest
        return reading.rms_db if reading is not None else None

    @property
    def peak_db(self) -> Optional[float]:
        reading = self._latest
        return reading.peak_db if reading is not None else None

    @property
    def target_db(self) -> Optional[float]:
        return self._target_db

    @property
    def stats(self) -> MeterStats:
        return MeterStats(
            blocks_processed=self._blocks_processed,
            blocks_dropped=self._blocks_dropped,
            readings_published=self._publisher.readings_delivered,
            readings_coalesced=self._publisher.coalesced,
            sessions_started=self._sessions_started,
        )

    def subscribe(self, callback: Subscriber):
        """
        Register for reading and state-change events.

        Callbacks run on the notifier thread, never on the capture thread.

        Returns:
            Callable that removes the subscription
        """
        return self._publisher.subscribe(callback)

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait until all events posted so far reached the subscribers."""
        return self._publisher.flush(timeout)

    def _is_current(self, reading: LevelReading) -> bool:
        return self._state == MeterState.RECORDING and reading.session == self._session

    def on_block(self, samples, frame_count: int, session: Optional[int] = None) -> None:
        """
        Handle one block (runs in the capture thread).

        Never raises and never logs; a block that cannot be measured is
        counted as dropped and the previous reading stays current.

        Args:
            samples: Mono float samples
            frame_count: Number of valid frames in samples
            session: Session the block belongs to (current session if None)
        """
        if session is None:
            session = self._session
        if self._state != MeterState.RECORDING or session != self._session:
            return

        try:
            block = samples[:frame_count] if frame_count < len(samples) else samples
            reading = self.meter.process(block, sequence=self._sequence + 1, session=session)
        except Exception as e:
            self._blocks_dropped += 1
            self._last_block_error = e
            return

        self._sequence += 1
        self._blocks_processed += 1
        if session != self._session:
            return
        self._latest = reading
        self._publisher.post_reading(reading)

    def start(self) -> None:
        """
        Start a capture session.

        Raises:
            AlreadyRecordingError: If a session is already active
            CaptureUnavailableError: If the capture source cannot be opened
        """
        with self._control_lock:
            if self._state == MeterState.RECORDING:
                logger.warning("Already recording, rejecting start request")
                raise AlreadyRecordingError("A capture session is already active")

            self._session += 1
            session = self._session
            self._dropped_at_start = self._blocks_dropped
            self._flags_at_start = self.capture.status_flags
            self._state = MeterState.RECORDING
            try:
                self.capture.open(partial(self.on_block, session=session))
            except Exception as e:
                self._state = MeterState.STOPPED
                self._session += 1
                logger.error(f"Failed to start capture session: {e}")
                raise

            self._sessions_started += 1
            self._publisher.post_state(True, self._target_db)
            logger.info(f"Session {session} started")

    def stop(self) -> None:
        """
        Stop the active capture session.

        No-op when already stopped. Once this returns, no reading from the
        ended session is delivered to subscribers.
        """
        with self._control_lock:
            if self._state != MeterState.RECORDING:
                logger.debug("Not recording, ignoring stop request")
                return

            ended = self._session
            self._state = MeterState.STOPPED
            self._session += 1
            try:
                self.capture.close()
            finally:
                self._publisher.post_state(False, self._target_db)
                logger.info(f"Session {ended} stopped")
                self._report_session_health()

        # Outside the control lock: a subscriber may itself call stop()
        self._publisher.barrier()

    def set_target_level(self, db: Optional[float]) -> None:
        """
        Set the threshold observers compare readings against.

        Args:
            db: Target level in dB, or None to clear it

        Raises:
            ConfigurationError: If db is not a finite number
        """
        if db is not None:
            self._validate_target(db)
            db = float(db)
        self._target_db = db
        self._publisher.post_state(self.is_recording, db)
        logger.debug(f"Target level set to {db}")

    def close(self) -> None:
        """Stop any session and shut down the notifier thread."""
        self.stop()
        self._publisher.close()

    def __enter__(self) -> 'LevelTracker':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @staticmethod
    def _validate_target(db) -> None:
        try:
            valid = math.isfinite(float(db))
        except (TypeError, ValueError):
            valid = False
        if not valid:
            raise ConfigurationError(f"Invalid target level {db!r}. Must be a finite number")

    def _report_session_health(self) -> None:
        """Log problems the capture thread recorded during the ended session."""
        dropped = self._blocks_dropped - self._dropped_at_start
        if dropped:
            logger.warning(
                f"{dropped} block(s) dropped this session, last error: {self._last_block_error}"
            )
        flags = self.capture.status_flags - self._flags_at_start
        if flags:
            logger.warning(f"Capture reported {flags} status flag(s) (input overflow or underflow)")
