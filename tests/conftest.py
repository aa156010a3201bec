"""Shared pytest fixtures for decibel_meter tests."""

import os
import threading

import numpy as np
import pytest

from decibel_meter.audio.capture import CaptureSource
from decibel_meter.audio.tracker import LevelTracker


class ManualCapture(CaptureSource):
    """Capture source driven by the test, one block per capture() call."""

    def __init__(self, block_size: int = 2048, fail_open: Exception = None):
        super().__init__(sample_rate=48000, block_size=block_size)
        self.fail_open = fail_open
        self.open_count = 0
        self.close_count = 0
        self.callbacks = []
        self._on_block = None

    @property
    def is_open(self) -> bool:
        return self._on_block is not None

    def open(self, on_block) -> None:
        if self.fail_open is not None:
            raise self.fail_open
        self.open_count += 1
        self._on_block = on_block
        self.callbacks.append(on_block)

    def close(self) -> None:
        if self._on_block is not None:
            self.close_count += 1
        self._on_block = None

    def capture(self, samples) -> None:
        """Deliver one block if the source is open."""
        samples = np.asarray(samples, dtype=np.float32)
        if self._on_block is not None:
            self._on_block(samples, len(samples))


class EventRecorder:
    """Subscriber collecting events from the notifier thread."""

    def __init__(self):
        self.events = []
        self._lock = threading.Lock()

    def __call__(self, event) -> None:
        with self._lock:
            self.events.append(event)

    @property
    def readings(self):
        with self._lock:
            return [e.reading for e in self.events if e.is_reading]

    @property
    def states(self):
        with self._lock:
            return [e.is_recording for e in self.events if not e.is_reading]


@pytest.fixture
def manual_capture():
    return ManualCapture()


@pytest.fixture
def tracker(manual_capture):
    tracker = LevelTracker(manual_capture)
    yield tracker
    tracker.close()


@pytest.fixture
def recorder(tracker):
    events = EventRecorder()
    tracker.subscribe(events)
    return events


@pytest.fixture
def sample_block():
    """Deterministic noise block at roughly -20 dBFS."""
    rng = np.random.default_rng(1234)
    return (rng.standard_normal(2048) * 0.1).astype(np.float32)


@pytest.fixture(autouse=True)
def isolated_home(monkeypatch, tmp_path):
    """Isolate tests from real config by using a temp HOME."""
    monkeypatch.setenv("HOME", str(tmp_path))
    for key in list(os.environ):
        if key.startswith("DECIBEL_METER_"):
            monkeypatch.delenv(key)


@pytest.fixture
def capture_factory():
    """Build additional manual capture sources."""
    return ManualCapture


@pytest.fixture
def event_recorder_factory():
    return EventRecorder
