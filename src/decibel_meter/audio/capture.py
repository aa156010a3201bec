"""Capture sources delivering mono audio blocks on their own thread."""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional

import numpy as np

from ..exceptions import CaptureUnavailableError

logger = logging.getLogger(__name__)

# Called with (samples, frame_count) on the capture thread
BlockCallback = Callable[[np.ndarray, int], None]


class CaptureSource(ABC):
    """
    Platform audio input delivering fixed-size mono blocks.

    open() starts delivery of on_block(samples, frame_count) on the source's
    own thread. close() must not return while a callback can still fire.
    """

    def __init__(self, sample_rate: int = 48000, block_size: int = 2048):
        self.sample_rate = sample_rate
        self.block_size = block_size
        self.status_flags = 0

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether the source is currently delivering blocks."""

    @abstractmethod
    def open(self, on_block: BlockCallback) -> None:
        """
        Begin delivering blocks.

        Raises:
            CaptureUnavailableError: If the platform cannot supply input
        """

    @abstractmethod
    def close(self) -> None:
        """Stop delivering blocks. Safe to call when already closed."""

    @property
    def block_duration(self) -> float:
        """Duration of one block in seconds."""
        return self.block_size / self.sample_rate


class SoundDeviceCapture(CaptureSource):
    """Default system input through PortAudio (sounddevice)."""

    def __init__(self, sample_rate: int = 48000, block_size: int = 2048):
        super().__init__(sample_rate, block_size)
        self._stream = None
        self._on_block: Optional[BlockCallback] = None

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    def _stream_callback(self, indata: np.ndarray, frames: int, time_info, status) -> None:
        """
        Callback for the PortAudio stream (runs in audio thread).

        Args:
            indata: Input audio data, shape (frames, 1)
            frames: Number of frames
            time_info: Timing info
            status: PortAudio status
        """
        if status:
            # Logged by the tracker off the audio thread
            self.status_flags += 1

        on_block = self._on_block
        if on_block is not None:
            on_block(indata[:, 0], frames)

    def open(self, on_block: BlockCallback) -> None:
        if self._stream is not None:
            return

        try:
            import sounddevice as sd
        except OSError as e:
            # Raised when the PortAudio library itself is missing
            raise CaptureUnavailableError(f"PortAudio is not available: {e}") from e

        self._on_block = on_block
        try:
            stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=1,
                dtype='float32',
                blocksize=self.block_size,
                callback=self._stream_callback,
            )
            stream.start()
        except Exception as e:
            self._on_block = None
            raise CaptureUnavailableError(f"Failed to open default input: {e}") from e

        self._stream = stream
        logger.info(f"Capture opened: {self.sample_rate}Hz, {self.block_size} samples/block")

    def close(self) -> None:
        stream = self._stream
        if stream is None:
            return

        self._stream = None
        try:
            # stop() waits for pending callbacks to finish
            stream.stop()
        finally:
            stream.close()
            self._on_block = None
        logger.info("Capture closed")


class SyntheticCapture(CaptureSource):
    """
    Generated input for demos and tests without a microphone.

    Produces a sine tone, white noise or silence at the block cadence on a
    background thread.
    """

    WAVEFORMS = ("tone", "noise", "silence")

    def __init__(
        self,
        waveform: str = "tone",
        amplitude: float = 0.5,
        frequency: float = 1000.0,
        sample_rate: int = 48000,
        block_size: int = 2048,
        realtime: bool = True,
        seed: Optional[int] = None,
    ):
        super().__init__(sample_rate, block_size)
        if waveform not in self.WAVEFORMS:
            raise ValueError(f"Unknown waveform '{waveform}'. Valid options: {', '.join(self.WAVEFORMS)}")
        self.waveform = waveform
        self.amplitude = amplitude
        self.frequency = frequency
        self.realtime = realtime
        self._rng = np.random.default_rng(seed)
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._phase = 0

    @property
    def is_open(self) -> bool:
        return self._thread is not None

    def next_block(self) -> np.ndarray:
        """Generate the next block of samples."""
        n = self.block_size
        if self.waveform == "silence":
            return np.zeros(n, dtype=np.float32)
        if self.waveform == "noise":
            noise = self._rng.uniform(-1.0, 1.0, n) * self.amplitude
            return noise.astype(np.float32)

        t = (np.arange(n) + self._phase) / self.sample_rate
        self._phase += n
        return (self.amplitude * np.sin(2 * np.pi * self.frequency * t)).astype(np.float32)

    def _run(self, on_block: BlockCallback) -> None:
        next_due = time.monotonic()
        while not self._stop_event.is_set():
            block = self.next_block()
            on_block(block, block.size)

            if self.realtime:
                next_due += self.block_duration
                self._stop_event.wait(max(0.0, next_due - time.monotonic()))

    def open(self, on_block: BlockCallback) -> None:
        if self._thread is not None:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            args=(on_block,),
            name="synthetic-capture",
            daemon=True,
        )
        self._thread.start()
        logger.info(f"Synthetic capture opened: {self.waveform} at {self.sample_rate}Hz")

    def close(self) -> None:
        thread = self._thread
        if thread is None:
            return

        self._stop_event.set()
        if thread is not threading.current_thread():
            thread.join()
        self._thread = None
        logger.info("Synthetic capture closed")
