"""decibel_meter - Real-time microphone loudness meter."""

__version__ = "0.1.0"

from .config import (
    DecibelMeterConfig,
    AudioConfig,
    CalibrationConfig,
    MeterConfig,
)
from .exceptions import (
    DecibelMeterError,
    ConfigurationError,
    BlockError,
    EmptyBlockError,
    InvalidBlockError,
    CaptureError,
    CaptureUnavailableError,
    AlreadyRecordingError,
)
from .audio import (
    CaptureSource,
    SoundDeviceCapture,
    SyntheticCapture,
    LevelMeter,
    LevelReading,
    Calibration,
    LevelTracker,
    MeterState,
    MeterEvent,
    ReadingLogHook,
)

__all__ = [
    # Configuration
    "DecibelMeterConfig",
    "AudioConfig",
    "CalibrationConfig",
    "MeterConfig",
    # Exceptions
    "DecibelMeterError",
    "ConfigurationError",
    "BlockError",
    "EmptyBlockError",
    "InvalidBlockError",
    "CaptureError",
    "CaptureUnavailableError",
    "AlreadyRecordingError",
    # Audio subsystem
    "CaptureSource",
    "SoundDeviceCapture",
    "SyntheticCapture",
    "LevelMeter",
    "LevelReading",
    "Calibration",
    "LevelTracker",
    "MeterState",
    "MeterEvent",
    "ReadingLogHook",
]
