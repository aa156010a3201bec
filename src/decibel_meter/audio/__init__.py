"""Audio capture and level tracking for decibel_meter."""

from importlib import import_module

__all__ = [
    "CaptureSource",
    "SoundDeviceCapture",
    "SyntheticCapture",
    "LevelMeter",
    "LevelReading",
    "Calibration",
    "process_block",
    "ReadingPublisher",
    "MeterEvent",
    "LevelTracker",
    "MeterState",
    "MeterStats",
    "ReadingLogHook",
]

_LAZY_EXPORTS = {
    "CaptureSource": ("capture", "CaptureSource"),
    "SoundDeviceCapture": ("capture", "SoundDeviceCapture"),
    "SyntheticCapture": ("capture", "SyntheticCapture"),
    "LevelMeter": ("level_meter", "LevelMeter"),
    "LevelReading": ("level_meter", "LevelReading"),
    "Calibration": ("level_meter", "Calibration"),
    "process_block": ("level_meter", "process_block"),
    "ReadingPublisher": ("publisher", "ReadingPublisher"),
    "MeterEvent": ("publisher", "MeterEvent"),
    "LevelTracker": ("tracker", "LevelTracker"),
    "MeterState": ("tracker", "MeterState"),
    "MeterStats": ("tracker", "MeterStats"),
    "ReadingLogHook": ("diagnostics", "ReadingLogHook"),
}


def __getattr__(name):
    """Lazily import audio modules so numpy loads only when needed."""
    if name in _LAZY_EXPORTS:
        module_name, attr_name = _LAZY_EXPORTS[name]
        module = import_module(f".{module_name}", __name__)
        value = getattr(module, attr_name)
        globals()[name] = value
        return value
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
