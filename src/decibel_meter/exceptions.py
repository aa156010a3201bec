"""Custom exceptions for decibel_meter."""


class DecibelMeterError(Exception):
    """Base exception for all decibel_meter errors."""
    pass


class ConfigurationError(DecibelMeterError):
    """Raised when configuration is invalid."""
    pass


class BlockError(DecibelMeterError):
    """Raised when an audio block cannot be measured."""
    pass


class EmptyBlockError(BlockError):
    """Raised when an audio block contains no samples."""
    pass


class InvalidBlockError(BlockError):
    """Raised when an audio block has the wrong shape or non-finite samples."""
    pass


class CaptureError(DecibelMeterError):
    """Base exception for capture source failures."""
    pass


class CaptureUnavailableError(CaptureError):
    """Raised when the platform cannot supply audio input."""
    pass


class AlreadyRecordingError(DecibelMeterError):
    """Raised when starting a session while one is already active."""
    pass
