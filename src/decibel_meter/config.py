"""Configuration management for decibel_meter."""

import json
import logging
import math
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "DECIBEL_METER_"


def parse_bool_env(env_var: str, default: bool) -> bool:
    """Parse boolean environment variable with validation."""
    value = os.getenv(env_var)
    if value is None:
        return default

    value_lower = value.lower().strip()
    if value_lower in ('true', '1', 'yes', 'on'):
        return True
    elif value_lower in ('false', '0', 'no', 'off', ''):
        return False
    else:
        logger.warning(
            f"Invalid boolean value '{value}' for {env_var}. "
            f"Valid: true/false, 1/0, yes/no, on/off. Using default: {default}"
        )
        return default


def parse_int_env(env_var: str, default: int) -> int:
    """Parse integer environment variable with validation."""
    value = os.getenv(env_var)
    if value is None:
        return default

    try:
        return int(value)
    except ValueError:
        logger.warning(
            f"Invalid integer value '{value}' for {env_var}. "
            f"Using default: {default}"
        )
        return default


def parse_float_env(env_var: str, default: Optional[float]) -> Optional[float]:
    """Parse float environment variable with validation."""
    value = os.getenv(env_var)
    if value is None:
        return default

    try:
        return float(value)
    except ValueError:
        logger.warning(
            f"Invalid float value '{value}' for {env_var}. "
            f"Using default: {default}"
        )
        return default


@dataclass
class AudioConfig:
    """Configuration for audio capture."""
    sample_rate: int = 48000           # Hz, default input rate
    block_size: int = 2048             # Samples per block


@dataclass
class CalibrationConfig:
    """Full-scale to SPL mapping used by the block processor."""
    reference_level: float = 1.0       # Linear amplitude of 0 dB
    offset_db: float = 94.0            # Added to the RMS level
    min_linear: float = 1e-7           # Floor before the logarithm
    offset_peak: bool = False          # Also add offset_db to the peak level


@dataclass
class MeterConfig:
    """Configuration for the live meter."""
    target_db: Optional[float] = None  # Threshold shown to observers
    log_interval: float = 0.0          # Seconds between sampled log lines (0 = off)


@dataclass
class DecibelMeterConfig:
    """Main configuration for decibel_meter."""
    audio: AudioConfig
    calibration: CalibrationConfig
    meter: MeterConfig

    @classmethod
    def default(cls) -> 'DecibelMeterConfig':
        """Build a configuration from defaults only."""
        return cls(
            audio=AudioConfig(),
            calibration=CalibrationConfig(),
            meter=MeterConfig(),
        )

    @staticmethod
    def config_path() -> Path:
        """Location of the user configuration file."""
        return Path.home() / ".config" / "decibel_meter" / "config.json"

    @classmethod
    def load(cls) -> 'DecibelMeterConfig':
        """Load configuration from file and environment variables."""
        config_dict = {
            "audio": {
                "sample_rate": 48000,
                "block_size": 2048,
            },
            "calibration": {
                "reference_level": 1.0,
                "offset_db": 94.0,
                "min_linear": 1e-7,
                "offset_peak": False,
            },
            "meter": {
                "target_db": None,
                "log_interval": 0.0,
            },
        }

        config_path = cls.config_path()
        if config_path.exists():
            try:
                with open(config_path, "r") as f:
                    file_config = json.load(f)
                logger.info(f"Loading configuration from {config_path}")

                for section, values in file_config.items():
                    if section in config_dict and isinstance(values, dict):
                        known = {k: v for k, v in values.items() if k in config_dict[section]}
                        unknown = set(values) - set(known)
                        if unknown:
                            logger.warning(
                                f"Ignoring unknown keys in [{section}]: {', '.join(sorted(unknown))}"
                            )
                        config_dict[section].update(known)
                    else:
                        logger.warning(f"Ignoring unknown config section '{section}'")

            except json.JSONDecodeError as e:
                error_msg = (
                    f"Configuration file is corrupted or contains invalid JSON:\n"
                    f"  File: {config_path}\n"
                    f"  Error: {e}\n"
                    f"  Using default configuration instead."
                )
                logger.error(error_msg)
                print(f"WARNING: {error_msg}", file=sys.stderr)

            except OSError as e:
                logger.warning(f"Failed to load config from file: {e}")

        audio = config_dict["audio"]
        audio["sample_rate"] = parse_int_env(f'{ENV_PREFIX}SAMPLE_RATE', audio["sample_rate"])
        audio["block_size"] = parse_int_env(f'{ENV_PREFIX}BLOCK_SIZE', audio["block_size"])

        calibration = config_dict["calibration"]
        calibration["reference_level"] = parse_float_env(f'{ENV_PREFIX}REFERENCE_LEVEL', calibration["reference_level"])
        calibration["offset_db"] = parse_float_env(f'{ENV_PREFIX}CALIBRATION_OFFSET_DB', calibration["offset_db"])
        calibration["min_linear"] = parse_float_env(f'{ENV_PREFIX}MIN_LINEAR', calibration["min_linear"])
        calibration["offset_peak"] = parse_bool_env(f'{ENV_PREFIX}OFFSET_PEAK', calibration["offset_peak"])

        meter = config_dict["meter"]
        meter["target_db"] = parse_float_env(f'{ENV_PREFIX}TARGET_DB', meter["target_db"])
        meter["log_interval"] = parse_float_env(f'{ENV_PREFIX}LOG_INTERVAL', meter["log_interval"])

        try:
            config = cls(
                audio=AudioConfig(**audio),
                calibration=CalibrationConfig(**calibration),
                meter=MeterConfig(**meter),
            )
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration values."""
        if not (8000 <= self.audio.sample_rate <= 192000):
            raise ConfigurationError(
                f"Invalid sample rate {self.audio.sample_rate}. "
                "Must be between 8000 and 192000 Hz"
            )

        if not (1 <= self.audio.block_size <= 65536):
            raise ConfigurationError(
                f"Invalid block size {self.audio.block_size}. "
                "Must be between 1 and 65536 samples"
            )

        if not (math.isfinite(self.calibration.reference_level) and self.calibration.reference_level > 0):
            raise ConfigurationError(
                f"Invalid reference level {self.calibration.reference_level}. "
                "Must be greater than 0"
            )

        if not (math.isfinite(self.calibration.min_linear) and self.calibration.min_linear > 0):
            raise ConfigurationError(
                f"Invalid minimum linear level {self.calibration.min_linear}. "
                "Must be greater than 0"
            )

        if not math.isfinite(self.calibration.offset_db):
            raise ConfigurationError(
                f"Invalid calibration offset {self.calibration.offset_db}. "
                "Must be a finite number"
            )

        if self.meter.target_db is not None and not math.isfinite(self.meter.target_db):
            raise ConfigurationError(
                f"Invalid target level {self.meter.target_db}. "
                "Must be a finite number"
            )

        if not (math.isfinite(self.meter.log_interval) and self.meter.log_interval >= 0):
            raise ConfigurationError(
                f"Invalid log interval {self.meter.log_interval}. "
                "Must be >= 0"
            )
