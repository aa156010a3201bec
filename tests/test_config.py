"""Tests for configuration management."""

import json

import pytest

from decibel_meter.config import (
    DecibelMeterConfig,
    parse_bool_env,
    parse_float_env,
    parse_int_env,
)
from decibel_meter.exceptions import ConfigurationError


def _write_config(data) -> None:
    path = DecibelMeterConfig.config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data) if not isinstance(data, str) else data)


def test_default_config():
    """Test default configuration values."""
    config = DecibelMeterConfig.load()
    assert config.audio.sample_rate == 48000
    assert config.audio.block_size == 2048
    assert config.calibration.reference_level == 1.0
    assert config.calibration.offset_db == 94.0
    assert config.calibration.min_linear == 1e-7
    assert config.calibration.offset_peak is False
    assert config.meter.target_db is None
    assert config.meter.log_interval == 0.0


def test_default_matches_load_defaults():
    assert DecibelMeterConfig.default() == DecibelMeterConfig.load()


def test_env_override(monkeypatch):
    """Test environment variable overrides."""
    monkeypatch.setenv('DECIBEL_METER_SAMPLE_RATE', '44100')
    monkeypatch.setenv('DECIBEL_METER_BLOCK_SIZE', '1024')
    monkeypatch.setenv('DECIBEL_METER_CALIBRATION_OFFSET_DB', '90.5')
    monkeypatch.setenv('DECIBEL_METER_OFFSET_PEAK', 'yes')
    monkeypatch.setenv('DECIBEL_METER_TARGET_DB', '70')

    config = DecibelMeterConfig.load()
    assert config.audio.sample_rate == 44100
    assert config.audio.block_size == 1024
    assert config.calibration.offset_db == 90.5
    assert config.calibration.offset_peak is True
    assert config.meter.target_db == 70.0


def test_file_config_is_merged():
    _write_config({"audio": {"block_size": 4096}, "meter": {"target_db": 60.0}})

    config = DecibelMeterConfig.load()
    assert config.audio.block_size == 4096
    assert config.audio.sample_rate == 48000
    assert config.meter.target_db == 60.0


def test_env_overrides_file(monkeypatch):
    _write_config({"audio": {"block_size": 4096}})
    monkeypatch.setenv('DECIBEL_METER_BLOCK_SIZE', '512')

    assert DecibelMeterConfig.load().audio.block_size == 512


def test_unknown_keys_are_ignored(caplog):
    _write_config({"audio": {"block_size": 256, "device_id": 3}, "ui": {"theme": "dark"}})

    config = DecibelMeterConfig.load()
    assert config.audio.block_size == 256
    assert "device_id" in caplog.text
    assert "ui" in caplog.text


def test_corrupted_config_file_uses_defaults(capsys):
    _write_config("{not json")

    config = DecibelMeterConfig.load()
    assert config.audio.block_size == 2048
    assert "invalid JSON" in capsys.readouterr().err


def test_invalid_env_value_falls_back(monkeypatch, caplog):
    monkeypatch.setenv('DECIBEL_METER_BLOCK_SIZE', 'large')

    assert DecibelMeterConfig.load().audio.block_size == 2048
    assert "Invalid integer value 'large'" in caplog.text


@pytest.mark.parametrize("env, value, message", [
    ('DECIBEL_METER_SAMPLE_RATE', '1000', "Invalid sample rate"),
    ('DECIBEL_METER_BLOCK_SIZE', '0', "Invalid block size"),
    ('DECIBEL_METER_REFERENCE_LEVEL', '0', "Invalid reference level"),
    ('DECIBEL_METER_MIN_LINEAR', '-1e-7', "Invalid minimum linear level"),
    ('DECIBEL_METER_CALIBRATION_OFFSET_DB', 'inf', "Invalid calibration offset"),
    ('DECIBEL_METER_TARGET_DB', 'nan', "Invalid target level"),
    ('DECIBEL_METER_LOG_INTERVAL', '-1', "Invalid log interval"),
])
def test_validation(monkeypatch, env, value, message):
    monkeypatch.setenv(env, value)
    with pytest.raises(ConfigurationError, match=message):
        DecibelMeterConfig.load()


def test_parse_bool_env(monkeypatch):
    monkeypatch.setenv('FLAG', 'on')
    assert parse_bool_env('FLAG', False) is True
    monkeypatch.setenv('FLAG', '0')
    assert parse_bool_env('FLAG', True) is False
    monkeypatch.setenv('FLAG', 'maybe')
    assert parse_bool_env('FLAG', True) is True
    monkeypatch.delenv('FLAG')
    assert parse_bool_env('FLAG', False) is False


def test_parse_numbers_env(monkeypatch):
    monkeypatch.setenv('NUM', '12')
    assert parse_int_env('NUM', 1) == 12
    assert parse_float_env('NUM', 1.0) == 12.0
    monkeypatch.setenv('NUM', '1.5')
    assert parse_int_env('NUM', 1) == 1
    assert parse_float_env('NUM', None) == 1.5
