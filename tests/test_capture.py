"""Tests for capture sources."""

import threading
from unittest.mock import Mock, patch

import numpy as np
import pytest

from decibel_meter.audio.capture import CaptureSource, SoundDeviceCapture, SyntheticCapture
from decibel_meter.exceptions import CaptureUnavailableError


def test_capture_source_is_abstract():
    with pytest.raises(TypeError):
        CaptureSource()


def test_block_duration():
    capture = SyntheticCapture(sample_rate=48000, block_size=2048)
    assert capture.block_duration == pytest.approx(2048 / 48000)


@patch('sounddevice.InputStream')
def test_sounddevice_open_close(mock_stream):
    """Test the stream is configured for mono float32 blocks."""
    mock_stream_instance = Mock()
    mock_stream.return_value = mock_stream_instance

    capture = SoundDeviceCapture(sample_rate=44100, block_size=1024)
    capture.open(Mock())

    assert capture.is_open
    _, kwargs = mock_stream.call_args
    assert kwargs['samplerate'] == 44100
    assert kwargs['blocksize'] == 1024
    assert kwargs['channels'] == 1
    assert kwargs['dtype'] == 'float32'
    mock_stream_instance.start.assert_called_once()

    capture.close()

    assert not capture.is_open
    mock_stream_instance.stop.assert_called_once()
    mock_stream_instance.close.assert_called_once()


@patch('sounddevice.InputStream')
def test_sounddevice_open_twice_keeps_one_stream(mock_stream):
    mock_stream.return_value = Mock()

    capture = SoundDeviceCapture()
    capture.open(Mock())
    capture.open(Mock())

    assert mock_stream.call_count == 1
    capture.close()


@patch('sounddevice.InputStream')
def test_sounddevice_open_failure(mock_stream):
    """Test device errors are surfaced as CaptureUnavailableError."""
    mock_stream.side_effect = Exception("No default input device")

    capture = SoundDeviceCapture()
    with pytest.raises(CaptureUnavailableError, match="No default input device"):
        capture.open(Mock())

    assert not capture.is_open


@patch('sounddevice.InputStream')
def test_sounddevice_start_failure(mock_stream):
    mock_stream_instance = Mock()
    mock_stream_instance.start.side_effect = Exception("Permission denied")
    mock_stream.return_value = mock_stream_instance

    capture = SoundDeviceCapture()
    with pytest.raises(CaptureUnavailableError):
        capture.open(Mock())
    assert not capture.is_open


def test_sounddevice_close_when_closed_is_noop():
    capture = SoundDeviceCapture()
    capture.close()
    assert not capture.is_open


@patch('sounddevice.InputStream')
def test_sounddevice_callback_forwards_first_channel(mock_stream):
    mock_stream.return_value = Mock()
    on_block = Mock()

    capture = SoundDeviceCapture(block_size=4)
    capture.open(on_block)

    indata = np.array([[0.1], [0.2], [0.3], [0.4]], dtype=np.float32)
    capture._stream_callback(indata, 4, None, None)

    samples, frames = on_block.call_args[0]
    assert frames == 4
    np.testing.assert_array_equal(samples, indata[:, 0])
    assert capture.status_flags == 0

    capture._stream_callback(indata, 4, None, "input overflow")
    assert capture.status_flags == 1

    capture.close()
    capture._stream_callback(indata, 4, None, None)
    assert on_block.call_count == 2


def test_synthetic_waveforms():
    tone = SyntheticCapture("tone", amplitude=0.5, block_size=4800, sample_rate=48000)
    block = tone.next_block()
    assert block.dtype == np.float32
    assert block.size == 4800
    assert np.max(np.abs(block)) == pytest.approx(0.5, abs=1e-3)

    silence = SyntheticCapture("silence", block_size=64)
    assert not silence.next_block().any()

    noise = SyntheticCapture("noise", amplitude=0.25, block_size=1024, seed=3)
    assert np.max(np.abs(noise.next_block())) <= 0.25


def test_synthetic_rejects_unknown_waveform():
    with pytest.raises(ValueError, match="Unknown waveform"):
        SyntheticCapture("square")


def test_synthetic_delivers_until_closed():
    capture = SyntheticCapture("tone", block_size=256, realtime=False)
    received = []
    enough = threading.Event()

    def on_block(samples, frames):
        received.append(frames)
        if len(received) >= 5:
            enough.set()

    capture.open(on_block)
    assert capture.is_open
    assert enough.wait(5.0)
    capture.close()

    count = len(received)
    assert not capture.is_open
    assert all(frames == 256 for frames in received)
    # close() joined the thread, so nothing arrives afterwards
    assert len(received) == count
