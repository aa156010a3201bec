"""Per-block loudness and peak measurement."""

import math
import time
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from ..config import CalibrationConfig
from ..exceptions import EmptyBlockError, InvalidBlockError

# Floor applied to linear amplitudes before the logarithm
MIN_LINEAR = 1e-7
# Linear amplitude that maps to 0 dB
REFERENCE_LEVEL = 1.0
# Assumed full-scale to SPL mapping, added to the RMS level only
CALIBRATION_OFFSET_DB = 94.0

AudioBlock = Union[np.ndarray, Sequence[float]]


@dataclass(frozen=True)
class Calibration:
    """Constants mapping linear amplitude to a dB SPL-like level."""
    reference_level: float = REFERENCE_LEVEL
    offset_db: float = CALIBRATION_OFFSET_DB
    min_linear: float = MIN_LINEAR
    offset_peak: bool = False

    @classmethod
    def from_config(cls, config: CalibrationConfig) -> 'Calibration':
        return cls(
            reference_level=config.reference_level,
            offset_db=config.offset_db,
            min_linear=config.min_linear,
            offset_peak=config.offset_peak,
        )

    @property
    def floor_rms_db(self) -> float:
        """RMS level reported for a silent block."""
        return 20.0 * math.log10(self.min_linear / self.reference_level) + self.offset_db

    @property
    def floor_peak_db(self) -> float:
        """Peak level reported for a silent block."""
        offset = self.offset_db if self.offset_peak else 0.0
        return 20.0 * math.log10(self.min_linear / self.reference_level) + offset


DEFAULT_CALIBRATION = Calibration()


@dataclass(frozen=True)
class LevelReading:
    """Result of measuring exactly one audio block."""
    rms_db: float
    peak_db: float
    sequence: int = 0
    session: int = 0
    timestamp: float = 0.0


def _as_mono(block: AudioBlock) -> np.ndarray:
    try:
        samples = np.asarray(block)
        if samples.dtype.kind not in 'f':
            samples = samples.astype(np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidBlockError(f"Audio block is not numeric: {e}") from e

    if samples.ndim == 2 and samples.shape[1] == 1:
        samples = samples[:, 0]
    elif samples.ndim != 1:
        raise InvalidBlockError(f"Expected a mono block, got shape {samples.shape}")

    if samples.size == 0:
        raise EmptyBlockError("Audio block contains no samples")
    return samples


def process_block(
    block: AudioBlock,
    calibration: Calibration = DEFAULT_CALIBRATION,
) -> Tuple[float, float]:
    """
    Measure one mono block.

    Args:
        block: Float samples, nominally in [-1.0, 1.0]
        calibration: Reference level, offset and floor to apply

    Returns:
        Tuple of (rms_db, peak_db), both finite

    Raises:
        EmptyBlockError: If the block has no samples
        InvalidBlockError: If the block is multi-channel, non-numeric or has
            non-finite samples
    """
    samples = _as_mono(block)

    peak = float(max(samples.max(), -samples.min()))
    # NaN and inf both surface in the peak without another scan
    if not math.isfinite(peak):
        raise InvalidBlockError("Audio block contains non-finite samples")

    sum_of_squares = float(np.dot(samples, samples))
    if math.isfinite(sum_of_squares):
        rms = math.sqrt(sum_of_squares / samples.size)
    else:
        # Squares overflowed; measure relative to the peak instead
        scaled = samples.astype(np.float64) / peak
        rms = peak * math.sqrt(float(np.dot(scaled, scaled)) / samples.size)

    reference = calibration.reference_level
    floor = calibration.min_linear
    rms_db = 20.0 * math.log10(max(rms, floor) / reference) + calibration.offset_db
    peak_db = 20.0 * math.log10(max(peak, floor) / reference)
    if calibration.offset_peak:
        peak_db += calibration.offset_db

    return rms_db, peak_db


class LevelMeter:
    """Stateless block processor bound to a calibration."""

    def __init__(self, calibration: Optional[Calibration] = None):
        """
        Initialize level meter.

        Args:
            calibration: Calibration constants (defaults to the 94 dB mapping)
        """
        self.calibration = calibration or DEFAULT_CALIBRATION

    def process(self, block: AudioBlock, sequence: int = 0, session: int = 0) -> LevelReading:
        """
        Calculate the reading for one block.

        Args:
            block: Mono float samples
            sequence: Sequence number to stamp on the reading
            session: Session generation that captured the block

        Returns:
            LevelReading with RMS and peak levels in dB
        """
        rms_db, peak_db = process_block(block, self.calibration)
        return LevelReading(
            rms_db=rms_db,
            peak_db=peak_db,
            sequence=sequence,
            session=session,
            timestamp=time.monotonic(),
        )
