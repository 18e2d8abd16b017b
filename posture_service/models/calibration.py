"""
POSTURELAB Posture Service - Calibration

Turns a short warm-up burst of metric samples into a baseline. The baseline
is the median, so a single bad frame cannot drag it; the spread is the
population standard deviation. An under-confident calibration is flagged,
never raised.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from core.config import settings
from core.exceptions import ConfigurationError

logger = logging.getLogger("posturelab.calibration")


@dataclass(frozen=True)
class CalibrationResult:
    """Calibrated baseline for one metric. Immutable once produced."""
    baseline: float
    sample_count: int
    is_valid: bool
    std_dev: float
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "baseline": self.baseline,
            "sample_count": self.sample_count,
            "is_valid": self.is_valid,
            "std_dev": self.std_dev,
        }


# ═══════════════════════════════════════════════════════════════════════════════
# STATISTICS HELPERS
# ═══════════════════════════════════════════════════════════════════════════════

def calculate_median(values: Sequence[float]) -> float:
    """Median; averages the two middle values for even counts, 0 when empty."""
    if len(values) == 0:
        return 0.0
    return float(np.median(values))


def calculate_mean(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.mean(values))


def calculate_std_dev(values: Sequence[float]) -> float:
    """Population standard deviation, 0 when empty."""
    if len(values) == 0:
        return 0.0
    return float(np.std(values))


def remove_outliers(values: Sequence[float]) -> List[float]:
    """
    Drop samples outside [Q1 - 1.5*IQR, Q3 + 1.5*IQR].
    
    Quartiles are taken by index into the sorted samples. Fewer than four
    samples are returned unchanged. Input order is preserved.
    """
    values = list(values)
    if len(values) < 4:
        return values
    
    ordered = sorted(values)
    q1 = ordered[int(len(ordered) * 0.25)]
    q3 = ordered[int(len(ordered) * 0.75)]
    iqr = q3 - q1
    
    lower = q1 - 1.5 * iqr
    upper = q3 + 1.5 * iqr
    return [v for v in values if lower <= v <= upper]


def smooth_series(values: Sequence[float], window_size: int = 3) -> List[float]:
    """Centred moving average; the window shrinks at the edges."""
    values = list(values)
    if len(values) < window_size:
        return values
    
    half_before = window_size // 2
    half_after = window_size - half_before
    result = []
    for i in range(len(values)):
        start = max(0, i - half_before)
        end = min(len(values), i + half_after)
        result.append(calculate_mean(values[start:end]))
    return result


# ═══════════════════════════════════════════════════════════════════════════════
# CALIBRATION
# ═══════════════════════════════════════════════════════════════════════════════

def calculate_calibration(
    samples: Sequence[float],
    min_samples: Optional[int] = None,
    max_std_dev: Optional[float] = None,
    default_baseline: Optional[float] = None
) -> CalibrationResult:
    """
    Compute a baseline from warm-up samples.
    
    Args:
        samples: Raw metric values from the warm-up window
        min_samples: Samples needed for a valid result
        max_std_dev: Largest spread accepted as a steady hold
        default_baseline: Baseline used when there are no samples at all
    
    Returns:
        CalibrationResult; is_valid is False when there were too few
        samples or the subject moved too much
    """
    if min_samples is None:
        min_samples = settings.CALIBRATION_MIN_SAMPLES
    if max_std_dev is None:
        max_std_dev = settings.CALIBRATION_MAX_STD_DEV
    if default_baseline is None:
        default_baseline = settings.CALIBRATION_DEFAULT_BASELINE
    if min_samples < 1:
        raise ConfigurationError(f"min_samples must be at least 1, got {min_samples}")
    
    count = len(samples)
    if count < min_samples:
        baseline = calculate_median(samples) if count > 0 else default_baseline
        std_dev = calculate_std_dev(samples)
        logger.warning(
            f"Calibration under-sampled: {count}/{min_samples} samples, baseline={baseline:.4f}"
        )
        return CalibrationResult(
            baseline=baseline,
            sample_count=count,
            is_valid=False,
            std_dev=std_dev,
        )
    
    baseline = calculate_median(samples)
    std_dev = calculate_std_dev(samples)
    is_valid = std_dev <= max_std_dev
    if not is_valid:
        logger.warning(
            f"Calibration unsteady: std_dev={std_dev:.4f} exceeds {max_std_dev}"
        )
    
    return CalibrationResult(
        baseline=baseline,
        sample_count=count,
        is_valid=is_valid,
        std_dev=std_dev,
    )


def calculate_thresholds(baseline: float, delta: float) -> Tuple[float, float]:
    """
    Hysteresis thresholds around a baseline.
    
    Returns:
        (action_threshold, return_threshold): baseline - delta to register
        the movement, baseline - delta/2 to register the return
    """
    return baseline - delta, baseline - delta / 2


class MetricCalibrator:
    """
    Collects samples for one metric over a fixed number of frames.
    
    Frames where the metric could not be measured still use up the window
    but add no sample.
    """
    
    def __init__(
        self,
        frame_count: Optional[int] = None,
        min_samples: Optional[int] = None,
        max_std_dev: Optional[float] = None,
        default_baseline: Optional[float] = None
    ):
        self.min_samples = min_samples if min_samples is not None else settings.CALIBRATION_MIN_SAMPLES
        self.frame_count = frame_count if frame_count is not None else self.min_samples
        if self.frame_count < 1:
            raise ConfigurationError(f"frame_count must be at least 1, got {self.frame_count}")
        
        self.max_std_dev = max_std_dev
        self.default_baseline = default_baseline
        self.samples: List[float] = []
        self.frames_seen = 0
        self._result: Optional[CalibrationResult] = None
    
    @property
    def is_complete(self) -> bool:
        return self._result is not None
    
    @property
    def result(self) -> Optional[CalibrationResult]:
        return self._result
    
    def add_sample(self, value: Optional[float]) -> Optional[CalibrationResult]:
        """Feed one frame's reading. Returns the result once the window closes."""
        if self._result is not None:
            return self._result
        
        self.frames_seen += 1
        if value is not None:
            self.samples.append(value)
        
        if self.frames_seen >= self.frame_count:
            self._result = calculate_calibration(
                self.samples,
                min_samples=self.min_samples,
                max_std_dev=self.max_std_dev,
                default_baseline=self.default_baseline,
            )
            logger.info(
                f"Calibration finished: baseline={self._result.baseline:.4f}, "
                f"samples={self._result.sample_count}, valid={self._result.is_valid}"
            )
        return self._result
    
    def reset(self):
        """Discard collected samples to re-calibrate."""
        self.samples = []
        self.frames_seen = 0
        self._result = None
