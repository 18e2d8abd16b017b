"""
POSTURELAB Posture Service - Baseline Rep Counter

Counts repetitions from one joint coordinate. The first frames calibrate a
neutral baseline; a rep is a move away from it followed by a return, each
confirmed over several consecutive frames, with a cooldown between counts.
"""

import logging
from enum import Enum
from typing import Dict, Optional, Tuple

from core.config import settings
from core.exceptions import ConfigurationError
from .calibration import CalibrationResult, MetricCalibrator, calculate_thresholds
from .exercise_catalog import CountableExerciseDefinition
from .landmarks import JointType, LandmarkFrame

logger = logging.getLogger("posturelab.reps")

COUNTING_JOINTS: Dict[str, Tuple[JointType, Optional[JointType]]] = {
    "nose": (JointType.NOSE, None),
    "shoulder": (JointType.LEFT_SHOULDER, JointType.RIGHT_SHOULDER),
    "hip": (JointType.LEFT_HIP, JointType.RIGHT_HIP),
    "knee": (JointType.LEFT_KNEE, JointType.RIGHT_KNEE),
    "wrist": (JointType.LEFT_WRIST, JointType.RIGHT_WRIST),
    "elbow": (JointType.LEFT_ELBOW, JointType.RIGHT_ELBOW),
}


class RepPhase(Enum):
    """Rep counter phases."""
    CALIBRATING = "calibrating"
    READY = "ready"
    DOWN = "down"
    UP = "up"


def joint_value(
    frame: LandmarkFrame,
    joint: str,
    axis: str,
    mirror: bool = False,
    threshold: Optional[float] = None
) -> Optional[float]:
    """
    Read one coordinate of a counting joint.
    
    Paired joints use the midpoint when both sides are visible and the
    visible side otherwise. Mirroring flips x for selfie cameras.
    
    Returns:
        The coordinate, or None if no side is visible
    """
    first, second = COUNTING_JOINTS[joint]
    a = frame.visible(first, threshold)
    b = frame.visible(second, threshold) if second is not None else None
    
    if a is not None and b is not None:
        value = (getattr(a, axis) + getattr(b, axis)) / 2
    elif a is not None or b is not None:
        value = getattr(a or b, axis)
    else:
        return None
    
    if axis == "x" and mirror:
        value = 1.0 - value
    return value


class BaselineRepCounter:
    """
    Hysteresis rep counter around a calibrated baseline.
    
    On the y axis a rep moves the value up the image (below baseline - delta)
    and back (above baseline - delta/2). On the x axis any excursion beyond
    delta counts, and the return is within delta/2.
    """
    
    def __init__(
        self,
        joint: str,
        axis: str = "y",
        mirror: bool = False,
        delta_threshold: Optional[float] = None,
        debounce_frames: Optional[int] = None,
        cooldown_ms: Optional[float] = None,
        calibration_frames: Optional[int] = None
    ):
        if joint not in COUNTING_JOINTS:
            raise ConfigurationError(f"Unsupported counting joint: {joint!r}")
        self.joint = joint
        self.axis = axis
        self.mirror = mirror
        self.delta = delta_threshold if delta_threshold is not None else settings.REP_DELTA_THRESHOLD
        self.debounce_frames = debounce_frames if debounce_frames is not None else settings.REP_DEBOUNCE_FRAMES
        self.cooldown_ms = cooldown_ms if cooldown_ms is not None else settings.REP_COOLDOWN_MS
        self.calibrator = MetricCalibrator(frame_count=calibration_frames, min_samples=calibration_frames)
        
        self.count = 0
        self.phase = RepPhase.CALIBRATING
        self.baseline: Optional[float] = None
        self._streak = 0
        self._last_count_ms: Optional[float] = None
    
    @classmethod
    def for_exercise(cls, definition: CountableExerciseDefinition, **overrides) -> "BaselineRepCounter":
        options = {
            "joint": definition.counting_joint,
            "axis": definition.counting_axis,
            "mirror": definition.mirror,
            "delta_threshold": definition.delta_threshold,
            "debounce_frames": definition.debounce_frames,
            "cooldown_ms": definition.cooldown_ms,
        }
        options.update(overrides)
        return cls(**options)
    
    @property
    def calibration(self) -> Optional[CalibrationResult]:
        return self.calibrator.result
    
    @property
    def thresholds(self) -> Optional[Tuple[float, float]]:
        if self.baseline is None:
            return None
        return calculate_thresholds(self.baseline, self.delta)
    
    def _moved(self, value: float) -> bool:
        if self.axis == "y":
            return value < self.baseline - self.delta
        return abs(value - self.baseline) > self.delta
    
    def _returned(self, value: float) -> bool:
        if self.axis == "y":
            return value > self.baseline - self.delta / 2
        return abs(value - self.baseline) < self.delta / 2
    
    def update(self, frame: LandmarkFrame) -> bool:
        """Feed one frame. Returns True when this frame completed a rep."""
        value = joint_value(frame, self.joint, self.axis, self.mirror)
        
        if self.phase == RepPhase.CALIBRATING:
            result = self.calibrator.add_sample(value)
            if result is not None:
                self.baseline = result.baseline
                self.phase = RepPhase.READY
                logger.info(f"Rep counter baseline for {self.joint}.{self.axis}: {self.baseline:.3f}")
            return False
        
        if value is None:
            return False
        return self.update_value(value, frame.timestamp_ms)
    
    def update_value(self, value: float, timestamp_ms: float) -> bool:
        """Advance the hysteresis with an already-extracted value."""
        if self.baseline is None:
            return False
        
        if self.phase in (RepPhase.READY, RepPhase.UP):
            if self._moved(value):
                self._streak += 1
                if self._streak >= self.debounce_frames:
                    self.phase = RepPhase.DOWN
                    self._streak = 0
            else:
                self._streak = 0
            return False
        
        # DOWN: waiting for the return
        if not self._returned(value):
            self._streak = 0
            return False
        
        self._streak += 1
        cooled = self._last_count_ms is None or timestamp_ms - self._last_count_ms > self.cooldown_ms
        if self._streak >= self.debounce_frames and cooled:
            self.phase = RepPhase.UP
            self._streak = 0
            self._last_count_ms = timestamp_ms
            self.count += 1
            logger.debug(f"Rep {self.count} counted at {timestamp_ms:.0f}ms")
            return True
        return False
    
    def reset(self, recalibrate: bool = False):
        """Clear the count; optionally discard the baseline as well."""
        self.count = 0
        self._streak = 0
        self._last_count_ms = None
        if recalibrate or self.baseline is None:
            self.calibrator.reset()
            self.baseline = None
            self.phase = RepPhase.CALIBRATING
        else:
            self.phase = RepPhase.READY
