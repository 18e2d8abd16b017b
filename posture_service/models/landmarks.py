"""
POSTURELAB Posture Service - Landmark Frames

The unit of input: 33 body landmarks from an upstream pose detector, indexed
the MediaPipe way, each with normalized coordinates and a visibility score.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from core.config import settings
from core.exceptions import InvalidFrameError

LANDMARK_COUNT = 33


# ═══════════════════════════════════════════════════════════════════════════════
# ENUMS AND DATA CLASSES
# ═══════════════════════════════════════════════════════════════════════════════

class JointType(Enum):
    """Body landmark indices."""
    NOSE = 0
    LEFT_EYE_INNER = 1
    LEFT_EYE = 2
    LEFT_EYE_OUTER = 3
    RIGHT_EYE_INNER = 4
    RIGHT_EYE = 5
    RIGHT_EYE_OUTER = 6
    LEFT_EAR = 7
    RIGHT_EAR = 8
    MOUTH_LEFT = 9
    MOUTH_RIGHT = 10
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_PINKY = 17
    RIGHT_PINKY = 18
    LEFT_INDEX = 19
    RIGHT_INDEX = 20
    LEFT_THUMB = 21
    RIGHT_THUMB = 22
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28
    LEFT_HEEL = 29
    RIGHT_HEEL = 30
    LEFT_FOOT_INDEX = 31
    RIGHT_FOOT_INDEX = 32


@dataclass(frozen=True)
class Point3D:
    """A bare 3D point; visibility travels separately."""
    x: float
    y: float
    z: float = 0.0
    
    def to_numpy(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=float)


@dataclass(frozen=True)
class Landmark:
    """A single pose landmark with 3D coordinates and visibility."""
    x: float
    y: float
    z: float = 0.0
    visibility: float = 1.0
    
    def is_visible(self, threshold: Optional[float] = None) -> bool:
        if threshold is None:
            threshold = settings.VISIBILITY_THRESHOLD
        return self.visibility >= threshold
    
    def to_point(self) -> Point3D:
        return Point3D(self.x, self.y, self.z)
    
    def to_numpy(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=float)
    
    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "z": self.z, "visibility": self.visibility}


# ═══════════════════════════════════════════════════════════════════════════════
# LANDMARK FRAME
# ═══════════════════════════════════════════════════════════════════════════════

class LandmarkFrame:
    """
    One detector output: the landmarks of a single image plus its timestamp.
    
    A frame may carry fewer than 33 landmarks when the detector only found a
    partial body; lookups past the end return None and every consumer treats
    that the same as an invisible landmark.
    """
    
    def __init__(self, landmarks: Sequence[Landmark], timestamp_ms: float = 0.0):
        self.landmarks: List[Landmark] = list(landmarks)
        self.timestamp_ms = timestamp_ms
    
    @classmethod
    def from_sequence(cls, points: Sequence[Any], timestamp_ms: float = 0.0) -> "LandmarkFrame":
        """
        Build a frame from detector output.
        
        Args:
            points: 33 entries, each a Landmark, a dict with x/y/z/visibility
                keys, or an (x, y, z, visibility) tuple
            timestamp_ms: Frame timestamp in milliseconds
        
        Returns:
            LandmarkFrame
        
        Raises:
            InvalidFrameError: If the entry count is not 33 or an entry
                cannot be read as a landmark
        """
        if len(points) != LANDMARK_COUNT:
            raise InvalidFrameError(
                f"Expected {LANDMARK_COUNT} landmarks, got {len(points)}"
            )
        
        landmarks = []
        for idx, point in enumerate(points):
            try:
                landmarks.append(_coerce_landmark(point))
            except (KeyError, TypeError, ValueError) as e:
                raise InvalidFrameError(f"Landmark {idx} is malformed: {e}") from e
        
        return cls(landmarks, timestamp_ms)
    
    def __len__(self) -> int:
        return len(self.landmarks)
    
    @property
    def is_complete(self) -> bool:
        return len(self.landmarks) >= LANDMARK_COUNT
    
    def get(self, joint: JointType) -> Optional[Landmark]:
        if joint.value >= len(self.landmarks):
            return None
        return self.landmarks[joint.value]
    
    def visible(self, joint: JointType, threshold: Optional[float] = None) -> Optional[Landmark]:
        """Return the landmark only if it clears the visibility threshold."""
        landmark = self.get(joint)
        if landmark is None or not landmark.is_visible(threshold):
            return None
        return landmark
    
    def all_visible(self, *joints: JointType, threshold: Optional[float] = None) -> bool:
        return all(self.visible(j, threshold) is not None for j in joints)
    
    def mean_visibility(self) -> float:
        if not self.landmarks:
            return 0.0
        return float(np.mean([lm.visibility for lm in self.landmarks]))
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp_ms": self.timestamp_ms,
            "landmarks": [lm.to_dict() for lm in self.landmarks],
        }


def _coerce_landmark(point: Any) -> Landmark:
    if isinstance(point, Landmark):
        return point
    if isinstance(point, dict):
        return Landmark(
            x=float(point["x"]),
            y=float(point["y"]),
            z=float(point.get("z", 0.0)),
            visibility=float(point.get("visibility", 1.0)),
        )
    values = [float(v) for v in point]
    if len(values) == 3:
        values.append(1.0)
    if len(values) != 4:
        raise ValueError(f"expected 3 or 4 values, got {len(values)}")
    return Landmark(*values)
