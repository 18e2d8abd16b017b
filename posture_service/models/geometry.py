"""
POSTURELAB Posture Service - Geometry Engine

Stateless angle, distance and midpoint math over landmarks, plus the
distance-based body metrics. Normalized screen distances are converted to
centimetres using the subject's own shoulder width as the ruler, anchored to
a population-average shoulder width.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import numpy as np

from core.config import settings
from .landmarks import JointType, Landmark, LandmarkFrame, Point3D

PointLike = Union[Point3D, Landmark]

# Offset above the shoulder midpoint used as the vertical reference for neck tilt
VERTICAL_REFERENCE_OFFSET = 0.1


# ═══════════════════════════════════════════════════════════════════════════════
# PRIMITIVES
# ═══════════════════════════════════════════════════════════════════════════════

def create_vector(start: PointLike, end: PointLike) -> np.ndarray:
    """Vector from start to end."""
    return np.array([end.x - start.x, end.y - start.y, end.z - start.z], dtype=float)


def normalize_vector(vector: np.ndarray) -> np.ndarray:
    """Unit vector; a zero vector is returned unchanged."""
    length = np.linalg.norm(vector)
    if length == 0:
        return np.zeros_like(vector, dtype=float)
    return vector / length


def distance_2d(a: PointLike, b: PointLike) -> float:
    return math.hypot(b.x - a.x, b.y - a.y)


def distance_3d(a: PointLike, b: PointLike) -> float:
    return float(np.linalg.norm(create_vector(a, b)))


def angle_at_vertex(a: PointLike, b: PointLike, c: PointLike) -> float:
    """
    Calculate angle ABC in 3D from the dot product of BA and BC.
    
    Args:
        a, b, c: Points; b is the vertex
    
    Returns:
        Angle in degrees (0-180) rounded to 1 decimal, or 0 when either
        vector has zero length
    """
    ba = create_vector(b, a)
    bc = create_vector(b, c)
    
    norm_ba = np.linalg.norm(ba)
    norm_bc = np.linalg.norm(bc)
    if norm_ba == 0 or norm_bc == 0:
        return 0.0
    
    cosine_angle = np.dot(ba, bc) / (norm_ba * norm_bc)
    cosine_angle = np.clip(cosine_angle, -1.0, 1.0)
    angle = np.degrees(np.arccos(cosine_angle))
    
    return round(float(angle), 1)


def angle_at_vertex_2d(a: PointLike, b: PointLike, c: PointLike) -> float:
    """
    Screen-plane angle ABC from the difference of the two bearings at b.
    
    Returns:
        Angle in degrees folded into [0, 180]
    """
    radians = math.atan2(c.y - b.y, c.x - b.x) - math.atan2(a.y - b.y, a.x - b.x)
    angle = abs(math.degrees(radians))
    if angle > 180.0:
        angle = 360.0 - angle
    return angle


def midpoint(a: Landmark, b: Landmark) -> Landmark:
    """Componentwise average; visibility is the weaker of the two."""
    return Landmark(
        x=(a.x + b.x) / 2,
        y=(a.y + b.y) / 2,
        z=(a.z + b.z) / 2,
        visibility=min(a.visibility, b.visibility),
    )


def trunk_tilt(shoulder_mid: PointLike, hip_mid: PointLike) -> float:
    """Absolute lean of the hip-to-shoulder segment from vertical, in degrees."""
    dx = shoulder_mid.x - hip_mid.x
    dy = shoulder_mid.y - hip_mid.y
    return round(abs(math.degrees(math.atan2(dx, -dy))), 1)


def normalized_to_cm(
    normalized_distance: float,
    shoulder_width: float,
    reference_width_cm: Optional[float] = None
) -> float:
    """
    Rescale a normalized screen distance to centimetres.
    
    Returns 0 when the shoulder width is 0, since there is no ruler.
    """
    if reference_width_cm is None:
        reference_width_cm = settings.REFERENCE_SHOULDER_WIDTH_CM
    if shoulder_width == 0:
        return 0.0
    return (normalized_distance / shoulder_width) * reference_width_cm


# ═══════════════════════════════════════════════════════════════════════════════
# BODY METRICS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PostureMetrics:
    """Physical posture metrics from one frame; None means not measurable."""
    forward_head: Optional[float] = None   # cm
    shoulder_tilt: Optional[float] = None  # cm
    pelvis_tilt: Optional[float] = None    # cm
    knee_angle: Optional[float] = None     # degrees
    neck_tilt: Optional[float] = None      # degrees
    
    @property
    def is_empty(self) -> bool:
        return all(v is None for v in self.to_dict().values())
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "forward_head": self.forward_head,
            "shoulder_tilt": self.shoulder_tilt,
            "pelvis_tilt": self.pelvis_tilt,
            "knee_angle": self.knee_angle,
            "neck_tilt": self.neck_tilt,
        }


def shoulder_width(frame: LandmarkFrame, threshold: Optional[float] = None) -> Optional[float]:
    """Normalized shoulder width, or None if either shoulder is hidden."""
    left = frame.visible(JointType.LEFT_SHOULDER, threshold)
    right = frame.visible(JointType.RIGHT_SHOULDER, threshold)
    if left is None or right is None:
        return None
    return distance_2d(left, right)


def forward_head_distance(
    frame: LandmarkFrame,
    threshold: Optional[float] = None,
    reference_width_cm: Optional[float] = None
) -> Optional[float]:
    """
    Horizontal ear-to-shoulder offset in centimetres.
    
    Measured from the ear midpoint, so both ears must be visible; a single
    ear sits off-centre and would read as a forward head. Requires both
    shoulders for the ruler.
    """
    width = shoulder_width(frame, threshold)
    left_ear = frame.visible(JointType.LEFT_EAR, threshold)
    right_ear = frame.visible(JointType.RIGHT_EAR, threshold)
    if width is None or left_ear is None or right_ear is None:
        return None
    
    ear = midpoint(left_ear, right_ear)
    shoulder_mid = midpoint(frame.get(JointType.LEFT_SHOULDER), frame.get(JointType.RIGHT_SHOULDER))
    return normalized_to_cm(abs(ear.x - shoulder_mid.x), width, reference_width_cm)


def _height_difference(
    frame: LandmarkFrame,
    left_joint: JointType,
    right_joint: JointType,
    threshold: Optional[float],
    reference_width_cm: Optional[float]
) -> Optional[float]:
    width = shoulder_width(frame, threshold)
    left = frame.visible(left_joint, threshold)
    right = frame.visible(right_joint, threshold)
    if width is None or left is None or right is None:
        return None
    return normalized_to_cm(abs(left.y - right.y), width, reference_width_cm)


def shoulder_tilt(
    frame: LandmarkFrame,
    threshold: Optional[float] = None,
    reference_width_cm: Optional[float] = None
) -> Optional[float]:
    """Left/right shoulder height difference in centimetres."""
    return _height_difference(
        frame, JointType.LEFT_SHOULDER, JointType.RIGHT_SHOULDER, threshold, reference_width_cm
    )


def pelvis_tilt(
    frame: LandmarkFrame,
    threshold: Optional[float] = None,
    reference_width_cm: Optional[float] = None
) -> Optional[float]:
    """Left/right hip height difference in centimetres."""
    return _height_difference(
        frame, JointType.LEFT_HIP, JointType.RIGHT_HIP, threshold, reference_width_cm
    )


def knee_angle(frame: LandmarkFrame, threshold: Optional[float] = None) -> Optional[float]:
    """Mean screen-plane knee angle over whichever legs are fully visible."""
    sides = (
        (JointType.LEFT_HIP, JointType.LEFT_KNEE, JointType.LEFT_ANKLE),
        (JointType.RIGHT_HIP, JointType.RIGHT_KNEE, JointType.RIGHT_ANKLE),
    )
    angles = []
    for hip, knee, ankle in sides:
        if frame.all_visible(hip, knee, ankle, threshold=threshold):
            angles.append(angle_at_vertex_2d(frame.get(hip), frame.get(knee), frame.get(ankle)))
    
    if not angles:
        return None
    return sum(angles) / len(angles)


def neck_tilt(frame: LandmarkFrame, threshold: Optional[float] = None) -> Optional[float]:
    """Angle between vertical and the shoulder-midpoint-to-nose line."""
    nose = frame.visible(JointType.NOSE, threshold)
    if nose is None or shoulder_width(frame, threshold) is None:
        return None
    
    center = midpoint(frame.get(JointType.LEFT_SHOULDER), frame.get(JointType.RIGHT_SHOULDER))
    vertical = Point3D(center.x, center.y - VERTICAL_REFERENCE_OFFSET, center.z)
    return angle_at_vertex_2d(vertical, center, nose)


def extract_posture_metrics(
    frame: LandmarkFrame,
    threshold: Optional[float] = None,
    reference_width_cm: Optional[float] = None
) -> PostureMetrics:
    """Compute every body metric the frame supports."""
    return PostureMetrics(
        forward_head=forward_head_distance(frame, threshold, reference_width_cm),
        shoulder_tilt=shoulder_tilt(frame, threshold, reference_width_cm),
        pelvis_tilt=pelvis_tilt(frame, threshold, reference_width_cm),
        knee_angle=knee_angle(frame, threshold),
        neck_tilt=neck_tilt(frame, threshold),
    )
