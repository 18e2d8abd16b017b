"""
POSTURELAB Posture Service - Joint Angles

Snapshot of the major joint angles from one frame, computed in 3D. A joint
whose landmarks are not visible reads 0.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from .geometry import angle_at_vertex, midpoint, trunk_tilt
from .landmarks import JointType, LandmarkFrame


@dataclass(frozen=True)
class JointAngles:
    """Joint angle bundle in degrees."""
    trunk: float = 0.0
    hip_left: float = 0.0
    hip_right: float = 0.0
    knee_left: float = 0.0
    knee_right: float = 0.0
    shoulder_left: float = 0.0
    shoulder_right: float = 0.0
    
    def to_dict(self) -> Dict[str, float]:
        return {
            "trunk": self.trunk,
            "hip_left": self.hip_left,
            "hip_right": self.hip_right,
            "knee_left": self.knee_left,
            "knee_right": self.knee_right,
            "shoulder_left": self.shoulder_left,
            "shoulder_right": self.shoulder_right,
        }


# (first, vertex, last) landmark triples per measured angle
_ANGLE_TRIPLES = {
    "hip_left": (JointType.LEFT_SHOULDER, JointType.LEFT_HIP, JointType.LEFT_KNEE),
    "hip_right": (JointType.RIGHT_SHOULDER, JointType.RIGHT_HIP, JointType.RIGHT_KNEE),
    "knee_left": (JointType.LEFT_HIP, JointType.LEFT_KNEE, JointType.LEFT_ANKLE),
    "knee_right": (JointType.RIGHT_HIP, JointType.RIGHT_KNEE, JointType.RIGHT_ANKLE),
    "shoulder_left": (JointType.LEFT_HIP, JointType.LEFT_SHOULDER, JointType.LEFT_ELBOW),
    "shoulder_right": (JointType.RIGHT_HIP, JointType.RIGHT_SHOULDER, JointType.RIGHT_ELBOW),
}


def _triple_angle(frame: LandmarkFrame, name: str, threshold: Optional[float]) -> float:
    first, vertex, last = _ANGLE_TRIPLES[name]
    if not frame.all_visible(first, vertex, last, threshold=threshold):
        return 0.0
    return angle_at_vertex(frame.get(first), frame.get(vertex), frame.get(last))


def calculate_trunk_angle(frame: LandmarkFrame, threshold: Optional[float] = None) -> float:
    """Trunk lean from vertical, from the shoulder and hip midpoints."""
    joints = (JointType.LEFT_SHOULDER, JointType.RIGHT_SHOULDER, JointType.LEFT_HIP, JointType.RIGHT_HIP)
    if not frame.all_visible(*joints, threshold=threshold):
        return 0.0
    
    shoulder_mid = midpoint(frame.get(JointType.LEFT_SHOULDER), frame.get(JointType.RIGHT_SHOULDER))
    hip_mid = midpoint(frame.get(JointType.LEFT_HIP), frame.get(JointType.RIGHT_HIP))
    return trunk_tilt(shoulder_mid, hip_mid)


def calculate_joint_angles(frame: LandmarkFrame, threshold: Optional[float] = None) -> JointAngles:
    """
    Compute the joint angle bundle for one frame.
    
    Hip is shoulder-hip-knee, knee is hip-knee-ankle and shoulder is
    hip-shoulder-elbow. World landmarks give the most faithful angles
    when the detector provides them.
    """
    return JointAngles(
        trunk=calculate_trunk_angle(frame, threshold),
        **{name: _triple_angle(frame, name, threshold) for name in _ANGLE_TRIPLES},
    )


def format_joint_angles(angles: JointAngles) -> str:
    return "\n".join([
        f"Trunk: {angles.trunk:.1f}°",
        f"Hip L/R: {angles.hip_left:.1f}° / {angles.hip_right:.1f}°",
        f"Knee L/R: {angles.knee_left:.1f}° / {angles.knee_right:.1f}°",
        f"Shoulder L/R: {angles.shoulder_left:.1f}° / {angles.shoulder_right:.1f}°",
    ])
