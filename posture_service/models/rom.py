"""
POSTURELAB Posture Service - Range of Motion

Compares single joint angles against normal ranges.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from shared.utils import round_half_up
from .joint_angles import JointAngles


class ROMStatus(Enum):
    NORMAL = "normal"
    LIMITED = "limited"
    EXCESSIVE = "excessive"


class BodySide(Enum):
    LEFT = "left"
    RIGHT = "right"
    CENTER = "center"


@dataclass(frozen=True)
class NormalRange:
    min: float
    max: float
    name: str


NORMAL_ROM: Dict[str, NormalRange] = {
    "trunk": NormalRange(0, 15, "Trunk lean"),
    "hip": NormalRange(160, 180, "Hip"),
    "knee": NormalRange(170, 180, "Knee"),
    "shoulder": NormalRange(10, 45, "Shoulder"),
}

# Range reported for a joint with no reference data
FALLBACK_RANGE: Tuple[float, float] = (0, 180)


@dataclass(frozen=True)
class ROMResult:
    """ROM classification of one joint reading."""
    joint: str
    side: BodySide
    measured: float
    normal_min: float
    normal_max: float
    status: ROMStatus
    deviation: float
    message: str
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "joint": self.joint,
            "side": self.side.value,
            "measured": self.measured,
            "normal_min": self.normal_min,
            "normal_max": self.normal_max,
            "status": self.status.value,
            "deviation": self.deviation,
            "message": self.message,
        }


def get_rom_status(measured: float, minimum: float, maximum: float) -> ROMStatus:
    if measured < minimum:
        return ROMStatus.LIMITED
    if measured > maximum:
        return ROMStatus.EXCESSIVE
    return ROMStatus.NORMAL


def _rom_message(joint_name: str, side: BodySide, status: ROMStatus, deviation: float) -> str:
    prefix = {BodySide.LEFT: "Left ", BodySide.RIGHT: "Right ", BodySide.CENTER: ""}[side]
    if status == ROMStatus.NORMAL:
        return f"{prefix}{joint_name} within normal range"
    verb = "limited" if status == ROMStatus.LIMITED else "excessive"
    return f"{prefix}{joint_name} {verb} by {abs(deviation):g} degrees"


def analyze_rom(
    joint: str,
    side: BodySide,
    measured: float,
    normal_range: Optional[NormalRange] = None
) -> ROMResult:
    """
    Classify a joint reading against its normal range.
    
    Args:
        joint: Joint key (trunk, hip, knee, shoulder)
        side: Which side was measured
        measured: Angle in degrees
        normal_range: Override for the joint's reference range
    
    Returns:
        ROMResult; deviation is negative below the range, positive above,
        0 inside it
    """
    reference = normal_range or NORMAL_ROM.get(joint)
    if reference is None:
        return ROMResult(
            joint=joint,
            side=side,
            measured=measured,
            normal_min=FALLBACK_RANGE[0],
            normal_max=FALLBACK_RANGE[1],
            status=ROMStatus.NORMAL,
            deviation=0.0,
            message="no reference data",
        )
    
    status = get_rom_status(measured, reference.min, reference.max)
    deviation = 0.0
    if status == ROMStatus.LIMITED:
        deviation = measured - reference.min
    elif status == ROMStatus.EXCESSIVE:
        deviation = measured - reference.max
    deviation = round_half_up(deviation, 1)
    
    return ROMResult(
        joint=joint,
        side=side,
        measured=measured,
        normal_min=reference.min,
        normal_max=reference.max,
        status=status,
        deviation=deviation,
        message=_rom_message(reference.name, side, status, deviation),
    )


def analyze_all_rom(angles: JointAngles) -> List[ROMResult]:
    """Seven readings: trunk plus left/right hip, knee and shoulder."""
    return [
        analyze_rom("trunk", BodySide.CENTER, angles.trunk),
        analyze_rom("hip", BodySide.LEFT, angles.hip_left),
        analyze_rom("hip", BodySide.RIGHT, angles.hip_right),
        analyze_rom("knee", BodySide.LEFT, angles.knee_left),
        analyze_rom("knee", BodySide.RIGHT, angles.knee_right),
        analyze_rom("shoulder", BodySide.LEFT, angles.shoulder_left),
        analyze_rom("shoulder", BodySide.RIGHT, angles.shoulder_right),
    ]


def calculate_rom_score(results: Sequence[ROMResult]) -> int:
    """Percentage of readings in their normal range."""
    if not results:
        return 100
    normal = sum(1 for r in results if r.status == ROMStatus.NORMAL)
    return int(round_half_up(normal / len(results) * 100))
