"""
POSTURELAB Posture Service - Asymmetry Analysis

Left/right comparison of paired joint angles with severity bands and a
balance score.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Sequence

from shared.utils import round_half_up
from .joint_angles import JointAngles


class DominantSide(Enum):
    LEFT = "left"
    RIGHT = "right"
    BALANCED = "balanced"


class AsymmetrySeverity(Enum):
    MINIMAL = "minimal"
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"


# Differences at or under this many degrees count as balanced
BALANCED_TOLERANCE_DEG = 2.0

SEVERITY_DEDUCTIONS = {
    AsymmetrySeverity.MINIMAL: 0,
    AsymmetrySeverity.MILD: 5,
    AsymmetrySeverity.MODERATE: 15,
    AsymmetrySeverity.SEVERE: 25,
}


@dataclass(frozen=True)
class AsymmetryResult:
    """Left/right comparison of one joint."""
    joint: str
    left_value: float
    right_value: float
    difference: float
    percent_diff: float
    dominant_side: DominantSide
    severity: AsymmetrySeverity
    message: str
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "joint": self.joint,
            "left_value": self.left_value,
            "right_value": self.right_value,
            "difference": self.difference,
            "percent_diff": self.percent_diff,
            "dominant_side": self.dominant_side.value,
            "severity": self.severity.value,
            "message": self.message,
        }


def get_severity(percent_diff: float) -> AsymmetrySeverity:
    if percent_diff < 5:
        return AsymmetrySeverity.MINIMAL
    if percent_diff < 10:
        return AsymmetrySeverity.MILD
    if percent_diff < 20:
        return AsymmetrySeverity.MODERATE
    return AsymmetrySeverity.SEVERE


def analyze_asymmetry(joint: str, left_value: float, right_value: float) -> AsymmetryResult:
    """
    Compare the left and right readings of one joint.
    
    Args:
        joint: Joint name used in the message
        left_value: Left side angle in degrees
        right_value: Right side angle in degrees
    
    Returns:
        AsymmetryResult with values rounded to 1 decimal
    """
    difference = abs(left_value - right_value)
    average = (left_value + right_value) / 2
    percent_diff = difference / average * 100 if average > 0 else 0.0
    
    dominant_side = DominantSide.BALANCED
    if difference > BALANCED_TOLERANCE_DEG:
        dominant_side = DominantSide.LEFT if left_value > right_value else DominantSide.RIGHT
    
    severity = get_severity(percent_diff)
    if severity == AsymmetrySeverity.MINIMAL:
        message = f"{joint} balanced left and right"
    else:
        side = "Left" if left_value > right_value else "Right"
        message = (
            f"{joint}: {side} side larger by {int(round_half_up(difference))} degrees "
            f"({severity.value})"
        )
    
    return AsymmetryResult(
        joint=joint,
        left_value=round_half_up(left_value, 1),
        right_value=round_half_up(right_value, 1),
        difference=round_half_up(difference, 1),
        percent_diff=round_half_up(percent_diff, 1),
        dominant_side=dominant_side,
        severity=severity,
        message=message,
    )


def analyze_all_asymmetry(angles: JointAngles) -> List[AsymmetryResult]:
    """Hip, knee and shoulder pairs. The trunk has no sides."""
    return [
        analyze_asymmetry("Hip", angles.hip_left, angles.hip_right),
        analyze_asymmetry("Knee", angles.knee_left, angles.knee_right),
        analyze_asymmetry("Shoulder", angles.shoulder_left, angles.shoulder_right),
    ]


def calculate_asymmetry_score(results: Sequence[AsymmetryResult]) -> int:
    """Balance score: 100 minus severity deductions, floor 0."""
    if not results:
        return 100
    deduction = sum(SEVERITY_DEDUCTIONS[r.severity] for r in results)
    return max(0, 100 - deduction)


def asymmetry_summary(results: Sequence[AsymmetryResult]) -> str:
    notable = [
        r.joint for r in results
        if r.severity in (AsymmetrySeverity.MODERATE, AsymmetrySeverity.SEVERE)
    ]
    if not notable:
        return "Left/right balance is good."
    return f"Left/right asymmetry found in: {', '.join(notable)}."
