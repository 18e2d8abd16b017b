"""
POSTURELAB Posture Service - Advanced Report

Bundles joint angles with the asymmetry and ROM analyses. Callers that
track a session should pass smoothed angles for stable output.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from shared.utils import log_execution_time, round_half_up
from .asymmetry import (
    AsymmetryResult,
    analyze_all_asymmetry,
    asymmetry_summary,
    calculate_asymmetry_score,
)
from .joint_angles import JointAngles, calculate_joint_angles, format_joint_angles
from .landmarks import LandmarkFrame
from .rom import ROMResult, analyze_all_rom, calculate_rom_score
from .smoothing import AngleSmoother

logger = logging.getLogger("posturelab.advanced")


@dataclass(frozen=True)
class AdvancedReport:
    joint_angles: JointAngles
    asymmetry: List[AsymmetryResult] = field(default_factory=list)
    balance_score: int = 100
    asymmetry_summary: str = ""
    rom: List[ROMResult] = field(default_factory=list)
    rom_score: int = 100
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "joint_angles": self.joint_angles.to_dict(),
            "asymmetry": [r.to_dict() for r in self.asymmetry],
            "balance_score": self.balance_score,
            "asymmetry_summary": self.asymmetry_summary,
            "rom": [r.to_dict() for r in self.rom],
            "rom_score": self.rom_score,
        }


def smooth_joint_angles(angles: JointAngles, smoother: AngleSmoother) -> JointAngles:
    """Run every angle through a session smoother; unmeasured (0) angles hold the trend."""
    smoothed = {}
    for name, value in angles.to_dict().items():
        result = smoother.smooth(name, value if value != 0 else None)
        smoothed[name] = round_half_up(result, 1) if result is not None else 0.0
    return JointAngles(**smoothed)


def build_advanced_report(angles: JointAngles) -> AdvancedReport:
    """Run asymmetry and ROM analysis over an angle bundle."""
    asymmetry = analyze_all_asymmetry(angles)
    rom = analyze_all_rom(angles)
    return AdvancedReport(
        joint_angles=angles,
        asymmetry=asymmetry,
        balance_score=calculate_asymmetry_score(asymmetry),
        asymmetry_summary=asymmetry_summary(asymmetry),
        rom=rom,
        rom_score=calculate_rom_score(rom),
    )


@log_execution_time
def analyze_frame(
    frame: LandmarkFrame,
    smoother: Optional[AngleSmoother] = None,
    threshold: Optional[float] = None
) -> AdvancedReport:
    """Joint angles from a frame, optionally smoothed, then the full report."""
    angles = calculate_joint_angles(frame, threshold)
    if smoother is not None:
        angles = smooth_joint_angles(angles, smoother)
    logger.debug(f"Joint angles:\n{format_joint_angles(angles)}")
    return build_advanced_report(angles)
