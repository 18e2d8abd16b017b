"""
POSTURELAB Posture Service - Diagnosis Text

Band-keyed text tables for posture items. Selecting text is a pure lookup on
the item's score band; nothing here depends on session state.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple


class ScoreBand(Enum):
    """Six text bands, from ideal to severe."""
    IDEAL = "ideal"
    GOOD = "good"
    MILD = "mild"
    MODERATE = "moderate"
    MARKED = "marked"
    SEVERE = "severe"


# Lower bound of each band, checked in order
BAND_FLOORS: Tuple[Tuple[ScoreBand, int], ...] = (
    (ScoreBand.IDEAL, 90),
    (ScoreBand.GOOD, 80),
    (ScoreBand.MILD, 70),
    (ScoreBand.MODERATE, 55),
    (ScoreBand.MARKED, 40),
    (ScoreBand.SEVERE, 0),
)


def score_band(score: float) -> ScoreBand:
    for band, floor in BAND_FLOORS:
        if score >= floor:
            return band
    return ScoreBand.SEVERE


@dataclass(frozen=True)
class DiagnosisText:
    """Headline, diagnosis template and recommendation for one band."""
    description: str
    diagnosis: str
    recommendation: str
    
    def render(self, value: float) -> "DiagnosisText":
        return DiagnosisText(
            description=self.description,
            diagnosis=self.diagnosis.format(value=value, load=round(value * 2)),
            recommendation=self.recommendation,
        )


_FORWARD_HEAD = {
    ScoreBand.IDEAL: DiagnosisText(
        "Your neck is in an ideal position",
        "Ears and shoulders are well aligned vertically.",
        "Keep your current posture",
    ),
    ScoreBand.GOOD: DiagnosisText(
        "Your neck position is good",
        "The head sits slightly ({value:.1f}cm) forward, within the normal range.",
        "Light chin tuck practice",
    ),
    ScoreBand.MILD: DiagnosisText(
        "Mild forward head tendency",
        "The head sits {value:.1f}cm in front of the shoulders. Long periods may tire the neck.",
        "Chin tucks and posture correction",
    ),
    ScoreBand.MODERATE: DiagnosisText(
        "Forward head posture, correction needed",
        "The head sits {value:.1f}cm forward, adding roughly {load}kg of load to the neck.",
        "Daily forward head correction exercises",
    ),
    ScoreBand.MARKED: DiagnosisText(
        "Marked forward head posture",
        "The head sits {value:.1f}cm forward, placing considerable strain on the neck and shoulders.",
        "Focused correction exercises",
    ),
    ScoreBand.SEVERE: DiagnosisText(
        "Severe forward head posture, active correction needed",
        "The head sits {value:.1f}cm forward of the shoulders. Neck and upper back are under heavy strain.",
        "Professional consultation with focused correction exercises",
    ),
}

_SHOULDER_TILT = {
    ScoreBand.IDEAL: DiagnosisText(
        "Your shoulders are balanced",
        "Left and right shoulder heights are nearly identical.",
        "Maintain current condition",
    ),
    ScoreBand.GOOD: DiagnosisText(
        "Shoulder balance is good",
        "Shoulder height difference of {value:.1f}cm is within the normal range.",
        "Rounded shoulder correction",
    ),
    ScoreBand.MILD: DiagnosisText(
        "Shoulders are slightly uneven",
        "Shoulder height difference of {value:.1f}cm. One side may be carrying more tension.",
        "Rounded shoulder correction",
    ),
    ScoreBand.MODERATE: DiagnosisText(
        "Shoulders are uneven",
        "Shoulder height difference of {value:.1f}cm. A habit of loading one shoulder is likely.",
        "Shoulder balance exercises",
    ),
    ScoreBand.MARKED: DiagnosisText(
        "Shoulder balance is clearly off",
        "Shoulder height difference of {value:.1f}cm is a considerable imbalance.",
        "Professional consultation recommended",
    ),
    ScoreBand.SEVERE: DiagnosisText(
        "Shoulder balance is severely off",
        "Shoulder height difference of {value:.1f}cm may affect spinal alignment.",
        "Professional consultation recommended",
    ),
}

_PELVIS_TILT = {
    ScoreBand.IDEAL: DiagnosisText(
        "Your pelvis is balanced",
        "Left and right hip heights are nearly identical.",
        "Maintain current condition",
    ),
    ScoreBand.GOOD: DiagnosisText(
        "Pelvic balance is good",
        "Hip height difference of {value:.1f}cm is within the normal range.",
        "Pelvic stretching",
    ),
    ScoreBand.MILD: DiagnosisText(
        "Pelvis is slightly tilted",
        "Hip height difference of {value:.1f}cm. Leg crossing or leaning to one side may be the cause.",
        "Pelvic stretching",
    ),
    ScoreBand.MODERATE: DiagnosisText(
        "Pelvis is tilted",
        "Hip height difference of {value:.1f}cm. Check habits such as standing on one leg.",
        "Pelvic correction exercises",
    ),
    ScoreBand.MARKED: DiagnosisText(
        "Pelvic balance is clearly off",
        "Hip height difference of {value:.1f}cm is a considerable imbalance and can cause lower back pain.",
        "Professional consultation recommended",
    ),
    ScoreBand.SEVERE: DiagnosisText(
        "Pelvic balance is severely off",
        "Hip height difference of {value:.1f}cm. Lower back and gait are likely affected.",
        "Professional consultation recommended",
    ),
}

_KNEE_NEUTRAL = {
    ScoreBand.IDEAL: DiagnosisText(
        "Knees are well aligned",
        "Knee angle of {value:.0f} degrees is ideal.",
        "Maintain current condition",
    ),
    ScoreBand.GOOD: DiagnosisText(
        "Knee alignment is good",
        "Knee angle of {value:.0f} degrees is within the normal range.",
        "Lower body stretching",
    ),
}

_KNEE_FLEXED = {
    ScoreBand.MILD: DiagnosisText(
        "Knees are slightly bent",
        "Knee angle of {value:.0f} degrees; the legs are not fully straight.",
        "Lower body stretching",
    ),
    ScoreBand.MODERATE: DiagnosisText(
        "Knees are bent",
        "Knee angle of {value:.0f} degrees; the knees do not fully extend.",
        "Lower body strengthening",
    ),
    ScoreBand.MARKED: DiagnosisText(
        "Knees are clearly bent",
        "Knee angle of {value:.0f} degrees is well short of straight. Leg weakness is possible.",
        "Professional consultation recommended",
    ),
    ScoreBand.SEVERE: DiagnosisText(
        "Knees are heavily bent",
        "Knee angle of {value:.0f} degrees is considerably flexed. Leg weakness is suspected.",
        "Professional consultation recommended",
    ),
}

_KNEE_HYPEREXTENDED = {
    ScoreBand.MILD: DiagnosisText(
        "Knees lean slightly backwards",
        "Knee angle of {value:.0f} degrees; a slight hyperextension tendency.",
        "Knee stability exercises",
    ),
    ScoreBand.MODERATE: DiagnosisText(
        "Knees are pushed backwards",
        "Knee angle of {value:.0f} degrees shows a hyperextension tendency.",
        "Knee stability exercises",
    ),
    ScoreBand.MARKED: DiagnosisText(
        "Knee hyperextension",
        "Knee angle of {value:.0f} degrees is clearly hyperextended.",
        "Professional consultation recommended",
    ),
    ScoreBand.SEVERE: DiagnosisText(
        "Severe knee hyperextension",
        "Knee angle of {value:.0f} degrees is excessively extended and strains the ligaments.",
        "Professional consultation recommended",
    ),
}

# Knee readings below this are described as flexion, above as hyperextension
KNEE_NEUTRAL_ANGLE = 178.0

DIAGNOSIS_TABLES: Dict[str, Dict[ScoreBand, DiagnosisText]] = {
    "forward_head": _FORWARD_HEAD,
    "shoulder_tilt": _SHOULDER_TILT,
    "pelvis_tilt": _PELVIS_TILT,
}


def diagnose(metric_id: str, value: float, score: float) -> Optional[DiagnosisText]:
    """
    Select and render the text for a metric reading.
    
    Args:
        metric_id: Posture metric id
        value: Raw metric value (cm or degrees)
        score: Item score the value earned
    
    Returns:
        Rendered DiagnosisText, or None for a metric with no table
    """
    band = score_band(score)
    
    if metric_id == "knee_angle":
        if band in _KNEE_NEUTRAL:
            return _KNEE_NEUTRAL[band].render(value)
        table = _KNEE_FLEXED if value < KNEE_NEUTRAL_ANGLE else _KNEE_HYPEREXTENDED
        return table[band].render(value)
    
    table = DIAGNOSIS_TABLES.get(metric_id)
    if table is None:
        return None
    return table[band].render(value)


_SCORE_MESSAGES: Tuple[Tuple[int, str, str], ...] = (
    (90, "Excellent posture!", "You are holding an ideal posture"),
    (80, "Good posture", "A little attention and it will be perfect"),
    (70, "Fairly good", "There are a few things to improve"),
    (60, "Needs improvement", "Start with stretching and posture correction"),
    (50, "Needs attention", "Active posture correction is needed"),
    (0, "Correction is urgent", "Start exercising alongside a professional consultation"),
)


def score_message(score: float) -> Tuple[str, str]:
    """Headline and sub-line for an overall score."""
    for floor, text, sub in _SCORE_MESSAGES:
        if score >= floor:
            return text, sub
    return _SCORE_MESSAGES[-1][1], _SCORE_MESSAGES[-1][2]
