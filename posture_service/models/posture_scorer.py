"""
POSTURELAB Posture Service - Posture Scoring Engine

Maps physical posture metrics to 0-100 item scores through piecewise-linear
breakpoint curves, then combines the items into a weighted overall score
with composite penalties for correlated problems.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from core.exceptions import ConfigurationError
from shared.utils import clamp, log_execution_time, round_half_up
from .diagnosis import diagnose, score_message
from .geometry import PostureMetrics, extract_posture_metrics
from .landmarks import LandmarkFrame
from .smoothing import AngleSmoother

logger = logging.getLogger("posturelab.scorer")


# ═══════════════════════════════════════════════════════════════════════════════
# ENUMS AND DATA CLASSES
# ═══════════════════════════════════════════════════════════════════════════════

class Grade(Enum):
    """Score grade."""
    GOOD = "good"
    WARNING = "warning"
    DANGER = "danger"


class ScoringCurve:
    """
    A piecewise-linear score curve over ordered (value, score) breakpoints.
    
    Between breakpoints the score is interpolated linearly. Outside the
    table the end scores hold, which gives every curve its floor.
    """
    
    def __init__(self, breakpoints: Sequence[Tuple[float, float]]):
        if len(breakpoints) < 2:
            raise ConfigurationError("A scoring curve needs at least two breakpoints")
        values = [v for v, _ in breakpoints]
        if any(b <= a for a, b in zip(values, values[1:])):
            raise ConfigurationError("Breakpoint values must be strictly increasing")
        self.breakpoints: List[Tuple[float, float]] = [(float(v), float(s)) for v, s in breakpoints]
    
    def raw(self, value: float) -> float:
        """Interpolated score before rounding."""
        points = self.breakpoints
        if value <= points[0][0]:
            return points[0][1]
        if value >= points[-1][0]:
            return points[-1][1]
        
        for (x0, s0), (x1, s1) in zip(points, points[1:]):
            if x0 <= value <= x1:
                ratio = (value - x0) / (x1 - x0)
                return s0 + (s1 - s0) * ratio
        return points[-1][1]
    
    def evaluate(self, value: float) -> int:
        return int(round_half_up(self.raw(value)))


# cm of ear offset in front of the shoulders
FORWARD_HEAD_CURVE = ScoringCurve([
    (0.0, 100), (1.0, 95), (2.0, 88), (2.5, 80), (3.0, 70), (4.0, 55), (5.0, 40), (10.0, 10),
])

# cm of left/right height difference; shared by shoulders and pelvis
TILT_CURVE = ScoringCurve([
    (0.0, 100), (0.3, 97), (0.5, 93), (0.8, 85), (1.0, 75), (1.5, 58), (2.0, 45), (5.0, 15),
])

# degrees, peaking at 178 with flexion penalised harder than hyperextension
KNEE_CURVE = ScoringCurve([
    (150.0, 15), (160.0, 25), (165.0, 52), (170.0, 67), (173.0, 82), (176.0, 92),
    (178.0, 100),
    (180.0, 92), (183.0, 82), (186.0, 67), (198.0, 20),
])


@dataclass(frozen=True)
class MetricDefinition:
    """How one posture metric is named, scored and weighted."""
    metric_id: str
    name: str
    unit: str
    curve: ScoringCurve
    weight: float
    decimals: int = 1


METRIC_DEFINITIONS: Dict[str, MetricDefinition] = {
    "forward_head": MetricDefinition("forward_head", "Forward head", "cm", FORWARD_HEAD_CURVE, 0.35),
    "shoulder_tilt": MetricDefinition("shoulder_tilt", "Shoulder balance", "cm", TILT_CURVE, 0.25),
    "pelvis_tilt": MetricDefinition("pelvis_tilt", "Pelvic balance", "cm", TILT_CURVE, 0.25),
    "knee_angle": MetricDefinition("knee_angle", "Knee alignment", "deg", KNEE_CURVE, 0.15, decimals=0),
}

# Grade thresholds (per item, then overall)
ITEM_GOOD_MIN = 75
ITEM_WARNING_MIN = 55
OVERALL_GOOD_MIN = 85
OVERALL_WARNING_MIN = 65

# Composite penalties
WARNING_PENALTY = 3
DANGER_PENALTY = 5
CORRELATED_TILT_PENALTY = 5
SEVERE_FORWARD_HEAD_SCORE = 50
SEVERE_FORWARD_HEAD_PENALTY = 3


@dataclass(frozen=True)
class AnalysisItem:
    """Scored result for one metric. A new frame produces a new item."""
    id: str
    name: str
    raw_value: float
    unit: str
    score: int
    grade: Grade
    description: str = ""
    diagnosis_text: str = ""
    recommendation_text: str = ""
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "value": self.raw_value,
            "unit": self.unit,
            "score": self.score,
            "grade": self.grade.value,
            "description": self.description,
            "diagnosis": self.diagnosis_text,
            "recommendation": self.recommendation_text,
        }


@dataclass(frozen=True)
class PostureReport:
    """One-shot posture analysis of a frame."""
    overall_score: int
    overall_grade: Grade
    items: List[AnalysisItem] = field(default_factory=list)
    confidence: float = 0.0
    analyzed_at: float = 0.0
    
    @property
    def message(self) -> Tuple[str, str]:
        return score_message(self.overall_score)
    
    def to_dict(self) -> Dict[str, Any]:
        text, sub = self.message
        return {
            "overall_score": self.overall_score,
            "overall_grade": self.overall_grade.value,
            "items": [item.to_dict() for item in self.items],
            "confidence": self.confidence,
            "analyzed_at": self.analyzed_at,
            "message": {"text": text, "sub": sub},
        }


# ═══════════════════════════════════════════════════════════════════════════════
# ITEM SCORING
# ═══════════════════════════════════════════════════════════════════════════════

def score_to_grade(score: float) -> Grade:
    if score >= ITEM_GOOD_MIN:
        return Grade.GOOD
    if score >= ITEM_WARNING_MIN:
        return Grade.WARNING
    return Grade.DANGER


def overall_grade(score: float) -> Grade:
    """Overall grade; a stricter bar than the per-item one."""
    if score >= OVERALL_GOOD_MIN:
        return Grade.GOOD
    if score >= OVERALL_WARNING_MIN:
        return Grade.WARNING
    return Grade.DANGER


def score_item(metric_id: str, value: float) -> AnalysisItem:
    """
    Score a single metric reading.
    
    Args:
        metric_id: One of the METRIC_DEFINITIONS keys
        value: Raw reading in the metric's unit
    
    Returns:
        AnalysisItem with score, grade and band text
    
    Raises:
        ConfigurationError: If the metric id is unknown
    """
    definition = METRIC_DEFINITIONS.get(metric_id)
    if definition is None:
        raise ConfigurationError(f"Unknown posture metric: {metric_id!r}")
    
    score = definition.curve.evaluate(value)
    text = diagnose(metric_id, value, score)
    
    return AnalysisItem(
        id=metric_id,
        name=definition.name,
        raw_value=round_half_up(value, definition.decimals),
        unit=definition.unit,
        score=score,
        grade=score_to_grade(score),
        description=text.description if text else "",
        diagnosis_text=text.diagnosis if text else "",
        recommendation_text=text.recommendation if text else "",
    )


def score_metrics(metrics: PostureMetrics) -> List[AnalysisItem]:
    """Score every canonical metric present; missing metrics are skipped."""
    readings = metrics.to_dict()
    items = []
    for metric_id in METRIC_DEFINITIONS:
        value = readings.get(metric_id)
        if value is None:
            logger.debug(f"Skipping {metric_id}: not measurable in this frame")
            continue
        items.append(score_item(metric_id, value))
    return items


# ═══════════════════════════════════════════════════════════════════════════════
# COMPOSITE SCORE
# ═══════════════════════════════════════════════════════════════════════════════

def calculate_penalties(items: Sequence[AnalysisItem]) -> float:
    """Total composite penalty, applied after the weighted average."""
    by_id = {item.id: item for item in items}
    warning_count = sum(1 for item in items if item.grade == Grade.WARNING)
    danger_count = sum(1 for item in items if item.grade == Grade.DANGER)
    
    penalty = 0.0
    if warning_count >= 2:
        penalty += (warning_count - 1) * WARNING_PENALTY
    if danger_count >= 1:
        penalty += danger_count * DANGER_PENALTY
    
    shoulder = by_id.get("shoulder_tilt")
    pelvis = by_id.get("pelvis_tilt")
    if shoulder and pelvis and shoulder.grade != Grade.GOOD and pelvis.grade != Grade.GOOD:
        penalty += CORRELATED_TILT_PENALTY
    
    forward_head = by_id.get("forward_head")
    if forward_head and forward_head.score < SEVERE_FORWARD_HEAD_SCORE:
        penalty += SEVERE_FORWARD_HEAD_PENALTY
    
    return penalty


def calculate_overall_score(items: Sequence[AnalysisItem]) -> int:
    """
    Weighted average of item scores minus composite penalties.
    
    Weights are renormalised over the items present, so a frame missing a
    metric is scored on what it has. The result is clamped to [0, 100].
    """
    weighted_sum = 0.0
    total_weight = 0.0
    for item in items:
        definition = METRIC_DEFINITIONS.get(item.id)
        weight = definition.weight if definition else 0.25
        weighted_sum += item.score * weight
        total_weight += weight
    
    base_score = weighted_sum / total_weight if total_weight > 0 else 0.0
    base_score -= calculate_penalties(items)
    
    return int(clamp(round_half_up(base_score), 0, 100))


def _smooth_metrics(metrics: PostureMetrics, smoother: AngleSmoother) -> PostureMetrics:
    readings = {name: smoother.smooth(name, value) for name, value in metrics.to_dict().items()}
    return PostureMetrics(**readings)


@log_execution_time
def analyze_posture(
    frame: Optional[LandmarkFrame],
    smoother: Optional[AngleSmoother] = None,
    threshold: Optional[float] = None,
    reference_width_cm: Optional[float] = None
) -> PostureReport:
    """
    Run extraction, scoring and composition for one frame.
    
    Args:
        frame: Landmark frame; None or a partial body yields a zero report
        smoother: Session-owned smoother to stabilise readings across frames
        threshold: Visibility threshold override
        reference_width_cm: Physical shoulder width override
    
    Returns:
        PostureReport
    """
    analyzed_at = time.time()
    if frame is None or not frame.is_complete:
        logger.warning("Posture analysis skipped: incomplete landmark frame")
        return PostureReport(overall_score=0, overall_grade=Grade.DANGER, analyzed_at=analyzed_at)
    
    metrics = extract_posture_metrics(frame, threshold, reference_width_cm)
    if smoother is not None:
        metrics = _smooth_metrics(metrics, smoother)
    
    items = score_metrics(metrics)
    if not items:
        logger.warning("Posture analysis produced no items: key landmarks not visible")
        return PostureReport(overall_score=0, overall_grade=Grade.DANGER, analyzed_at=analyzed_at)
    
    score = calculate_overall_score(items)
    confidence = round_half_up(frame.mean_visibility(), 2)
    logger.debug(f"Posture score {score} from {len(items)} items, confidence {confidence}")
    
    return PostureReport(
        overall_score=score,
        overall_grade=overall_grade(score),
        items=items,
        confidence=confidence,
        analyzed_at=analyzed_at,
    )
