"""
POSTURELAB Posture Service - Pose Catalog

Target poses defined as closed sets of predicate kinds, evaluated by one
interpreter. A pose matches when every one of its predicates holds.

Predicate kinds:
- angle_range: the angle at a vertex landmark lies within [min, max]
- position_threshold: a landmark coordinate, optionally relative to another
  landmark, compares against a value
- visibility_gate: a set of landmarks is visible
"""

import logging
from dataclasses import dataclass
from typing import Annotated, Any, Dict, List, Literal, Optional, Protocol, Sequence, Union

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from core.config import settings
from core.exceptions import ConfigurationError
from .geometry import angle_at_vertex
from .landmarks import JointType, LandmarkFrame

logger = logging.getLogger("posturelab.poses")


def _joint_name(value: Any) -> str:
    name = str(value).upper()
    if name not in JointType.__members__:
        raise ValueError(f"unknown landmark {value!r}")
    return name


def _optional_joint_name(value: Any) -> Optional[str]:
    return None if value is None else _joint_name(value)


# ═══════════════════════════════════════════════════════════════════════════════
# PREDICATES
# ═══════════════════════════════════════════════════════════════════════════════

class AngleRange(BaseModel):
    """Angle first-vertex-last, in degrees, within [min, max]."""
    kind: Literal["angle_range"] = "angle_range"
    first: str
    vertex: str
    last: str
    min: float = Field(ge=0, le=180)
    max: float = Field(ge=0, le=180)
    
    normalize_joints = field_validator("first", "vertex", "last", mode="before")(_joint_name)
    
    @model_validator(mode="after")
    def check_bounds(self):
        if self.min > self.max:
            raise ValueError(f"min {self.min} is greater than max {self.max}")
        return self
    
    def evaluate(self, frame: LandmarkFrame, threshold: float) -> bool:
        joints = (JointType[self.first], JointType[self.vertex], JointType[self.last])
        if not frame.all_visible(*joints, threshold=threshold):
            return False
        angle = angle_at_vertex(*(frame.get(j) for j in joints))
        return self.min <= angle <= self.max


class PositionThreshold(BaseModel):
    """
    Coordinate comparison for one landmark.
    
    With `relative_to`, the reference landmark's coordinate is subtracted
    first. Image y grows downwards, so "wrist above shoulder" is
    y relative to the shoulder `lt` 0.
    """
    kind: Literal["position_threshold"] = "position_threshold"
    landmark: str
    axis: Literal["x", "y", "z"] = "y"
    op: Literal["lt", "gt", "abs_lt", "abs_gt"] = "lt"
    value: float = 0.0
    relative_to: Optional[str] = None
    
    normalize_joints = field_validator("landmark", "relative_to", mode="before")(_optional_joint_name)
    
    def evaluate(self, frame: LandmarkFrame, threshold: float) -> bool:
        target = frame.visible(JointType[self.landmark], threshold)
        if target is None:
            return False
        
        measured = getattr(target, self.axis)
        if self.relative_to is not None:
            reference = frame.visible(JointType[self.relative_to], threshold)
            if reference is None:
                return False
            measured -= getattr(reference, self.axis)
        
        if self.op == "lt":
            return measured < self.value
        if self.op == "gt":
            return measured > self.value
        if self.op == "abs_lt":
            return abs(measured) < self.value
        return abs(measured) > self.value


class VisibilityGate(BaseModel):
    """Every listed landmark clears the visibility threshold."""
    kind: Literal["visibility_gate"] = "visibility_gate"
    landmarks: List[str] = Field(min_length=1)
    min_visibility: Optional[float] = Field(default=None, ge=0, le=1)
    
    @field_validator("landmarks", mode="before")
    @classmethod
    def normalize_joints(cls, value):
        return [_joint_name(v) for v in value]
    
    def evaluate(self, frame: LandmarkFrame, threshold: float) -> bool:
        gate = self.min_visibility if self.min_visibility is not None else threshold
        return frame.all_visible(*(JointType[name] for name in self.landmarks), threshold=gate)


PosePredicate = Annotated[
    Union[AngleRange, PositionThreshold, VisibilityGate],
    Field(discriminator="kind"),
]


class PoseDefinition(BaseModel):
    """A named target pose and how long it must be held."""
    name: str
    hold_time: int = Field(default=3, ge=1)
    predicates: List[PosePredicate] = Field(min_length=1)
    
    def matches(self, frame: LandmarkFrame, threshold: Optional[float] = None) -> bool:
        if threshold is None:
            threshold = settings.VISIBILITY_THRESHOLD
        return all(p.evaluate(frame, threshold) for p in self.predicates)


def parse_pose_definitions(data: Sequence[Dict[str, Any]]) -> List[PoseDefinition]:
    """
    Validate raw pose definitions.
    
    Raises:
        ConfigurationError: If any definition is malformed
    """
    try:
        return [PoseDefinition.model_validate(item) for item in data]
    except ValidationError as e:
        logger.error(f"Invalid pose definition: {e}")
        raise ConfigurationError(f"Invalid pose definition: {e}") from e


# ═══════════════════════════════════════════════════════════════════════════════
# CLASSIFIER
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PoseMatch:
    pose_name: str
    pose_index: int


class PoseClassifier(Protocol):
    """Anything that can name the pose in a frame."""
    
    def classify(self, frame: LandmarkFrame) -> Optional[PoseMatch]:
        ...


class PredicatePoseClassifier:
    """Returns the first pose in catalog order whose predicates all hold."""
    
    def __init__(self, poses: Sequence[PoseDefinition], threshold: Optional[float] = None):
        self.poses = list(poses)
        self.threshold = threshold if threshold is not None else settings.VISIBILITY_THRESHOLD
    
    def classify(self, frame: LandmarkFrame) -> Optional[PoseMatch]:
        for index, pose in enumerate(self.poses):
            if pose.matches(frame, self.threshold):
                return PoseMatch(pose_name=pose.name, pose_index=index)
        return None


# ═══════════════════════════════════════════════════════════════════════════════
# BUILT-IN POSES
# ═══════════════════════════════════════════════════════════════════════════════

def _both_sides(predicate: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Mirror a left-side predicate onto the right side."""
    mirrored = {
        key: (value.replace("LEFT_", "RIGHT_") if isinstance(value, str) else value)
        for key, value in predicate.items()
    }
    return [predicate, mirrored]


_UPPER_BODY = {"kind": "visibility_gate", "landmarks": [
    "LEFT_SHOULDER", "RIGHT_SHOULDER", "LEFT_ELBOW", "RIGHT_ELBOW", "LEFT_WRIST", "RIGHT_WRIST",
]}

Y_RAISE = {
    "name": "Y raise",
    "hold_time": 3,
    "predicates": [
        _UPPER_BODY,
        *_both_sides({"kind": "angle_range", "first": "LEFT_HIP", "vertex": "LEFT_SHOULDER",
                      "last": "LEFT_ELBOW", "min": 130, "max": 180}),
        *_both_sides({"kind": "position_threshold", "landmark": "LEFT_WRIST", "axis": "y",
                      "op": "lt", "value": -0.15, "relative_to": "LEFT_SHOULDER"}),
    ],
}

T_RAISE = {
    "name": "T raise",
    "hold_time": 3,
    "predicates": [
        _UPPER_BODY,
        *_both_sides({"kind": "angle_range", "first": "LEFT_HIP", "vertex": "LEFT_SHOULDER",
                      "last": "LEFT_ELBOW", "min": 70, "max": 115}),
        *_both_sides({"kind": "position_threshold", "landmark": "LEFT_WRIST", "axis": "y",
                      "op": "abs_lt", "value": 0.08, "relative_to": "LEFT_SHOULDER"}),
    ],
}

W_RAISE = {
    "name": "W raise",
    "hold_time": 3,
    "predicates": [
        _UPPER_BODY,
        *_both_sides({"kind": "angle_range", "first": "LEFT_SHOULDER", "vertex": "LEFT_ELBOW",
                      "last": "LEFT_WRIST", "min": 50, "max": 120}),
        *_both_sides({"kind": "position_threshold", "landmark": "LEFT_WRIST", "axis": "y",
                      "op": "lt", "value": 0.0, "relative_to": "LEFT_ELBOW"}),
        *_both_sides({"kind": "position_threshold", "landmark": "LEFT_ELBOW", "axis": "y",
                      "op": "gt", "value": 0.0, "relative_to": "LEFT_SHOULDER"}),
    ],
}

SQUAT_DOWN = {
    "name": "Squat",
    "hold_time": 2,
    "predicates": [
        {"kind": "visibility_gate", "landmarks": [
            "LEFT_HIP", "RIGHT_HIP", "LEFT_KNEE", "RIGHT_KNEE", "LEFT_ANKLE", "RIGHT_ANKLE",
        ]},
        *_both_sides({"kind": "angle_range", "first": "LEFT_HIP", "vertex": "LEFT_KNEE",
                      "last": "LEFT_ANKLE", "min": 70, "max": 120}),
    ],
}

STAND_TALL = {
    "name": "Stand tall",
    "hold_time": 2,
    "predicates": [
        {"kind": "visibility_gate", "landmarks": [
            "LEFT_HIP", "RIGHT_HIP", "LEFT_KNEE", "RIGHT_KNEE", "LEFT_ANKLE", "RIGHT_ANKLE",
        ]},
        *_both_sides({"kind": "angle_range", "first": "LEFT_HIP", "vertex": "LEFT_KNEE",
                      "last": "LEFT_ANKLE", "min": 160, "max": 180}),
    ],
}
