"""
POSTURELAB Posture Service - Exercise Catalog

Validated exercise definitions and the registry sessions are built from.
Definitions are pydantic models so host-supplied configuration is checked
before any frame is processed.
"""

import logging
from typing import Any, Dict, Iterable, List, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from core.exceptions import ConfigurationError, UnknownExerciseError
from .pose_catalog import SQUAT_DOWN, STAND_TALL, T_RAISE, W_RAISE, Y_RAISE, PoseDefinition

logger = logging.getLogger("posturelab.catalog")


# ═══════════════════════════════════════════════════════════════════════════════
# DEFINITIONS
# ═══════════════════════════════════════════════════════════════════════════════

class ExerciseDefinition(BaseModel):
    """Fields shared by every exercise kind."""
    id: str = Field(min_length=1)
    name: str
    description: str = ""
    sets: int = Field(default=3, ge=1)
    rest_time: int = Field(default=15, ge=0)


class HoldExerciseDefinition(ExerciseDefinition):
    """Hold a position for hold_time seconds per set."""
    kind: Literal["hold"] = "hold"
    hold_time: int = Field(ge=1)


class SequenceExerciseDefinition(ExerciseDefinition):
    """Cycle through an ordered list of target poses."""
    kind: Literal["sequence"] = "sequence"
    cycles: int = Field(default=3, ge=1)
    poses: List[PoseDefinition] = Field(min_length=1)


class CountableExerciseDefinition(ExerciseDefinition):
    """Repetitions counted from one joint coordinate moving off its baseline."""
    kind: Literal["countable"] = "countable"
    reps: int = Field(default=10, ge=1)
    counting_joint: Literal["nose", "shoulder", "hip", "knee", "wrist", "elbow"]
    counting_axis: Literal["x", "y"] = "y"
    mirror: bool = False
    cooldown_ms: int = Field(default=300, ge=0)
    delta_threshold: Optional[float] = Field(default=None, gt=0)
    debounce_frames: Optional[int] = Field(default=None, ge=1)


AnyExerciseDefinition = Union[
    HoldExerciseDefinition,
    SequenceExerciseDefinition,
    CountableExerciseDefinition,
]

_KINDS = {
    "hold": HoldExerciseDefinition,
    "sequence": SequenceExerciseDefinition,
    "countable": CountableExerciseDefinition,
}


def parse_exercise(data: Dict[str, Any]) -> AnyExerciseDefinition:
    """
    Validate one raw exercise definition.
    
    Args:
        data: Dict with a `kind` of hold, sequence or countable
    
    Returns:
        The matching definition model
    
    Raises:
        ConfigurationError: If the kind is unknown or a field is invalid
    """
    model = _KINDS.get(data.get("kind", ""))
    if model is None:
        raise ConfigurationError(f"Unknown exercise kind: {data.get('kind')!r}")
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.error(f"Invalid exercise definition {data.get('id')!r}: {e}")
        raise ConfigurationError(f"Invalid exercise definition {data.get('id')!r}: {e}") from e


# ═══════════════════════════════════════════════════════════════════════════════
# REGISTRY
# ═══════════════════════════════════════════════════════════════════════════════

class ExerciseCatalog:
    """Exercise definitions keyed by id."""
    
    def __init__(self, definitions: Iterable[AnyExerciseDefinition] = ()):
        self._definitions: Dict[str, AnyExerciseDefinition] = {}
        for definition in definitions:
            self.register(definition)
    
    def register(self, definition: Union[AnyExerciseDefinition, Dict[str, Any]]) -> AnyExerciseDefinition:
        if isinstance(definition, dict):
            definition = parse_exercise(definition)
        self._definitions[definition.id] = definition
        return definition
    
    def get(self, exercise_id: str) -> AnyExerciseDefinition:
        """
        Look up an exercise.
        
        Raises:
            UnknownExerciseError: If the id is not registered
        """
        definition = self._definitions.get(exercise_id)
        if definition is None:
            logger.error(f"Unknown exercise requested: {exercise_id!r}")
            raise UnknownExerciseError(exercise_id)
        return definition
    
    def __contains__(self, exercise_id: str) -> bool:
        return exercise_id in self._definitions
    
    def ids(self, kind: Optional[str] = None) -> List[str]:
        return [d.id for d in self._definitions.values() if kind is None or d.kind == kind]


DEFAULT_EXERCISES: List[Dict[str, Any]] = [
    # Hold exercises
    {"kind": "hold", "id": "chin-tuck-hold", "name": "Chin tuck hold",
     "description": "Draw the chin straight back and hold", "sets": 3, "hold_time": 10, "rest_time": 10},
    {"kind": "hold", "id": "wall-sit", "name": "Wall sit",
     "description": "Slide down a wall to a seated position and hold", "sets": 3, "hold_time": 30, "rest_time": 30},
    {"kind": "hold", "id": "plank", "name": "Plank",
     "description": "Hold a straight line from shoulders to ankles", "sets": 3, "hold_time": 20, "rest_time": 20},
    # Sequence exercises
    {"kind": "sequence", "id": "ytw-raise", "name": "Y-T-W raise",
     "description": "Move through Y, T and W arm positions", "sets": 2, "cycles": 5, "rest_time": 20,
     "poses": [Y_RAISE, T_RAISE, W_RAISE]},
    {"kind": "sequence", "id": "squat-hold", "name": "Squat and stand",
     "description": "Sink into a squat, then stand tall", "sets": 3, "cycles": 8, "rest_time": 30,
     "poses": [SQUAT_DOWN, STAND_TALL]},
    # Countable exercises
    {"kind": "countable", "id": "chin-tuck", "name": "Chin tuck", "sets": 3, "reps": 10, "rest_time": 15,
     "counting_joint": "nose", "counting_axis": "y", "cooldown_ms": 500},
    {"kind": "countable", "id": "neck-side-stretch", "name": "Neck side stretch", "sets": 2, "reps": 8,
     "rest_time": 10, "counting_joint": "nose", "counting_axis": "x", "cooldown_ms": 800, "mirror": True},
    {"kind": "countable", "id": "shoulder-squeeze", "name": "Shoulder shrug", "sets": 3, "reps": 12,
     "rest_time": 15, "counting_joint": "shoulder", "counting_axis": "y", "cooldown_ms": 400},
    {"kind": "countable", "id": "shoulder-blade-squeeze", "name": "Shoulder blade squeeze", "sets": 3,
     "reps": 10, "rest_time": 15, "counting_joint": "shoulder", "counting_axis": "x", "cooldown_ms": 600},
    {"kind": "countable", "id": "squat", "name": "Squat", "sets": 3, "reps": 10, "rest_time": 30,
     "counting_joint": "hip", "counting_axis": "y", "cooldown_ms": 500},
    {"kind": "countable", "id": "knee-lift", "name": "Knee lift", "sets": 2, "reps": 10, "rest_time": 15,
     "counting_joint": "knee", "counting_axis": "y", "cooldown_ms": 400},
    {"kind": "countable", "id": "arm-raise", "name": "Arm raise", "sets": 2, "reps": 10, "rest_time": 15,
     "counting_joint": "wrist", "counting_axis": "y", "cooldown_ms": 500},
    {"kind": "countable", "id": "elbow-flex", "name": "Elbow flex", "sets": 3, "reps": 12, "rest_time": 15,
     "counting_joint": "wrist", "counting_axis": "y", "cooldown_ms": 400},
]


def default_catalog() -> ExerciseCatalog:
    """A fresh catalog holding the built-in exercises."""
    return ExerciseCatalog(parse_exercise(item) for item in DEFAULT_EXERCISES)
