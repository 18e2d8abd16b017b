"""
POSTURELAB Posture Service - Session Effects

Sessions return what should happen (speak, cancel speech, persist a result)
as plain values. The host runs them through a dispatcher, which keeps the
state machines free of audio and storage concerns.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol

logger = logging.getLogger("posturelab.effects")


class EffectType(Enum):
    """Side effects a session can request."""
    SPEAK = "speak"
    CANCEL_SPEECH = "cancel_speech"
    PHASE_CHANGED = "phase_changed"
    SET_COMPLETED = "set_completed"
    CYCLE_COMPLETED = "cycle_completed"
    POSE_ADVANCED = "pose_advanced"
    SESSION_COMPLETED = "session_completed"


@dataclass(frozen=True)
class SessionEffect:
    type: EffectType
    text: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    
    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "text": self.text, "data": self.data}


@dataclass(frozen=True)
class ExerciseResult:
    """Summary emitted once when a session completes."""
    exercise_id: str
    exercise_name: str
    completed_sets: int
    completed_reps: List[int]
    total_reps: int
    accuracy: int
    duration_seconds: int
    completed_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "exercise_id": self.exercise_id,
            "exercise_name": self.exercise_name,
            "completed_sets": self.completed_sets,
            "completed_reps": list(self.completed_reps),
            "total_reps": self.total_reps,
            "accuracy": self.accuracy,
            "duration_seconds": self.duration_seconds,
            "completed_at": self.completed_at,
        }


def speak(text: str) -> SessionEffect:
    return SessionEffect(EffectType.SPEAK, text=text)


def spoken_text(effects: Iterable[SessionEffect]) -> List[str]:
    """The utterances in a batch of effects, in order."""
    return [e.text for e in effects if e.type == EffectType.SPEAK]


class VoiceSink(Protocol):
    """Fire-and-forget speech output."""
    
    def speak(self, text: str) -> None:
        ...
    
    def cancel(self) -> None:
        ...


class EffectDispatcher:
    """
    Routes session effects to the host's voice and result sinks.
    
    Sink failures are logged and do not stop the remaining effects; the
    session state has already been committed when effects are dispatched.
    """
    
    def __init__(
        self,
        voice: Optional[VoiceSink] = None,
        on_result: Optional[Callable[[ExerciseResult], None]] = None,
        on_event: Optional[Callable[[SessionEffect], None]] = None
    ):
        self.voice = voice
        self.on_result = on_result
        self.on_event = on_event
    
    def dispatch(self, effects: Iterable[SessionEffect]) -> int:
        """Run effects in order. Returns how many were handled without error."""
        handled = 0
        for effect in effects:
            try:
                self._dispatch_one(effect)
                handled += 1
            except Exception as e:
                logger.error(f"Effect {effect.type.value} failed: {e}")
        return handled
    
    def _dispatch_one(self, effect: SessionEffect):
        if effect.type == EffectType.SPEAK:
            if self.voice is not None:
                self.voice.speak(effect.text)
        elif effect.type == EffectType.CANCEL_SPEECH:
            if self.voice is not None:
                self.voice.cancel()
        elif effect.type == EffectType.SESSION_COMPLETED:
            result = effect.data.get("result")
            if self.on_result is not None and result is not None:
                self.on_result(result)
        
        if self.on_event is not None:
            self.on_event(effect)
