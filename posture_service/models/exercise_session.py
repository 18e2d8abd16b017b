"""
POSTURELAB Posture Service - Exercise Session State Machines

Two session disciplines sharing one phase vocabulary:
- HoldTimerSession: announce, count down, hold for a fixed time, rest, repeat
- SequenceSession: hold each target pose of an ordered list in turn; a full
  pass is a cycle, enough cycles complete a set

State changes come only from timer ticks (one per elapsed second) and pose
matches. Every transition returns the effects the host should perform.
Each session guards its state with a lock so a tick and a frame handled on
different threads never interleave.
"""

import logging
import threading
import uuid
from enum import Enum
from typing import List, Optional, Union

from core.config import settings
from core.exceptions import ConfigurationError
from shared.utils import round_half_up
from .exercise_catalog import (
    ExerciseCatalog,
    HoldExerciseDefinition,
    SequenceExerciseDefinition,
    default_catalog,
)
from .landmarks import LandmarkFrame
from .pose_catalog import PoseClassifier, PoseDefinition, PoseMatch, PredicatePoseClassifier
from .session_effects import EffectType, ExerciseResult, SessionEffect, speak

logger = logging.getLogger("posturelab.session")


class SessionPhase(Enum):
    """Exercise session phases."""
    READY = "ready"
    ANNOUNCING = "announcing"
    COUNTDOWN = "countdown"
    HOLDING = "holding"
    EXERCISING = "exercising"
    RESTING = "resting"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_PHASES = (SessionPhase.COMPLETED, SessionPhase.CANCELLED)


# ═══════════════════════════════════════════════════════════════════════════════
# BASE SESSION
# ═══════════════════════════════════════════════════════════════════════════════

class _TimedSession:
    """Set/rest bookkeeping, pause and cancel shared by both disciplines."""
    
    def __init__(
        self,
        definition: Union[HoldExerciseDefinition, SequenceExerciseDefinition],
        countdown_seconds: Optional[int] = None
    ):
        if definition.sets < 1:
            raise ConfigurationError(f"Exercise {definition.id!r} needs at least one set")
        
        self.session_id = str(uuid.uuid4())[:8]
        self.definition = definition
        self.countdown_seconds = (
            countdown_seconds if countdown_seconds is not None else settings.COUNTDOWN_SECONDS
        )
        
        self.phase = SessionPhase.READY
        self.is_paused = False
        self.current_set = 1
        self.completed_sets = 0
        self.time_remaining = 0
        self.elapsed_seconds = 0
        self.result: Optional[ExerciseResult] = None
        self._lock = threading.Lock()
    
    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES
    
    @property
    def is_active(self) -> bool:
        return self.phase != SessionPhase.READY and not self.is_terminal
    
    def _set_phase(self, phase: SessionPhase, effects: List[SessionEffect]):
        previous = self.phase
        self.phase = phase
        effects.append(SessionEffect(
            EffectType.PHASE_CHANGED,
            data={"from": previous.value, "to": phase.value, "set": self.current_set},
        ))
        logger.debug(f"Session {self.session_id}: {previous.value} -> {phase.value}")
    
    # ─── Commands ─────────────────────────────────────────────────────────────
    
    def start(self) -> List[SessionEffect]:
        """Begin the first set. Only valid from READY."""
        with self._lock:
            if self.phase != SessionPhase.READY:
                return []
            effects: List[SessionEffect] = []
            logger.info(
                f"Session {self.session_id} started: {self.definition.id} "
                f"({self.definition.sets} sets)"
            )
            self._begin_set(effects)
            return effects
    
    def tick(self) -> List[SessionEffect]:
        """Advance the session clock by one second."""
        with self._lock:
            if not self.is_active or self.is_paused:
                return []
            self.elapsed_seconds += 1
            effects: List[SessionEffect] = []
            
            if self.phase == SessionPhase.RESTING:
                self.time_remaining -= 1
                if self.time_remaining <= 0:
                    self._next_set(effects)
            else:
                self._on_tick(effects)
            return effects
    
    def pause(self) -> List[SessionEffect]:
        """Freeze timers and frame matching. Counters are kept."""
        with self._lock:
            if not self.is_active or self.is_paused:
                return []
            self.is_paused = True
            logger.info(f"Session {self.session_id} paused in {self.phase.value}")
            return [SessionEffect(EffectType.CANCEL_SPEECH), speak("Paused")]
    
    def resume(self) -> List[SessionEffect]:
        with self._lock:
            if not self.is_paused or self.is_terminal:
                return []
            self.is_paused = False
            logger.info(f"Session {self.session_id} resumed in {self.phase.value}")
            return [speak("Resuming exercise")]
    
    def cancel(self) -> List[SessionEffect]:
        """Stop immediately without producing a result. Idempotent."""
        with self._lock:
            if self.is_terminal:
                return []
            effects = [SessionEffect(EffectType.CANCEL_SPEECH)]
            self.is_paused = False
            self.time_remaining = 0
            self._set_phase(SessionPhase.CANCELLED, effects)
            logger.info(f"Session {self.session_id} cancelled at set {self.current_set}")
            return effects
    
    # ─── Set accounting ───────────────────────────────────────────────────────
    
    def _complete_set(self, effects: List[SessionEffect]):
        if self.is_terminal:
            return
        
        self.completed_sets += 1
        self._record_set()
        effects.append(SessionEffect(
            EffectType.SET_COMPLETED,
            data={"set": self.current_set, "total_sets": self.definition.sets},
        ))
        logger.info(f"Session {self.session_id}: set {self.current_set}/{self.definition.sets} complete")
        
        if self.current_set >= self.definition.sets:
            self._finish(effects)
            return
        
        rest = self.definition.rest_time
        effects.append(speak(self._rest_prompt(rest)))
        self.time_remaining = rest
        self._set_phase(SessionPhase.RESTING, effects)
        if rest <= 0:
            self._next_set(effects)
    
    def _next_set(self, effects: List[SessionEffect]):
        self.current_set += 1
        self._reset_set_state()
        self._begin_set(effects)
    
    def _finish(self, effects: List[SessionEffect]):
        self.time_remaining = 0
        self._set_phase(SessionPhase.COMPLETED, effects)
        self.result = self._build_result()
        effects.append(speak("Exercise complete! Well done."))
        effects.append(SessionEffect(EffectType.SESSION_COMPLETED, data={"result": self.result}))
        logger.info(
            f"Session {self.session_id} completed: {self.result.completed_sets} sets, "
            f"accuracy {self.result.accuracy}%, {self.result.duration_seconds}s"
        )
    
    def _enter_countdown(self, effects: List[SessionEffect]):
        self.time_remaining = self.countdown_seconds
        self._set_phase(SessionPhase.COUNTDOWN, effects)
        if self.time_remaining <= 0:
            self._countdown_finished(effects)
        else:
            effects.append(speak(str(self.time_remaining)))
    
    def _tick_countdown(self, effects: List[SessionEffect]):
        self.time_remaining -= 1
        if self.time_remaining > 0:
            effects.append(speak(str(self.time_remaining)))
        else:
            self._countdown_finished(effects)
    
    # ─── Hooks ────────────────────────────────────────────────────────────────
    
    def _rest_prompt(self, rest: int) -> str:
        return "Rest"
    
    def _begin_set(self, effects: List[SessionEffect]):
        raise NotImplementedError
    
    def _on_tick(self, effects: List[SessionEffect]):
        raise NotImplementedError
    
    def _countdown_finished(self, effects: List[SessionEffect]):
        raise NotImplementedError
    
    def _reset_set_state(self):
        pass
    
    def _record_set(self):
        pass
    
    def _build_result(self) -> ExerciseResult:
        raise NotImplementedError


# ═══════════════════════════════════════════════════════════════════════════════
# HOLD-TIMER SESSION
# ═══════════════════════════════════════════════════════════════════════════════

class HoldTimerSession(_TimedSession):
    """
    Ready -> Announcing -> Countdown -> Holding -> Resting -> ... -> Completed.
    
    Announcing gives the user time to get into position, the countdown
    speaks each number, and the last seconds of the hold are spoken too.
    """
    
    def __init__(
        self,
        definition: HoldExerciseDefinition,
        announce_seconds: Optional[int] = None,
        countdown_seconds: Optional[int] = None,
        voice_countdown_from: Optional[int] = None
    ):
        if definition.hold_time < 1:
            raise ConfigurationError(f"Exercise {definition.id!r} needs a hold time of at least 1s")
        super().__init__(definition, countdown_seconds)
        self.announce_seconds = (
            announce_seconds if announce_seconds is not None else settings.ANNOUNCE_SECONDS
        )
        self.voice_countdown_from = (
            voice_countdown_from if voice_countdown_from is not None else settings.VOICE_COUNTDOWN_FROM
        )
    
    def _begin_set(self, effects: List[SessionEffect]):
        self.time_remaining = self.announce_seconds
        self._set_phase(SessionPhase.ANNOUNCING, effects)
        effects.append(speak("Get into the starting position"))
        if self.time_remaining <= 0:
            self._enter_countdown(effects)
    
    def _countdown_finished(self, effects: List[SessionEffect]):
        self.time_remaining = self.definition.hold_time
        self._set_phase(SessionPhase.HOLDING, effects)
        effects.append(speak("Start! Hold the position"))
    
    def _on_tick(self, effects: List[SessionEffect]):
        if self.phase == SessionPhase.ANNOUNCING:
            self.time_remaining -= 1
            if self.time_remaining <= 0:
                self._enter_countdown(effects)
        elif self.phase == SessionPhase.COUNTDOWN:
            self._tick_countdown(effects)
        elif self.phase == SessionPhase.HOLDING:
            self.time_remaining -= 1
            if self.time_remaining <= 0:
                effects.append(speak("Complete"))
                self._complete_set(effects)
            elif self.time_remaining <= self.voice_countdown_from:
                effects.append(speak(str(self.time_remaining)))
    
    def _build_result(self) -> ExerciseResult:
        return ExerciseResult(
            exercise_id=self.definition.id,
            exercise_name=self.definition.name,
            completed_sets=self.completed_sets,
            completed_reps=[1] * self.completed_sets,
            total_reps=self.completed_sets,
            accuracy=100,
            duration_seconds=self.elapsed_seconds,
        )
    
    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "exercise_id": self.definition.id,
            "phase": self.phase.value,
            "is_paused": self.is_paused,
            "current_set": self.current_set,
            "total_sets": self.definition.sets,
            "time_remaining": self.time_remaining,
            "elapsed_seconds": self.elapsed_seconds,
        }


# ═══════════════════════════════════════════════════════════════════════════════
# SEQUENCE SESSION
# ═══════════════════════════════════════════════════════════════════════════════

class SequenceSession(_TimedSession):
    """
    Ready -> Countdown -> Exercising -> Resting -> ... -> Completed.
    
    While exercising, a frame matching the current target pose starts that
    pose's hold timer and ticks drain it while the match lasts. Losing the
    match, or a whole second without a matching frame, resets only the
    hold timer.
    """
    
    def __init__(
        self,
        definition: SequenceExerciseDefinition,
        classifier: Optional[PoseClassifier] = None,
        countdown_seconds: Optional[int] = None
    ):
        if not definition.poses:
            raise ConfigurationError(f"Exercise {definition.id!r} has no target poses")
        if definition.cycles < 1:
            raise ConfigurationError(f"Exercise {definition.id!r} needs at least one cycle per set")
        super().__init__(definition, countdown_seconds)
        self.classifier = classifier or PredicatePoseClassifier(definition.poses)
        
        self.pose_index = 0
        self.cycles_in_set = 0
        self.completed_cycles: List[int] = []
        self.hold_remaining: Optional[int] = None
        self._matched_since_tick = False
    
    @property
    def target_pose(self) -> PoseDefinition:
        return self.definition.poses[self.pose_index]
    
    @property
    def is_holding(self) -> bool:
        return self.hold_remaining is not None
    
    def process_frame(self, frame: LandmarkFrame) -> List[SessionEffect]:
        """Classify a frame and apply the match in one step."""
        with self._lock:
            if self.is_paused or self.phase != SessionPhase.EXERCISING:
                return []
            return self._apply_match(self.classifier.classify(frame))
    
    def process_match(self, match: Optional[PoseMatch]) -> List[SessionEffect]:
        """
        Apply one pose-match result.
        
        Args:
            match: Classifier output for the latest frame, or None
        
        Returns:
            Effects to perform
        """
        with self._lock:
            if self.is_paused or self.phase != SessionPhase.EXERCISING:
                return []
            return self._apply_match(match)
    
    def _apply_match(self, match: Optional[PoseMatch]) -> List[SessionEffect]:
        effects: List[SessionEffect] = []
        
        if match is not None and match.pose_index == self.pose_index:
            self._matched_since_tick = True
            if not self.is_holding:
                self.hold_remaining = self.target_pose.hold_time
                effects.append(speak("Hold"))
                logger.debug(f"Session {self.session_id}: holding {self.target_pose.name}")
        elif self.is_holding:
            self._drop_hold("lost")
        return effects
    
    def _drop_hold(self, reason: str):
        self.hold_remaining = None
        self._matched_since_tick = False
        logger.debug(f"Session {self.session_id}: {reason} {self.target_pose.name}, hold reset")
    
    def _begin_set(self, effects: List[SessionEffect]):
        self._enter_countdown(effects)
    
    def _countdown_finished(self, effects: List[SessionEffect]):
        self._set_phase(SessionPhase.EXERCISING, effects)
        effects.append(speak(f"Make the {self.target_pose.name} pose"))
    
    def _on_tick(self, effects: List[SessionEffect]):
        if self.phase == SessionPhase.COUNTDOWN:
            self._tick_countdown(effects)
        elif self.phase == SessionPhase.EXERCISING and self.is_holding:
            # A second without any matching frame breaks the hold
            if not self._matched_since_tick:
                self._drop_hold("no frames for")
                return
            self._matched_since_tick = False
            self.hold_remaining -= 1
            if self.hold_remaining <= 0:
                self._advance_pose(effects)
    
    def _advance_pose(self, effects: List[SessionEffect]):
        finished = self.target_pose.name
        self.hold_remaining = None
        self.pose_index += 1
        effects.append(SessionEffect(
            EffectType.POSE_ADVANCED,
            data={"pose": finished, "next_index": self.pose_index % len(self.definition.poses)},
        ))
        
        if self.pose_index < len(self.definition.poses):
            effects.append(speak(f"Switch to the {self.target_pose.name} pose"))
            return
        
        self.pose_index = 0
        self.cycles_in_set += 1
        effects.append(SessionEffect(
            EffectType.CYCLE_COMPLETED,
            data={"cycle": self.cycles_in_set, "target_cycles": self.definition.cycles, "set": self.current_set},
        ))
        effects.append(speak("One cycle complete!"))
        
        if self.cycles_in_set >= self.definition.cycles:
            self._complete_set(effects)
        else:
            effects.append(speak(f"Make the {self.target_pose.name} pose"))
    
    def _rest_prompt(self, rest: int) -> str:
        return f"Set {self.current_set} complete! {rest} seconds rest"
    
    def _record_set(self):
        self.completed_cycles.append(self.cycles_in_set)
    
    def _reset_set_state(self):
        self.cycles_in_set = 0
        self.pose_index = 0
        self.hold_remaining = None
        self._matched_since_tick = False
    
    def _build_result(self) -> ExerciseResult:
        total = sum(self.completed_cycles)
        target = self.definition.sets * self.definition.cycles
        accuracy = min(100, int(round_half_up(total / target * 100))) if target else 0
        return ExerciseResult(
            exercise_id=self.definition.id,
            exercise_name=self.definition.name,
            completed_sets=self.completed_sets,
            completed_reps=list(self.completed_cycles),
            total_reps=total,
            accuracy=accuracy,
            duration_seconds=self.elapsed_seconds,
        )
    
    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "exercise_id": self.definition.id,
            "phase": self.phase.value,
            "is_paused": self.is_paused,
            "current_set": self.current_set,
            "total_sets": self.definition.sets,
            "pose_index": self.pose_index,
            "target_pose": self.target_pose.name,
            "cycles_in_set": self.cycles_in_set,
            "target_cycles": self.definition.cycles,
            "hold_remaining": self.hold_remaining,
            "time_remaining": self.time_remaining,
            "elapsed_seconds": self.elapsed_seconds,
        }


ExerciseSession = Union[HoldTimerSession, SequenceSession]


def create_session(
    exercise_id: str,
    catalog: Optional[ExerciseCatalog] = None,
    classifier: Optional[PoseClassifier] = None,
    **timing
) -> ExerciseSession:
    """
    Build the right session for a catalog exercise.
    
    Args:
        exercise_id: Catalog id
        catalog: Catalog to look in (the built-in one if None)
        classifier: Pose classifier for sequence exercises
        **timing: announce_seconds / countdown_seconds overrides
    
    Raises:
        UnknownExerciseError: If the id is not in the catalog
        ConfigurationError: If the exercise cannot drive a session
    """
    catalog = catalog or default_catalog()
    definition = catalog.get(exercise_id)
    
    if isinstance(definition, HoldExerciseDefinition):
        return HoldTimerSession(definition, **timing)
    if isinstance(definition, SequenceExerciseDefinition):
        timing.pop("announce_seconds", None)
        timing.pop("voice_countdown_from", None)
        return SequenceSession(definition, classifier=classifier, **timing)
    
    logger.error(f"Exercise {exercise_id!r} is {definition.kind}, which has no timed session")
    raise ConfigurationError(f"Exercise {exercise_id!r} is not a hold or sequence exercise")
