"""
POSTURELAB Posture Service Models

Rule-based posture scoring, joint analysis and exercise session state
machines over pose-landmark frames.
"""

from .landmarks import (
    JointType,
    Landmark,
    LandmarkFrame,
    Point3D,
    LANDMARK_COUNT,
)

from .geometry import (
    PostureMetrics,
    angle_at_vertex,
    angle_at_vertex_2d,
    midpoint,
    trunk_tilt,
    distance_2d,
    distance_3d,
    normalized_to_cm,
    extract_posture_metrics,
)

from .calibration import (
    CalibrationResult,
    MetricCalibrator,
    calculate_calibration,
    calculate_thresholds,
    remove_outliers,
    smooth_series,
)

from .smoothing import AngleSmoother

from .posture_scorer import (
    Grade,
    ScoringCurve,
    AnalysisItem,
    PostureReport,
    score_item,
    score_metrics,
    calculate_overall_score,
    analyze_posture,
)

from .diagnosis import score_message

from .joint_angles import JointAngles, calculate_joint_angles, format_joint_angles

from .asymmetry import (
    AsymmetryResult,
    AsymmetrySeverity,
    DominantSide,
    analyze_asymmetry,
    analyze_all_asymmetry,
    calculate_asymmetry_score,
)

from .rom import ROMResult, ROMStatus, BodySide, analyze_rom, analyze_all_rom, calculate_rom_score

from .advanced_report import AdvancedReport, build_advanced_report, analyze_frame

from .pose_catalog import PoseDefinition, PoseMatch, PredicatePoseClassifier, parse_pose_definitions

from .exercise_catalog import (
    ExerciseCatalog,
    HoldExerciseDefinition,
    SequenceExerciseDefinition,
    CountableExerciseDefinition,
    parse_exercise,
    default_catalog,
)

from .rep_counter import BaselineRepCounter, RepPhase, joint_value

from .session_effects import EffectDispatcher, EffectType, ExerciseResult, SessionEffect

from .exercise_session import (
    SessionPhase,
    HoldTimerSession,
    SequenceSession,
    create_session,
)

__all__ = [
    # Landmarks and geometry
    "JointType",
    "Landmark",
    "LandmarkFrame",
    "Point3D",
    "LANDMARK_COUNT",
    "PostureMetrics",
    "angle_at_vertex",
    "angle_at_vertex_2d",
    "midpoint",
    "trunk_tilt",
    "distance_2d",
    "distance_3d",
    "normalized_to_cm",
    "extract_posture_metrics",
    # Calibration and smoothing
    "CalibrationResult",
    "MetricCalibrator",
    "calculate_calibration",
    "calculate_thresholds",
    "remove_outliers",
    "smooth_series",
    "AngleSmoother",
    # Scoring
    "Grade",
    "ScoringCurve",
    "AnalysisItem",
    "PostureReport",
    "score_item",
    "score_metrics",
    "calculate_overall_score",
    "analyze_posture",
    "score_message",
    # Joint analysis
    "JointAngles",
    "calculate_joint_angles",
    "format_joint_angles",
    "AsymmetryResult",
    "AsymmetrySeverity",
    "DominantSide",
    "analyze_asymmetry",
    "analyze_all_asymmetry",
    "calculate_asymmetry_score",
    "ROMResult",
    "ROMStatus",
    "BodySide",
    "analyze_rom",
    "analyze_all_rom",
    "calculate_rom_score",
    "AdvancedReport",
    "build_advanced_report",
    "analyze_frame",
    # Exercises
    "PoseDefinition",
    "PoseMatch",
    "PredicatePoseClassifier",
    "parse_pose_definitions",
    "ExerciseCatalog",
    "HoldExerciseDefinition",
    "SequenceExerciseDefinition",
    "CountableExerciseDefinition",
    "parse_exercise",
    "default_catalog",
    "BaselineRepCounter",
    "RepPhase",
    "joint_value",
    # Sessions
    "EffectDispatcher",
    "EffectType",
    "ExerciseResult",
    "SessionEffect",
    "SessionPhase",
    "HoldTimerSession",
    "SequenceSession",
    "create_session",
]
