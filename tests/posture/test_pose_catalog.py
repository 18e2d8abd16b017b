"""Tests for declarative pose definitions and the predicate classifier."""

import pytest

from core.exceptions import ConfigurationError
from posture_service.models.landmarks import JointType
from posture_service.models.pose_catalog import (
    SQUAT_DOWN,
    STAND_TALL,
    T_RAISE,
    W_RAISE,
    Y_RAISE,
    AngleRange,
    PoseDefinition,
    PositionThreshold,
    PredicatePoseClassifier,
    VisibilityGate,
    parse_pose_definitions,
)

Y_ARMS = {
    JointType.LEFT_ELBOW: (0.7, 0.15), JointType.RIGHT_ELBOW: (0.3, 0.15),
    JointType.LEFT_WRIST: (0.8, 0.0), JointType.RIGHT_WRIST: (0.2, 0.0),
}
T_ARMS = {
    JointType.LEFT_ELBOW: (0.75, 0.3), JointType.RIGHT_ELBOW: (0.25, 0.3),
    JointType.LEFT_WRIST: (0.9, 0.3), JointType.RIGHT_WRIST: (0.1, 0.3),
}
W_ARMS = {
    JointType.LEFT_ELBOW: (0.72, 0.4), JointType.RIGHT_ELBOW: (0.28, 0.4),
    JointType.LEFT_WRIST: (0.75, 0.25), JointType.RIGHT_WRIST: (0.25, 0.25),
}
SQUAT_LEGS = {
    JointType.LEFT_ANKLE: (0.77, 0.8), JointType.RIGHT_ANKLE: (0.23, 0.8),
}


@pytest.fixture
def ytw_classifier():
    return PredicatePoseClassifier(parse_pose_definitions([Y_RAISE, T_RAISE, W_RAISE]))


class TestPredicates:
    
    def test_angle_range(self, standing_frame):
        straight_knee = AngleRange(first="left_hip", vertex="left_knee", last="left_ankle", min=170, max=180)
        bent_knee = AngleRange(first="LEFT_HIP", vertex="LEFT_KNEE", last="LEFT_ANKLE", min=70, max=120)
        
        assert straight_knee.first == "LEFT_HIP"
        assert straight_knee.evaluate(standing_frame, 0.5)
        assert not bent_knee.evaluate(standing_frame, 0.5)
    
    def test_angle_range_needs_visible_landmarks(self, frame_builder):
        predicate = AngleRange(first="LEFT_HIP", vertex="LEFT_KNEE", last="LEFT_ANKLE", min=0, max=180)
        assert not predicate.evaluate(frame_builder(hidden=(JointType.LEFT_KNEE,)), 0.5)
    
    def test_position_threshold_relative(self, standing_frame):
        wrist_below_shoulder = PositionThreshold(
            landmark="LEFT_WRIST", axis="y", op="gt", value=0.2, relative_to="LEFT_SHOULDER",
        )
        wrist_near_hip = PositionThreshold(
            landmark="LEFT_WRIST", axis="x", op="abs_lt", value=0.1, relative_to="LEFT_HIP",
        )
        assert wrist_below_shoulder.evaluate(standing_frame, 0.5)
        assert wrist_near_hip.evaluate(standing_frame, 0.5)
    
    def test_position_threshold_absolute(self, standing_frame):
        assert PositionThreshold(landmark="NOSE", op="lt", value=0.2).evaluate(standing_frame, 0.5)
        assert not PositionThreshold(landmark="NOSE", op="abs_gt", value=0.2).evaluate(standing_frame, 0.5)
    
    def test_position_threshold_hidden_reference(self, frame_builder):
        predicate = PositionThreshold(landmark="LEFT_WRIST", op="gt", relative_to="LEFT_SHOULDER")
        assert not predicate.evaluate(frame_builder(hidden=(JointType.LEFT_SHOULDER,)), 0.5)
    
    def test_visibility_gate_override(self, frame_builder):
        frame = frame_builder(visibility=0.6)
        assert VisibilityGate(landmarks=["NOSE"]).evaluate(frame, 0.5)
        assert not VisibilityGate(landmarks=["NOSE"], min_visibility=0.8).evaluate(frame, 0.5)


class TestDefinitionValidation:
    
    def test_builtin_poses_parse(self):
        poses = parse_pose_definitions([Y_RAISE, T_RAISE, W_RAISE, SQUAT_DOWN, STAND_TALL])
        assert [p.name for p in poses] == ["Y raise", "T raise", "W raise", "Squat", "Stand tall"]
        assert isinstance(poses[0].predicates[0], VisibilityGate)
        assert isinstance(poses[0].predicates[1], AngleRange)
        assert poses[0].predicates[2].vertex == "RIGHT_SHOULDER"
    
    @pytest.mark.parametrize("raw", [
        {"name": "bad", "predicates": [{"kind": "visibility_gate", "landmarks": ["LEFT_TAIL"]}]},
        {"name": "bad", "predicates": [{"kind": "angle_range", "first": "LEFT_HIP",
                                        "vertex": "LEFT_KNEE", "last": "LEFT_ANKLE",
                                        "min": 120, "max": 90}]},
        {"name": "bad", "predicates": [{"kind": "hand_sign"}]},
        {"name": "bad", "predicates": []},
        {"name": "bad", "hold_time": 0, "predicates": [{"kind": "visibility_gate", "landmarks": ["NOSE"]}]},
    ])
    def test_malformed_definitions(self, raw):
        with pytest.raises(ConfigurationError):
            parse_pose_definitions([raw])
    
    def test_matches_uses_configured_threshold(self, frame_builder):
        pose = PoseDefinition.model_validate(STAND_TALL)
        assert pose.matches(frame_builder(visibility=0.6))
        assert not pose.matches(frame_builder(visibility=0.4))


class TestPredicatePoseClassifier:
    
    @pytest.mark.parametrize("arms,name,index", [
        (Y_ARMS, "Y raise", 0),
        (T_ARMS, "T raise", 1),
        (W_ARMS, "W raise", 2),
    ])
    def test_ytw(self, ytw_classifier, frame_builder, arms, name, index):
        match = ytw_classifier.classify(frame_builder(arms))
        assert match is not None
        assert (match.pose_name, match.pose_index) == (name, index)
    
    def test_no_match(self, ytw_classifier, standing_frame):
        assert ytw_classifier.classify(standing_frame) is None
    
    def test_hidden_arm_blocks_match(self, ytw_classifier, frame_builder):
        assert ytw_classifier.classify(frame_builder(T_ARMS, hidden=(JointType.RIGHT_WRIST,))) is None
    
    def test_first_match_wins(self, standing_frame):
        anything = {"name": "Anything", "predicates": [{"kind": "visibility_gate", "landmarks": ["NOSE"]}]}
        classifier = PredicatePoseClassifier(parse_pose_definitions([STAND_TALL, anything]))
        assert classifier.classify(standing_frame).pose_name == "Stand tall"
    
    def test_squat_and_stand(self, frame_builder, standing_frame):
        classifier = PredicatePoseClassifier(parse_pose_definitions([SQUAT_DOWN, STAND_TALL]))
        assert classifier.classify(frame_builder(SQUAT_LEGS)).pose_index == 0
        assert classifier.classify(standing_frame).pose_index == 1
