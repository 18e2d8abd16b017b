"""Tests for the geometry engine and body metrics."""

import math

import numpy as np
import pytest

from posture_service.models.geometry import (
    angle_at_vertex,
    angle_at_vertex_2d,
    create_vector,
    distance_2d,
    distance_3d,
    extract_posture_metrics,
    forward_head_distance,
    knee_angle,
    midpoint,
    neck_tilt,
    normalize_vector,
    normalized_to_cm,
    shoulder_tilt,
    trunk_tilt,
)
from posture_service.models.landmarks import JointType, Landmark, Point3D


class TestAngleAtVertex:
    
    def test_right_angle(self):
        assert angle_at_vertex(Point3D(1, 0, 0), Point3D(0, 0, 0), Point3D(0, 1, 0)) == 90.0
    
    def test_straight_line(self):
        assert angle_at_vertex(Point3D(-1, 0, 0), Point3D(0, 0, 0), Point3D(1, 0, 0)) == 180.0
    
    def test_rounded_to_one_decimal(self):
        angle = angle_at_vertex(Point3D(1, 0, 0), Point3D(0, 0, 0), Point3D(1, 1, 0.3))
        assert angle == round(angle, 1)
    
    def test_degenerate_vector_returns_zero(self):
        p = Point3D(0.2, 0.3, 0.1)
        assert angle_at_vertex(p, p, Point3D(1, 1, 1)) == 0.0
        assert angle_at_vertex(Point3D(1, 1, 1), p, p) == 0.0
    
    def test_always_within_bounds(self):
        rng = np.random.default_rng(7)
        for _ in range(500):
            a, b, c = (Point3D(*rng.uniform(-1, 1, 3)) for _ in range(3))
            assert 0.0 <= angle_at_vertex(a, b, c) <= 180.0
    
    def test_accepts_landmarks(self):
        a = Landmark(1, 0, 0, visibility=0.2)
        assert angle_at_vertex(a, Landmark(0, 0, 0), Landmark(0, 0, 1)) == 90.0


class TestAngleAtVertex2D:
    
    def test_right_angle(self):
        assert angle_at_vertex_2d(Point3D(1, 0), Point3D(0, 0), Point3D(0, 1)) == pytest.approx(90.0)
    
    def test_folds_reflex_angle(self):
        # Bearings of 180 and -90 degrees differ by 270; the inner angle is 90
        assert angle_at_vertex_2d(Point3D(-1, 0), Point3D(0, 0), Point3D(0, -1)) == pytest.approx(90.0)
    
    def test_ignores_depth(self):
        assert angle_at_vertex_2d(Point3D(1, 0, 5), Point3D(0, 0, 0), Point3D(-1, 0, -5)) == pytest.approx(180.0)


def test_midpoint_takes_weaker_visibility():
    mid = midpoint(Landmark(0, 0, 0, 0.9), Landmark(1, 1, 1, 0.4))
    assert (mid.x, mid.y, mid.z) == (0.5, 0.5, 0.5)
    assert mid.visibility == 0.4


def test_trunk_tilt_upright_and_leaning():
    assert trunk_tilt(Point3D(0.5, 0.3), Point3D(0.5, 0.6)) == 0.0
    assert trunk_tilt(Point3D(0.6, 0.3), Point3D(0.5, 0.4)) == 45.0
    assert trunk_tilt(Point3D(0.4, 0.3), Point3D(0.5, 0.4)) == 45.0


def test_vector_helpers():
    a, b = Point3D(0, 0, 0), Point3D(3, 4, 12)
    assert list(create_vector(a, b)) == [3, 4, 12]
    assert distance_2d(a, b) == pytest.approx(5.0)
    assert distance_3d(a, b) == pytest.approx(13.0)
    assert np.linalg.norm(normalize_vector(create_vector(a, b))) == pytest.approx(1.0)
    assert list(normalize_vector(np.zeros(3))) == [0, 0, 0]


def test_normalized_to_cm():
    assert normalized_to_cm(0.1, 0.2) == pytest.approx(21.0)
    assert normalized_to_cm(0.1, 0.2, reference_width_cm=40) == pytest.approx(20.0)
    assert normalized_to_cm(0.1, 0.0) == 0.0


class TestBodyMetrics:
    
    def test_standing_pose_is_aligned(self, standing_frame):
        metrics = extract_posture_metrics(standing_frame)
        assert metrics.forward_head == pytest.approx(0.0, abs=1e-9)
        assert metrics.shoulder_tilt == 0.0
        assert metrics.pelvis_tilt == 0.0
        assert metrics.knee_angle == pytest.approx(180.0)
        assert metrics.neck_tilt == pytest.approx(0.0, abs=1e-9)
    
    def test_forward_head_scaled_by_shoulder_width(self, frame_builder):
        frame = frame_builder({JointType.LEFT_EAR: (0.55, 0.15), JointType.RIGHT_EAR: (0.49, 0.15)})
        # Ear midpoint 0.02 ahead over a 0.2 shoulder width
        assert forward_head_distance(frame) == pytest.approx(4.2)
    
    @pytest.mark.parametrize("ear", [JointType.LEFT_EAR, JointType.RIGHT_EAR])
    def test_forward_head_needs_both_ears(self, frame_builder, ear):
        assert forward_head_distance(frame_builder(hidden=(ear,))) is None
    
    def test_shoulder_tilt(self, frame_builder):
        frame = frame_builder({JointType.LEFT_SHOULDER: (0.6, 0.31)})
        expected = 0.01 / math.hypot(0.2, 0.01) * 42
        assert shoulder_tilt(frame) == pytest.approx(expected)
    
    def test_knee_angle_uses_visible_leg(self, frame_builder):
        frame = frame_builder({JointType.RIGHT_KNEE: (0.46, 0.8)}, hidden=(JointType.LEFT_ANKLE,))
        right_only = knee_angle(frame)
        assert right_only < 180.0
        assert knee_angle(frame_builder(hidden=(JointType.LEFT_ANKLE, JointType.RIGHT_ANKLE))) is None
    
    def test_neck_tilt(self, frame_builder):
        frame = frame_builder({JointType.NOSE: (0.6, 0.2)})
        assert neck_tilt(frame) == pytest.approx(45.0)
    
    def test_hidden_shoulders_make_metrics_unmeasurable(self, frame_builder):
        frame = frame_builder(hidden=(JointType.LEFT_SHOULDER,))
        metrics = extract_posture_metrics(frame)
        assert metrics.forward_head is None
        assert metrics.shoulder_tilt is None
        assert metrics.pelvis_tilt is None
        assert metrics.neck_tilt is None
        assert metrics.knee_angle == pytest.approx(180.0)
        assert not metrics.is_empty
