"""Tests for landmark frames."""

import pytest

from core.exceptions import InvalidFrameError
from posture_service.models.landmarks import LANDMARK_COUNT, JointType, Landmark, LandmarkFrame


def test_from_sequence_accepts_dicts_and_tuples():
    points = [{"x": 0.1, "y": 0.2, "z": 0.0, "visibility": 0.9}] * 20
    points += [(0.3, 0.4, 0.0, 0.8)] * 12
    points += [Landmark(0.5, 0.6)]
    
    frame = LandmarkFrame.from_sequence(points, timestamp_ms=1500)
    
    assert len(frame) == LANDMARK_COUNT
    assert frame.get(JointType.NOSE) == Landmark(0.1, 0.2, 0.0, 0.9)
    assert frame.get(JointType.RIGHT_ELBOW).visibility == 0.9
    assert frame.get(JointType.LEFT_THUMB) == Landmark(0.3, 0.4, 0.0, 0.8)
    assert frame.get(JointType.RIGHT_FOOT_INDEX) == Landmark(0.5, 0.6)
    assert frame.timestamp_ms == 1500


def test_from_sequence_rejects_wrong_count():
    with pytest.raises(InvalidFrameError):
        LandmarkFrame.from_sequence([(0.1, 0.2, 0.0, 1.0)] * 32)


def test_from_sequence_rejects_malformed_entry():
    points = [(0.1, 0.2, 0.0, 1.0)] * 32 + [{"y": 0.2}]
    with pytest.raises(InvalidFrameError):
        LandmarkFrame.from_sequence(points)


def test_visibility_threshold(frame_builder):
    frame = frame_builder(hidden=(JointType.LEFT_WRIST,))
    
    assert frame.visible(JointType.LEFT_WRIST) is None
    assert frame.visible(JointType.LEFT_WRIST, threshold=0.05) is not None
    assert frame.visible(JointType.RIGHT_WRIST) is not None
    assert not frame.all_visible(JointType.LEFT_WRIST, JointType.RIGHT_WRIST)


def test_partial_frame_lookups_return_none():
    frame = LandmarkFrame([Landmark(0.5, 0.5)] * 5)
    
    assert not frame.is_complete
    assert frame.get(JointType.LEFT_HIP) is None
    assert frame.visible(JointType.LEFT_HIP) is None


def test_mean_visibility(frame_builder):
    assert frame_builder(visibility=0.8).mean_visibility() == pytest.approx(0.8)
    assert LandmarkFrame([]).mean_visibility() == 0.0
