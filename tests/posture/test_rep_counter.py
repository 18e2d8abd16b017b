"""Tests for the baseline rep counter."""

import pytest

from core.exceptions import ConfigurationError
from posture_service.models.exercise_catalog import default_catalog
from posture_service.models.landmarks import JointType
from posture_service.models.rep_counter import BaselineRepCounter, RepPhase, joint_value


def hip_frame(frame_builder, y, timestamp_ms):
    return frame_builder(
        {JointType.LEFT_HIP: (0.57, y), JointType.RIGHT_HIP: (0.43, y)},
        timestamp_ms=timestamp_ms,
    )


@pytest.fixture
def counter():
    return BaselineRepCounter(
        "hip", axis="y", delta_threshold=0.05, debounce_frames=2, cooldown_ms=300, calibration_frames=3,
    )


def feed(counter, frame_builder, values, start_ms=0, step_ms=100):
    counted = []
    for i, y in enumerate(values):
        t = start_ms + i * step_ms
        if counter.update(hip_frame(frame_builder, y, t)):
            counted.append(t)
    return counted


class TestJointValue:
    
    def test_pair_midpoint(self, standing_frame):
        assert joint_value(standing_frame, "shoulder", "x") == pytest.approx(0.5)
        assert joint_value(standing_frame, "hip", "y") == pytest.approx(0.6)
    
    def test_single_visible_side(self, frame_builder):
        frame = frame_builder(hidden=(JointType.LEFT_WRIST,))
        assert joint_value(frame, "wrist", "x") == pytest.approx(0.37)
    
    def test_nothing_visible(self, frame_builder):
        assert joint_value(frame_builder(hidden=(JointType.NOSE,)), "nose", "y") is None
    
    def test_mirror_flips_x_only(self, frame_builder):
        frame = frame_builder({JointType.NOSE: (0.3, 0.15)})
        assert joint_value(frame, "nose", "x", mirror=True) == pytest.approx(0.7)
        assert joint_value(frame, "nose", "y", mirror=True) == pytest.approx(0.15)


class TestBaselineRepCounter:
    
    def test_calibrates_first(self, counter, frame_builder):
        feed(counter, frame_builder, [0.6, 0.6])
        assert counter.phase == RepPhase.CALIBRATING
        assert counter.thresholds is None
        
        feed(counter, frame_builder, [0.6])
        assert counter.phase == RepPhase.READY
        assert counter.baseline == pytest.approx(0.6)
        assert counter.calibration.is_valid
        assert counter.thresholds == pytest.approx((0.55, 0.575))
    
    def test_counts_one_rep(self, counter, frame_builder):
        counted = feed(counter, frame_builder, [0.6, 0.6, 0.6, 0.5, 0.5, 0.6, 0.6])
        assert counted == [600]
        assert counter.count == 1
        assert counter.phase == RepPhase.UP
    
    def test_single_frame_spike_is_ignored(self, counter, frame_builder):
        feed(counter, frame_builder, [0.6, 0.6, 0.6, 0.5, 0.6, 0.5, 0.6, 0.6])
        assert counter.count == 0
        assert counter.phase == RepPhase.READY
    
    def test_cooldown_blocks_fast_repeat(self, counter, frame_builder):
        feed(counter, frame_builder, [0.6] * 3)
        assert counter.update_value(0.5, 1000) is False
        assert counter.update_value(0.5, 1010) is False
        assert counter.update_value(0.6, 1020) is False
        assert counter.update_value(0.6, 1030) is True
        
        counter.update_value(0.5, 1040)
        counter.update_value(0.5, 1050)
        assert counter.update_value(0.6, 1060) is False
        # 300ms have not strictly passed yet
        assert counter.update_value(0.6, 1330) is False
        assert counter.update_value(0.6, 1331) is True
        assert counter.count == 2
    
    def test_hidden_joint_does_not_advance(self, counter, frame_builder):
        feed(counter, frame_builder, [0.6] * 3)
        hidden = frame_builder(hidden=(JointType.LEFT_HIP, JointType.RIGHT_HIP), timestamp_ms=500)
        assert counter.update(hidden) is False
        assert counter.phase == RepPhase.READY
    
    def test_x_axis_counts_either_direction(self, frame_builder):
        counter = BaselineRepCounter(
            "shoulder", axis="x", delta_threshold=0.05, debounce_frames=1, cooldown_ms=0, calibration_frames=1,
        )
        counter.update(frame_builder())
        assert counter.baseline == pytest.approx(0.5)
        
        for value, t in [(0.4, 100), (0.5, 200), (0.6, 300), (0.5, 400)]:
            counter.update_value(value, t)
        assert counter.count == 2
    
    def test_reset(self, counter, frame_builder):
        feed(counter, frame_builder, [0.6, 0.6, 0.6, 0.5, 0.5, 0.6, 0.6])
        
        counter.reset()
        assert counter.count == 0
        assert counter.phase == RepPhase.READY
        assert counter.baseline == pytest.approx(0.6)
        
        counter.reset(recalibrate=True)
        assert counter.phase == RepPhase.CALIBRATING
        assert counter.baseline is None
    
    def test_for_exercise_uses_definition(self):
        counter = BaselineRepCounter.for_exercise(default_catalog().get("neck-side-stretch"))
        assert (counter.joint, counter.axis, counter.mirror) == ("nose", "x", True)
        assert counter.cooldown_ms == 800
        assert counter.delta == 0.05
    
    def test_unsupported_joint(self):
        with pytest.raises(ConfigurationError):
            BaselineRepCounter("ankle")
