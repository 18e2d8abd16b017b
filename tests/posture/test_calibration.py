"""Tests for calibration and its statistics helpers."""

import dataclasses

import pytest

from core.exceptions import ConfigurationError
from posture_service.models.calibration import (
    MetricCalibrator,
    calculate_calibration,
    calculate_median,
    calculate_std_dev,
    calculate_thresholds,
    remove_outliers,
    smooth_series,
)

SAMPLES_WITH_OUTLIER = [10, 10.4, 9.8, 10.1, 50, 10.2, 9.9, 10.3, 10.0, 10.1]


def test_baseline_is_robust_to_outlier():
    result = calculate_calibration(SAMPLES_WITH_OUTLIER, min_samples=10)
    
    assert result.baseline == pytest.approx(10.1)
    assert result.baseline < 10.5
    assert result.sample_count == 10
    # The outlier blows the spread far past the 0.05 limit
    assert result.std_dev > 0.05
    assert result.is_valid is False


def test_steady_samples_are_valid():
    samples = [0.50, 0.51, 0.49, 0.50, 0.50, 0.52, 0.48, 0.50, 0.51, 0.49]
    result = calculate_calibration(samples, min_samples=10, max_std_dev=0.05)
    
    assert result.is_valid is True
    assert result.baseline == pytest.approx(0.50)
    assert result.std_dev == pytest.approx(calculate_std_dev(samples))


def test_too_few_samples_uses_median_and_flags_invalid():
    result = calculate_calibration([0.4, 0.5, 0.6], min_samples=10)
    
    assert result.baseline == pytest.approx(0.5)
    assert result.sample_count == 3
    assert result.is_valid is False


def test_no_samples_falls_back_to_default_baseline():
    result = calculate_calibration([], min_samples=10, default_baseline=0.5)
    
    assert result.baseline == 0.5
    assert result.sample_count == 0
    assert result.std_dev == 0.0
    assert result.is_valid is False


def test_result_is_immutable():
    result = calculate_calibration([1.0] * 10)
    with pytest.raises(dataclasses.FrozenInstanceError):
        result.baseline = 2.0


def test_invalid_min_samples_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        calculate_calibration([1.0], min_samples=0)


def test_median_odd_and_even():
    assert calculate_median([3, 1, 2]) == 2
    assert calculate_median([4, 1, 3, 2]) == 2.5
    assert calculate_median([]) == 0.0


def test_population_std_dev():
    assert calculate_std_dev([2, 4, 4, 4, 5, 5, 7, 9]) == pytest.approx(2.0)


def test_remove_outliers_drops_only_the_outlier():
    filtered = remove_outliers(SAMPLES_WITH_OUTLIER)
    
    assert 50 not in filtered
    assert len(filtered) == 9
    assert filtered == [v for v in SAMPLES_WITH_OUTLIER if v != 50]


def test_remove_outliers_leaves_short_input_alone():
    assert remove_outliers([1, 100, 1000]) == [1, 100, 1000]


def test_thresholds():
    action, ret = calculate_thresholds(0.5, 0.1)
    assert action == pytest.approx(0.4)
    assert ret == pytest.approx(0.45)


def test_smooth_series_centred_window():
    assert smooth_series([1, 2, 3, 4, 5]) == pytest.approx([1.5, 2, 3, 4, 4.5])
    assert smooth_series([1, 2], window_size=3) == [1, 2]


class TestMetricCalibrator:
    
    def test_collects_over_frame_window(self):
        calibrator = MetricCalibrator(frame_count=5, min_samples=3)
        
        for value in [0.5, None, 0.51, 0.49]:
            assert calibrator.add_sample(value) is None
        result = calibrator.add_sample(0.5)
        
        assert calibrator.is_complete
        assert result.sample_count == 4
        assert result.baseline == pytest.approx(0.5)
        assert result.is_valid is True
    
    def test_result_is_stable_after_completion(self):
        calibrator = MetricCalibrator(frame_count=2, min_samples=1)
        calibrator.add_sample(1.0)
        first = calibrator.add_sample(1.0)
        
        assert calibrator.add_sample(9.0) is first
    
    def test_all_missing_falls_back(self):
        calibrator = MetricCalibrator(frame_count=3, min_samples=3, default_baseline=0.5)
        for _ in range(3):
            result = calibrator.add_sample(None)
        
        assert result.baseline == 0.5
        assert result.is_valid is False
    
    def test_reset_allows_recalibration(self):
        calibrator = MetricCalibrator(frame_count=1, min_samples=1)
        calibrator.add_sample(1.0)
        calibrator.reset()
        
        assert not calibrator.is_complete
        assert calibrator.add_sample(2.0).baseline == 2.0
