"""Tests for the per-session angle smoother."""

import pytest

from core.config import settings
from core.exceptions import ConfigurationError
from posture_service.models.smoothing import AngleSmoother


@pytest.mark.parametrize("value", [172.0, 0.1, 0.11, 0.23, 17.3])
@pytest.mark.parametrize("window_size", [3, 5])
def test_constant_input_converges_exactly(value, window_size):
    smoother = AngleSmoother(window_size=window_size)
    results = [smoother.smooth("knee", value) for _ in range(window_size + 2)]
    
    assert results[-1] == value
    assert smoother.smooth("knee", None) == value


def test_window_settles_after_a_change():
    smoother = AngleSmoother(window_size=3)
    smoother.smooth("hip", 5.0)
    results = [smoother.smooth("hip", 0.1) for _ in range(3)]

    assert results[0] != 0.1
    assert results[-1] == 0.1


def test_window_evicts_oldest():
    smoother = AngleSmoother(window_size=5)
    for value in [1, 2, 3, 4, 5, 6]:
        latest = smoother.smooth("hip", value)
    
    assert latest == pytest.approx(4.0)
    assert smoother.history("hip") == [2, 3, 4, 5, 6]


def test_missing_value_holds_trend_without_pushing():
    smoother = AngleSmoother(window_size=3)
    smoother.smooth("trunk", 10.0)
    smoother.smooth("trunk", 20.0)
    
    assert smoother.smooth("trunk", None) == pytest.approx(15.0)
    assert smoother.history("trunk") == [10.0, 20.0]


def test_missing_value_without_history_is_none():
    assert AngleSmoother().smooth("neck", None) is None


def test_metrics_are_independent():
    smoother = AngleSmoother(window_size=3)
    smoother.smooth("a", 1.0)
    
    assert smoother.smooth("b", 100.0) == 100.0
    assert smoother.history("a") == [1.0]


def test_reset_and_reset_all():
    smoother = AngleSmoother()
    smoother.smooth("a", 1.0)
    smoother.smooth("b", 2.0)
    
    smoother.reset("a")
    assert smoother.smooth("a", None) is None
    assert smoother.smooth("b", None) == 2.0
    
    smoother.reset_all()
    assert smoother.smooth("b", None) is None


def test_sessions_do_not_share_state():
    first, second = AngleSmoother(), AngleSmoother()
    first.smooth("knee", 150.0)
    
    assert second.smooth("knee", None) is None


def test_default_window_from_settings():
    assert AngleSmoother().window_size == settings.SMOOTHING_WINDOW_SIZE


def test_rejects_empty_window():
    with pytest.raises(ConfigurationError):
        AngleSmoother(window_size=0)
