"""
POSTURELAB Posture Service - Temporal Smoother

Per-metric moving average over a bounded window. One smoother belongs to one
session; create a new instance per session rather than sharing one.
"""

from collections import deque
from typing import Deque, Dict, Optional

import numpy as np

from core.config import settings
from core.exceptions import ConfigurationError


def _window_mean(history: Deque[float]) -> float:
    # Constant windows return their value exactly
    first = history[0]
    if all(v == first for v in history):
        return float(first)
    return float(np.mean(history))


class AngleSmoother:
    """
    Bounded-window moving average keyed by metric name.
    
    A missing reading does not enter the window; the current mean is
    returned instead, so a dropped frame holds the trend rather than
    snapping to zero.
    """
    
    def __init__(self, window_size: Optional[int] = None):
        if window_size is None:
            window_size = settings.SMOOTHING_WINDOW_SIZE
        if window_size < 1:
            raise ConfigurationError(f"window_size must be at least 1, got {window_size}")
        
        self.window_size = window_size
        self._history: Dict[str, Deque[float]] = {}
    
    def smooth(self, metric: str, value: Optional[float]) -> Optional[float]:
        """
        Push a reading and return the smoothed value.
        
        Args:
            metric: Metric name
            value: New reading, or None when it could not be measured
        
        Returns:
            Mean of the window, or None if the metric has no history yet
        """
        history = self._history.get(metric)
        
        if value is None:
            if not history:
                return None
            return _window_mean(history)
        
        if history is None:
            history = deque(maxlen=self.window_size)
            self._history[metric] = history
        history.append(value)
        
        return _window_mean(history)
    
    def history(self, metric: str) -> list:
        return list(self._history.get(metric, ()))
    
    def reset(self, metric: str):
        self._history.pop(metric, None)
    
    def reset_all(self):
        self._history.clear()
