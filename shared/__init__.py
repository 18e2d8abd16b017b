"""
POSTURELAB Shared Module

Common utilities used across the analysis modules.
"""

from .utils import setup_logger, log_execution_time, round_half_up, clamp

__all__ = [
    'setup_logger',
    'log_execution_time',
    'round_half_up',
    'clamp',
]
