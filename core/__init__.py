"""
POSTURELAB Core Module

Settings and the exception hierarchy.
"""

from .config import Settings, settings
from .exceptions import (
    PostureLabError,
    ConfigurationError,
    UnknownExerciseError,
    InvalidFrameError,
)

__all__ = [
    'Settings',
    'settings',
    'PostureLabError',
    'ConfigurationError',
    'UnknownExerciseError',
    'InvalidFrameError',
]
