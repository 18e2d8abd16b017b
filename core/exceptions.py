"""
POSTURELAB Exceptions

Errors raised for host-side configuration mistakes. Noisy or partial sensor
data never raises; it is reflected in result fields instead.
"""


class PostureLabError(Exception):
    """Base exception for all POSTURELAB errors."""
    pass


class ConfigurationError(PostureLabError):
    """Raised when an exercise, pose or analysis parameter is invalid."""
    pass


class UnknownExerciseError(ConfigurationError):
    """Raised when an exercise id is not in the catalog."""
    
    def __init__(self, exercise_id: str):
        self.exercise_id = exercise_id
        super().__init__(f"Unknown exercise id: {exercise_id!r}")


class InvalidFrameError(PostureLabError):
    """Raised when a landmark frame is structurally malformed."""
    pass
