"""
POSTURELAB Configuration

Environment variables and analysis tunables.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # Application
    APP_NAME: str = "POSTURELAB"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    
    # Landmarks
    VISIBILITY_THRESHOLD: float = 0.5
    REFERENCE_SHOULDER_WIDTH_CM: float = 42.0
    
    # Smoothing
    SMOOTHING_WINDOW_SIZE: int = 5
    
    # Calibration
    CALIBRATION_MIN_SAMPLES: int = 10
    CALIBRATION_MAX_STD_DEV: float = 0.05
    CALIBRATION_DEFAULT_BASELINE: float = 0.5
    
    # Session timers (seconds)
    ANNOUNCE_SECONDS: int = 3
    COUNTDOWN_SECONDS: int = 3
    VOICE_COUNTDOWN_FROM: int = 5
    
    # Baseline rep counter
    REP_DELTA_THRESHOLD: float = 0.05
    REP_DEBOUNCE_FRAMES: int = 3
    REP_COOLDOWN_MS: int = 300
    
    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
