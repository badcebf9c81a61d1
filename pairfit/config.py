"""
Centralised config for the pairing engine.

This module consolidates all configuration settings, loading sensitive values
from environment variables and providing typed, validated access to them
through a singleton `settings` object.
"""

import os
from urllib.parse import quote_plus
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings.

    Pydantic's BaseSettings will automatically load values from a `.env` file
    or from system environment variables. Engine thresholds can be tuned the
    same way, e.g. `DELOAD_AFTER_WEEKS=5`.
    """
    # Model config: Load from a .env file, and treat env vars as case-insensitive
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore", case_sensitive=False)

    # --- CORE SETTINGS ---
    # The root directory of the project.
    # We determine this by finding the parent directory of this config file.
    PROJECT_ROOT: Path = Path(__file__).parent.parent.resolve()
    ENVIRONMENT: str = "development"

    # --- DATABASE (from environment) ---
    POSTGRES_USER: Optional[str] = None
    POSTGRES_PASSWORD: Optional[str] = None
    POSTGRES_HOST: Optional[str] = None
    POSTGRES_PORT: Optional[int] = 5432
    POSTGRES_DB: Optional[str] = None
    DATABASE_URL: Optional[str] = Field(None, validate_default=True)

    # --- CATALOG ---
    # Optional override; the bundled sample catalog is used otherwise.
    EXERCISE_CATALOG_PATH: Optional[Path] = None

    # --- PROGRESSION SETTINGS ---
    PROGRESSION_MIN_TIMES_PERFORMED: int = 3
    PROGRESSION_MIN_FORM_QUALITY: float = 3.0  # "good"
    PROGRESSION_RIR_TOO_EASY: float = 3.0
    PROGRESSION_CONSECUTIVE_SUCCESSES: int = 2
    PROGRESSION_PAIN_FREE_SESSIONS: int = 3
    PROGRESSION_MIN_COMPLETION_RATE: float = 0.9
    REGRESSION_FAILURES: int = 2
    REGRESSION_TOO_HARD_REPORTS: int = 2
    REGRESSION_POOR_FORM_SESSIONS: int = 2
    REGRESSION_RIR_TOO_HARD: float = 0.0
    ANALYSIS_WINDOW: int = 5  # most recent logs considered per exercise

    # --- PROGRESS TRACKING ---
    STREAK_MAX_GAP_DAYS: int = 3
    FATIGUE_DECAY_PER_DAY: float = 0.75  # 25% recovered every 24h
    PREFERENCE_LIST_LIMIT: int = 10

    # --- COUPLE TRACKING ---
    GAP_HISTORY_LIMIT: int = 52
    PAIRING_HISTORY_LIMIT: int = 100
    COMFORT_STEP: float = 0.1
    COMPETITION_STEP: float = 0.1

    # --- PERIODIZATION ---
    DELOAD_AFTER_WEEKS: int = 6
    PLATEAU_DELOAD_WEEKS: int = 3
    PHASE_HISTORY_LIMIT: int = 20

    def __init__(self, **values):
        super().__init__(**values)
        # Check for an explicit override for the host from the environment
        db_host = os.getenv("DB_HOST_OVERRIDE", self.POSTGRES_HOST)
        if self.POSTGRES_USER and self.POSTGRES_PASSWORD and db_host and self.POSTGRES_DB:
            # URL-encode user/pass to support special characters like @ and #
            user_enc = quote_plus(self.POSTGRES_USER)
            pass_enc = quote_plus(self.POSTGRES_PASSWORD)
            self.DATABASE_URL = (
                f"postgresql://{user_enc}:{pass_enc}@{db_host}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
            )

    # --- FILE PATHS (derived from PROJECT_ROOT) ---
    @property
    def log_path(self) -> Path:
        return self.PROJECT_ROOT / "logs/pairfit_history.log"

    @property
    def data_path(self) -> Path:
        return self.PROJECT_ROOT / "knowledge"

    @property
    def catalog_path(self) -> Path:
        if self.EXERCISE_CATALOG_PATH is not None:
            return self.EXERCISE_CATALOG_PATH
        return Path(__file__).parent / "data/exercises.json"


# Create a single, importable instance of the settings
settings = Settings()
