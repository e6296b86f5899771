"""
CTH Engine Configuration Settings

Centralized configuration management using Pydantic Settings.
Values are loaded from environment variables prefixed with ``CTH_``
(e.g. ``CTH_MAX_INFERENCE_PASSES=5``) or from a local ``.env`` file.
"""

from pydantic_settings import BaseSettings
from typing import Optional
from functools import lru_cache


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    # Dimension weights (need not sum to 1, the score divides by their sum)
    weight_epoch: float = 0.40
    weight_social: float = 0.30
    weight_age: float = 0.15
    weight_population: float = 0.15

    # Inference
    max_inference_passes: int = 3
    trend_relation: float = 1.0

    # Representative-year offsets per phase (years)
    before_offset_years: int = 12
    prelude_offset_years: int = 1
    transition_offset_years: int = 1
    after_offset_years: int = 12

    # Optional JSON file replacing the built-in epoch reference table
    epoch_reference_path: Optional[str] = None

    # Rounding used in summaries
    score_precision: int = 4

    class Config:
        env_prefix = "CTH_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
