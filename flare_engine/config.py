"""
Configuration management using Pydantic Settings.
Environment variables override default values.
"""
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, Literal

from .constants import (
    NUTRITION_WEIGHT,
    SYMPTOM_WEIGHT,
    LIFESTYLE_WEIGHT,
    MEDICATION_WEIGHT,
    WEIGHT_SUM_TOLERANCE,
    NEXT_PREDICTION_INTERVAL_HOURS,
    FACTOR_NUTRITION,
    FACTOR_SYMPTOMS,
    FACTOR_LIFESTYLE,
    FACTOR_MEDICATION,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    app_name: str = "IBD Flare Risk Engine"
    version: str = "1.0.0"

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 8001
    reload: bool = False  # Set to True only in development
    workers: int = 1

    # CORS
    cors_origins: list[str] = [
        "http://localhost:8000",
        "http://localhost:5173",
    ]

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # Logging
    log_level: str = "INFO"

    # Learned model
    model_path: str = "models/flare_model.pkl"
    model_version: str = "1.0.0"
    load_model_on_startup: bool = True
    model_confidence_floor: float = 0.0

    # Rule engine weights (must sum to 1.0)
    nutrition_weight: float = NUTRITION_WEIGHT
    symptom_weight: float = SYMPTOM_WEIGHT
    lifestyle_weight: float = LIFESTYLE_WEIGHT
    medication_weight: float = MEDICATION_WEIGHT

    # Scheduling
    next_prediction_hours: int = NEXT_PREDICTION_INTERVAL_HOURS

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        protected_namespaces=(),
    )

    @model_validator(mode="after")
    def validate_rule_weights(self) -> "Settings":
        """Reject weight overrides that do not sum to 1.0."""
        total = sum(self.rule_weights.values())
        if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
            raise ValueError(f"Rule weights must sum to 1.0, got {total:.6f}")
        if any(weight < 0 for weight in self.rule_weights.values()):
            raise ValueError("Rule weights must be non-negative")
        return self

    @property
    def rule_weights(self) -> Dict[str, float]:
        return {
            FACTOR_NUTRITION: self.nutrition_weight,
            FACTOR_SYMPTOMS: self.symptom_weight,
            FACTOR_LIFESTYLE: self.lifestyle_weight,
            FACTOR_MEDICATION: self.medication_weight,
        }


# Global settings instance
settings = Settings()
