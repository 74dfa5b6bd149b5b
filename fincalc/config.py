"""
Application configuration using Pydantic Settings.
"""

import os
from functools import lru_cache
from typing import Literal
from pydantic_settings import BaseSettings


def get_env_file() -> str:
    """Determine which env file to use based on environment."""
    env = os.getenv("APP_ENV", "development")
    if env == "production":
        return ".env.production"
    return ".env.development"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App settings
    app_name: str = "Financial Calculation Engine"
    debug: bool = False
    log_level: str = "INFO"
    app_env: str = "development"

    # Backend selection
    backend: Literal["auto", "fallback"] = "auto"
    accelerated_module: str = "fincalc.calculations.accelerated"
    accelerated_load_timeout_seconds: float = 30.0

    # Mortgage defaults
    default_pmi_rate: float = 0.005  # 0.5% of principal per year
    default_property_tax_rate: float = 0.012  # 1.2% of home value per year
    default_home_value_ratio: float = 1.2  # Assumes 20% down payment

    # Portfolio defaults
    default_risk_free_rate: float = 0.02

    # Diagnostics
    benchmark_iterations: int = 10000

    class Config:
        env_prefix = "FINCALC_"
        env_file = get_env_file()
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
