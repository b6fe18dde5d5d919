"""
Package-wide defaults, overridable through ``ANOMALY_DETECTORS_*`` environment
variables or a ``.env`` file.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="ANOMALY_DETECTORS_", env_file=".env", extra="ignore",
    )

    log_level: str = "INFO"

    # used when an estimator is built with n_jobs=None / random_state=None
    n_jobs: int = 1
    random_state: int | None = None


def get_settings() -> Settings:
    """Build a fresh Settings instance from the current environment."""
    return Settings()


settings = Settings()
