"""Application configuration using pydantic-settings."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from ``RISKCHARTS_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="RISKCHARTS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Risk Charts"
    debug: bool = False
    log_level: str = "INFO"

    # Chart data; None means the fixtures bundled with the package
    fixtures_dir: Path | None = None
    default_chart: str = "score2_op"
    preload_charts: list[str] = ["score2_op", "score2"]

    # Unit assumed when a caller does not pass one
    default_cholesterol_unit: str = "mg/dL"


settings = Settings()
