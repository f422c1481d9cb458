"""Runtime settings, read from ``GREENKPI_*`` environment variables or .env."""
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process-wide settings for scoring runs and run comparison."""

    model_config = SettingsConfigDict(
        env_prefix="GREENKPI_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # KPI configuration file (YAML or JSON); None means built-in defaults
    kpi_config_path: Optional[Path] = None

    # Snapshots are written under <output_dir>/reports/<product>/
    output_dir: Path = Path("out")

    log_level: str = "INFO"

    # Thread pool size for per-page scoring (1 = sequential)
    scoring_workers: int = Field(default=1, ge=1, le=64)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached settings instance."""
    return Settings()


settings = get_settings()
