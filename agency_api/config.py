"""
Service settings read from the environment (and an optional ``.env`` file)
with pydantic-settings. ``get_settings()`` returns one cached instance.
"""

from functools import lru_cache
from typing import List, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime configuration.

    Environment variable names are the field names, case-insensitive
    (``DB_PATH``, ``DEFAULT_REPORT_DAYS``, ...).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_env: str = Field(default="development", description="Deployment environment name")

    # Storage
    db_path: str = Field(default="./data/agency.duckdb", description="DuckDB file path")
    manual_cohort_name: str = Field(
        default="Manual entry", description="Cohort that receives manually entered daily data"
    )

    # Reporting
    default_report_days: int = Field(
        default=30, ge=1, le=365, description="Lookback used when a report has no start date"
    )

    # HTTP server
    api_host: str = "0.0.0.0"
    api_port: int = Field(default=8000, ge=1, le=65535)
    api_reload: bool = False
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated origins allowed to call the API from a browser",
    )

    # Logging
    log_level: str = "info"
    log_format: Literal["json", "console"] = "json"

    dev_mode: bool = Field(default=False, description="Console logs instead of JSON")
    testing: bool = Field(default=False, description="Allows clear_for_testing to truncate tables")

    @field_validator("cors_origins")
    @classmethod
    def split_origins(cls, v: str) -> List[str]:
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
