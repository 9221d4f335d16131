"""Process settings for easy-search using Pydantic Settings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven settings needed before the search config is loaded.

    Collection and infrastructure options live in the JSON search config;
    these only locate it and allow the bind address to be overridden.
    """

    model_config = SettingsConfigDict(
        env_prefix="SEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    config: Path = Field(default=Path("search.json"), description="Path to the JSON search configuration")
    data_file: Path | None = Field(
        default=None,
        description="Optional JSON file with schemas and records served by the bundled store",
    )
    host: str | None = Field(default=None, description="Overrides infrastructure.host when set")
    port: int | None = Field(default=None, ge=1, le=65535, description="Overrides infrastructure.port when set")
    log_level: str | None = Field(default=None, description="Overrides the active log profile level when set")
    tracing_enabled: bool = Field(default=True, description="Install an OpenTelemetry tracer provider at startup")
