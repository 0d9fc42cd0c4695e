from __future__ import annotations

from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from repodex.exceptions import ConfigError


class AppConfig(BaseModel):
    """Application-specific configuration values."""

    name: str = "Repodex"
    env: str = "development"
    log_level: str = "INFO"
    log_file: Optional[Path] = None
    # Transport settings for FastMCP: "stdio" (default), "http", or "sse"
    transport: Literal["stdio", "http", "sse"] = "stdio"
    host: str = "127.0.0.1"
    port: int = 8000


class IndexConfig(BaseModel):
    """Index storage defaults shared by all repositories."""

    base_dir: Path = Path(".repodex/indexes")
    # Open stored indexes as-is; set to False to validate (and rebuild if broken) on startup
    trust_existing_index: bool = True
    delete_on_close: bool = False


class RepositoryConfig(BaseModel):
    """A single filesystem-backed repository to index."""

    id: str
    base_dir: Path
    index_dir: Optional[Path] = None  # defaults to <index.base_dir>/<id>
    searchable: bool = True  # include in federated (non-targeted) search


class SchedulerConfig(BaseModel):
    """Periodic reindex configuration values."""

    enabled: bool = False
    interval_minutes: int = 60


class Settings(BaseSettings):
    """Top-level settings loaded from environment variables and .env only."""

    model_config = SettingsConfigDict(
        env_prefix="REPODEX_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    app: AppConfig = AppConfig()
    index: IndexConfig = IndexConfig()
    repositories: List[RepositoryConfig] = []
    scheduler: SchedulerConfig = SchedulerConfig()

    def index_dir_for(self, repo: RepositoryConfig) -> Path:
        """Resolve the index storage directory of a configured repository."""
        return repo.index_dir or (self.index.base_dir / repo.id)


def load_settings() -> Settings:
    """Load settings from environment variables and .env only."""
    try:
        return Settings()  # type: ignore[call-arg]
    except ValidationError as exc:
        raise ConfigError(f"invalid Repodex settings: {exc}") from exc
