"""Watcher configuration."""

from pathlib import Path
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class WatcherSettings(BaseSettings):
    """Settings for the repository watcher.

    Settings can be loaded from environment variables or .env file.
    All settings are prefixed with REPOWATCHER_ (e.g., REPOWATCHER_REPO_URL).
    """

    model_config = SettingsConfigDict(
        env_prefix="REPOWATCHER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Repository
    repo_name: str = Field(..., description="Name of the repository (local mirror directory)")
    repo_url: str = Field(..., description="URL of the remote repository")
    auth_token: Optional[SecretStr] = Field(
        default=None,
        description="API token sent as HTTP basic auth password",
    )
    clone_dir: Path = Field(
        default=Path("./.repowatcher"),
        description="Directory holding the local mirror",
    )

    # Polling
    poll_interval: float = Field(
        default=300.0,
        gt=0,
        description="Seconds between poll passes",
    )
    remote_timeout: float = Field(
        default=120.0,
        gt=0,
        description="Seconds after which a single git call is killed",
    )
    max_workers: int = Field(
        default=1,
        ge=1,
        description="Number of branches whose snapshots are built concurrently",
    )

    # HTTP server
    host: str = Field(default="0.0.0.0", description="HTTP bind address")
    port: int = Field(default=8080, ge=0, le=65535, description="HTTP port")

    # Runner files
    runner_file: str = Field(
        default="runner.yaml",
        description="Path of the runner configuration inside each branch",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    json_logs: bool = Field(default=False, description="Force JSON log output")

    @property
    def mirror_path(self) -> Path:
        """Path of the bare mirror for this repository."""
        return self.clone_dir / f"{self.repo_name}.git"

    def token(self) -> Optional[str]:
        """Return the plain auth token, if one is configured."""
        if self.auth_token is None:
            return None
        return self.auth_token.get_secret_value()
