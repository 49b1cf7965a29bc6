"""Configuration from environment (no hardcoded secrets)."""

from pathlib import Path
from typing import List, Tuple

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings from env."""

    model_config = SettingsConfigDict(env_prefix="FILES_MANAGER_", extra="ignore")

    # Document store (SQLite file) and content store root
    db_path: Path = Path("/data/files_manager.db")
    folder_path: Path = Path("/tmp/files_manager")

    # Session store and job queue
    redis_url: str = "redis://localhost:6379/0"
    redis_timeout_seconds: float = 2.0
    session_ttl_seconds: int = 86400

    # Listing
    page_size: int = 20

    # Thumbnails: widths are generated in this order
    thumbnail_widths: Tuple[int, ...] = (500, 250, 100)
    queue_name: str = "fileQueue"
    job_max_attempts: int = 3
    worker_poll_seconds: int = 5
    # Names this worker's processing list; keep it stable across restarts and
    # distinct per worker. Empty means the host name.
    worker_id: str = ""

    # Rate limiting for GET /connect
    rate_limit_enabled: bool = True
    connect_rate_limit: str = "30/minute"

    # CORS: comma-separated string so pydantic-settings does not try to JSON-decode it
    cors_origins: str = "http://localhost:3000"

    @property
    def cors_origins_list(self) -> List[str]:
        """CORS origins as a list (split on comma)."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    # Server
    port: int = 5000

    # Logging (empty log_file = stderr only; level DEBUG|INFO|WARNING|ERROR)
    log_level: str = "INFO"
    log_file: str = ""


def get_settings() -> Settings:
    """Return application settings."""
    return Settings()
