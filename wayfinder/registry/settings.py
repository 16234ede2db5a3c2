"""Service and client configuration loaded from WAYFINDER_* environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class WayfinderSettings(BaseSettings):
    """Wayfinder settings shared by the registry service and workspace sessions.

    All fields are read from environment variables with the ``WAYFINDER_``
    prefix.  For example, ``WAYFINDER_LOG_LEVEL=DEBUG`` maps to ``log_level``.
    """

    model_config = SettingsConfigDict(
        env_prefix="WAYFINDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"

    # -- Record store ----------------------------------------------------------
    data_root: str = "./data"
    """Root directory for workspace records and server-generated projects."""

    data_prefix: str | None = None
    """Optional namespace prefix inserted into all data paths.

    When set, records live under ``{data_root}/{data_prefix}/workspaces/``.
    """

    record_store: Literal["local", "s3"] = "local"

    # S3 (only when record_store = "s3")
    s3_endpoint: str | None = None
    s3_bucket: str | None = None
    s3_region: str | None = None
    s3_access_key: str | None = None
    s3_secret_key: SecretStr | None = None
    s3_path_style: bool = False
    """Use path-style addressing (required by MinIO and some S3-compatible services)."""

    # -- Server ----------------------------------------------------------------
    host: str = "127.0.0.1"
    port: int = 8400

    # -- Client session --------------------------------------------------------
    registry_url: str | None = None
    """Registry service URL.  When unset, sessions open the record store in-process."""

    client_state_dir: str = "~/.wayfinder"
    """Directory holding the client-local index (``local_index.json``)."""

    git_timeout: float = 30.0
    """Ceiling in seconds for the git snapshot subprocess at registration."""

    # -- Helpers ---------------------------------------------------------------

    @property
    def local_index_path(self) -> Path:
        return Path(self.client_state_dir).expanduser() / "local_index.json"


@lru_cache(maxsize=1)
def get_settings() -> WayfinderSettings:
    """Return a cached settings instance.

    Reads from environment variables and ``.env`` on first call, then returns
    the same object.  Call ``get_settings.cache_clear()`` in tests to force a
    re-read after overriding env vars.
    """
    return WayfinderSettings()
