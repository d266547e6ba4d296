"""Application configuration — reads from environment variables and Docker Swarm secrets."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings


def _read_secret(name: str) -> str | None:
    """Read a Docker Swarm secret from /run/secrets/."""
    secret_path = Path(f"/run/secrets/{name}")
    if secret_path.exists():
        return secret_path.read_text().strip()
    return None


class Settings(BaseSettings):
    """Application settings with env var and secret support."""

    database_url: str = "sqlite:///./preset_vault.db"
    database_echo: bool = False
    auto_create_schema: bool = True
    port: int = 8400
    log_level: str = "INFO"

    # Import/export limits. The revision ceiling also caps exports.
    import_max_bytes: int = 2 * 1024 * 1024
    import_max_revisions: int = 50

    # When False, a row owned by another tenant is reported as plain "not found".
    expose_tenant_mismatch: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "env_prefix": "PRESET_VAULT_"}

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Override with Docker Swarm secrets if available
        if secret := _read_secret("preset_vault_database_url"):
            self.database_url = secret


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
