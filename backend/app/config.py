"""Vault application configuration.

Loads settings from two YAML files:
  * vault.settings.yaml  — non-secret configuration
  * vault.secrets.yaml   — secrets (never committed)

Both locations can be overridden with the VAULT_SETTINGS / VAULT_SECRETS
environment variables. Relative paths inside the settings file are resolved
against the project root when the file lives in a ``config/`` directory and
against the settings file's own directory otherwise.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("vault.settings.yaml")
SECRETS_FILE  = Path("vault.secrets.yaml")

SETTINGS_ENV_VAR = "VAULT_SETTINGS"
SECRETS_ENV_VAR  = "VAULT_SECRETS"


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def _base_dir_for(settings_path: Path) -> Path:
    """Directory that relative paths in *settings_path* are resolved from."""
    parent = settings_path.resolve().parent
    if parent.name == "config":
        return parent.parent
    return parent


def _resolve_path(value: str, base_dir: Path) -> str:
    path = Path(value).expanduser()
    if path.is_absolute():
        return str(path)
    return str(base_dir / path)


# ---------------------------------------------------------------------------
# Secrets models
# ---------------------------------------------------------------------------


class JWTSecrets(BaseModel):
    secret_key: str = "change-me-in-production"
    algorithm:  str = "HS256"


class Secrets(BaseModel):
    jwt: JWTSecrets = Field(default_factory=JWTSecrets)


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host:      str = "0.0.0.0"
    port:      int = 3000
    log_level: str = "info"


class StorageSettings(BaseModel):
    """Where blobs live and how namespaces are named."""
    root_dir:         str  = "blob-storage/uploads"
    max_upload_bytes: int  = 20 * 1024 * 1024
    namespace_digest: bool = True

    @field_validator("max_upload_bytes")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_upload_bytes must be >= 0 (0 disables the cap)")
        return v


class AuthSettings(BaseModel):
    token_expire_minutes: int  = 60
    cookie_name:          str  = "vault_session"
    cookie_secure:        bool = False
    accounts_db_path:     str  = "accounts.duckdb"
    bcrypt_rounds:        int  = 12


class LoggingSettings(BaseModel):
    level:         str  = "info"
    audit_enabled: bool = True
    audit_path:    str  = "audit_logs.duckdb"


class AppConfig(BaseModel):
    server:  ServerSettings  = Field(default_factory=ServerSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    auth:    AuthSettings    = Field(default_factory=AuthSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    secrets: Secrets         = Field(default_factory=Secrets)


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_config(
    settings_path: Optional[Path] = None,
    secrets_path: Optional[Path] = None,
) -> AppConfig:
    """Load and merge settings + secrets into a single *AppConfig* object."""
    if settings_path is None:
        settings_path = Path(os.environ.get(SETTINGS_ENV_VAR, SETTINGS_FILE))
    if secrets_path is None:
        secrets_path = Path(os.environ.get(SECRETS_ENV_VAR, SECRETS_FILE))
    settings_path = Path(settings_path)

    settings_data = _load_yaml(settings_path)
    secrets_data  = _load_yaml(Path(secrets_path))

    # Merge: secrets live under the "secrets" key in AppConfig
    settings_data["secrets"] = secrets_data

    config = AppConfig(**settings_data)

    base_dir = _base_dir_for(settings_path)
    config.storage.root_dir = _resolve_path(config.storage.root_dir, base_dir)
    config.auth.accounts_db_path = _resolve_path(config.auth.accounts_db_path, base_dir)
    config.logging.audit_path = _resolve_path(config.logging.audit_path, base_dir)

    if config.secrets.jwt.secret_key == JWTSecrets().secret_key:
        logger.warning("Using the default JWT secret; set jwt.secret_key in %s", secrets_path)

    logger.info(
        "Settings loaded (storage.root_dir=%s, max_upload_bytes=%d, audit_enabled=%s)",
        config.storage.root_dir,
        config.storage.max_upload_bytes,
        config.logging.audit_enabled,
    )
    return config


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Return the process-wide config, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: AppConfig) -> None:
    """Install *config* as the process-wide config (used by tests)."""
    global _config
    _config = config


def reset_config() -> None:
    """Forget the cached config so the next get_config() reloads it."""
    global _config
    _config = None
