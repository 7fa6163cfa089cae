"""Shared test fixtures and configuration for backend tests."""
import pytest
from fastapi.testclient import TestClient

from app.audit.service import AuditLogService
from app.auth.service import AccountService
from app.config import (
    AppConfig,
    AuthSettings,
    LoggingSettings,
    StorageSettings,
    reset_config,
    set_config,
)
from app.files.service import FileStorageService
from app.main import app


def _reset_singletons() -> None:
    FileStorageService.reset_instance()
    AccountService.reset_instance()
    AuditLogService.reset_instance()


@pytest.fixture(autouse=True)
def test_config(tmp_path):
    """Point every service at throwaway paths under tmp_path."""
    _reset_singletons()
    config = AppConfig(
        storage=StorageSettings(
            root_dir=str(tmp_path / "uploads"),
            max_upload_bytes=1024,
        ),
        auth=AuthSettings(
            accounts_db_path=str(tmp_path / "accounts.duckdb"),
            bcrypt_rounds=4,
        ),
        logging=LoggingSettings(
            audit_enabled=True,
            audit_path=str(tmp_path / "audit_logs.duckdb"),
        ),
    )
    set_config(config)
    yield config
    _reset_singletons()
    reset_config()


@pytest.fixture
def api_client():
    """Provide a TestClient for the main FastAPI app."""
    return TestClient(app)


@pytest.fixture
def login(api_client):
    """Sign up + log in an account, returning Authorization headers."""

    def _login(email: str = "a@b.com", password: str = "hunter2") -> dict:
        resp = api_client.post("/auth/signup", json={"email": email, "password": password})
        assert resp.status_code == 201, resp.text
        resp = api_client.post("/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        # Drop the session cookie so each caller is identified by its header only.
        api_client.cookies.clear()
        return {"Authorization": f"Bearer {resp.json()['access_token']}"}

    return _login
