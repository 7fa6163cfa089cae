"""Tests for the auth module (accounts, tokens, access gate)."""
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from app.auth.service import AccountExists, AccountNotFound, AccountService, InvalidPassword
from app.auth.tokens import create_access_token, decode_access_token


@pytest.fixture
def accounts(tmp_path):
    service = AccountService(db_path=str(tmp_path / "acc.duckdb"), rounds=4)
    yield service
    service.close()


class TestAccountService:
    def test_create_and_authenticate(self, accounts):
        accounts.create_account("a@b.com", "pw")
        assert accounts.authenticate("a@b.com", "pw") == "a@b.com"
        assert accounts.exists("a@b.com")

    def test_password_is_stored_hashed(self, accounts):
        accounts.create_account("a@b.com", "pw")
        stored = accounts._password_hash("a@b.com")
        assert stored != "pw"
        assert stored.startswith("$2b$")

    def test_duplicate_signup(self, accounts):
        accounts.create_account("a@b.com", "pw")
        with pytest.raises(AccountExists):
            accounts.create_account("a@b.com", "other")

    def test_unknown_account(self, accounts):
        with pytest.raises(AccountNotFound):
            accounts.authenticate("nobody@b.com", "pw")

    def test_wrong_password(self, accounts):
        accounts.create_account("a@b.com", "pw")
        with pytest.raises(InvalidPassword):
            accounts.authenticate("a@b.com", "nope")

    def test_change_password(self, accounts):
        accounts.create_account("a@b.com", "old")
        accounts.change_password("a@b.com", "old", "new")
        assert accounts.authenticate("a@b.com", "new") == "a@b.com"
        with pytest.raises(InvalidPassword):
            accounts.authenticate("a@b.com", "old")

    def test_password_change_invalidates_older_tokens(self, accounts):
        accounts.create_account("a@b.com", "old")
        before = datetime.now(timezone.utc) - timedelta(minutes=1)
        assert not accounts.issued_before_password_change("a@b.com", before)

        accounts.change_password("a@b.com", "old", "new")

        assert accounts.issued_before_password_change("a@b.com", before)
        later = datetime.now(timezone.utc) + timedelta(minutes=1)
        assert not accounts.issued_before_password_change("a@b.com", later)
        assert not accounts.issued_before_password_change("nobody@b.com", before)

    def test_revocation(self, accounts):
        expires = datetime.now(timezone.utc) + timedelta(minutes=5)
        assert not accounts.is_revoked("jti-1")
        accounts.revoke_token("jti-1", expires)
        accounts.revoke_token("jti-1", expires)
        assert accounts.is_revoked("jti-1")


class TestTokens:
    def test_round_trip(self):
        token, claims = create_access_token("a@b.com")
        decoded = decode_access_token(token)
        assert decoded.subject == "a@b.com"
        assert decoded.jti == claims.jti

    def test_expired_token_rejected(self, test_config):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "a@b.com", "jti": "x", "iat": now - timedelta(hours=2),
             "exp": now - timedelta(hours=1), "type": "access"},
            test_config.secrets.jwt.secret_key,
            algorithm="HS256",
        )
        with pytest.raises(ValueError, match="expired"):
            decode_access_token(token)

    def test_wrong_secret_rejected(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "a@b.com", "jti": "x", "exp": now + timedelta(hours=1), "type": "access"},
            "some-other-secret",
            algorithm="HS256",
        )
        with pytest.raises(ValueError):
            decode_access_token(token)

    def test_wrong_type_rejected(self, test_config):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "a@b.com", "jti": "x", "iat": now,
             "exp": now + timedelta(hours=1), "type": "refresh"},
            test_config.secrets.jwt.secret_key,
            algorithm="HS256",
        )
        with pytest.raises(ValueError, match="not an access token"):
            decode_access_token(token)


class TestAuthEndpoints:
    def test_signup_login_me(self, api_client):
        resp = api_client.post("/auth/signup", json={"email": " A@B.com ", "password": "pw"})
        assert resp.status_code == 201

        resp = api_client.post("/auth/login", json={"email": "a@b.com", "password": "pw"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["token_type"] == "bearer"
        assert body["expires_in"] == 3600

        headers = {"Authorization": f"Bearer {body['access_token']}"}
        assert api_client.get("/auth/me", headers=headers).json() == {"email": "a@b.com"}

    def test_login_sets_http_only_cookie(self, api_client):
        api_client.post("/auth/signup", json={"email": "a@b.com", "password": "pw"})
        resp = api_client.post("/auth/login", json={"email": "a@b.com", "password": "pw"})
        cookie = resp.headers["set-cookie"]
        assert cookie.startswith("vault_session=")
        assert "HttpOnly" in cookie

    def test_duplicate_signup_400(self, api_client):
        api_client.post("/auth/signup", json={"email": "a@b.com", "password": "pw"})
        resp = api_client.post("/auth/signup", json={"email": "a@b.com", "password": "pw"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "User already exists"

    def test_login_unknown_user_404(self, api_client):
        resp = api_client.post("/auth/login", json={"email": "x@y.com", "password": "pw"})
        assert resp.status_code == 404

    def test_login_wrong_password_401(self, api_client):
        api_client.post("/auth/signup", json={"email": "a@b.com", "password": "pw"})
        resp = api_client.post("/auth/login", json={"email": "a@b.com", "password": "bad"})
        assert resp.status_code == 401

    def test_overlong_password_rejected(self, api_client):
        resp = api_client.post("/auth/signup", json={"email": "a@b.com", "password": "x" * 73})
        assert resp.status_code == 422

    def test_logout_revokes_token(self, api_client, login):
        headers = login()
        assert api_client.post("/auth/logout", headers=headers).status_code == 200
        assert api_client.get("/auth/me", headers=headers).status_code == 401
        assert api_client.get("/files", headers=headers).status_code == 401

    def test_logout_requires_auth(self, api_client):
        assert api_client.post("/auth/logout").status_code == 401

    def test_change_password(self, api_client, login):
        headers = login(password="old")
        resp = api_client.post(
            "/auth/change-password",
            json={"current_password": "old", "new_password": "new"},
            headers=headers,
        )
        assert resp.status_code == 200
        resp = api_client.post("/auth/login", json={"email": "a@b.com", "password": "new"})
        assert resp.status_code == 200

    def test_change_password_wrong_current(self, api_client, login):
        headers = login(password="old")
        resp = api_client.post(
            "/auth/change-password",
            json={"current_password": "wrong", "new_password": "new"},
            headers=headers,
        )
        assert resp.status_code == 401

    def test_change_password_ends_existing_sessions(self, api_client, login, test_config):
        headers = login(password="old")
        earlier = datetime.now(timezone.utc) - timedelta(minutes=1)
        other_session = jwt.encode(
            {"sub": "a@b.com", "jti": "other-device", "iat": earlier,
             "exp": earlier + timedelta(hours=1), "type": "access"},
            test_config.secrets.jwt.secret_key,
            algorithm="HS256",
        )
        other_headers = {"Authorization": f"Bearer {other_session}"}
        assert api_client.get("/auth/me", headers=other_headers).status_code == 200

        resp = api_client.post(
            "/auth/change-password",
            json={"current_password": "old", "new_password": "new"},
            headers=headers,
        )
        assert resp.status_code == 200

        assert api_client.get("/auth/me", headers=headers).status_code == 401
        assert api_client.get("/files", headers=other_headers).status_code == 401

        resp = api_client.post("/auth/login", json={"email": "a@b.com", "password": "new"})
        fresh = {"Authorization": f"Bearer {resp.json()['access_token']}"}
        assert api_client.get("/auth/me", headers=fresh).status_code == 200
