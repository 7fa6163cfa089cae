"""Account storage for the access gate.

Accounts (email + bcrypt hash) and revoked token ids live in one DuckDB file.
The service is a process-wide singleton like the other DuckDB services.
"""
import logging
import threading
from datetime import datetime, timezone
from typing import Optional

import bcrypt
import duckdb

from app.config import get_config

logger = logging.getLogger(__name__)

_CREATE_ACCOUNTS = """
CREATE TABLE IF NOT EXISTS accounts (
    email               VARCHAR PRIMARY KEY,
    password_hash       VARCHAR NOT NULL,
    created_at          TIMESTAMP NOT NULL,
    password_changed_at TIMESTAMP
)
"""

_CREATE_REVOKED = """
CREATE TABLE IF NOT EXISTS revoked_tokens (
    jti        VARCHAR PRIMARY KEY,
    expires_at TIMESTAMP NOT NULL
)
"""


class AccountExists(Exception):
    """Raised on signup with an email that is already registered."""


class AccountNotFound(Exception):
    """Raised when no account matches the given email."""


class InvalidPassword(Exception):
    """Raised when the password does not match the stored hash."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class AccountService:
    """Singleton service for accounts and token revocation."""

    _instance: Optional["AccountService"] = None
    _default_db_path: str = "accounts.duckdb"

    def __init__(self, db_path: Optional[str] = None, rounds: int = 12) -> None:
        self._db_path = db_path or self._default_db_path
        self._rounds = rounds
        self._lock = threading.Lock()
        self._conn = duckdb.connect(self._db_path)
        self._conn.execute(_CREATE_ACCOUNTS)
        self._conn.execute(_CREATE_REVOKED)
        logger.info("[AccountService] Initialized with db=%s", self._db_path)

    @classmethod
    def get_instance(cls) -> "AccountService":
        if cls._instance is None:
            auth = get_config().auth
            cls._instance = cls(auth.accounts_db_path, rounds=auth.bcrypt_rounds)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Close the connection and clear the instance (for testing)."""
        if cls._instance is not None:
            cls._instance.close()
            cls._instance = None

    def close(self) -> None:
        self._conn.close()

    # -----------------------------------------------------------------------
    # Password hashing
    # -----------------------------------------------------------------------

    def _hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    @staticmethod
    def _verify(password: str, hashed: str) -> bool:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))

    def _password_hash(self, email: str) -> str:
        with self._lock:
            row = self._conn.execute(
                "SELECT password_hash FROM accounts WHERE email = ?", [email]
            ).fetchone()
        if row is None:
            raise AccountNotFound(email)
        return row[0]

    # -----------------------------------------------------------------------
    # Accounts
    # -----------------------------------------------------------------------

    def create_account(self, email: str, password: str) -> None:
        password_hash = self._hash(password)
        with self._lock:
            exists = self._conn.execute(
                "SELECT 1 FROM accounts WHERE email = ?", [email]
            ).fetchone()
            if exists:
                raise AccountExists(email)
            self._conn.execute(
                "INSERT INTO accounts (email, password_hash, created_at) VALUES (?, ?, ?)",
                [email, password_hash, _utcnow()],
            )
        logger.info("[AccountService] Created account %s", email)

    def authenticate(self, email: str, password: str) -> str:
        """Return *email* when the password matches.

        Raises:
            AccountNotFound: No such account.
            InvalidPassword: The password does not match.
        """
        if not self._verify(password, self._password_hash(email)):
            raise InvalidPassword(email)
        return email

    def change_password(self, email: str, current_password: str, new_password: str) -> None:
        """Replace the password; tokens issued before the change stop working."""
        self.authenticate(email, current_password)
        password_hash = self._hash(new_password)
        # Whole seconds, like the iat claim it is compared against.
        changed_at = _utcnow().replace(microsecond=0)
        with self._lock:
            self._conn.execute(
                "UPDATE accounts SET password_hash = ?, password_changed_at = ? WHERE email = ?",
                [password_hash, changed_at, email],
            )
        logger.info("[AccountService] Password changed for %s", email)

    def exists(self, email: str) -> bool:
        with self._lock:
            row = self._conn.execute(
                "SELECT 1 FROM accounts WHERE email = ?", [email]
            ).fetchone()
        return row is not None

    def issued_before_password_change(self, email: str, issued_at: datetime) -> bool:
        with self._lock:
            row = self._conn.execute(
                "SELECT password_changed_at FROM accounts WHERE email = ?", [email]
            ).fetchone()
        if row is None or row[0] is None:
            return False
        return issued_at.astimezone(timezone.utc).replace(tzinfo=None) < row[0]

    # -----------------------------------------------------------------------
    # Token revocation
    # -----------------------------------------------------------------------

    def revoke_token(self, jti: str, expires_at: datetime) -> None:
        expires = expires_at.astimezone(timezone.utc).replace(tzinfo=None)
        with self._lock:
            self._conn.execute(
                "DELETE FROM revoked_tokens WHERE expires_at < ?", [_utcnow()]
            )
            self._conn.execute(
                "INSERT INTO revoked_tokens (jti, expires_at) VALUES (?, ?) "
                "ON CONFLICT DO NOTHING",
                [jti, expires],
            )

    def is_revoked(self, jti: str) -> bool:
        with self._lock:
            row = self._conn.execute(
                "SELECT 1 FROM revoked_tokens WHERE jti = ?", [jti]
            ).fetchone()
        return row is not None
