"""Authentication module (email + password accounts, JWT sessions).

This is the access gate in front of file storage: it turns a request into an
Identity, or reports the caller as unauthenticated.

Services:
    - AccountService: DuckDB-backed accounts with bcrypt hashes and
      revoked token ids.
    - current_identity: FastAPI dependency reading the caller's token.
"""
