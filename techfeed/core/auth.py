"""Authentication helpers: password hashing and signed cookie values.

Local auth flow:
    1. POST /login (form) → verify password → establish a server-side session
    2. The session token travels in a signed cookie; every protected route
       resolves it back to a User (see core/sessions.py)

OAuth flow:
    1. GET /auth/<provider>          → signed state cookie + redirect to provider
    2. GET /auth/<provider>/callback → exchange code, fetch profile, reconcile
       the identity (core/identity.py), then establish a session as above.
"""

from __future__ import annotations

import bcrypt
from itsdangerous import BadData, URLSafeTimedSerializer
from starlette.concurrency import run_in_threadpool

# bcrypt only looks at the first 72 bytes and newer releases reject longer input
MAX_PASSWORD_BYTES = 72


# ── Password helpers ─────────────────────────────────────────────────────────

def hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode(), bcrypt.gensalt()).decode()


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(plain.encode(), hashed.encode())
    except ValueError:
        # Oversized input or a malformed stored hash
        return False


async def hash_password_async(plain: str) -> str:
    return await run_in_threadpool(hash_password, plain)


async def verify_password_async(plain: str, hashed: str) -> bool:
    return await run_in_threadpool(verify_password, plain, hashed)


# ── Signed cookie helpers ────────────────────────────────────────────────────

class CookieSigner:
    """Signs and verifies opaque cookie payloads with the session secret."""

    def __init__(self, secret: str, salt: str) -> None:
        self._serializer = URLSafeTimedSerializer(secret_key=secret, salt=salt)

    def sign(self, value: str) -> str:
        return self._serializer.dumps(value)

    def unsign(self, signed: str | None, max_age: int) -> str | None:
        """Return the original value, or None when missing, tampered or too old."""
        if not signed:
            return None
        try:
            value = self._serializer.loads(signed, max_age=max_age)
        except BadData:
            # bad signature, expired timestamp or undecodable payload
            return None
        if not isinstance(value, str) or not value:
            return None
        return value
