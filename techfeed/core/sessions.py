"""Server-side sessions bound to a signed, opaque cookie.

The cookie carries a random token signed with the session secret; the token is
the primary key of a ``sessions`` row holding the user id and the expiry time.
A client is authenticated only while the row exists, has not expired and the
referenced user still exists.
"""

from __future__ import annotations

import secrets
from datetime import timedelta

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response

from techfeed.core.auth import CookieSigner
from techfeed.core.config import Settings
from techfeed.core.database import store_guard
from techfeed.core.logging import get_logger
from techfeed.models.base import utcnow
from techfeed.models.session import UserSession
from techfeed.models.user import User

logger = get_logger(__name__)

_SESSION_SALT = "techfeed.session"


class SessionManager:
    def __init__(
        self,
        secret: str,
        *,
        max_age_seconds: int,
        cookie_name: str = "techfeed.sid",
        secure: bool = False,
    ) -> None:
        self.cookie_name = cookie_name
        self.max_age_seconds = max_age_seconds
        self.secure = secure
        self._signer = CookieSigner(secret, salt=_SESSION_SALT)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionManager":
        return cls(
            settings.session_secret,
            max_age_seconds=settings.session_max_age_seconds,
            cookie_name=settings.session_cookie_name,
            secure=settings.session_cookie_secure,
        )

    def _token(self, cookie_value: str | None) -> str | None:
        return self._signer.unsign(cookie_value, max_age=self.max_age_seconds)

    async def establish(self, db: AsyncSession, user: User) -> str:
        """Persist a new session for *user* and return the cookie value."""
        token = secrets.token_urlsafe(32)
        now = utcnow()
        with store_guard():
            db.add(
                UserSession(
                    token=token,
                    user_id=user.id,
                    created_at=now,
                    expires_at=now + timedelta(seconds=self.max_age_seconds),
                )
            )
            await db.commit()
        logger.info("Session established", user_id=str(user.id))
        return self._signer.sign(token)

    async def resolve(self, db: AsyncSession, cookie_value: str | None) -> User | None:
        """Return the user behind *cookie_value*, or None when anonymous."""
        token = self._token(cookie_value)
        if token is None:
            return None
        with store_guard():
            result = await db.execute(
                select(User)
                .join(UserSession, UserSession.user_id == User.id)
                .where(UserSession.token == token, UserSession.expires_at > utcnow())
            )
            return result.scalar_one_or_none()

    async def terminate(self, db: AsyncSession, cookie_value: str | None) -> bool:
        """Delete the session row. Returns False when there was nothing to end."""
        token = self._token(cookie_value)
        if token is None:
            return False
        with store_guard():
            result = await db.execute(delete(UserSession).where(UserSession.token == token))
            await db.commit()
        ended = bool(result.rowcount)
        if ended:
            logger.info("Session terminated")
        return ended

    async def purge_expired(self, db: AsyncSession) -> int:
        with store_guard():
            result = await db.execute(
                delete(UserSession).where(UserSession.expires_at <= utcnow())
            )
            await db.commit()
        return result.rowcount or 0

    # ── Cookie helpers ────────────────────────────────────────────────────────

    def set_cookie(self, response: Response, cookie_value: str) -> None:
        response.set_cookie(
            self.cookie_name,
            cookie_value,
            max_age=self.max_age_seconds,
            httponly=True,
            samesite="lax",
            secure=self.secure,
        )

    def clear_cookie(self, response: Response) -> None:
        response.delete_cookie(
            self.cookie_name, httponly=True, samesite="lax", secure=self.secure
        )
