"""Identity reconciliation: map one authentication event to exactly one User.

Local logins are checked against the stored bcrypt hash. OAuth logins are
resolved with a fixed precedence:

    1. provider id match (google_id / github_id) → that user, unchanged
    2. email match                                → link the provider id
    3. neither                                    → create an OAuth-only user

Every write is committed here, so callers never see half-applied state.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from techfeed.core.auth import MAX_PASSWORD_BYTES, hash_password_async, verify_password_async
from techfeed.core.database import store_guard
from techfeed.core.errors import (
    DuplicateEmail,
    InvalidCredentials,
    InvalidRegistration,
    OAuthProviderError,
    TechfeedError,
)
from techfeed.core.logging import get_logger
from techfeed.models.user import User

logger = get_logger(__name__)


class Provider(str, enum.Enum):
    GOOGLE = "google"
    GITHUB = "github"

    @property
    def id_attr(self) -> str:
        return f"{self.value}_id"


@dataclass(frozen=True)
class OAuthIdentity:
    """A verified assertion from an OAuth provider."""

    provider: Provider
    provider_id: str
    email: str
    display_name: str | None = None


@dataclass(frozen=True)
class AuthOk:
    user: User

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class AuthFail:
    reason: str
    error: type[TechfeedError] = InvalidCredentials

    @property
    def ok(self) -> bool:
        return False


AuthResult = AuthOk | AuthFail


def normalize_email(email: str) -> str:
    return email.strip().lower()


def github_placeholder_email(username: str) -> str:
    """Deterministic stand-in for GitHub accounts without a public email."""
    return f"{username}@github.com"


# ── Lookups ───────────────────────────────────────────────────────────────────

async def find_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def find_by_provider_id(
    db: AsyncSession, provider: Provider, provider_id: str
) -> User | None:
    column = getattr(User, provider.id_attr)
    result = await db.execute(select(User).where(column == provider_id))
    return result.scalar_one_or_none()


# ── Local accounts ───────────────────────────────────────────────────────────

async def register_local(
    db: AsyncSession, email: str, password: str, name: str | None = None
) -> User:
    """Create a password account.

    Raises InvalidRegistration for a blank email or an unusable password and
    DuplicateEmail if the email is taken.
    """
    email = normalize_email(email)
    if not email:
        raise InvalidRegistration("Email is required")
    if not password:
        raise InvalidRegistration("Password is required")
    if len(password.encode()) > MAX_PASSWORD_BYTES:
        raise InvalidRegistration(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

    with store_guard():
        if await find_by_email(db, email) is not None:
            logger.info("Registration rejected, email in use", email=email)
            raise DuplicateEmail()

        user = User(
            email=email,
            name=(name or "").strip() or email,
            password_hash=await hash_password_async(password),
        )
        db.add(user)
        try:
            await db.commit()
        except IntegrityError as exc:
            # Lost a race against a concurrent registration
            await db.rollback()
            logger.info("Registration rejected, email in use", email=email)
            raise DuplicateEmail() from exc

    logger.info("User registered", user_id=str(user.id), email=email)
    return user


async def authenticate_local(db: AsyncSession, email: str, password: str) -> AuthResult:
    """Verify an email/password pair. Never writes."""
    if not email.strip() or not password:
        logger.info("Local login failed", email=email, cause="missing_credentials")
        return AuthFail("missing_credentials")

    with store_guard():
        user = await find_by_email(db, email)

    if user is None:
        logger.info("Local login failed", email=email, cause="unknown_email")
        return AuthFail("unknown_email")
    if not user.password_hash:
        logger.info("Local login failed", email=email, cause="no_password")
        return AuthFail("no_password")
    if not await verify_password_async(password, user.password_hash):
        logger.info("Local login failed", email=email, cause="wrong_password")
        return AuthFail("wrong_password")

    logger.info("Local login succeeded", user_id=str(user.id))
    return AuthOk(user)


# ── OAuth accounts ───────────────────────────────────────────────────────────

async def _link(db: AsyncSession, user: User, identity: OAuthIdentity) -> User:
    attr = identity.provider.id_attr
    current = getattr(user, attr)
    if current and current != identity.provider_id:
        logger.warning(
            "OAuth link refused, account already linked",
            provider=identity.provider.value,
            user_id=str(user.id),
        )
        raise OAuthProviderError(
            f"This email is already linked to another {identity.provider.value} account"
        )
    setattr(user, attr, identity.provider_id)
    await db.commit()
    logger.info("OAuth identity linked", provider=identity.provider.value, user_id=str(user.id))
    return user


async def reconcile_oauth(db: AsyncSession, identity: OAuthIdentity) -> User:
    """Resolve an OAuth identity to a single User, linking or creating as needed."""
    provider = identity.provider
    email = normalize_email(identity.email)

    with store_guard():
        user = await find_by_provider_id(db, provider, identity.provider_id)
        if user is not None:
            return user

        user = await find_by_email(db, email)
        if user is not None:
            return await _link(db, user, identity)

        user = User(email=email, name=identity.display_name or email)
        setattr(user, provider.id_attr, identity.provider_id)
        db.add(user)
        try:
            await db.commit()
        except IntegrityError:
            # A concurrent callback created the row first: re-fetch and link
            await db.rollback()
            logger.info("OAuth create conflicted, re-fetching", provider=provider.value, email=email)
            existing = await find_by_provider_id(db, provider, identity.provider_id)
            if existing is not None:
                return existing
            existing = await find_by_email(db, email)
            if existing is None:
                raise
            return await _link(db, existing, identity)

    logger.info("OAuth user created", provider=provider.value, user_id=str(user.id))
    return user
