"""FastAPI dependency providers."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from techfeed.core.context import AppContext
from techfeed.core.errors import LoginRequired
from techfeed.core.logging import bind_user
from techfeed.models.user import User


def get_context(request: Request) -> AppContext:
    """Return the application context built at startup."""
    return request.app.state.context


ContextDep = Annotated[AppContext, Depends(get_context)]


async def get_db(ctx: ContextDep) -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session for the duration of a request."""
    async with ctx.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


DbDep = Annotated[AsyncSession, Depends(get_db)]


async def get_optional_user(request: Request, ctx: ContextDep, db: DbDep) -> User | None:
    """Resolve the session cookie to a User; None for anonymous clients."""
    cookie = request.cookies.get(ctx.sessions.cookie_name)
    user = await ctx.sessions.resolve(db, cookie)
    if user is not None:
        bind_user(str(user.id))
    return user


async def require_user(user: Annotated[User | None, Depends(get_optional_user)]) -> User:
    """Guard for protected routes: anonymous clients are sent to /login."""
    if user is None:
        raise LoginRequired()
    return user


OptionalUserDep = Annotated[User | None, Depends(get_optional_user)]
CurrentUserDep = Annotated[User, Depends(require_user)]
