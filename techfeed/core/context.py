"""Application context: the handles every request handler needs.

Built once at startup (or by tests) and stored on ``app.state.context``; route
handlers receive it through the ``get_context`` dependency.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from techfeed.core.auth import CookieSigner
from techfeed.core.config import Settings
from techfeed.core.database import build_engine, build_session_factory
from techfeed.core.identity import Provider
from techfeed.core.news import NewsClient
from techfeed.core.oauth import OAuthClient, build_oauth_clients
from techfeed.core.sessions import SessionManager

_OAUTH_STATE_SALT = "techfeed.oauth-state"


@dataclass
class AppContext:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    sessions: SessionManager
    oauth_clients: dict[Provider, OAuthClient]
    oauth_state: CookieSigner
    news: NewsClient

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        engine: AsyncEngine | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> "AppContext":
        engine = engine or build_engine(settings)
        return cls(
            settings=settings,
            engine=engine,
            session_factory=build_session_factory(engine),
            sessions=SessionManager.from_settings(settings),
            oauth_clients=build_oauth_clients(settings, transport=http_transport),
            oauth_state=CookieSigner(settings.session_secret, salt=_OAUTH_STATE_SALT),
            news=NewsClient.from_settings(settings, transport=http_transport),
        )

    async def close(self) -> None:
        await self.engine.dispose()
