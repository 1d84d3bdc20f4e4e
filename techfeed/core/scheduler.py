"""Background expired-session purge.

Runs as an asyncio task in the app lifespan. Wakes up every
``session_purge_interval_seconds`` and deletes session rows whose expiry has
passed, so the sessions table does not grow without bound.
"""

from __future__ import annotations

import asyncio

from techfeed.core.context import AppContext
from techfeed.core.logging import get_logger

logger = get_logger(__name__)


async def purge_expired_sessions(ctx: AppContext) -> int:
    async with ctx.session_factory() as db:
        removed = await ctx.sessions.purge_expired(db)
    if removed:
        logger.info("Expired sessions purged", count=removed)
    return removed


async def session_purge_loop(ctx: AppContext) -> None:
    """Infinite loop: sleep, then purge expired sessions."""
    interval = ctx.settings.session_purge_interval_seconds
    logger.info("Session purge scheduler started", interval=interval)
    while True:
        await asyncio.sleep(interval)
        try:
            await purge_expired_sessions(ctx)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Session purge error, will retry next cycle")
