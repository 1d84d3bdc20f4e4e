"""CLI commands for server-side sessions."""

from __future__ import annotations

import asyncio

import click

from techfeed.cli.commands import open_context
from techfeed.cli.output import console
from techfeed.core.errors import StoreUnavailable
from techfeed.core.scheduler import purge_expired_sessions


@click.group("sessions")
def sessions_cmd() -> None:
    """Maintain the session store."""


@sessions_cmd.command("purge")
@click.pass_context
def sessions_purge(ctx: click.Context) -> None:
    """Delete expired sessions now."""

    async def _run() -> int:
        app_ctx = open_context(ctx.obj)
        try:
            return await purge_expired_sessions(app_ctx)
        finally:
            await app_ctx.close()

    try:
        removed = asyncio.run(_run())
    except StoreUnavailable:
        console.print("[red]Cannot connect to the database.[/red]")
        raise SystemExit(1)

    console.print(f"Removed [bold]{removed}[/bold] expired session(s).")
