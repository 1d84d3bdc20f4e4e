"""techfeed CLI entry point — `techfeed` command group."""

from __future__ import annotations

import asyncio

import click

from techfeed.cli.commands.sessions import sessions_cmd
from techfeed.cli.commands.users import users_cmd
from techfeed.cli.output import console


@click.group()
@click.version_option(package_name="techfeed")
@click.option(
    "--database-url",
    default=None,
    envvar="DATABASE_URL",
    help="Override the database URL from settings",
)
@click.pass_context
def cli(ctx: click.Context, database_url: str | None) -> None:
    """techfeed — technology news portal with local and OAuth login.

    \b
    Quick start:
      techfeed init-db
      techfeed users create alice@example.com --password pw123
      techfeed serve --port 3000
    """
    ctx.ensure_object(dict)
    ctx.obj["database_url"] = database_url


# Register sub-commands
cli.add_command(users_cmd)
cli.add_command(sessions_cmd)


@cli.command("init-db")
@click.pass_context
def init_db(ctx: click.Context) -> None:
    """Create the database tables (use Alembic for managed deployments)."""
    from techfeed.cli.commands import open_context
    from techfeed.core.database import create_schema

    async def _run() -> None:
        app_ctx = open_context(ctx.obj)
        try:
            await create_schema(app_ctx.engine)
        finally:
            await app_ctx.close()

    asyncio.run(_run())
    console.print("[green]Database schema created.[/green]")


@cli.command("serve")
@click.option("--host", default=None, help="Bind host [default: APP_HOST]")
@click.option("--port", default=None, type=int, help="Bind port [default: APP_PORT]")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload (dev mode)")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the techfeed web server."""
    import uvicorn

    from techfeed.core.config import get_settings

    settings = get_settings()
    uvicorn.run(
        "techfeed.api.app:app",
        host=host or settings.app_host,
        port=port or settings.app_port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    cli()
