"""CLI commands for user accounts."""

from __future__ import annotations

import asyncio

import click
from pydantic import ValidationError
from rich.markup import escape
from sqlalchemy import select

from techfeed.cli.commands import open_context
from techfeed.cli.output import console, users_table
from techfeed.core.errors import DuplicateEmail, InvalidRegistration, StoreUnavailable
from techfeed.core.identity import register_local
from techfeed.models.user import User
from techfeed.schemas.user import UserCreate


@click.group("users")
def users_cmd() -> None:
    """List and create user accounts."""


@users_cmd.command("list")
@click.option("--limit", default=50, show_default=True, help="Max rows to display")
@click.pass_context
def users_list(ctx: click.Context, limit: int) -> None:
    """List registered users and their linked providers."""

    async def _run() -> list[User]:
        app_ctx = open_context(ctx.obj)
        try:
            async with app_ctx.session_factory() as db:
                result = await db.execute(select(User).order_by(User.created_at).limit(limit))
                return list(result.scalars().all())
        finally:
            await app_ctx.close()

    try:
        users = asyncio.run(_run())
    except StoreUnavailable:
        console.print("[red]Cannot connect to the database.[/red]")
        raise SystemExit(1)

    console.print(users_table(users))


@users_cmd.command("create")
@click.argument("email")
@click.option("--name", default=None, help="Display name (defaults to the email)")
@click.password_option(help="Account password")
@click.pass_context
def users_create(ctx: click.Context, email: str, name: str | None, password: str) -> None:
    """Create a local (email + password) account."""
    try:
        payload = UserCreate(email=email, password=password, name=name)
    except ValidationError as exc:
        for err in exc.errors():
            field = ".".join(str(part) for part in err["loc"]) or "input"
            console.print(f"[red]Invalid {field}:[/red] {escape(err['msg'])}")
        raise SystemExit(1)

    async def _run() -> User:
        app_ctx = open_context(ctx.obj)
        try:
            async with app_ctx.session_factory() as db:
                return await register_local(db, payload.email, payload.password, payload.name)
        finally:
            await app_ctx.close()

    try:
        user = asyncio.run(_run())
    except DuplicateEmail:
        console.print(f"[yellow]Email {email!r} is already registered.[/yellow]")
        raise SystemExit(1)
    except InvalidRegistration as exc:
        console.print(f"[red]{exc}[/red]")
        raise SystemExit(1)
    except StoreUnavailable:
        console.print("[red]Cannot connect to the database.[/red]")
        raise SystemExit(1)

    console.print(f"[green]Created user[/green] {user.email} [dim]({user.id})[/dim]")
