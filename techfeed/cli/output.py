"""Rich output helpers."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from rich.console import Console
from rich.table import Table

from techfeed.models.user import User

console = Console()

_PROVIDER_STYLE = {"local": "cyan", "google": "red", "github": "magenta"}


def fmt_date(value: datetime | None) -> str:
    if value is None:
        return "—"
    return value.strftime("%Y-%m-%d %H:%M")


def users_table(users: Iterable[User]) -> Table:
    users = list(users)
    table = Table(
        title=f"Users ({len(users)})",
        show_header=True,
        header_style="bold cyan",
        border_style="dim",
        show_lines=False,
    )
    table.add_column("Email", style="bold", no_wrap=True)
    table.add_column("Name")
    table.add_column("Providers")
    table.add_column("Created", style="dim")
    table.add_column("ID", style="dim", no_wrap=True)

    for u in users:
        providers = " ".join(
            f"[{_PROVIDER_STYLE.get(p, 'white')}]{p}[/]" for p in u.providers
        ) or "[dim]none[/dim]"
        table.add_row(u.email, u.name or "", providers, fmt_date(u.created_at), str(u.id))
    return table
