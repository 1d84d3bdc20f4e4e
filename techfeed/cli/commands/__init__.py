"""CLI sub-commands that work directly against the database."""

from __future__ import annotations

from typing import Any

from techfeed.core.config import get_settings
from techfeed.core.context import AppContext


def open_context(obj: dict[str, Any] | None) -> AppContext:
    """Build an AppContext honouring the --database-url override."""
    settings = get_settings()
    database_url = (obj or {}).get("database_url")
    if database_url:
        settings = settings.model_copy(update={"database_url": database_url})
    return AppContext.from_settings(settings)
