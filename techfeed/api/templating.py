"""Jinja2 template rendering for the HTML pages."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from fastapi import Request
from fastapi.templating import Jinja2Templates
from starlette.responses import Response

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

# Messages shown for ?error=<code> on the login / register pages
ERROR_MESSAGES = {
    "invalid_credentials": "Email ou senha inválidos.",
    "oauth": "Não foi possível entrar com o provedor escolhido.",
    "oauth_unavailable": "Login social indisponível no momento.",
    "email_in_use": "Email já está em uso.",
    "invalid": "Dados inválidos, verifique o formulário.",
}


def render(
    request: Request, template_name: str, ctx: dict[str, Any] | None = None, status_code: int = 200
) -> Response:
    """TemplateResponse wrapper injecting the current user and error message."""
    error_code = request.query_params.get("error")
    base_ctx = {
        "user": None,
        "error": ERROR_MESSAGES.get(error_code, "") if error_code else "",
    }
    return templates.TemplateResponse(
        request, template_name, {**base_ctx, **(ctx or {})}, status_code=status_code
    )
