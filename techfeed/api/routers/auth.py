"""Auth router — local login/registration, Google/GitHub OAuth, logout."""

import secrets
from typing import Annotated

from fastapi import APIRouter, Form, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import ValidationError
from starlette.responses import Response

from techfeed.api.dependencies import ContextDep, CurrentUserDep, DbDep, OptionalUserDep
from techfeed.api.templating import render
from techfeed.core.errors import DuplicateEmail, InvalidRegistration, OAuthProviderError
from techfeed.core.identity import (
    AuthFail,
    Provider,
    authenticate_local,
    reconcile_oauth,
    register_local,
)
from techfeed.core.limiter import limiter
from techfeed.core.logging import get_logger
from techfeed.models.user import User
from techfeed.schemas.user import RegisterResult, UserCreate, UserOut

router = APIRouter(tags=["auth"])
logger = get_logger(__name__)

OAUTH_STATE_COOKIE = "techfeed.oauth_state"
OAUTH_STATE_MAX_AGE = 10 * 60


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=status.HTTP_303_SEE_OTHER)


def _wants_json(request: Request) -> bool:
    content_type = request.headers.get("content-type", "")
    accept = request.headers.get("accept", "")
    return content_type.startswith("application/json") or (
        "application/json" in accept and "text/html" not in accept
    )


# ── Local login ───────────────────────────────────────────────────────────────

@router.get("/login")
async def login_page(request: Request, user: OptionalUserDep) -> Response:
    if user is not None:
        return _redirect("/")
    return render(request, "login.html")


@router.post("/login")
@limiter.limit("10/minute")
async def login(
    request: Request,
    ctx: ContextDep,
    db: DbDep,
    email: Annotated[str, Form()] = "",
    password: Annotated[str, Form()] = "",
) -> RedirectResponse:
    result = await authenticate_local(db, email, password)
    if isinstance(result, AuthFail):
        return _redirect("/login?error=invalid_credentials")

    response = _redirect("/")
    ctx.sessions.set_cookie(response, await ctx.sessions.establish(db, result.user))
    return response


# ── Registration ─────────────────────────────────────────────────────────────

@router.get("/register")
async def register_page(request: Request) -> Response:
    return render(request, "register.html")


@router.post("/register", response_model=RegisterResult)
@limiter.limit("10/minute")
async def register(request: Request, db: DbDep) -> Response:
    """Create a local account from a form post or a JSON body.

    JSON callers get a ``RegisterResult`` payload; form posts are redirected
    to /login on success and back to /register on failure.
    """
    as_json = _wants_json(request)
    try:
        raw = await request.json() if as_json else dict(await request.form())
        payload = UserCreate.model_validate(raw)
    except (ValidationError, ValueError) as exc:
        logger.info("Registration payload rejected", error=str(exc))
        if as_json:
            return JSONResponse(
                RegisterResult(success=False, message="Invalid registration data").model_dump(),
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            )
        return _redirect("/register?error=invalid")

    try:
        user = await register_local(db, payload.email, payload.password, payload.name)
    except DuplicateEmail as exc:
        if as_json:
            return JSONResponse(
                RegisterResult(success=False, message=str(exc)).model_dump(),
                status_code=status.HTTP_409_CONFLICT,
            )
        return _redirect("/register?error=email_in_use")
    except InvalidRegistration as exc:
        if as_json:
            return JSONResponse(
                RegisterResult(success=False, message=str(exc)).model_dump(),
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            )
        return _redirect("/register?error=invalid")

    if as_json:
        body = RegisterResult(
            success=True,
            message="Registration successful",
            user=UserOut.model_validate(user),
        )
        return JSONResponse(body.model_dump(mode="json"), status_code=status.HTTP_201_CREATED)
    return _redirect("/login")


# ── OAuth ─────────────────────────────────────────────────────────────────────

@router.get("/auth/{provider}")
async def oauth_start(provider: Provider, ctx: ContextDep) -> RedirectResponse:
    """Redirect to the provider's consent screen with a fresh state value."""
    client = ctx.oauth_clients[provider]
    if not client.configured:
        logger.warning("OAuth login attempted but not configured", provider=provider.value)
        return _redirect("/login?error=oauth_unavailable")

    state = secrets.token_urlsafe(16)
    response = RedirectResponse(client.authorization_url(state), status_code=status.HTTP_302_FOUND)
    response.set_cookie(
        OAUTH_STATE_COOKIE,
        ctx.oauth_state.sign(f"{provider.value}:{state}"),
        max_age=OAUTH_STATE_MAX_AGE,
        httponly=True,
        samesite="lax",
        secure=ctx.settings.session_cookie_secure,
    )
    return response


@router.get("/auth/{provider}/callback")
async def oauth_callback(
    request: Request,
    provider: Provider,
    ctx: ContextDep,
    db: DbDep,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
) -> RedirectResponse:
    expected = ctx.oauth_state.unsign(
        request.cookies.get(OAUTH_STATE_COOKIE), max_age=OAUTH_STATE_MAX_AGE
    )
    try:
        if error:
            raise OAuthProviderError(f"{provider.value} denied the login: {error}")
        if not code or not state or expected != f"{provider.value}:{state}":
            raise OAuthProviderError("Invalid OAuth state")

        identity = await ctx.oauth_clients[provider].fetch_identity(code)
        user = await reconcile_oauth(db, identity)
    except OAuthProviderError as exc:
        logger.warning("OAuth login failed", provider=provider.value, error=str(exc))
        response = _redirect("/login?error=oauth")
        response.delete_cookie(OAUTH_STATE_COOKIE)
        return response

    response = _redirect("/")
    response.delete_cookie(OAUTH_STATE_COOKIE)
    ctx.sessions.set_cookie(response, await ctx.sessions.establish(db, user))
    logger.info("OAuth login succeeded", provider=provider.value, user_id=str(user.id))
    return response


# ── Session end / profile ────────────────────────────────────────────────────

@router.get("/logout")
async def logout(request: Request, ctx: ContextDep, db: DbDep) -> RedirectResponse:
    await ctx.sessions.terminate(db, request.cookies.get(ctx.sessions.cookie_name))
    response = _redirect("/")
    ctx.sessions.clear_cookie(response)
    return response


@router.get("/me", response_model=UserOut)
async def get_me(current_user: CurrentUserDep) -> User:
    """Return the authenticated user's profile."""
    return current_user
