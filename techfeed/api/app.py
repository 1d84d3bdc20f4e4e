"""FastAPI application factory with lifespan management."""

from __future__ import annotations

import asyncio
import contextlib
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from techfeed import __version__
from techfeed.api.routers import auth as auth_router
from techfeed.api.routers import news as news_router
from techfeed.core.config import Settings, get_settings
from techfeed.core.context import AppContext
from techfeed.core.errors import LoginRequired, StoreUnavailable
from techfeed.core.limiter import limiter
from techfeed.core.logging import bind_request_context, configure_logging, get_logger
from techfeed.core.scheduler import session_purge_loop

logger = get_logger(__name__)

STATIC_DIR = Path(__file__).resolve().parent.parent / "static"
REQUEST_ID_HEADER = "X-Request-ID"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    configure_logging()
    owns_context = getattr(app.state, "context", None) is None
    if owns_context:
        app.state.context = AppContext.from_settings(app.state.settings)
    ctx: AppContext = app.state.context
    logger.info("Starting techfeed", debug=ctx.settings.app_debug, version=__version__)

    purge_task = asyncio.create_task(session_purge_loop(ctx))

    yield

    purge_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await purge_task
    if owns_context:
        await ctx.close()
        app.state.context = None
    logger.info("techfeed stopped")


async def _login_required_handler(request: Request, exc: LoginRequired) -> RedirectResponse:
    return RedirectResponse(url="/login", status_code=status.HTTP_303_SEE_OTHER)


async def _store_unavailable_handler(request: Request, exc: StoreUnavailable) -> JSONResponse:
    return JSONResponse(
        {"success": False, "message": "Service temporarily unavailable"},
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", path=request.url.path, method=request.method)
    return JSONResponse(
        {"success": False, "message": "Internal server error"},
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def create_app(context: AppContext | None = None, settings: Settings | None = None) -> FastAPI:
    """Build the app. Tests pass a ready *context*; otherwise the lifespan builds one."""
    settings = context.settings if context is not None else (settings or get_settings())

    app = FastAPI(
        title="techfeed",
        description="Technology news portal with local and Google/GitHub login",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.context = context
    app.state.limiter = limiter

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        bind_request_context(request_id, request.method, request.url.path)
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(LoginRequired, _login_required_handler)
    app.add_exception_handler(StoreUnavailable, _store_unavailable_handler)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    app.include_router(auth_router.router)
    app.include_router(news_router.router)

    if STATIC_DIR.exists():
        app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    return app


app = create_app()
