"""News router — the authenticated feed pages."""

from fastapi import APIRouter, Request
from starlette.responses import Response

from techfeed.api.dependencies import ContextDep, CurrentUserDep
from techfeed.api.templating import render
from techfeed.core.news import NewsPage

router = APIRouter(tags=["news"])


def _page_number(raw: str | None) -> int:
    """Lenient ?page= parsing: anything unusable means page 1."""
    try:
        return max(int(raw or 1), 1)
    except ValueError:
        return 1


def _render_feed(request: Request, user, feed: NewsPage) -> Response:
    return render(
        request,
        "home.html",
        {
            "user": user,
            "articles": feed.articles,
            "current_page": feed.current_page,
            "total_pages": feed.total_pages,
            "query": feed.query,
            "fallback": feed.fallback,
        },
    )


@router.get("/")
async def home(
    request: Request, ctx: ContextDep, user: CurrentUserDep, page: str | None = None
) -> Response:
    feed = await ctx.news.load_feed(page=_page_number(page))
    return _render_feed(request, user, feed)


@router.get("/news")
async def news(
    request: Request, ctx: ContextDep, user: CurrentUserDep, page: str | None = None
) -> Response:
    feed = await ctx.news.load_feed(page=_page_number(page))
    return _render_feed(request, user, feed)


@router.get("/search")
async def search(
    request: Request,
    ctx: ContextDep,
    user: CurrentUserDep,
    q: str = "",
    page: str | None = None,
) -> Response:
    feed = await ctx.news.load_feed(q, page=_page_number(page))
    return _render_feed(request, user, feed)
