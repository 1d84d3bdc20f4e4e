"""Tests for the authenticated news pages."""

import pytest

NEWS_URL = "https://newsapi.org/v2/everything"


def _articles(n: int) -> list[dict]:
    return [
        {
            "title": f"Manchete {i}",
            "description": f"Resumo {i}",
            "url": f"https://example.com/{i}",
            "urlToImage": None,
            "source": {"name": "Fonte"},
        }
        for i in range(1, n + 1)
    ]


@pytest.mark.asyncio
async def test_home_renders_feed(signed_in, upstream):
    upstream.add("GET", NEWS_URL, json={"totalResults": 2, "articles": _articles(2)})

    r = await signed_in.get("/")
    assert r.status_code == 200
    assert "Manchete 1" in r.text
    assert "Manchete 2" in r.text
    assert "Alice" in r.text


@pytest.mark.asyncio
async def test_home_falls_back_when_api_fails(signed_in, upstream):
    upstream.add("GET", NEWS_URL, json={"status": "error"}, status_code=500)

    r = await signed_in.get("/")
    assert r.status_code == 200
    assert "Notícia de teste 1" in r.text
    assert "Notícia de teste 2" in r.text


@pytest.mark.asyncio
async def test_news_pagination(signed_in, upstream):
    upstream.add("GET", NEWS_URL, json={"totalResults": 60, "articles": _articles(1)})

    r = await signed_in.get("/news", params={"page": "2"})
    assert r.status_code == 200
    assert "Página 2 de 3" in r.text
    assert upstream.requests[-1].url.params["page"] == "2"


@pytest.mark.asyncio
async def test_bad_page_number_means_first_page(signed_in, upstream):
    upstream.add("GET", NEWS_URL, json={"totalResults": 1, "articles": _articles(1)})

    r = await signed_in.get("/news", params={"page": "abc"})
    assert r.status_code == 200
    assert upstream.requests[-1].url.params["page"] == "1"


@pytest.mark.asyncio
async def test_search_forwards_query(signed_in, upstream):
    upstream.add("GET", NEWS_URL, json={"totalResults": 1, "articles": _articles(1)})

    r = await signed_in.get("/search", params={"q": "python"})
    assert r.status_code == 200
    assert upstream.requests[-1].url.params["q"] == "python"
    assert 'value="python"' in r.text
