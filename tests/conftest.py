"""Shared fixtures: a temp cache, a fake clock and fetchers backed by httpx.MockTransport."""

import httpx
import pytest

from scryfall_mcp.cache import CardCache
from scryfall_mcp.fetcher import RateLimitedFetcher


class FakeClock:
    """A monotonic clock that only moves when something sleeps on it."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def make_fetcher(handler, clock=None, rate_limit_ms=75) -> RateLimitedFetcher:
    """Builds a fetcher whose requests are answered by `handler`."""
    clock = clock or FakeClock()
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RateLimitedFetcher(
        rate_limit_ms=rate_limit_ms,
        client=client,
        timeout=5.0,
        clock=clock,
        sleep=clock.sleep,
    )


class RecordingHandler:
    """
    Answers requests from a {path: response} table and remembers what was asked.

    Values may be an httpx.Response, a dict/list (sent as 200 JSON), an
    exception instance to raise, or a function of the request.
    """

    def __init__(self, routes=None):
        self.routes = routes or {}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        answer = self.routes.get(request.url.path)
        if answer is None:
            return httpx.Response(404, json={"object": "error", "details": "not found"})
        if isinstance(answer, Exception):
            raise answer
        if isinstance(answer, httpx.Response):
            return answer
        if callable(answer):
            return answer(request)
        return httpx.Response(200, json=answer)

    def paths(self):
        return [request.url.path for request in self.requests]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(tmp_path):
    card_cache = CardCache(root=tmp_path / "cache")
    card_cache.ensure_dirs()
    return card_cache


@pytest.fixture
def scryfall_card():
    """A raw Scryfall card object, trimmed to the fields we use plus a few we don't."""
    return {
        "object": "card",
        "id": "e3285e6b-3e79-4d7c-bf96-d920f973b122",
        "name": "Lightning Bolt",
        "mana_cost": "{R}",
        "cmc": 1.0,
        "type_line": "Instant",
        "oracle_text": "Lightning Bolt deals 3 damage to any target.",
        "colors": ["R"],
        "color_identity": ["R"],
        "keywords": [],
        "legalities": {
            "standard": "not_legal",
            "modern": "legal",
            "legacy": "legal",
            "commander": "legal",
        },
        "set_name": "Magic 2010",
        "rarity": "common",
        "rulings_uri": "https://api.scryfall.com/cards/e3285e6b/rulings",
        "image_uris": {
            "small": "https://cards.scryfall.io/small/front/bolt.jpg",
            "normal": "https://cards.scryfall.io/normal/front/bolt.jpg",
            "large": "https://cards.scryfall.io/large/front/bolt.jpg",
        },
        "prices": {"usd": "1.50"},
    }
