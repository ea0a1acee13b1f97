from __future__ import annotations

from typing import Callable

import httpx
import pytest

from pipelines.model import Granularity, Region

WEEKLY_CSV = (
    "Week,end_date,start_date,Avg Sale Price,Med Sale Price,Sales,Active Listings,MOI,SP/LP\n"
    'Nov 24 - Dec 1,2024-12-01,2024-11-24,"$612,500","$580,000",42,310,2.1,98.5%\n'
    ',2024-11-24,2024-11-17,"$598,000","$570,000",38,305,2.3,97.9%\n'
)

MONTHLY_CSV = (
    "Year,Month,Average Sale Price,Median Sale Price,Sales Volume,# Active Listings,MOI,Average SP/LP\n"
    '2024,November,"$640,000","$600,000",160,420,2.6,98.1\n'
    '2024,October,"$655,000","$610,000",171,450,2.4,98.7\n'
)


def _feed_url(region: Region, granularity: Granularity) -> str:
    slug = region.name.lower()
    return f"https://feeds.test/{granularity.value}/{slug}.csv"


@pytest.fixture()
def feeds() -> dict[tuple[Region, Granularity], str]:
    return {
        (region, granularity): _feed_url(region, granularity)
        for region in Region
        for granularity in Granularity
    }


@pytest.fixture()
def make_client() -> Callable[..., httpx.AsyncClient]:
    """Build an ``AsyncClient`` answering feed URLs from a ``{url: (status, body)}`` table.

    Unlisted URLs answer with the sample weekly or monthly feed. Every request URL is
    appended to ``client.requested``.
    """

    def factory(responses: dict[str, tuple[int, str]] | None = None) -> httpx.AsyncClient:
        responses = responses or {}
        requested: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            url = str(request.url)
            requested.append(url)
            if url in responses:
                status, body = responses[url]
                return httpx.Response(status, text=body)
            body = WEEKLY_CSV if "/weekly/" in url else MONTHLY_CSV
            return httpx.Response(200, text=body, headers={"content-type": "text/csv"})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client.requested = requested
        return client

    return factory


@pytest.fixture()
def weekly_csv() -> str:
    return WEEKLY_CSV


@pytest.fixture()
def monthly_csv() -> str:
    return MONTHLY_CSV


@pytest.fixture()
def feed_url() -> Callable[[Region, Granularity], str]:
    return _feed_url
