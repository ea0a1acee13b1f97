"""End-to-end job that fetches every configured regional feed."""

from __future__ import annotations

import asyncio
import logging
import os

from dotenv import load_dotenv

from jobs.config import FeedSettings, settings_from_env
from pipelines.analytics import latest_by_region, sort_newest_first
from pipelines.model import Granularity, MarketDataState
from pipelines.orchestrator import MarketDataStore, load_market_data

load_dotenv()

logger = logging.getLogger(__name__)


async def load_all_async(
    settings: FeedSettings | None = None,
    store: MarketDataStore | None = None,
) -> MarketDataState:
    """Run one load cycle and return the final snapshot."""

    settings = settings or settings_from_env()
    logger.info(
        "Loading %s feeds (priority region: %s)...",
        len(settings.feeds),
        settings.priority_region.value,
    )
    state = await load_market_data(
        settings.feeds,
        store,
        priority_region=settings.priority_region,
        timeout=settings.timeout,
    )
    if state.error:
        logger.error("Load finished in a degraded state: %s", state.error)
    logger.info(
        "Load finished (weekly records=%s, monthly records=%s).",
        len(state.weekly),
        len(state.monthly),
    )
    return state


def log_latest(state: MarketDataState) -> None:
    for granularity in Granularity:
        latest = latest_by_region(sort_newest_first(state.records(granularity)))
        for record in latest:
            logger.info(
                "%s latest for %s: id=%s avg_price=%s sales_volume=%s",
                granularity.value,
                record.region.value,
                record.id,
                record.avg_price,
                record.sales_volume,
            )


def main(settings: FeedSettings | None = None) -> int:
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
    state = asyncio.run(load_all_async(settings))
    log_latest(state)
    return 1 if state.error else 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
