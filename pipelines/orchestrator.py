"""Two-phase fetch orchestration for regional market feeds.

The priority region is fetched first so consumers can render it while the
remaining regions load in the background. Each source is fetched once; a
failing source contributes no records and never aborts its siblings.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterable, Mapping, Sequence

import httpx

from pipelines.common import build_client, fetch_text
from pipelines.csv_tokenizer import parse_csv
from pipelines.model import (
    Granularity,
    MarketDataState,
    MarketRecord,
    MonthlyRecord,
    Region,
    WeeklyRecord,
)
from pipelines.records import parse_monthly_rows, parse_weekly_rows

logger = logging.getLogger(__name__)

FeedConfig = Mapping[tuple[Region, Granularity], str]
Listener = Callable[[MarketDataState], None]

DEFAULT_PRIORITY_REGION = Region.KINGSTON
LOAD_ERROR_MESSAGE = "Unable to load market data. Please try refreshing the page."

_PARSERS = {
    Granularity.WEEKLY: parse_weekly_rows,
    Granularity.MONTHLY: parse_monthly_rows,
}


class MarketDataStore:
    """Holds the current snapshot and publishes a new one on every change."""

    def __init__(self) -> None:
        self._state = MarketDataState()
        self._history: list[MarketDataState] = [self._state]
        self._listeners: list[Listener] = []

    @property
    def state(self) -> MarketDataState:
        return self._state

    @property
    def history(self) -> tuple[MarketDataState, ...]:
        """Every snapshot published so far, oldest first."""
        return tuple(self._history)

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _publish(self, **changes) -> MarketDataState:
        self._state = self._state.model_copy(update=changes)
        self._history.append(self._state)
        for listener in self._listeners:
            listener(self._state)
        return self._state

    def start(self) -> MarketDataState:
        return self._publish(loading=True, error=None)

    def replace(
        self, weekly: Sequence[WeeklyRecord], monthly: Sequence[MonthlyRecord]
    ) -> MarketDataState:
        return self._publish(weekly=tuple(weekly), monthly=tuple(monthly))

    def append(
        self, weekly: Sequence[WeeklyRecord], monthly: Sequence[MonthlyRecord]
    ) -> MarketDataState:
        return self._publish(
            weekly=(*self._state.weekly, *weekly),
            monthly=(*self._state.monthly, *monthly),
        )

    def finish_loading(self) -> MarketDataState:
        return self._publish(loading=False)

    def fail(self, message: str) -> MarketDataState:
        return self._publish(loading=False, error=message)


async def fetch_feed(
    client: httpx.AsyncClient,
    feeds: FeedConfig,
    region: Region,
    granularity: Granularity,
) -> list[MarketRecord]:
    """Fetch and parse one region's feed, degrading to ``[]`` on any source failure."""

    url = feeds.get((region, granularity))
    if not url:
        logger.warning("No %s feed configured for %s. Skipping.", granularity.value, region.value)
        return []

    try:
        csv_text = await fetch_text(client, url)
    except httpx.HTTPStatusError as exc:
        logger.warning(
            "%s feed for %s failed with status %s. Skipping.",
            granularity.value,
            region.value,
            exc.response.status_code,
        )
        return []
    except (httpx.HTTPError, UnicodeDecodeError) as exc:
        logger.warning(
            "%s feed for %s could not be fetched (%s). Skipping.",
            granularity.value,
            region.value,
            exc,
        )
        return []

    try:
        records = _PARSERS[granularity](parse_csv(csv_text), region)
    except ValueError as exc:
        logger.warning(
            "%s feed for %s could not be parsed (%s). Skipping.", granularity.value, region.value, exc
        )
        return []

    if not records:
        logger.warning("%s feed for %s produced no usable rows.", granularity.value, region.value)
    else:
        logger.info("Loaded %s %s records for %s.", len(records), granularity.value, region.value)
    return records


async def _fetch_phase(
    client: httpx.AsyncClient, feeds: FeedConfig, regions: Sequence[Region]
) -> tuple[list[WeeklyRecord], list[MonthlyRecord]]:
    weekly_results, monthly_results = await asyncio.gather(
        asyncio.gather(*(fetch_feed(client, feeds, r, Granularity.WEEKLY) for r in regions)),
        asyncio.gather(*(fetch_feed(client, feeds, r, Granularity.MONTHLY) for r in regions)),
    )
    weekly = [record for records in weekly_results for record in records]
    monthly = [record for records in monthly_results for record in records]
    return weekly, monthly


async def load_market_data(
    feeds: FeedConfig,
    store: MarketDataStore | None = None,
    *,
    priority_region: Region = DEFAULT_PRIORITY_REGION,
    regions: Iterable[Region] = tuple(Region),
    client: httpx.AsyncClient | None = None,
    timeout: float | None = None,
) -> MarketDataState:
    """Load every configured feed into ``store`` and return the final snapshot.

    The priority region's weekly and monthly feeds complete before any other
    region is requested. Priority results replace the store's collections,
    background results are appended to them.
    """

    store = store or MarketDataStore()
    store.start()
    owns_client = client is None
    http = client or build_client(timeout=timeout)
    try:
        weekly, monthly = await _fetch_phase(http, feeds, [priority_region])
        store.replace(weekly, monthly)
        if weekly or monthly:
            store.finish_loading()
        else:
            logger.warning("Priority region %s returned no records.", priority_region.value)

        others = [region for region in regions if region != priority_region]
        weekly, monthly = await _fetch_phase(http, feeds, others)
        store.append(weekly, monthly)
        if store.state.loading:
            store.finish_loading()
    except Exception:
        logger.exception("Critical error while loading market data.")
        store.fail(LOAD_ERROR_MESSAGE)
    finally:
        if owns_client:
            await http.aclose()
    return store.state


__all__ = [
    "DEFAULT_PRIORITY_REGION",
    "FeedConfig",
    "LOAD_ERROR_MESSAGE",
    "MarketDataStore",
    "fetch_feed",
    "load_market_data",
]
