"""Static configuration for regional feeds and load settings."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from pipelines.common import DEFAULT_TIMEOUT_SECONDS
from pipelines.model import Granularity, Region
from pipelines.orchestrator import DEFAULT_PRIORITY_REGION, FeedConfig

FEEDS_FILE_ENV = "MARKET_FEEDS_FILE"
PRIORITY_REGION_ENV = "PRIORITY_REGION"
TIMEOUT_ENV = "FEED_TIMEOUT_SECONDS"

_WEEKLY_SHEET = (
    "https://docs.google.com/spreadsheets/d/e/"
    "2PACX-1vRL0AB15iRxvoajVsmMRTVtMRcP0zUkSjaai-YSGM0UbfvZlbKnlKDEonVWSWZH62OtxQrSupYgKIKh"
)
_MONTHLY_SHEET = (
    "https://docs.google.com/spreadsheets/d/e/"
    "2PACX-1vRocE8w6_MR_6i9mz6z7p1eMQgnnvkDdqWCZUK-Qt3fnCljtoFBwPzZPWnkjUU7NEShuEuO7NPLlQID"
)

# Published sheet tab (gid) per region.
_WEEKLY_GIDS: Mapping[Region, str] = {
    Region.KINGSTON: "1935375826",
    Region.FRONTENAC: "1540014949",
    Region.HASTINGS: "1422042199",
    Region.BELLEVILLE: "1857723725",
    Region.PRINCE_EDWARD_COUNTY: "836418180",
    Region.BROCKVILLE: "1286157929",
    Region.NAPANEE: "1314638594",
    Region.SMITHS_FALLS: "1658093978",
}
_MONTHLY_GIDS: Mapping[Region, str] = {
    Region.KINGSTON: "89996054",
    Region.FRONTENAC: "1133685564",
    Region.HASTINGS: "1136077494",
    Region.BELLEVILLE: "1797918775",
    Region.PRINCE_EDWARD_COUNTY: "1197029142",
    Region.BROCKVILLE: "550301966",
    Region.NAPANEE: "992528255",
    Region.SMITHS_FALLS: "1879633506",
}


class FeedConfigError(ValueError):
    """Raised when feed configuration names an unknown region or granularity."""


def _sheet_csv_url(sheet: str, gid: str) -> str:
    return f"{sheet}/pub?gid={gid}&single=true&output=csv"


DEFAULT_FEEDS: FeedConfig = {
    **{
        (region, Granularity.WEEKLY): _sheet_csv_url(_WEEKLY_SHEET, gid)
        for region, gid in _WEEKLY_GIDS.items()
    },
    **{
        (region, Granularity.MONTHLY): _sheet_csv_url(_MONTHLY_SHEET, gid)
        for region, gid in _MONTHLY_GIDS.items()
    },
}


@dataclass(frozen=True)
class FeedSettings:
    """Everything a load cycle needs: where the feeds live and what to fetch first."""

    feeds: FeedConfig = field(default_factory=lambda: dict(DEFAULT_FEEDS))
    priority_region: Region = DEFAULT_PRIORITY_REGION
    timeout: float | None = DEFAULT_TIMEOUT_SECONDS


def parse_region(name: str) -> Region:
    """Resolve a region from its display name or enum key (case-insensitive)."""

    wanted = name.strip().casefold()
    for region in Region:
        if wanted in (region.value.casefold(), region.name.casefold()):
            return region
    raise FeedConfigError(f"Unknown region '{name}'.")


def parse_granularity(name: str) -> Granularity:
    try:
        return Granularity(name.strip().lower())
    except ValueError as exc:
        raise FeedConfigError(f"Unknown granularity '{name}'.") from exc


def feeds_from_mapping(payload: Mapping[str, Any]) -> dict[tuple[Region, Granularity], str]:
    """Build a feed table from ``{"weekly": {"Kingston": url, ...}, "monthly": {...}}``."""

    feeds: dict[tuple[Region, Granularity], str] = {}
    for granularity_name, urls in payload.items():
        granularity = parse_granularity(granularity_name)
        if not isinstance(urls, Mapping):
            raise FeedConfigError(f"Feeds for '{granularity_name}' must be an object.")
        for region_name, url in urls.items():
            feeds[(parse_region(region_name), granularity)] = str(url)
    return feeds


def load_feeds_file(path: str | os.PathLike[str]) -> dict[tuple[Region, Granularity], str]:
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(payload, Mapping):
        raise FeedConfigError(f"{path} must contain a JSON object.")
    return feeds_from_mapping(payload)


def _timeout_from_env() -> float | None:
    raw = os.getenv(TIMEOUT_ENV)
    if not raw:
        return DEFAULT_TIMEOUT_SECONDS
    try:
        timeout = float(raw)
    except ValueError as exc:
        raise FeedConfigError(f"{TIMEOUT_ENV} must be a number of seconds, got '{raw}'.") from exc
    return timeout if timeout > 0 else None


def settings_from_env() -> FeedSettings:
    """Resolve settings from the environment, overlaying any feeds file on the defaults."""

    feeds = dict(DEFAULT_FEEDS)
    feeds_file = os.getenv(FEEDS_FILE_ENV)
    if feeds_file:
        feeds.update(load_feeds_file(feeds_file))

    priority = os.getenv(PRIORITY_REGION_ENV)
    return FeedSettings(
        feeds=feeds,
        priority_region=parse_region(priority) if priority else DEFAULT_PRIORITY_REGION,
        timeout=_timeout_from_env(),
    )


__all__ = [
    "DEFAULT_FEEDS",
    "FeedConfigError",
    "FeedSettings",
    "feeds_from_mapping",
    "load_feeds_file",
    "parse_granularity",
    "parse_region",
    "settings_from_env",
]
