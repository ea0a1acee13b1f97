"""Field resolution and numeric coercion for loosely structured feed rows."""

from __future__ import annotations

import re
from typing import Mapping, Sequence

# Logical field -> header variants, in priority order.
FIELD_ALIASES: Mapping[str, tuple[str, ...]] = {
    "end_date": ("end_date", "End Date"),
    "start_date": ("start_date", "Start Date"),
    "week_label": ("Week", "Week Range"),
    "avg_price": ("Avg Sale Price", "Average Sale Price", "avg_sale_price"),
    "med_price": ("Med Sale Price", "Median Sale Price", "med_sale_price"),
    "sales_volume": ("Sale Volume", "Volume", "sales_volume", "Sales", "Sales Volume"),
    "active_listings": ("Active Listings", "# Active Listings", "active_listings"),
    "months_of_inventory": ("MOI", "Months of Inventory", "moi"),
    "sold_to_list_ratio": ("SP/LP", "Average SP/LP", "sp_lp_ratio"),
    "above_list_price_pct": ("Above List Price %", "above_list_price_pct"),
    "year": ("Year",),
    "month": ("Month",),
}

# Monthly feeds are published from a different workbook with its own spellings.
MONTHLY_FIELD_ALIASES: Mapping[str, tuple[str, ...]] = {
    **FIELD_ALIASES,
    "avg_price": ("Avg Sale Price", "Average Sale Price"),
    "med_price": ("Med Sale Price", "Median Sale Price"),
    "sales_volume": ("Sale Volume", "Sales Volume"),
    "active_listings": ("# Active Listings", "Active Listings"),
    "sold_to_list_ratio": ("Average SP/LP", "SP/LP"),
}

_NON_NUMERIC = re.compile(r"[^0-9.\-]+")
_FLOAT_PREFIX = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")
_INT_PREFIX = re.compile(r"-?\d+")


def get_data_from_row(row: Mapping[str, str], keys: Sequence[str]) -> str | None:
    """Return the first non-blank value among ``keys``, trimmed, or ``None``."""

    for key in keys:
        value = row.get(key)
        if value is None:
            continue
        stripped = str(value).strip()
        if stripped:
            return stripped
    return None


def _numeric_text(value: str | None) -> str | None:
    if not isinstance(value, str) or not value.strip():
        return None
    cleaned = _NON_NUMERIC.sub("", value)
    return cleaned or None


def clean_and_parse_float(value: str | None) -> float | None:
    """Parse ``value`` as a float after stripping currency and grouping characters.

    Blank, unparseable and zero values all come back as ``None``: feeds publish
    ``0`` and an empty cell interchangeably for "no data this period".
    """

    cleaned = _numeric_text(value)
    if cleaned is None:
        return None
    match = _FLOAT_PREFIX.match(cleaned)
    if not match:
        return None
    number = float(match.group())
    if number == 0:
        return None
    return number


def clean_and_parse_int(value: str | None) -> int | None:
    """Integer counterpart of :func:`clean_and_parse_float`; fractions are truncated."""

    cleaned = _numeric_text(value)
    if cleaned is None:
        return None
    match = _INT_PREFIX.match(cleaned)
    if not match:
        return None
    number = int(match.group())
    if number == 0:
        return None
    return number


__all__ = [
    "FIELD_ALIASES",
    "MONTHLY_FIELD_ALIASES",
    "clean_and_parse_float",
    "clean_and_parse_int",
    "get_data_from_row",
]
