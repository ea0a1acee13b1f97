"""Export helpers that materialize record snapshots through an in-memory DuckDB."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence

import duckdb

from pipelines.analytics import sort_newest_first
from pipelines.model import Granularity, MarketRecord

EXPORT_TABLE = "market_records"
ALLOWED_FORMATS = {"csv", "parquet"}

WEEKLY_COLUMNS: tuple[tuple[str, str], ...] = (
    ("id", "TEXT"),
    ("region", "TEXT"),
    ("week_label", "TEXT"),
    ("week_end_date", "DATE"),
    ("avg_price", "DOUBLE"),
    ("med_price", "DOUBLE"),
    ("sales_volume", "BIGINT"),
    ("active_listings", "BIGINT"),
    ("months_of_inventory", "DOUBLE"),
    ("sold_to_list_ratio", "DOUBLE"),
    ("above_list_price_pct", "DOUBLE"),
)

MONTHLY_COLUMNS: tuple[tuple[str, str], ...] = (
    ("id", "TEXT"),
    ("region", "TEXT"),
    ("year", "INTEGER"),
    ("month", "TEXT"),
    ("date", "DATE"),
    ("avg_price", "DOUBLE"),
    ("med_price", "DOUBLE"),
    ("sales_volume", "BIGINT"),
    ("active_listings", "BIGINT"),
    ("months_of_inventory", "DOUBLE"),
    ("sold_to_list_ratio", "DOUBLE"),
)


def columns_for(granularity: Granularity) -> tuple[tuple[str, str], ...]:
    return WEEKLY_COLUMNS if granularity is Granularity.WEEKLY else MONTHLY_COLUMNS


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _serialize_record(record: MarketRecord, columns: Sequence[tuple[str, str]]) -> tuple[Any, ...]:
    data = record.model_dump()
    data["region"] = record.region.value
    return tuple(data.get(name) for name, _ in columns)


def load_records(
    conn: duckdb.DuckDBPyConnection,
    records: Sequence[MarketRecord],
    granularity: Granularity,
) -> int:
    """Create the export table on ``conn`` and fill it, newest period first."""

    columns = columns_for(granularity)
    column_sql = ", ".join(f"{name} {sql_type}" for name, sql_type in columns)
    conn.execute(f"CREATE OR REPLACE TABLE {EXPORT_TABLE} ({column_sql})")
    rows = [_serialize_record(record, columns) for record in sort_newest_first(records)]
    if rows:
        placeholders = ", ".join("?" for _ in columns)
        conn.executemany(f"INSERT INTO {EXPORT_TABLE} VALUES ({placeholders})", rows)
    return len(rows)


def export_records(
    records: Sequence[MarketRecord],
    granularity: Granularity,
    destination: str | Path,
    *,
    fmt: str = "csv",
) -> Path:
    """Write ``records`` to ``destination`` as CSV or Parquet using DuckDB's COPY."""

    fmt = fmt.lower()
    if fmt not in ALLOWED_FORMATS:
        raise ValueError(f"Unsupported export format '{fmt}'.")

    dest_path = Path(destination)
    _ensure_parent(dest_path)
    sanitized_path = str(dest_path).replace("'", "''")
    if fmt == "csv":
        options = "FORMAT CSV, HEADER TRUE"
    else:
        options = "FORMAT PARQUET"

    conn = duckdb.connect()
    try:
        load_records(conn, records, granularity)
        conn.execute(f"COPY (SELECT * FROM {EXPORT_TABLE}) TO '{sanitized_path}' ({options})")
    finally:
        conn.close()
    return dest_path


__all__ = ["ALLOWED_FORMATS", "EXPORT_TABLE", "columns_for", "export_records", "load_records"]
