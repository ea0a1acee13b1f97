"""Minimal CSV tokenizer for spreadsheet-published feeds.

Published sheets are small and line oriented, so rows are split line by line
and fields on commas that sit outside a double-quoted section.
"""

from __future__ import annotations

import re
from typing import Iterable

_LINE_BREAK = re.compile(r"\r\n|\n")
# A comma is a separator only when an even number of quotes follows it.
_FIELD_SEPARATOR = re.compile(r',(?=(?:(?:[^"]*"){2})*[^"]*$)')


def split_csv_line(line: str) -> list[str]:
    """Split one CSV line into cleaned field values."""

    values = []
    for raw in _FIELD_SEPARATOR.split(line):
        value = raw.strip()
        if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
            value = value[1:-1]
        values.append(value.replace('""', '"'))
    return values


def parse_csv(csv_text: str) -> list[dict[str, str]]:
    """Parse CSV text into one mapping per data row, keyed by the header.

    Rows with fewer fields than the header are dropped. Text with fewer than
    two lines yields no rows.
    """

    lines = _LINE_BREAK.split(csv_text.strip())
    if len(lines) < 2:
        return []

    header = [name.strip() for name in lines[0].split(",")]
    rows: list[dict[str, str]] = []
    for line in lines[1:]:
        if not line.strip():
            continue
        values = split_csv_line(line)
        if len(values) < len(header):
            continue
        rows.append(dict(zip(header, values)))
    return rows


def _quote(value: str) -> str:
    if any(char in value for char in (",", '"', "\n", "\r")):
        return '"' + value.replace('"', '""') + '"'
    return value


def to_csv_line(values: Iterable[object]) -> str:
    """Serialize field values into a single CSV line readable by :func:`parse_csv`."""

    return ",".join(_quote("" if value is None else str(value)) for value in values)


__all__ = ["parse_csv", "split_csv_line", "to_csv_line"]
