"""Writing column-oriented data to CSV files."""

from __future__ import annotations

import csv
import math
from collections.abc import Sequence
from decimal import Decimal
from pathlib import Path
from typing import Any


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "inf" if value > 0 else "-inf"
        text = format(Decimal(repr(value)), "f")
        if "." in text:
            text = text.rstrip("0").rstrip(".")
        return text
    return str(value)


def write_csv(filename: str | Path, headers: Sequence[str], columns: Sequence[Sequence[Any]]) -> None:
    """Write a header row, then one row per index of the first column."""
    path = Path(filename)
    path.parent.mkdir(parents=True, exist_ok=True)
    row_count = len(columns[0]) if columns else 0
    if any(len(column) < row_count for column in columns):
        raise ValueError("every column must be at least as long as the first one")
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle, lineterminator="\n")
        writer.writerow(headers)
        for row in zip(*(column[:row_count] for column in columns)):
            writer.writerow(_to_text(value) for value in row)