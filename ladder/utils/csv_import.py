"""
Parsing for season ranking CSV uploads.

Expected layout is two columns, name then rank, with an optional header row:

    name,rank
    Cal Little,7.5
    "Jake Leon-Guerrero",8
"""

import csv
import io
import math
from dataclasses import dataclass
from typing import List, Optional


@dataclass
class CsvRow:
    name: str
    rank: Optional[float]
    error: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.error is None


def _is_header(fields: List[str]) -> bool:
    line = ",".join(fields).lower()
    return "name" in line and "rank" in line


def _clean(field: str) -> str:
    return field.strip().strip("\"'")


def parse_rankings_csv(text: str) -> List[CsvRow]:
    """
    Parse CSV text into rows of (name, rank).

    Rows with a missing name or a rank that isn't a number come back with
    ``error`` set instead of being dropped, so the caller can report them.
    """
    rows: List[CsvRow] = []
    lines = [fields for fields in csv.reader(io.StringIO(text.strip())) if any(f.strip() for f in fields)]
    if lines and _is_header(lines[0]):
        lines = lines[1:]

    for index, fields in enumerate(lines, start=1):
        parts = [_clean(f) for f in fields]
        if len(parts) < 2:
            rows.append(CsvRow(name=f"Row {index}", rank=None, error=f"Invalid data: row {index} needs a name and a rank"))
            continue

        name, rank_str = parts[0], parts[1]
        try:
            rank = float(rank_str)
        except ValueError:
            rank = math.nan

        if name and not math.isnan(rank):
            rows.append(CsvRow(name=name, rank=rank))
        else:
            rows.append(
                CsvRow(
                    name=name or f"Row {index}",
                    rank=None if math.isnan(rank) else rank,
                    error=f'Invalid data: name="{name}", rank="{rank_str}"',
                )
            )

    return rows
