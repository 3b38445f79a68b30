"""
Utility functions for table sorting.
"""

import math
from dataclasses import dataclass
from functools import cmp_to_key
from numbers import Number
from typing import Any, Callable, Dict, List, TypeVar

from ladder.utils.collation import compare_text

T = TypeVar("T")

ASC = "asc"
DESC = "desc"

PLAYER_SORT_FIELDS = ("name", "rank")


@dataclass(frozen=True)
class SortState:
    field: str
    direction: str = ASC


def _is_number(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def _stringify(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def compare_values(a: Any, b: Any) -> int:
    """
    Three-way comparison of two table cell values.

    Strings compare with locale-style collation, numbers numerically, and
    anything else (mixed types, None) by comparing their string forms.
    """
    if isinstance(a, str) and isinstance(b, str):
        return compare_text(a, b)

    if _is_number(a) and _is_number(b):
        if a < b:
            return -1
        if a > b:
            return 1
        return 0

    return compare_text(_stringify(a), _stringify(b))


def toggle_sort(current_field: str, current_direction: str, requested_field: str) -> SortState:
    """
    Next sort state after a header click.

    Same field flips the direction; a new field starts ascending.
    """
    if current_field == requested_field:
        return SortState(field=requested_field, direction=DESC if current_direction == ASC else ASC)
    return SortState(field=requested_field, direction=ASC)


def sort_data(
    items: List[T],
    sort_state: SortState,
    field_value: Callable[[T, str], Any],
) -> List[T]:
    """
    Return a new list sorted on ``sort_state.field``. The input is not modified.

    Args:
        items: Rows to sort
        sort_state: Field and direction
        field_value: Extracts the sort value for a field from a row

    Returns:
        Sorted copy of ``items`` (stable for equal values)
    """
    sign = -1 if sort_state.direction == DESC else 1

    def comparator(a: T, b: T) -> int:
        return sign * compare_values(
            field_value(a, sort_state.field),
            field_value(b, sort_state.field),
        )

    return sorted(items, key=cmp_to_key(comparator))


def sort_players(rows: List[Dict], sort_state: SortState) -> List[Dict]:
    """
    Sort a season's player rows by "name" or "rank".

    Rows look like {"id": 1, "rank": 7.5 | None, "player": {"id": 4, "name": "..."}}.
    Unranked rows go last in both directions.
    """

    def field_value(row: Dict, field: str):
        if field == "name":
            return row["player"]["name"]
        if field == "rank":
            if row.get("rank") is None:
                return math.inf if sort_state.direction == ASC else -math.inf
            return row["rank"]
        return ""

    return sort_data(rows, sort_state, field_value)


def sort_icon(current_field: str, target_field: str, direction: str) -> str:
    """Arrow for a table header: "↑", "↓" or "" when the column isn't sorted."""
    if current_field != target_field:
        return ""
    return "↑" if direction == ASC else "↓"
