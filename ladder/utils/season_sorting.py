"""
Utility functions for parsing and sorting seasons chronologically.

Season names look like "Summer 2025": a free-text sub-season followed by a
year. Names that don't follow the pattern still sort, they just land at year 0.
"""

import re
from typing import Callable, List, NamedTuple, TypeVar

T = TypeVar("T")

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

# Order of a sub-season within its year. Checked in this order, first hit wins.
SEASON_ORDER = (
    (("winter",), 0),
    (("spring",), 1),
    (("summer",), 2),
    (("fall", "autumn"), 3),
)
UNKNOWN_SEASON_ORDER = 4


class ParsedSeason(NamedTuple):
    year: int
    sub_season: str


def _parse_year(token: str):
    """Leading integer of a token, or None if it doesn't start with one."""
    match = _LEADING_INT.match(token)
    if not match:
        return None
    return int(match.group(1))


def parse_season_name(name: str) -> ParsedSeason:
    """
    Parse a season name in the format "[SEASON] [YEAR]".

    The last space-separated token is the year. When it doesn't parse as an
    integer the year is 0 and the whole name is kept as the sub-season.

    Examples:
        >>> parse_season_name("Summer 2024")
        ParsedSeason(year=2024, sub_season='Summer')
        >>> parse_season_name("Foo")
        ParsedSeason(year=0, sub_season='Foo')
    """
    trimmed = name.strip()
    parts = trimmed.split(" ")
    year = _parse_year(parts[-1])
    if year is None:
        return ParsedSeason(year=0, sub_season=trimmed)
    return ParsedSeason(year=year, sub_season=" ".join(parts[:-1]))


def season_order(sub_season: str) -> int:
    """
    Chronological order of a season within a year.
    Winter=0, Spring=1, Summer=2, Fall/Autumn=3, anything else=4.
    """
    lowered = sub_season.lower()
    for keywords, order in SEASON_ORDER:
        if any(keyword in lowered for keyword in keywords):
            return order
    return UNKNOWN_SEASON_ORDER


def season_sort_key(name: str):
    """Sort key that puts the most recent season first under an ascending sort."""
    parsed = parse_season_name(name)
    return (-parsed.year, -season_order(parsed.sub_season))


def sort_seasons_chronologically(items: List[T], name_of: Callable[[T], str]) -> List[T]:
    """
    Sort seasons chronologically, most recent first.

    Sorts ``items`` in place (stable) and returns the same list object, so
    callers can use either the argument or the return value. Pass a copy if
    the original order must be kept.

    Args:
        items: Objects that carry a season name
        name_of: Function that extracts the season name from an item

    Returns:
        ``items``, now ordered by year descending then Fall > Summer > Spring > Winter
    """
    items.sort(key=lambda item: season_sort_key(name_of(item)))
    return items
