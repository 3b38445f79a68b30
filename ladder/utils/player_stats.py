"""
Utility functions for calculating a player's season history statistics.

Season rankings are dicts shaped like:
    {"id": 3, "rank": Decimal("7.50") | None, "season": {"id": 2, "name": "Fall 2024"}}
"""

from dataclasses import dataclass, asdict
from fractions import Fraction
from typing import Dict, List, NamedTuple, Optional

from ladder.utils.rank_math import mean, rank_to_hundredths, round_hundredths, to_display
from ladder.utils.season_sorting import sort_seasons_chronologically

TONE_POSITIVE = "positive"
TONE_NEGATIVE = "negative"
TONE_NEUTRAL = "neutral"
TONE_MUTED = "muted"


@dataclass
class PlayerStats:
    total_seasons: int
    first_season: Optional[str]
    most_recent_season: Optional[str]
    average_rating: Optional[float]
    rating_change: Optional[float]
    average_change_per_season: Optional[float]
    has_ranked_seasons: bool

    def to_dict(self) -> Dict:
        return asdict(self)


class FormattedChange(NamedTuple):
    text: str
    tone: str


def _season_name(ranking: Dict) -> str:
    return ranking["season"]["name"]


def _hundredths(ranking: Dict) -> Fraction:
    return rank_to_hundredths(ranking["rank"])


def _display(value: Fraction) -> float:
    """Hundredths value -> float rounded to 2 decimal places."""
    return to_display(round_hundredths(value))


def calculate_player_stats(season_rankings: List[Dict]) -> PlayerStats:
    """
    Calculate statistics for a player from their season rankings.

    First/most recent season and total_seasons cover every season the player
    was in, ranked or not. Rating figures only use ranked seasons. The per
    season change divides by (ranked seasons - 1), not by calendar gaps.

    Args:
        season_rankings: The player's season rankings (not modified)

    Returns:
        PlayerStats with values rounded to 2 decimal places
    """
    if not season_rankings:
        return PlayerStats(
            total_seasons=0,
            first_season=None,
            most_recent_season=None,
            average_rating=None,
            rating_change=None,
            average_change_per_season=None,
            has_ranked_seasons=False,
        )

    # Most recent first
    sorted_seasons = sort_seasons_chronologically(list(season_rankings), _season_name)

    total_seasons = len(season_rankings)
    most_recent_season = _season_name(sorted_seasons[0])
    first_season = _season_name(sorted_seasons[-1])

    ranked_seasons = [r for r in sorted_seasons if r.get("rank") is not None]
    if not ranked_seasons:
        return PlayerStats(
            total_seasons=total_seasons,
            first_season=first_season,
            most_recent_season=most_recent_season,
            average_rating=None,
            rating_change=None,
            average_change_per_season=None,
            has_ranked_seasons=False,
        )

    average_rating = mean(_hundredths(r) for r in ranked_seasons)

    rating_change = None
    average_change_per_season = None
    if len(ranked_seasons) >= 2:
        change = _hundredths(ranked_seasons[0]) - _hundredths(ranked_seasons[-1])
        rating_change = _display(change)
        average_change_per_season = _display(change / (len(ranked_seasons) - 1))

    return PlayerStats(
        total_seasons=total_seasons,
        first_season=first_season,
        most_recent_season=most_recent_season,
        average_rating=_display(average_rating),
        rating_change=rating_change,
        average_change_per_season=average_change_per_season,
        has_ranked_seasons=True,
    )


def _format_number(value: float) -> str:
    """Render 2.0 as "2" and 0.5 as "0.5"."""
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def format_rating_change(rating_change: Optional[float]) -> FormattedChange:
    """Format a rating change for display."""
    if rating_change is None:
        return FormattedChange("No change data", TONE_MUTED)
    if rating_change > 0:
        return FormattedChange(f"+{_format_number(rating_change)}", TONE_POSITIVE)
    if rating_change < 0:
        return FormattedChange(_format_number(rating_change), TONE_NEGATIVE)
    return FormattedChange("No change", TONE_NEUTRAL)


def format_average_change_per_season(average_change: Optional[float]) -> FormattedChange:
    """Format the average change per season for display."""
    if average_change is None:
        return FormattedChange("No data", TONE_MUTED)
    if average_change > 0:
        return FormattedChange(f"+{_format_number(average_change)}/season", TONE_POSITIVE)
    if average_change < 0:
        return FormattedChange(f"{_format_number(average_change)}/season", TONE_NEGATIVE)
    return FormattedChange("0/season", TONE_NEUTRAL)
