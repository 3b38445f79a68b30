"""
Utility functions for gender-related player statistics.

Players are dicts shaped like the ones data_service returns:
    {"id": 1, "name": "Cal Little", "gender": "MALE", "seasons": [{"rank": 7.5}, ...]}
"""

from dataclasses import dataclass, asdict
from fractions import Fraction
from typing import Dict, List, Optional

from ladder.utils.collation import base_key
from ladder.utils.rank_math import HUNDRED, mean, rank_to_hundredths, round_hundredths, to_display

MALE = "MALE"
FEMALE = "FEMALE"
NON_BINARY = "NON_BINARY"

GENDER_FILTERS = ("all", "male", "female", "non-binary", "unspecified")

_BUCKET_BY_GENDER = {
    MALE: "male",
    FEMALE: "female",
    NON_BINARY: "non_binary",
}

_LABELS = {
    MALE: "Male",
    FEMALE: "Female",
    NON_BINARY: "Non-Binary",
}


@dataclass
class GenderStats:
    average_rating: Optional[float]
    player_count: int
    percentage: float


@dataclass
class PlayerStatistics:
    male: GenderStats
    female: GenderStats
    non_binary: GenderStats
    unspecified: GenderStats
    total_players: int

    def to_dict(self) -> Dict:
        return asdict(self)


def _gender_value(gender) -> Optional[str]:
    """Accept either a plain string or a str-based enum member."""
    if gender is None:
        return None
    return getattr(gender, "value", gender)


def gender_label(gender) -> str:
    """Human-readable gender label."""
    return _LABELS.get(_gender_value(gender), "Gender not set")


def gender_bucket(gender) -> str:
    """Bucket key for a gender value. Anything unrecognized is "unspecified"."""
    return _BUCKET_BY_GENDER.get(_gender_value(gender), "unspecified")


def player_average(player: Dict) -> Optional[Fraction]:
    """Mean rank (in hundredths) over the player's ranked seasons, or None."""
    ranks = [
        rank_to_hundredths(season["rank"])
        for season in player.get("seasons") or []
        if season.get("rank") is not None
    ]
    return mean(ranks)


def gender_counts(players: List[Dict]) -> Dict[str, int]:
    """Gender filter counts for display."""
    genders = [_gender_value(p.get("gender")) for p in players]
    return {
        "all": len(players),
        "male": genders.count(MALE),
        "female": genders.count(FEMALE),
        "non_binary": genders.count(NON_BINARY),
        "unspecified": genders.count(None),
    }


def _bucket_stats(averages: List[Fraction], count: int, total_players: int) -> GenderStats:
    bucket_mean = mean(averages)
    if total_players > 0:
        percentage = to_display(round_hundredths(Fraction(count * HUNDRED * HUNDRED, total_players)))
    else:
        percentage = 0.0
    return GenderStats(
        average_rating=to_display(round_hundredths(bucket_mean)) if bucket_mean is not None else None,
        player_count=count,
        percentage=percentage,
    )


def calculate_player_statistics(players: List[Dict]) -> PlayerStatistics:
    """
    Calculate player statistics by gender.

    Every player counts towards their bucket's player_count. The bucket's
    average_rating is the mean of each ranked member's own average, so a
    player with ten ranked seasons weighs the same as a player with one.
    """
    total_players = len(players)

    counts = {"male": 0, "female": 0, "non_binary": 0, "unspecified": 0}
    averages: Dict[str, List[Fraction]] = {bucket: [] for bucket in counts}

    for player in players:
        bucket = gender_bucket(player.get("gender"))
        counts[bucket] += 1
        average = player_average(player)
        if average is not None:
            averages[bucket].append(average)

    return PlayerStatistics(
        male=_bucket_stats(averages["male"], counts["male"], total_players),
        female=_bucket_stats(averages["female"], counts["female"], total_players),
        non_binary=_bucket_stats(averages["non_binary"], counts["non_binary"], total_players),
        unspecified=_bucket_stats(averages["unspecified"], counts["unspecified"], total_players),
        total_players=total_players,
    )


def filter_players_by_gender(players: List[Dict], gender_filter: str) -> List[Dict]:
    """
    Filter players by gender.

    "unspecified" only matches players with no gender set. Unknown filters
    return every player.
    """
    if gender_filter == "all":
        return players

    wanted = {
        "male": MALE,
        "female": FEMALE,
        "non-binary": NON_BINARY,
        "unspecified": None,
    }
    if gender_filter not in wanted:
        return list(players)

    target = wanted[gender_filter]
    return [p for p in players if _gender_value(p.get("gender")) == target]


def sort_players_by_name(players: List[Dict]) -> List[Dict]:
    """Sort players alphabetically by name, ignoring case and accents. Returns a new list."""
    return sorted(players, key=lambda p: base_key(p["name"]))
