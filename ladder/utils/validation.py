"""
Validation utilities for season rankings and entity names.
"""

import warnings

from ladder.utils.rank_math import RankValue, decimal_places, to_decimal

MIN_RANK = 1
MAX_RANK = 10
MAX_RANK_DECIMAL_PLACES = 2

ENTITY_KINDS = ("player", "season")


class InvalidRankError(ValueError):
    """Rank is outside [1, 10] or has too many decimal places."""


class DuplicateNameError(ValueError):
    """A player or season with the same name (case-insensitive) already exists."""

    def __init__(self, entity_kind: str, name: str):
        self.entity_kind = entity_kind
        self.name = name
        super().__init__(duplicate_name_message(entity_kind, name))


def duplicate_name_message(entity_kind: str, name: str) -> str:
    return f'A {entity_kind} with the name "{name.strip()}" already exists'


def check_entity_kind(entity_kind: str) -> str:
    if entity_kind not in ENTITY_KINDS:
        raise ValueError(f"Unknown entity kind: {entity_kind}")
    return entity_kind


def _as_decimal(rank: RankValue):
    try:
        return to_decimal(rank)
    except ValueError:
        raise InvalidRankError("Rank must be a number")


def validate_rank(rank: RankValue) -> None:
    """
    Validate that a rank is within the valid range and has proper decimal places.

    Args:
        rank: The rank to validate (int, float, Decimal or numeric string)

    Raises:
        InvalidRankError: If the rank is below 1, above 10, not a finite number,
            or has more than 2 decimal places
    """
    value = _as_decimal(rank)

    if value < MIN_RANK or value > MAX_RANK:
        raise InvalidRankError("Rank must be between 1 and 10")

    if decimal_places(value) > MAX_RANK_DECIMAL_PLACES:
        raise InvalidRankError("Rank can have at most 2 decimal places")


def validate_whole_rank(rank: RankValue) -> None:
    """
    Legacy rule: whole numbers 1-10 only.

    Deprecated in favor of validate_rank, which allows two decimal places.
    """
    warnings.warn(
        "validate_whole_rank is deprecated; use validate_rank",
        DeprecationWarning,
        stacklevel=2,
    )
    value = _as_decimal(rank)

    if value < MIN_RANK or value > MAX_RANK:
        raise InvalidRankError("Rank must be between 1 and 10")

    if value != value.to_integral_value():
        raise InvalidRankError("Rank must be a whole number")
