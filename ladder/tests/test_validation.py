"""
Tests for rank validation and duplicate-name errors.
"""
import warnings
from decimal import Decimal

import pytest

from ladder.utils.validation import (
    DuplicateNameError,
    InvalidRankError,
    check_entity_kind,
    validate_rank,
    validate_whole_rank,
)


@pytest.mark.parametrize("rank", [1, 10, 5.5, 5.12, 9.99, 1.01, "7.25", Decimal("7.50"), 10.0])
def test_validate_rank_accepts_valid_ranks(rank):
    validate_rank(rank)


@pytest.mark.parametrize("rank", [0, 0.99, 10.01, 11, -3, 100])
def test_validate_rank_rejects_out_of_range(rank):
    with pytest.raises(InvalidRankError, match="between 1 and 10"):
        validate_rank(rank)


def test_validate_rank_rejects_three_decimal_places():
    with pytest.raises(InvalidRankError, match="at most 2 decimal places"):
        validate_rank(5.123)
    validate_rank(5.12)


def test_validate_rank_ignores_trailing_zeros():
    """Decimal("5.100") from the database is still two decimals."""
    validate_rank(Decimal("5.100"))


@pytest.mark.parametrize("rank", [None, "abc", float("nan"), float("inf"), True, [5]])
def test_validate_rank_rejects_non_numbers(rank):
    with pytest.raises(InvalidRankError, match="must be a number"):
        validate_rank(rank)


def test_invalid_rank_error_is_value_error():
    with pytest.raises(ValueError):
        validate_rank(42)


def test_validate_whole_rank_is_deprecated_and_strict():
    with pytest.warns(DeprecationWarning):
        validate_whole_rank(7)

    with warnings.catch_warnings():
        warnings.simplefilter("ignore", DeprecationWarning)
        with pytest.raises(InvalidRankError, match="whole number"):
            validate_whole_rank(7.5)
        with pytest.raises(InvalidRankError, match="between 1 and 10"):
            validate_whole_rank(11)


def test_duplicate_name_error_message_uses_trimmed_name():
    error = DuplicateNameError("player", "  Cal Little  ")
    assert str(error) == 'A player with the name "Cal Little" already exists'
    assert error.entity_kind == "player"


def test_check_entity_kind():
    assert check_entity_kind("season") == "season"
    with pytest.raises(ValueError):
        check_entity_kind("league")
