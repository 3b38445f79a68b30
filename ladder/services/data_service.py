"""
Data service layer for database operations.
Handles CRUD for players, seasons and season rankings, and builds the
statistics views on top of them.
"""

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional
import logging

from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ladder.database.models import Gender, Player, Season, SeasonRanking, Setting
from ladder.utils.datetime_utils import to_iso
from ladder.utils.gender_stats import (
    GENDER_FILTERS,
    calculate_player_statistics,
    filter_players_by_gender,
    gender_counts,
    sort_players_by_name,
)
from ladder.utils.player_stats import (
    calculate_player_stats,
    format_average_change_per_season,
    format_rating_change,
)
from ladder.utils.rank_math import to_decimal
from ladder.utils.season_sorting import sort_seasons_chronologically
from ladder.utils.table_sorting import SortState, sort_players
from ladder.utils.validation import (
    DuplicateNameError,
    check_entity_kind,
    validate_rank,
)

logger = logging.getLogger(__name__)

# Two ranks closer than this are treated as the same value on import
RANK_TOLERANCE = Decimal("0.001")

_MODELS = {"player": Player, "season": Season}


class NotFoundError(LookupError):
    """A player, season or season ranking doesn't exist."""


#
# Helper functions
#

def _rank_out(rank: Optional[Decimal]) -> Optional[float]:
    """Stored Numeric rank -> float for responses."""
    return float(rank) if rank is not None else None


def _gender_out(gender: Optional[Gender]) -> Optional[str]:
    return gender.value if gender else None


def parse_gender(gender: Optional[str]) -> Optional[Gender]:
    """
    Gender enum from a request value. None clears the gender.

    Raises:
        ValueError: If the value isn't MALE, FEMALE or NON_BINARY
    """
    if gender is None:
        return None
    try:
        return Gender(gender)
    except ValueError:
        raise ValueError("Invalid gender value")


def _player_to_dict(player: Player) -> Dict:
    return {
        "id": player.id,
        "name": player.name,
        "gender": _gender_out(player.gender),
        "created_at": to_iso(player.created_at),
        "updated_at": to_iso(player.updated_at),
    }


def _season_to_dict(season: Season) -> Dict:
    return {
        "id": season.id,
        "name": season.name,
        "created_at": to_iso(season.created_at),
        "updated_at": to_iso(season.updated_at),
    }


def _ranking_to_dict(ranking: SeasonRanking) -> Dict:
    return {
        "id": ranking.id,
        "player_id": ranking.player_id,
        "season_id": ranking.season_id,
        "rank": _rank_out(ranking.rank),
    }


def _clean_name(name: Optional[str], entity_kind: str) -> str:
    if not name or not name.strip():
        raise ValueError(f"{entity_kind.capitalize()} name is required")
    return name.strip()


#
# Name uniqueness
#

async def name_exists(
    session: AsyncSession, name: str, entity_kind: str, exclude_id: Optional[int] = None
) -> bool:
    """
    Check if a player or season name already exists (case-insensitive).

    Args:
        session: Database session
        name: Name to check (trimmed before comparing)
        entity_kind: "player" or "season"
        exclude_id: Ignore this record (used when renaming)

    Returns:
        True if another record already uses the name
    """
    model = _MODELS[check_entity_kind(entity_kind)]
    query = select(model.id).where(func.lower(model.name) == func.lower(name.strip()))
    if exclude_id is not None:
        query = query.where(model.id != exclude_id)
    result = await session.execute(query.limit(1))
    return result.scalar_one_or_none() is not None


async def validate_unique_name(
    session: AsyncSession, name: str, entity_kind: str, exclude_id: Optional[int] = None
) -> None:
    """
    Raise if the name is already taken.

    Raises:
        DuplicateNameError: 'A <kind> with the name "<name>" already exists'
    """
    if await name_exists(session, name, entity_kind, exclude_id=exclude_id):
        raise DuplicateNameError(entity_kind, name)


async def _commit_unique(session: AsyncSession, name: str, entity_kind: str) -> None:
    """Commit, turning a lost race on the unique name index into DuplicateNameError."""
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise DuplicateNameError(entity_kind, name)


#
# Players
#

async def create_player(session: AsyncSession, name: str, season_id: Optional[int] = None) -> Dict:
    """
    Create a player and optionally add them to a season (unranked).

    Raises:
        ValueError: If the name is empty
        DuplicateNameError: If the name is taken
        NotFoundError: If season_id doesn't exist
    """
    name = _clean_name(name, "player")
    await validate_unique_name(session, name, "player")

    if season_id is not None and await session.get(Season, season_id) is None:
        raise NotFoundError("Season not found")

    player = Player(name=name, gender=None)
    session.add(player)
    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        raise DuplicateNameError("player", name)

    if season_id is not None:
        session.add(SeasonRanking(player_id=player.id, season_id=season_id, rank=None))

    await _commit_unique(session, name, "player")
    await session.refresh(player)

    logger.info(f"Created player {player.id} ({name})" + (f" in season {season_id}" if season_id else ""))
    return _player_to_dict(player)


async def _load_players(session: AsyncSession, player_ids: Optional[Iterable[int]] = None) -> List[Player]:
    query = (
        select(Player)
        .options(selectinload(Player.seasons).selectinload(SeasonRanking.season))
        .execution_options(populate_existing=True)
    )
    if player_ids is not None:
        query = query.where(Player.id.in_(list(player_ids)))
    result = await session.execute(query)
    return list(result.scalars().all())


def _player_with_rankings(player: Player) -> Dict:
    data = _player_to_dict(player)
    data["seasons"] = [
        {
            "id": ranking.id,
            "rank": _rank_out(ranking.rank),
            "season": {"id": ranking.season.id, "name": ranking.season.name},
        }
        for ranking in player.seasons
    ]
    sort_seasons_chronologically(data["seasons"], lambda r: r["season"]["name"])
    return data


async def list_players(session: AsyncSession, gender_filter: str = "all") -> List[Dict]:
    """
    List players sorted by name, each with their season rankings.

    Args:
        gender_filter: "all", "male", "female", "non-binary" or "unspecified"
    """
    if gender_filter not in GENDER_FILTERS:
        raise ValueError(f"Invalid gender filter: {gender_filter}")
    players = [_player_with_rankings(p) for p in await _load_players(session)]
    return sort_players_by_name(filter_players_by_gender(players, gender_filter))


async def get_player(session: AsyncSession, player_id: int) -> Optional[Dict]:
    """Get a player by ID."""
    player = await session.get(Player, player_id, populate_existing=True)
    return _player_to_dict(player) if player else None


async def get_player_by_name(session: AsyncSession, name: str) -> Optional[Dict]:
    """Get a player by name (case-insensitive)."""
    result = await session.execute(
        select(Player)
        .where(func.lower(Player.name) == func.lower(name.strip()))
        .limit(1)
        .execution_options(populate_existing=True)
    )
    player = result.scalar_one_or_none()
    return _player_to_dict(player) if player else None


async def get_player_with_seasons(session: AsyncSession, player_id: int) -> Optional[Dict]:
    """Get a player with their season rankings, most recent season first."""
    players = await _load_players(session, [player_id])
    if not players:
        return None
    return _player_with_rankings(players[0])


async def get_player_trend(session: AsyncSession, player_id: int) -> Optional[Dict]:
    """
    Season history statistics for a player.

    Returns:
        {"player", "seasons", "stats", "rating_change_display", "average_change_display"}
        or None if the player doesn't exist
    """
    player = await get_player_with_seasons(session, player_id)
    if player is None:
        return None

    stats = calculate_player_stats(player["seasons"])
    seasons = player.pop("seasons")
    return {
        "player": player,
        "seasons": seasons,
        "stats": stats.to_dict(),
        "rating_change_display": format_rating_change(stats.rating_change)._asdict(),
        "average_change_display": format_average_change_per_season(stats.average_change_per_season)._asdict(),
    }


async def update_player_gender(session: AsyncSession, player_id: int, gender: Optional[str]) -> Optional[Dict]:
    """
    Set or clear a player's gender.

    Returns:
        Updated player dictionary or None if the player doesn't exist
    """
    value = parse_gender(gender)
    result = await session.execute(
        update(Player)
        .where(Player.id == player_id)
        .values(gender=value, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        return None
    await session.commit()
    logger.info(f"Updated gender for player {player_id} to {gender}")
    return await get_player(session, player_id)


async def bulk_update_player_gender(
    session: AsyncSession, player_ids: List[int], gender: Optional[str]
) -> int:
    """
    Set the same gender on many players in one statement.

    Returns:
        Number of players updated

    Raises:
        ValueError: If player_ids is empty or the gender is invalid
    """
    if not player_ids:
        raise ValueError("Player IDs must be a non-empty array")
    value = parse_gender(gender)

    result = await session.execute(
        update(Player)
        .where(Player.id.in_([int(pid) for pid in player_ids]))
        .values(gender=value, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    logger.info(f"Bulk updated gender to {gender} for {result.rowcount} player(s)")
    return result.rowcount


async def delete_player(session: AsyncSession, player_id: int) -> bool:
    """Delete a player and their season rankings."""
    await session.execute(delete(SeasonRanking).where(SeasonRanking.player_id == player_id))
    result = await session.execute(delete(Player).where(Player.id == player_id))
    await session.commit()
    if result.rowcount > 0:
        logger.info(f"Deleted player {player_id}")
    return result.rowcount > 0


async def merge_players(session: AsyncSession, old_name: str, new_name: str) -> Dict:
    """
    Merge a duplicate player into the one being kept.

    Moves every season ranking from ``old_name`` to ``new_name`` and deletes
    the duplicate. Refuses to merge when both players are in the same season,
    since that needs a manual decision on which rank to keep.

    Returns:
        {"kept_player_id", "removed_player_id", "moved_rankings"}

    Raises:
        NotFoundError: If either player doesn't exist
        ValueError: If the players are the same or share a season
    """
    old_player = await get_player_by_name(session, old_name)
    if old_player is None:
        raise NotFoundError(f"{old_name} not found. Nothing to merge.")
    new_player = await get_player_by_name(session, new_name)
    if new_player is None:
        raise NotFoundError(f"{new_name} not found. Cannot merge.")
    if old_player["id"] == new_player["id"]:
        raise ValueError("Cannot merge a player into itself")

    old_seasons = await session.execute(
        select(SeasonRanking.season_id).where(SeasonRanking.player_id == old_player["id"])
    )
    new_seasons = await session.execute(
        select(SeasonRanking.season_id).where(SeasonRanking.player_id == new_player["id"])
    )
    conflicting = sorted(set(old_seasons.scalars().all()) & set(new_seasons.scalars().all()))
    if conflicting:
        raise ValueError(
            f"Both players have records in seasons: {', '.join(str(s) for s in conflicting)}"
        )

    moved = await session.execute(
        update(SeasonRanking)
        .where(SeasonRanking.player_id == old_player["id"])
        .values(player_id=new_player["id"])
        .execution_options(synchronize_session=False)
    )
    await session.execute(delete(Player).where(Player.id == old_player["id"]))
    await session.commit()

    logger.info(
        f"Merged player {old_player['id']} into {new_player['id']} ({moved.rowcount} season ranking(s) moved)"
    )
    return {
        "kept_player_id": new_player["id"],
        "removed_player_id": old_player["id"],
        "moved_rankings": moved.rowcount,
    }


#
# Seasons
#

async def create_season(session: AsyncSession, name: str) -> Dict:
    """
    Create a season.

    Raises:
        ValueError: If the name is empty
        DuplicateNameError: If the name is taken
    """
    name = _clean_name(name, "season")
    await validate_unique_name(session, name, "season")

    season = Season(name=name)
    session.add(season)
    await _commit_unique(session, name, "season")
    await session.refresh(season)

    logger.info(f"Created season {season.id} ({name})")
    return _season_to_dict(season)


async def list_seasons(session: AsyncSession) -> List[Dict]:
    """List seasons, most recent first, with their player counts."""
    result = await session.execute(
        select(Season, func.count(SeasonRanking.id))
        .outerjoin(SeasonRanking, SeasonRanking.season_id == Season.id)
        .group_by(Season.id)
        .order_by(Season.id)
        .execution_options(populate_existing=True)
    )
    seasons = []
    for season, player_count in result.all():
        data = _season_to_dict(season)
        data["player_count"] = player_count
        seasons.append(data)
    return sort_seasons_chronologically(seasons, lambda s: s["name"])


async def get_season(session: AsyncSession, season_id: int) -> Optional[Dict]:
    """Get a season by ID."""
    season = await session.get(Season, season_id, populate_existing=True)
    return _season_to_dict(season) if season else None


async def _season_rankings(session: AsyncSession, season_id: int) -> List[SeasonRanking]:
    result = await session.execute(
        select(SeasonRanking)
        .options(selectinload(SeasonRanking.player))
        .where(SeasonRanking.season_id == season_id)
        .order_by(SeasonRanking.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_season_with_players(
    session: AsyncSession, season_id: int, sort_state: Optional[SortState] = None
) -> Optional[Dict]:
    """
    Get a season with its players.

    Args:
        sort_state: Table sort for the players (default: name ascending).
            Unranked players always come last when sorting by rank.
    """
    season = await get_season(session, season_id)
    if season is None:
        return None

    rows = [
        {
            "id": ranking.id,
            "rank": _rank_out(ranking.rank),
            "player": {
                "id": ranking.player.id,
                "name": ranking.player.name,
                "gender": _gender_out(ranking.player.gender),
            },
        }
        for ranking in await _season_rankings(session, season_id)
    ]
    season["players"] = sort_players(rows, sort_state or SortState(field="name"))
    return season


async def update_season(session: AsyncSession, season_id: int, name: str) -> Optional[Dict]:
    """
    Rename a season.

    Returns:
        Updated season dictionary or None if not found

    Raises:
        ValueError: If the name is empty
        DuplicateNameError: If another season uses the name
    """
    name = _clean_name(name, "season")
    season = await session.get(Season, season_id)
    if season is None:
        return None

    await validate_unique_name(session, name, "season", exclude_id=season_id)
    season.name = name
    await _commit_unique(session, name, "season")
    await session.refresh(season)

    logger.info(f"Renamed season {season_id} to {name}")
    return _season_to_dict(season)


async def delete_season(session: AsyncSession, season_id: int) -> bool:
    """Delete a season and its rankings."""
    await session.execute(delete(SeasonRanking).where(SeasonRanking.season_id == season_id))
    result = await session.execute(delete(Season).where(Season.id == season_id))
    await session.commit()
    if result.rowcount > 0:
        logger.info(f"Deleted season {season_id}")
    return result.rowcount > 0


#
# Season rankings
#

async def _get_ranking(session: AsyncSession, player_id: int, season_id: int) -> Optional[SeasonRanking]:
    result = await session.execute(
        select(SeasonRanking).where(
            SeasonRanking.player_id == player_id,
            SeasonRanking.season_id == season_id,
        ).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def add_player_to_season(session: AsyncSession, player_id: int, season_id: int) -> Dict:
    """
    Add a player to a season without a rank.

    Raises:
        NotFoundError: If the player or season doesn't exist
        ValueError: If the player is already in the season
    """
    if await session.get(Player, player_id) is None:
        raise NotFoundError("Player not found")
    if await session.get(Season, season_id) is None:
        raise NotFoundError("Season not found")
    if await _get_ranking(session, player_id, season_id) is not None:
        raise ValueError("Player is already in this season")

    ranking = SeasonRanking(player_id=player_id, season_id=season_id, rank=None)
    session.add(ranking)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ValueError("Player is already in this season")
    await session.refresh(ranking)

    logger.info(f"Added player {player_id} to season {season_id}")
    return _ranking_to_dict(ranking)


async def remove_player_from_season(session: AsyncSession, player_id: int, season_id: int) -> bool:
    """Remove a player from a season. Returns False if they weren't in it."""
    result = await session.execute(
        delete(SeasonRanking).where(
            SeasonRanking.player_id == player_id,
            SeasonRanking.season_id == season_id,
        )
    )
    await session.commit()
    if result.rowcount > 0:
        logger.info(f"Removed player {player_id} from season {season_id}")
    return result.rowcount > 0


async def update_player_ranking(session: AsyncSession, player_id: int, season_id: int, rank: Any) -> Dict:
    """
    Set a player's rank in a season.

    The rank is validated before anything is read or written.

    Raises:
        InvalidRankError: If the rank is out of range or has more than 2 decimals
        NotFoundError: If the player is not in the season
    """
    validate_rank(rank)

    ranking = await _get_ranking(session, player_id, season_id)
    if ranking is None:
        raise NotFoundError("Player is not in this season")

    ranking.rank = to_decimal(rank)
    await session.commit()
    await session.refresh(ranking)

    logger.info(f"Updated rank for player {player_id} in season {season_id} to {rank}")
    return _ranking_to_dict(ranking)


async def update_ranking_by_name(session: AsyncSession, season_id: int, player_name: str, rank: Any) -> Dict:
    """
    Set a player's rank in a season, looking the player up by name.

    Raises:
        InvalidRankError: If the rank is invalid
        NotFoundError: If the player doesn't exist or isn't in the season
    """
    validate_rank(rank)

    player = await get_player_by_name(session, player_name)
    if player is None:
        raise NotFoundError("Player not found")

    ranking = await update_player_ranking(session, player["id"], season_id, rank)
    ranking["player_name"] = player["name"]
    return ranking


async def _import_row(session: AsyncSession, season_id: int, name: str, rank: Any) -> Dict:
    """Apply one imported (name, rank) row and describe what happened."""
    name = (name or "").strip()
    try:
        validate_rank(rank)
    except ValueError as e:
        return {"name": name, "rank": rank, "success": False, "action": "invalid_rank", "error": str(e)}

    player = await get_player_by_name(session, name) if name else None
    if player is None:
        return {
            "name": name,
            "rank": rank,
            "success": False,
            "action": "player_not_found",
            "error": "Player not found in database",
        }

    new_rank = to_decimal(rank)
    existing = await _get_ranking(session, player["id"], season_id)

    if existing is None:
        session.add(SeasonRanking(player_id=player["id"], season_id=season_id, rank=new_rank))
        await session.commit()
        return {"name": player["name"], "rank": rank, "success": True, "action": "added_to_season"}

    if existing.rank is None:
        existing.rank = new_rank
        await session.commit()
        return {"name": player["name"], "rank": rank, "success": True, "action": "updated_ranking"}

    if abs(existing.rank - new_rank) < RANK_TOLERANCE:
        return {"name": player["name"], "rank": rank, "success": True, "action": "ranking_unchanged"}

    current_rank = _rank_out(existing.rank)
    return {
        "name": player["name"],
        "rank": rank,
        "success": False,
        "action": "ranking_conflict",
        "error": f"Player already exists in season with rank {current_rank}. New rank: {rank}",
        "current_rank": current_rank,
    }


async def import_season_rankings(session: AsyncSession, season_id: int, rows: List[Dict]) -> Dict:
    """
    Import (name, rank) rows into a season.

    Each row is reported with one of the actions added_to_season,
    updated_ranking, ranking_unchanged, ranking_conflict, player_not_found,
    invalid_rank, invalid_row (the row carried a parse ``error``) or error
    (an unexpected failure). Conflicting ranks are never overwritten. Only
    rows that changed something count towards success_count.

    Raises:
        ValueError: If rows is empty
        NotFoundError: If the season doesn't exist
    """
    if not rows:
        raise ValueError("Season ID and players array are required")
    if await session.get(Season, season_id) is None:
        raise NotFoundError("Season not found")

    results = []
    success_count = 0
    for row in rows:
        if row.get("error"):
            results.append(
                {
                    "name": row.get("name"),
                    "rank": row.get("rank"),
                    "success": False,
                    "action": "invalid_row",
                    "error": row["error"],
                }
            )
            continue
        try:
            result = await _import_row(session, season_id, row.get("name"), row.get("rank"))
        except Exception as e:
            await session.rollback()
            logger.error(f"Error processing player {row.get('name')}: {e}", exc_info=True)
            result = {
                "name": row.get("name"),
                "rank": row.get("rank"),
                "success": False,
                "action": "error",
                "error": str(e),
            }
        results.append(result)
        if result["success"] and result["action"] != "ranking_unchanged":
            success_count += 1

    logger.info(f"Imported rankings into season {season_id}: {success_count}/{len(rows)} changed")
    return {
        "success": True,
        "message": f"Successfully processed {success_count} out of {len(rows)} players",
        "success_count": success_count,
        "total_count": len(rows),
        "results": results,
    }


#
# Statistics
#

async def get_player_statistics(session: AsyncSession, gender_filter: str = "all") -> Dict:
    """
    Gender statistics across all players.

    Statistics and counts always cover every player so the percentages stay
    comparable; ``gender_filter`` only narrows the returned ``players`` list.

    Raises:
        ValueError: If gender_filter isn't a known filter
    """
    if gender_filter not in GENDER_FILTERS:
        raise ValueError(f"Invalid gender filter: {gender_filter}")
    all_players = await list_players(session)
    return {
        "statistics": calculate_player_statistics(all_players).to_dict(),
        "counts": gender_counts(all_players),
        "players": filter_players_by_gender(all_players, gender_filter),
    }


async def get_season_statistics(session: AsyncSession, season_id: int) -> Optional[Dict]:
    """
    Gender statistics for one season, using only that season's ranks.

    Returns:
        Statistics dictionary or None if the season doesn't exist
    """
    if await session.get(Season, season_id) is None:
        return None

    players = [
        {
            "id": ranking.player.id,
            "name": ranking.player.name,
            "gender": _gender_out(ranking.player.gender),
            "seasons": [{"rank": _rank_out(ranking.rank)}],
        }
        for ranking in await _season_rankings(session, season_id)
    ]
    return {
        "season_id": season_id,
        "statistics": calculate_player_statistics(players).to_dict(),
        "counts": gender_counts(players),
    }


#
# Settings
#

async def get_setting(session: AsyncSession, key: str) -> Optional[str]:
    """
    Get a setting value.

    Args:
        session: Database session
        key: Setting key

    Returns:
        Setting value or None if not found
    """
    setting = await session.get(Setting, key)
    return setting.value if setting else None


async def set_setting(session: AsyncSession, key: str, value: str) -> None:
    """
    Set a setting value (insert or update).

    Args:
        session: Database session
        key: Setting key
        value: Setting value
    """
    setting = await session.get(Setting, key)
    if setting is None:
        session.add(Setting(key=key, value=value))
    else:
        setting.value = value
    await session.commit()
