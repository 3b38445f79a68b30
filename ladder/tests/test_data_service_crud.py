"""
Tests for data_service CRUD operations on players, seasons and rankings.
"""
import pytest
import pytest_asyncio
from sqlalchemy import select

from ladder.database.models import Player, SeasonRanking
from ladder.services import data_service
from ladder.utils.table_sorting import DESC, SortState
from ladder.utils.validation import DuplicateNameError, InvalidRankError

# db_session fixture is provided by conftest.py


@pytest_asyncio.fixture
async def season(db_session):
    return await data_service.create_season(db_session, "Summer 2024")


@pytest_asyncio.fixture
async def player(db_session):
    return await data_service.create_player(db_session, "Cal Little")


# ============================================================================
# Name uniqueness
# ============================================================================

@pytest.mark.asyncio
async def test_name_exists_is_case_insensitive_and_trimmed(db_session, player):
    assert await data_service.name_exists(db_session, "  cal LITTLE ", "player")
    assert not await data_service.name_exists(db_session, "Cal Little", "season")
    assert not await data_service.name_exists(db_session, "Cal", "player")


@pytest.mark.asyncio
async def test_validate_unique_name_raises(db_session, player):
    with pytest.raises(DuplicateNameError) as exc:
        await data_service.validate_unique_name(db_session, " CAL little ", "player")
    assert str(exc.value) == 'A player with the name "CAL little" already exists'

    # Renaming a record to its own name is allowed
    await data_service.validate_unique_name(db_session, "cal little", "player", exclude_id=player["id"])


# ============================================================================
# Players
# ============================================================================

@pytest.mark.asyncio
async def test_create_player_trims_name(db_session):
    player = await data_service.create_player(db_session, "  Oliver Lieu  ")
    assert player["name"] == "Oliver Lieu"
    assert player["gender"] is None


@pytest.mark.asyncio
async def test_create_player_rejects_blank_and_duplicate(db_session, player):
    with pytest.raises(ValueError, match="name is required"):
        await data_service.create_player(db_session, "   ")
    with pytest.raises(DuplicateNameError):
        await data_service.create_player(db_session, "cal little")


@pytest.mark.asyncio
async def test_create_player_in_season(db_session, season):
    player = await data_service.create_player(db_session, "Missy Takahashi", season_id=season["id"])
    detail = await data_service.get_season_with_players(db_session, season["id"])
    assert [(p["player"]["id"], p["rank"]) for p in detail["players"]] == [(player["id"], None)]


@pytest.mark.asyncio
async def test_create_player_unknown_season(db_session):
    with pytest.raises(data_service.NotFoundError):
        await data_service.create_player(db_session, "Nobody", season_id=999)
    assert await data_service.get_player_by_name(db_session, "Nobody") is None


@pytest.mark.asyncio
async def test_list_players_sorted_and_filtered(db_session, season):
    bob = await data_service.create_player(db_session, "bob")
    await data_service.create_player(db_session, "Alice")
    await data_service.update_player_gender(db_session, bob["id"], "MALE")
    await data_service.add_player_to_season(db_session, bob["id"], season["id"])
    await data_service.update_player_ranking(db_session, bob["id"], season["id"], 7.5)

    players = await data_service.list_players(db_session)
    assert [p["name"] for p in players] == ["Alice", "bob"]
    assert players[1]["seasons"][0]["rank"] == 7.5
    assert players[1]["seasons"][0]["season"]["name"] == "Summer 2024"

    males = await data_service.list_players(db_session, "male")
    assert [p["name"] for p in males] == ["bob"]
    unspecified = await data_service.list_players(db_session, "unspecified")
    assert [p["name"] for p in unspecified] == ["Alice"]

    with pytest.raises(ValueError):
        await data_service.list_players(db_session, "nobody")


@pytest.mark.asyncio
async def test_update_player_gender(db_session, player):
    updated = await data_service.update_player_gender(db_session, player["id"], "NON_BINARY")
    assert updated["gender"] == "NON_BINARY"

    cleared = await data_service.update_player_gender(db_session, player["id"], None)
    assert cleared["gender"] is None

    assert await data_service.update_player_gender(db_session, 999, "MALE") is None
    with pytest.raises(ValueError, match="Invalid gender"):
        await data_service.update_player_gender(db_session, player["id"], "male")


@pytest.mark.asyncio
async def test_bulk_update_player_gender(db_session):
    ids = [(await data_service.create_player(db_session, name))["id"] for name in ("A", "B", "C")]

    count = await data_service.bulk_update_player_gender(db_session, ids[:2], "FEMALE")
    assert count == 2

    genders = {p["name"]: p["gender"] for p in await data_service.list_players(db_session)}
    assert genders == {"A": "FEMALE", "B": "FEMALE", "C": None}

    with pytest.raises(ValueError, match="non-empty"):
        await data_service.bulk_update_player_gender(db_session, [], "FEMALE")
    with pytest.raises(ValueError, match="Invalid gender"):
        await data_service.bulk_update_player_gender(db_session, ids, "UNKNOWN")


@pytest.mark.asyncio
async def test_delete_player_removes_rankings(db_session, season, player):
    await data_service.add_player_to_season(db_session, player["id"], season["id"])

    assert await data_service.delete_player(db_session, player["id"]) is True
    assert await data_service.get_player(db_session, player["id"]) is None
    remaining = await db_session.execute(select(SeasonRanking))
    assert remaining.scalars().all() == []

    assert await data_service.delete_player(db_session, player["id"]) is False


@pytest.mark.asyncio
async def test_merge_players(db_session, season):
    old = await data_service.create_player(db_session, "Cal Littel")
    new = await data_service.create_player(db_session, "Cal Little")
    await data_service.add_player_to_season(db_session, old["id"], season["id"])
    await data_service.update_player_ranking(db_session, old["id"], season["id"], 6)

    result = await data_service.merge_players(db_session, "cal littel", "Cal Little")
    assert result == {"kept_player_id": new["id"], "removed_player_id": old["id"], "moved_rankings": 1}

    assert await data_service.get_player(db_session, old["id"]) is None
    kept = await data_service.get_player_with_seasons(db_session, new["id"])
    assert [s["rank"] for s in kept["seasons"]] == [6.0]


@pytest.mark.asyncio
async def test_merge_players_refuses_shared_season(db_session, season):
    old = await data_service.create_player(db_session, "Dup")
    new = await data_service.create_player(db_session, "Orig")
    await data_service.add_player_to_season(db_session, old["id"], season["id"])
    await data_service.add_player_to_season(db_session, new["id"], season["id"])

    with pytest.raises(ValueError, match="Both players have records"):
        await data_service.merge_players(db_session, "Dup", "Orig")
    assert await data_service.get_player(db_session, old["id"]) is not None

    with pytest.raises(data_service.NotFoundError):
        await data_service.merge_players(db_session, "Missing", "Orig")


# ============================================================================
# Seasons
# ============================================================================

@pytest.mark.asyncio
async def test_create_season_rejects_duplicates(db_session, season):
    with pytest.raises(DuplicateNameError, match='A season with the name "summer 2024" already exists'):
        await data_service.create_season(db_session, " summer 2024 ")
    with pytest.raises(ValueError):
        await data_service.create_season(db_session, "")


@pytest.mark.asyncio
async def test_list_seasons_chronological_with_counts(db_session, player):
    for name in ("Winter 2023", "Fall 2023", "Summer 2024"):
        await data_service.create_season(db_session, name)
    seasons = await data_service.list_seasons(db_session)
    assert [s["name"] for s in seasons] == ["Summer 2024", "Fall 2023", "Winter 2023"]

    await data_service.add_player_to_season(db_session, player["id"], seasons[1]["id"])
    counts = {s["name"]: s["player_count"] for s in await data_service.list_seasons(db_session)}
    assert counts == {"Summer 2024": 0, "Fall 2023": 1, "Winter 2023": 0}


@pytest.mark.asyncio
async def test_update_season(db_session, season):
    other = await data_service.create_season(db_session, "Fall 2024")

    renamed = await data_service.update_season(db_session, season["id"], "  Summer 2024  ")
    assert renamed["name"] == "Summer 2024"

    with pytest.raises(DuplicateNameError):
        await data_service.update_season(db_session, season["id"], "FALL 2024")

    assert await data_service.update_season(db_session, 999, "Spring 2025") is None
    assert (await data_service.get_season(db_session, other["id"]))["name"] == "Fall 2024"


@pytest.mark.asyncio
async def test_delete_season(db_session, season, player):
    await data_service.add_player_to_season(db_session, player["id"], season["id"])
    assert await data_service.delete_season(db_session, season["id"]) is True
    assert await data_service.get_season(db_session, season["id"]) is None
    assert await data_service.get_player(db_session, player["id"]) is not None
    assert await data_service.delete_season(db_session, season["id"]) is False


@pytest.mark.asyncio
async def test_get_season_with_players_sorting(db_session, season):
    for name, rank in (("Alice", 8), ("bob", None), ("Carl", 6.5), ("Dee", None)):
        player = await data_service.create_player(db_session, name, season_id=season["id"])
        if rank is not None:
            await data_service.update_player_ranking(db_session, player["id"], season["id"], rank)

    by_name = await data_service.get_season_with_players(db_session, season["id"])
    assert [p["player"]["name"] for p in by_name["players"]] == ["Alice", "bob", "Carl", "Dee"]

    by_rank = await data_service.get_season_with_players(db_session, season["id"], SortState("rank"))
    assert [p["rank"] for p in by_rank["players"]] == [6.5, 8.0, None, None]

    by_rank_desc = await data_service.get_season_with_players(db_session, season["id"], SortState("rank", DESC))
    assert [p["rank"] for p in by_rank_desc["players"]] == [8.0, 6.5, None, None]

    assert await data_service.get_season_with_players(db_session, 999) is None


# ============================================================================
# Season rankings
# ============================================================================

@pytest.mark.asyncio
async def test_add_player_to_season_twice(db_session, season, player):
    ranking = await data_service.add_player_to_season(db_session, player["id"], season["id"])
    assert ranking["rank"] is None

    with pytest.raises(ValueError, match="already in this season"):
        await data_service.add_player_to_season(db_session, player["id"], season["id"])
    with pytest.raises(data_service.NotFoundError):
        await data_service.add_player_to_season(db_session, 999, season["id"])


@pytest.mark.asyncio
async def test_update_player_ranking_validates_first(db_session, season, player):
    await data_service.add_player_to_season(db_session, player["id"], season["id"])

    ranking = await data_service.update_player_ranking(db_session, player["id"], season["id"], 9.25)
    assert ranking["rank"] == 9.25

    with pytest.raises(InvalidRankError):
        await data_service.update_player_ranking(db_session, player["id"], season["id"], 5.123)
    with pytest.raises(InvalidRankError):
        await data_service.update_player_ranking(db_session, player["id"], season["id"], 11)

    # Invalid rank is reported even when the player isn't in the season
    with pytest.raises(InvalidRankError):
        await data_service.update_player_ranking(db_session, 999, season["id"], 0)
    with pytest.raises(data_service.NotFoundError):
        await data_service.update_player_ranking(db_session, 999, season["id"], 5)


@pytest.mark.asyncio
async def test_update_ranking_by_name(db_session, season, player):
    await data_service.add_player_to_season(db_session, player["id"], season["id"])
    ranking = await data_service.update_ranking_by_name(db_session, season["id"], "CAL LITTLE", "7.5")
    assert ranking["rank"] == 7.5
    assert ranking["player_name"] == "Cal Little"

    with pytest.raises(data_service.NotFoundError, match="Player not found"):
        await data_service.update_ranking_by_name(db_session, season["id"], "Nobody", 5)


@pytest.mark.asyncio
async def test_remove_player_from_season(db_session, season, player):
    await data_service.add_player_to_season(db_session, player["id"], season["id"])
    assert await data_service.remove_player_from_season(db_session, player["id"], season["id"]) is True
    assert await data_service.remove_player_from_season(db_session, player["id"], season["id"]) is False


@pytest.mark.asyncio
async def test_import_season_rankings(db_session, season):
    added = await data_service.create_player(db_session, "Added")
    unranked = await data_service.create_player(db_session, "Unranked", season_id=season["id"])
    same = await data_service.create_player(db_session, "Same", season_id=season["id"])
    conflict = await data_service.create_player(db_session, "Conflict", season_id=season["id"])
    await data_service.update_player_ranking(db_session, same["id"], season["id"], 7.5)
    await data_service.update_player_ranking(db_session, conflict["id"], season["id"], 6)

    result = await data_service.import_season_rankings(
        db_session,
        season["id"],
        [
            {"name": "added", "rank": 8},
            {"name": "Unranked", "rank": 5.5},
            {"name": "Same", "rank": 7.5},
            {"name": "Conflict", "rank": 9},
            {"name": "Ghost", "rank": 4},
            {"name": "Added", "rank": 12},
        ],
    )

    actions = [r["action"] for r in result["results"]]
    assert actions == [
        "added_to_season",
        "updated_ranking",
        "ranking_unchanged",
        "ranking_conflict",
        "player_not_found",
        "invalid_rank",
    ]
    assert result["success_count"] == 2
    assert result["total_count"] == 6
    assert result["message"] == "Successfully processed 2 out of 6 players"
    assert result["results"][3]["current_rank"] == 6.0

    detail = await data_service.get_season_with_players(db_session, season["id"])
    ranks = {p["player"]["id"]: p["rank"] for p in detail["players"]}
    assert ranks == {added["id"]: 8.0, unranked["id"]: 5.5, same["id"]: 7.5, conflict["id"]: 6.0}


@pytest.mark.asyncio
async def test_import_reports_parse_errors_and_failures(db_session, season, monkeypatch):
    await data_service.create_player(db_session, "Cal Little")

    result = await data_service.import_season_rankings(
        db_session,
        season["id"],
        [{"name": "Row 1", "rank": 5.0, "error": 'Invalid data: name="", rank="5"'}],
    )
    assert result["results"] == [
        {
            "name": "Row 1",
            "rank": 5.0,
            "success": False,
            "action": "invalid_row",
            "error": 'Invalid data: name="", rank="5"',
        }
    ]
    assert result["success_count"] == 0

    async def broken_row(session, season_id, name, rank):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(data_service, "_import_row", broken_row)
    result = await data_service.import_season_rankings(db_session, season["id"], [{"name": "Cal Little", "rank": 7}])
    assert result["results"][0]["action"] == "error"
    assert result["results"][0]["error"] == "connection reset"
    assert result["success_count"] == 0


@pytest.mark.asyncio
async def test_import_season_rankings_errors(db_session, season):
    with pytest.raises(ValueError):
        await data_service.import_season_rankings(db_session, season["id"], [])
    with pytest.raises(data_service.NotFoundError):
        await data_service.import_season_rankings(db_session, 999, [{"name": "A", "rank": 5}])


# ============================================================================
# Statistics
# ============================================================================

@pytest.mark.asyncio
async def test_player_and_season_statistics(db_session):
    summer = await data_service.create_season(db_session, "Summer 2024")
    fall = await data_service.create_season(db_session, "Fall 2024")
    a = await data_service.create_player(db_session, "A", season_id=summer["id"])
    b = await data_service.create_player(db_session, "B", season_id=summer["id"])
    c = await data_service.create_player(db_session, "C")
    await data_service.bulk_update_player_gender(db_session, [a["id"], b["id"]], "MALE")
    await data_service.update_player_gender(db_session, c["id"], "FEMALE")
    await data_service.add_player_to_season(db_session, b["id"], fall["id"])
    await data_service.update_player_ranking(db_session, a["id"], summer["id"], 8)
    await data_service.update_player_ranking(db_session, b["id"], summer["id"], 6)
    await data_service.update_player_ranking(db_session, b["id"], fall["id"], 4)

    overall = await data_service.get_player_statistics(db_session)
    assert overall["statistics"]["male"]["average_rating"] == 6.5
    assert overall["statistics"]["female"]["average_rating"] is None
    assert overall["statistics"]["female"]["percentage"] == 33.33
    assert overall["counts"]["all"] == 3

    males = await data_service.get_player_statistics(db_session, "male")
    assert males["statistics"] == overall["statistics"]
    assert males["statistics"]["total_players"] == 3
    assert males["statistics"]["male"]["percentage"] == 66.67
    assert males["counts"]["all"] == 3
    assert [p["name"] for p in males["players"]] == ["A", "B"]

    with pytest.raises(ValueError):
        await data_service.get_player_statistics(db_session, "everyone")

    summer_stats = await data_service.get_season_statistics(db_session, summer["id"])
    assert summer_stats["statistics"]["male"]["average_rating"] == 7.0
    assert summer_stats["statistics"]["total_players"] == 2
    assert await data_service.get_season_statistics(db_session, 999) is None


@pytest.mark.asyncio
async def test_get_player_trend(db_session, player):
    for name, rank in (("Winter 2024", None), ("Summer 2024", 6), ("Fall 2024", 8)):
        season = await data_service.create_season(db_session, name)
        await data_service.add_player_to_season(db_session, player["id"], season["id"])
        if rank is not None:
            await data_service.update_player_ranking(db_session, player["id"], season["id"], rank)

    trend = await data_service.get_player_trend(db_session, player["id"])
    assert trend["player"]["name"] == "Cal Little"
    assert [s["season"]["name"] for s in trend["seasons"]] == ["Fall 2024", "Summer 2024", "Winter 2024"]
    assert trend["stats"]["average_rating"] == 7.0
    assert trend["stats"]["rating_change"] == 2.0
    assert trend["stats"]["first_season"] == "Winter 2024"
    assert trend["rating_change_display"] == {"text": "+2", "tone": "positive"}
    assert trend["average_change_display"] == {"text": "+2/season", "tone": "positive"}

    assert await data_service.get_player_trend(db_session, 999) is None


# ============================================================================
# Settings
# ============================================================================

@pytest.mark.asyncio
async def test_settings_round_trip(db_session):
    assert await data_service.get_setting(db_session, "log_level") is None
    await data_service.set_setting(db_session, "log_level", "DEBUG")
    await data_service.set_setting(db_session, "log_level", "WARNING")
    assert await data_service.get_setting(db_session, "log_level") == "WARNING"


@pytest.mark.asyncio
async def test_player_name_index_blocks_case_variants(db_session, player):
    """The database enforces uniqueness even when the service check is bypassed."""
    db_session.add(Player(name="CAL LITTLE"))
    with pytest.raises(Exception):
        await db_session.commit()
    await db_session.rollback()
