"""Season, season ranking and import route handlers."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ladder.database.db import get_db_session
from ladder.services import data_service
from ladder.api.auth_dependencies import require_organizer
from ladder.api.routes import limiter, MUTATION_RATE_LIMIT
from ladder.models.schemas import (
    ImportResponse,
    PlayerStatisticsResponse,
    RankingUpdateByName,
    RankUpdate,
    SeasonCreate,
    SeasonImport,
    SeasonPlayerAdd,
    SeasonResponse,
    SeasonUpdate,
)
from ladder.utils.csv_import import parse_rankings_csv
from ladder.utils.table_sorting import ASC, DESC, PLAYER_SORT_FIELDS, SortState
from ladder.utils.validation import DuplicateNameError

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/seasons", response_model=List[SeasonResponse])
async def list_seasons(session: AsyncSession = Depends(get_db_session)):
    """List seasons, most recent first."""
    try:
        return await data_service.list_seasons(session)
    except Exception as e:
        logger.error(f"Error loading seasons: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error loading seasons: {str(e)}")


@router.post("/api/seasons", status_code=201)
@limiter.limit(MUTATION_RATE_LIMIT)
async def create_season(
    request: Request,
    payload: SeasonCreate,
    user: dict = Depends(require_organizer),
    session: AsyncSession = Depends(get_db_session),
):
    """Create a season. Body: {name: "Summer 2025"}"""
    try:
        season = await data_service.create_season(session, payload.name)
        return {**season, "focus_id": season["id"]}
    except DuplicateNameError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating season: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error creating season: {str(e)}")


@router.post("/api/seasons/update-ranking")
@limiter.limit(MUTATION_RATE_LIMIT)
async def update_ranking(
    request: Request,
    payload: RankingUpdateByName,
    user: dict = Depends(require_organizer),
    session: AsyncSession = Depends(get_db_session),
):
    """Set a player's rank in a season, player given by name."""
    try:
        ranking = await data_service.update_ranking_by_name(
            session, payload.season_id, payload.player_name, payload.rank
        )
        return {**ranking, "focus_id": ranking["player_id"]}
    except data_service.NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating ranking: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error updating ranking: {str(e)}")


@router.post("/api/seasons/import-csv", response_model=ImportResponse)
@limiter.limit(MUTATION_RATE_LIMIT)
async def import_csv(
    request: Request,
    payload: SeasonImport,
    user: dict = Depends(require_organizer),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Import rankings into a season.
    Body: {
        season_id: int,
        players?: [{name: str, rank: number}],
        csv?: str (raw "name,rank" text, header optional)
    }
    Existing ranks that differ from the imported one are reported as
    conflicts and left alone.
    """
    if payload.players:
        rows = [row.model_dump() for row in payload.players]
    elif payload.csv:
        rows = [{"name": row.name, "rank": row.rank, "error": row.error} for row in parse_rankings_csv(payload.csv)]
    else:
        rows = []

    try:
        return await data_service.import_season_rankings(session, payload.season_id, rows)
    except data_service.NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error importing CSV: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error importing CSV: {str(e)}")


@router.get("/api/seasons/{season_id}")
async def get_season(
    season_id: int,
    sort: str = "name",
    direction: str = ASC,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Get a season with its players.

    Query params:
        sort: name | rank
        direction: asc | desc (unranked players are always listed last)
    """
    if sort not in PLAYER_SORT_FIELDS or direction not in (ASC, DESC):
        raise HTTPException(status_code=400, detail="Invalid sort parameters")

    try:
        season = await data_service.get_season_with_players(
            session, season_id, SortState(field=sort, direction=direction)
        )
        if season is None:
            raise HTTPException(status_code=404, detail="Season not found")
        return season
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error loading season: {str(e)}")


@router.put("/api/seasons/{season_id}")
@limiter.limit(MUTATION_RATE_LIMIT)
async def update_season(
    request: Request,
    season_id: int,
    payload: SeasonUpdate,
    user: dict = Depends(require_organizer),
    session: AsyncSession = Depends(get_db_session),
):
    """Rename a season."""
    try:
        season = await data_service.update_season(session, season_id, payload.name)
        if season is None:
            raise HTTPException(status_code=404, detail="Season not found")
        return {**season, "focus_id": season["id"]}
    except HTTPException:
        raise
    except DuplicateNameError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating season: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error updating season: {str(e)}")


@router.delete("/api/seasons/{season_id}")
@limiter.limit(MUTATION_RATE_LIMIT)
async def delete_season(
    request: Request,
    season_id: int,
    user: dict = Depends(require_organizer),
    session: AsyncSession = Depends(get_db_session),
):
    """Delete a season and its rankings."""
    try:
        if not await data_service.delete_season(session, season_id):
            raise HTTPException(status_code=404, detail="Season not found")
        return {"success": True, "message": "Season deleted successfully"}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting season: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error deleting season: {str(e)}")


@router.get("/api/seasons/{season_id}/statistics")
async def get_season_statistics(season_id: int, session: AsyncSession = Depends(get_db_session)):
    """Gender statistics for the players of one season."""
    try:
        stats = await data_service.get_season_statistics(session, season_id)
        if stats is None:
            raise HTTPException(status_code=404, detail="Season not found")
        stats["statistics"] = PlayerStatisticsResponse(**stats["statistics"]).model_dump()
        return stats
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error calculating season statistics: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error calculating season statistics: {str(e)}")


@router.post("/api/seasons/{season_id}/players", status_code=201)
@limiter.limit(MUTATION_RATE_LIMIT)
async def add_player_to_season(
    request: Request,
    season_id: int,
    payload: SeasonPlayerAdd,
    user: dict = Depends(require_organizer),
    session: AsyncSession = Depends(get_db_session),
):
    """Add an existing player to a season without a rank."""
    try:
        ranking = await data_service.add_player_to_season(session, payload.player_id, season_id)
        return {**ranking, "focus_id": payload.player_id}
    except data_service.NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error adding player to season: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error adding player to season: {str(e)}")


@router.delete("/api/seasons/{season_id}/players/{player_id}")
@limiter.limit(MUTATION_RATE_LIMIT)
async def remove_player_from_season(
    request: Request,
    season_id: int,
    player_id: int,
    user: dict = Depends(require_organizer),
    session: AsyncSession = Depends(get_db_session),
):
    """Remove a player from a season."""
    try:
        if not await data_service.remove_player_from_season(session, player_id, season_id):
            raise HTTPException(status_code=404, detail="Player is not in this season")
        return {"success": True, "message": "Player removed from season"}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error removing player from season: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error removing player from season: {str(e)}")


@router.put("/api/seasons/{season_id}/players/{player_id}/rank")
@limiter.limit(MUTATION_RATE_LIMIT)
async def update_player_rank(
    request: Request,
    season_id: int,
    player_id: int,
    payload: RankUpdate,
    user: dict = Depends(require_organizer),
    session: AsyncSession = Depends(get_db_session),
):
    """Set a player's rank in a season (1-10, up to 2 decimal places)."""
    try:
        ranking = await data_service.update_player_ranking(session, player_id, season_id, payload.rank)
        return {**ranking, "focus_id": player_id}
    except data_service.NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating rank: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error updating rank: {str(e)}")
