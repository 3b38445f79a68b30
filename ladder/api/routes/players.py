"""Player route handlers."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ladder.database.db import get_db_session
from ladder.services import data_service
from ladder.api.auth_dependencies import require_organizer
from ladder.api.routes import limiter, MUTATION_RATE_LIMIT
from ladder.models.schemas import BulkGenderUpdate, PlayerCreate, PlayerGenderUpdate
from ladder.utils.gender_stats import GENDER_FILTERS
from ladder.utils.validation import DuplicateNameError

logger = logging.getLogger(__name__)
router = APIRouter()


def _check_gender_filter(gender: str) -> None:
    if gender not in GENDER_FILTERS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid gender filter. Use one of: {', '.join(GENDER_FILTERS)}",
        )


@router.get("/api/players")
async def list_players(gender: str = "all", session: AsyncSession = Depends(get_db_session)):
    """
    List players sorted by name, with their season rankings.

    Query params:
        gender: all | male | female | non-binary | unspecified
    """
    _check_gender_filter(gender)
    try:
        return await data_service.list_players(session, gender)
    except Exception as e:
        logger.error(f"Error loading players: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error loading players: {str(e)}")


@router.post("/api/players", status_code=201)
@limiter.limit(MUTATION_RATE_LIMIT)
async def create_player(
    request: Request,
    payload: PlayerCreate,
    user: dict = Depends(require_organizer),
    session: AsyncSession = Depends(get_db_session),
):
    """Create a player, optionally adding them (unranked) to a season."""
    try:
        player = await data_service.create_player(session, payload.name, season_id=payload.season_id)
        return {**player, "focus_id": player["id"]}
    except DuplicateNameError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except data_service.NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating player: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error creating player: {str(e)}")


@router.get("/api/players/statistics")
async def get_player_statistics(gender: str = "all", session: AsyncSession = Depends(get_db_session)):
    """Average rating, count and share of players per gender."""
    _check_gender_filter(gender)
    try:
        return await data_service.get_player_statistics(session, gender)
    except Exception as e:
        logger.error(f"Error calculating statistics: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error calculating statistics: {str(e)}")


@router.post("/api/players/bulk-update-gender")
@limiter.limit(MUTATION_RATE_LIMIT)
async def bulk_update_gender(
    request: Request,
    payload: BulkGenderUpdate,
    user: dict = Depends(require_organizer),
    session: AsyncSession = Depends(get_db_session),
):
    """Set the same gender (or clear it) on several players."""
    try:
        updated = await data_service.bulk_update_player_gender(session, payload.player_ids, payload.gender)
        return {
            "success": True,
            "updated_count": updated,
            "message": f"Successfully updated {updated} player(s)",
        }
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating player genders: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error updating player genders: {str(e)}")


@router.get("/api/players/{player_id}")
async def get_player(player_id: int, session: AsyncSession = Depends(get_db_session)):
    """Get a player with their season rankings, most recent season first."""
    try:
        player = await data_service.get_player_with_seasons(session, player_id)
        if player is None:
            raise HTTPException(status_code=404, detail="Player not found")
        return player
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error loading player: {str(e)}")


@router.get("/api/players/{player_id}/stats")
async def get_player_stats(player_id: int, session: AsyncSession = Depends(get_db_session)):
    """Rating history statistics for a player."""
    try:
        trend = await data_service.get_player_trend(session, player_id)
        if trend is None:
            raise HTTPException(status_code=404, detail="Player not found")
        return trend
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error calculating player stats: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error calculating player stats: {str(e)}")


@router.patch("/api/players/{player_id}/gender")
@limiter.limit(MUTATION_RATE_LIMIT)
async def update_player_gender(
    request: Request,
    player_id: int,
    payload: PlayerGenderUpdate,
    user: dict = Depends(require_organizer),
    session: AsyncSession = Depends(get_db_session),
):
    """Set or clear a player's gender."""
    try:
        player = await data_service.update_player_gender(session, player_id, payload.gender)
        if player is None:
            raise HTTPException(status_code=404, detail="Player not found")
        return {**player, "focus_id": player["id"]}
    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating player gender: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error updating player gender: {str(e)}")


@router.delete("/api/players/{player_id}")
@limiter.limit(MUTATION_RATE_LIMIT)
async def delete_player(
    request: Request,
    player_id: int,
    user: dict = Depends(require_organizer),
    session: AsyncSession = Depends(get_db_session),
):
    """Delete a player and all of their season rankings."""
    try:
        if not await data_service.delete_player(session, player_id):
            raise HTTPException(status_code=404, detail="Player not found")
        return {"success": True, "message": "Player deleted successfully"}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting player: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error deleting player: {str(e)}")
