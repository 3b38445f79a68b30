"""
Pydantic models for API request/response validation.
"""

from typing import Optional, List, Literal, Union
from pydantic import BaseModel, ConfigDict, Field

RoleValue = Literal["USER", "ORGANIZER", "ADMIN"]

# Ranks arrive as JSON numbers or numeric strings and are validated in the service layer
RankInput = Union[float, int, str, None]


class PlayerCreate(BaseModel):
    """Request to create a player, optionally straight into a season."""

    name: str
    season_id: Optional[int] = Field(default=None, alias="seasonId")

    model_config = ConfigDict(populate_by_name=True)


class PlayerGenderUpdate(BaseModel):
    gender: Optional[str] = None


class BulkGenderUpdate(BaseModel):
    """Set the same gender on several players."""

    player_ids: List[int] = Field(alias="playerIds")
    gender: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class SeasonCreate(BaseModel):
    name: str


class SeasonUpdate(SeasonCreate):
    pass


class SeasonResponse(BaseModel):
    id: int
    name: str
    player_count: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class SeasonPlayerAdd(BaseModel):
    player_id: int = Field(alias="playerId")

    model_config = ConfigDict(populate_by_name=True)


class RankUpdate(BaseModel):
    rank: RankInput


class RankingUpdateByName(BaseModel):
    """Update a player's rank in a season, player given by name."""

    season_id: int = Field(alias="seasonId")
    player_name: str = Field(alias="playerName")
    rank: RankInput

    model_config = ConfigDict(populate_by_name=True)


class ImportRow(BaseModel):
    name: str
    rank: RankInput = None


class SeasonImport(BaseModel):
    """Import rankings for a season, either as parsed rows or as raw CSV text."""

    season_id: int = Field(alias="seasonId")
    players: Optional[List[ImportRow]] = None
    csv: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class ImportResult(BaseModel):
    name: Optional[str] = None
    rank: RankInput = None
    success: bool
    action: Literal[
        "added_to_season",
        "updated_ranking",
        "ranking_unchanged",
        "ranking_conflict",
        "player_not_found",
        "invalid_rank",
        "invalid_row",
        "error",
    ]
    error: Optional[str] = None
    current_rank: Optional[float] = None


class ImportResponse(BaseModel):
    success: bool
    message: str
    success_count: int
    total_count: int
    results: List[ImportResult]


class GenderStatsResponse(BaseModel):
    average_rating: Optional[float] = None
    player_count: int
    percentage: float


class PlayerStatisticsResponse(BaseModel):
    male: GenderStatsResponse
    female: GenderStatsResponse
    non_binary: GenderStatsResponse
    unspecified: GenderStatsResponse
    total_players: int


class UserResponse(BaseModel):
    id: int
    name: Optional[str] = None
    email: str
    role: RoleValue
    created_at: Optional[str] = None


class UserRoleUpdate(BaseModel):
    user_id: int = Field(alias="userId")
    role: str

    model_config = ConfigDict(populate_by_name=True)


class SettingUpdate(BaseModel):
    value: str
