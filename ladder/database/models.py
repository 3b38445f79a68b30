"""
SQLAlchemy ORM models for the ladder rankings system.
"""

import enum
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Numeric,
    DateTime,
    Enum,
    ForeignKey,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ladder.database.db import Base


class Role(str, enum.Enum):
    """User role. Order matters: see auth_service.ROLE_HIERARCHY."""

    USER = "USER"
    ORGANIZER = "ORGANIZER"
    ADMIN = "ADMIN"


class Gender(str, enum.Enum):
    """Player gender enum."""

    MALE = "MALE"
    FEMALE = "FEMALE"
    NON_BINARY = "NON_BINARY"


class User(Base):
    """Accounts that can sign in and manage the ladder."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=True)
    email = Column(String, nullable=False, unique=True)
    role = Column(Enum(Role, name="user_role"), nullable=False, default=Role.USER)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    api_tokens = relationship("ApiToken", back_populates="user", cascade="all, delete-orphan")

    __table_args__ = (Index("idx_users_email", "email"),)


class ApiToken(Base):
    """Bearer tokens. Only the sha256 of the token is stored."""

    __tablename__ = "api_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token_hash = Column(String(64), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_used_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    user = relationship("User", back_populates="api_tokens")

    __table_args__ = (Index("idx_api_tokens_user_id", "user_id"),)


class Player(Base):
    """Player profiles. Names are unique ignoring case."""

    __tablename__ = "players"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    gender = Column(Enum(Gender, name="player_gender"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    seasons = relationship("SeasonRanking", back_populates="player")

    __table_args__ = (Index("uq_players_name_lower", func.lower(name), unique=True),)


class Season(Base):
    """Competition periods, named "<SubSeason> <Year>" (e.g. "Summer 2025")."""

    __tablename__ = "seasons"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    players = relationship("SeasonRanking", back_populates="season")

    __table_args__ = (Index("uq_seasons_name_lower", func.lower(name), unique=True),)


class SeasonRanking(Base):
    """A player's participation in a season. rank is NULL until the player is rated."""

    __tablename__ = "season_rankings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    season_id = Column(Integer, ForeignKey("seasons.id", ondelete="CASCADE"), nullable=False)
    player_id = Column(Integer, ForeignKey("players.id", ondelete="CASCADE"), nullable=False)
    rank = Column(Numeric(4, 2), nullable=True)  # 1.00 - 10.00
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    season = relationship("Season", back_populates="players")
    player = relationship("Player", back_populates="seasons")

    __table_args__ = (
        UniqueConstraint("season_id", "player_id", name="uq_season_rankings_season_player"),
        Index("idx_season_rankings_player_id", "player_id"),
    )


class Setting(Base):
    """Key/value application settings."""

    __tablename__ = "settings"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
