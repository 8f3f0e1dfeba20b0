"""SQLAlchemy ORM models backing the local game library."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import BigInteger, DateTime, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base
from .utils import utc_now


class FavoriteGame(Base):
    """A game the user marked as favorite."""

    __tablename__ = "favorite_games"

    game_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(255), default="")
    payload: Mapped[dict[str, Any]] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)


class RecentGame(Base):
    """A recently played game; ordered by ``last_played``."""

    __tablename__ = "recent_games"

    game_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(255), default="")
    payload: Mapped[dict[str, Any]] = mapped_column(JSON)
    last_played: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
