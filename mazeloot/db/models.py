"""SQLAlchemy declarative base and player save table."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import JSON


class Base(DeclarativeBase):
    """Base class for all database models."""


class PlayerSaveModel(Base):
    """ORM model for persisted player economy data.

    통화, 성장 카운터, 영구 등급 아이템만 저장한다.
    일반 인벤토리는 세션과 함께 사라진다.
    """

    __tablename__ = "player_saves"

    player_key: Mapped[str] = mapped_column(String, primary_key=True)
    balance: Mapped[int] = mapped_column(Integer, default=0)
    xp: Mapped[int] = mapped_column(Integer, default=0)
    level: Mapped[int] = mapped_column(Integer, default=1)
    prestige: Mapped[int] = mapped_column(Integer, default=0)
    total_runs: Mapped[int] = mapped_column(Integer, default=0)
    # [{unique_id, item_id, display_name, rarity, value, is_follower}, ...]
    legendary_items: Mapped[list] = mapped_column(JSON, default=list)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
