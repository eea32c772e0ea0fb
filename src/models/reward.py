from __future__ import annotations

import datetime as dt
from typing import Optional

from sqlalchemy import Date, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.config.clock import now_local
from src.db.database import Base


class WriterProfile(Base):
    """단일 사용자 프로필 (id=1 고정)"""
    __tablename__ = "writer_profile"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    total_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_active_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)

    # 카테고리 포인트: {"character": 3, ...} JSON 문자열
    category_points: Mapped[str] = mapped_column(Text, nullable=False, default="{}")


class XpTransaction(Base):
    __tablename__ = "xp_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    reference_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    xp_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    skill_category: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    category_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, default=now_local)

    __table_args__ = (
        Index("idx_xp_transactions_created", "created_at"),
    )


class UnlockedAchievement(Base):
    __tablename__ = "unlocked_achievements"

    code: Mapped[str] = mapped_column(String(50), primary_key=True)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    unlocked_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, default=now_local)
