# src/models/daily_task.py
from __future__ import annotations

import datetime as dt
import enum
from typing import List, Optional

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.config.clock import now_local
from src.db.database import Base


class TaskSource(str, enum.Enum):
    preset = "preset"
    ai_generated = "ai_generated"


class DailyTask(Base):
    __tablename__ = "daily_tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    task_date: Mapped[dt.date] = mapped_column(Date, nullable=False)

    template_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("task_templates.id", ondelete="SET NULL"),
        nullable=True,
    )

    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    requirements: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    prompt_kind: Mapped[str] = mapped_column(String(20), nullable=False, default="normal")

    time_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    word_limit_min: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    word_limit_max: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    skill_category: Mapped[str] = mapped_column(String(20), nullable=False)
    xp_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    category_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    difficulty: Mapped[str] = mapped_column(String(20), nullable=False, default="normal")

    source: Mapped[str] = mapped_column(String(20), nullable=False)
    fingerprint: Mapped[str] = mapped_column(String(16), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # claimed / completed 는 lifecycle 에서 한 번씩만 True 로 바뀜
    is_claimed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, default=now_local)

    __table_args__ = (
        Index("idx_daily_tasks_date_source", "task_date", "source"),
        Index("idx_daily_tasks_date_kind", "task_date", "kind"),
        Index("idx_daily_tasks_fingerprint", "task_date", "fingerprint"),
    )

    template = relationship("TaskTemplate", uselist=False)
    records: Mapped[List["TaskRecord"]] = relationship(
        "TaskRecord",
        back_populates="task",
        order_by="TaskRecord.id",
    )


# 날짜별 preset 생성 시도 기록 (템플릿이 없거나 전부 중복이어도 남김 → 하루 1회 보장)
class PresetRun(Base):
    __tablename__ = "preset_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    run_date: Mapped[dt.date] = mapped_column(Date, nullable=False, unique=True)
    generated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, default=now_local)
