# src/models/task_record.py
from __future__ import annotations

import datetime as dt
import enum
from typing import Optional

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.config.clock import now_local
from src.db.database import Base


class RecordStatus(str, enum.Enum):
    draft = "draft"
    submitted = "submitted"
    completed = "completed"


class TaskRecord(Base):
    """
    daily task 하나에 대한 작성 기록
    draft -> submitted -> completed (역방향 없음)
    """
    __tablename__ = "task_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    task_id: Mapped[int] = mapped_column(
        ForeignKey("daily_tasks.id", ondelete="CASCADE"),
        nullable=False,
    )
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=RecordStatus.draft.value)

    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    word_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    time_spent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # seconds

    score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    ai_feedback: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # JSON 문자열

    xp_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    category_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    skill_category: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    submitted_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, default=now_local)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, default=now_local, onupdate=now_local)

    __table_args__ = (
        Index("idx_task_records_task_status", "task_id", "status"),
    )

    task = relationship("DailyTask", back_populates="records", uselist=False)
