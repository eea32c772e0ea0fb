# src/models/task_template.py
from __future__ import annotations

import datetime as dt
import enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.config.clock import now_local
from src.db.database import Base


class TaskKind(str, enum.Enum):
    inkdot = "inkdot"          # 짧은 드릴
    inkline = "inkline"        # 중간 길이 연습
    inkchapter = "inkchapter"  # 주간 장문 챌린지


class SkillCategory(str, enum.Enum):
    character = "character"
    conflict = "conflict"
    scene = "scene"
    dialogue = "dialogue"
    rhythm = "rhythm"
    style = "style"


class PromptKind(str, enum.Enum):
    normal = "normal"
    polish = "polish"
    continue_ = "continue"


class TaskTemplate(Base):
    """
    작업 풀의 정적 시드.
    엔진은 use_count 외에는 절대 수정하지 않는다.
    """
    __tablename__ = "task_templates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    requirements: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # 고정된 prompt kind (없으면 주사위)
    prompt_kind: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    skill_category: Mapped[str] = mapped_column(String(20), nullable=False)
    time_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # seconds
    word_limit_min: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    word_limit_max: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    xp_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    category_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    difficulty: Mapped[str] = mapped_column(String(20), nullable=False, default="normal")
    tags: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    use_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, default=now_local)

    __table_args__ = (
        Index("idx_templates_kind_active", "kind", "is_active"),
    )
