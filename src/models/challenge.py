# src/models/challenge.py

import datetime as dt
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.config.clock import now_local
from src.db.database import Base


class DailyChallenge(Base):
    """
    날짜별 챌린지 1개
    - is_completed는 한 번 True가 되면 다시 False로 돌아가지 않음
    """
    __tablename__ = "daily_challenges"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    challenge_date: Mapped[dt.date] = mapped_column(Date, nullable=False, unique=True)
    challenge_type: Mapped[str] = mapped_column(String(30), nullable=False)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(200), nullable=False)

    target_value: Mapped[int] = mapped_column(Integer, nullable=False)
    current_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    xp_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, default=now_local)


class WeeklyChallenge(Base):
    """
    ISO 주(월~일) 단위 장문 챌린지, inkchapter 템플릿에서 생성
    """
    __tablename__ = "weekly_challenges"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    week_start: Mapped[dt.date] = mapped_column(Date, nullable=False, unique=True)
    week_end: Mapped[dt.date] = mapped_column(Date, nullable=False)

    template_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("task_templates.id", ondelete="SET NULL"),
        nullable=True,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    theme: Mapped[str] = mapped_column(String(100), nullable=False, default="general")
    description: Mapped[str] = mapped_column(Text, nullable=False)
    requirements: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    skill_category: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    word_limit_min: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    word_limit_max: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    xp_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=100)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, default=now_local)

    submission: Mapped[Optional["WeeklySubmission"]] = relationship(
        "WeeklySubmission",
        back_populates="challenge",
        uselist=False,
    )


class WeeklySubmission(Base):
    """
    주간 챌린지당 제출물은 최대 1개 (challenge_id 유니크)
    """
    __tablename__ = "weekly_submissions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    challenge_id: Mapped[int] = mapped_column(
        ForeignKey("weekly_challenges.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    word_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    time_spent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    ai_feedback: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    xp_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    submitted_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, default=now_local)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, default=now_local, onupdate=now_local)

    challenge = relationship("WeeklyChallenge", back_populates="submission", uselist=False)
