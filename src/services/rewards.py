# src/services/rewards.py
from __future__ import annotations

import datetime as dt
import json
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from src.config.clock import today_local
from src.models.reward import UnlockedAchievement, WriterProfile, XpTransaction
from src.models.task_record import RecordStatus, TaskRecord

logger = logging.getLogger(__name__)

XP_PER_LEVEL = 200

# xp_amount 가 따로 안 넘어왔을 때 이벤트별 기본 XP
DEFAULT_EVENT_XP = {
    "inkdot_complete": 10,
    "inkline_complete": 30,
    "inkchapter_complete": 100,
    "daily_challenge": 50,
}

# (code, title, event, 조건)
ACHIEVEMENTS = [
    ("first_task", "First Drop of Ink", "task_complete"),
    ("ten_tasks", "Ten Exercises", "task_complete"),
    ("high_score", "Top Marks", "score_received"),
    ("words_1000", "A Thousand Words", "words_update"),
    ("first_daily_challenge", "Challenge Accepted", "daily_challenge_complete"),
    ("category_points_10", "Well Rounded", "attr_update"),
]


@dataclass
class RewardResult:
    xp_awarded: int
    total_xp: int
    level: int
    leveled_up: bool


@dataclass
class StreakResult:
    current_streak: int
    longest_streak: int
    continued: bool


class LedgerRewardService:
    """
    보상 서브시스템 계약 구현 (XP 장부 + 단일 프로필 + 소규모 업적 카탈로그)
    - award_xp / update_streak_status / check_and_unlock_achievements / current_level
    같은 메서드를 가진 객체라면 무엇이든 대체 가능
    """

    def __init__(self, db: Session):
        self.db = db

    def _profile(self) -> WriterProfile:
        profile = self.db.get(WriterProfile, 1)
        if profile is None:
            profile = WriterProfile(id=1, total_xp=0, current_level=1, current_streak=0, longest_streak=0, category_points="{}")
            self.db.add(profile)
            self.db.flush()
        return profile

    def current_level(self) -> int:
        return int(self._profile().current_level)

    def award_xp(
        self,
        event_type: str,
        reference_id: Optional[int],
        *,
        xp_amount: Optional[int] = None,
        category: Optional[str] = None,
        amount: int = 0,
        word_count: int = 0,
        time_spent: int = 0,
        score: Optional[float] = None,
        description: str = "",
    ) -> RewardResult:
        profile = self._profile()
        xp = xp_amount if xp_amount is not None else DEFAULT_EVENT_XP.get(event_type, 0)

        self.db.add(
            XpTransaction(
                event_type=event_type,
                reference_id=reference_id,
                xp_amount=xp,
                skill_category=category,
                category_amount=amount,
                description=description[:255] if description else None,
            )
        )

        if category and amount:
            points = json.loads(profile.category_points or "{}")
            points[category] = int(points.get(category, 0)) + int(amount)
            profile.category_points = json.dumps(points, ensure_ascii=False)

        before = int(profile.current_level)
        profile.total_xp = int(profile.total_xp) + xp
        profile.current_level = 1 + profile.total_xp // XP_PER_LEVEL
        self.db.commit()

        logger.info("[reward] %s ref=%s xp=%d total=%d", event_type, reference_id, xp, profile.total_xp)
        return RewardResult(
            xp_awarded=xp,
            total_xp=int(profile.total_xp),
            level=int(profile.current_level),
            leveled_up=profile.current_level > before,
        )

    def update_streak_status(self, today: Optional[dt.date] = None) -> StreakResult:
        today = today or today_local()
        profile = self._profile()
        last = profile.last_active_date

        continued = False
        if last == today:
            pass
        elif last == today - dt.timedelta(days=1):
            profile.current_streak = int(profile.current_streak) + 1
            continued = True
        else:
            profile.current_streak = 1

        profile.last_active_date = today
        profile.longest_streak = max(int(profile.longest_streak), int(profile.current_streak))
        self.db.commit()
        return StreakResult(
            current_streak=int(profile.current_streak),
            longest_streak=int(profile.longest_streak),
            continued=continued,
        )

    def check_and_unlock_achievements(self, event_type: str, context: Optional[Dict] = None) -> List[Dict]:
        context = context or {}
        unlocked_codes = set(self.db.execute(select(UnlockedAchievement.code)).scalars().all())
        newly: List[Dict] = []

        for code, title, event in ACHIEVEMENTS:
            if event != event_type or code in unlocked_codes:
                continue
            if not self._achievement_met(code, context):
                continue
            self.db.add(UnlockedAchievement(code=code, title=title))
            newly.append({"code": code, "title": title})

        if newly:
            self.db.commit()
            logger.info("[reward] achievements unlocked: %s", [a["code"] for a in newly])
        return newly

    def _achievement_met(self, code: str, context: Dict) -> bool:
        if code == "first_task":
            return self._completed_count() >= 1
        if code == "ten_tasks":
            return self._completed_count() >= 10
        if code == "high_score":
            return float(context.get("score") or 0) >= 90
        if code == "words_1000":
            total = self.db.execute(
                select(func.coalesce(func.sum(TaskRecord.word_count), 0))
                .where(TaskRecord.status == RecordStatus.completed.value)
            ).scalar_one()
            return int(total) >= 1000
        if code == "first_daily_challenge":
            return True
        if code == "category_points_10":
            points = json.loads(self._profile().category_points or "{}")
            return any(int(v) >= 10 for v in points.values())
        return False

    def _completed_count(self) -> int:
        return int(
            self.db.execute(
                select(func.count(TaskRecord.id)).where(TaskRecord.status == RecordStatus.completed.value)
            ).scalar_one()
        )
