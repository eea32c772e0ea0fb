# src/services/challenges.py
from __future__ import annotations

import datetime as dt
import json
import logging
import math
import random
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.config.clock import now_local, week_bounds
from src.db.database import transaction
from src.models.challenge import DailyChallenge, WeeklyChallenge, WeeklySubmission
from src.models.task_template import TaskKind, TaskTemplate
from src.services.errors import NotFound, ValidationFailed
from src.services.task_drafts import count_words

logger = logging.getLogger(__name__)

SCORE_THRESHOLD = 80
FALLBACK_SCORE = 70

# 일일 챌린지 유형
DAILY_ARCHETYPES = [
    {"type": "task_count", "title": "Inkdot Adept", "description": "Complete {n} inkdot tasks today", "target": 3, "xp": 50},
    {"type": "word_count", "title": "Steady Brush", "description": "Write {n} words today", "target": 500, "xp": 50},
    {"type": "inkline_complete", "title": "Inkline Challenge", "description": "Complete {n} inkline task(s) today", "target": 1, "xp": 60},
    {"type": "score_above", "title": "Pursuit of Quality", "description": "Earn a review score of 80 or above", "target": 1, "xp": 70},
]

# 이벤트 → 챌린지 유형
EVENT_TO_ARCHETYPE = {
    "task_complete": "task_count",
    "inkdot_complete": "task_count",
    "inkline_complete": "inkline_complete",
    "word_added": "word_count",
    "score_received": "score_above",
}


def scaled_target(base_target: int, level: int, archetype: str) -> int:
    # score_above 는 진행도가 0/1 이라 목표도 1 고정
    if archetype == "score_above":
        return 1
    multiplier = 1 + 0.1 * (max(1, level) - 1)
    return math.ceil(round(base_target * multiplier, 6))


@dataclass
class WeeklyView:
    challenge: WeeklyChallenge
    submission: Optional[WeeklySubmission]

    @property
    def has_submission(self) -> bool:
        return self.submission is not None

    @property
    def is_completed(self) -> bool:
        return self.submission is not None and self.submission.status == "completed"


class ChallengeTracker:
    def __init__(self, db: Session, rewards, rng: Optional[random.Random] = None, evaluator=None):
        self.db = db
        self.rewards = rewards
        self.rng = rng or random.Random()
        self.evaluator = evaluator

    # --------------------- daily ---------------------
    def get_daily_challenge(self, day: dt.date) -> DailyChallenge:
        challenge = self.db.execute(
            select(DailyChallenge).where(DailyChallenge.challenge_date == day)
        ).scalars().first()
        if challenge is None:
            challenge = self._create_daily_challenge(day)
        return challenge

    def _create_daily_challenge(self, day: dt.date) -> DailyChallenge:
        selected = self.rng.choice(DAILY_ARCHETYPES)
        level = self.rewards.current_level()
        target = scaled_target(selected["target"], level, selected["type"])

        challenge = DailyChallenge(
            challenge_date=day,
            challenge_type=selected["type"],
            title=selected["title"],
            description=selected["description"].replace("{n}", str(target)),
            target_value=target,
            current_value=0,
            xp_reward=selected["xp"],
            is_completed=False,
        )
        with transaction(self.db):
            self.db.add(challenge)
        logger.info("[challenge] daily created date=%s type=%s target=%d", day, challenge.challenge_type, target)
        return challenge

    def update_progress(self, event_type: str, value: float = 1, *, day: dt.date) -> Optional[DailyChallenge]:
        # 미완료 챌린지만 조회 → 완료 후 재완료 불가
        challenge = self.db.execute(
            select(DailyChallenge).where(
                DailyChallenge.challenge_date == day,
                DailyChallenge.is_completed.is_(False),
            )
        ).scalars().first()
        if challenge is None:
            return None
        if EVENT_TO_ARCHETYPE.get(event_type) != challenge.challenge_type:
            return None

        new_value = int(challenge.current_value)
        if challenge.challenge_type == "word_count":
            new_value += int(value)
        elif challenge.challenge_type == "score_above":
            if value >= SCORE_THRESHOLD:
                new_value = 1
        else:
            new_value += 1

        completed = new_value >= challenge.target_value
        with transaction(self.db):
            challenge.current_value = new_value
            if completed:
                challenge.is_completed = True
                challenge.completed_at = now_local()

        if completed:
            logger.info("[challenge] daily completed id=%s", challenge.id)
            try:
                self.rewards.award_xp(
                    "daily_challenge",
                    challenge.id,
                    xp_amount=challenge.xp_reward,
                    description=f"Completed daily challenge: {challenge.title}",
                )
            except Exception:
                # 완료는 이미 커밋됨 → 재지급 대조용으로 id/xp 남김
                logger.exception(
                    "[challenge] daily reward failed challenge_id=%s date=%s xp=%d",
                    challenge.id, challenge.challenge_date, challenge.xp_reward,
                )
            try:
                self.rewards.check_and_unlock_achievements("daily_challenge_complete", {})
            except Exception:
                logger.exception("[challenge] achievement check failed")
        return challenge

    # --------------------- weekly ---------------------
    def get_weekly_challenge(self, day: dt.date) -> Optional[WeeklyView]:
        week_start, week_end = week_bounds(day)
        challenge = self.db.execute(
            select(WeeklyChallenge).where(
                WeeklyChallenge.week_start == week_start,
                WeeklyChallenge.is_active.is_(True),
            )
        ).scalars().first()

        if challenge is None:
            templates = self.db.execute(
                select(TaskTemplate)
                .where(TaskTemplate.kind == TaskKind.inkchapter.value, TaskTemplate.is_active.is_(True))
                .order_by(TaskTemplate.id.asc())
            ).scalars().all()
            if not templates:
                return None
            template = self.rng.choice(templates)
            challenge = WeeklyChallenge(
                week_start=week_start,
                week_end=week_end,
                template_id=template.id,
                title=template.title,
                theme=template.tags or "general",
                description=template.description,
                requirements=template.requirements,
                skill_category=template.skill_category,
                word_limit_min=template.word_limit_min,
                word_limit_max=template.word_limit_max,
                xp_reward=template.xp_reward,
            )
            with transaction(self.db):
                self.db.add(challenge)
            logger.info("[challenge] weekly created week_start=%s template=%s", week_start, template.code)

        submission = self.db.execute(
            select(WeeklySubmission).where(WeeklySubmission.challenge_id == challenge.id)
        ).scalars().first()
        return WeeklyView(challenge=challenge, submission=submission)

    def _weekly_submission_for_write(self, day: dt.date) -> tuple[WeeklyChallenge, WeeklySubmission]:
        view = self.get_weekly_challenge(day)
        if view is None:
            raise NotFound("no weekly challenge available")
        if view.is_completed:
            raise ValidationFailed("this week's challenge is already completed")
        submission = view.submission
        if submission is None:
            submission = WeeklySubmission(challenge_id=view.challenge.id, status="draft")
            self.db.add(submission)
        return view.challenge, submission

    def save_weekly_draft(self, content: str, time_spent: int = 0, *, day: dt.date) -> WeeklySubmission:
        with transaction(self.db):
            _, submission = self._weekly_submission_for_write(day)
            submission.content = content
            submission.word_count = count_words(content)
            submission.time_spent = int(time_spent or 0)
        return submission

    def submit_weekly(self, content: str, time_spent: int = 0, *, day: dt.date) -> dict:
        with transaction(self.db):
            challenge, submission = self._weekly_submission_for_write(day)
            submission.content = content
            submission.word_count = count_words(content)
            submission.time_spent = int(time_spent or 0)
            submission.status = "submitted"
            submission.submitted_at = now_local()

        feedback = None
        score = float(FALLBACK_SCORE)
        if self.evaluator is None:
            logger.warning("[challenge] no evaluator configured, fallback score applied")
        else:
            try:
                evaluation = self.evaluator.evaluate_weekly(
                    title=challenge.title,
                    theme=challenge.theme,
                    description=challenge.description,
                    requirements=challenge.requirements,
                    content=content,
                    word_count=submission.word_count,
                )
                score = float(evaluation.score)
                feedback = evaluation.model_dump()
            except Exception:
                logger.exception("[challenge] weekly evaluation failed, fallback score applied")

        with transaction(self.db):
            submission.score = score
            submission.ai_feedback = json.dumps(feedback, ensure_ascii=False) if feedback else None
            submission.status = "completed"
            challenge.is_completed = True
            challenge.completed_at = now_local()

        reward = None
        try:
            reward = self.rewards.award_xp(
                "inkchapter_complete",
                submission.id,
                xp_amount=challenge.xp_reward,
                category=challenge.skill_category,
                word_count=submission.word_count,
                time_spent=submission.time_spent,
                score=score,
                description=f"Completed weekly challenge: {challenge.title}",
            )
            with transaction(self.db):
                submission.xp_earned = reward.xp_awarded
        except Exception:
            logger.exception("[challenge] weekly reward failed submission=%s", submission.id)

        return {"challenge": challenge, "submission": submission, "reward": reward, "feedback": feedback}
