# src/services/ink_tasks.py
from __future__ import annotations

import datetime as dt
import logging
import random
from typing import Dict, List, Optional

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from mojing_ai.core.evaluator import SubmissionEvaluator
from src.config.clock import now_local, today_local
from src.models.daily_task import DailyTask
from src.models.task_record import RecordStatus, TaskRecord
from src.services.challenges import ChallengeTracker, WeeklyView
from src.services.errors import ValidationFailed
from src.services.generation_policy import GenerationPolicy
from src.services.rewards import LedgerRewardService
from src.services.task_lifecycle import StartResult, SubmitResult, TaskLifecycle
from src.services.task_pool import PoolTask, TaskPoolStore

logger = logging.getLogger(__name__)

KIND_FILTERS = ("all", "inkdot", "inkline")


class InkTaskService:
    """
    HTTP/CLI 경계가 쓰는 단일 진입점
    - 요청마다 세션 하나로 생성
    - text_generator 가 None 이면 AI 생성은 건너뛰고 평가는 기본 점수
    """

    def __init__(
        self,
        db: Session,
        text_generator=None,
        rewards=None,
        rng: Optional[random.Random] = None,
        scheduler=None,
    ):
        self.db = db
        self.rng = rng or random.Random()
        self.rewards = rewards if rewards is not None else LedgerRewardService(db)
        evaluator = SubmissionEvaluator(text_generator) if text_generator is not None else None

        self.store = TaskPoolStore(db)
        self.policy = GenerationPolicy(db, text_generator, self.rng)
        self.challenges = ChallengeTracker(db, self.rewards, self.rng, evaluator)
        self.lifecycle = TaskLifecycle(db, self.rewards, evaluator, self.challenges)
        self.scheduler = scheduler

    # --------------------- 작업 ---------------------
    def get_today_tasks(self, kind: str = "all", day: Optional[dt.date] = None) -> List[PoolTask]:
        if kind not in KIND_FILTERS:
            raise ValidationFailed(f"unknown task kind filter: {kind}")
        return self.store.list_for_date(day or today_local(), kind)

    def start_task(self, task_id: int) -> StartResult:
        return self.lifecycle.start(task_id)

    def save_draft(self, record_id: int, content: str, time_spent: int = 0) -> TaskRecord:
        return self.lifecycle.save_draft(record_id, content, time_spent)

    def submit_task(self, record_id: int, content: str, time_spent: int = 0, day: Optional[dt.date] = None) -> SubmitResult:
        return self.lifecycle.submit(record_id, content, time_spent, day=day or today_local())

    # --------------------- 챌린지 ---------------------
    def get_daily_challenge(self, day: Optional[dt.date] = None):
        return self.challenges.get_daily_challenge(day or today_local())

    def get_weekly_challenge(self, day: Optional[dt.date] = None) -> Optional[WeeklyView]:
        return self.challenges.get_weekly_challenge(day or today_local())

    def save_weekly_draft(self, content: str, time_spent: int = 0, day: Optional[dt.date] = None):
        return self.challenges.save_weekly_draft(content, time_spent, day=day or today_local())

    def submit_weekly(self, content: str, time_spent: int = 0, day: Optional[dt.date] = None) -> Dict:
        return self.challenges.submit_weekly(content, time_spent, day=day or today_local())

    # --------------------- 통계 ---------------------
    def get_task_stats(self, day: Optional[dt.date] = None) -> Dict:
        day = day or today_local()
        completed = case((TaskRecord.status == RecordStatus.completed.value, 1), else_=0)

        today_rows = self.db.execute(
            select(
                TaskRecord.kind,
                func.count(TaskRecord.id),
                func.sum(completed),
                func.sum(TaskRecord.word_count),
                func.avg(TaskRecord.score),
            )
            .join(DailyTask, DailyTask.id == TaskRecord.task_id)
            .where(DailyTask.task_date == day)
            .group_by(TaskRecord.kind)
        ).all()

        total_rows = self.db.execute(
            select(
                TaskRecord.kind,
                func.count(TaskRecord.id),
                func.sum(completed),
                func.sum(TaskRecord.word_count),
                func.avg(TaskRecord.score),
                func.sum(TaskRecord.xp_earned),
            ).group_by(TaskRecord.kind)
        ).all()

        category_rows = self.db.execute(
            select(TaskRecord.skill_category, func.count(TaskRecord.id), func.avg(TaskRecord.score))
            .where(
                TaskRecord.status == RecordStatus.completed.value,
                TaskRecord.skill_category.is_not(None),
            )
            .group_by(TaskRecord.skill_category)
        ).all()

        def _avg(value):
            return round(float(value), 1) if value is not None else None

        return {
            "today": [
                {
                    "kind": kind,
                    "total": int(total),
                    "completed": int(done or 0),
                    "total_words": int(words or 0),
                    "avg_score": _avg(avg),
                }
                for kind, total, done, words, avg in today_rows
            ],
            "total": [
                {
                    "kind": kind,
                    "total": int(total),
                    "completed": int(done or 0),
                    "total_words": int(words or 0),
                    "avg_score": _avg(avg),
                    "total_xp": int(xp or 0),
                }
                for kind, total, done, words, avg, xp in total_rows
            ],
            "categories": [
                {"skill_category": category, "count": int(count), "avg_score": _avg(avg)}
                for category, count, avg in category_rows
            ],
        }

    # --------------------- 생성 / 스케줄러 ---------------------
    def manual_generate(
        self,
        *,
        preset: bool = True,
        ai: bool = False,
        ai_count: int = 3,
        challenge: bool = True,
        day: Optional[dt.date] = None,
        now: Optional[dt.datetime] = None,
    ) -> Dict:
        now = now or now_local()
        day = day or now.date()
        logger.info("[ink_tasks] manual generation preset=%s ai=%s ai_count=%s", preset, ai, ai_count)

        results = self.policy.manual_generate(day=day, preset=preset, ai=ai, ai_count=ai_count, now=now)
        if challenge:
            results["challenge"] = self.challenges.get_daily_challenge(day)
        return results

    def get_scheduler_status(self, day: Optional[dt.date] = None) -> Dict:
        day = day or today_local()
        status = {
            "is_running": False,
            "jobs": {},
            "last_tick": None,
        }
        if self.scheduler is not None:
            status.update(self.scheduler.status())
        status["today_tasks"] = self.store.counts_by_source_and_kind(day)
        status["last_ai_generation"] = self.store.last_ai_generation_at()
        return status
