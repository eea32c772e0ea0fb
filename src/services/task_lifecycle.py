# src/services/task_lifecycle.py
from __future__ import annotations

import datetime as dt
import json
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.config.clock import now_local, today_local
from src.db.database import transaction
from src.models.daily_task import DailyTask
from src.models.task_record import RecordStatus, TaskRecord
from src.services.challenges import FALLBACK_SCORE, SCORE_THRESHOLD
from src.services.errors import NotFound, ValidationFailed
from src.services.task_drafts import KIND_SETTINGS, count_words

logger = logging.getLogger(__name__)


@dataclass
class StartResult:
    record: TaskRecord
    task: DailyTask
    is_resume: bool


@dataclass
class SubmitResult:
    record: TaskRecord
    task: DailyTask
    reward: Optional[object]
    streak: Optional[object]
    new_achievements: List[Dict] = field(default_factory=list)
    feedback: Optional[Dict] = None
    evaluated: bool = False


class TaskLifecycle:
    """
    작업 기록 상태 머신: draft -> submitted -> completed
    - 평가 실패는 실패가 아님: 기본 점수로 completed 까지 간다
    """

    def __init__(self, db: Session, rewards, evaluator=None, challenges=None):
        self.db = db
        self.rewards = rewards
        self.evaluator = evaluator
        self.challenges = challenges

    def _get_record(self, record_id: int) -> TaskRecord:
        record = self.db.get(TaskRecord, record_id)
        if record is None:
            raise NotFound(f"task record {record_id} not found")
        return record

    def start(self, task_id: int) -> StartResult:
        task = self.db.get(DailyTask, task_id)
        if task is None:
            raise NotFound(f"task {task_id} not found")

        # 미완료 기록이 있으면 이어서 작성
        existing = self.db.execute(
            select(TaskRecord)
            .where(TaskRecord.task_id == task_id, TaskRecord.status != RecordStatus.completed.value)
            .order_by(TaskRecord.id.desc())
            .limit(1)
        ).scalars().first()
        if existing is not None:
            return StartResult(record=existing, task=task, is_resume=True)

        with transaction(self.db):
            record = TaskRecord(task_id=task.id, kind=task.kind, status=RecordStatus.draft.value)
            self.db.add(record)
            if not task.is_claimed:
                task.is_claimed = True

        logger.info("[lifecycle] started task=%s record=%s", task_id, record.id)
        return StartResult(record=record, task=task, is_resume=False)

    def save_draft(self, record_id: int, content: str, time_spent: int = 0) -> TaskRecord:
        record = self._get_record(record_id)
        if record.status == RecordStatus.completed.value:
            raise ValidationFailed("cannot save a draft on a completed record")

        with transaction(self.db):
            record.content = content
            record.word_count = count_words(content)
            record.time_spent = int(time_spent or 0)
        return record

    def submit(self, record_id: int, content: str, time_spent: int = 0, *, day: Optional[dt.date] = None) -> SubmitResult:
        record = self._get_record(record_id)
        task = self.db.get(DailyTask, record.task_id)
        if task is None:
            raise NotFound(f"task {record.task_id} not found")
        if record.status == RecordStatus.completed.value:
            raise ValidationFailed("record is already completed")

        word_count = count_words(content)
        time_spent = int(time_spent or 0)

        with transaction(self.db):
            record.content = content
            record.word_count = word_count
            record.time_spent = time_spent
            record.status = RecordStatus.submitted.value
            record.submitted_at = now_local()

        score, feedback = self._evaluate(task, content)

        with transaction(self.db):
            record.score = score
            record.ai_feedback = json.dumps(feedback, ensure_ascii=False) if feedback else None
            record.status = RecordStatus.completed.value
            record.completed_at = now_local()
            task.is_completed = True

        logger.info("[lifecycle] completed record=%s score=%s evaluated=%s", record.id, score, feedback is not None)

        result = SubmitResult(record=record, task=task, reward=None, streak=None, feedback=feedback, evaluated=feedback is not None)
        self._after_completion(result, word_count, time_spent, score, day or today_local())
        return result

    def _evaluate(self, task: DailyTask, content: str) -> tuple[float, Optional[Dict]]:
        if self.evaluator is None:
            logger.warning("[lifecycle] no evaluator configured, fallback score applied task=%s", task.id)
            return float(FALLBACK_SCORE), None
        try:
            evaluation = self.evaluator.evaluate_task(
                kind_label=KIND_SETTINGS[task.kind]["label"],
                title=task.title,
                description=task.description,
                requirements=task.requirements,
                skill_category=task.skill_category,
                content=content,
            )
            return float(evaluation.score), evaluation.model_dump()
        except Exception:
            # 모델 장애로 submitted 상태에 갇히지 않도록 기본 점수 부여
            logger.exception("[lifecycle] evaluation failed, fallback score applied task=%s", task.id)
            return float(FALLBACK_SCORE), None

    def _after_completion(self, result: SubmitResult, word_count: int, time_spent: int, score: float, day: dt.date) -> None:
        """completed 이후 알림들: 어떤 것도 제출 자체를 실패시키지 않는다"""
        task, record = result.task, result.record

        try:
            result.reward = self.rewards.award_xp(
                f"{task.kind}_complete",
                record.id,
                xp_amount=task.xp_reward,
                category=task.skill_category,
                amount=task.category_reward,
                word_count=word_count,
                time_spent=time_spent,
                score=score,
                description=f"Completed {task.kind} task: {task.title}",
            )
            with transaction(self.db):
                record.xp_earned = result.reward.xp_awarded
                record.category_earned = task.category_reward
                record.skill_category = task.skill_category
        except Exception:
            logger.exception("[lifecycle] reward failed record=%s", record.id)

        try:
            result.streak = self.rewards.update_streak_status()
        except Exception:
            logger.exception("[lifecycle] streak update failed")

        checks = [("task_complete", {"score": score, "kind": task.kind})]
        if score >= SCORE_THRESHOLD:
            checks.append(("score_received", {"score": score}))
        checks += [("attr_update", {}), ("words_update", {})]
        for event_type, context in checks:
            try:
                unlocked = self.rewards.check_and_unlock_achievements(event_type, context)
                result.new_achievements.extend(unlocked or [])
            except Exception:
                logger.exception("[lifecycle] achievement check failed event=%s", event_type)

        if self.challenges is not None:
            for event_type, value in (
                (f"{task.kind}_complete", 1),
                ("word_added", word_count),
                ("score_received", score),
            ):
                try:
                    self.challenges.update_progress(event_type, value, day=day)
                except Exception:
                    logger.exception("[lifecycle] challenge progress failed event=%s", event_type)
