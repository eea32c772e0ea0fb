# src/services/task_pool.py
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from src.models.daily_task import DailyTask, PresetRun, TaskSource
from src.models.task_record import RecordStatus, TaskRecord
from src.services.task_drafts import TaskDraft

DEDUP_WINDOW_DAYS = 7


@dataclass
class PoolTask:
    """오늘 작업 + 가장 최근 기록"""
    task: DailyTask
    record: Optional[TaskRecord]

    @property
    def has_started(self) -> bool:
        return self.record is not None

    @property
    def is_completed(self) -> bool:
        return self.record is not None and self.record.status == RecordStatus.completed.value


class TaskPoolStore:
    """daily_tasks 테이블에 대한 날짜 기준 얇은 래퍼 (commit 은 호출자 책임)"""

    def __init__(self, db: Session):
        self.db = db

    # --------------------- 조회 ---------------------
    def count_for_date(self, day: dt.date, source: Optional[str] = None) -> int:
        stmt = select(func.count(DailyTask.id)).where(DailyTask.task_date == day)
        if source is not None:
            stmt = stmt.where(DailyTask.source == source)
        return int(self.db.execute(stmt).scalar_one())

    def counts_by_category(self, day: dt.date) -> Dict[str, int]:
        rows = self.db.execute(
            select(DailyTask.skill_category, func.count(DailyTask.id))
            .where(DailyTask.task_date == day)
            .group_by(DailyTask.skill_category)
        ).all()
        return {category: int(count) for category, count in rows}

    def counts_by_kind(self, day: dt.date) -> Dict[str, int]:
        rows = self.db.execute(
            select(DailyTask.kind, func.count(DailyTask.id))
            .where(DailyTask.task_date == day)
            .group_by(DailyTask.kind)
        ).all()
        return {kind: int(count) for kind, count in rows}

    def counts_by_source_and_kind(self, day: dt.date) -> List[Dict]:
        rows = self.db.execute(
            select(DailyTask.source, DailyTask.kind, func.count(DailyTask.id))
            .where(DailyTask.task_date == day)
            .group_by(DailyTask.source, DailyTask.kind)
            .order_by(DailyTask.source, DailyTask.kind)
        ).all()
        return [{"source": s, "kind": k, "count": int(c)} for s, k, c in rows]

    def latest_created_at(self, day: dt.date) -> Optional[dt.datetime]:
        return self.db.execute(
            select(func.max(DailyTask.created_at)).where(DailyTask.task_date == day)
        ).scalar_one_or_none()

    def last_ai_generation_at(self) -> Optional[dt.datetime]:
        return self.db.execute(
            select(func.max(DailyTask.created_at)).where(DailyTask.source == TaskSource.ai_generated.value)
        ).scalar_one_or_none()

    def recent_fingerprints(self, day: dt.date, window_days: int = DEDUP_WINDOW_DAYS) -> Set[str]:
        since = day - dt.timedelta(days=window_days)
        return set(
            self.db.execute(
                select(DailyTask.fingerprint).where(DailyTask.task_date >= since)
            ).scalars().all()
        )

    def next_sort_order(self, day: dt.date) -> int:
        current = self.db.execute(
            select(func.max(DailyTask.sort_order)).where(DailyTask.task_date == day)
        ).scalar_one_or_none()
        return 0 if current is None else int(current) + 1

    def get_task(self, task_id: int) -> Optional[DailyTask]:
        return self.db.get(DailyTask, task_id)

    def list_for_date(self, day: dt.date, kind: str = "all") -> List[PoolTask]:
        stmt = select(DailyTask).where(DailyTask.task_date == day)
        if kind != "all":
            stmt = stmt.where(DailyTask.kind == kind)
        stmt = stmt.order_by(DailyTask.sort_order.asc(), DailyTask.id.asc())
        tasks = self.db.execute(stmt).scalars().all()

        result = []
        for task in tasks:
            record = self.db.execute(
                select(TaskRecord)
                .where(TaskRecord.task_id == task.id)
                .order_by(TaskRecord.created_at.desc(), TaskRecord.id.desc())
                .limit(1)
            ).scalars().first()
            result.append(PoolTask(task=task, record=record))
        return result

    # --------------------- 삽입 ---------------------
    def preset_run_for(self, day: dt.date) -> Optional[PresetRun]:
        return self.db.execute(
            select(PresetRun).where(PresetRun.run_date == day)
        ).scalars().first()

    def mark_preset_run(self, day: dt.date, generated: int, created_at: Optional[dt.datetime] = None) -> PresetRun:
        run = PresetRun(run_date=day, generated=generated)
        if created_at is not None:
            run.created_at = created_at
        self.db.add(run)
        self.db.flush()
        return run

    def add_drafts(
        self,
        day: dt.date,
        drafts: Iterable[TaskDraft],
        created_at: Optional[dt.datetime] = None,
    ) -> List[DailyTask]:
        sort_order = self.next_sort_order(day)
        rows = []
        for draft in drafts:
            row = DailyTask(
                task_date=day,
                template_id=draft.template_id,
                kind=draft.kind,
                title=draft.title,
                description=draft.description,
                requirements=draft.requirements,
                prompt_kind=draft.prompt_kind,
                time_limit=draft.time_limit,
                word_limit_min=draft.word_limit_min,
                word_limit_max=draft.word_limit_max,
                skill_category=draft.skill_category,
                xp_reward=draft.xp_reward,
                category_reward=draft.category_reward,
                difficulty=draft.difficulty,
                source=draft.source,
                fingerprint=draft.fingerprint,
                sort_order=sort_order,
            )
            if created_at is not None:
                row.created_at = created_at
            sort_order += 1
            rows.append(row)
        self.db.add_all(rows)
        self.db.flush()
        return rows
