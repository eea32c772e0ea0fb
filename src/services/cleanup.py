# src/services/cleanup.py
import datetime as dt
import logging
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.config.clock import now_local
from src.db.database import transaction
from src.models.daily_task import DailyTask, PresetRun
from src.models.reward import XpTransaction
from src.models.task_record import RecordStatus, TaskRecord

logger = logging.getLogger(__name__)

TASK_RETENTION_DAYS = 30
XP_RETENTION_DAYS = 90


def cleanup_old_data(db: Session, now: Optional[dt.datetime] = None) -> Dict[str, int]:
    """
    만료 데이터 정리 (한 트랜잭션)
    - 30일 지난 daily task 삭제, 단 completed 기록이 연결된 task 는 보존
      (미완료 기록은 task 보다 먼저 삭제)
    - 90일 지난 XP 장부 삭제
    - 30일 지난 preset 시도 기록 삭제
    """
    now = now or now_local()
    task_cutoff = now.date() - dt.timedelta(days=TASK_RETENTION_DAYS)
    xp_cutoff = now - dt.timedelta(days=XP_RETENTION_DAYS)

    kept_ids = select(TaskRecord.task_id).where(TaskRecord.status == RecordStatus.completed.value)

    with transaction(db):
        expired_ids = db.execute(
            select(DailyTask.id).where(
                DailyTask.task_date < task_cutoff,
                DailyTask.id.not_in(kept_ids),
            )
        ).scalars().all()

        deleted_records = 0
        deleted_tasks = 0
        if expired_ids:
            deleted_records = (
                db.query(TaskRecord)
                .filter(TaskRecord.task_id.in_(expired_ids))
                .delete(synchronize_session=False)
            )
            deleted_tasks = (
                db.query(DailyTask)
                .filter(DailyTask.id.in_(expired_ids))
                .delete(synchronize_session=False)
            )

        deleted_xp = (
            db.query(XpTransaction)
            .filter(XpTransaction.created_at < xp_cutoff)
            .delete(synchronize_session=False)
        )
        deleted_runs = (
            db.query(PresetRun)
            .filter(PresetRun.run_date < task_cutoff)
            .delete(synchronize_session=False)
        )

    logger.info(
        "[cleanup] tasks=%d records=%d xp_transactions=%d preset_runs=%d",
        deleted_tasks, deleted_records, deleted_xp, deleted_runs,
    )
    return {
        "tasks": deleted_tasks,
        "records": deleted_records,
        "xp_transactions": deleted_xp,
        "preset_runs": deleted_runs,
    }
