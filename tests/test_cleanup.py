import datetime as dt

from sqlalchemy import select

from src.models.daily_task import DailyTask, PresetRun
from src.models.reward import XpTransaction
from src.models.task_record import TaskRecord
from src.services.cleanup import cleanup_old_data
from tests.conftest import DAY, NOW, make_task


def test_cleanup_respects_retention_windows(db):
    old_done = make_task(db, day=DAY - dt.timedelta(days=40), title="Old done")
    old_draft = make_task(db, day=DAY - dt.timedelta(days=40), title="Old draft")
    old_untouched = make_task(db, day=DAY - dt.timedelta(days=31), title="Old untouched")
    recent = make_task(db, day=DAY - dt.timedelta(days=5), title="Recent")

    db.add_all([
        TaskRecord(task_id=old_done.id, kind="inkdot", status="completed", score=80),
        TaskRecord(task_id=old_draft.id, kind="inkdot", status="draft"),
        XpTransaction(event_type="inkdot_complete", xp_amount=10, created_at=NOW - dt.timedelta(days=100)),
        XpTransaction(event_type="inkdot_complete", xp_amount=10, created_at=NOW - dt.timedelta(days=10)),
        PresetRun(run_date=DAY - dt.timedelta(days=40), generated=15),
        PresetRun(run_date=DAY - dt.timedelta(days=5), generated=15),
    ])
    db.commit()
    kept_ids = {old_done.id, recent.id}
    removed_ids = {old_draft.id, old_untouched.id}

    result = cleanup_old_data(db, now=NOW)

    assert result == {"tasks": 2, "records": 1, "xp_transactions": 1, "preset_runs": 1}
    remaining = set(db.execute(select(DailyTask.id)).scalars().all())
    assert remaining == kept_ids
    assert not remaining & removed_ids
    statuses = db.execute(select(TaskRecord.status)).scalars().all()
    assert statuses == ["completed"]
    assert len(db.execute(select(XpTransaction)).scalars().all()) == 1
    assert db.execute(select(PresetRun.run_date)).scalars().all() == [DAY - dt.timedelta(days=5)]


def test_cleanup_on_empty_store(db):
    assert cleanup_old_data(db, now=NOW) == {"tasks": 0, "records": 0, "xp_transactions": 0, "preset_runs": 0}
