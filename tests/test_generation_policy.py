import datetime as dt
import random

from sqlalchemy import func, select

from src.models.daily_task import DailyTask
from src.models.task_template import TaskTemplate
from src.services.generation_policy import MAX_TASKS_PER_DAY, GenerationPolicy
from src.services.ink_tasks import InkTaskService
from src.services.template_selector import TemplateSelector
from tests.conftest import (
    DAY,
    NOW,
    FakeTextGenerator,
    failing_client,
    make_task,
    provider_error,
    unique_candidates,
)


def _count(db, **filters):
    stmt = select(func.count(DailyTask.id)).where(DailyTask.task_date == DAY)
    for key, value in filters.items():
        stmt = stmt.where(getattr(DailyTask, key) == value)
    return db.execute(stmt).scalar_one()


def test_presets_fill_ten_inkdot_and_five_inkline(db, templates):
    result = GenerationPolicy(db, rng=random.Random(1)).generate_presets(DAY, now=NOW)

    assert result["inkdot"] == 10 and result["inkline"] == 5
    assert _count(db, kind="inkdot") == 10
    assert _count(db, kind="inkline") == 5
    assert _count(db, source="preset") == 15
    assert db.execute(select(func.sum(TaskTemplate.use_count))).scalar_one() == 15


def test_presets_are_idempotent(db, templates):
    policy = GenerationPolicy(db, rng=random.Random(1))
    policy.generate_presets(DAY, now=NOW)
    second = policy.generate_presets(DAY, now=NOW)

    assert second["generated"] == 0
    assert _count(db, source="preset") == 15


def test_presets_skip_recent_duplicates(db, templates):
    yesterday = DAY - dt.timedelta(days=1)
    GenerationPolicy(db, rng=random.Random(1)).generate_presets(yesterday, now=NOW)
    GenerationPolicy(db, rng=random.Random(1)).generate_presets(DAY, now=NOW)

    def fingerprints(day):
        return db.execute(select(DailyTask.fingerprint).where(DailyTask.task_date == day)).scalars().all()

    today = fingerprints(DAY)
    assert today
    assert len(today) == len(set(today))
    assert not set(today) & set(fingerprints(yesterday))


def test_ai_requires_active_config(db, templates):
    client = FakeTextGenerator(responder=unique_candidates())
    result = GenerationPolicy(db, client, random.Random(1)).generate_ai_tasks("inkdot", 3, day=DAY)

    assert result.generated == 0
    assert result.error == "adapter unavailable"
    assert client.calls == []


def test_ai_without_generator_is_noop(db, templates, ai_config):
    policy = GenerationPolicy(db, None, random.Random(1))
    assert not policy.ai_available()
    assert policy.generate_ai_tasks("inkdot", 3, day=DAY).generated == 0


def test_ai_count_is_clamped_to_remaining_slots(db, ai_config):
    for i in range(MAX_TASKS_PER_DAY - 1):
        make_task(db, title=f"Existing {i}")
    client = FakeTextGenerator(responder=unique_candidates())
    result = GenerationPolicy(db, client, random.Random(1)).generate_ai_tasks("inkdot", 5, day=DAY)

    assert result.generated == 1
    assert _count(db) == MAX_TASKS_PER_DAY


def test_ai_failure_is_reported_not_raised(db, ai_config):
    client = FakeTextGenerator(["definitely not json"])
    result = GenerationPolicy(db, client, random.Random(1)).generate_ai_tasks("inkdot", 3, day=DAY)

    assert not result.success
    assert result.error
    assert _count(db) == 0


def test_bootstrap_end_to_end(db, small_templates, ai_config):
    client = FakeTextGenerator(responder=unique_candidates())
    service = InkTaskService(db, text_generator=client, rng=random.Random(9))

    report = service.policy.bootstrap_empty_day(DAY, now=NOW)

    assert report["preset"]["inkdot"] == 4 and report["preset"]["inkline"] == 2
    assert report["ai"]["generated"] == 4
    tasks = service.get_today_tasks("all", day=DAY)
    assert len(tasks) == 10
    assert len({t.task.fingerprint for t in tasks}) == 10
    assert _count(db, source="ai_generated", kind="inkdot") == 4


def test_bootstrap_only_runs_on_empty_day(db, templates):
    make_task(db, title="Already here")
    assert GenerationPolicy(db, rng=random.Random(1)).bootstrap_empty_day(DAY, now=NOW) is None


def test_bootstrap_with_full_bank_needs_no_ai(db, templates, ai_config):
    client = FakeTextGenerator(responder=unique_candidates())
    report = GenerationPolicy(db, client, random.Random(1)).bootstrap_empty_day(DAY, now=NOW)
    assert report["ai"] is None
    assert client.calls == []
    assert _count(db) == 15


def test_missing_presets_are_backfilled_within_cap(db, templates):
    for i in range(12):
        make_task(db, title=f"AI {i}", source="ai_generated")

    result = GenerationPolicy(db, rng=random.Random(1)).backfill_missing_presets(DAY, now=NOW)

    assert result["inkdot"] == 8 and result["inkline"] == 0
    assert _count(db) == MAX_TASKS_PER_DAY


def test_missing_preset_check_skips_when_presets_exist(db, templates):
    make_task(db, title="Preset", source="preset")
    assert GenerationPolicy(db, rng=random.Random(1)).backfill_missing_presets(DAY, now=NOW) is None


def test_preset_attempt_is_recorded_even_when_nothing_selected(db, monkeypatch):
    # 템플릿 뱅크가 비어 있는 날
    make_task(db, title="AI only", source="ai_generated")
    policy = GenerationPolicy(db, rng=random.Random(1))

    first = policy.backfill_missing_presets(DAY, now=NOW)
    assert first["generated"] == 0
    assert policy.store.preset_run_for(DAY).generated == 0

    def fail_selection(*args, **kwargs):
        raise AssertionError("template selection ran twice")

    monkeypatch.setattr(TemplateSelector, "build_drafts", fail_selection)
    assert policy.backfill_missing_presets(DAY, now=NOW) is None
    assert policy.generate_presets(DAY, now=NOW)["generated"] == 0
    assert policy.tick(DAY, NOW)["errors"] == []


def test_stale_pool_backfill(db, ai_config):
    make_task(db, kind="inkdot", title="Old", created_at=NOW - dt.timedelta(minutes=61))
    client = FakeTextGenerator(responder=unique_candidates())
    result = GenerationPolicy(db, client, random.Random(1)).backfill_stale_pool(DAY, NOW)

    # inkline 이 없으므로 inkline 으로 2개
    assert result["kind"] == "inkline"
    assert result["generated"] == 2
    assert _count(db, kind="inkline") == 2


def test_fresh_pool_is_not_backfilled(db, ai_config):
    make_task(db, title="Recent", created_at=NOW - dt.timedelta(minutes=10))
    client = FakeTextGenerator(responder=unique_candidates())
    assert GenerationPolicy(db, client, random.Random(1)).backfill_stale_pool(DAY, NOW) is None
    assert client.calls == []


def test_repeated_ticks_never_exceed_cap(db, templates, ai_config):
    client = FakeTextGenerator(responder=unique_candidates())
    policy = GenerationPolicy(db, client, random.Random(3))

    now = NOW
    for _ in range(10):
        report = policy.tick(DAY, now)
        assert report["errors"] == []
        assert _count(db) <= MAX_TASKS_PER_DAY
        now += dt.timedelta(minutes=61)

    assert _count(db) == MAX_TASKS_PER_DAY
    assert _count(db, source="preset") == 15


def test_tick_isolates_failing_check(db, templates, monkeypatch):
    policy = GenerationPolicy(db, rng=random.Random(1))

    def boom(*args, **kwargs):
        raise RuntimeError("bootstrap exploded")

    monkeypatch.setattr(policy, "bootstrap_empty_day", boom)
    report = policy.tick(DAY, NOW)

    assert report["errors"] == ["bootstrap: bootstrap exploded"]
    assert report["missing_preset"] is None
    assert report["total"] == 0


def test_manual_generate_defaults(db, templates, ai_config):
    client = FakeTextGenerator(responder=unique_candidates())
    results = GenerationPolicy(db, client, random.Random(1)).manual_generate(day=DAY, ai=True, now=NOW)

    assert results["preset"]["generated"] == 15
    assert results["ai_inkdot"]["generated"] == 3
    assert results["ai_inkline"]["generated"] == 2
    assert _count(db) == MAX_TASKS_PER_DAY


def test_provider_outage_is_a_generation_failure(db, templates, ai_config):
    client = failing_client(provider_error(500))
    policy = GenerationPolicy(db, client, random.Random(1))

    result = policy.generate_ai_tasks("inkdot", 3, day=DAY, now=NOW)
    assert not result.success
    assert "InternalServerError" in result.error

    results = policy.manual_generate(day=DAY, ai=True, now=NOW)
    assert results["preset"]["generated"] == 15
    assert results["ai_inkdot"]["generated"] == 0
    assert results["ai_inkline"]["success"] is False
    assert _count(db) == 15
