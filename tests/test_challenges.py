import datetime as dt
import json
import logging
import random

import pytest

from mojing_ai.core.evaluator import SubmissionEvaluator
from src.models.challenge import DailyChallenge
from src.services.challenges import ChallengeTracker, scaled_target
from src.services.errors import NotFound, ValidationFailed
from src.services.template_bank import import_templates
from tests.conftest import DAY, FakeRewards, FakeTextGenerator, evaluation_payload


def _daily(db, challenge_type, target, xp=50):
    row = DailyChallenge(
        challenge_date=DAY,
        challenge_type=challenge_type,
        title="Test",
        description="Test challenge",
        target_value=target,
        current_value=0,
        xp_reward=xp,
    )
    db.add(row)
    db.commit()
    return row


@pytest.mark.parametrize(
    "base, level, archetype, expected",
    [
        (500, 1, "word_count", 500),
        (500, 3, "word_count", 600),
        (3, 2, "task_count", 4),
        (1, 5, "inkline_complete", 2),
        (1, 9, "score_above", 1),
    ],
)
def test_scaled_target(base, level, archetype, expected):
    assert scaled_target(base, level, archetype) == expected


def test_daily_challenge_is_created_once(db, rewards):
    tracker = ChallengeTracker(db, rewards, random.Random(2))
    first = tracker.get_daily_challenge(DAY)
    second = tracker.get_daily_challenge(DAY)

    assert first.id == second.id
    assert first.challenge_type in ("task_count", "word_count", "inkline_complete", "score_above")
    assert str(first.target_value) in first.description or first.challenge_type == "score_above"


def test_daily_target_scales_with_level(db):
    tracker = ChallengeTracker(db, FakeRewards(level=3), random.Random(2))
    challenge = tracker.get_daily_challenge(DAY)
    base = {"task_count": 3, "word_count": 500, "inkline_complete": 1, "score_above": 1}[challenge.challenge_type]
    assert challenge.target_value == scaled_target(base, 3, challenge.challenge_type)


def test_word_count_completes_once(db, rewards):
    _daily(db, "word_count", 500)
    tracker = ChallengeTracker(db, rewards)

    tracker.update_progress("word_added", 300, day=DAY)
    challenge = tracker.update_progress("word_added", 300, day=DAY)
    assert challenge.current_value == 600
    assert challenge.is_completed
    assert challenge.completed_at is not None

    assert tracker.update_progress("word_added", 300, day=DAY) is None
    assert [a["event_type"] for a in rewards.awards] == ["daily_challenge"]
    assert rewards.awards[0]["xp_amount"] == 50
    assert rewards.achievement_events == ["daily_challenge_complete"]


def test_unrelated_event_is_ignored(db, rewards):
    _daily(db, "inkline_complete", 1)
    tracker = ChallengeTracker(db, rewards)
    assert tracker.update_progress("inkdot_complete", 1, day=DAY) is None
    assert tracker.update_progress("inkline_complete", 1, day=DAY).is_completed


def test_task_count_counts_completions(db, rewards):
    _daily(db, "task_count", 2)
    tracker = ChallengeTracker(db, rewards)
    assert tracker.update_progress("inkdot_complete", 1, day=DAY).current_value == 1
    assert tracker.update_progress("task_complete", 1, day=DAY).is_completed


def test_score_above_needs_threshold(db, rewards):
    _daily(db, "score_above", 1)
    tracker = ChallengeTracker(db, rewards)
    assert not tracker.update_progress("score_received", 79, day=DAY).is_completed
    assert tracker.update_progress("score_received", 80, day=DAY).is_completed


def test_no_challenge_is_noop(db, rewards):
    assert ChallengeTracker(db, rewards).update_progress("word_added", 100, day=DAY) is None


def test_daily_reward_failure_is_logged_for_reconciliation(db, caplog):
    row = _daily(db, "inkline_complete", 1, xp=60)
    rewards = FakeRewards(fail_awards=True)
    tracker = ChallengeTracker(db, rewards)

    with caplog.at_level(logging.ERROR, logger="src.services.challenges"):
        challenge = tracker.update_progress("inkline_complete", 1, day=DAY)

    assert challenge.is_completed
    assert rewards.achievement_events == ["daily_challenge_complete"]
    assert f"challenge_id={row.id}" in caplog.text
    assert "xp=60" in caplog.text


# ---------- weekly ----------
def test_weekly_challenge_keyed_by_monday(db, rewards, templates):
    tracker = ChallengeTracker(db, rewards, random.Random(4))
    view = tracker.get_weekly_challenge(DAY)

    assert view.challenge.week_start == dt.date(2026, 3, 2)
    assert view.challenge.week_end == dt.date(2026, 3, 8)
    assert not view.has_submission

    sunday = tracker.get_weekly_challenge(dt.date(2026, 3, 8))
    assert sunday.challenge.id == view.challenge.id
    next_week = tracker.get_weekly_challenge(dt.date(2026, 3, 9))
    assert next_week.challenge.id != view.challenge.id


def test_weekly_without_long_form_templates(db, rewards):
    tracker = ChallengeTracker(db, rewards)
    assert tracker.get_weekly_challenge(DAY) is None
    with pytest.raises(NotFound):
        tracker.save_weekly_draft("draft", day=DAY)


def test_weekly_draft_then_submit_rewards_once(db, rewards):
    import_templates(db, [{
        "code": "chapter_test", "kind": "inkchapter", "skill_category": "scene",
        "title": "City", "description": "A city story.", "xp_reward": 120,
    }])
    client = FakeTextGenerator([evaluation_payload(88)])
    tracker = ChallengeTracker(db, rewards, random.Random(4), SubmissionEvaluator(client))

    draft = tracker.save_weekly_draft("first half", 600, day=DAY)
    assert draft.status == "draft"

    result = tracker.submit_weekly("the whole story", 3600, day=DAY)
    submission = result["submission"]
    assert submission.id == draft.id
    assert submission.status == "completed"
    assert submission.score == 88
    assert submission.xp_earned == 120
    assert json.loads(submission.ai_feedback)["score"] == 88
    assert result["challenge"].is_completed

    with pytest.raises(ValidationFailed):
        tracker.submit_weekly("again", day=DAY)
    with pytest.raises(ValidationFailed):
        tracker.save_weekly_draft("again", day=DAY)
    assert [a["event_type"] for a in rewards.awards] == ["inkchapter_complete"]

    view = tracker.get_weekly_challenge(DAY)
    assert view.is_completed


def test_weekly_evaluation_failure_uses_fallback(db, rewards, templates):
    tracker = ChallengeTracker(db, rewards, random.Random(4), SubmissionEvaluator(FakeTextGenerator(["nope"])))
    result = tracker.submit_weekly("story", day=DAY)
    assert result["submission"].score == 70
    assert result["feedback"] is None
