import datetime as dt

from src.models.reward import WriterProfile
from src.services.rewards import LedgerRewardService


def test_award_xp_levels_up(db):
    rewards = LedgerRewardService(db)
    first = rewards.award_xp("inkdot_complete", 1, xp_amount=150)
    assert first.level == 1 and not first.leveled_up

    second = rewards.award_xp("inkline_complete", 2, xp_amount=60)
    assert second.total_xp == 210
    assert second.level == 2 and second.leveled_up
    assert rewards.current_level() == 2


def test_default_event_xp(db):
    assert LedgerRewardService(db).award_xp("inkline_complete", 1).xp_awarded == 30


def test_category_points_accumulate(db):
    rewards = LedgerRewardService(db)
    for _ in range(5):
        rewards.award_xp("inkline_complete", 1, category="scene", amount=2)
    assert rewards.check_and_unlock_achievements("attr_update", {}) == [
        {"code": "category_points_10", "title": "Well Rounded"}
    ]
    assert rewards.check_and_unlock_achievements("attr_update", {}) == []


def test_streak(db):
    rewards = LedgerRewardService(db)
    day = dt.date(2026, 3, 4)
    assert rewards.update_streak_status(day).current_streak == 1
    assert rewards.update_streak_status(day).current_streak == 1
    assert rewards.update_streak_status(day + dt.timedelta(days=1)).continued
    result = rewards.update_streak_status(day + dt.timedelta(days=5))
    assert result.current_streak == 1
    assert result.longest_streak == 2
    assert db.get(WriterProfile, 1).longest_streak == 2


def test_high_score_achievement(db):
    rewards = LedgerRewardService(db)
    assert rewards.check_and_unlock_achievements("score_received", {"score": 85}) == []
    assert [a["code"] for a in rewards.check_and_unlock_achievements("score_received", {"score": 95})] == ["high_score"]
