from src.services.coverage import least_covered_categories, pick_backfill_kind


def test_least_covered_sorts_by_count_then_name():
    counts = {"character": 5, "conflict": 0, "scene": 2, "dialogue": 2, "rhythm": 2, "style": 2}
    assert least_covered_categories(counts, 2) == ["conflict", "dialogue"]


def test_missing_categories_count_as_zero():
    counts = {"character": 1, "conflict": 1, "scene": 1}
    assert least_covered_categories(counts, 3) == ["dialogue", "rhythm", "style"]


def test_least_covered_returns_at_least_one():
    assert least_covered_categories({}, 0) == ["character"]


def test_least_covered_all_six():
    assert len(least_covered_categories({}, 6)) == 6


def test_backfill_kind_prefers_inkline_when_missing():
    assert pick_backfill_kind({"inkdot": 10}) == "inkline"
    assert pick_backfill_kind({}) == "inkline"


def test_backfill_kind_picks_lower_count():
    assert pick_backfill_kind({"inkdot": 2, "inkline": 5}) == "inkdot"
    assert pick_backfill_kind({"inkdot": 10, "inkline": 5}) == "inkline"


def test_backfill_kind_tie_goes_to_inkline():
    assert pick_backfill_kind({"inkdot": 3, "inkline": 3}) == "inkline"
