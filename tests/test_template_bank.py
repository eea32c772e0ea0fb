import pytest
from sqlalchemy import func, select

from src.models.task_template import TaskTemplate
from src.services.errors import ValidationFailed
from src.services.template_bank import DEFAULT_TEMPLATES, import_templates, seed_default_templates


def _row(**kw):
    row = {"code": "dot_test", "kind": "inkdot", "skill_category": "scene", "title": "T", "description": "D"}
    row.update(kw)
    return row


def test_seed_only_when_empty(db):
    assert seed_default_templates(db) == len(DEFAULT_TEMPLATES)
    assert seed_default_templates(db) == 0
    kinds = dict(
        db.execute(select(TaskTemplate.kind, func.count(TaskTemplate.id)).group_by(TaskTemplate.kind)).all()
    )
    assert kinds == {"inkdot": 12, "inkline": 6, "inkchapter": 3}


def test_import_applies_kind_defaults(db):
    import_templates(db, [_row(kind="inkline")])
    template = db.execute(select(TaskTemplate)).scalars().one()
    assert template.word_limit_min == 200
    assert template.xp_reward == 30
    assert template.category_reward == 2


def test_import_upserts_by_code(db):
    assert import_templates(db, [_row(title="Old")]) == {"created": 1, "updated": 0}
    assert import_templates(db, [_row(title="New")]) == {"created": 0, "updated": 1}
    titles = db.execute(select(TaskTemplate.title)).scalars().all()
    assert titles == ["New"]


@pytest.mark.parametrize(
    "bad",
    [
        {"code": "Bad Code"},
        {"code": ""},
        {"kind": "inkpot"},
        {"skill_category": "plot"},
        {"title": "   "},
        {"description": None},
        {"prompt_kind": "remix"},
    ],
)
def test_import_rejects_invalid_rows(db, bad):
    with pytest.raises(ValidationFailed):
        import_templates(db, [_row(**bad)])


def test_invalid_row_rejects_whole_batch(db):
    with pytest.raises(ValidationFailed):
        import_templates(db, [_row(code="good_one"), _row(code="BAD")])
    assert db.execute(select(func.count(TaskTemplate.id))).scalar_one() == 0
