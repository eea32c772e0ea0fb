# src/services/template_bank.py
from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from src.db.database import transaction
from src.models.task_template import TaskKind, TaskTemplate
from src.services.errors import ValidationFailed
from src.services.task_drafts import KIND_SETTINGS, PROMPT_KINDS, SKILL_CATEGORIES

logger = logging.getLogger(__name__)

CODE_PATTERN = re.compile(r"^[a-z0-9_]+$")
TEMPLATE_KINDS = [k.value for k in TaskKind]

def _t(code, kind, category, title, description, requirements=None, difficulty="normal", tags=None):
    return {
        "code": code,
        "kind": kind,
        "skill_category": category,
        "title": title,
        "description": description,
        "requirements": requirements,
        "difficulty": difficulty,
        "tags": tags,
    }


DEFAULT_TEMPLATES: List[Dict] = [
    # inkdot
    _t("dot_character_habit", "inkdot", "character", "A Telling Habit",
       "Show who a person is through one small habit they repeat without noticing."),
    _t("dot_character_pocket", "inkdot", "character", "Empty Your Pockets",
       "Describe everything in a stranger's pockets and let the objects reveal their day."),
    _t("dot_conflict_door", "inkdot", "conflict", "The Locked Door",
       "Two people want opposite things from the same locked door. Write the moment before one gives in."),
    _t("dot_conflict_silence", "inkdot", "conflict", "Quiet Argument",
       "Write an argument in which neither person raises their voice."),
    _t("dot_scene_station", "inkdot", "scene", "Last Train",
       "Describe a train platform after the last train has left, using at least three senses."),
    _t("dot_scene_kitchen", "inkdot", "scene", "Morning Kitchen",
       "Paint a kitchen at dawn so the reader can tell who lives there without meeting them."),
    _t("dot_dialogue_subtext", "inkdot", "dialogue", "Say It Sideways",
       "Write a short exchange where one character apologises without ever saying sorry."),
    _t("dot_dialogue_phone", "inkdot", "dialogue", "One Side of a Call",
       "Write only one side of a phone call and let the reader infer the other voice."),
    _t("dot_rhythm_rain", "inkdot", "rhythm", "Rain in Short Lines",
       "Describe rain starting, peaking and stopping, matching sentence length to its pace."),
    _t("dot_rhythm_chase", "inkdot", "rhythm", "Running Out of Breath",
       "Write a chase using sentences that grow shorter as the runner tires."),
    _t("dot_style_plain", "inkdot", "style", "Plain Words",
       "Describe a festival using only simple, everyday words and no adjectives of degree."),
    _t("dot_style_letter", "inkdot", "style", "An Old Letter",
       "Rewrite a weather report as if it were a letter written a hundred years ago."),
    # inkline
    _t("line_character_return", "inkline", "character", "The Homecoming",
       "Someone returns to their hometown after ten years. Show how they and the town have changed.",
       requirements="Reveal the change through action and detail rather than statement."),
    _t("line_conflict_inheritance", "inkline", "conflict", "The Inheritance",
       "Two siblings divide the belongings of a parent. One object matters more than it should.",
       requirements="Escalate the tension in at least two steps."),
    _t("line_scene_market", "inkline", "scene", "Night Market",
       "Walk the reader through a night market from the entrance to the last stall.",
       requirements="Keep a consistent point of view and a clear spatial order."),
    _t("line_dialogue_interview", "inkline", "dialogue", "The Interview",
       "A job interview where the interviewer has more to hide than the candidate.",
       requirements="At least two thirds of the piece should be dialogue."),
    _t("line_rhythm_storm", "inkline", "rhythm", "Before the Storm",
       "Build the hour before a storm breaks, letting the prose tighten as it approaches."),
    _t("line_style_fable", "inkline", "style", "A Modern Fable",
       "Tell a modern office story in the voice of an old fable, ending with a moral."),
    # inkchapter
    _t("chapter_character_lighthouse", "inkchapter", "character", "The Lighthouse Keeper",
       "Write a complete story about the last keeper of an automated lighthouse.",
       requirements="Give the story a clear beginning, turning point and ending.", tags="solitude"),
    _t("chapter_conflict_bridge", "inkchapter", "conflict", "Two Sides of the Bridge",
       "Two villages share one bridge and one grudge. Write the day the bridge must be rebuilt.",
       requirements="Both sides must have a sympathetic motive.", tags="community"),
    _t("chapter_scene_city", "inkchapter", "scene", "A City in Four Seasons",
       "Follow one street corner of a city through a full year.",
       requirements="Each season should carry a different emotional tone.", tags="time"),
]


def _clean_text(row: Dict, key: str) -> str:
    value = row.get(key)
    return value.strip() if isinstance(value, str) else ""


def validate_template_row(row: Dict) -> Dict:
    code = _clean_text(row, "code")
    if not CODE_PATTERN.match(code):
        raise ValidationFailed(f"invalid template code: {row.get('code')!r}")

    kind = row.get("kind")
    if kind not in TEMPLATE_KINDS:
        raise ValidationFailed(f"invalid kind for {code}: {kind!r}")

    category = row.get("skill_category")
    if category not in SKILL_CATEGORIES:
        raise ValidationFailed(f"invalid skill_category for {code}: {category!r}")

    title = _clean_text(row, "title")
    description = _clean_text(row, "description")
    if not title or not description:
        raise ValidationFailed(f"title and description are required ({code})")

    prompt_kind = row.get("prompt_kind")
    if prompt_kind is not None and prompt_kind not in PROMPT_KINDS:
        raise ValidationFailed(f"invalid prompt_kind for {code}: {prompt_kind!r}")

    settings = KIND_SETTINGS[kind]
    return {
        "code": code,
        "kind": kind,
        "title": title,
        "description": description,
        "requirements": row.get("requirements"),
        "prompt_kind": prompt_kind,
        "skill_category": category,
        "time_limit": row.get("time_limit", settings["time_limit"]),
        "word_limit_min": row.get("word_limit_min", settings["word_limit_min"]),
        "word_limit_max": row.get("word_limit_max", settings["word_limit_max"]),
        "xp_reward": int(row.get("xp_reward") or settings["ai_xp_reward"]),
        "category_reward": int(row.get("category_reward") or settings["ai_category_reward"]),
        "difficulty": row.get("difficulty") or "normal",
        "tags": row.get("tags"),
        "is_active": bool(row.get("is_active", True)),
    }


def import_templates(db: Session, rows: Iterable[Dict]) -> Dict[str, int]:
    """
    템플릿 import: 전부 검증 후 code 기준 upsert
    하나라도 잘못되면 아무것도 반영하지 않음
    """
    cleaned = [validate_template_row(row) for row in rows]

    created = updated = 0
    with transaction(db):
        for values in cleaned:
            template = db.execute(
                select(TaskTemplate).where(TaskTemplate.code == values["code"])
            ).scalars().first()
            if template is None:
                db.add(TaskTemplate(**values))
                created += 1
            else:
                # use_count 는 그대로 둔다
                for key, value in values.items():
                    setattr(template, key, value)
                updated += 1

    logger.info("[template_bank] imported created=%d updated=%d", created, updated)
    return {"created": created, "updated": updated}


def seed_default_templates(db: Session) -> int:
    """템플릿 테이블이 비어 있을 때만 기본 뱅크를 넣는다"""
    existing = db.execute(select(func.count(TaskTemplate.id))).scalar_one()
    if existing:
        return 0
    result = import_templates(db, DEFAULT_TEMPLATES)
    return result["created"]
