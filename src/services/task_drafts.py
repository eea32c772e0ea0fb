# src/services/task_drafts.py
from __future__ import annotations

import random
import unicodedata
from dataclasses import dataclass, field
from typing import Optional

from src.models.task_template import PromptKind, SkillCategory, TaskKind
from src.services.fingerprint import content_fingerprint

SKILL_CATEGORIES = [c.value for c in SkillCategory]
PROMPT_KINDS = [k.value for k in PromptKind]

POLISH_MARKER = "[Polish] "
CONTINUE_MARKER = "[Continue] "
CONTINUE_SEED_MAX = 140
# daily_tasks.title 컬럼 길이
TITLE_MAX_LENGTH = 200

# kind 별 표시 문구 / 제한값 / AI 생성 작업 보상
KIND_SETTINGS = {
    TaskKind.inkdot.value: {
        "label": "inkdot",
        "time_limit_text": "5 minutes",
        "word_limit_text": "50-100 words",
        "time_limit": 5 * 60,
        "word_limit_min": 50,
        "word_limit_max": 100,
        "ai_xp_reward": 10,
        "ai_category_reward": 1,
    },
    TaskKind.inkline.value: {
        "label": "inkline",
        "time_limit_text": "20 minutes",
        "word_limit_text": "200-400 words",
        "time_limit": 20 * 60,
        "word_limit_min": 200,
        "word_limit_max": 400,
        "ai_xp_reward": 30,
        "ai_category_reward": 2,
    },
    TaskKind.inkchapter.value: {
        "label": "inkchapter",
        "time_limit_text": "one week",
        "word_limit_text": "1500-3000 words",
        "time_limit": None,
        "word_limit_min": 1500,
        "word_limit_max": 3000,
        "ai_xp_reward": 100,
        "ai_category_reward": 5,
    },
}


@dataclass
class TaskDraft:
    """검증/중복제거 후 daily_tasks 에 들어갈 작업 초안"""
    kind: str
    title: str
    description: str
    prompt_kind: str
    skill_category: str
    source: str
    xp_reward: int
    category_reward: int
    difficulty: str = "normal"
    requirements: Optional[str] = None
    time_limit: Optional[int] = None
    word_limit_min: Optional[int] = None
    word_limit_max: Optional[int] = None
    template_id: Optional[int] = None
    fingerprint: str = field(default="")

    def __post_init__(self):
        if not self.fingerprint:
            self.fingerprint = content_fingerprint(self.title, self.description)


def roll_prompt_kind(rng: random.Random) -> str:
    # 주사위(1-6): 1-2=normal, 3-4=polish, 5-6=continue
    roll = rng.randint(1, 6)
    if roll <= 2:
        return PromptKind.normal.value
    if roll <= 4:
        return PromptKind.polish.value
    return PromptKind.continue_.value


def clip_title(title: str) -> str:
    if len(title) <= TITLE_MAX_LENGTH:
        return title
    return title[: TITLE_MAX_LENGTH - 1].rstrip() + "…"


def format_by_prompt_kind(prompt_kind: str, base_title: str, base_description: str, word_limit_text: str) -> tuple[str, str]:
    kind = prompt_kind if prompt_kind in PROMPT_KINDS else PromptKind.normal.value
    base_title = (base_title or "").strip()
    base_description = (base_description or "").strip()

    if kind == PromptKind.polish.value:
        title = base_title if base_title.startswith(POLISH_MARKER) else f"{POLISH_MARKER}{base_title}"
        description = (
            f"Polish task: turn the dry outline below into flowing prose of {word_limit_text}.\n"
            f"Outline:\n- {base_title}\n- {base_description}\n"
            "Rules: add no new key events; improve only the prose, pacing and detail."
        )
        return clip_title(title), description

    if kind == PromptKind.continue_.value:
        title = base_title if base_title.startswith(CONTINUE_MARKER) else f"{CONTINUE_MARKER}{base_title}"
        raw = " ".join(f"{base_title}. {base_description}".split())
        starter = f"{raw[:CONTINUE_SEED_MAX]}…" if len(raw) > CONTINUE_SEED_MAX else raw
        description = (
            f"Continuation task: read the opening below and continue it for {word_limit_text}.\n"
            f"Opening: {starter}\n"
            "Rules: keep person and tense consistent, add detail and push one change forward."
        )
        return clip_title(title), description

    return clip_title(base_title), base_description


def count_words(content: str) -> int:
    """공백과 문장부호(유니코드 P* 카테고리)를 뺀 글자 수"""
    return sum(
        1
        for ch in content or ""
        if not ch.isspace() and not unicodedata.category(ch).startswith("P")
    )
