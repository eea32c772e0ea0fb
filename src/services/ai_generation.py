# src/services/ai_generation.py
from __future__ import annotations

import datetime as dt
import logging
import random
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set

from sqlalchemy.orm import Session

from mojing_ai.config.prompts import as_messages, build_task_generation_prompt
from mojing_ai.core.schemas import parse_task_candidates
from mojing_ai.utils.openai_client import FEATURE_TASK_GENERATE
from src.db.database import transaction
from src.models.daily_task import TaskSource
from src.services.errors import DuplicateContent
from src.services.task_drafts import (
    KIND_SETTINGS,
    SKILL_CATEGORIES,
    TaskDraft,
    format_by_prompt_kind,
    roll_prompt_kind,
)
from src.services.task_pool import TaskPoolStore
from src.services.template_selector import TemplateSelector

logger = logging.getLogger(__name__)

SAMPLE_TEMPLATE_COUNT = 5

# AI 작업끼리 겹치지 않도록 슬롯마다 하나씩 박아 넣는 "제약 단어"
CONSTRAINT_WORDS = [
    "kite", "eclipse", "moss", "echo", "glass", "rust", "old umbrella", "tide", "fog lamp", "signature",
    "wind chime", "old stamp", "station", "manhole cover", "fingerprint", "crack", "glimmer", "lingering warmth", "pendulum", "rain stain",
    "frost flower", "curtain", "hidden door", "key", "envelope", "folded page", "match", "sea salt", "wick", "grit",
    "pier", "reflection", "wind direction", "cotton thread", "paper scraps", "ink stain", "blank space", "old photo", "corridor", "wax seal",
    "wood shavings", "herbal scent", "eaves rain", "paper lantern", "snow grain", "brass bell", "sound of waves", "lichen", "ferry crossing", "notebook",
    "silhouette", "spray", "night voyage", "stethoscope", "hinge", "clockwork", "offcuts", "pine needle", "torn page", "steam",
]


@dataclass
class AIGenerationResult:
    kind: str
    requested: int
    generated: int = 0
    duplicates: int = 0
    skipped: int = 0
    success: bool = True
    error: Optional[str] = None
    task_ids: List[int] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "kind": self.kind,
            "requested": self.requested,
            "generated": self.generated,
            "duplicates": self.duplicates,
            "skipped": self.skipped,
            "success": self.success,
            "error": self.error,
        }


def pick_constraint_tokens(count: int, rng: random.Random) -> List[str]:
    pool = list(CONSTRAINT_WORDS)
    rng.shuffle(pool)
    selected = pool[: max(0, count)]
    # 단어가 모자라면 랜덤 hex 로 채움
    while len(selected) < count:
        selected.append(f"{rng.getrandbits(16):04x}")
    return selected


def _claim_fingerprint(draft: TaskDraft, seen: Set[str]) -> None:
    if draft.fingerprint in seen:
        raise DuplicateContent(draft.fingerprint)
    seen.add(draft.fingerprint)


class AITaskGenerator:
    """
    (kind, count) 배치 하나당 생성 요청 1회.
    구조가 깨진 응답이면 MalformedResponse 를 그대로 올린다 (호출자가 로그 처리).
    """

    def __init__(self, db: Session, client, rng: Optional[random.Random] = None):
        self.db = db
        self.client = client
        self.rng = rng or random.Random()
        self.store = TaskPoolStore(db)

    def generate(
        self,
        kind: str,
        count: int,
        *,
        day: dt.date,
        focus_categories: Optional[Sequence[str]] = None,
        now: Optional[dt.datetime] = None,
    ) -> AIGenerationResult:
        result = AIGenerationResult(kind=kind, requested=count)
        if count <= 0:
            return result

        settings_for_kind = KIND_SETTINGS[kind]
        recent = self.store.recent_fingerprints(day)
        samples = [
            {"title": t.title, "description": t.description, "skill_category": t.skill_category}
            for t in TemplateSelector(self.db, self.rng).sample(kind, SAMPLE_TEMPLATE_COUNT)
        ]

        focus = [c for c in (focus_categories or []) if c in SKILL_CATEGORIES] or list(SKILL_CATEGORIES)
        tokens = pick_constraint_tokens(count, self.rng)
        nonce = f"{self.rng.getrandbits(32):08x}"
        prompt_kinds = [roll_prompt_kind(self.rng) for _ in range(count)]

        prompt = build_task_generation_prompt(
            kind_label=settings_for_kind["label"],
            count=count,
            time_limit_text=settings_for_kind["time_limit_text"],
            word_limit_text=settings_for_kind["word_limit_text"],
            samples=samples,
            focus_categories=focus,
            constraint_tokens=tokens,
            prompt_kinds=prompt_kinds,
            nonce=nonce,
        )
        response = self.client.generate(
            FEATURE_TASK_GENERATE,
            as_messages("task_generation", prompt),
            temperature=0.8,
        )
        candidates = parse_task_candidates(response.content)

        drafts: List[TaskDraft] = []
        for i, candidate in enumerate(candidates[:count]):
            base_title = candidate.title.strip()
            base_description = candidate.description.strip()
            if not base_title or not base_description:
                result.skipped += 1
                continue

            # 모델이 돌려준 prompt_kind 는 무시하고 미리 굴린 값 사용
            prompt_kind = prompt_kinds[i]
            title, description = format_by_prompt_kind(
                prompt_kind, base_title, base_description, settings_for_kind["word_limit_text"]
            )
            title = title.strip()
            description = description.strip()

            token = tokens[i]
            if token not in description:
                description = f"{description}\n\nConstraint word: {token}"

            category = candidate.attr_type if candidate.attr_type in focus else self.rng.choice(focus)

            draft = TaskDraft(
                kind=kind,
                title=title,
                description=description,
                prompt_kind=prompt_kind,
                skill_category=category,
                source=TaskSource.ai_generated.value,
                xp_reward=settings_for_kind["ai_xp_reward"],
                category_reward=settings_for_kind["ai_category_reward"],
                difficulty=candidate.difficulty if candidate.difficulty in ("easy", "normal", "hard") else "normal",
                time_limit=settings_for_kind["time_limit"],
                word_limit_min=settings_for_kind["word_limit_min"],
                word_limit_max=settings_for_kind["word_limit_max"],
            )
            try:
                _claim_fingerprint(draft, recent)
            except DuplicateContent:
                logger.info("[ai_generate] duplicate content skipped: %s", base_title)
                result.duplicates += 1
                continue
            drafts.append(draft)

        if drafts:
            with transaction(self.db):
                rows = self.store.add_drafts(day, drafts, created_at=now)
                result.task_ids = [r.id for r in rows]

        result.generated = len(drafts)
        logger.info("[ai_generate] %s generated %d/%d", kind, result.generated, count)
        return result
