# src/services/template_selector.py
from __future__ import annotations

import logging
import random
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.models.daily_task import TaskSource
from src.models.task_template import TaskTemplate
from src.services.task_drafts import (
    KIND_SETTINGS,
    PROMPT_KINDS,
    TaskDraft,
    format_by_prompt_kind,
    roll_prompt_kind,
)

logger = logging.getLogger(__name__)


class TemplateSelector:
    def __init__(self, db: Session, rng: Optional[random.Random] = None):
        self.db = db
        self.rng = rng or random.Random()

    def active_templates(self, kind: str) -> List[TaskTemplate]:
        return (
            self.db.execute(
                select(TaskTemplate)
                .where(TaskTemplate.kind == kind, TaskTemplate.is_active.is_(True))
                .order_by(TaskTemplate.id.asc())
            )
            .scalars()
            .all()
        )

    def sample(self, kind: str, count: int) -> List[TaskTemplate]:
        """비복원 무작위 추출 (AI 프롬프트 예시용)"""
        templates = self.active_templates(kind)
        return self.rng.sample(templates, min(max(0, count), len(templates)))

    def build_drafts(
        self,
        kind: str,
        count: int,
        exclude_fingerprints: Iterable[str] = (),
    ) -> List[TaskDraft]:
        """
        활성 템플릿을 섞은 뒤 앞에서부터 초안을 만든다.
        - fingerprint 가 exclude 에 있으면 건너뛰고 다음 템플릿으로
        - 사용된 템플릿은 use_count + 1 (commit 은 호출자 transaction 에서)
        """
        if count <= 0:
            return []

        templates = self.active_templates(kind)
        self.rng.shuffle(templates)

        seen = set(exclude_fingerprints)
        word_limit_text = KIND_SETTINGS[kind]["word_limit_text"]
        drafts: List[TaskDraft] = []

        for template in templates:
            if len(drafts) >= count:
                break

            prompt_kind = template.prompt_kind if template.prompt_kind in PROMPT_KINDS else roll_prompt_kind(self.rng)
            title, description = format_by_prompt_kind(
                prompt_kind, template.title, template.description, word_limit_text
            )
            draft = TaskDraft(
                kind=kind,
                title=title,
                description=description,
                prompt_kind=prompt_kind,
                skill_category=template.skill_category,
                source=TaskSource.preset.value,
                xp_reward=template.xp_reward,
                category_reward=template.category_reward,
                difficulty=template.difficulty,
                requirements=template.requirements,
                time_limit=template.time_limit,
                word_limit_min=template.word_limit_min,
                word_limit_max=template.word_limit_max,
                template_id=template.id,
            )
            if draft.fingerprint in seen:
                logger.info("[template_selector] duplicate skipped template=%s", template.code)
                continue

            seen.add(draft.fingerprint)
            template.use_count = int(template.use_count or 0) + 1
            drafts.append(draft)

        return drafts
