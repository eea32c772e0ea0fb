# src/services/ai_configs.py
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from mojing_ai.utils.openai_client import OpenAIClient
from src.config.settings import settings
from src.models.ai import AiConfig

logger = logging.getLogger(__name__)


def has_active_ai_config(db: Session) -> bool:
    count = db.execute(
        select(func.count(AiConfig.id)).where(
            or_(AiConfig.is_active.is_(True), AiConfig.is_default.is_(True))
        )
    ).scalar_one()
    return int(count) > 0


def get_active_ai_config(db: Session) -> Optional[AiConfig]:
    # is_active 우선, 그다음 is_default
    return (
        db.execute(
            select(AiConfig)
            .where(or_(AiConfig.is_active.is_(True), AiConfig.is_default.is_(True)))
            .order_by(AiConfig.is_active.desc(), AiConfig.id.asc())
            .limit(1)
        )
        .scalars()
        .first()
    )


def build_text_generator(db: Session) -> Optional[OpenAIClient]:
    """활성 설정이 없거나 키가 없으면 None (= AdapterUnavailable)"""
    config = get_active_ai_config(db)
    if config is None:
        return None
    try:
        return OpenAIClient(
            api_key=settings.openai_api_key,
            model=config.model,
            base_url=config.base_url or settings.openai_base_url,
        )
    except ValueError as e:
        logger.warning("[ai_config] text generator unavailable: %s", e)
        return None


def ensure_default_ai_config(db: Session) -> Optional[AiConfig]:
    """API 키가 설정돼 있고 ai_configs 가 비어 있으면 기본 행 생성"""
    if not settings.openai_api_key:
        return None
    exists = db.execute(select(func.count(AiConfig.id))).scalar_one()
    if exists:
        return None
    row = AiConfig(
        name="default",
        provider="openai",
        model=settings.openai_model,
        base_url=settings.openai_base_url,
        is_active=True,
        is_default=True,
    )
    db.add(row)
    db.commit()
    logger.info("[ai_config] default config created (model=%s)", row.model)
    return row
