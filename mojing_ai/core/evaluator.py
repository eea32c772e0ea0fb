"""
제출물 AI 평가 서비스
- 일일 작업 평가 (mojing_task_evaluate)
- 주간 장문 평가 (mojing_weekly_evaluate)
"""

import logging
from typing import Optional

from mojing_ai.config.prompts import (
    as_messages,
    build_task_evaluation_prompt,
    build_weekly_evaluation_prompt,
)
from mojing_ai.core.schemas import Evaluation, parse_evaluation
from mojing_ai.utils.openai_client import FEATURE_TASK_EVALUATE, FEATURE_WEEKLY_EVALUATE

logger = logging.getLogger(__name__)


class SubmissionEvaluator:
    """제출물 평가 서비스 (구조가 깨진 응답이면 MalformedResponse)"""

    def __init__(self, client):
        self.client = client

    def evaluate_task(
        self,
        *,
        kind_label: str,
        title: str,
        description: str,
        requirements: Optional[str],
        skill_category: str,
        content: str,
    ) -> Evaluation:
        prompt = build_task_evaluation_prompt(
            kind_label=kind_label,
            title=title,
            description=description,
            requirements=requirements,
            skill_category=skill_category,
            content=content,
        )
        response = self.client.generate(
            FEATURE_TASK_EVALUATE,
            as_messages("task_evaluation", prompt),
            temperature=0.3,
        )
        evaluation = parse_evaluation(response.content)
        logger.info(f"작업 평가 완료: score={evaluation.score}")
        return evaluation

    def evaluate_weekly(
        self,
        *,
        title: str,
        theme: str,
        description: str,
        requirements: Optional[str],
        content: str,
        word_count: int,
    ) -> Evaluation:
        prompt = build_weekly_evaluation_prompt(
            title=title,
            theme=theme,
            description=description,
            requirements=requirements,
            content=content,
            word_count=word_count,
        )
        response = self.client.generate(
            FEATURE_WEEKLY_EVALUATE,
            as_messages("weekly_evaluation", prompt),
            temperature=0.3,
        )
        evaluation = parse_evaluation(response.content)
        logger.info(f"주간 평가 완료: score={evaluation.score}")
        return evaluation
