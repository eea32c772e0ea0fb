# src/services/coverage.py
from __future__ import annotations

from typing import List, Mapping

from src.models.task_template import TaskKind
from src.services.task_drafts import SKILL_CATEGORIES


def least_covered_categories(category_counts: Mapping[str, int], n: int) -> List[str]:
    """
    카테고리별 작업 수 오름차순 (동률은 알파벳순) 으로 앞에서 n개.
    최소 1개는 돌려준다.
    """
    ranked = sorted(SKILL_CATEGORIES, key=lambda c: (category_counts.get(c, 0), c))
    return ranked[: max(1, n)]


def pick_backfill_kind(kind_counts: Mapping[str, int]) -> str:
    inkdot = kind_counts.get(TaskKind.inkdot.value, 0)
    inkline = kind_counts.get(TaskKind.inkline.value, 0)

    # inkline 이 하나도 없으면 inkline 우선
    if inkline == 0:
        return TaskKind.inkline.value
    if inkdot < inkline:
        return TaskKind.inkdot.value
    return TaskKind.inkline.value
