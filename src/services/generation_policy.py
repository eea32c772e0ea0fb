# src/services/generation_policy.py
from __future__ import annotations

import datetime as dt
import logging
import random
from typing import Dict, Optional, Sequence

from sqlalchemy.orm import Session

from src.config.clock import now_local
from src.db.database import transaction
from src.models.daily_task import TaskSource
from src.models.task_template import TaskKind
from src.services.ai_configs import has_active_ai_config
from src.services.ai_generation import AIGenerationResult, AITaskGenerator
from src.services.coverage import least_covered_categories, pick_backfill_kind
from src.services.errors import AIError, AdapterUnavailable
from src.services.task_pool import TaskPoolStore
from src.services.template_selector import TemplateSelector

logger = logging.getLogger(__name__)

MAX_TASKS_PER_DAY = 20
# 로직 오류로 인한 폭주 방지용 상한
MAX_TASKS_PER_DAY_FAILSAFE = 200

PRESET_INKDOT_LIMIT = 10
PRESET_INKLINE_LIMIT = 5
BOOTSTRAP_TARGET = 10
BOOTSTRAP_FOCUS_COUNT = 6

STALE_AFTER = dt.timedelta(minutes=60)
STALE_BACKFILL_COUNT = 2


class GenerationPolicy:
    """
    하루 작업 풀의 상한/순서/트리거 판단
    - 일일 상한 20개, preset 먼저 (하루 1회), AI 는 활성 설정이 있을 때만
    """

    def __init__(self, db: Session, text_generator=None, rng: Optional[random.Random] = None):
        self.db = db
        self.text_generator = text_generator
        self.rng = rng or random.Random()
        self.store = TaskPoolStore(db)

    # --------------------- helpers ---------------------
    def remaining_slots(self, day: dt.date) -> int:
        return max(0, MAX_TASKS_PER_DAY - self.store.count_for_date(day))

    def ai_available(self) -> bool:
        return self.text_generator is not None and has_active_ai_config(self.db)

    def _require_adapter(self) -> None:
        if not self.ai_available():
            raise AdapterUnavailable("adapter unavailable")

    def _failsafe_tripped(self, day: dt.date) -> bool:
        total = self.store.count_for_date(day)
        if total >= MAX_TASKS_PER_DAY_FAILSAFE:
            logger.error("[policy] failsafe ceiling reached date=%s total=%d", day, total)
            return True
        return False

    # --------------------- preset ---------------------
    def generate_presets(self, day: dt.date, now: Optional[dt.datetime] = None) -> Dict:
        with transaction(self.db):
            existing_preset = self.store.count_for_date(day, source=TaskSource.preset.value)
            existing_total = self.store.count_for_date(day)

            if existing_preset > 0 or self.store.preset_run_for(day) is not None:
                logger.info("[policy] presets already ran date=%s count=%d, skipped", day, existing_preset)
                return {"generated": 0, "total": existing_total, "preset": existing_preset}

            remaining = max(0, MAX_TASKS_PER_DAY - existing_total)
            if remaining <= 0:
                self.store.mark_preset_run(day, 0, created_at=now)
                return {"generated": 0, "total": existing_total, "preset": 0}

            # inkdot 먼저, 남은 자리에 inkline
            inkdot_limit = min(PRESET_INKDOT_LIMIT, remaining)
            inkline_limit = min(PRESET_INKLINE_LIMIT, max(0, remaining - inkdot_limit))

            recent = self.store.recent_fingerprints(day)
            selector = TemplateSelector(self.db, self.rng)
            inkdot_drafts = selector.build_drafts(TaskKind.inkdot.value, inkdot_limit, recent)
            recent.update(d.fingerprint for d in inkdot_drafts)
            inkline_drafts = selector.build_drafts(TaskKind.inkline.value, inkline_limit, recent)

            self.store.add_drafts(day, inkdot_drafts + inkline_drafts, created_at=now)
            generated = len(inkdot_drafts) + len(inkline_drafts)
            # 0개여도 기록 → 이후 tick 에서 선택을 반복하지 않음
            self.store.mark_preset_run(day, generated, created_at=now)

        logger.info("[policy] presets generated date=%s inkdot=%d inkline=%d", day, len(inkdot_drafts), len(inkline_drafts))
        return {
            "generated": generated,
            "inkdot": len(inkdot_drafts),
            "inkline": len(inkline_drafts),
            "total": existing_total + generated,
        }

    # --------------------- ai ---------------------
    def generate_ai_tasks(
        self,
        kind: str,
        count: int,
        *,
        day: dt.date,
        focus_categories: Optional[Sequence[str]] = None,
        now: Optional[dt.datetime] = None,
    ) -> AIGenerationResult:
        try:
            self._require_adapter()
        except AdapterUnavailable as e:
            # 에러 아님, 그냥 건너뜀
            logger.info("[policy] AI generation skipped: %s", e)
            return AIGenerationResult(kind=kind, requested=count, success=False, error=str(e))

        allowed = min(count, self.remaining_slots(day))
        if allowed <= 0 or self._failsafe_tripped(day):
            return AIGenerationResult(kind=kind, requested=count)

        generator = AITaskGenerator(self.db, self.text_generator, self.rng)
        try:
            return generator.generate(kind, allowed, day=day, focus_categories=focus_categories, now=now)
        except AIError as e:
            logger.error("[policy] AI generation failed kind=%s err=%s", kind, e)
            return AIGenerationResult(kind=kind, requested=allowed, success=False, error=str(e))

    # --------------------- triggers ---------------------
    def bootstrap_empty_day(self, day: dt.date, now: Optional[dt.datetime] = None) -> Optional[Dict]:
        if self.store.count_for_date(day) != 0:
            return None

        logger.info("[policy] empty day %s: bootstrapping", day)
        preset = self.generate_presets(day, now=now)
        result = {"preset": preset, "ai": None}

        after_preset = self.store.count_for_date(day)
        need_ai = min(self.remaining_slots(day), max(0, BOOTSTRAP_TARGET - after_preset))
        if need_ai > 0 and self.ai_available():
            focus = least_covered_categories(self.store.counts_by_category(day), BOOTSTRAP_FOCUS_COUNT)
            result["ai"] = self.generate_ai_tasks(
                TaskKind.inkdot.value, need_ai, day=day, focus_categories=focus, now=now
            ).as_dict()
        return result

    def backfill_missing_presets(self, day: dt.date, now: Optional[dt.datetime] = None) -> Optional[Dict]:
        total = self.store.count_for_date(day)
        if total == 0 or self.store.count_for_date(day, source=TaskSource.preset.value) > 0:
            return None
        if self.store.preset_run_for(day) is not None:
            return None
        result = self.generate_presets(day, now=now)
        if result.get("generated"):
            logger.info("[policy] missing presets backfilled: %s", result)
        return result

    def backfill_stale_pool(self, day: dt.date, now: dt.datetime) -> Optional[Dict]:
        latest = self.store.latest_created_at(day)
        if latest is None or now - latest < STALE_AFTER:
            return None
        if self.remaining_slots(day) <= 0 or self._failsafe_tripped(day):
            return None
        if not self.ai_available():
            return None

        logger.info("[policy] no new task for %s, generating %d AI tasks", now - latest, STALE_BACKFILL_COUNT)
        focus = least_covered_categories(self.store.counts_by_category(day), STALE_BACKFILL_COUNT)
        kind = pick_backfill_kind(self.store.counts_by_kind(day))
        return self.generate_ai_tasks(
            kind, STALE_BACKFILL_COUNT, day=day, focus_categories=focus, now=now
        ).as_dict()

    def tick(self, day: Optional[dt.date] = None, now: Optional[dt.datetime] = None) -> Dict:
        """
        스케줄러 tick 1회: 세 검사 모두 매번 독립적으로 실행
        하나가 실패해도 나머지는 계속
        """
        now = now or now_local()
        day = day or now.date()
        report: Dict = {"date": day.isoformat(), "errors": []}

        checks = [
            ("bootstrap", lambda: self.bootstrap_empty_day(day, now=now)),
            ("missing_preset", lambda: self.backfill_missing_presets(day, now=now)),
            ("stale_backfill", lambda: self.backfill_stale_pool(day, now)),
        ]
        for name, check in checks:
            try:
                report[name] = check()
            except Exception as e:
                self.db.rollback()
                logger.exception("[policy] %s check failed", name)
                report["errors"].append(f"{name}: {e}")

        report["total"] = self.store.count_for_date(day)
        return report

    def manual_generate(
        self,
        *,
        day: dt.date,
        preset: bool = True,
        ai: bool = False,
        ai_count: int = 3,
        now: Optional[dt.datetime] = None,
    ) -> Dict:
        results: Dict = {}
        if preset:
            results["preset"] = self.generate_presets(day, now=now)
        if ai:
            results["ai_inkdot"] = self.generate_ai_tasks(TaskKind.inkdot.value, ai_count, day=day, now=now).as_dict()
            results["ai_inkline"] = self.generate_ai_tasks(
                TaskKind.inkline.value, max(1, ai_count - 1), day=day, now=now
            ).as_dict()
        return results

