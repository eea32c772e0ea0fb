# src/services/scheduler.py
from __future__ import annotations

import datetime as dt
import logging
import threading
from typing import Callable, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from src.config.clock import LOCAL_TZ, now_local
from src.config.settings import settings
from src.db.database import SessionLocal
from src.services.ai_configs import build_text_generator
from src.services.cleanup import cleanup_old_data
from src.services.ink_tasks import InkTaskService

logger = logging.getLogger(__name__)

JOB_DAILY_GENERATION = "daily_generation"
JOB_CLEANUP = "cleanup"
JOB_POLL = "poll"
JOB_STARTUP_CHECK = "startup_check"


def default_service_factory(db) -> InkTaskService:
    return InkTaskService(db, text_generator=build_text_generator(db))


class TaskScheduler:
    """
    프로세스당 하나 만들어서 넘겨 쓰는 스케줄러 핸들
    - 매일 00:01 작업 생성 + 일일 챌린지 확보
    - 매일 00:00 만료 데이터 정리
    - 5분마다 정책 tick (빈 날 / preset 누락 / 오래된 풀)
    - 시작 직후 1회 점검
    - start/stop 은 여러 번 불러도 안전
    """

    def __init__(
        self,
        session_factory: Callable = SessionLocal,
        service_factory: Callable = default_service_factory,
        scheduler=None,
    ):
        self.session_factory = session_factory
        self.service_factory = service_factory
        self._scheduler = scheduler or AsyncIOScheduler(timezone=LOCAL_TZ)
        self._started = False
        self._lock = threading.Lock()
        self.last_tick: Optional[Dict] = None

    @property
    def is_running(self) -> bool:
        return self._started

    # --------------------- lifecycle ---------------------
    def start(self) -> bool:
        with self._lock:
            if self._started:
                logger.info("[scheduler] already running")
                return False

            self._scheduler.add_job(
                self.run_daily_generation,
                CronTrigger(hour=settings.daily_generation_hour, minute=settings.daily_generation_minute, timezone=LOCAL_TZ),
                id=JOB_DAILY_GENERATION,
                replace_existing=True,
            )
            self._scheduler.add_job(
                self.run_cleanup,
                CronTrigger(hour=settings.cleanup_hour, minute=settings.cleanup_minute, timezone=LOCAL_TZ),
                id=JOB_CLEANUP,
                replace_existing=True,
            )
            self._scheduler.add_job(
                self.run_tick,
                IntervalTrigger(minutes=settings.poll_interval_minutes, timezone=LOCAL_TZ),
                id=JOB_POLL,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
            run_at = dt.datetime.now(LOCAL_TZ) + dt.timedelta(seconds=settings.startup_check_delay_seconds)
            self._scheduler.add_job(
                self.run_startup_check,
                DateTrigger(run_date=run_at, timezone=LOCAL_TZ),
                id=JOB_STARTUP_CHECK,
                replace_existing=True,
            )

            self._scheduler.start()
            self._started = True
            logger.info("[scheduler] started (poll every %d min)", settings.poll_interval_minutes)
            return True

    def stop(self) -> bool:
        with self._lock:
            if not self._started:
                return False
            self._scheduler.shutdown(wait=False)
            self._started = False
            logger.info("[scheduler] stopped")
            return True

    def status(self) -> Dict:
        jobs = {}
        for job in self._scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            jobs[job.id] = next_run.isoformat() if next_run else None
        return {"is_running": self._started, "jobs": jobs, "last_tick": self.last_tick}

    # --------------------- jobs ---------------------
    def _run(self, name: str, body: Callable):
        """job 하나 실행: 실패는 로그만 남기고 다음 실행에서 자연스럽게 재시도"""
        db = self.session_factory()
        try:
            result = body(db)
            logger.info("[scheduler] %s done: %s", name, result)
            return result
        except Exception:
            db.rollback()
            logger.exception("[scheduler] %s failed", name)
            return None
        finally:
            db.close()

    def run_daily_generation(self):
        def body(db):
            service = self.service_factory(db)
            now = now_local()
            result: Dict = {"errors": []}
            try:
                generated = service.policy.bootstrap_empty_day(now.date(), now=now)
                if generated is None:
                    # 이미 작업이 있으면 preset 만 (있으면 건너뜀)
                    generated = {"preset": service.policy.generate_presets(now.date(), now=now)}
                result.update(generated)
            except Exception as e:
                db.rollback()
                logger.exception("[scheduler] daily task generation failed")
                result["errors"].append(f"generation: {e}")

            # 작업 생성이 실패해도 일일 챌린지는 준비
            try:
                challenge = service.challenges.get_daily_challenge(now.date())
                result["challenge"] = challenge.challenge_type
            except Exception as e:
                db.rollback()
                logger.exception("[scheduler] daily challenge failed")
                result["errors"].append(f"challenge: {e}")
            return result

        return self._run(JOB_DAILY_GENERATION, body)

    def run_cleanup(self):
        return self._run(JOB_CLEANUP, lambda db: cleanup_old_data(db))

    def run_tick(self):
        def body(db):
            report = self.service_factory(db).policy.tick()
            self.last_tick = report
            return report

        return self._run(JOB_POLL, body)

    def run_startup_check(self):
        def body(db):
            service = self.service_factory(db)
            report = service.policy.tick()
            self.last_tick = report
            service.challenges.get_daily_challenge(now_local().date())
            return report

        return self._run(JOB_STARTUP_CHECK, body)
