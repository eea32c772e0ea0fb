# src/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import src.models  # noqa: F401  create_all 이 모든 테이블을 인식하도록
from src.config.settings import settings
from src.db.database import Base, SessionLocal, engine
from src.routers import ink_tasks
from src.services.ai_configs import ensure_default_ai_config
from src.services.scheduler import TaskScheduler
from src.services.template_bank import seed_default_templates

logging.basicConfig(level=settings.log_level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    - 앱 시작 시 테이블 생성, 기본 템플릿/AI 설정 준비
    - 스케줄러 시작 (00:01 작업 생성, 00:00 정리, 5분 tick, 시작 직후 점검)
    - 앱 종료 시 스케줄러 종료
    """
    Base.metadata.create_all(bind=engine)  # <- 지우지 마세요: 모델 기준으로 테이블 생성

    db = SessionLocal()
    try:
        if settings.seed_templates_on_startup:
            seeded = seed_default_templates(db)
            if seeded:
                logger.info("✅ 기본 템플릿 %d개 등록", seeded)
        ensure_default_ai_config(db)
    finally:
        db.close()

    scheduler = TaskScheduler()
    app.state.scheduler = scheduler
    if settings.scheduler_enabled:
        scheduler.start()
    else:
        logger.info("ℹ️ scheduler disabled by settings")

    try:
        yield
    finally:
        scheduler.stop()
        logger.info("스케줄러 종료됨")


app = FastAPI(lifespan=lifespan)

# CORS 설정
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 라우터 등록
app.include_router(ink_tasks.router)


# 확인용 엔드포인트
@app.get("/")
async def root():
    return {
        "message": "Mojing task engine is running",
        "version": "1.0.0",
    }
