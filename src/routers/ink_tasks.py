# src/routers/ink_tasks.py
from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from src.db.database import get_db
from src.schemas.schema_ink_task import (
    DailyChallengeOut,
    DraftReq,
    ManualGenerateReq,
    PoolTaskOut,
    SchedulerStatusOut,
    StartTaskResponse,
    SubmitReq,
    SubmitTaskResponse,
    TaskRecordOut,
    WeeklyChallengeOut,
    WeeklySubmissionOut,
    WeeklySubmitResponse,
    WeeklyViewOut,
)
from src.services.ai_configs import build_text_generator
from src.services.errors import NotFound, ValidationFailed
from src.services.ink_tasks import InkTaskService

router = APIRouter(prefix="/ink", tags=["ink tasks"])


def get_ink_service(request: Request, db: Session = Depends(get_db)) -> InkTaskService:
    scheduler = getattr(request.app.state, "scheduler", None)
    return InkTaskService(db, text_generator=build_text_generator(db), scheduler=scheduler)


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, NotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


# ---------- 작업 ----------
@router.get("/tasks/today", response_model=List[PoolTaskOut])
def get_today_tasks(kind: str = "all", service: InkTaskService = Depends(get_ink_service)):
    try:
        items = service.get_today_tasks(kind)
    except ValidationFailed as e:
        raise _http_error(e)
    return [PoolTaskOut.model_validate(item) for item in items]


@router.post("/tasks/{task_id}/start", response_model=StartTaskResponse)
def start_task(task_id: int, service: InkTaskService = Depends(get_ink_service)):
    try:
        result = service.start_task(task_id)
    except NotFound as e:
        raise _http_error(e)
    return StartTaskResponse.model_validate(result)


@router.put("/records/{record_id}/draft", response_model=TaskRecordOut)
def save_draft(record_id: int, req: DraftReq, service: InkTaskService = Depends(get_ink_service)):
    try:
        return service.save_draft(record_id, req.content, req.time_spent)
    except (NotFound, ValidationFailed) as e:
        raise _http_error(e)


@router.post("/records/{record_id}/submit", response_model=SubmitTaskResponse)
def submit_task(record_id: int, req: SubmitReq, service: InkTaskService = Depends(get_ink_service)):
    try:
        result = service.submit_task(record_id, req.content, req.time_spent)
    except (NotFound, ValidationFailed) as e:
        raise _http_error(e)
    return SubmitTaskResponse(
        record=TaskRecordOut.model_validate(result.record),
        xp_awarded=result.reward.xp_awarded if result.reward else 0,
        level=getattr(result.reward, "level", None),
        current_streak=getattr(result.streak, "current_streak", None),
        new_achievements=result.new_achievements,
        feedback=result.feedback,
        evaluated=result.evaluated,
    )


@router.get("/stats")
def get_task_stats(service: InkTaskService = Depends(get_ink_service)) -> Dict[str, Any]:
    return service.get_task_stats()


# ---------- 챌린지 ----------
@router.get("/challenges/daily", response_model=DailyChallengeOut)
def get_daily_challenge(service: InkTaskService = Depends(get_ink_service)):
    return service.get_daily_challenge()


@router.get("/challenges/weekly", response_model=WeeklyViewOut)
def get_weekly_challenge(service: InkTaskService = Depends(get_ink_service)):
    view = service.get_weekly_challenge()
    if view is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="no weekly challenge available")
    return WeeklyViewOut.model_validate(view)


@router.put("/challenges/weekly/draft", response_model=WeeklySubmissionOut)
def save_weekly_draft(req: DraftReq, service: InkTaskService = Depends(get_ink_service)):
    try:
        return service.save_weekly_draft(req.content, req.time_spent)
    except (NotFound, ValidationFailed) as e:
        raise _http_error(e)


@router.post("/challenges/weekly/submit", response_model=WeeklySubmitResponse)
def submit_weekly(req: SubmitReq, service: InkTaskService = Depends(get_ink_service)):
    try:
        result = service.submit_weekly(req.content, req.time_spent)
    except (NotFound, ValidationFailed) as e:
        raise _http_error(e)
    reward = result["reward"]
    return WeeklySubmitResponse(
        challenge=WeeklyChallengeOut.model_validate(result["challenge"]),
        submission=WeeklySubmissionOut.model_validate(result["submission"]),
        xp_awarded=reward.xp_awarded if reward else 0,
        feedback=result["feedback"],
    )


# ---------- 생성 / 스케줄러 ----------
@router.post("/generate")
def manual_generate(req: ManualGenerateReq, service: InkTaskService = Depends(get_ink_service)) -> Dict[str, Any]:
    results = service.manual_generate(
        preset=req.preset,
        ai=req.ai,
        ai_count=req.ai_count,
        challenge=req.challenge,
    )
    if "challenge" in results:
        results["challenge"] = DailyChallengeOut.model_validate(results["challenge"]).model_dump()
    return results


@router.get("/scheduler/status", response_model=SchedulerStatusOut)
def get_scheduler_status(service: InkTaskService = Depends(get_ink_service)):
    return service.get_scheduler_status()
