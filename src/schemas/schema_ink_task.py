import datetime as dt
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# ---------- 작업 ----------
class TaskRecordOut(ORMModel):
    id: int
    task_id: int
    kind: str
    status: str
    content: Optional[str] = None
    word_count: int
    time_spent: int
    score: Optional[float] = None
    ai_feedback: Optional[str] = None
    xp_earned: int
    category_earned: int
    submitted_at: Optional[dt.datetime] = None
    completed_at: Optional[dt.datetime] = None


class DailyTaskOut(ORMModel):
    id: int
    task_date: dt.date
    kind: str
    title: str
    description: str
    requirements: Optional[str] = None
    prompt_kind: str
    time_limit: Optional[int] = None
    word_limit_min: Optional[int] = None
    word_limit_max: Optional[int] = None
    skill_category: str
    xp_reward: int
    category_reward: int
    difficulty: str
    source: str
    fingerprint: str
    sort_order: int
    is_claimed: bool
    is_completed: bool


class PoolTaskOut(ORMModel):
    task: DailyTaskOut
    record: Optional[TaskRecordOut] = None
    has_started: bool
    is_completed: bool


class StartTaskResponse(ORMModel):
    record: TaskRecordOut
    is_resume: bool


class DraftReq(BaseModel):
    content: str = ""
    time_spent: int = Field(0, ge=0)


class SubmitReq(BaseModel):
    content: str = Field(min_length=1)
    time_spent: int = Field(0, ge=0)


class SubmitTaskResponse(BaseModel):
    record: TaskRecordOut
    xp_awarded: int
    level: Optional[int] = None
    current_streak: Optional[int] = None
    new_achievements: List[Dict[str, Any]] = []
    feedback: Optional[Dict[str, Any]] = None
    evaluated: bool


# ---------- 챌린지 ----------
class DailyChallengeOut(ORMModel):
    id: int
    challenge_date: dt.date
    challenge_type: str
    title: str
    description: str
    target_value: int
    current_value: int
    xp_reward: int
    is_completed: bool
    completed_at: Optional[dt.datetime] = None


class WeeklySubmissionOut(ORMModel):
    id: int
    status: str
    content: Optional[str] = None
    word_count: int
    time_spent: int
    score: Optional[float] = None
    xp_earned: int
    submitted_at: Optional[dt.datetime] = None


class WeeklyChallengeOut(ORMModel):
    id: int
    week_start: dt.date
    week_end: dt.date
    title: str
    theme: str
    description: str
    requirements: Optional[str] = None
    skill_category: Optional[str] = None
    word_limit_min: Optional[int] = None
    word_limit_max: Optional[int] = None
    xp_reward: int
    is_completed: bool


class WeeklyViewOut(ORMModel):
    challenge: WeeklyChallengeOut
    submission: Optional[WeeklySubmissionOut] = None
    has_submission: bool
    is_completed: bool


class WeeklySubmitResponse(BaseModel):
    challenge: WeeklyChallengeOut
    submission: WeeklySubmissionOut
    xp_awarded: int
    feedback: Optional[Dict[str, Any]] = None


# ---------- 생성 / 스케줄러 ----------
class ManualGenerateReq(BaseModel):
    preset: bool = True
    ai: bool = False
    ai_count: int = Field(3, ge=1, le=20)
    challenge: bool = True


class SchedulerStatusOut(BaseModel):
    is_running: bool
    jobs: Dict[str, Optional[str]]
    last_tick: Optional[Dict[str, Any]] = None
    today_tasks: List[Dict[str, Any]]
    last_ai_generation: Optional[dt.datetime] = None
