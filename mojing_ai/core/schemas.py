"""
모델 응답 스키마 + 엄격한 디코딩
구조가 맞지 않으면 MalformedResponse 로 실패 (정규식 긁어오기 없음)
"""
import json
import logging
import re
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from mojing_ai.utils.errors import MalformedResponse

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class TaskCandidate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = ""
    description: str = ""
    attr_type: Optional[str] = None
    difficulty: Optional[str] = None
    prompt_kind: Optional[str] = None


class TaskCandidateEnvelope(BaseModel):
    tasks: List[TaskCandidate]


class DimensionScore(BaseModel):
    score: float = Field(ge=0, le=10)
    comment: str = ""


class EvaluationDimensions(BaseModel):
    completion: DimensionScore
    technique: DimensionScore
    creativity: DimensionScore
    expression: DimensionScore
    detail: DimensionScore


class Evaluation(BaseModel):
    score: float = Field(ge=0, le=100)
    dimensions: EvaluationDimensions
    highlights: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    overall: str = ""


_candidates_adapter = TypeAdapter(Union[List[TaskCandidate], TaskCandidateEnvelope])


def _decode_json(text: str):
    raw = (text or "").strip()
    fenced = _FENCE_RE.match(raw)
    if fenced:
        raw = fenced.group(1)
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        logger.error(f"JSON 파싱 실패: {raw[:150]}")
        raise MalformedResponse("response is not valid JSON") from e


def parse_task_candidates(text: str) -> List[TaskCandidate]:
    """JSON 배열 또는 {"tasks": [...]} 형태만 허용"""
    data = _decode_json(text)
    try:
        parsed = _candidates_adapter.validate_python(data)
    except ValidationError as e:
        raise MalformedResponse(f"task candidates do not match schema: {e.error_count()} errors") from e
    if isinstance(parsed, TaskCandidateEnvelope):
        return parsed.tasks
    return parsed


def parse_evaluation(text: str) -> Evaluation:
    data = _decode_json(text)
    if not isinstance(data, dict):
        raise MalformedResponse("evaluation must be a JSON object")
    try:
        return Evaluation.model_validate(data)
    except ValidationError as e:
        raise MalformedResponse(f"evaluation does not match schema: {e.error_count()} errors") from e
