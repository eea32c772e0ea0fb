# src/services/errors.py
from mojing_ai.utils.errors import (  # noqa: F401
    AIError,
    AdapterCallFailed,
    AdapterUnavailable,
    MalformedResponse,
)


class TaskEngineError(Exception):
    """작업 엔진 공통 예외"""


class NotFound(TaskEngineError):
    """참조한 task / record 가 없음"""


class ValidationFailed(TaskEngineError):
    """빈 제목/설명, 잘못된 패턴, 필수값 누락, 허용되지 않는 상태 전이"""


class DuplicateContent(TaskEngineError):
    """7일 윈도우 안에서 fingerprint 충돌 (후보는 조용히 버리고 카운트만)"""
