"""
언어 모델 계층 예외
"""


class AIError(Exception):
    """mojing_ai 계층 공통 예외"""


class MalformedResponse(AIError):
    """모델 응답에서 기대한 구조(JSON 배열/객체)를 찾지 못함"""


class AdapterUnavailable(AIError):
    """활성화된 AI 설정이 없음 (생성 단계는 조용히 건너뜀)"""


class AdapterCallFailed(AIError):
    """API 호출 자체가 실패 (인증, 한도, 연결 등)"""
