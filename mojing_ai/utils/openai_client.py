# mojing_ai/utils/openai_client.py
"""
OpenAI API 클라이언트
墨境 작업 생성/평가 모듈의 텍스트 생성 어댑터
"""
import os
import logging
from dataclasses import dataclass
from typing import Optional, List, Dict
from openai import OpenAI, APIConnectionError, APIError, AuthenticationError, RateLimitError
from dotenv import load_dotenv

from mojing_ai.utils.errors import AdapterCallFailed

# 환경 변수 로드
load_dotenv()

logger = logging.getLogger(__name__)

# 기능 태그 (라우팅/계량용, 코어 입장에서는 불투명한 값)
FEATURE_TASK_GENERATE = "mojing_task_generate"
FEATURE_TASK_EVALUATE = "mojing_task_evaluate"
FEATURE_WEEKLY_EVALUATE = "mojing_weekly_evaluate"

_MAX_TOKENS_BY_FEATURE = {
    FEATURE_TASK_GENERATE: 2000,
    FEATURE_TASK_EVALUATE: 1200,
    FEATURE_WEEKLY_EVALUATE: 1500,
}


@dataclass
class GenerationResult:
    content: str
    feature_tag: str
    total_tokens: Optional[int] = None


class OpenAIClient:
    """墨境용 OpenAI API 클라이언트 (Chat)"""

    DEFAULT_MODEL = "gpt-4o-mini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
    ):
        """OpenAI 클라이언트 초기화"""
        api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ValueError("OPENAI_API_KEY 환경변수가 설정되지 않았습니다.")

        kwargs = {"api_key": api_key}
        if base_url:
            kwargs["base_url"] = base_url
        self.client = OpenAI(**kwargs)
        self.model = model or self.DEFAULT_MODEL
        logger.info(f"OpenAI 클라이언트 초기화 완료 (모델: {self.model})")

    def chat_completion(
        self,
        messages: List[Dict[str, str]],
        max_tokens: int = 300,
        temperature: float = 0.7,
        response_format: Optional[Dict] = None
    ) -> GenerationResult:
        """
        채팅 완성 API 호출

        Args:
            messages: [{"role": "user", "content": "..."}]
            max_tokens: 최대 토큰 수
            temperature: 응답 창의성 (0.0~1.0)
            response_format: 응답 형식 (예: {"type": "json_object"})
        """
        try:
            kwargs = {
                "model": self.model,
                "messages": messages,
                "max_tokens": max_tokens,
                "temperature": temperature
            }

            if response_format:
                kwargs["response_format"] = response_format

            response = self.client.chat.completions.create(**kwargs)

            result = (response.choices[0].message.content or "").strip()
            total_tokens = response.usage.total_tokens if response.usage else None
            logger.debug(f"API 호출 성공 (토큰: {total_tokens})")
            return GenerationResult(content=result, feature_tag="", total_tokens=total_tokens)

        except AuthenticationError as e:
            logger.error("OpenAI API 키 인증 오류")
            raise AdapterCallFailed("authentication failed") from e
        except RateLimitError as e:
            logger.warning("API 요청 한도 초과")
            raise AdapterCallFailed("rate limited") from e
        except APIConnectionError as e:
            logger.error("OpenAI API 연결 오류")
            raise AdapterCallFailed("connection error") from e
        except APIError as e:
            # 5xx, 잘못된 요청 등 나머지 SDK 오류
            logger.error(f"OpenAI API 오류: {e}")
            raise AdapterCallFailed(f"provider error: {type(e).__name__}") from e

    def generate(
        self,
        feature_tag: str,
        messages: List[Dict[str, str]],
        temperature: float = 0.7,
    ) -> GenerationResult:
        """
        코어가 사용하는 어댑터 계약:
        Generate(featureTag, messages, {temperature}) -> {content}
        """
        max_tokens = _MAX_TOKENS_BY_FEATURE.get(feature_tag, 1000)
        logger.info(f"[{feature_tag}] 생성 요청 (temperature={temperature}, max_tokens={max_tokens})")
        result = self.chat_completion(
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
            response_format={"type": "json_object"},
        )
        result.feature_tag = feature_tag
        return result
