"""
Pytest configuration and shared fixtures
- in-memory SQLite (StaticPool) + 테스트마다 새 스키마
- 스크립트된 텍스트 생성기 / 기록용 보상 서비스
"""
import datetime as dt
import json
import random
from itertools import count
from unittest.mock import MagicMock

import httpx
import openai
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import src.models  # noqa: F401
from mojing_ai.utils.errors import AdapterCallFailed
from mojing_ai.utils.openai_client import GenerationResult, OpenAIClient
from src.db.database import Base
from src.models.ai import AiConfig
from src.services.rewards import RewardResult, StreakResult
from src.services.task_drafts import TaskDraft
from src.services.task_pool import TaskPoolStore
from src.services.template_bank import DEFAULT_TEMPLATES, import_templates

# 2026-03-04 는 수요일 (주 시작 2026-03-02)
DAY = dt.date(2026, 3, 4)
NOW = dt.datetime(2026, 3, 4, 9, 0, 0)


class FakeTextGenerator:
    """
    OpenAIClient.generate 대역
    - responses: 순서대로 돌려줄 문자열/dict/list, 예외면 raise
    - responder: 호출마다 응답을 만드는 함수 (responses 보다 우선)
    """

    def __init__(self, responses=None, responder=None):
        self.responses = list(responses or [])
        self.responder = responder
        self.calls = []

    def generate(self, feature_tag, messages, temperature=0.7):
        self.calls.append({"feature_tag": feature_tag, "messages": messages, "temperature": temperature})
        if self.responder is not None:
            item = self.responder(len(self.calls))
        elif self.responses:
            item = self.responses.pop(0)
        else:
            raise AdapterCallFailed("no scripted response left")
        if isinstance(item, Exception):
            raise item
        if not isinstance(item, str):
            item = json.dumps(item, ensure_ascii=False)
        return GenerationResult(content=item, feature_tag=feature_tag)


def unique_candidates(n=5, category="conflict"):
    """호출할 때마다 겹치지 않는 후보 n개를 돌려주는 responder"""
    seq = count(1)

    def responder(_call_no):
        return {
            "tasks": [
                {
                    "title": f"Generated task {i}",
                    "description": f"Write a scene about object number {i}.",
                    "attr_type": category,
                    "difficulty": "normal",
                }
                for i in (next(seq) for _ in range(n))
            ]
        }

    return responder


def evaluation_payload(score=85):
    dims = {name: {"score": 8, "comment": "ok"} for name in ("completion", "technique", "creativity", "expression", "detail")}
    return {
        "score": score,
        "dimensions": dims,
        "highlights": ["vivid detail"],
        "improvements": ["tighten the ending"],
        "overall": "solid work",
    }


def provider_error(status=500, message="upstream 500"):
    """openai SDK 가 실제로 던지는 상태 코드 오류"""
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(status, request=request)
    if status >= 500:
        return openai.InternalServerError(message, response=response, body=None)
    return openai.BadRequestError(message, response=response, body=None)


def failing_client(error):
    """SDK 호출이 error 를 던지는 실제 OpenAIClient"""
    client = OpenAIClient(api_key="test-key")
    client.client = MagicMock()
    client.client.chat.completions.create.side_effect = error
    return client


class FakeRewards:
    """보상 서브시스템 계약 기록용"""

    def __init__(self, level=1, fail_awards=False):
        self.level = level
        self.fail_awards = fail_awards
        self.awards = []
        self.achievement_events = []
        self.streak_calls = 0

    def current_level(self):
        return self.level

    def award_xp(self, event_type, reference_id, **kwargs):
        if self.fail_awards:
            raise RuntimeError("reward store down")
        self.awards.append({"event_type": event_type, "reference_id": reference_id, **kwargs})
        xp = kwargs.get("xp_amount") or 0
        return RewardResult(xp_awarded=xp, total_xp=xp, level=self.level, leveled_up=False)

    def update_streak_status(self, today=None):
        self.streak_calls += 1
        return StreakResult(current_streak=1, longest_streak=1, continued=False)

    def check_and_unlock_achievements(self, event_type, context=None):
        self.achievement_events.append(event_type)
        return []


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(bind=engine, autoflush=False)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def templates(db):
    """기본 템플릿 뱅크 (inkdot 12 / inkline 6 / inkchapter 3)"""
    import_templates(db, DEFAULT_TEMPLATES)
    return DEFAULT_TEMPLATES


@pytest.fixture
def small_templates(db):
    """preset 이 10개를 못 채우는 작은 뱅크 (inkdot 4 / inkline 2)"""
    rows = [t for t in DEFAULT_TEMPLATES if t["kind"] == "inkdot"][:4]
    rows += [t for t in DEFAULT_TEMPLATES if t["kind"] == "inkline"][:2]
    import_templates(db, rows)
    return rows


@pytest.fixture
def ai_config(db):
    row = AiConfig(name="test", provider="openai", model="gpt-4o-mini", is_active=True, is_default=True)
    db.add(row)
    db.commit()
    return row


@pytest.fixture
def rewards():
    return FakeRewards()


def make_task(db, day=DAY, kind="inkdot", title="A Telling Habit", description="Show a habit.",
              source="preset", category="character", created_at=None, xp_reward=10):
    draft = TaskDraft(
        kind=kind,
        title=title,
        description=description,
        prompt_kind="normal",
        skill_category=category,
        source=source,
        xp_reward=xp_reward,
        category_reward=1,
    )
    rows = TaskPoolStore(db).add_drafts(day, [draft], created_at=created_at)
    db.commit()
    return rows[0]
