import json
import os
import uuid

# Settings are read at import time, so the environment goes first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("GEMINI_API_KEY", "test-key")
os.environ["REDIS_URL"] = "redis://127.0.0.1:6399/0"

import pytest
from fastapi.testclient import TestClient

from neetquiz.database import Base, SessionLocal, engine
import neetquiz.models  # noqa: F401
from neetquiz.main import app
from neetquiz.services.quiz_synthesizer import quiz_synthesizer
from neetquiz.utils.cache import cache_service
from neetquiz.utils.rate_limiter import rate_limiter


class FakeEngine:
    """Stands in for the generative engine; replays queued responses"""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.prompts = []

    def queue(self, *responses):
        self.responses.extend(responses)

    def generate(self, prompt):
        self.prompts.append(prompt)
        if not self.responses:
            raise RuntimeError("engine unavailable")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def build_quiz_payload(num_questions=5, subject="physics", difficulty="easy", prefix="Q"):
    return {
        "quizTitle": "Kinematics Basics",
        "quizDescription": "Motion in a straight line",
        "topic": "Kinematics",
        "subject": subject,
        "difficulty": difficulty,
        "questions": [
            {
                "questionText": f"{prefix}{i}: What is the SI unit of velocity?",
                "options": [
                    {"text": "m/s", "isCorrect": True},
                    {"text": "m/s^2", "isCorrect": False},
                    {"text": "N", "isCorrect": False},
                    {"text": "J", "isCorrect": False},
                ],
                "explanation": "Velocity is displacement per unit time.",
                "subject": subject,
                "difficulty": difficulty,
                "isPreviousYear": False,
            }
            for i in range(1, num_questions + 1)
        ],
    }


def build_quiz_response(**kwargs):
    return json.dumps(build_quiz_payload(**kwargs))


@pytest.fixture(autouse=True)
def isolate_shared_state(monkeypatch):
    rate_limiter.reset()
    monkeypatch.setattr(cache_service, "redis_client", None)
    yield
    rate_limiter.reset()


@pytest.fixture
def tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(tables):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def engine_factory():
    return FakeEngine


@pytest.fixture
def fake_engine(monkeypatch):
    fake = FakeEngine()
    monkeypatch.setattr(quiz_synthesizer, "engine", fake)
    return fake


@pytest.fixture
def quiz_response():
    return build_quiz_response


@pytest.fixture
def quiz_payload():
    return build_quiz_payload


@pytest.fixture
def user_id():
    return uuid.uuid4()


@pytest.fixture
def client(tables):
    return TestClient(app)


@pytest.fixture
def user_headers(user_id):
    return {"X-User-Id": str(user_id)}


@pytest.fixture
def admin_headers():
    return {"X-User-Id": str(uuid.uuid4()), "X-User-Role": "admin"}
