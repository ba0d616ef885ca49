import json
from typing import List

import httpx
import pytest
from fastapi.testclient import TestClient

from gateway.core.config import Settings
from gateway.main import create_app
from gateway.services.container import build_services

APP_TOKEN = "app-token-alpha"
SLOW_APP_TOKEN = "app-token-slow"
ADMIN_TOKEN = "admin-token-123"
DESKTOP_SECRET = "desktop-shared-secret"
UPSTREAM_KEY = "upstream-key-xyz"
FRONTEND = "https://nagusamecs.github.io"


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class UpstreamRecorder:
    """Plays the upstream notes API and keeps every request it receives."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.status_code = 200
        self.error = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json={"ok": True, "query": dict(request.url.params)})

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


def make_settings(**overrides) -> Settings:
    values = dict(
        ENVIRONMENT="testing",
        UPSTREAM_API_URL="https://upstream.test/",
        UPSTREAM_API_KEY=UPSTREAM_KEY,
        APP_TOKENS={
            "alpha": {"token": APP_TOKEN, "active": True, "rateLimit": 5, "name": "Alpha"},
            "slow": {"token": SLOW_APP_TOKEN, "active": True, "rateLimit": 1},
            "retired": {"token": "app-token-retired", "active": False},
        },
        ADMIN_TOKEN=ADMIN_TOKEN,
        SESSION_SECRET="test-session-secret-with-enough-length",
        DESKTOP_CLIENT_SECRET=DESKTOP_SECRET,
        OFFICIAL_FRONTEND_RATE_LIMIT=3,
        SEED_QUIZZES=False,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def upstream():
    return UpstreamRecorder()


@pytest.fixture
def services(settings, clock, upstream):
    return build_services(settings, upstream_transport=httpx.MockTransport(upstream), clock=clock)


@pytest.fixture
def client(settings, services):
    return TestClient(create_app(settings, services))


def mcq(question="2 + 2?", options=("3", "4"), answers=(1,)):
    return {"type": "mcq", "question": question, "options": list(options), "correctAnswers": list(answers)}


def quiz_payload(title="Algebra", subject="Math", questions=None, **extra):
    return {"title": title, "subject": subject, "questions": questions or [mcq()], **extra}


def body(response: httpx.Response):
    return json.loads(response.content)
