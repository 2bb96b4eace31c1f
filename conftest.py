import json
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from alea.app import create_app
from alea.config import Settings
from alea.routes.auth import verify_token
from alea.services import build_services


class FakeInference:
    """Scripted stand-in for the generative model; records every prompt."""

    def __init__(self):
        self.responses = []
        self.calls = []

    def script(self, *responses):
        self.responses.extend(responses)

    async def generate(self, prompt_parts):
        self.calls.append(list(prompt_parts))
        if not self.responses:
            raise AssertionError("Unexpected inference call")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def course_json(days=7, title="Python Basics in a Week", fenced=False):
    outline = {
        "title": title,
        "dailyModules": [
            {"day": d, "title": f"Day {d} topic", "description": f"What day {d} covers"}
            for d in range(1, days + 1)
        ],
    }
    text = json.dumps(outline)
    return f"```json\n{text}\n```" if fenced else text


def flashcards_json(count=3):
    return json.dumps({"cards": [{"q": f"Question {i}?", "a": f"Answer {i}"} for i in range(count)]})


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        gemini_api_key="test-key",
        secret_key="test-secret",
        sweep_interval_seconds=0,
        log_level="WARNING",
    )


@pytest.fixture
def inference():
    return FakeInference()


@pytest.fixture
def services(settings, inference):
    services = build_services(settings, inference=inference)
    yield services
    services.engine.dispose()


@pytest.fixture
def app(services):
    return create_app(services=services)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


def signup(client, services, username, password="secret123"):
    client.post("/auth/register", json={"username": username, "password": password})
    response = client.post("/auth/login", json={"username": username, "password": password})
    token = response.json()["token"]
    user = verify_token(services.settings, token)
    return SimpleNamespace(
        token=token,
        user_id=user.user_id,
        username=username,
        password=password,
        headers={"Authorization": f"Bearer {token}"},
    )


@pytest.fixture
def alice(client, services):
    return signup(client, services, "alice")


@pytest.fixture
def bob(client, services):
    return signup(client, services, "bob")


@pytest.fixture
def make_course(client, inference, services):
    """Generate a course through the API and return its id."""

    def make(user, days=3, topic="Python Basics"):
        inference.script(course_json(days))
        response = client.post("/jobs/course", json={"topic": topic, "duration": "7_days"},
                               headers=user.headers)
        assert response.status_code == 202
        courses = services.store.list("courses", where={"userId": user.user_id},
                                      order_by="createdAt", descending=True)
        return courses[0]["id"]

    return make
