import io
import json

import mongomock
import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.db import ensure_indexes, get_database


ANALYSIS = {
    "score": 88,
    "atsFriendly": True,
    "strengths": ["Clear impact statements", "Relevant cloud experience"],
    "improvements": ["Add a skills section"],
    "keywords": {"found": ["Python", "AWS"], "missing": ["Kubernetes"]},
    "summary": "Strong backend resume with measurable results.",
}

FENCED_REPLY = (
    "Here is my evaluation of the resume.\n\n"
    "```json\n" + json.dumps(ANALYSIS) + "\n```\n\n"
    "Let me know if you need anything else."
)

PROSE_REPLY = "This resume is decent overall, but it needs more numbers and clearer headings."


class FakeAIService:
    """Stands in for AIService; records every call."""

    def __init__(self, reply=FENCED_REPLY, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def analyze_resume(self, api_key, prompt):
        self.calls.append({"api_key": api_key, "prompt": prompt})
        if self.error is not None:
            raise self.error
        return self.reply


class BytesReader:
    """Minimal async reader with the UploadFile.read interface."""

    def __init__(self, data: bytes):
        self.buf = io.BytesIO(data)

    async def read(self, size: int = -1) -> bytes:
        return self.buf.read(size)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        mongodb_database="resume_review_test",
        upload_dir=str(tmp_path / "uploads"),
        jwt_secret="test-secret",
        max_upload_bytes=64 * 1024,
        upload_chunk_size=4 * 1024,
    )


@pytest.fixture
def mongo():
    return mongomock.MongoClient()


@pytest.fixture
def db(mongo, settings):
    database = get_database(mongo, settings)
    ensure_indexes(database)
    return database


@pytest.fixture
def fake_ai():
    return FakeAIService()


@pytest.fixture
def client(settings, mongo, fake_ai):
    """FastAPI TestClient over an in-memory MongoDB and a fake AI provider."""
    from app.main import create_app

    app = create_app(settings, mongo_client=mongo, ai_service=fake_ai)
    with TestClient(app) as test_client:
        yield test_client


def register(client, email="alice@example.com", password="secret123"):
    r = client.post("/api/register", json={
        "email": email,
        "password": password,
        "confirmPassword": password,
    })
    assert r.status_code == 201, r.text
    return {"Authorization": f"Bearer {r.json()['token']}"}
