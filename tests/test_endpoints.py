import json
import os
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

TEST_DB_PATH = Path("test.db")
if TEST_DB_PATH.exists():
    TEST_DB_PATH.unlink()
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"

from storyweaver.main import app
from storyweaver.api.v1.endpoints import get_teller
from storyweaver.models.db import SessionLocal, StoryResponseLog
from storyweaver.schemas.story import DialogueBlock, NarrationBlock, StoryResult, StorySegment

client = TestClient(app)

SESSION_ID = "story_1761630008"
PARTIAL = StoryResult(segment=StorySegment(content=[NarrationBlock(text="The ro")]), reasoning="hm")
FINAL = StoryResult(
    segment=StorySegment(
        content=[NarrationBlock(text="The room is quiet."), DialogueBlock(character="Mia", text="Hello!")],
        sceneVisualPrompt="dim room",
    ),
    reasoning="hmm",
)


@pytest.fixture(autouse=True)
def patch_services(monkeypatch):
    def fake_generate(teller, request):
        return FINAL

    async def fake_stream_generate(teller, request):
        yield "partial", PARTIAL
        yield "final", FINAL

    def fake_list_models(teller):
        return ["deepseek-ai/deepseek-r1-0528"]

    monkeypatch.setattr("storyweaver.services.svc.generate", fake_generate)
    monkeypatch.setattr("storyweaver.services.svc.stream_generate", fake_stream_generate)
    monkeypatch.setattr("storyweaver.services.svc.list_models", fake_list_models)
    app.dependency_overrides[get_teller] = lambda: object()
    yield
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def clean_database():
    with SessionLocal() as session:
        session.query(StoryResponseLog).delete()
        session.commit()
    yield
    with SessionLocal() as session:
        session.query(StoryResponseLog).delete()
        session.commit()


def test_root():
    res = client.get("/")
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}


def test_models():
    res = client.get("/api/v1/models")
    assert res.status_code == 200
    assert res.json() == {"models": ["deepseek-ai/deepseek-r1-0528"]}


def test_story():
    res = client.post("/api/v1/story", json={"message": "hi", "session_id": SESSION_ID})
    assert res.status_code == 200
    data = res.json()
    assert data["segment"]["content"] == [
        {"type": "narration", "text": "The room is quiet."},
        {"type": "dialogue", "character": "Mia", "text": "Hello!"},
    ]
    assert data["segment"]["sceneVisualPrompt"] == "dim room"
    assert data["reasoning"] == "hmm"

    with SessionLocal() as session:
        saved = session.query(StoryResponseLog).filter_by(session_id=SESSION_ID).one()
        assert saved.user_message == "hi"
        assert saved.block_count == 2
        assert json.loads(saved.segment)["sceneVisualPrompt"] == "dim room"


def test_story_rejects_missing_message():
    res = client.post("/api/v1/story", json={"session_id": SESSION_ID})
    assert res.status_code == 422


def test_story_stream():
    with client.stream(
        "POST", "/api/v1/story/stream", json={"message": "hi", "session_id": SESSION_ID}
    ) as res:
        assert res.status_code == 200
        assert res.headers["content-type"].startswith("text/event-stream")
        body = "".join(res.iter_text())

    events = [
        json.loads(line[len("data: "):])
        for line in body.split("\n")
        if line.startswith("data: ")
    ]
    assert [event.get("type") for event in events] == ["partial", "final", None]
    assert events[0]["segment"]["content"] == [{"type": "narration", "text": "The ro"}]
    assert events[0]["reasoning"] == "hm"
    assert events[1]["segment"]["content"][1]["character"] == "Mia"
    assert events[-1] == {}

    with SessionLocal() as session:
        saved = session.query(StoryResponseLog).filter_by(session_id=SESSION_ID).one()
        assert saved.block_count == 2
        assert saved.reasoning == "hmm"
