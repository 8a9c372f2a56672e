"""Pytest configuration and fixtures for the test suite."""
import json

import pytest
import requests

from config import Config
from study_assistant import create_app
from study_assistant.extensions import db


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    OPENROUTER_API_KEY = "test-openrouter"
    EMBEDDING_API_KEY = "test-embedding"
    EMBEDDING_DIMENSIONS = 3
    EMBEDDING_WORKERS = 4
    ELEVENLABS_API_KEY = "test-elevenlabs"
    TTS_REQUEST_DELAY = 0


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code=200, json_data=None, text=None, content=b"", lines=None):
        self.status_code = status_code
        self._json = json_data
        if text is None:
            text = json.dumps(json_data) if json_data is not None else ""
        self.text = text
        self.content = content
        self._lines = lines or []
        self.closed = False

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._json is None:
            raise ValueError("No JSON body")
        return self._json

    def iter_lines(self):
        for line in self._lines:
            yield line.encode("utf-8")

    def close(self):
        self.closed = True


def keyword_vector(text):
    """Deterministic 3-d embedding: cats, dogs, everything else."""
    lowered = text.lower()
    if "cat" in lowered:
        return [1.0, 0.0, 0.0]
    if "dog" in lowered:
        return [0.0, 1.0, 0.0]
    return [0.0, 0.0, 1.0]


def completion(text):
    return FakeResponse(json_data={"choices": [{"message": {"content": text}}]})


def completion_stream(tokens):
    lines = [f"data: {json.dumps({'choices': [{'delta': {'content': t}}]})}" for t in tokens]
    lines.append("data: [DONE]")
    return FakeResponse(lines=lines)


class FakeProviders:
    """
    Routes requests.post / requests.get to per-endpoint handlers.

    Each handler receives (url, kwargs) and returns a FakeResponse or raises.
    """

    def __init__(self):
        self.calls = []
        self.handlers = {
            "/embeddings": lambda url, kw: FakeResponse(
                json_data={"data": [{"embedding": keyword_vector(kw["json"]["input"])}]}
            ),
            "/chat/completions": lambda url, kw: completion("Hello from the assistant"),
            "/text-to-speech/": lambda url, kw: FakeResponse(content=kw["json"]["text"].encode("utf-8")),
            "/voices": lambda url, kw: FakeResponse(json_data={"voices": []}),
        }

    def on(self, fragment, handler):
        self.handlers[fragment] = handler

    def calls_to(self, fragment):
        return [c for c in self.calls if fragment in c[0]]

    def __call__(self, url, **kwargs):
        self.calls.append((url, kwargs))
        for fragment, handler in self.handlers.items():
            if fragment in url:
                return handler(url, kwargs)
        raise AssertionError(f"Unexpected request to {url}")


@pytest.fixture
def providers(monkeypatch):
    fake = FakeProviders()
    monkeypatch.setattr(requests, "post", fake)
    monkeypatch.setattr(requests, "get", fake)
    return fake


@pytest.fixture
def app(providers):
    app = create_app(TestConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_client(client):
    resp = client.post("/auth/register", json={
        "username": "student",
        "email": "student@example.com",
        "password": "secret123",
    })
    assert resp.status_code == 201
    return client


@pytest.fixture
def user(app_ctx):
    from study_assistant.models.user import User

    u = User(username="reader", email="reader@example.com")
    u.set_password("secret123")
    db.session.add(u)
    db.session.commit()
    return u


@pytest.fixture
def make_note(app_ctx, user):
    from study_assistant.models.note import Note

    def _make(title, content, owner=None):
        note = Note(user_id=(owner or user).id, title=title, content=content)
        db.session.add(note)
        db.session.commit()
        return note

    return _make
