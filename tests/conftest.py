# tests/conftest.py
# -*- coding: utf-8 -*-
import os
import json
import tempfile
from types import SimpleNamespace

import httpx
import openai
import pytest
from sqlalchemy import delete

# =====================================================================================
# Test environment (must be in place before config.py is imported)
# =====================================================================================
_fd, _DB_PATH = tempfile.mkstemp(prefix="featherweight_test_", suffix=".sqlite")
os.close(_fd)
os.environ["APP_ENV"] = "testing"
os.environ["FLASK_ENV"] = "testing"
os.environ["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{_DB_PATH}"
os.environ["DATABASE_URL"] = os.environ["SQLALCHEMY_DATABASE_URI"]
os.environ["APP_CHECK_ENFORCED"] = "0"
os.environ["OPENAI_API_KEY"] = "sk-test"
os.environ.setdefault("SECRET_KEY", "testing-secret")

from config import TestingConfig  # noqa: E402
from featherweight_functions import create_app  # noqa: E402
from featherweight_functions.extensions import db  # noqa: E402
from featherweight_functions.models import ParseQuota, VoiceQuota, AnalysisQuota  # noqa: E402


# =====================================================================================
# Flask app on a temporary SQLite file, schema created once per session
# =====================================================================================
@pytest.fixture(scope="session")
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.engine.dispose()
    try:
        os.remove(_DB_PATH)
    except OSError:
        pass


@pytest.fixture(autouse=True)
def _clean_quota_tables(app):
    yield
    with app.app_context():
        db.session.rollback()
        for model in (ParseQuota, VoiceQuota, AnalysisQuota):
            db.session.execute(delete(model))
        db.session.commit()
        db.session.remove()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db_session(app):
    with app.app_context():
        try:
            yield db.session
        finally:
            db.session.rollback()
            db.session.close()


@pytest.fixture
def ledger(db_session):
    from featherweight_functions.services.quota_ledger import QuotaLedger
    return QuotaLedger(db_session, tz="UTC", max_attempts=5)


# =====================================================================================
# Tokens
# =====================================================================================
@pytest.fixture
def make_token(app):
    from featherweight_functions.services.tokens import create_id_token

    def _make(uid="user-1", provider="password", test_user=False, **kwargs):
        with app.app_context():
            return create_id_token(uid, provider=provider, test_user=test_user, **kwargs)
    return _make


@pytest.fixture
def auth_headers(make_token):
    return {"Authorization": f"Bearer {make_token('user-1')}"}


@pytest.fixture
def app_check_token(app):
    from featherweight_functions.services.tokens import create_app_check_token
    with app.app_context():
        return create_app_check_token()


@pytest.fixture
def enforce_app_check(app):
    app.config["APP_CHECK_ENFORCED"] = True
    yield
    app.config["APP_CHECK_ENFORCED"] = False


# =====================================================================================
# External services: the OpenAI SDK client (no network) and backoff sleeps
# =====================================================================================
def _status_error(status, message):
    request = httpx.Request("POST", "https://api.openai.com/v1/test")
    response = httpx.Response(status, request=request, json={"error": {"message": message}})
    return openai.APIStatusError(message, response=response, body={"error": {"message": message}})


def _chat_reply(content):
    message = SimpleNamespace(role="assistant", content=content)
    return SimpleNamespace(choices=[SimpleNamespace(index=0, message=message, finish_reason="stop")])


class FakeOpenAI:
    """Stands in for ``openai.OpenAI``; answers queued replies in order."""

    def __init__(self):
        self.calls = []
        self.responses = []
        self.client_kwargs = None
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create("chat.completions")))
        self.audio = SimpleNamespace(transcriptions=SimpleNamespace(create=self._create("audio.transcriptions")))

    # queueing ---------------------------------------------------------------
    def reply(self, content):
        if not isinstance(content, str) and content is not None:
            content = json.dumps(content)
        self.responses.append(_chat_reply(content))

    def transcription(self, text):
        self.responses.append(SimpleNamespace(text=text))

    def error(self, status, message="upstream error"):
        self.responses.append(_status_error(status, message))

    # SDK surface ------------------------------------------------------------
    def __call__(self, **kwargs):
        self.client_kwargs = kwargs
        return self

    def _create(self, endpoint):
        def create(**kwargs):
            self.calls.append({"endpoint": endpoint, **kwargs})
            if self.responses:
                outcome = self.responses.pop(0)
                if isinstance(outcome, Exception):
                    raise outcome
                return outcome
            if endpoint == "audio.transcriptions":
                return SimpleNamespace(text="bench press three sets of eight at one hundred")
            return _chat_reply("{}")
        return create


@pytest.fixture(autouse=True)
def fake_openai(monkeypatch):
    from featherweight_functions.services import openai_client

    fake = FakeOpenAI()
    monkeypatch.setattr(openai_client, "OpenAI", fake)
    sleeps = []
    monkeypatch.setattr(openai_client.time, "sleep", sleeps.append)
    fake.sleeps = sleeps
    yield fake
