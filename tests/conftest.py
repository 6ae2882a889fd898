from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.core.database import Base, get_db
from app.core import notifier as notifier_module
from app.core.notifier import Notifier, get_notifier
from app.core.rate_limit import limiter
from app.services.otp_store import OTPStore
from app.services.otp_service import OTPService

# In-memory database, one connection shared by every session
engine_test = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine_test)


class RecordingNotifier(Notifier):
    """Keeps delivered codes so tests can play the user's phone."""

    channel = "test"

    def __init__(self):
        self.sent = []

    async def send(self, identifier, code):
        self.sent.append((identifier, code))

    def last_code(self, identifier):
        return [code for ident, code in self.sent if ident == identifier][-1]


class FakeClock:
    def __init__(self, start=datetime(2026, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine_test)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine_test)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def store(db, clock):
    return OTPStore(db, clock=clock, expiry_minutes=5)


@pytest.fixture
def otp_service(store, notifier):
    return OTPService(store, notifier, throttle_max=5, throttle_window_hours=1)


@pytest.fixture
def client(db, notifier):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    limiter_enabled = limiter.enabled
    limiter.enabled = False
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        limiter.enabled = limiter_enabled


class FakeResponse:
    def __init__(self, status, body):
        self.status = status
        self.body = body

    async def json(self, content_type=None):
        return self.body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    """Stands in for aiohttp.ClientSession; records every POST."""

    posts = []
    status = 201
    body = {"messageId": "abc-123"}

    def __init__(self, *args, **kwargs):
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def post(self, url, json=None, headers=None):
        FakeSession.posts.append({"url": url, "json": json, "headers": headers})
        return FakeResponse(FakeSession.status, FakeSession.body)


@pytest.fixture
def fake_http(monkeypatch):
    FakeSession.posts = []
    FakeSession.status = 201
    FakeSession.body = {"messageId": "abc-123"}
    monkeypatch.setattr(notifier_module.aiohttp, "ClientSession", FakeSession)
    return FakeSession
