"""Shared fixtures: in-memory database, app with a mocked oracle, ASGI clients."""

import os

# Settings are read at import time, so configure before importing genmode
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["OPENROUTER_API_KEY"] = "test-key"

import httpx
import pytest
from fastapi.testclient import TestClient

from genmode.db import Base, SessionLocal, engine
from genmode.llm_client import TransformClient
from genmode.main import create_app
from genmode.routers.translate import get_transform_client


class OracleStub:
    """Canned OpenRouter responses served through httpx.MockTransport."""

    def __init__(self):
        self.reply = "Bet, here's the tea *fr*"
        self.status_code = 200
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": "upstream"})
        return httpx.Response(200, json={"choices": [{"message": {"content": self.reply}}]})

    def client(self) -> TransformClient:
        return TransformClient(api_key="test-key", transport=httpx.MockTransport(self.handler))


@pytest.fixture(autouse=True)
def fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def oracle():
    return OracleStub()


@pytest.fixture
def app(oracle):
    application = create_app()

    async def _client():
        client = oracle.client()
        try:
            yield client
        finally:
            await client.aclose()

    application.dependency_overrides[get_transform_client] = _client
    return application


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def asgi_transport(app):
    return httpx.ASGITransport(app=app)


def signup(client, email="kai@example.com", password="hunter22", name="Kai"):
    r = client.post("/auth/signup", json={"email": email, "password": password, "name": name})
    assert r.status_code == 201, r.text
    return r.json()


def auth_headers(session_body):
    return {"Authorization": f"Bearer {session_body['access_token']}"}
