"""
Shared fixtures: an app wired to in-memory SQLite, an in-memory media host
and a fake Google provider.
"""

import unittest
from dataclasses import replace

from fastapi.testclient import TestClient

from projectshelf.config import Settings
from projectshelf.context import AppContext
from projectshelf.database import build_engine, build_session_factory, init_db
from projectshelf.main import create_app
from projectshelf.services.auth import FederatedProfile
from projectshelf.services.media import InMemoryMediaHost

TEST_SETTINGS = Settings(
    env="test",
    database_url="sqlite://",
    jwt_secret="test-secret",
    client_url="http://localhost:5173",
    server_url="http://testserver",
)


class FakeGoogleProvider:
    def __init__(self, profile: FederatedProfile = None):
        self.profile = profile or FederatedProfile(
            provider_id="google-123",
            display_name="Ada Lovelace",
            email="ada@gmail.com",
            picture="https://lh3.googleusercontent.com/ada.png",
        )
        self.codes = []
        # set to an exception to simulate a failed token exchange
        self.failure = None

    def authorization_url(self) -> str:
        return "https://accounts.google.com/o/oauth2/auth?client_id=test"

    def fetch_profile(self, code: str) -> FederatedProfile:
        self.codes.append(code)
        if self.failure is not None:
            raise self.failure
        return self.profile


def build_context(settings=TEST_SETTINGS, media_host="memory", oauth=None) -> AppContext:
    engine = build_engine(settings.database_url)
    init_db(engine)
    return AppContext(
        settings=settings,
        engine=engine,
        session_factory=build_session_factory(engine),
        media_host=InMemoryMediaHost() if media_host == "memory" else media_host,
        oauth=oauth,
    )


class ApiTestCase(unittest.TestCase):
    settings = TEST_SETTINGS
    oauth = None
    media_host = "memory"

    def setUp(self):
        self.context = build_context(self.settings, media_host=self.media_host, oauth=self.oauth)
        self.client = TestClient(create_app(context=self.context))

    def tearDown(self):
        self.context.engine.dispose()

    def with_settings(self, **overrides):
        """Rebuild the app with changed settings (fresh database)."""
        self.context.engine.dispose()
        self.settings = replace(TEST_SETTINGS, **overrides)
        self.setUp()

    def session(self):
        return self.context.session_factory()

    def register(self, username="alice", email="a@x.com", password="secret1") -> dict:
        response = self.client.post(
            "/api/auth/register",
            json={"username": username, "email": email, "password": password},
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def auth(self, token: str) -> dict:
        return {"Authorization": f"Bearer {token}"}

    def create_project(self, token: str, **fields) -> dict:
        body = {"title": "My Demo!", "overview": "A small demo project"}
        body.update(fields)
        response = self.client.post("/api/projects", json=body, headers=self.auth(token))
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()
