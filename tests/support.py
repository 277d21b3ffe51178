import unittest
from unittest import mock

from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app import config, database
from app.main import app
from app.sessions import InMemorySessionStore, get_session_store

ADMIN_USERNAME = "agent"
ADMIN_PASSWORD = "s3cret"


class ApiTestCase(unittest.TestCase):
    """Runs the app against a fresh in-memory database per test."""

    api_key = None

    def setUp(self) -> None:
        engine = database.make_engine("sqlite+aiosqlite://")
        session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

        self.now = 1_700_000_000.0
        self.store = InMemorySessionStore(clock=lambda: self.now)

        patchers = [
            mock.patch.object(database, "engine", engine),
            mock.patch.object(database, "AsyncSessionLocal", session_factory),
            mock.patch.object(config, "API_KEY", self.api_key),
            mock.patch.object(config, "ADMIN_USERNAME", ADMIN_USERNAME),
            mock.patch.object(config, "ADMIN_PASSWORD", ADMIN_PASSWORD),
        ]
        for patcher in patchers:
            patcher.start()
            self.addCleanup(patcher.stop)

        app.dependency_overrides[get_session_store] = lambda: self.store
        self.addCleanup(app.dependency_overrides.clear)

        # Entering the client runs the lifespan, which creates the tables
        self.client = TestClient(app)
        self.client.__enter__()
        self.addCleanup(self.client.__exit__, None, None, None)
        self.addCleanup(self.client.portal.call, engine.dispose)

    def login(self) -> dict:
        response = self.client.post(
            "/api/admin/login",
            json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD},
        )
        self.assertEqual(response.status_code, 200)
        return {"Authorization": f"Bearer {response.json()['token']}"}

    def post_score(self, email, score, completion_time=100, is_complete=True, **extra) -> dict:
        payload = {
            "playerName": email.split("@")[0],
            "email": email,
            "score": score,
            "levelsCompleted": 11 if is_complete else 3,
            "currentLevel": 12 if is_complete else 4,
            "completionTime": completion_time,
            "isComplete": is_complete,
        }
        payload.update(extra)
        response = self.client.post("/api/scores", json=payload)
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()

    def post_lead(self, **overrides):
        payload = {
            "name": "Jane Agent",
            "email": "jane@example.com",
            "company": "Apex Industries",
            "role": "IT Director",
            "completedAt": "2026-03-01T10:00:00+00:00",
            "completionTime": 600,
            "levelsCompleted": 11,
            "hintsUsed": 2,
            "totalAttempts": 15,
            "source": "tradeshow",
            "event": "ExpoWest",
        }
        payload.update(overrides)
        return self.client.post("/api/leads", json=payload)
