"""
Pytest configuration and fixtures

Every test gets a fresh in-memory SQLite schema, a zero-delay sync queue and
an in-memory user service, so nothing touches a real database or network.
"""
import os

# Must be set before training_service is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-the-training-service")

from typing import Any, Dict, List, Set

import pytest
from httpx import ASGITransport, AsyncClient

from training_service.core.database import Base, SessionLocal, engine
from training_service.core.dependencies import get_sync_queue, get_user_service
from training_service.core.security import create_access_token
from training_service.db import models
from training_service.db.result_store import ResultStore
from training_service.main import app
from training_service.services.sync_service import SyncQueue
from training_service.services.user_service_client import (
    TeamRef,
    UserProfile,
    UserServiceClient,
    UserServiceError,
)


class FakeUserService(UserServiceClient):
    """In-memory user service: team memberships plus a log of stats pushes."""

    def __init__(self):
        self.memberships: Dict[int, Set[int]] = {}
        self.team_checks: List[tuple] = []
        self.stats: List[tuple] = []
        self.fail_membership = False
        self.fail_stats = False

    def add_member(self, user_id: int, *team_ids: int) -> None:
        self.memberships.setdefault(user_id, set()).update(team_ids)

    async def get_user(self, user_id: int, token: str) -> UserProfile:
        if self.fail_membership:
            raise UserServiceError("user service down", status_code=503)
        teams = sorted(self.memberships.get(user_id, set()))
        return UserProfile(id=user_id, teams=[TeamRef(id=t) for t in teams])

    async def check_team_access(self, user_id: int, team_id: int, token: str) -> bool:
        self.team_checks.append((user_id, team_id))
        if self.fail_membership:
            raise UserServiceError("user service down", status_code=503)
        return team_id in self.memberships.get(user_id, set())

    async def get_team_members(self, team_id: int, token: str) -> List[Dict[str, Any]]:
        return [{"id": uid} for uid, teams in sorted(self.memberships.items()) if team_id in teams]

    async def update_user_stats(self, user_id: int, data: Dict[str, Any], token: str) -> Any:
        if self.fail_stats:
            raise UserServiceError("stats endpoint failed", status_code=500)
        self.stats.append((user_id, data, token))
        return data


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def user_service():
    return FakeUserService()


@pytest.fixture
def sync_queue():
    return SyncQueue(delay=0)


@pytest.fixture
def store(db_session, sync_queue, user_service):
    return ResultStore(db_session, sync_queue=sync_queue, user_service=user_service)


@pytest.fixture
def strength_test(db_session):
    test = models.Test(name="Bench Press 1RM", test_type="strength", unit="kg")
    db_session.add(test)
    db_session.commit()
    db_session.refresh(test)
    return test


@pytest.fixture
def client(db_session, user_service, sync_queue):
    """Async client against the app, wired to the fake user service and test queue."""
    app.dependency_overrides[get_user_service] = lambda: user_service
    app.dependency_overrides[get_sync_queue] = lambda: sync_queue
    yield AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
    app.dependency_overrides.clear()


def auth_headers(user_id: int, role: str = "player", **claims) -> dict:
    token = create_access_token({"user_id": user_id, "role": role, **claims})
    return {"Authorization": f"Bearer {token}"}
