"""Pytest fixtures for testing"""

import pytest
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Callable, Dict, Generator, List, Optional
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from deckvault.api.dependencies import get_identity_client, get_today
from deckvault.api.main import create_app
from deckvault.domain.exceptions import PersistenceError, UnauthenticatedError
from deckvault.domain.models import (
    CurrentUser,
    LedgerState,
    SubmissionRecord,
    SubmissionStatus,
    SubmissionType,
)
from deckvault.infrastructure.database.models import Base, ProfileRow
from deckvault.infrastructure.database.session import get_db


# Test database; a file so worker threads can open their own connections
TEST_DATABASE_URL = "sqlite:///./test_deckvault.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False, "timeout": 30})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Pinned "today" for API tests
TODAY = date(2025, 3, 15)


class FakeIdentity:
    """Identity provider stand-in: access token -> user"""

    def __init__(self, users: Dict[str, CurrentUser]):
        self.users = users

    async def get_current_user(self, access_token: str) -> CurrentUser:
        user = self.users.get(access_token)
        if user is None:
            raise UnauthenticatedError("Invalid authentication. Please sign in again.")
        return user


class InMemoryLedger:
    """Credit ledger port with the same compare-and-swap contract as the SQL repository"""

    def __init__(self):
        self.rows: Dict[str, LedgerState] = {}
        self.fail_writes = False
        self.writes = 0

    def load(self, user_id: str) -> LedgerState:
        row = self.rows.get(user_id)
        if row is None:
            return LedgerState(user_id=user_id)
        return replace(row, balances=dict(row.balances), last_granted=dict(row.last_granted))

    def compare_and_swap(self, state, balances, last_granted) -> bool:
        if self.fail_writes:
            raise PersistenceError("ledger_write failed")

        current = self.rows.get(state.user_id)
        if state.exists != (current is not None):
            return False
        if current is not None and current.version != state.version:
            return False

        self.rows[state.user_id] = LedgerState(
            user_id=state.user_id,
            balances=dict(balances),
            last_granted=dict(last_granted),
            version=state.version + 1,
            exists=True,
        )
        self.writes += 1
        return True

    def seed(self, user_id: str, balances: Dict[str, int], last_granted: Dict[str, date]):
        self.rows[user_id] = LedgerState(
            user_id=user_id,
            balances=dict(balances),
            last_granted=dict(last_granted),
            version=1,
            exists=True,
        )


class InMemorySubmissions:
    """Submission port backed by a list"""

    def __init__(self):
        self.records: List[SubmissionRecord] = []
        self.fail_create = False

    def create(self, user_id, submission_type, status, submission_month, tier, details) -> SubmissionRecord:
        if self.fail_create:
            raise PersistenceError("submission_create failed")

        record = SubmissionRecord(
            id=f"sub_{len(self.records) + 1}",
            user_id=user_id,
            submission_type=submission_type,
            status=status,
            submission_month=submission_month,
            created_at=datetime.now(timezone.utc),
            details=dict(details),
        )
        self.records.append(record)
        return record

    def count_queued(self, user_id: str, submission_type: SubmissionType, submission_month: str) -> int:
        return sum(
            1
            for r in self.records
            if r.user_id == user_id
            and r.submission_type == submission_type
            and r.status == SubmissionStatus.QUEUED
            and r.submission_month == submission_month
        )

    def count_by_type(self, submission_type: SubmissionType) -> int:
        return sum(1 for r in self.records if r.submission_type == submission_type)

    def list_active_for_user(self, user_id: str) -> List[SubmissionRecord]:
        active = (SubmissionStatus.PENDING, SubmissionStatus.QUEUED, SubmissionStatus.IN_PROGRESS)
        return [r for r in reversed(self.records) if r.user_id == user_id and r.status in active]

    def update_status(self, submission_id: str, status: SubmissionStatus) -> Optional[SubmissionRecord]:
        for r in self.records:
            if r.id == submission_id:
                r.status = status
                return r
        return None


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def add_profile(db: Session) -> Callable[..., ProfileRow]:
    """Insert a member profile"""

    def _add(user_id: str, tier: Optional[str] = None, role: str = "user", email: Optional[str] = None) -> ProfileRow:
        row = ProfileRow(id=user_id, email=email or f"{user_id}@example.com", patreon_tier=tier, role=role)
        db.add(row)
        db.commit()
        return row

    return _add


@pytest.fixture
def identity() -> FakeIdentity:
    return FakeIdentity(
        {
            "token-wizard": CurrentUser(user_id="user_wizard", email="wizard@example.com"),
            "token-duke": CurrentUser(user_id="user_duke", email="duke@example.com"),
            "token-emissary": CurrentUser(user_id="user_emissary", email="emissary@example.com"),
            "token-knight": CurrentUser(user_id="user_knight", email="knight@example.com"),
            "token-admin": CurrentUser(user_id="user_admin", email="admin@example.com"),
            "token-stranger": CurrentUser(user_id="user_stranger", email="stranger@example.com"),
        }
    )


@pytest.fixture
def client(db: Session, identity: FakeIdentity) -> TestClient:
    """Create FastAPI test client with test database and a fake identity provider"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_identity_client] = lambda: identity
    app.dependency_overrides[get_today] = lambda: TODAY
    return TestClient(app)


@pytest.fixture
def ledger_port() -> InMemoryLedger:
    return InMemoryLedger()


@pytest.fixture
def submission_port() -> InMemorySubmissions:
    return InMemorySubmissions()


@pytest.fixture
def session_factory(db: Session) -> sessionmaker:
    """Session factory bound to the test database, for tests that need one session per thread"""
    return TestingSessionLocal
