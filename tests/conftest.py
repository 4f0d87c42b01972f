"""
Shared fixtures: an isolated in-memory database per test, a TestClient
wired to it, user factories that return bearer headers, and in-process
counter stores for the rate limiter.
"""
import os

os.environ.setdefault("EXECBOARD_DATABASE_URL", "sqlite://")
os.environ.setdefault("EXECBOARD_AUTO_CREATE_TABLES", "false")

from functools import lru_cache

import pytest
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.orm import sessionmaker

from app import cache
from app.auth.models import User
from app.auth.service import auth_service
from app.config import settings
from app.database import create_app_engine, get_db, init_db
from app.main import app
from app.models import CandidateProfile, EmployerProfile, Job, Tier
from app.rate_limit import limiter

PASSWORD = "correct-horse-battery"


@lru_cache(maxsize=1)
def password_hash() -> str:
    return auth_service.hash_password(PASSWORD)


# =============================================================================
# Counter stores
# =============================================================================

class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeCounterStore:
    """INCR/EXPIRE/GET/SET with expiry driven by a FakeClock."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.values = {}
        self.expires_at = {}
        self.incr_calls = 0
        self.expire_calls = 0

    def _purge(self, key):
        deadline = self.expires_at.get(key)
        if deadline is not None and self.clock.now >= deadline:
            self.values.pop(key, None)
            self.expires_at.pop(key, None)

    async def incr(self, key):
        self._purge(key)
        self.incr_calls += 1
        self.values[key] = int(self.values.get(key, 0)) + 1
        return self.values[key]

    async def expire(self, key, seconds):
        self.expire_calls += 1
        self.expires_at[key] = self.clock.now + seconds
        return True

    async def ttl(self, key):
        self._purge(key)
        if key not in self.values:
            return -2
        deadline = self.expires_at.get(key)
        if deadline is None:
            return -1
        return int(deadline - self.clock.now)

    async def get(self, key):
        self._purge(key)
        return self.values.get(key)

    async def set(self, key, value, ex=None):
        self.values[key] = value
        if ex:
            self.expires_at[key] = self.clock.now + ex
        return True

    async def delete(self, *keys):
        for key in keys:
            self.values.pop(key, None)
            self.expires_at.pop(key, None)

    async def ping(self):
        return True


class FailingStore:
    """Every call fails the way an unreachable Redis does."""

    async def incr(self, key):
        raise RedisConnectionError("connection refused")

    async def expire(self, key, seconds):
        raise RedisConnectionError("connection refused")

    async def ttl(self, key):
        raise RedisConnectionError("connection refused")

    async def get(self, key):
        raise RedisConnectionError("connection refused")

    async def set(self, key, value, ex=None):
        raise RedisConnectionError("connection refused")

    async def delete(self, *keys):
        raise RedisConnectionError("connection refused")

    async def ping(self):
        raise RedisConnectionError("connection refused")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def counter_store(clock):
    store = FakeCounterStore(clock)
    cache.set_redis(store)
    yield store
    cache.set_redis(None)


@pytest.fixture
def failing_store():
    store = FailingStore()
    cache.set_redis(store)
    yield store
    cache.set_redis(None)


# =============================================================================
# Database & client
# =============================================================================

@pytest.fixture
def session_factory():
    engine = create_app_engine("sqlite://")
    init_db(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory, tmp_path, monkeypatch):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    monkeypatch.setattr(settings, "upload_dir", str(tmp_path / "resumes"))
    monkeypatch.setattr(limiter, "enabled", False)
    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


# =============================================================================
# Factories
# =============================================================================

def bearer(user: User) -> dict:
    token, _ = auth_service.create_access_token(user)
    return {"Authorization": f"Bearer {token}"}


def create_user(db, role: str, email: str, status: str = "ACTIVE", **profile_fields) -> User:
    user = User(email=email, hashed_password=password_hash(), role=role, status=status)
    db.add(user)
    db.flush()
    if role == "CANDIDATE":
        db.add(CandidateProfile(user_id=user.id, full_name=profile_fields.pop("full_name", "Casey Candidate"), **profile_fields))
    elif role == "EMPLOYER":
        db.add(EmployerProfile(
            user_id=user.id,
            org_name=profile_fields.pop("org_name", "Mercy Health"),
            org_type=profile_fields.pop("org_type", "HEALTH_SYSTEM"),
            **profile_fields,
        ))
    db.commit()
    db.refresh(user)
    return user


def create_tier(db, name: str = "Standard", price_cents: int = 29900, **fields) -> Tier:
    tier = Tier(name=name, price_cents=price_cents, currency="usd", duration_days=30, **fields)
    db.add(tier)
    db.commit()
    db.refresh(tier)
    return tier


def create_job(db, employer: User, tier: Tier, status: str = "LIVE", title: str = "Chief Nursing Officer") -> Job:
    job = Job(
        employer_id=employer.employer_profile.id,
        tier_id=tier.id,
        title=title,
        level="C_SUITE",
        location="Boston, MA",
        description_rich="Lead nursing strategy across a five-hospital system.",
        status=status,
    )
    db.add(job)
    db.commit()
    db.refresh(job)
    return job


@pytest.fixture
def candidate(db):
    return create_user(db, "CANDIDATE", "candidate@example.com")


@pytest.fixture
def employer(db):
    return create_user(db, "EMPLOYER", "employer@example.com", admin_approved=True)


@pytest.fixture
def admin_user(db):
    return create_user(db, "ADMIN", "admin@example.com")


@pytest.fixture
def tier(db):
    return create_tier(db)
