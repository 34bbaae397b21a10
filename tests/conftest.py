"""Global pytest fixtures for deterministic test environment."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio

from jobmatch_api.store import LocalStorage


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 1.0) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


@pytest.fixture(autouse=True)
def _isolate_runtime_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear local runtime env that can leak into tests on developer machines."""
    for key in (
        "JOBMATCH_DATA_DIR",
        "JOBMATCH_SESSION_SECRET",
        "JOBMATCH_SESSION_TTL_SECONDS",
        "JOBMATCH_SESSION_SWEEP_INTERVAL_SECONDS",
        "JOBMATCH_COOKIE_SECURE",
        "JOBMATCH_ALLOW_DUPLICATE_APPLICATIONS",
        "JOBMATCH_AUTH_RATE_LIMIT_RPM",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def store(tmp_path: Path, clock: FakeClock):
    """Initialized store in a temp directory; no background sweep."""
    local = LocalStorage(data_dir=tmp_path / "data", session_sweep_interval_seconds=0, clock=clock)
    await local.init()
    yield local
    await local.stop()


@pytest_asyncio.fixture
async def store_factory(tmp_path: Path, clock: FakeClock):
    """Factory for stores sharing one data directory (for reload tests)."""
    stores: list[LocalStorage] = []

    async def _make(**kwargs) -> LocalStorage:
        kwargs.setdefault("session_sweep_interval_seconds", 0)
        kwargs.setdefault("clock", clock)
        local = LocalStorage(data_dir=tmp_path / "shared", **kwargs)
        await local.init()
        stores.append(local)
        return local

    yield _make

    for local in stores:
        await local.stop()


class Seeder:
    """Creates users with profiles, ticking the clock between writes."""

    def __init__(self, store: LocalStorage, clock: FakeClock) -> None:
        self.store = store
        self.clock = clock

    async def employer(self, email: str = "boss@acme.test", company: str = "Acme"):
        user = await self.store.upsert_user({"email": email, "userType": "employer"})
        self.clock.advance()
        profile = await self.store.create_company_profile({"userId": user.id, "companyName": company})
        self.clock.advance()
        return user, profile

    async def seeker(self, email: str = "seeker@mail.test"):
        user = await self.store.upsert_user({"email": email, "userType": "job_seeker"})
        self.clock.advance()
        profile = await self.store.create_job_seeker_profile({"userId": user.id, "skills": ["python"]})
        self.clock.advance()
        return user, profile

    async def posting(self, company_id: str, **fields):
        payload = {
            "companyId": company_id,
            "title": "Engineer",
            "description": "Build things",
            "jobType": "full_time",
            "experienceLevel": "mid",
        }
        payload.update(fields)
        posting = await self.store.create_job_posting(payload)
        self.clock.advance()
        return posting


@pytest.fixture
def seed(store: LocalStorage, clock: FakeClock) -> Seeder:
    return Seeder(store, clock)
