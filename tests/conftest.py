"""Shared fixtures for the Callboard test-suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from callboard.models import Identity, Profile
from callboard.stores import (
    CastStore,
    CreativeStore,
    InMemoryDocumentStore,
    MembershipAuthority,
    ProductionStore,
    ProfileStore,
)


class TickingClock:
    """Deterministic clock that advances one step on every reading."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(seconds=1)) -> None:
        self.current = start or datetime(2024, 3, 1, 19, 30, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current += self.step
        return value


@pytest.fixture()
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture()
def documents() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture()
def profiles(documents, clock) -> ProfileStore:
    return ProfileStore(documents, clock=clock)


@pytest.fixture()
def membership(documents) -> MembershipAuthority:
    return MembershipAuthority(documents)


@pytest.fixture()
def productions(documents, profiles, membership, clock) -> ProductionStore:
    return ProductionStore(documents, profiles, membership, max_attempts=5, clock=clock)


@pytest.fixture()
def cast(documents, membership, clock) -> CastStore:
    return CastStore(documents, membership, clock=clock)


@pytest.fixture()
def creative(documents, membership, clock) -> CreativeStore:
    return CreativeStore(documents, membership, clock=clock)


@pytest.fixture()
def make_profile(profiles):
    """Factory fixture registering a profile for a user id."""

    async def _factory(user_id: str, full_name: str | None = None) -> Profile:
        identity = Identity(user_id=user_id, email=f"{user_id}@example.com")
        return await profiles.register(identity, full_name or user_id.title())

    return _factory
