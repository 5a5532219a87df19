import asyncio
from dataclasses import replace
from datetime import datetime, timezone

import pytest

from viniloteca.core.rental_lifecycle import new_rental
from viniloteca.models.catalog import CatalogMetadata, CatalogSearchResult


def utc(year, month, day, hour=0, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


class ManualClock:
    """Seconds clock for caches; only moves when told to."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeCatalogClient:
    def __init__(self, failures=None, hang=(), gates=None, delay=0.0):
        self.calls: list[int] = []
        self.search_calls: list[tuple] = []
        self.failures = dict(failures or {})  # id -> exception to raise
        self.hang = set(hang)  # ids that never answer
        self.gates = dict(gates or {})  # id -> asyncio.Event to wait for
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0

    async def get_metadata(self, release_id: int) -> CatalogMetadata:
        self.calls.append(release_id)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if release_id in self.hang:
                await asyncio.Event().wait()
            if release_id in self.gates:
                await self.gates[release_id].wait()
            if self.delay:
                await asyncio.sleep(self.delay)
            if release_id in self.failures:
                raise self.failures[release_id]
            return CatalogMetadata(
                catalog_item_id=release_id,
                title=f"Release {release_id}",
                image_url=f"https://img.example/{release_id}.jpg",
            )
        finally:
            self.in_flight -= 1

    async def search(self, query, *, page=1, per_page=25):
        self.search_calls.append((query, page, per_page))
        if "search" in self.failures:
            raise self.failures["search"]
        return [CatalogSearchResult(id=101, title=f"Some Artist - {query}", year=1999)]


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def fake_client():
    return FakeCatalogClient()


@pytest.fixture
def make_fake_client():
    return FakeCatalogClient


@pytest.fixture
def make_rental():
    def _make(
        catalog_item_id=42,
        user_id="user-1",
        rented_at=None,
        due_at=None,
        returned_at=None,
        operator_id=None,
    ):
        rented_at = rented_at or utc(2025, 1, 1)
        due_at = due_at or utc(2025, 1, 8)
        rental = new_rental(
            catalog_item_id,
            user_id,
            rented_at,
            due_at,
            now=rented_at,
            operator_id=operator_id,
        )
        if returned_at is not None:
            rental = replace(rental, returned_at=returned_at)
        return rental

    return _make


@pytest.fixture
def at():
    return utc
