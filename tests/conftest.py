"""
Test Configuration

Pytest configuration and shared fixtures for all tests.
"""

import pytest
import pytest_asyncio
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport

from services.voice.models import CatalogEntry
from services.voice.repository import InMemoryVoiceOrderRepository
from services.voice.stt.cache import CorrectionCache
from services.voice.stt.corrections import CorrectionStore
from services.voice.orders.pipeline import VoiceOrderPipeline

USER_ID = "user-1"


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000


@pytest.fixture
def user_id():
    return USER_ID


@pytest.fixture
def catalog():
    """Small grocery catalog used across tests."""
    return [
        CatalogEntry(id="1", name="Arroz Premium 5kg", category="Mercearia", price=5000.0, stock=20),
        CatalogEntry(id="2", name="Manteiga", category="Laticínios", price=400.0, stock=15, code="MNT400"),
        CatalogEntry(id="3", name="Bolacha Tibone", category="Bolachas", price=250.0, stock=40),
        CatalogEntry(id="4", name="Óleo de Palma 1L", category="Mercearia", price=1200.0, stock=8),
        CatalogEntry(id="5", name="Coca Cola 330ml", category="Bebidas", price=300.0, stock=60),
    ]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def repository(catalog):
    """In-memory repository seeded with the test catalog."""
    repo = InMemoryVoiceOrderRepository()
    for entry in catalog:
        repo.add_product(USER_ID, entry)
    return repo


@pytest.fixture
def empty_repository():
    return InMemoryVoiceOrderRepository()


@pytest.fixture
def store(repository, clock):
    return CorrectionStore(repository, cache=CorrectionCache(ttl_ms=30000, clock=clock), auto_learn=False)


@pytest.fixture
def pipeline(store, repository):
    return VoiceOrderPipeline(store, repository)


@pytest_asyncio.fixture
async def client(pipeline, store, repository) -> AsyncGenerator[AsyncClient, None]:
    """Async test client with services backed by the in-memory repository."""
    from main import app
    from core.dependencies import get_correction_store, get_repository, get_voice_pipeline

    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_correction_store] = lambda: store
    app.dependency_overrides[get_voice_pipeline] = lambda: pipeline

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
