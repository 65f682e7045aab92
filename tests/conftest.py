"""Shared test fixtures."""

import random
from contextlib import asynccontextmanager

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from mazeloot.api.economy import router as economy_router
from mazeloot.api.health import router as health_router
from mazeloot.config import settings
from mazeloot.core.economy.catalog import ItemCatalog
from mazeloot.core.economy.crates import CrateCatalog
from mazeloot.core.economy.loot import LootGenerator
from mazeloot.core.economy.rarity import RarityCatalog
from mazeloot.core.event_bus import EventBus
from mazeloot.db.database import get_db
from mazeloot.main import build_session_manager
from mazeloot.services.save_store import InMemorySaveStore

TEST_ENGINE = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSession = sessionmaker(bind=TEST_ENGINE, autocommit=False, autoflush=False)


def _override_get_db():
    db = TestSession()
    try:
        yield db
    finally:
        db.close()


@asynccontextmanager
async def _test_lifespan(app: FastAPI):
    """실제 DB 대신 인메모리 저장소로 세션 매니저 구성"""
    store = InMemorySaveStore()
    event_bus = EventBus()
    manager = build_session_manager(settings, store, event_bus, random.Random(7))
    app.state.save_store = store
    app.state.event_bus = event_bus
    app.state.session_manager = manager
    yield
    await manager.shutdown()


def _make_app() -> FastAPI:
    test_app = FastAPI(lifespan=_test_lifespan)
    test_app.include_router(health_router)
    test_app.include_router(economy_router)
    test_app.dependency_overrides[get_db] = _override_get_db
    return test_app


@pytest.fixture()
def client() -> TestClient:
    """FastAPI TestClient with an in-memory save store.

    Used as a context manager so every request shares one event loop
    (session workers live on that loop).
    """
    with TestClient(_make_app()) as test_client:
        yield test_client


# === 경제 카탈로그 ===


@pytest.fixture(scope="session")
def rarities() -> RarityCatalog:
    return RarityCatalog.load_from_json(settings.RARITY_DATA_PATH)


@pytest.fixture(scope="session")
def items(rarities: RarityCatalog) -> ItemCatalog:
    return ItemCatalog.load_from_json(settings.ITEM_DATA_PATH, rarities)


@pytest.fixture(scope="session")
def crates(rarities: RarityCatalog) -> CrateCatalog:
    return CrateCatalog.load_from_json(settings.CRATE_DATA_PATH, rarities)


@pytest.fixture()
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture()
def loot(rarities: RarityCatalog, items: ItemCatalog, rng: random.Random) -> LootGenerator:
    return LootGenerator(rarities, items, rng)


@pytest.fixture()
def bus() -> EventBus:
    return EventBus()
