"""저장소 테스트: 인메모리, SQLite, 재시도 정책"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from mazeloot.core.economy.errors import PersistenceError
from mazeloot.db.models import Base, PlayerSaveModel
from mazeloot.services.save_store import (
    InMemorySaveStore,
    SaveData,
    SaveRetryPolicy,
    SqlSaveStore,
)

LEGENDARY = {
    "unique_id": "l1",
    "item_id": "bombardiro_crocodilo",
    "display_name": "Bombardiro Crocodilo",
    "rarity": "Legendary",
    "value": 0,
    "is_follower": True,
}


@pytest.fixture()
def session_factory():
    """Create an in-memory SQLite engine and a session factory."""
    eng = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    return sessionmaker(bind=eng, autocommit=False, autoflush=False)


def _make_data(balance: int = 100) -> SaveData:
    return SaveData(
        balance=balance,
        xp=20,
        level=3,
        prestige=0,
        total_runs=5,
        legendary_items=[dict(LEGENDARY)],
    )


class TestInMemorySaveStore:
    def test_missing_record(self):
        assert InMemorySaveStore().load("p1") is None

    def test_save_and_load(self):
        store = InMemorySaveStore()
        store.save("p1", _make_data())
        assert store.load("p1") == _make_data()
        assert "p1" in store

    def test_returns_copies(self):
        store = InMemorySaveStore()
        data = _make_data()
        store.save("p1", data)
        data.legendary_items.clear()
        loaded = store.load("p1")
        loaded.balance = 0
        assert store.load("p1") == _make_data()

    def test_injected_failures(self):
        store = InMemorySaveStore()
        store.fail_saves = 1
        with pytest.raises(PersistenceError):
            store.save("p1", _make_data())
        store.save("p1", _make_data())
        assert store.save_calls == 2


class TestSqlSaveStore:
    def test_missing_record(self, session_factory):
        assert SqlSaveStore(session_factory).load("p1") is None

    def test_round_trip(self, session_factory):
        store = SqlSaveStore(session_factory)
        store.save("p1", _make_data())
        loaded = store.load("p1")
        assert loaded == _make_data()
        assert loaded.legendary_items[0]["item_id"] == "bombardiro_crocodilo"

    def test_update_existing(self, session_factory):
        store = SqlSaveStore(session_factory)
        store.save("p1", _make_data(100))
        store.save("p1", _make_data(900))
        assert store.load("p1").balance == 900

        db = session_factory()
        try:
            assert db.query(PlayerSaveModel).count() == 1
            assert db.get(PlayerSaveModel, "p1").updated_at is not None
        finally:
            db.close()

    def test_database_error_wrapped(self):
        broken = MagicMock()
        broken.get.side_effect = OperationalError("SELECT", {}, Exception("db down"))
        store = SqlSaveStore(lambda: broken)
        with pytest.raises(PersistenceError):
            store.load("p1")
        with pytest.raises(PersistenceError):
            store.save("p1", _make_data())
        broken.rollback.assert_called_once()
        assert broken.close.call_count == 2


class TestSaveRetryPolicy:
    @pytest.mark.asyncio
    async def test_success_first_try(self):
        policy = SaveRetryPolicy(max_attempts=3, backoff=0)
        assert await policy.execute(lambda: 42, "op") == 42

    @pytest.mark.asyncio
    async def test_transient_failures(self):
        store = InMemorySaveStore()
        store.fail_saves = 2
        policy = SaveRetryPolicy(max_attempts=3, backoff=0)
        await policy.execute(lambda: store.save("p1", _make_data()), "save p1")
        assert store.save_calls == 3
        assert "p1" in store

    @pytest.mark.asyncio
    async def test_stops_after_max_attempts(self):
        store = InMemorySaveStore()
        store.fail_saves = 10
        policy = SaveRetryPolicy(max_attempts=3, backoff=0)
        with pytest.raises(PersistenceError) as exc_info:
            await policy.execute(lambda: store.save("p1", _make_data()), "save p1")
        assert store.save_calls == 3
        assert isinstance(exc_info.value.__cause__, PersistenceError)

    @pytest.mark.asyncio
    async def test_other_errors_not_retried(self):
        calls = []

        def operation():
            calls.append(1)
            raise ValueError("bug")

        policy = SaveRetryPolicy(max_attempts=3, backoff=0)
        with pytest.raises(ValueError):
            await policy.execute(operation, "op")
        assert len(calls) == 1

    def test_invalid_attempts(self):
        with pytest.raises(ValueError):
            SaveRetryPolicy(max_attempts=0)
