"""플레이어 저장소 — 계약(SaveStore) + SQL/인메모리 구현 + 재시도 정책

저장 대상: 통화, 성장 카운터, 영구 등급 아이템.
저장소 호출은 블로킹이므로 세션 쪽에서는 SaveRetryPolicy를 통해
워커 스레드(asyncio.to_thread)에서 실행한다.
"""

from __future__ import annotations

import asyncio
import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mazeloot.core.economy.errors import PersistenceError
from mazeloot.core.logging import get_logger
from mazeloot.db.models import PlayerSaveModel

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class SaveData:
    """저장 레코드. legendary_items는 item_to_dict() 형식의 dict 목록."""

    balance: int = 0
    xp: int = 0
    level: int = 1
    prestige: int = 0
    total_runs: int = 0
    legendary_items: list[dict[str, Any]] = field(default_factory=list)


class SaveStore(ABC):
    """플레이어 키 → SaveData. 실패 시 PersistenceError."""

    @abstractmethod
    def load(self, player_key: str) -> Optional[SaveData]:
        """저장 기록이 없으면 None."""

    @abstractmethod
    def save(self, player_key: str, data: SaveData) -> None:
        ...


class InMemorySaveStore(SaveStore):
    """테스트/로컬용. fail_saves/fail_loads 만큼 연속 실패시킬 수 있다."""

    def __init__(self) -> None:
        self._records: dict[str, SaveData] = {}
        self.fail_saves = 0
        self.fail_loads = 0
        self.save_calls = 0
        self.load_calls = 0

    def load(self, player_key: str) -> Optional[SaveData]:
        self.load_calls += 1
        if self.fail_loads > 0:
            self.fail_loads -= 1
            raise PersistenceError(f"Injected load failure for {player_key}")
        record = self._records.get(player_key)
        return copy.deepcopy(record) if record is not None else None

    def save(self, player_key: str, data: SaveData) -> None:
        self.save_calls += 1
        if self.fail_saves > 0:
            self.fail_saves -= 1
            raise PersistenceError(f"Injected save failure for {player_key}")
        self._records[player_key] = copy.deepcopy(data)

    def __contains__(self, player_key: object) -> bool:
        return player_key in self._records


class SqlSaveStore(SaveStore):
    """SQLAlchemy 구현. 호출마다 세션을 새로 열고 닫는다 (스레드 간 공유 금지)."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def load(self, player_key: str) -> Optional[SaveData]:
        db = self._session_factory()
        try:
            orm = db.get(PlayerSaveModel, player_key)
            if orm is None:
                return None
            return SaveData(
                balance=orm.balance,
                xp=orm.xp,
                level=orm.level,
                prestige=orm.prestige,
                total_runs=orm.total_runs,
                legendary_items=list(orm.legendary_items or []),
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Load failed for {player_key}: {e}") from e
        finally:
            db.close()

    def save(self, player_key: str, data: SaveData) -> None:
        db = self._session_factory()
        try:
            orm = db.get(PlayerSaveModel, player_key)
            if orm is None:
                orm = PlayerSaveModel(player_key=player_key)
                db.add(orm)
            orm.balance = data.balance
            orm.xp = data.xp
            orm.level = data.level
            orm.prestige = data.prestige
            orm.total_runs = data.total_runs
            orm.legendary_items = list(data.legendary_items)
            orm.updated_at = datetime.now(timezone.utc)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(f"Save failed for {player_key}: {e}") from e
        finally:
            db.close()


class SaveRetryPolicy:
    """블로킹 저장소 호출을 워커 스레드에서 재시도하며 실행.

    PersistenceError만 재시도한다. 대기 시간은 backoff * 2^(attempt-1).
    모든 시도가 실패하면 PersistenceError (원인은 마지막 실패).
    """

    def __init__(self, max_attempts: int = 3, backoff: float = 1.0) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self.max_attempts = max_attempts
        self.backoff = backoff

    async def execute(
        self, operation: Callable[[], T], operation_name: str
    ) -> T:
        last_error: Optional[PersistenceError] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await asyncio.to_thread(operation)
            except PersistenceError as e:
                last_error = e
                logger.warning(
                    "%s failed (attempt %d/%d): %s",
                    operation_name,
                    attempt,
                    self.max_attempts,
                    e,
                )
                if attempt < self.max_attempts and self.backoff > 0:
                    await asyncio.sleep(self.backoff * (2 ** (attempt - 1)))

        raise PersistenceError(
            f"{operation_name} failed after {self.max_attempts} attempts"
        ) from last_error
