"""세션 Service — 플레이어별 actor, 세션 레지스트리, 자동 저장

규칙:
- 플레이어 하나의 경제 요청은 그 플레이어의 PlayerSession 큐를 통해 하나씩 실행된다.
- 서로 다른 플레이어의 세션은 서로를 기다리지 않는다.
- 저장은 재시도 후 실패해도 로그만 남긴다. 메모리 상태가 기준이다.
- 같은 플레이어의 저장은 스냅샷 순서대로만 기록된다.
"""

import asyncio
from typing import Any, Callable, Optional, TypeVar

from mazeloot.core.economy.crates import CrateCatalog
from mazeloot.core.economy.errors import PersistenceError, SessionClosedError
from mazeloot.core.economy.loot import LootGenerator
from mazeloot.core.event_bus import EconomyEvent, EventBus
from mazeloot.core.event_types import EventTypes
from mazeloot.core.logging import get_logger
from mazeloot.services.economy_service import (
    DEFAULT_EXPEDITION_SLOTS,
    DEFAULT_MAX_SLOTS,
    PlayerEconomyCoordinator,
)
from mazeloot.services.save_store import SaveData, SaveRetryPolicy, SaveStore

logger = get_logger(__name__)

T = TypeVar("T")

_STOP = object()


class PlayerSession:
    """플레이어 하나의 actor.

    submit()으로 들어온 작업을 큐 순서대로 하나씩 코디네이터에 적용한다.
    close()가 시작되면 새 작업을 받지 않고, 이미 들어온 작업은 모두 처리한다.
    """

    def __init__(self, coordinator: PlayerEconomyCoordinator, persist: bool = True):
        self._coordinator = coordinator
        self._queue: asyncio.Queue = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self._closing = False
        # 로드 실패로 빈 상태에서 시작한 세션은 기존 저장 기록을 덮어쓰지 않는다
        self.persist = persist

    @property
    def player_key(self) -> str:
        return self._coordinator.player_key

    @property
    def coordinator(self) -> PlayerEconomyCoordinator:
        return self._coordinator

    @property
    def closed(self) -> bool:
        return self._closing

    def start(self) -> None:
        if self._worker is None:
            self._worker = asyncio.create_task(
                self._run(), name=f"session:{self.player_key}"
            )

    async def submit(self, job: Callable[[PlayerEconomyCoordinator], T]) -> T:
        """작업을 큐에 넣고 결과를 기다린다. 작업의 예외는 그대로 전파된다."""
        if self._closing:
            raise SessionClosedError(f"Session is closed: {self.player_key}")
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        await self._queue.put((job, future))
        return await future

    async def _run(self) -> None:
        while True:
            entry = await self._queue.get()
            try:
                if entry is _STOP:
                    return
                job, future = entry
                if future.cancelled():
                    continue
                try:
                    result = job(self._coordinator)
                except Exception as e:
                    future.set_exception(e)
                else:
                    future.set_result(result)
            finally:
                self._queue.task_done()

    async def close(self) -> None:
        """새 작업 거부 → 남은 작업 처리 → worker 종료."""
        if self._closing:
            return
        self._closing = True
        await self._queue.put(_STOP)
        if self._worker is not None:
            await self._worker

    def snapshot(self) -> SaveData:
        """worker 종료 후 최종 저장용. 실행 중인 세션은 submit으로 스냅샷한다."""
        return self._coordinator.to_save_data()


def _track(registry: dict[str, asyncio.Task], key: str, task: asyncio.Task) -> None:
    """key별 진행 중 작업 등록. 끝나면 자기 자신일 때만 제거."""
    registry[key] = task

    def _done(finished: asyncio.Task) -> None:
        if registry.get(key) is finished:
            del registry[key]

    task.add_done_callback(_done)


class SessionManager:
    """player_key → PlayerSession 레지스트리 + 저장 스케줄링

    같은 플레이어의 열기/닫기/저장은 순서가 보장된다.
    - open()은 진행 중인 close()(최종 저장 포함)가 끝난 뒤에 로드한다.
    - close()는 진행 중인 open()이 끝난 뒤에 닫는다.
    - 저장은 플레이어별 Lock으로 하나씩 실행되고, 스냅샷 번호가
      이미 기록된 것보다 오래된 저장은 건너뛴다.
    """

    SOURCE = "session_service"

    def __init__(
        self,
        store: SaveStore,
        loot: LootGenerator,
        crates: CrateCatalog,
        event_bus: EventBus,
        retry_policy: Optional[SaveRetryPolicy] = None,
        max_slots: int = DEFAULT_MAX_SLOTS,
        expedition_slots: int = DEFAULT_EXPEDITION_SLOTS,
        autosave_interval: float = 300.0,
    ):
        self._store = store
        self._loot = loot
        self._crates = crates
        self._bus = event_bus
        self._retry = retry_policy or SaveRetryPolicy()
        self._max_slots = max_slots
        self._expedition_slots = expedition_slots
        self._autosave_interval = autosave_interval

        self._sessions: dict[str, PlayerSession] = {}
        self._opening: dict[str, asyncio.Task] = {}
        self._closing: dict[str, asyncio.Task] = {}

        self._save_locks: dict[str, asyncio.Lock] = {}
        self._issued_seq: dict[str, int] = {}  # 마지막으로 찍은 스냅샷 번호
        self._stored_seq: dict[str, int] = {}  # 저장소에 기록된 스냅샷 번호
        self._save_tasks: set[asyncio.Task] = set()
        self._autosave_task: Optional[asyncio.Task] = None

        # 프레스티지는 다음 자동 저장을 기다리지 않고 바로 저장
        self._bus.subscribe(EventTypes.PRESTIGE_UP, self._on_prestige)

    # === 세션 ===

    def get(self, player_key: str) -> Optional[PlayerSession]:
        return self._sessions.get(player_key)

    def __contains__(self, player_key: object) -> bool:
        return player_key in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    async def open(self, player_key: str) -> PlayerSession:
        """세션 열기. 이미 열려 있으면 그 세션. 동시에 두 번 열어도 로드는 한 번.

        같은 플레이어의 close()가 진행 중이면 최종 저장까지 기다린 뒤 로드한다.
        """
        closing = self._closing.get(player_key)
        while closing is not None:
            await asyncio.wait([closing])
            closing = self._closing.get(player_key)

        session = self._sessions.get(player_key)
        if session is not None:
            return session

        pending = self._opening.get(player_key)
        if pending is None:
            pending = asyncio.create_task(
                self._open(player_key), name=f"open:{player_key}"
            )
            _track(self._opening, player_key, pending)
        return await asyncio.shield(pending)

    async def _open(self, player_key: str) -> PlayerSession:
        persist = True
        try:
            data = await self._retry.execute(
                lambda: self._store.load(player_key), f"load {player_key}"
            )
        except PersistenceError:
            logger.error(
                "Load failed for %s, starting fresh without saving", player_key,
                exc_info=True,
            )
            data = None
            persist = False

        coordinator = PlayerEconomyCoordinator.from_save_data(
            player_key,
            data,
            self._loot,
            self._crates,
            self._bus,
            max_slots=self._max_slots,
            expedition_slots=self._expedition_slots,
        )
        session = PlayerSession(coordinator, persist=persist)
        session.start()
        self._sessions[player_key] = session

        self._emit(
            EventTypes.SESSION_OPENED,
            player_key,
            {
                "balance": coordinator.balance,
                "count": coordinator.inventory.count,
                "restored": data is not None,
            },
        )
        logger.info(
            "Opened session %s (balance=%d, items=%d)",
            player_key,
            coordinator.balance,
            coordinator.inventory.count,
        )
        return session

    async def submit(
        self, player_key: str, job: Callable[[PlayerEconomyCoordinator], T]
    ) -> T:
        """열린 세션에 작업 전달. 세션이 없으면 SessionClosedError."""
        session = self._sessions.get(player_key)
        if session is None:
            raise SessionClosedError(f"No open session: {player_key}")
        return await session.submit(job)

    async def close(self, player_key: str) -> bool:
        """새 요청 거부 → 큐 비우기 → 최종 저장. 반환: 저장 성공 여부.

        열리는 중이면 열린 뒤에 닫는다. 이미 닫히는 중이면 그 결과를 기다린다.
        """
        opening = self._opening.get(player_key)
        if opening is not None:
            await asyncio.wait([opening])

        closing = self._closing.get(player_key)
        if closing is None:
            session = self._sessions.pop(player_key, None)
            if session is None:
                return False
            closing = asyncio.create_task(
                self._close(session), name=f"close:{player_key}"
            )
            _track(self._closing, player_key, closing)
        return await asyncio.shield(closing)

    async def _close(self, session: PlayerSession) -> bool:
        player_key = session.player_key
        await session.close()
        saved = False
        if session.persist:
            saved = await self._save(
                player_key, session.snapshot(), self._next_seq(player_key)
            )

        self._emit(EventTypes.SESSION_CLOSED, player_key, {"saved": saved})
        logger.info("Closed session %s (saved=%s)", player_key, saved)
        return saved

    # === 저장 ===

    def _next_seq(self, player_key: str) -> int:
        seq = self._issued_seq.get(player_key, 0) + 1
        self._issued_seq[player_key] = seq
        return seq

    def schedule_save(
        self, player_key: str, data: SaveData, seq: Optional[int] = None
    ) -> asyncio.Task:
        """저장을 백그라운드로 실행. 호출자는 기다리지 않는다.

        seq는 스냅샷을 찍은 순서. 없으면 지금 발급한다.
        """
        if seq is None:
            seq = self._next_seq(player_key)
        elif seq > self._issued_seq.get(player_key, 0):
            self._issued_seq[player_key] = seq
        task = asyncio.create_task(
            self._save(player_key, data, seq), name=f"save:{player_key}"
        )
        self._save_tasks.add(task)
        task.add_done_callback(self._save_tasks.discard)
        return task

    async def _save(self, player_key: str, data: SaveData, seq: int) -> bool:
        lock = self._save_locks.setdefault(player_key, asyncio.Lock())
        async with lock:
            if seq <= self._stored_seq.get(player_key, 0):
                logger.debug("Skipping stale snapshot #%d for %s", seq, player_key)
                return True
            try:
                await self._retry.execute(
                    lambda: self._store.save(player_key, data), f"save {player_key}"
                )
            except PersistenceError:
                logger.error("Giving up saving %s", player_key, exc_info=True)
                return False
            self._stored_seq[player_key] = seq
        logger.info("Saved data for %s", player_key)
        return True

    async def save_all(self) -> list[asyncio.Task]:
        """열린 세션 전부 스냅샷 후 저장 예약. 닫히는 중인 세션은 건너뛴다."""
        tasks: list[asyncio.Task] = []
        for player_key, session in list(self._sessions.items()):
            if not session.persist:
                continue
            try:
                # 번호는 worker 안에서 스냅샷과 함께 발급
                seq, data = await session.submit(
                    lambda c, key=player_key: (self._next_seq(key), c.to_save_data())
                )
            except SessionClosedError:
                continue
            tasks.append(self.schedule_save(player_key, data, seq))
        return tasks

    @property
    def pending_saves(self) -> int:
        return len(self._save_tasks)

    def _on_prestige(self, event: EconomyEvent) -> None:
        # 세션 worker 안에서 동기 호출되므로 스냅샷이 일관된다
        session = self._sessions.get(event.player_key)
        if session is None or not session.persist:
            return
        self.schedule_save(event.player_key, session.coordinator.to_save_data())

    # === 자동 저장 ===

    def start_autosave(self) -> None:
        if self._autosave_task is None:
            self._autosave_task = asyncio.create_task(
                self._autosave_loop(), name="autosave"
            )

    async def _autosave_loop(self) -> None:
        while True:
            await asyncio.sleep(self._autosave_interval)
            tasks = await self.save_all()
            logger.debug("Autosave scheduled for %d sessions", len(tasks))

    async def shutdown(self) -> None:
        """자동 저장 중지 → 열리는 중인 세션 대기 → 모든 세션 종료(최종 저장)
        → 진행 중 저장 대기."""
        if self._autosave_task is not None:
            self._autosave_task.cancel()
            try:
                await self._autosave_task
            except asyncio.CancelledError:
                pass
            self._autosave_task = None

        if self._opening:
            await asyncio.wait(list(self._opening.values()))

        await asyncio.gather(*(self.close(key) for key in list(self._sessions)))
        if self._closing:
            await asyncio.wait(list(self._closing.values()))

        if self._save_tasks:
            await asyncio.gather(*list(self._save_tasks))
        self._bus.unsubscribe(EventTypes.PRESTIGE_UP, self._on_prestige)
        logger.info("Session manager shut down")

    def _emit(self, event_type: str, player_key: str, data: dict[str, Any]) -> None:
        self._bus.emit(
            EconomyEvent(
                event_type=event_type,
                player_key=player_key,
                data=data,
                source=self.SOURCE,
            )
        )
