"""경제 Service — 플레이어 세션 하나의 경제 코디네이터

Core(ledger/tradeup/loot/progression)를 묶고 결과를 EventBus로 알린다.
용량 제한은 여기서만 강제한다.
ValidationError는 이 경계에서 사유 문자열로 바뀌어 반환된다.
"""

from typing import Any, Optional, Sequence

from mazeloot.core.economy import progression
from mazeloot.core.economy.crates import CrateCatalog
from mazeloot.core.economy.errors import (
    EconomyError,
    UnknownRarityError,
    ValidationError,
)
from mazeloot.core.economy.inventory import Inventory, item_from_dict, item_to_dict
from mazeloot.core.economy.ledger import CurrencyLedger
from mazeloot.core.economy.loot import LootGenerator
from mazeloot.core.economy.models import ItemInstance
from mazeloot.core.economy.progression import ProgressionResult
from mazeloot.core.economy.state import PlayerEconomyState
from mazeloot.core.economy.tradeup import (
    TradeUpCandidate,
    TradeUpEngine,
    TradeUpRejection,
)
from mazeloot.core.event_bus import EconomyEvent, EventBus
from mazeloot.core.event_types import EventTypes
from mazeloot.core.logging import get_logger
from mazeloot.services.save_store import SaveData

logger = get_logger(__name__)

DEFAULT_MAX_SLOTS = 99
DEFAULT_EXPEDITION_SLOTS = 5


class PlayerEconomyCoordinator:
    """플레이어 경제 상태 하나를 독점 소유.

    세션 actor 안에서만 호출된다 (동시 호출 없음).
    """

    SOURCE = "economy_service"

    def __init__(
        self,
        state: PlayerEconomyState,
        loot: LootGenerator,
        crates: CrateCatalog,
        event_bus: EventBus,
        max_slots: int = DEFAULT_MAX_SLOTS,
        expedition_slots: int = DEFAULT_EXPEDITION_SLOTS,
        ledger: Optional[CurrencyLedger] = None,
        tradeup: Optional[TradeUpEngine] = None,
    ):
        self._state = state
        self._loot = loot
        self._rarities = loot.rarities
        self._crates = crates
        self._bus = event_bus
        self._max_slots = max_slots
        self._expedition_slots = expedition_slots
        self._ledger = ledger or CurrencyLedger(self._rarities)
        self._tradeup = tradeup or TradeUpEngine(self._rarities, loot)
        self._in_expedition = False

    @property
    def state(self) -> PlayerEconomyState:
        return self._state

    @property
    def player_key(self) -> str:
        return self._state.player_key

    @property
    def inventory(self) -> Inventory:
        return self._state.inventory

    @property
    def in_expedition(self) -> bool:
        return self._in_expedition

    # === 용량 ===

    def get_effective_capacity(self) -> int:
        return self._expedition_slots if self._in_expedition else self._max_slots

    def set_expedition_mode(self, active: bool) -> int:
        """미로 진입/복귀. 같은 값 재설정은 무시. 반환: 적용 후 용량.

        진입(False → True) 시 미로 진입 횟수를 1 올린다.
        복귀 시 초과 아이템을 제거하지 않는다.
        """
        if active == self._in_expedition:
            return self.get_effective_capacity()

        self._in_expedition = active
        if active:
            progression.record_run(self._state)

        capacity = self.get_effective_capacity()
        self._emit(
            EventTypes.CAPACITY_CHANGED,
            {
                "in_expedition": active,
                "capacity": capacity,
                "count": self.inventory.count,
                "total_runs": self._state.total_runs,
            },
        )
        logger.debug(
            "%s expedition=%s capacity=%d", self.player_key, active, capacity
        )
        return capacity

    def is_full(self) -> bool:
        return self.inventory.count >= self.get_effective_capacity()

    # === 인벤토리 ===

    def add_item(self, item: ItemInstance) -> bool:
        """용량 내에서만 추가. 가득 차면 변경 없이 False."""
        capacity = self.get_effective_capacity()
        if self.inventory.count >= capacity:
            logger.warning(
                "Inventory full for %s (%d slots)", self.player_key, capacity
            )
            return False

        if not self.inventory.add_item(item):
            return False

        self._emit_inventory_changed()
        if item.is_follower:
            self._emit(
                EventTypes.FOLLOWER_ACQUIRED,
                {"unique_id": item.unique_id, "item_id": item.item_id},
            )
            self._emit_followers_changed()
        return True

    def remove_item(self, unique_id: str) -> Optional[ItemInstance]:
        item = self.inventory.remove_item(unique_id)
        if item is None:
            return None
        self._emit_inventory_changed()
        if item.is_follower:
            self._emit_followers_changed()
        return item

    def grant_loot(
        self,
        count: int = 1,
        luck: Optional[float] = None,
        rarity: Optional[str] = None,
    ) -> tuple[list[ItemInstance], Optional[str]]:
        """루트 생성 후 지급. 용량을 넘는 아이템은 버려진다.

        반환: (실제로 지급된 아이템, 사유). 사유는 입력 오류/일부 미지급 시.
        """
        try:
            if rarity is not None:
                if count <= 0:
                    return [], f"Loot batch count must be > 0, got {count}"
                generated = [self._loot.generate_item(rarity) for _ in range(count)]
            else:
                generated = self._loot.generate_batch(count, luck)
        except (ValidationError, UnknownRarityError) as e:
            return [], str(e)
        except EconomyError:
            logger.exception("Loot generation failed for %s", self.player_key)
            return [], "Loot could not be generated"

        granted = [item for item in generated if self.add_item(item)]
        if len(granted) < len(generated):
            return granted, "Inventory full"
        return granted, None

    def inventory_listing(self) -> list[dict[str, Any]]:
        """표시용 목록. 삽입 순서."""
        return [item_to_dict(item) for item in self.inventory.all_items()]

    # === 통화 ===

    @property
    def balance(self) -> int:
        return self._ledger.balance_of(self._state)

    def credit(self, amount: int) -> tuple[int, Optional[str]]:
        """반환: (잔고, 사유). 음수 금액은 변경 없이 사유 반환."""
        try:
            self._ledger.credit(self._state, amount)
        except ValidationError as e:
            return self.balance, str(e)
        self._emit_balance_changed(amount)
        return self.balance, None

    def debit(self, amount: int) -> tuple[bool, Optional[str]]:
        try:
            ok = self._ledger.debit(self._state, amount)
        except ValidationError as e:
            return False, str(e)
        if not ok:
            return False, f"Not enough fragments! Need {amount}"
        self._emit_balance_changed(-amount)
        return True, None

    def sell_item(self, unique_id: str) -> tuple[int, bool]:
        """단일 판매. 판매된 경우에만 인벤토리에서 제거."""
        item = self.inventory.get_item(unique_id)
        if item is None:
            return 0, False

        earned, sold = self._ledger.sell(self._state, item)
        if not sold:
            return 0, False

        self.inventory.remove_item(unique_id)
        self._emit_balance_changed(earned)
        self._emit_inventory_changed()
        self._emit(
            EventTypes.ITEM_SOLD,
            {"unique_id": unique_id, "item_id": item.item_id, "earned": earned},
        )
        logger.debug("%s sold %s for %d", self.player_key, item.item_id, earned)
        return earned, True

    def sell_all(self) -> tuple[int, int]:
        """영구 등급을 제외한 전부 판매. 합계 계산 → 제거 → 1회 입금."""
        sellable = [i for i in self.inventory.all_items() if self._ledger.can_sell(i)]
        if not sellable:
            return 0, 0

        sold_ids = {item.unique_id for item in sellable}
        self.inventory.clear_where(lambda i: i.unique_id in sold_ids)
        total, count = self._ledger.sell_bulk(self._state, sellable)

        self._emit_balance_changed(total)
        self._emit_inventory_changed()
        self._emit(EventTypes.BULK_SOLD, {"earned": total, "count": count})
        logger.info("%s sold %d items for %d", self.player_key, count, total)
        return total, count

    # === 트레이드업 ===

    def trade_up(
        self, unique_ids: Sequence[str]
    ) -> tuple[Optional[ItemInstance], Optional[str]]:
        items: list[ItemInstance] = []
        for uid in unique_ids:
            item = self.inventory.get_item(uid)
            if item is None:
                reason = f"Item not found in inventory: {uid}"
                logger.debug(
                    "Trade-up rejected (%s): %s", TradeUpRejection.NOT_OWNED.value, reason
                )
                self._emit_trade_up_failed(reason)
                return None, reason
            items.append(item)

        new_item, reason = self._tradeup.execute_trade_up(self.inventory, items)
        if new_item is None:
            self._emit_trade_up_failed(reason)
            return None, reason

        self._emit_inventory_changed()
        self._emit(
            EventTypes.TRADE_UP_COMPLETED,
            {
                "consumed": list(unique_ids),
                "unique_id": new_item.unique_id,
                "item_id": new_item.item_id,
                "rarity": new_item.rarity,
            },
        )
        return new_item, None

    def available_trade_ups(self) -> list[TradeUpCandidate]:
        return self._tradeup.available_trade_ups(self.inventory)

    # === 사망 ===

    def on_death(self) -> list[ItemInstance]:
        """영구 등급 외 전부 소실. 잔고와 성장은 유지."""
        removed = self.inventory.clear_non_legendary(self._rarities.permanent_names())
        if removed:
            self._emit_inventory_changed()
            self._emit(
                EventTypes.ITEMS_LOST,
                {"count": len(removed), "unique_ids": [i.unique_id for i in removed]},
            )
        logger.info("%s died, lost %d items", self.player_key, len(removed))
        return removed

    # === 성장 ===

    def add_xp(self, amount: int) -> tuple[Optional[ProgressionResult], Optional[str]]:
        try:
            result = progression.add_xp(self._state, amount)
        except ValidationError as e:
            return None, str(e)
        if result.leveled_up:
            self._emit(EventTypes.LEVEL_UP, {"level": result.level, "xp": result.xp})
        return result, None

    def prestige(self) -> bool:
        if not progression.prestige(self._state):
            return False
        self._emit(EventTypes.PRESTIGE_UP, {"prestige": self._state.prestige})
        return True

    def record_run(self) -> int:
        return progression.record_run(self._state)

    # === 크레이트 ===

    def open_crate(self, crate_id: str) -> tuple[Optional[ItemInstance], Optional[str]]:
        """Fragment로 크레이트 구매 후 개봉.

        검사 순서: 존재 → Fragment 구매 가능 → 빈 칸 → 잔고.
        가득 찬 상태에서는 요금을 받지 않는다.
        """
        crate = self._crates.get(crate_id)
        if crate is None:
            return None, f"Unknown crate: {crate_id}"
        if not crate.can_buy_with_fragments:
            return None, "This crate is Robux only!"
        if self.is_full():
            return None, "Inventory full! Cannot open crate."
        if self.balance < crate.fragment_price:
            return None, f"Not enough fragments! Need {crate.fragment_price}"

        rarity = self._loot.roll_weighted(crate.odds)
        try:
            item = self._loot.generate_item(rarity)
        except EconomyError:
            logger.exception("Crate %s roll failed for %s", crate_id, self.player_key)
            return None, "Crate could not be opened; you were not charged"

        ok, reason = self.debit(crate.fragment_price)
        if not ok:
            return None, reason
        if not self.add_item(item):
            # is_full 검사 후 도달하지 않음
            self.credit(crate.fragment_price)
            return None, "Inventory full! Cannot open crate."

        self._emit(
            EventTypes.CRATE_OPENED,
            {
                "crate_id": crate_id,
                "unique_id": item.unique_id,
                "item_id": item.item_id,
                "rarity": item.rarity,
            },
        )
        logger.info(
            "%s opened %s -> %s (%s)",
            self.player_key,
            crate.name,
            item.display_name,
            item.rarity,
        )
        return item, None

    # === 저장 ===

    def to_save_data(self) -> SaveData:
        """통화 + 성장 + 영구 등급 아이템만."""
        permanent = self._rarities.permanent_names()
        return SaveData(
            balance=self._state.balance,
            xp=self._state.xp,
            level=self._state.level,
            prestige=self._state.prestige,
            total_runs=self._state.total_runs,
            legendary_items=[
                item_to_dict(item)
                for item in self.inventory.all_items()
                if item.rarity in permanent
            ],
        )

    @staticmethod
    def state_from_save_data(
        player_key: str, data: Optional[SaveData], loot: LootGenerator
    ) -> PlayerEconomyState:
        """저장 기록 → 새 상태. 기록이 없으면 초기 상태.

        영구 등급이 아닌 저장 아이템은 무시한다.
        """
        state = PlayerEconomyState(player_key=player_key)
        if data is None:
            return state

        state.balance = max(0, data.balance)
        state.xp = data.xp
        state.level = data.level
        state.prestige = data.prestige
        state.total_runs = data.total_runs

        permanent = loot.rarities.permanent_names()
        for raw in data.legendary_items:
            item = item_from_dict(raw, loot.items)
            if item.rarity not in permanent:
                logger.warning(
                    "Ignoring non-permanent saved item %s for %s",
                    item.item_id,
                    player_key,
                )
                continue
            state.inventory.add_item(item)
        return state

    @classmethod
    def from_save_data(
        cls,
        player_key: str,
        data: Optional[SaveData],
        loot: LootGenerator,
        crates: CrateCatalog,
        event_bus: EventBus,
        **kwargs: Any,
    ) -> "PlayerEconomyCoordinator":
        state = cls.state_from_save_data(player_key, data, loot)
        return cls(state, loot, crates, event_bus, **kwargs)

    # === 이벤트 ===

    def _emit(self, event_type: str, data: dict[str, Any]) -> None:
        self._bus.emit(
            EconomyEvent(
                event_type=event_type,
                player_key=self.player_key,
                data=data,
                source=self.SOURCE,
            )
        )

    def _emit_balance_changed(self, delta: int) -> None:
        self._emit(
            EventTypes.BALANCE_CHANGED, {"balance": self.balance, "delta": delta}
        )

    def _emit_inventory_changed(self) -> None:
        self._emit(
            EventTypes.INVENTORY_CHANGED,
            {"count": self.inventory.count, "capacity": self.get_effective_capacity()},
        )

    def _emit_followers_changed(self) -> None:
        followers = [i.item_id for i in self.inventory.all_items() if i.is_follower]
        self._emit(EventTypes.FOLLOWERS_CHANGED, {"followers": followers})

    def _emit_trade_up_failed(self, reason: Optional[str]) -> None:
        self._emit(EventTypes.TRADE_UP_FAILED, {"reason": reason})
