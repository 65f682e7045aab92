"""트레이드업 머신 — 동일 아이템 5개 → 다음 등급 1개

검증(can_trade_up) → 실행(execute_trade_up) 2단계.
실행은 항상 재검증하고, 인벤토리 변경 전에 소유 여부를 모두 확인한다.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from .errors import ConsistencyError, EconomyError
from .inventory import Inventory
from .loot import LootGenerator
from .models import ItemInstance
from .rarity import RarityCatalog

logger = logging.getLogger(__name__)

REQUIRED_COUNT = 5

INTERNAL_FAILURE_REASON = (
    "Trade-up failed due to an internal error; your items were not changed"
)


class TradeUpRejection(str, Enum):
    """거부 사유 코드. 원인별로 하나씩."""

    WRONG_COUNT = "wrong_count"
    MIXED_ITEMS = "mixed_items"
    UNKNOWN_RARITY = "unknown_rarity"
    SOURCE_BLOCKED = "source_blocked"
    NO_NEXT_TIER = "no_next_tier"
    TARGET_BLOCKED = "target_blocked"
    DUPLICATE_INSTANCE = "duplicate_instance"
    NOT_OWNED = "not_owned"


@dataclass(frozen=True)
class TradeUpCandidate:
    """UI 표시용 트레이드업 가능 그룹"""

    item_id: str
    display_name: str
    rarity: str
    count: int


def _reject(code: TradeUpRejection, message: str) -> str:
    logger.debug("Trade-up rejected (%s): %s", code.value, message)
    return message


class TradeUpEngine:
    """트레이드업 상태 머신. LootGenerator를 생성자에서 주입받는다."""

    REQUIRED_COUNT = REQUIRED_COUNT

    def __init__(self, rarities: RarityCatalog, loot: LootGenerator) -> None:
        self._rarities = rarities
        self._loot = loot

    def check(self, items: Sequence[ItemInstance]) -> Optional[TradeUpRejection]:
        """검증 후 거부 코드. 통과하면 None.

        순서대로 검사하고 첫 위반에서 멈춘다:
        1. 정확히 5개
        2. 모두 같은 item_id
        3. 원본 등급 can_trade_up_from
        4. 다음 등급 존재
        5. 다음 등급 can_trade_up_to
        """
        return self._validate(items)[0]

    def can_trade_up(self, items: Sequence[ItemInstance]) -> tuple[bool, Optional[str]]:
        """반환: (가능 여부, 사유). 사유는 원인마다 다른 문장."""
        code, message = self._validate(items)
        if code is None:
            return True, None
        return False, _reject(code, message)

    def _validate(
        self, items: Sequence[ItemInstance]
    ) -> tuple[Optional[TradeUpRejection], str]:
        count = len(items) if items else 0
        if count != REQUIRED_COUNT:
            return (
                TradeUpRejection.WRONG_COUNT,
                f"Trade-up requires exactly {REQUIRED_COUNT} items, got {count}",
            )

        first_id = items[0].item_id
        for position, item in enumerate(items[1:], start=2):
            if item.item_id != first_id:
                return (
                    TradeUpRejection.MIXED_ITEMS,
                    f"All {REQUIRED_COUNT} items must be identical. Expected "
                    f"'{first_id}', got '{item.item_id}' at position {position}",
                )

        source_name = items[0].rarity
        source = self._rarities.get(source_name)
        if source is None or any(item.rarity != source_name for item in items):
            return TradeUpRejection.UNKNOWN_RARITY, f"Unknown rarity: {source_name}"

        if not source.can_trade_up_from:
            return (
                TradeUpRejection.SOURCE_BLOCKED,
                f"Cannot trade up from {source_name} tier",
            )

        target = self._rarities.next_tier(source_name)
        if target is None:
            return (
                TradeUpRejection.NO_NEXT_TIER,
                f"No higher tier exists above {source_name}",
            )

        if not target.can_trade_up_to:
            return (
                TradeUpRejection.TARGET_BLOCKED,
                f"Cannot trade up to {target.name} tier",
            )

        return None, ""

    def execute_trade_up(
        self, inventory: Inventory, items: Sequence[ItemInstance]
    ) -> tuple[Optional[ItemInstance], Optional[str]]:
        """5개 제거 → 다음 등급 1개 생성 → 추가. 순 변화량 -4.

        실패 시 (None, 사유)이며 인벤토리는 호출 전과 같다.
        """
        ok, reason = self.can_trade_up(items)
        if not ok:
            return None, reason

        unique_ids = [item.unique_id for item in items]
        if len(set(unique_ids)) != len(unique_ids):
            return None, _reject(
                TradeUpRejection.DUPLICATE_INSTANCE,
                "The same item was selected more than once",
            )

        try:
            self._verify_ownership(inventory, items)
        except ConsistencyError as e:
            logger.error("Trade-up aborted, inventory unchanged: %s", e)
            return None, INTERNAL_FAILURE_REASON

        target = self._rarities.next_tier(items[0].rarity)
        if target is None:  # can_trade_up 통과 후에는 도달하지 않음
            return None, INTERNAL_FAILURE_REASON

        removed: list[ItemInstance] = []
        try:
            for uid in unique_ids:
                item = inventory.remove_item(uid)
                if item is None:
                    raise ConsistencyError(f"Item vanished during trade-up: {uid}")
                removed.append(item)

            new_item = self._loot.generate_item(target.name)
            if not inventory.add_item(new_item):
                raise ConsistencyError(
                    f"Generated item collides with existing uid: {new_item.unique_id}"
                )
        except EconomyError:
            logger.exception("Trade-up rolled back (%d items restored)", len(removed))
            for item in removed:
                inventory.add_item(item)
            return None, INTERNAL_FAILURE_REASON

        logger.info(
            "Trade-up: 5x %s (%s) -> %s (%s)",
            items[0].item_id,
            items[0].rarity,
            new_item.item_id,
            new_item.rarity,
        )
        return new_item, None

    def _verify_ownership(
        self, inventory: Inventory, items: Sequence[ItemInstance]
    ) -> None:
        """선택된 인스턴스가 모두 인벤토리에 있고 내용이 같은지 확인."""
        for item in items:
            owned = inventory.get_item(item.unique_id)
            if owned is None:
                raise ConsistencyError(f"Item not in inventory: {item.unique_id}")
            if owned.item_id != item.item_id or owned.rarity != item.rarity:
                raise ConsistencyError(
                    f"Item {item.unique_id} changed: expected {item.item_id}/"
                    f"{item.rarity}, found {owned.item_id}/{owned.rarity}"
                )

    def available_trade_ups(self, inventory: Inventory) -> list[TradeUpCandidate]:
        """item_id별 그룹 중 5개 이상 + 등급 규칙 통과한 것. 첫 등장 순서.

        표시용. 실제 집행은 execute_trade_up.
        """
        groups: dict[str, list[ItemInstance]] = {}
        for item in inventory.all_items():
            groups.setdefault(item.item_id, []).append(item)

        available: list[TradeUpCandidate] = []
        for item_id, members in groups.items():
            if len(members) < REQUIRED_COUNT:
                continue
            sample = members[0]
            synthetic = [
                ItemInstance(
                    unique_id=f"probe-{n}",
                    item_id=item_id,
                    display_name=sample.display_name,
                    rarity=sample.rarity,
                    value=0,
                )
                for n in range(REQUIRED_COUNT)
            ]
            if self.check(synthetic) is None:
                available.append(
                    TradeUpCandidate(
                        item_id=item_id,
                        display_name=sample.display_name,
                        rarity=sample.rarity,
                        count=len(members),
                    )
                )
        return available
