"""플레이어 인벤토리 — unique_id 키 컨테이너 + 직렬화"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Iterator, Optional

from .models import ItemInstance

if TYPE_CHECKING:
    from .catalog import ItemCatalog

logger = logging.getLogger(__name__)

# 직렬화 대상 필드. power_up은 카탈로그 정의이므로 저장하지 않는다.
SERIALIZED_FIELDS = (
    "unique_id",
    "item_id",
    "display_name",
    "rarity",
    "value",
    "is_follower",
)
DEFAULT_PERMANENT = frozenset({"Legendary"})


class Inventory:
    """unique_id → ItemInstance.

    dict 삽입 순서를 그대로 목록 순서로 사용 (UI 안정 정렬).
    용량 제한은 여기서 하지 않는다 — 세션 코디네이터 담당.
    """

    def __init__(self) -> None:
        self._items: dict[str, ItemInstance] = {}

    def add_item(self, instance: ItemInstance) -> bool:
        """추가. 같은 unique_id가 이미 있으면 덮어쓰지 않고 False."""
        if instance.unique_id in self._items:
            logger.warning("Duplicate unique_id rejected: %s", instance.unique_id)
            return False
        self._items[instance.unique_id] = instance
        return True

    def remove_item(self, unique_id: str) -> Optional[ItemInstance]:
        """제거 후 반환. 없으면 None."""
        return self._items.pop(unique_id, None)

    def get_item(self, unique_id: str) -> Optional[ItemInstance]:
        return self._items.get(unique_id)

    def has_item(self, unique_id: str) -> bool:
        return unique_id in self._items

    @property
    def count(self) -> int:
        return len(self._items)

    def all_items(self) -> list[ItemInstance]:
        """스냅샷. 이후 인벤토리 변경이 반환된 목록에 영향을 주지 않는다."""
        return list(self._items.values())

    def items_by_rarity(self, rarity: str) -> list[ItemInstance]:
        return [i for i in self._items.values() if i.rarity == rarity]

    def items_by_item_id(self, item_id: str) -> list[ItemInstance]:
        return [i for i in self._items.values() if i.item_id == item_id]

    def clear_where(self, predicate: Callable[[ItemInstance], bool]) -> list[ItemInstance]:
        """predicate가 참인 인스턴스를 한 번에 제거하고 제거된 목록 반환."""
        removed = [i for i in self._items.values() if predicate(i)]
        for item in removed:
            del self._items[item.unique_id]
        return removed

    def clear_non_legendary(
        self, permanent_rarities: frozenset[str] = DEFAULT_PERMANENT
    ) -> list[ItemInstance]:
        """사망 패널티. 영구 등급이 아닌 아이템을 모두 제거하고 반환."""
        removed = self.clear_where(lambda i: i.rarity not in permanent_rarities)
        logger.debug(
            "Cleared %d non-permanent items (%d kept)", len(removed), self.count
        )
        return removed

    # === 직렬화 ===

    def serialize(self) -> dict[str, Any]:
        """{"items": [{unique_id, item_id, display_name, rarity, value, is_follower}, ...]}"""
        return {"items": [item_to_dict(item) for item in self._items.values()]}

    @classmethod
    def deserialize(
        cls,
        data: Optional[dict[str, Any]],
        catalog: Optional["ItemCatalog"] = None,
    ) -> "Inventory":
        """serialize() 결과 → Inventory.

        catalog를 주면 power_up을 정의에서 재유도한다.
        카탈로그에 없는 item_id는 power_up 없이 복원하고 경고.
        """
        inv = cls()
        if not data:
            return inv

        for raw in data.get("items", []):
            inv.add_item(item_from_dict(raw, catalog))
        return inv

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[ItemInstance]:
        return iter(self.all_items())

    def __contains__(self, unique_id: object) -> bool:
        return unique_id in self._items


def item_from_dict(
    raw: dict[str, Any], catalog: Optional["ItemCatalog"] = None
) -> ItemInstance:
    """저장 dict → ItemInstance. 저장소 복원과 역직렬화에서 공용."""
    power_up = None
    if catalog is not None:
        definition = catalog.get(raw["item_id"])
        if definition is None:
            logger.warning("Unknown item_id in saved data: %s", raw["item_id"])
        else:
            power_up = definition.power_up

    return ItemInstance(
        unique_id=raw["unique_id"],
        item_id=raw["item_id"],
        display_name=raw.get("display_name", raw["item_id"]),
        rarity=raw["rarity"],
        value=int(raw.get("value", 0)),
        is_follower=bool(raw.get("is_follower", False)),
        power_up=power_up,
    )


def item_to_dict(item: ItemInstance) -> dict[str, Any]:
    return {name: getattr(item, name) for name in SERIALIZED_FIELDS}
