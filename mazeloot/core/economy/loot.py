"""루트 생성 — 가중 등급 추첨 + 아이템 인스턴스 생성"""

from __future__ import annotations

import logging
import random
import uuid
from typing import Iterable, Optional

from .catalog import ItemCatalog
from .errors import EmptyRarityPoolError, InvalidCountError, InvalidLuckError
from .models import ItemInstance
from .rarity import RarityCatalog

logger = logging.getLogger(__name__)

DEFAULT_LUCK = 1.0


class LootGenerator:
    """등급 추첨 + 아이템 생성.

    rng를 주입하면 재현 가능한 시뮬레이션이 된다 (테스트/밸런싱).
    """

    def __init__(
        self,
        rarities: RarityCatalog,
        items: ItemCatalog,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._rarities = rarities
        self._items = items
        self._rng = rng or random.Random()

    @property
    def rarities(self) -> RarityCatalog:
        return self._rarities

    @property
    def items(self) -> ItemCatalog:
        return self._items

    def build_weighted_pool(self, luck: float = DEFAULT_LUCK) -> list[tuple[str, float]]:
        """[(등급 이름, 가중치)] — order 오름차순.

        luck > 1.0 일 때만 보정:
        - order >= 2: weight * luck
        - 최하위 등급: weight / luck
        """
        if luck < DEFAULT_LUCK:
            raise InvalidLuckError(f"Luck multiplier must be >= 1.0, got {luck}")

        pool: list[tuple[str, float]] = []
        for tier in self._rarities.ordered():
            weight = tier.spawn_weight
            if luck > DEFAULT_LUCK:
                if tier.order >= 2:
                    weight = weight * luck
                else:
                    weight = weight / luck
            pool.append((tier.name, weight))
        return pool

    def roll_weighted(self, pool: Iterable[tuple[str, float]]) -> str:
        """가중 목록에서 하나 추첨. [0, total) 균등 난수 후 누적합 >= roll 인 첫 항목.

        가중치 0 항목은 roll == 0 이어도 뽑히지 않는다.
        """
        entries = list(pool)
        total = sum(weight for _, weight in entries)
        roll = self._rng.random() * total

        cumulative = 0.0
        for name, weight in entries:
            cumulative += weight
            if weight > 0 and cumulative >= roll:
                return name

        # 부동소수점 경계 실패. 도달하면 버그.
        fallback = self._rarities.lowest().name
        logger.error(
            "Weighted roll fell through (roll=%r, total=%r); falling back to %s",
            roll,
            total,
            fallback,
        )
        return fallback

    def roll_rarity(self, luck: float = DEFAULT_LUCK) -> str:
        """등급 이름 추첨."""
        return self.roll_weighted(self.build_weighted_pool(luck))

    def roll_value(self, rarity: str) -> int:
        """판매가 추첨. [min, max] 양쪽 포함. 범위가 0이면 0."""
        tier = self._rarities.tier_of(rarity)
        if tier.min_value > 0 and tier.max_value > 0:
            return self._rng.randint(tier.min_value, tier.max_value)
        return 0

    def generate_item(
        self,
        rarity_override: Optional[str] = None,
        luck: Optional[float] = None,
    ) -> ItemInstance:
        """아이템 인스턴스 1개 생성.

        rarity_override가 있으면 추첨/행운을 건너뛴다.
        해당 등급에 정의가 없으면 EmptyRarityPoolError.
        """
        if rarity_override is not None:
            rarity = self._rarities.tier_of(rarity_override).name
        else:
            rarity = self.roll_rarity(DEFAULT_LUCK if luck is None else luck)

        candidates = self._items.items_of_rarity(rarity)
        if not candidates:
            raise EmptyRarityPoolError(f"No items defined for rarity: {rarity}")

        definition = self._rng.choice(candidates)
        instance = ItemInstance(
            unique_id=str(uuid.uuid4()),
            item_id=definition.item_id,
            display_name=definition.display_name,
            rarity=rarity,
            value=self.roll_value(rarity),
            is_follower=definition.is_follower,
            power_up=definition.power_up,
        )
        logger.debug(
            "Generated %s (%s, value=%d) uid=%s",
            instance.item_id,
            rarity,
            instance.value,
            instance.unique_id,
        )
        return instance

    def generate_batch(self, count: int, luck: Optional[float] = None) -> list[ItemInstance]:
        """count개 독립 추첨. 미로 한 층 루트 배치용."""
        if count <= 0:
            raise InvalidCountError(f"Loot batch count must be > 0, got {count}")
        return [self.generate_item(None, luck) for _ in range(count)]
