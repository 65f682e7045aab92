"""등급 카탈로그 — JSON 로드 후 읽기 전용"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from .errors import ConfigurationError, UnknownRarityError
from .models import RarityTier

logger = logging.getLogger(__name__)


class RarityCatalog:
    """
    등급 저장소.
    order 오름차순(1..N, 연속)으로 정렬된 불변 테이블.
    """

    def __init__(self, tiers: list[RarityTier]) -> None:
        if not tiers:
            raise ConfigurationError("Rarity catalog is empty")

        by_name: dict[str, RarityTier] = {}
        for tier in tiers:
            if tier.name in by_name:
                raise ConfigurationError(f"Duplicate rarity name: {tier.name}")
            if tier.spawn_weight < 0:
                raise ConfigurationError(
                    f"Negative spawn weight for rarity: {tier.name}"
                )
            by_name[tier.name] = tier

        ordered = tuple(sorted(tiers, key=lambda t: t.order))
        expected = list(range(1, len(ordered) + 1))
        if [t.order for t in ordered] != expected:
            raise ConfigurationError(
                "Rarity orders must be contiguous from 1, got "
                f"{[t.order for t in ordered]}"
            )

        self._by_name = by_name
        self._ordered = ordered

    @classmethod
    def load_from_json(cls, path: str | Path) -> "RarityCatalog":
        """rarities.json 로드.

        JSON 배열의 각 객체를 RarityTier로 변환.
        필드 누락/형 오류는 ConfigurationError (시작 중단).
        """
        path = Path(path)
        with path.open("r", encoding="utf-8") as f:
            raw_list: list[dict] = json.load(f)

        tiers: list[RarityTier] = []
        for raw in raw_list:
            try:
                tiers.append(
                    RarityTier(
                        name=raw["name"],
                        order=int(raw["order"]),
                        min_value=int(raw["min_value"]),
                        max_value=int(raw["max_value"]),
                        can_trade_up_from=bool(raw["can_trade_up_from"]),
                        can_trade_up_to=bool(raw["can_trade_up_to"]),
                        spawn_weight=float(raw["spawn_weight"]),
                        outline_color=tuple(raw.get("outline_color", (255, 255, 255))),
                    )
                )
            except (KeyError, TypeError, ValueError) as e:
                raise ConfigurationError(
                    f"Invalid rarity entry {raw.get('name', '?')}: {e}"
                ) from e

        catalog = cls(tiers)
        logger.info("Loaded %d rarity tiers from %s", len(tiers), path)
        return catalog

    def get(self, name: str) -> Optional[RarityTier]:
        """O(1) 조회. 없으면 None."""
        return self._by_name.get(name)

    def tier_of(self, name: str) -> RarityTier:
        """조회. 없으면 UnknownRarityError."""
        tier = self._by_name.get(name)
        if tier is None:
            raise UnknownRarityError(name)
        return tier

    def next_tier(self, name: str) -> Optional[RarityTier]:
        """order가 정확히 1 큰 등급. 최상위거나 알 수 없는 이름이면 None."""
        tier = self._by_name.get(name)
        if tier is None:
            return None
        # order는 1부터 연속이므로 인덱스 = order
        if tier.order >= len(self._ordered):
            return None
        return self._ordered[tier.order]

    def ordered(self) -> tuple[RarityTier, ...]:
        return self._ordered

    def names(self) -> list[str]:
        return [t.name for t in self._ordered]

    def lowest(self) -> RarityTier:
        return self._ordered[0]

    def highest(self) -> RarityTier:
        return self._ordered[-1]

    def is_permanent(self, name: str) -> bool:
        """판매 불가 + 사망 시 유지 등급 여부. 알 수 없는 이름은 False."""
        tier = self._by_name.get(name)
        return tier is not None and tier.is_permanent

    def permanent_names(self) -> frozenset[str]:
        return frozenset(t.name for t in self._ordered if t.is_permanent)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._ordered)
