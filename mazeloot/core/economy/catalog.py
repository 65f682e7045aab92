"""아이템 카탈로그 — JSON 로드 후 읽기 전용"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

from .errors import ConfigurationError, UnknownItemError
from .models import (
    DetectionBoost,
    FlashlightRecharge,
    FollowerInfo,
    ItemDefinition,
    ItemRadar,
    LightDisruption,
    NeonAura,
    PowerUp,
    PowerUpKind,
    SoundDecoy,
    SpeedBoost,
)
from .rarity import RarityCatalog

logger = logging.getLogger(__name__)


def parse_power_up(raw: Optional[dict[str, Any]]) -> Optional[PowerUp]:
    """{"type": "SpeedBoost", ...} → PowerUp variant. None은 그대로 None.

    알 수 없는 type이나 필드 누락은 ConfigurationError.
    """
    if raw is None:
        return None
    try:
        kind = PowerUpKind(raw["type"])
        if kind is PowerUpKind.SPEED_BOOST:
            return SpeedBoost(
                multiplier=float(raw["multiplier"]),
                duration=float(raw["duration"]),
            )
        if kind is PowerUpKind.DETECTION_BOOST:
            return DetectionBoost(
                range_multiplier=float(raw["range_multiplier"]),
                duration=float(raw["duration"]),
            )
        if kind is PowerUpKind.FLASHLIGHT_RECHARGE:
            return FlashlightRecharge(recharge_percent=int(raw["recharge_percent"]))
        if kind is PowerUpKind.NEON_AURA:
            return NeonAura(
                vision_boost=float(raw["vision_boost"]),
                entity_detection_multiplier=float(raw["entity_detection_multiplier"]),
                duration=float(raw["duration"]),
            )
        if kind is PowerUpKind.LIGHT_DISRUPTION:
            return LightDisruption(
                radius=float(raw["radius"]),
                duration=float(raw["duration"]),
            )
        if kind is PowerUpKind.SOUND_DECOY:
            return SoundDecoy(
                decoy_duration=float(raw["decoy_duration"]),
                teleport_distance=float(raw["teleport_distance"]),
            )
        return ItemRadar(
            target_rarities=tuple(raw["target_rarities"]),
            duration=float(raw["duration"]),
            legendary_chime=bool(raw.get("legendary_chime", False)),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid power-up {raw!r}: {e}") from e


def parse_follower_info(raw: Optional[dict[str, Any]]) -> Optional[FollowerInfo]:
    if raw is None:
        return None
    try:
        return FollowerInfo(
            position=raw["position"],
            model_name=raw["model_name"],
            idle_animation=raw.get("idle_animation"),
        )
    except KeyError as e:
        raise ConfigurationError(f"Invalid follower info {raw!r}: {e}") from e


class ItemCatalog:
    """
    아이템 정의 저장소.
    모든 item_id는 전 등급에 걸쳐 유일하고, 모든 rarity는 RarityCatalog에 존재해야 한다.
    """

    def __init__(self, definitions: list[ItemDefinition], rarities: RarityCatalog) -> None:
        items: dict[str, ItemDefinition] = {}
        by_rarity: dict[str, list[ItemDefinition]] = {name: [] for name in rarities.names()}

        for definition in definitions:
            if definition.item_id in items:
                raise ConfigurationError(f"Duplicate item_id: {definition.item_id}")
            if definition.rarity not in rarities:
                raise ConfigurationError(
                    f"Item {definition.item_id} references unknown rarity: "
                    f"{definition.rarity}"
                )
            items[definition.item_id] = definition
            by_rarity[definition.rarity].append(definition)

        self._items = items
        self._by_rarity = {name: tuple(defs) for name, defs in by_rarity.items()}

    @classmethod
    def load_from_json(cls, path: str | Path, rarities: RarityCatalog) -> "ItemCatalog":
        """items.json 로드.

        JSON 배열의 각 객체를 ItemDefinition으로 변환.
        power_up은 type 키로 variant를 고르고, follower_info는 FollowerInfo로 변환.
        """
        path = Path(path)
        with path.open("r", encoding="utf-8") as f:
            raw_list: list[dict] = json.load(f)

        definitions: list[ItemDefinition] = []
        for raw in raw_list:
            try:
                definitions.append(
                    ItemDefinition(
                        item_id=raw["item_id"],
                        display_name=raw["display_name"],
                        rarity=raw["rarity"],
                        description=raw.get("description", ""),
                        is_follower=bool(raw.get("is_follower", False)),
                        power_up=parse_power_up(raw.get("power_up")),
                        follower_info=parse_follower_info(raw.get("follower_info")),
                    )
                )
            except KeyError as e:
                raise ConfigurationError(
                    f"Invalid item entry {raw.get('item_id', '?')}: missing {e}"
                ) from e

        catalog = cls(definitions, rarities)
        logger.info("Loaded %d item definitions from %s", len(definitions), path)
        return catalog

    def get(self, item_id: str) -> Optional[ItemDefinition]:
        """O(1) 조회. 없으면 None."""
        return self._items.get(item_id)

    def item_by_id(self, item_id: str) -> ItemDefinition:
        """조회. 없으면 UnknownItemError."""
        definition = self._items.get(item_id)
        if definition is None:
            raise UnknownItemError(item_id)
        return definition

    def items_of_rarity(self, rarity: str) -> tuple[ItemDefinition, ...]:
        """해당 등급의 정의 목록 (파일 순서). 알 수 없는 등급은 빈 tuple."""
        return self._by_rarity.get(rarity, ())

    def count_by_rarity(self, rarity: str) -> int:
        return len(self.items_of_rarity(rarity))

    def all(self) -> tuple[ItemDefinition, ...]:
        return tuple(self._items.values())

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def __len__(self) -> int:
        return len(self._items)
