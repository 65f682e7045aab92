"""경제 도메인 모델 (DB 무관)"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union


@dataclass(frozen=True)
class RarityTier:
    """등급 — 불변. rarities.json에서 로드."""

    name: str  # "Common"
    order: int  # 1부터 연속
    min_value: int  # 판매가 하한 (Fragments)
    max_value: int  # 판매가 상한. 0 = 판매 불가
    can_trade_up_from: bool
    can_trade_up_to: bool
    spawn_weight: float  # 상대 가중치
    outline_color: tuple[int, int, int] = (255, 255, 255)

    @property
    def is_sellable(self) -> bool:
        return self.min_value > 0 and self.max_value > 0

    @property
    def is_permanent(self) -> bool:
        """판매 불가 등급은 영구 보유 (사망 시에도 유지, 저장 대상)."""
        return not self.is_sellable


# ── Power-up (sum type) ──────────────────────────────────────


class PowerUpKind(str, Enum):
    SPEED_BOOST = "SpeedBoost"
    DETECTION_BOOST = "DetectionBoost"
    FLASHLIGHT_RECHARGE = "FlashlightRecharge"
    NEON_AURA = "NeonAura"
    LIGHT_DISRUPTION = "LightDisruption"
    SOUND_DECOY = "SoundDecoy"
    ITEM_RADAR = "ItemRadar"


@dataclass(frozen=True)
class SpeedBoost:
    multiplier: float
    duration: float  # seconds
    kind: PowerUpKind = field(default=PowerUpKind.SPEED_BOOST, init=False)


@dataclass(frozen=True)
class DetectionBoost:
    range_multiplier: float
    duration: float
    kind: PowerUpKind = field(default=PowerUpKind.DETECTION_BOOST, init=False)


@dataclass(frozen=True)
class FlashlightRecharge:
    recharge_percent: int
    kind: PowerUpKind = field(default=PowerUpKind.FLASHLIGHT_RECHARGE, init=False)


@dataclass(frozen=True)
class NeonAura:
    vision_boost: float
    entity_detection_multiplier: float
    duration: float
    kind: PowerUpKind = field(default=PowerUpKind.NEON_AURA, init=False)


@dataclass(frozen=True)
class LightDisruption:
    radius: float  # studs
    duration: float
    kind: PowerUpKind = field(default=PowerUpKind.LIGHT_DISRUPTION, init=False)


@dataclass(frozen=True)
class SoundDecoy:
    decoy_duration: float
    teleport_distance: float  # studs
    kind: PowerUpKind = field(default=PowerUpKind.SOUND_DECOY, init=False)


@dataclass(frozen=True)
class ItemRadar:
    target_rarities: tuple[str, ...]
    duration: float
    legendary_chime: bool = False
    kind: PowerUpKind = field(default=PowerUpKind.ITEM_RADAR, init=False)


PowerUp = Union[
    SpeedBoost,
    DetectionBoost,
    FlashlightRecharge,
    NeonAura,
    LightDisruption,
    SoundDecoy,
    ItemRadar,
]


@dataclass(frozen=True)
class FollowerInfo:
    """Legendary 팔로워 표시 정보"""

    position: str  # "WalkBeside" | "Shoulder" | "CircleHead" | "Back"
    model_name: str
    idle_animation: Optional[str] = None


@dataclass(frozen=True)
class ItemDefinition:
    """아이템 정의 — 불변. items.json에서 로드."""

    item_id: str  # "pen"
    display_name: str
    rarity: str  # RarityTier.name 참조
    description: str = ""
    is_follower: bool = False
    power_up: Optional[PowerUp] = None
    follower_info: Optional[FollowerInfo] = None


@dataclass
class ItemInstance:
    """플레이어 소유 아이템 개체. 한 번에 하나의 Inventory에만 속한다."""

    unique_id: str  # UUID
    item_id: str  # ItemDefinition.item_id 참조
    display_name: str
    rarity: str  # 정의의 rarity 복사본
    value: int  # 생성 시 굴린 판매가
    is_follower: bool = False
    power_up: Optional[PowerUp] = None  # 저장하지 않음, 카탈로그에서 재유도
