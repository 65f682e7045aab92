"""API request/response schemas."""

from typing import Optional

from pydantic import BaseModel, Field

from mazeloot.core.economy.models import ItemInstance
from mazeloot.core.economy.tradeup import TradeUpCandidate


# === Request Schemas ===


class OpenSessionRequest(BaseModel):
    """세션 열기 요청"""

    player_key: str = Field(..., min_length=1, max_length=64, description="플레이어 키")


class LootRequest(BaseModel):
    """루트 지급 요청"""

    count: int = Field(1, ge=1, le=99, description="생성 수량")
    luck: Optional[float] = Field(None, ge=1.0, description="행운 배수 (1.0 이상)")
    rarity: Optional[str] = Field(None, description="등급 강제 지정")


class SellRequest(BaseModel):
    """단일 판매 요청"""

    unique_id: str


class TradeUpRequest(BaseModel):
    """트레이드업 요청"""

    unique_ids: list[str] = Field(..., description="동일 아이템 5개의 unique_id")


class ExpeditionRequest(BaseModel):
    """미로 진입/복귀"""

    active: bool


# === Response Schemas ===


class ItemInfo(BaseModel):
    """아이템 인스턴스 정보"""

    unique_id: str
    item_id: str
    display_name: str
    rarity: str
    value: int
    is_follower: bool = False
    power_up: Optional[str] = None


class SessionResponse(BaseModel):
    """세션 상태"""

    player_key: str
    balance: int
    xp: int
    level: int
    prestige: int
    total_runs: int
    count: int
    capacity: int
    in_expedition: bool


class CloseSessionResponse(BaseModel):
    player_key: str
    saved: bool


class InventoryResponse(BaseModel):
    """인벤토리 조회 응답"""

    player_key: str
    balance: int
    count: int
    capacity: int
    items: list[ItemInfo] = []


class LootResponse(BaseModel):
    success: bool
    items: list[ItemInfo] = []
    message: Optional[str] = None


class SellResponse(BaseModel):
    success: bool
    earned: int
    balance: int


class SellAllResponse(BaseModel):
    success: bool
    earned: int
    count: int
    balance: int


class TradeUpResponse(BaseModel):
    success: bool
    item: Optional[ItemInfo] = None
    message: Optional[str] = None


class TradeUpCandidateInfo(BaseModel):
    item_id: str
    display_name: str
    rarity: str
    count: int


class ExpeditionResponse(BaseModel):
    in_expedition: bool
    capacity: int
    count: int
    total_runs: int


class DeathResponse(BaseModel):
    """사망 처리 결과"""

    count: int
    lost: list[ItemInfo] = []


class CrateResponse(BaseModel):
    success: bool
    balance: int
    item: Optional[ItemInfo] = None
    message: Optional[str] = None


class ErrorResponse(BaseModel):
    """에러 응답"""

    success: bool = False
    error: str
    detail: Optional[str] = None


# === 변환 ===


def item_info(item: ItemInstance) -> ItemInfo:
    return ItemInfo(
        unique_id=item.unique_id,
        item_id=item.item_id,
        display_name=item.display_name,
        rarity=item.rarity,
        value=item.value,
        is_follower=item.is_follower,
        power_up=item.power_up.kind.value if item.power_up is not None else None,
    )


def candidate_info(candidate: TradeUpCandidate) -> TradeUpCandidateInfo:
    return TradeUpCandidateInfo(
        item_id=candidate.item_id,
        display_name=candidate.display_name,
        rarity=candidate.rarity,
        count=candidate.count,
    )
