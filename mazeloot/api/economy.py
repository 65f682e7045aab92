"""Economy API endpoints."""

from typing import Callable, TypeVar

from fastapi import APIRouter, Depends, HTTPException, Request

from mazeloot.api.schemas import (
    CloseSessionResponse,
    CrateResponse,
    DeathResponse,
    ErrorResponse,
    ExpeditionRequest,
    ExpeditionResponse,
    InventoryResponse,
    LootRequest,
    LootResponse,
    OpenSessionRequest,
    SellAllResponse,
    SellRequest,
    SellResponse,
    SessionResponse,
    TradeUpCandidateInfo,
    TradeUpRequest,
    TradeUpResponse,
    candidate_info,
    item_info,
)
from mazeloot.core.economy.errors import SessionClosedError
from mazeloot.core.logging import get_logger
from mazeloot.services.economy_service import PlayerEconomyCoordinator
from mazeloot.services.session_service import SessionManager

logger = get_logger(__name__)

router = APIRouter(prefix="/economy", tags=["economy"])

T = TypeVar("T")

NOT_FOUND = {404: {"model": ErrorResponse}}


def get_session_manager(request: Request) -> SessionManager:
    """SessionManager 인스턴스 반환 (의존성 주입)"""
    manager: SessionManager = request.app.state.session_manager
    return manager


async def _run(
    manager: SessionManager,
    player_key: str,
    job: Callable[[PlayerEconomyCoordinator], T],
) -> T:
    """세션 actor에서 실행. 열린 세션이 없으면 404."""
    try:
        return await manager.submit(player_key, job)
    except SessionClosedError:
        raise HTTPException(status_code=404, detail=f"No open session: {player_key}")


def _session_response(c: PlayerEconomyCoordinator) -> SessionResponse:
    state = c.state
    return SessionResponse(
        player_key=c.player_key,
        balance=state.balance,
        xp=state.xp,
        level=state.level,
        prestige=state.prestige,
        total_runs=state.total_runs,
        count=c.inventory.count,
        capacity=c.get_effective_capacity(),
        in_expedition=c.in_expedition,
    )


# === 세션 ===


@router.post("/sessions", response_model=SessionResponse)
async def open_session(
    body: OpenSessionRequest,
    manager: SessionManager = Depends(get_session_manager),
) -> SessionResponse:
    """
    세션 열기

    저장 기록이 있으면 통화/성장/영구 아이템을 복원합니다.
    """
    await manager.open(body.player_key)
    return await _run(manager, body.player_key, _session_response)


@router.delete(
    "/sessions/{player_key}",
    response_model=CloseSessionResponse,
    responses=NOT_FOUND,
)
async def close_session(
    player_key: str,
    manager: SessionManager = Depends(get_session_manager),
) -> CloseSessionResponse:
    """세션 종료 + 최종 저장"""
    if player_key not in manager:
        raise HTTPException(status_code=404, detail=f"No open session: {player_key}")
    saved = await manager.close(player_key)
    return CloseSessionResponse(player_key=player_key, saved=saved)


# === 인벤토리 ===


@router.get(
    "/{player_key}/inventory",
    response_model=InventoryResponse,
    responses=NOT_FOUND,
)
async def get_inventory(
    player_key: str,
    manager: SessionManager = Depends(get_session_manager),
) -> InventoryResponse:
    def job(c: PlayerEconomyCoordinator) -> InventoryResponse:
        return InventoryResponse(
            player_key=player_key,
            balance=c.balance,
            count=c.inventory.count,
            capacity=c.get_effective_capacity(),
            items=[item_info(i) for i in c.inventory.all_items()],
        )

    return await _run(manager, player_key, job)


@router.post("/{player_key}/loot", response_model=LootResponse, responses=NOT_FOUND)
async def grant_loot(
    player_key: str,
    body: LootRequest,
    manager: SessionManager = Depends(get_session_manager),
) -> LootResponse:
    """루트 생성 후 지급. 용량을 넘는 아이템은 버려집니다."""
    granted, reason = await _run(
        manager,
        player_key,
        lambda c: c.grant_loot(body.count, body.luck, body.rarity),
    )
    return LootResponse(
        success=bool(granted),
        items=[item_info(i) for i in granted],
        message=reason,
    )


# === 판매 ===


@router.post("/{player_key}/sell", response_model=SellResponse, responses=NOT_FOUND)
async def sell_item(
    player_key: str,
    body: SellRequest,
    manager: SessionManager = Depends(get_session_manager),
) -> SellResponse:
    def job(c: PlayerEconomyCoordinator) -> SellResponse:
        earned, sold = c.sell_item(body.unique_id)
        return SellResponse(success=sold, earned=earned, balance=c.balance)

    return await _run(manager, player_key, job)


@router.post(
    "/{player_key}/sell-all", response_model=SellAllResponse, responses=NOT_FOUND
)
async def sell_all(
    player_key: str,
    manager: SessionManager = Depends(get_session_manager),
) -> SellAllResponse:
    """영구 등급(Legendary)을 제외한 전부 판매"""

    def job(c: PlayerEconomyCoordinator) -> SellAllResponse:
        earned, count = c.sell_all()
        return SellAllResponse(
            success=count > 0, earned=earned, count=count, balance=c.balance
        )

    return await _run(manager, player_key, job)


# === 트레이드업 ===


@router.post(
    "/{player_key}/trade-up", response_model=TradeUpResponse, responses=NOT_FOUND
)
async def trade_up(
    player_key: str,
    body: TradeUpRequest,
    manager: SessionManager = Depends(get_session_manager),
) -> TradeUpResponse:
    """동일 아이템 5개 → 다음 등급 1개"""
    new_item, reason = await _run(
        manager, player_key, lambda c: c.trade_up(body.unique_ids)
    )
    if new_item is None:
        return TradeUpResponse(success=False, message=reason)
    return TradeUpResponse(success=True, item=item_info(new_item))


@router.get(
    "/{player_key}/trade-ups",
    response_model=list[TradeUpCandidateInfo],
    responses=NOT_FOUND,
)
async def list_trade_ups(
    player_key: str,
    manager: SessionManager = Depends(get_session_manager),
) -> list[TradeUpCandidateInfo]:
    candidates = await _run(manager, player_key, lambda c: c.available_trade_ups())
    return [candidate_info(candidate) for candidate in candidates]


# === 미로 ===


@router.post(
    "/{player_key}/expedition",
    response_model=ExpeditionResponse,
    responses=NOT_FOUND,
)
async def set_expedition(
    player_key: str,
    body: ExpeditionRequest,
    manager: SessionManager = Depends(get_session_manager),
) -> ExpeditionResponse:
    """미로 진입(active=true) 시 배낭 용량, 복귀 시 전체 용량"""

    def job(c: PlayerEconomyCoordinator) -> ExpeditionResponse:
        capacity = c.set_expedition_mode(body.active)
        return ExpeditionResponse(
            in_expedition=c.in_expedition,
            capacity=capacity,
            count=c.inventory.count,
            total_runs=c.state.total_runs,
        )

    return await _run(manager, player_key, job)


@router.post("/{player_key}/death", response_model=DeathResponse, responses=NOT_FOUND)
async def on_death(
    player_key: str,
    manager: SessionManager = Depends(get_session_manager),
) -> DeathResponse:
    """사망 — 영구 등급 외 아이템 소실"""
    removed = await _run(manager, player_key, lambda c: c.on_death())
    return DeathResponse(count=len(removed), lost=[item_info(i) for i in removed])


# === 크레이트 ===


@router.post(
    "/{player_key}/crates/{crate_id}",
    response_model=CrateResponse,
    responses=NOT_FOUND,
)
async def open_crate(
    player_key: str,
    crate_id: str,
    manager: SessionManager = Depends(get_session_manager),
) -> CrateResponse:
    """Fragment로 크레이트 구매 + 개봉"""

    def job(c: PlayerEconomyCoordinator) -> CrateResponse:
        item, reason = c.open_crate(crate_id)
        return CrateResponse(
            success=item is not None,
            balance=c.balance,
            item=item_info(item) if item is not None else None,
            message=reason,
        )

    result = await _run(manager, player_key, job)
    if result.success:
        logger.debug("Crate %s opened by %s", crate_id, player_key)
    return result
