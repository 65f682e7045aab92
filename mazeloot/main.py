"""FastAPI application entrypoint."""

import random
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI

from mazeloot.api.economy import router as economy_router
from mazeloot.api.health import router as health_router
from mazeloot.config import Settings, settings
from mazeloot.core.economy.catalog import ItemCatalog
from mazeloot.core.economy.crates import CrateCatalog
from mazeloot.core.economy.loot import LootGenerator
from mazeloot.core.economy.rarity import RarityCatalog
from mazeloot.core.event_bus import EventBus
from mazeloot.core.logging import get_logger, setup_logging
from mazeloot.db.database import SessionLocal, engine as db_engine
from mazeloot.db.models import Base
from mazeloot.services.save_store import SaveRetryPolicy, SaveStore, SqlSaveStore
from mazeloot.services.session_service import SessionManager

setup_logging(settings.LOG_LEVEL)
logger = get_logger(__name__)


def build_session_manager(
    config: Settings,
    store: SaveStore,
    event_bus: EventBus,
    rng: Optional[random.Random] = None,
) -> SessionManager:
    """정적 데이터 로드 → LootGenerator → SessionManager.

    데이터 오류(ConfigurationError)는 그대로 올려 시작을 중단시킨다.
    """
    rarities = RarityCatalog.load_from_json(config.RARITY_DATA_PATH)
    items = ItemCatalog.load_from_json(config.ITEM_DATA_PATH, rarities)
    crates = CrateCatalog.load_from_json(config.CRATE_DATA_PATH, rarities)
    loot = LootGenerator(rarities, items, rng)

    return SessionManager(
        store=store,
        loot=loot,
        crates=crates,
        event_bus=event_bus,
        retry_policy=SaveRetryPolicy(
            max_attempts=config.SAVE_MAX_RETRIES,
            backoff=config.SAVE_RETRY_BACKOFF,
        ),
        max_slots=config.MAX_INVENTORY_SLOTS,
        expedition_slots=config.EXPEDITION_BACKPACK_SLOTS,
        autosave_interval=config.AUTO_SAVE_INTERVAL,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown events."""
    # DB 테이블 생성
    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=db_engine)
    logger.info("Database tables created.")

    # 카탈로그 + 세션 매니저 초기화
    logger.info("Initializing session manager...")
    event_bus = EventBus()
    session_manager = build_session_manager(
        settings, SqlSaveStore(SessionLocal), event_bus
    )
    session_manager.start_autosave()
    app.state.event_bus = event_bus
    app.state.session_manager = session_manager
    logger.info(
        "Session manager initialized (autosave every %.0fs).",
        settings.AUTO_SAVE_INTERVAL,
    )

    yield

    # 종료 시 정리: 모든 세션 최종 저장
    logger.info("Shutting down...")
    await session_manager.shutdown()


app = FastAPI(title="Maze Loot Economy", lifespan=lifespan)

app.include_router(health_router)
app.include_router(economy_router)
