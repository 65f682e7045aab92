"""Application configuration loaded from environment variables and .env file."""

from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DATA_DIR = Path(__file__).resolve().parent / "data"


class Settings(BaseSettings):
    """Application settings.

    Values are loaded from environment variables first,
    then from a .env file in the project root as fallback.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    DATABASE_URL: str = "sqlite:///./mazeloot.db"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # 정적 데이터 테이블
    RARITY_DATA_PATH: Path = DATA_DIR / "rarities.json"
    ITEM_DATA_PATH: Path = DATA_DIR / "items.json"
    CRATE_DATA_PATH: Path = DATA_DIR / "crates.json"

    # 인벤토리 용량
    MAX_INVENTORY_SLOTS: int = 99
    EXPEDITION_BACKPACK_SLOTS: int = 5

    # 저장
    AUTO_SAVE_INTERVAL: float = 300.0  # seconds
    SAVE_MAX_RETRIES: int = 3
    SAVE_RETRY_BACKOFF: float = 1.0  # seconds

    @model_validator(mode="after")
    def _check_capacity(self) -> "Settings":
        if self.EXPEDITION_BACKPACK_SLOTS >= self.MAX_INVENTORY_SLOTS:
            raise ValueError(
                "EXPEDITION_BACKPACK_SLOTS must be smaller than MAX_INVENTORY_SLOTS"
            )
        if self.SAVE_MAX_RETRIES < 1:
            raise ValueError("SAVE_MAX_RETRIES must be at least 1")
        return self


settings = Settings()
