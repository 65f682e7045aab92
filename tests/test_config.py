"""Settings 검증 테스트"""

import pytest
from pydantic import ValidationError

from mazeloot.config import DATA_DIR, Settings


def test_defaults():
    config = Settings(_env_file=None)
    assert config.MAX_INVENTORY_SLOTS == 99
    assert config.EXPEDITION_BACKPACK_SLOTS == 5
    assert config.AUTO_SAVE_INTERVAL == 300.0
    assert config.SAVE_MAX_RETRIES == 3
    assert config.ITEM_DATA_PATH == DATA_DIR / "items.json"


def test_backpack_must_be_smaller(monkeypatch):
    monkeypatch.setenv("EXPEDITION_BACKPACK_SLOTS", "99")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_retries_at_least_one():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, SAVE_MAX_RETRIES=0)


def test_env_override(monkeypatch):
    monkeypatch.setenv("MAX_INVENTORY_SLOTS", "40")
    assert Settings(_env_file=None).MAX_INVENTORY_SLOTS == 40
