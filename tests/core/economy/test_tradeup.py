"""트레이드업 테스트: 검증 순서, 실행, 롤백, 가능 목록"""

from __future__ import annotations

import logging
import random
from unittest.mock import patch

import pytest

from mazeloot.core.economy.catalog import ItemCatalog
from mazeloot.core.economy.errors import EmptyRarityPoolError
from mazeloot.core.economy.inventory import Inventory
from mazeloot.core.economy.loot import LootGenerator
from mazeloot.core.economy.models import ItemInstance, RarityTier
from mazeloot.core.economy.rarity import RarityCatalog
from mazeloot.core.economy.tradeup import (
    INTERNAL_FAILURE_REASON,
    TradeUpEngine,
    TradeUpRejection,
)


def _make_items(
    count: int = 5,
    item_id: str = "pen",
    rarity: str = "Common",
    prefix: str | None = None,
) -> list[ItemInstance]:
    prefix = prefix or item_id
    return [
        ItemInstance(
            unique_id=f"{prefix}-{n}",
            item_id=item_id,
            display_name=item_id,
            rarity=rarity,
            value=10,
        )
        for n in range(count)
    ]


def _fill(inventory: Inventory, items: list[ItemInstance]) -> Inventory:
    for item in items:
        inventory.add_item(item)
    return inventory


def _make_engine_for(tiers: list[RarityTier]) -> TradeUpEngine:
    rarities = RarityCatalog(tiers)
    loot = LootGenerator(rarities, ItemCatalog([], rarities), random.Random(0))
    return TradeUpEngine(rarities, loot)


def _tier(name: str, order: int, up_from: bool = True, up_to: bool = True) -> RarityTier:
    return RarityTier(
        name=name,
        order=order,
        min_value=1,
        max_value=2,
        can_trade_up_from=up_from,
        can_trade_up_to=up_to,
        spawn_weight=1,
    )


@pytest.fixture()
def engine(rarities, loot) -> TradeUpEngine:
    return TradeUpEngine(rarities, loot)


class TestValidation:
    def test_five_commons_ok(self, engine):
        assert engine.can_trade_up(_make_items()) == (True, None)
        assert engine.check(_make_items()) is None

    def test_five_rares_ok(self, engine):
        assert engine.can_trade_up(_make_items(item_id="mouse", rarity="Rare"))[0]

    @pytest.mark.parametrize("count", [0, 4, 6])
    def test_wrong_count(self, engine, count):
        items = _make_items(count)
        ok, reason = engine.can_trade_up(items)
        assert not ok
        assert f"got {count}" in reason
        assert engine.check(items) is TradeUpRejection.WRONG_COUNT

    def test_mixed_items(self, engine):
        items = _make_items(4) + _make_items(1, item_id="pencil")
        ok, reason = engine.can_trade_up(items)
        assert not ok
        assert "'pencil' at position 5" in reason
        assert engine.check(items) is TradeUpRejection.MIXED_ITEMS

    def test_unknown_rarity(self, engine):
        items = _make_items(rarity="Mythic")
        assert engine.check(items) is TradeUpRejection.UNKNOWN_RARITY
        assert engine.can_trade_up(items) == (False, "Unknown rarity: Mythic")

    def test_epic_blocked(self, engine):
        items = _make_items(item_id="powerbank", rarity="Epic")
        assert engine.check(items) is TradeUpRejection.SOURCE_BLOCKED
        assert engine.can_trade_up(items) == (False, "Cannot trade up from Epic tier")

    def test_legendary_blocked(self, engine):
        items = _make_items(item_id="tralalero_tralala", rarity="Legendary")
        assert engine.check(items) is TradeUpRejection.SOURCE_BLOCKED

    def test_no_next_tier(self):
        engine = _make_engine_for([_tier("Common", 1), _tier("Top", 2)])
        items = _make_items(rarity="Top")
        assert engine.check(items) is TradeUpRejection.NO_NEXT_TIER
        assert engine.can_trade_up(items) == (False, "No higher tier exists above Top")

    def test_target_blocked(self):
        engine = _make_engine_for([_tier("Common", 1), _tier("Sealed", 2, up_to=False)])
        items = _make_items()
        assert engine.check(items) is TradeUpRejection.TARGET_BLOCKED
        assert engine.can_trade_up(items) == (False, "Cannot trade up to Sealed tier")

    def test_reasons_are_distinct(self, engine):
        reasons = {
            engine.can_trade_up(_make_items(4))[1],
            engine.can_trade_up(_make_items(4) + _make_items(1, item_id="tape"))[1],
            engine.can_trade_up(_make_items(rarity="Mythic"))[1],
            engine.can_trade_up(_make_items(item_id="powerbank", rarity="Epic"))[1],
        }
        assert len(reasons) == 4


class TestExecute:
    def test_common_to_rare(self, engine):
        pens = _make_items()
        inv = _fill(Inventory(), pens + _make_items(1, item_id="tape"))
        new_item, error = engine.execute_trade_up(inv, pens)
        assert error is None
        assert new_item.rarity == "Rare"
        assert inv.count == 2
        assert inv.has_item(new_item.unique_id)
        assert inv.items_by_item_id("pen") == []

    def test_rare_to_epic_has_power_up(self, engine):
        mice = _make_items(item_id="mouse", rarity="Rare")
        inv = _fill(Inventory(), mice)
        new_item, error = engine.execute_trade_up(inv, mice)
        assert error is None
        assert new_item.rarity == "Epic"
        assert new_item.power_up is not None
        assert inv.count == 1

    def test_invalid_leaves_inventory(self, engine):
        pens = _make_items(4)
        inv = _fill(Inventory(), pens)
        new_item, error = engine.execute_trade_up(inv, pens)
        assert new_item is None
        assert "exactly 5" in error
        assert inv.count == 4

    def test_same_instance_twice(self, engine):
        pens = _make_items()
        inv = _fill(Inventory(), pens)
        selection = pens[:4] + [pens[0]]
        new_item, error = engine.execute_trade_up(inv, selection)
        assert new_item is None
        assert error == "The same item was selected more than once"
        assert inv.count == 5

    def test_missing_instance_no_mutation(self, engine, caplog):
        pens = _make_items()
        inv = _fill(Inventory(), pens[:4])
        with caplog.at_level(logging.ERROR):
            new_item, error = engine.execute_trade_up(inv, pens)
        assert new_item is None
        assert error == INTERNAL_FAILURE_REASON
        assert [i.unique_id for i in inv] == [p.unique_id for p in pens[:4]]
        assert "Item not in inventory" in caplog.text

    def test_changed_instance_no_mutation(self, engine):
        pens = _make_items()
        inv = _fill(Inventory(), pens[:4] + _make_items(1, item_id="tape", prefix="pen-4x"))
        stale = pens[:4] + [
            ItemInstance("pen-4x-0", "pen", "pen", "Common", 10)
        ]
        new_item, error = engine.execute_trade_up(inv, stale)
        assert new_item is None
        assert error == INTERNAL_FAILURE_REASON
        assert inv.count == 5

    def test_rollback_on_generation_failure(self, engine, loot):
        pens = _make_items()
        inv = _fill(Inventory(), pens)
        with patch.object(loot, "generate_item", side_effect=EmptyRarityPoolError("x")):
            new_item, error = engine.execute_trade_up(inv, pens)
        assert new_item is None
        assert error == INTERNAL_FAILURE_REASON
        assert {i.unique_id for i in inv} == {p.unique_id for p in pens}


class TestAvailableTradeUps:
    def test_groups_in_first_appearance_order(self, engine):
        inv = Inventory()
        _fill(inv, _make_items(6))
        _fill(inv, _make_items(4, item_id="pencil"))
        _fill(inv, _make_items(5, item_id="powerbank", rarity="Epic"))
        _fill(inv, _make_items(5, item_id="mouse", rarity="Rare"))

        candidates = engine.available_trade_ups(inv)
        assert [c.item_id for c in candidates] == ["pen", "mouse"]
        assert candidates[0].count == 6
        assert candidates[1].rarity == "Rare"

    def test_empty(self, engine):
        assert engine.available_trade_ups(Inventory()) == []

    def test_does_not_mutate(self, engine):
        inv = _fill(Inventory(), _make_items(5))
        engine.available_trade_ups(inv)
        assert inv.count == 5
