"""크레이트 카탈로그 + 확률 테스트"""

from __future__ import annotations

import json
from collections import Counter

import pytest

from mazeloot.core.economy.crates import CrateCatalog, CrateDefinition
from mazeloot.core.economy.errors import ConfigurationError


def _make_crate(
    crate_id: str = "Test",
    fragment_price: int = 100,
    can_buy_with_fragments: bool = True,
    odds: tuple = (("Common", 1.0),),
) -> CrateDefinition:
    return CrateDefinition(
        crate_id=crate_id,
        name=f"{crate_id} Crate",
        fragment_price=fragment_price,
        can_buy_with_fragments=can_buy_with_fragments,
        odds=odds,
    )


class TestCrateCatalog:
    def test_loaded(self, crates: CrateCatalog):
        assert len(crates) == 3
        common = crates.get("Common")
        assert common.fragment_price == 500
        assert common.odds == (("Common", 70.0), ("Rare", 30.0))
        assert crates.get("Rare").fragment_price == 2000

    def test_legendary_crate_not_for_fragments(self, crates: CrateCatalog):
        legendary = crates.get("Legendary")
        assert not legendary.can_buy_with_fragments
        assert dict(legendary.odds)["Legendary"] == 25

    def test_unknown(self, crates: CrateCatalog):
        assert crates.get("Mythic") is None

    @pytest.mark.parametrize(
        "crate",
        [
            _make_crate(odds=()),
            _make_crate(odds=(("Mythic", 1.0),)),
            _make_crate(odds=(("Common", 0.0),)),
            _make_crate(fragment_price=0),
        ],
    )
    def test_invalid_definitions(self, rarities, crate: CrateDefinition):
        with pytest.raises(ConfigurationError):
            CrateCatalog([crate], rarities)

    def test_duplicate_id(self, rarities):
        with pytest.raises(ConfigurationError):
            CrateCatalog([_make_crate(), _make_crate()], rarities)

    def test_unpriced_crate_allowed_when_not_for_fragments(self, rarities):
        catalog = CrateCatalog(
            [_make_crate(fragment_price=0, can_buy_with_fragments=False)], rarities
        )
        assert len(catalog) == 1

    def test_load_missing_odds(self, tmp_path, rarities):
        path = tmp_path / "crates.json"
        path.write_text(
            json.dumps([{"crate_id": "X", "name": "X", "can_buy_with_fragments": False}]),
            encoding="utf-8",
        )
        with pytest.raises(ConfigurationError):
            CrateCatalog.load_from_json(path, rarities)


class TestCrateRoll:
    def test_common_crate_odds(self, crates, loot):
        odds = crates.get("Common").odds
        counts = Counter(loot.roll_weighted(odds) for _ in range(5000))
        assert set(counts) <= {"Common", "Rare"}
        assert counts["Rare"] / 5000 == pytest.approx(0.30, abs=0.03)

    def test_rare_crate_never_common(self, crates, loot):
        odds = crates.get("Rare").odds
        rolled = {loot.roll_weighted(odds) for _ in range(500)}
        assert rolled <= {"Rare", "Epic"}
