"""크레이트 — Fragment로 구매하는 가중 확률 상자"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import ConfigurationError
from .rarity import RarityCatalog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CrateDefinition:
    """크레이트 정의 — 불변. crates.json에서 로드."""

    crate_id: str  # "Common"
    name: str
    fragment_price: int
    can_buy_with_fragments: bool
    odds: tuple[tuple[str, float], ...]  # ((rarity, weight), ...)
    description: str = ""


class CrateCatalog:
    """크레이트 저장소. odds의 등급은 모두 RarityCatalog에 있어야 한다."""

    def __init__(self, crates: list[CrateDefinition], rarities: RarityCatalog) -> None:
        by_id: dict[str, CrateDefinition] = {}
        for crate in crates:
            if crate.crate_id in by_id:
                raise ConfigurationError(f"Duplicate crate_id: {crate.crate_id}")
            if not crate.odds:
                raise ConfigurationError(f"Crate {crate.crate_id} has no odds")
            for rarity, weight in crate.odds:
                if rarity not in rarities:
                    raise ConfigurationError(
                        f"Crate {crate.crate_id} references unknown rarity: {rarity}"
                    )
                if weight <= 0:
                    raise ConfigurationError(
                        f"Crate {crate.crate_id} has non-positive weight for {rarity}"
                    )
            if crate.can_buy_with_fragments and crate.fragment_price <= 0:
                raise ConfigurationError(
                    f"Crate {crate.crate_id} is buyable with fragments but has no price"
                )
            by_id[crate.crate_id] = crate
        self._crates = by_id

    @classmethod
    def load_from_json(cls, path: str | Path, rarities: RarityCatalog) -> "CrateCatalog":
        path = Path(path)
        with path.open("r", encoding="utf-8") as f:
            raw_list: list[dict] = json.load(f)

        crates: list[CrateDefinition] = []
        for raw in raw_list:
            try:
                crates.append(
                    CrateDefinition(
                        crate_id=raw["crate_id"],
                        name=raw["name"],
                        fragment_price=int(raw.get("fragment_price", 0)),
                        can_buy_with_fragments=bool(raw["can_buy_with_fragments"]),
                        odds=tuple(
                            (odd["rarity"], float(odd["weight"])) for odd in raw["odds"]
                        ),
                        description=raw.get("description", ""),
                    )
                )
            except (KeyError, TypeError, ValueError) as e:
                raise ConfigurationError(
                    f"Invalid crate entry {raw.get('crate_id', '?')}: {e}"
                ) from e

        catalog = cls(crates, rarities)
        logger.info("Loaded %d crates from %s", len(crates), path)
        return catalog

    def get(self, crate_id: str) -> Optional[CrateDefinition]:
        return self._crates.get(crate_id)

    def all(self) -> tuple[CrateDefinition, ...]:
        return tuple(self._crates.values())

    def __len__(self) -> int:
        return len(self._crates)
