"""플레이어 경제 상태"""

from __future__ import annotations

from dataclasses import dataclass, field

from .inventory import Inventory


@dataclass
class PlayerEconomyState:
    """플레이어 세션 하나가 독점 소유. 세션 시작 시 생성(저장 데이터로 복원 가능),
    종료 시 저장 후 폐기."""

    player_key: str
    balance: int = 0  # Fragments, 항상 >= 0
    inventory: Inventory = field(default_factory=Inventory)
    total_runs: int = 0

    # 성장
    xp: int = 0
    level: int = 1
    prestige: int = 0
