"""성장 — XP, 레벨, 프레스티지, 미로 진입 횟수"""

import logging
from dataclasses import dataclass

from .errors import InvalidAmountError
from .state import PlayerEconomyState

logger = logging.getLogger(__name__)

MAX_LEVEL = 50
XP_PER_LEVEL_BASE = 150  # 필요 XP = level * 150


@dataclass(frozen=True)
class ProgressionResult:
    leveled_up: bool
    level: int
    xp: int


def xp_to_next_level(level: int) -> int:
    return level * XP_PER_LEVEL_BASE


def add_xp(state: PlayerEconomyState, amount: int) -> ProgressionResult:
    """XP 추가. 호출당 최대 1레벨 상승, 초과분은 이월.

    최대 레벨이면 변화 없음.
    """
    if amount < 0:
        raise InvalidAmountError(f"Cannot add negative XP: {amount}")
    if state.level >= MAX_LEVEL:
        return ProgressionResult(False, state.level, state.xp)

    state.xp += amount
    needed = xp_to_next_level(state.level)
    leveled_up = False
    if state.xp >= needed:
        state.xp -= needed
        state.level += 1
        leveled_up = True
        logger.info("%s leveled up to %d", state.player_key, state.level)

    return ProgressionResult(leveled_up, state.level, state.xp)


def can_prestige(state: PlayerEconomyState) -> bool:
    return state.level >= MAX_LEVEL


def prestige(state: PlayerEconomyState) -> bool:
    """최대 레벨에서만 가능. 레벨/XP 초기화, 아이템 유지, prestige +1."""
    if not can_prestige(state):
        return False
    state.level = 1
    state.xp = 0
    state.prestige += 1
    logger.info("%s prestiged to tier %d", state.player_key, state.prestige)
    return True


def record_run(state: PlayerEconomyState) -> int:
    """미로 진입 1회 기록. 반환: 누적 횟수."""
    state.total_runs += 1
    return state.total_runs
