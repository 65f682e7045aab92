"""Fragment 통화 원장 — 잔고, 입출금, 판매"""

from __future__ import annotations

import logging
from typing import Iterable

from .errors import InvalidAmountError
from .models import ItemInstance
from .rarity import RarityCatalog
from .state import PlayerEconomyState

logger = logging.getLogger(__name__)


class CurrencyLedger:
    """플레이어 상태의 balance를 다룬다.

    판매 불가 등급(Legendary)은 RarityCatalog에서 판단한다.
    판매 불가는 오류가 아니라 (0, False) 결과다.
    """

    def __init__(self, rarities: RarityCatalog) -> None:
        self._rarities = rarities

    def balance_of(self, state: PlayerEconomyState) -> int:
        return state.balance

    def credit(self, state: PlayerEconomyState, amount: int) -> int:
        """입금. 반환: 새 잔고."""
        if amount < 0:
            raise InvalidAmountError(f"Cannot credit negative amount: {amount}")
        state.balance += amount
        return state.balance

    def debit(self, state: PlayerEconomyState, amount: int) -> bool:
        """출금. 잔고 부족 시 변경 없이 False."""
        if amount < 0:
            raise InvalidAmountError(f"Cannot debit negative amount: {amount}")
        if state.balance < amount:
            logger.debug(
                "Debit refused for %s: balance %d < %d",
                state.player_key,
                state.balance,
                amount,
            )
            return False
        state.balance -= amount
        return True

    def can_sell(self, item: ItemInstance) -> bool:
        return not self._rarities.is_permanent(item.rarity)

    def sell(self, state: PlayerEconomyState, item: ItemInstance) -> tuple[int, bool]:
        """판매가만큼 입금. 반환: (획득액, 판매 여부).

        인벤토리에서 빼는 것은 호출자 책임.
        """
        if not self.can_sell(item):
            return 0, False
        self.credit(state, item.value)
        return item.value, True

    def sell_bulk(
        self, state: PlayerEconomyState, items: Iterable[ItemInstance]
    ) -> tuple[int, int]:
        """여러 개 판매. 판매 불가 아이템은 조용히 건너뛴다.

        합계를 먼저 계산한 뒤 한 번만 입금한다.
        반환: (총 획득액, 판매 수).
        """
        sellable = [item for item in items if self.can_sell(item)]
        total = sum(item.value for item in sellable)
        if total < 0:
            raise InvalidAmountError(f"Bulk sale total is negative: {total}")
        if sellable:
            self.credit(state, total)
        return total, len(sellable)
