"""EventBus - 경제 코어 → 표시(presentation) 계층 알림 인프라

규칙:
- 코어/서비스는 UI를 직접 호출하지 않는다. 알림은 EventBus로만 나간다.
- 이벤트 데이터는 plain data(식별자, 수량, 잔고)만 담는다. UI 문자열 금지.
- 핸들러 안에서 다시 발행하는 연쇄는 MAX_DEPTH 단계까지만 전파한다.
- 핸들러 예외는 로그만 남기고 발행자에게 전파하지 않는다.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

from mazeloot.core.logging import get_logger

logger = get_logger(__name__)

MAX_DEPTH = 5  # 핸들러 내 재발행 최대 깊이


@dataclass
class EconomyEvent:
    """이벤트 데이터 컨테이너

    Args:
        event_type: 이벤트 유형 (예: "balance_changed", "trade_up_completed")
        player_key: 대상 플레이어 세션 키
        data: 이벤트 데이터 (ID/수치 위주, 무거운 객체 금지)
        source: 발행한 서비스 이름
    """

    event_type: str
    player_key: str
    data: Dict[str, Any]
    source: str

    # 내부 추적용 (외부에서 설정하지 않음)
    _depth: int = field(default=0, repr=False)


# 핸들러 타입: EconomyEvent를 받는 callable
EventHandler = Callable[[EconomyEvent], None]


class EventBus:
    """동기식 이벤트 버스

    사용 패턴:
        bus = EventBus()
        bus.subscribe("balance_changed", hud.on_balance_changed)
        bus.emit(EconomyEvent("balance_changed", "p1", {"balance": 120}, "economy"))

    플레이어 세션 actor 안에서만 emit되므로 동일 플레이어 이벤트는 순서가 보장된다.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[EventHandler]] = defaultdict(list)
        self._current_depth: int = 0

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """이벤트 구독 등록"""
        self._handlers[event_type].append(handler)
        logger.debug("EventBus subscribe: %s -> %s", event_type, _name(handler))

    def unsubscribe(self, event_type: str, handler: EventHandler) -> None:
        """이벤트 구독 해제"""
        if event_type in self._handlers:
            try:
                self._handlers[event_type].remove(handler)
                logger.debug(
                    "EventBus unsubscribe: %s -> %s", event_type, _name(handler)
                )
            except ValueError:
                logger.warning(
                    "Handler not registered: %s -> %s", event_type, _name(handler)
                )

    def emit(self, event: EconomyEvent) -> None:
        """이벤트 발행. 등록된 핸들러를 순서대로 동기 호출.

        전파 깊이가 MAX_DEPTH 이상이면 무시한다.
        """
        if self._current_depth >= MAX_DEPTH:
            logger.warning(
                "EventBus depth limit (%d) reached: %s:%s dropped",
                MAX_DEPTH,
                event.source,
                event.event_type,
            )
            return

        event._depth = self._current_depth

        handlers = list(self._handlers.get(event.event_type, []))
        if not handlers:
            return

        logger.debug(
            "EventBus emit: %s (player=%s, depth=%d, handlers=%d)",
            event.event_type,
            event.player_key,
            self._current_depth,
            len(handlers),
        )

        self._current_depth += 1
        try:
            for handler in handlers:
                try:
                    handler(event)
                except Exception:
                    logger.exception(
                        "EventBus handler error: %s (event=%s)",
                        _name(handler),
                        event.event_type,
                    )
        finally:
            self._current_depth -= 1

    def clear(self) -> None:
        """모든 구독 해제 (테스트용)"""
        self._handlers.clear()
        self._current_depth = 0

    @property
    def handler_count(self) -> int:
        """등록된 총 핸들러 수"""
        return sum(len(h) for h in self._handlers.values())


def _name(handler: EventHandler) -> str:
    return getattr(handler, "__qualname__", repr(handler))
