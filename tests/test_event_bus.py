"""EventBus 테스트"""

import logging

from mazeloot.core.event_bus import MAX_DEPTH, EconomyEvent, EventBus


def _event(event_type: str = "evt", player_key: str = "p1", **data) -> EconomyEvent:
    return EconomyEvent(event_type=event_type, player_key=player_key, data=data, source="test")


class TestSubscribeEmit:
    def test_basic_emit(self):
        bus = EventBus()
        received = []
        bus.subscribe("balance_changed", lambda e: received.append(e))
        bus.emit(_event("balance_changed", balance=120))
        assert len(received) == 1
        assert received[0].data["balance"] == 120
        assert received[0].player_key == "p1"

    def test_multiple_handlers(self):
        bus = EventBus()
        results = []
        bus.subscribe("evt", lambda e: results.append("a"))
        bus.subscribe("evt", lambda e: results.append("b"))
        bus.emit(_event())
        assert results == ["a", "b"]

    def test_no_handlers(self):
        """구독자 없는 이벤트 발행 — 에러 없이 무시"""
        bus = EventBus()
        bus.emit(_event("no_one_listens"))

    def test_unsubscribe(self):
        bus = EventBus()
        received = []
        handler = lambda e: received.append(e)  # noqa: E731
        bus.subscribe("evt", handler)
        bus.unsubscribe("evt", handler)
        bus.emit(_event())
        assert len(received) == 0

    def test_unsubscribe_nonexistent(self):
        """미등록 핸들러 해제 — 경고만, 에러 없음"""
        bus = EventBus()
        bus.subscribe("evt", lambda e: None)
        bus.unsubscribe("evt", lambda e: None)

    def test_repeated_events_all_delivered(self):
        """같은 플레이어의 같은 유형 이벤트가 연달아 와도 모두 전달"""
        bus = EventBus()
        balances = []
        bus.subscribe("balance_changed", lambda e: balances.append(e.data["balance"]))
        for balance in (10, 20, 30):
            bus.emit(_event("balance_changed", balance=balance))
        assert balances == [10, 20, 30]


class TestDepthLimit:
    def test_max_depth_prevents_infinite_loop(self):
        bus = EventBus()
        call_count = 0

        def recursive_handler(event: EconomyEvent):
            nonlocal call_count
            call_count += 1
            bus.emit(_event("chain"))

        bus.subscribe("chain", recursive_handler)
        bus.emit(_event("chain"))

        assert call_count == MAX_DEPTH

    def test_depth_resets_after_emit(self):
        bus = EventBus()
        received = []
        bus.subscribe("evt", lambda e: received.append(e._depth))
        bus.emit(_event())
        bus.emit(_event())
        assert received == [0, 0]


class TestHandlerErrors:
    def test_error_isolated(self, caplog):
        bus = EventBus()
        results = []

        def broken(event: EconomyEvent):
            raise RuntimeError("boom")

        bus.subscribe("evt", broken)
        bus.subscribe("evt", lambda e: results.append("ok"))
        with caplog.at_level(logging.ERROR):
            bus.emit(_event())
        assert results == ["ok"]
        assert "EventBus handler error" in caplog.text


class TestUtility:
    def test_handler_count(self):
        bus = EventBus()
        bus.subscribe("a", lambda e: None)
        bus.subscribe("b", lambda e: None)
        bus.subscribe("b", lambda e: None)
        assert bus.handler_count == 3

    def test_clear(self):
        bus = EventBus()
        bus.subscribe("a", lambda e: None)
        bus.clear()
        assert bus.handler_count == 0
