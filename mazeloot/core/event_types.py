"""이벤트 유형 상수

표시(presentation) 계층이 구독하는 경제 알림 목록.
"""


class EventTypes:
    """이벤트 유형 문자열 상수"""

    # 잔고 / 인벤토리
    BALANCE_CHANGED = "balance_changed"
    INVENTORY_CHANGED = "inventory_changed"
    CAPACITY_CHANGED = "capacity_changed"

    # 판매
    ITEM_SOLD = "item_sold"
    BULK_SOLD = "bulk_sold"

    # 트레이드업
    TRADE_UP_COMPLETED = "trade_up_completed"
    TRADE_UP_FAILED = "trade_up_failed"

    # 사망 / 팔로워
    ITEMS_LOST = "items_lost"
    FOLLOWER_ACQUIRED = "follower_acquired"
    FOLLOWERS_CHANGED = "followers_changed"

    # 크레이트
    CRATE_OPENED = "crate_opened"

    # 성장
    LEVEL_UP = "level_up"
    PRESTIGE_UP = "prestige_up"

    # 세션
    SESSION_OPENED = "session_opened"
    SESSION_CLOSED = "session_closed"
