"""경제 코어 예외 계층

ConfigurationError: 정적 데이터 로드 실패. 서버 시작을 중단한다.
ValidationError: 호출자 입력 오류. 세션 경계에서 사유 문자열로 변환된다.
ConsistencyError: 내부 불변식 위반 (버그 신호). 작업은 중단되고 상태는 보존된다.
PersistenceError: 저장소 실패. 재시도 후 로그만 남긴다.
"""


class EconomyError(Exception):
    """경제 코어 예외 루트"""


class ConfigurationError(EconomyError):
    """중복 item_id, 알 수 없는 rarity 참조 등 — 로드 시 치명적"""


class ValidationError(EconomyError, ValueError):
    """잘못된 호출 인자"""


class InvalidAmountError(ValidationError):
    """음수 금액"""


class InvalidCountError(ValidationError):
    """0 이하 배치 수량"""


class InvalidLuckError(ValidationError):
    """1.0 미만 행운 배수"""


class UnknownRarityError(EconomyError, KeyError):
    """RarityCatalog에 없는 등급 이름"""

    def __str__(self) -> str:
        return f"Unknown rarity: {self.args[0] if self.args else '?'}"


class UnknownItemError(EconomyError, KeyError):
    """ItemCatalog에 없는 item_id"""

    def __str__(self) -> str:
        return f"Unknown item: {self.args[0] if self.args else '?'}"


class EmptyRarityPoolError(EconomyError):
    """해당 등급에 정의된 아이템이 하나도 없음"""


class ConsistencyError(EconomyError):
    """있어야 할 아이템이 없는 등 내부 상태 불일치"""


class PersistenceError(EconomyError):
    """저장소 사용 불가 (재시도 소진)"""


class SessionClosedError(EconomyError):
    """종료 중/종료된 세션에 요청"""
