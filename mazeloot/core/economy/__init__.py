"""경제 시스템 Core — 순수 Python, DB 무관"""

from .catalog import ItemCatalog
from .crates import CrateCatalog, CrateDefinition
from .errors import (
    ConfigurationError,
    ConsistencyError,
    EconomyError,
    EmptyRarityPoolError,
    InvalidAmountError,
    InvalidCountError,
    InvalidLuckError,
    PersistenceError,
    SessionClosedError,
    UnknownItemError,
    UnknownRarityError,
    ValidationError,
)
from .inventory import Inventory
from .ledger import CurrencyLedger
from .loot import LootGenerator
from .models import FollowerInfo, ItemDefinition, ItemInstance, PowerUpKind, RarityTier
from .rarity import RarityCatalog
from .state import PlayerEconomyState
from .tradeup import TradeUpCandidate, TradeUpEngine, TradeUpRejection

__all__ = [
    "ItemCatalog",
    "CrateCatalog",
    "CrateDefinition",
    "ConfigurationError",
    "ConsistencyError",
    "EconomyError",
    "EmptyRarityPoolError",
    "InvalidAmountError",
    "InvalidCountError",
    "InvalidLuckError",
    "PersistenceError",
    "SessionClosedError",
    "UnknownItemError",
    "UnknownRarityError",
    "ValidationError",
    "Inventory",
    "CurrencyLedger",
    "LootGenerator",
    "FollowerInfo",
    "ItemDefinition",
    "ItemInstance",
    "PowerUpKind",
    "RarityTier",
    "RarityCatalog",
    "PlayerEconomyState",
    "TradeUpCandidate",
    "TradeUpEngine",
    "TradeUpRejection",
]
