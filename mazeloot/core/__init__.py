"""Maze economy core"""

from mazeloot.core.economy import (
    CurrencyLedger,
    Inventory,
    ItemCatalog,
    LootGenerator,
    RarityCatalog,
    TradeUpEngine,
)
from mazeloot.core.event_bus import EconomyEvent, EventBus

__all__ = [
    "CurrencyLedger",
    "Inventory",
    "ItemCatalog",
    "LootGenerator",
    "RarityCatalog",
    "TradeUpEngine",
    "EconomyEvent",
    "EventBus",
]
