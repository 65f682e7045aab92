"""Maze loot economy engine"""

__version__ = "0.1.0"
