"""Dungeon module -- multi-battle runs with a persistent party."""

from autobattle.sim.dungeon.run_manager import (
    BattleRecord,
    DungeonProgress,
    DungeonRunner,
    DungeonStatistics,
)

__all__ = [
    "BattleRecord",
    "DungeonProgress",
    "DungeonRunner",
    "DungeonStatistics",
]
