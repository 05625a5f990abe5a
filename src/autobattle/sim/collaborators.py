"""Interfaces the battle system consumes but does not own.

Any object with the right methods satisfies these protocols;
:class:`~autobattle.sim.content.registry.ContentRegistry`,
:class:`~autobattle.sim.loot.TableLootSystem` and
:class:`~autobattle.sim.battle_log.StdlibBattleLogger` are the in-package
implementations.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence, runtime_checkable

from autobattle.ir.content import EnemySpawn, PartyMemberDefinition
from autobattle.sim.core.battle_state import BattleLoot, TurnResult
from autobattle.sim.core.entities import Participant


@runtime_checkable
class EntityFactory(Protocol):
    """Builds battle-ready participants from authored content."""

    def create_character(self, member: PartyMemberDefinition) -> Participant: ...

    def create_enemy(self, enemy_type: str, name: str, level: int = 1) -> Participant:
        """Instantiate an enemy template.

        Raises ``KeyError`` (``ContentNotFoundError``) for an unknown type.
        """
        ...

    def create_enemies_from_battle(
        self,
        spawns: Sequence[EnemySpawn],
        level: int = 1,
    ) -> list[Participant]: ...


@runtime_checkable
class LootSystem(Protocol):
    def generate_battle_loot(self, defeated: Sequence[Participant]) -> BattleLoot: ...


@runtime_checkable
class BattleLogger(Protocol):
    """Optional sink for turn-by-turn output."""

    def log_turn(self, result: TurnResult) -> None: ...

    def log_debug(self, category: str, message: str, data: Any | None = None) -> None: ...

    def log_error(self, category: str, message: str, error: BaseException | None = None) -> None: ...
