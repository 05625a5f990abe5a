"""Dungeon runner -- plays an ordered list of encounters with one party.

The party persists across battles: damage, MP spent and long-lived buffs
carry over, softened by post-battle recovery.  The run stops at the first
battle that is not a victory (defeat, timeout or failure).
"""

from __future__ import annotations

import logging
import math
from typing import Sequence

from pydantic import BaseModel, Field

from autobattle.config import DEFAULT_MAX_TURNS, BattleConfig, RecoverySettings
from autobattle.ir.content import DungeonDefinition, EncounterDefinition, PartyMemberDefinition
from autobattle.sim.battle import BattleSystem
from autobattle.sim.collaborators import BattleLogger, LootSystem
from autobattle.sim.content.registry import ContentRegistry
from autobattle.sim.core.battle_state import BattleResult, TurnResult
from autobattle.sim.core.entities import Participant
from autobattle.sim.core.rng import CombatRNG

logger = logging.getLogger(__name__)


class BattleRecord(BaseModel):
    battle_id: int
    result: BattleResult
    turn_history: list[TurnResult] = Field(default_factory=list)


class DungeonProgress(BaseModel):
    """State of a dungeon run, updated after every battle."""

    dungeon_id: int
    current_battle_index: int = 0
    completed_battles: list[int] = Field(default_factory=list)
    party: list[Participant] = Field(default_factory=list)
    is_complete: bool = False
    is_victorious: bool = False
    total_turns: int = 0
    battle_history: list[BattleRecord] = Field(default_factory=list)


class DungeonStatistics(BaseModel):
    total_battles: int = 0
    victories: int = 0
    average_turns_per_battle: float = 0.0
    total_damage_dealt: int = 0
    total_healing_done: int = 0
    party_deaths: int = 0


class DungeonRunner:
    """Runs whole dungeons against a content registry.

    Parameters
    ----------
    registry:
        Builds party members and enemies; also used for summons.
    rng:
        Master RNG for the run.  Each battle gets its own fork.
    recovery:
        Between-battle recovery rules.
    config:
        Battle configuration; its ``max_turns`` is the last-resort cap.
    loot_system, battle_logger:
        Passed through to every :class:`BattleSystem`.
    """

    def __init__(
        self,
        registry: ContentRegistry,
        rng: CombatRNG,
        recovery: RecoverySettings | None = None,
        config: BattleConfig | None = None,
        loot_system: LootSystem | None = None,
        battle_logger: BattleLogger | None = None,
    ) -> None:
        self.registry = registry
        self.rng = rng
        self.recovery = recovery or RecoverySettings()
        self.config = config or BattleConfig()
        self.loot_system = loot_system
        self.battle_logger = battle_logger

    def run(
        self,
        dungeon: DungeonDefinition,
        party: Sequence[PartyMemberDefinition | Participant],
    ) -> DungeonProgress:
        """Play every encounter of *dungeon* in ``order``."""
        members = [
            m if isinstance(m, Participant) else self.registry.create_character(m)
            for m in party
        ]
        progress = DungeonProgress(dungeon_id=dungeon.id, party=members)
        encounters = sorted(dungeon.battles, key=lambda b: b.order)
        logger.info(
            "Starting dungeon %r with %d battles, party %s",
            dungeon.name, len(encounters), [m.name for m in members],
        )

        for index, encounter in enumerate(encounters):
            record = self._run_encounter(dungeon, encounter, progress.party)
            progress.battle_history.append(record)
            progress.completed_battles.append(encounter.id)
            progress.current_battle_index = index + 1
            progress.total_turns += record.result.turns

            if not record.result.victory:
                progress.is_complete = True
                progress.is_victorious = False
                logger.info(
                    "Dungeon %r failed at battle %d: %s",
                    dungeon.name, index + 1, record.result.reason,
                )
                break

            boss_battle = any(e.is_boss for e in record.result.defeated_enemies)
            self.apply_post_battle_recovery(progress.party, boss_battle)

        else:
            progress.is_complete = True
            progress.is_victorious = True
            logger.info("Dungeon %r cleared in %d turns", dungeon.name, progress.total_turns)

        return progress

    def max_turns_for(self, dungeon: DungeonDefinition, encounter: EncounterDefinition) -> int:
        """Encounter override, then dungeon default, then the runner's config."""
        if encounter.max_turns is not None:
            return encounter.max_turns
        if dungeon.default_max_turns is not None:
            return dungeon.default_max_turns
        return self.config.max_turns or DEFAULT_MAX_TURNS

    def _run_encounter(
        self,
        dungeon: DungeonDefinition,
        encounter: EncounterDefinition,
        party: list[Participant],
    ) -> BattleRecord:
        enemies = self.registry.create_enemies_from_battle(encounter.enemies, encounter.level)
        system = BattleSystem(
            self.rng.fork(f"battle:{encounter.id}"),
            config=self.config,
            entity_factory=self.registry,
            loot_system=self.loot_system,
            battle_logger=self.battle_logger,
        )
        system.initialize_battle(party, enemies)
        result = system.simulate_full_battle(self.max_turns_for(dungeon, encounter))
        logger.info(
            "Battle %d finished after %d turns: %s",
            encounter.id, result.turns, result.reason,
        )
        return BattleRecord(
            battle_id=encounter.id,
            result=result,
            turn_history=system.get_turn_history(),
        )

    def apply_post_battle_recovery(self, party: Sequence[Participant], boss_battle: bool) -> None:
        """Heal living members between battles.

        After a boss victory (when enabled) everyone is fully restored and
        all buffs are cleared.  Otherwise HP and MP recover by a percentage
        of max, and only buffs with more than the carry-over threshold of
        rounds left survive.
        """
        settings = self.recovery
        for member in party:
            if not member.is_alive:
                continue
            if boss_battle and settings.full_recovery_on_boss_victory:
                member.clear_buffs()
                member.current_stats.hp = member.max_stats.hp
                member.current_stats.mp = member.max_stats.mp
                continue

            for buff in list(member.buffs):
                if buff.remaining_turns <= settings.buff_carry_over_threshold:
                    member.revert_buff(buff)
            member.restore_hp(math.floor(member.max_stats.hp * settings.hp_recovery_percent / 100))
            member.restore_mp(math.floor(member.max_stats.mp * settings.mp_recovery_percent / 100))

        logger.debug(
            "Recovery (%s): %s",
            "full" if boss_battle and settings.full_recovery_on_boss_victory else "partial",
            [(m.name, m.current_stats.hp, m.current_stats.mp) for m in party],
        )

    @staticmethod
    def get_dungeon_statistics(progress: DungeonProgress) -> DungeonStatistics:
        battles = progress.battle_history
        if not battles:
            return DungeonStatistics(party_deaths=sum(1 for m in progress.party if not m.is_alive))
        total_turns = sum(b.result.turns for b in battles)
        return DungeonStatistics(
            total_battles=len(battles),
            victories=sum(1 for b in battles if b.result.victory),
            average_turns_per_battle=round(total_turns / len(battles), 1),
            total_damage_dealt=sum(t.damage or 0 for b in battles for t in b.turn_history),
            total_healing_done=sum(t.heal or 0 for b in battles for t in b.turn_history),
            party_deaths=sum(1 for m in progress.party if not m.is_alive),
        )
