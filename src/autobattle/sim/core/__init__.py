"""Core simulation primitives: RNG, participants, actions and battle state."""

from autobattle.sim.core.actions import (
    ActionKind,
    ParsedAction,
    ResolvedAction,
    parse_action,
)
from autobattle.sim.core.battle_state import (
    AppliedModifier,
    BattleLoot,
    BattleResult,
    BattleState,
    EnemyLoot,
    ItemStack,
    TurnOrderEntry,
    TurnResult,
    Victor,
)
from autobattle.sim.core.entities import Buff, BuffKind, Participant, SkillCooldown
from autobattle.sim.core.rng import CombatRNG

__all__ = [
    # rng
    "CombatRNG",
    # entities
    "Buff",
    "BuffKind",
    "Participant",
    "SkillCooldown",
    # actions
    "ActionKind",
    "ParsedAction",
    "ResolvedAction",
    "parse_action",
    # battle_state
    "AppliedModifier",
    "BattleLoot",
    "BattleResult",
    "BattleState",
    "EnemyLoot",
    "ItemStack",
    "TurnOrderEntry",
    "TurnResult",
    "Victor",
]
