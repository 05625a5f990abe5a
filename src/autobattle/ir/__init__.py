"""Authored content models: stats, abilities, rules, jobs, enemies, dungeons."""

from autobattle.ir.abilities import (
    Ability,
    AbilityKind,
    DamageEffect,
    Effect,
    HealEffect,
    StatModifierEffect,
    SummonEffect,
    skill_id_for,
)
from autobattle.ir.content import (
    DungeonDefinition,
    EncounterDefinition,
    EnemyDefinition,
    EnemySpawn,
    JobDefinition,
    PartyMemberDefinition,
)
from autobattle.ir.rules import Rule
from autobattle.ir.stats import StatName, Stats

__all__ = [
    # stats
    "StatName",
    "Stats",
    # abilities
    "Ability",
    "AbilityKind",
    "DamageEffect",
    "Effect",
    "HealEffect",
    "StatModifierEffect",
    "SummonEffect",
    "skill_id_for",
    # rules
    "Rule",
    # content
    "DungeonDefinition",
    "EncounterDefinition",
    "EnemyDefinition",
    "EnemySpawn",
    "JobDefinition",
    "PartyMemberDefinition",
]
