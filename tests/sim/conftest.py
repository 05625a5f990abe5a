"""Shared fixtures and builders for simulation tests."""

from __future__ import annotations

import pytest

from autobattle.ir.abilities import (
    Ability,
    AbilityKind,
    DamageEffect,
    HealEffect,
    StatModifierEffect,
    SummonEffect,
)
from autobattle.ir.content import EnemyDefinition, JobDefinition
from autobattle.ir.rules import Rule
from autobattle.ir.stats import StatName, Stats
from autobattle.sim.content.registry import ContentRegistry
from autobattle.sim.core.entities import Participant
from autobattle.sim.core.rng import CombatRNG


def make_participant(
    pid: str = "hero",
    name: str | None = None,
    *,
    hp: int = 100,
    max_hp: int | None = None,
    mp: int = 50,
    max_mp: int | None = None,
    strength: int = 10,
    defense: int = 5,
    magic: int = 10,
    speed: int = 10,
    abilities: list[Ability] | None = None,
    rules: list[Rule] | None = None,
    is_enemy: bool = False,
    is_boss: bool = False,
    type: str = "",
    job: str = "",
) -> Participant:
    """Build a participant with sensible defaults; ``hp``/``mp`` are current."""
    current = Stats(hp=hp, mp=mp, strength=strength, defense=defense, magic=magic, speed=speed)
    maximum = Stats(
        hp=hp if max_hp is None else max_hp,
        mp=mp if max_mp is None else max_mp,
        strength=strength,
        defense=defense,
        magic=magic,
        speed=speed,
    )
    return Participant(
        id=pid,
        name=name or pid.capitalize(),
        type=type,
        job=job,
        current_stats=current,
        max_stats=maximum,
        abilities=abilities or [],
        rules=rules or [],
        is_enemy=is_enemy,
        is_boss=is_boss,
    )


def make_enemy(pid: str = "slime", **kwargs) -> Participant:
    kwargs.setdefault("is_enemy", True)
    return make_participant(pid, **kwargs)


def make_attack_skill(
    name: str = "Fireball",
    damage: int = 20,
    mp_cost: int = 5,
    cooldown: int | None = None,
    combinations: list[str] | None = None,
) -> Ability:
    return Ability(
        name=name,
        kind=AbilityKind.ATTACK,
        effect=DamageEffect(damage=damage),
        mp_cost=mp_cost,
        cooldown=cooldown,
        combinations=combinations or [],
    )


def make_heal_skill(name: str = "Heal", heal: int = 35, mp_cost: int = 8) -> Ability:
    return Ability(name=name, kind=AbilityKind.HEAL, effect=HealEffect(heal=heal), mp_cost=mp_cost)


def make_modifier_skill(
    name: str = "Battle Cry",
    modifier: dict[StatName, int] | None = None,
    duration: int = 2,
    kind: AbilityKind = AbilityKind.BUFF,
    mp_cost: int = 0,
) -> Ability:
    return Ability(
        name=name,
        kind=kind,
        effect=StatModifierEffect(
            stat_modifier=modifier if modifier is not None else {StatName.STR: 5},
            duration=duration,
        ),
        mp_cost=mp_cost,
    )


def make_summon_skill(
    name: str = "Call Slimes",
    summon: str = "Slime",
    count: int = 2,
    mp_cost: int = 0,
) -> Ability:
    return Ability(
        name=name,
        kind=AbilityKind.BUFF,
        effect=SummonEffect(summon=summon, count=count),
        mp_cost=mp_cost,
    )


def rule(priority: int, condition: str, target: str, action: str) -> Rule:
    return Rule(priority=priority, condition=condition, target=target, action=action)


@pytest.fixture
def rng() -> CombatRNG:
    return CombatRNG(42)


@pytest.fixture
def registry() -> ContentRegistry:
    """Small registry: two jobs, three enemy types, a handful of skills."""
    reg = ContentRegistry()
    reg.load_content(
        abilities=[
            make_attack_skill("Fireball", damage=20, mp_cost=5),
            make_heal_skill("Heal", heal=35, mp_cost=8),
            make_attack_skill("Power Strike", damage=10, mp_cost=0, cooldown=2),
        ],
        jobs=[
            JobDefinition(
                name="Knight",
                base_stats=Stats(hp=120, mp=20, strength=18, defense=12, magic=2, speed=8),
                skill_ids=["power_strike"],
            ),
            JobDefinition(
                name="Cleric",
                base_stats=Stats(hp=90, mp=60, strength=6, defense=6, magic=14, speed=10),
                skill_ids=["heal", "missing_skill"],
            ),
        ],
        enemies=[
            EnemyDefinition(
                type="Slime",
                base_stats=Stats(hp=30, mp=0, strength=8, defense=2, magic=0, speed=5),
            ),
            EnemyDefinition(
                type="Goblin",
                job="warrior",
                base_stats=Stats(hp=45, mp=0, strength=12, defense=4, magic=0, speed=12),
            ),
            EnemyDefinition(
                type="Slime King",
                base_stats=Stats(hp=200, mp=40, strength=15, defense=8, magic=10, speed=6),
                skill_ids=["fireball"],
                is_boss=True,
            ),
        ],
    )
    return reg
