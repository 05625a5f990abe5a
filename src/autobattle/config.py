"""Tunable simulation constants.

``BattleConfig`` is injected into :class:`~autobattle.sim.battle.BattleSystem`;
``RecoverySettings`` into :class:`~autobattle.sim.dungeon.DungeonRunner`.
Both are plain Pydantic models so they can be built from dicts.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

DEFAULT_MAX_TURNS = 100


class BattleConfig(BaseModel):
    """Numbers that shape a single battle."""

    max_turns: int = Field(default=DEFAULT_MAX_TURNS, gt=0)
    """Default cap on executed turns for ``simulate_full_battle``."""

    initiative_jitter: int = Field(default=10, ge=1)
    """Initiative is ``speed + randint(0, initiative_jitter - 1)``."""

    damage_jitter: int = Field(default=5, ge=1)
    """Damage and healing add ``randint(0, damage_jitter - 1)``."""

    heal_magic_ratio: float = Field(default=0.5, ge=0.0)
    """Fraction of the caster's magic added to a heal (floored)."""

    minimum_damage: int = Field(default=1, ge=0)
    """Every successful hit deals at least this much."""


class RecoverySettings(BaseModel):
    """Between-battle recovery applied to surviving party members."""

    hp_recovery_percent: int = Field(default=25, ge=0, le=100)
    mp_recovery_percent: int = Field(default=50, ge=0, le=100)
    full_recovery_on_boss_victory: bool = True
    buff_carry_over_threshold: int = 5
    """Buffs with more than this many remaining rounds survive a regular
    (non-boss) recovery; the rest are reverted and dropped."""
