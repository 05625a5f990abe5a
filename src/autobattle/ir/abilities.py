"""Ability (skill) definitions and their effect payloads.

An ability's ``effect`` is a tagged union with one case per behaviour.  The
battle system dispatches on the effect class, so adding a new effect type
without a handler fails loudly instead of silently doing nothing.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from .stats import StatName

_WHITESPACE = re.compile(r"\s+")


def skill_id_for(name: str) -> str:
    """Normalize a display name to the id used in ``cast:<id>`` actions."""
    return _WHITESPACE.sub("_", name.strip().lower())


class AbilityKind(str, Enum):
    """Broad category of an ability."""

    ATTACK = "attack"
    HEAL = "heal"
    BUFF = "buff"
    DEBUFF = "debuff"


class DamageEffect(BaseModel):
    type: Literal["damage"] = "damage"
    damage: int = Field(default=0, ge=0)


class HealEffect(BaseModel):
    type: Literal["heal"] = "heal"
    heal: int = Field(default=0, ge=0)


class StatModifierEffect(BaseModel):
    """Timed stat change.  Negative deltas make it a debuff."""

    type: Literal["stat_modifier"] = "stat_modifier"
    stat_modifier: dict[StatName, int] = Field(default_factory=dict)
    duration: int = Field(default=0, ge=0)
    """Round boundaries the modifier survives.  ``0`` means no effect."""


class SummonEffect(BaseModel):
    """Spawns reinforcements on the caster's side."""

    type: Literal["summon"] = "summon"
    summon: str
    """Enemy template type to instantiate."""

    count: int = Field(default=1, ge=1)


Effect = Annotated[
    Union[DamageEffect, HealEffect, StatModifierEffect, SummonEffect],
    Field(discriminator="type"),
]


class Ability(BaseModel):
    """A skill a participant can cast."""

    name: str
    kind: AbilityKind
    effect: Effect
    mp_cost: int = Field(default=0, ge=0)
    cooldown: int | None = Field(default=None, ge=0)
    """Round boundaries before the skill can be recast, or ``None``."""

    combinations: list[str] = Field(default_factory=list)
    """Skill ids the caster must also own for this skill to be usable."""

    description: str = ""

    model_config = {"frozen": True}

    @property
    def skill_id(self) -> str:
        return skill_id_for(self.name)
