"""Static content definitions consumed by the entity factory and dungeon runner."""

from __future__ import annotations

from pydantic import BaseModel, Field

from .rules import Rule
from .stats import Stats


class JobDefinition(BaseModel):
    """A playable class: base stats plus the skills it grants."""

    name: str
    base_stats: Stats
    skill_ids: list[str] = Field(default_factory=list)
    description: str = ""


class EnemyDefinition(BaseModel):
    """Template for an enemy type.

    ``rules`` may be empty, in which case the enemy AI decides its actions.
    """

    type: str
    job: str = ""
    base_stats: Stats
    rules: list[Rule] = Field(default_factory=list)
    skill_ids: list[str] = Field(default_factory=list)
    is_boss: bool = False
    description: str = ""


class PartyMemberDefinition(BaseModel):
    """An authored party slot."""

    name: str
    job: str
    level: int = Field(default=1, ge=1)
    rules: list[Rule] = Field(default_factory=list)


class EnemySpawn(BaseModel):
    """One enemy in an encounter line-up."""

    type: str
    name: str | None = None


class EncounterDefinition(BaseModel):
    """A single battle inside a dungeon."""

    id: int
    order: int
    enemies: list[EnemySpawn]
    max_turns: int | None = Field(default=None, gt=0)
    level: int = Field(default=1, ge=1)


class DungeonDefinition(BaseModel):
    """An ordered run of encounters."""

    id: int
    name: str
    battles: list[EncounterDefinition]
    default_max_turns: int | None = Field(default=None, gt=0)
    description: str = ""
