"""Mutable state of a single battle plus the immutable records it produces.

``BattleState`` is owned by exactly one ``BattleSystem``.  The turn order
stores participant *ids*; they are resolved through an id index so that
rosters can grow mid-round (summons) without invalidating positions.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, PrivateAttr

from autobattle.ir.stats import StatName
from autobattle.sim.core.actions import ResolvedAction
from autobattle.sim.core.entities import Participant


class Victor(str, Enum):
    ALLIES = "allies"
    ENEMIES = "enemies"


class TurnOrderEntry(BaseModel):
    participant_id: str
    speed: int
    initiative: int


class AppliedModifier(BaseModel):
    """Summary of a buff or debuff landed by a skill."""

    name: str
    stat_modifier: dict[StatName, int]
    duration: int

    model_config = {"frozen": True}


class TurnResult(BaseModel):
    """One history entry.  Frozen once created."""

    actor_id: str
    actor_name: str
    target_id: str | None = None
    target_name: str | None = None
    action: ResolvedAction
    damage: int | None = None
    heal: int | None = None
    buff_applied: AppliedModifier | None = None
    debuff_applied: AppliedModifier | None = None
    summoned: tuple[str, ...] = ()
    success: bool
    message: str
    turn_number: int
    before_hp: int | None = None
    after_hp: int | None = None

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Loot and final result
# ---------------------------------------------------------------------------

class ItemStack(BaseModel):
    item_id: str
    name: str
    quantity: int
    value: int = 0
    source: str = ""


class EnemyLoot(BaseModel):
    source: str
    gold: int = 0
    experience: int = 0
    items: list[ItemStack] = Field(default_factory=list)


class BattleLoot(BaseModel):
    total_gold: int = 0
    total_experience: int = 0
    items: list[ItemStack] = Field(default_factory=list)
    loot_by_enemy: list[EnemyLoot] = Field(default_factory=list)


class BattleResult(BaseModel):
    victory: bool
    victor: Victor | None = None
    reason: str
    turns: int
    survivors: list[Participant] = Field(default_factory=list)
    """Living allies at the end of the battle."""

    defeated_enemies: list[Participant] = Field(default_factory=list)
    loot: BattleLoot = Field(default_factory=BattleLoot)


# ---------------------------------------------------------------------------
# BattleState
# ---------------------------------------------------------------------------

class BattleState(BaseModel):
    """Full mutable state of one battle."""

    allies: list[Participant]
    enemies: list[Participant]
    turn_number: int = 1
    turn_order: list[TurnOrderEntry] = Field(default_factory=list)
    current_turn_index: int = 0
    is_complete: bool = False
    victor: Victor | None = None
    history: list[TurnResult] = Field(default_factory=list)

    _index: dict[str, Participant] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        for participant in [*self.allies, *self.enemies]:
            self._index[participant.id] = participant

    # -- roster --------------------------------------------------------------

    @property
    def participants(self) -> list[Participant]:
        return [*self.allies, *self.enemies]

    @property
    def living_allies(self) -> list[Participant]:
        return [p for p in self.allies if p.is_alive]

    @property
    def living_enemies(self) -> list[Participant]:
        return [p for p in self.enemies if p.is_alive]

    def find(self, participant_id: str | None) -> Participant | None:
        if participant_id is None:
            return None
        return self._index.get(participant_id)

    def contains_id(self, participant_id: str) -> bool:
        return participant_id in self._index

    def add_participant(self, participant: Participant) -> None:
        """Append *participant* to the side matching its ``is_enemy`` flag."""
        if participant.id in self._index:
            raise ValueError(f"Duplicate participant id {participant.id!r}")
        side = self.enemies if participant.is_enemy else self.allies
        side.append(participant)
        self._index[participant.id] = participant

    def sides_for(self, actor: Participant) -> tuple[list[Participant], list[Participant]]:
        """Return ``(own_living_side, opposing_living_side)`` for *actor*."""
        if actor.is_enemy:
            return self.living_enemies, self.living_allies
        return self.living_allies, self.living_enemies
