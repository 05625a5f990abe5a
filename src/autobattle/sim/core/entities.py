"""Battle participants and the timed effects attached to them.

``Participant`` is the single runtime type for allies, enemies and summons.
Its HP and MP are kept inside ``[0, max]`` by every mutator here, and
``is_alive`` is derived from HP rather than stored, so the two can never
disagree.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, model_validator

from autobattle.ir.abilities import Ability, skill_id_for
from autobattle.ir.rules import Rule
from autobattle.ir.stats import StatName, Stats

# Stats bounded above by the participant's maximum.
_POOLED_STATS = frozenset({StatName.HP, StatName.MP})


class BuffKind(str, Enum):
    BUFF = "buff"
    DEBUFF = "debuff"


class Buff(BaseModel):
    """A timed stat modifier owned by the affected participant."""

    name: str
    kind: BuffKind
    stat_modifier: dict[StatName, int] = Field(default_factory=dict)
    """Deltas as authored."""

    duration: int
    remaining_turns: int

    applied: dict[StatName, int] = Field(default_factory=dict)
    """Deltas actually applied after clamping.  Reverting subtracts these,
    so a debuff that was clamped at 0 does not overshoot when it expires."""


class SkillCooldown(BaseModel):
    """Rounds left before the caster may reuse ``skill_name``."""

    skill_name: str
    remaining_turns: int


class Participant(BaseModel):
    """A combatant on either side of a battle."""

    id: str
    name: str
    type: str = ""
    """Enemy template type or character job; drives AI archetype and loot."""

    job: str = ""
    level: int = 1
    current_stats: Stats
    max_stats: Stats
    abilities: list[Ability] = Field(default_factory=list)
    rules: list[Rule] = Field(default_factory=list)
    """Empty for enemies governed by the behaviour-pattern AI."""

    buffs: list[Buff] = Field(default_factory=list)
    skill_cooldowns: list[SkillCooldown] = Field(default_factory=list)
    is_enemy: bool = False
    is_boss: bool = False

    @model_validator(mode="after")
    def _clamp_pools(self) -> Participant:
        self.current_stats.hp = min(self.current_stats.hp, self.max_stats.hp)
        self.current_stats.mp = min(self.current_stats.mp, self.max_stats.mp)
        return self

    # -- queries -------------------------------------------------------------

    @property
    def is_alive(self) -> bool:
        return self.current_stats.hp > 0

    @property
    def hp_percent(self) -> float:
        if self.max_stats.hp <= 0:
            return 0.0
        return self.current_stats.hp / self.max_stats.hp * 100

    @property
    def mp_percent(self) -> float:
        if self.max_stats.mp <= 0:
            return 0.0
        return self.current_stats.mp / self.max_stats.mp * 100

    # -- hp / mp -------------------------------------------------------------

    def take_damage(self, amount: int) -> int:
        """Lose up to *amount* HP.  Returns the HP actually lost."""
        if amount <= 0:
            return 0
        lost = min(self.current_stats.hp, amount)
        self.current_stats.hp -= lost
        return lost

    def restore_hp(self, amount: int) -> int:
        """Heal up to *amount*, capped at max HP.  Returns HP gained."""
        if amount <= 0:
            return 0
        gained = min(amount, self.max_stats.hp - self.current_stats.hp)
        self.current_stats.hp += gained
        return gained

    def spend_mp(self, amount: int) -> None:
        if amount > self.current_stats.mp:
            raise ValueError(
                f"{self.name} cannot spend {amount} MP (has {self.current_stats.mp})"
            )
        self.current_stats.mp -= amount

    def restore_mp(self, amount: int) -> int:
        if amount <= 0:
            return 0
        gained = min(amount, self.max_stats.mp - self.current_stats.mp)
        self.current_stats.mp += gained
        return gained

    # -- stat modifiers ------------------------------------------------------

    def apply_stat_delta(self, stat: StatName, delta: int) -> int:
        """Shift *stat* by *delta*, clamped at 0 (and at max for HP/MP).

        Returns the change actually applied.
        """
        before = self.current_stats.get(stat)
        after = max(0, before + delta)
        if stat in _POOLED_STATS:
            after = min(after, self.max_stats.get(stat))
        self.current_stats.set(stat, after)
        return after - before

    def add_buff(
        self,
        name: str,
        kind: BuffKind,
        stat_modifier: dict[StatName, int],
        duration: int,
    ) -> Buff:
        """Apply *stat_modifier* now and track it for *duration* rounds."""
        buff = Buff(
            name=name,
            kind=kind,
            stat_modifier=dict(stat_modifier),
            duration=duration,
            remaining_turns=duration,
        )
        for stat, delta in stat_modifier.items():
            buff.applied[stat] = self.apply_stat_delta(stat, delta)
        self.buffs.append(buff)
        return buff

    def revert_buff(self, buff: Buff) -> None:
        """Undo *buff*'s applied deltas and detach it."""
        for stat, delta in buff.applied.items():
            self.apply_stat_delta(stat, -delta)
        self.buffs = [b for b in self.buffs if b is not buff]

    def tick_buffs(self) -> list[Buff]:
        """Advance every buff by one round.  Returns the buffs that expired."""
        expired: list[Buff] = []
        for buff in list(self.buffs):
            buff.remaining_turns -= 1
            if buff.remaining_turns <= 0:
                self.revert_buff(buff)
                expired.append(buff)
        return expired

    def clear_buffs(self) -> None:
        for buff in list(self.buffs):
            self.revert_buff(buff)

    # -- abilities and cooldowns ---------------------------------------------

    def find_ability(self, skill_id: str) -> Ability | None:
        wanted = skill_id_for(skill_id)
        for ability in self.abilities:
            if ability.skill_id == wanted:
                return ability
        return None

    def knows_skill(self, skill_id: str) -> bool:
        return self.find_ability(skill_id) is not None

    def cooldown_remaining(self, skill_name: str) -> int:
        for cooldown in self.skill_cooldowns:
            if cooldown.skill_name == skill_name:
                return max(0, cooldown.remaining_turns)
        return 0

    def is_on_cooldown(self, skill_name: str) -> bool:
        return self.cooldown_remaining(skill_name) > 0

    def can_afford(self, ability: Ability) -> bool:
        return self.current_stats.mp >= ability.mp_cost

    def has_combinations_for(self, ability: Ability) -> bool:
        """True when every prerequisite skill id of *ability* is owned."""
        return all(self.knows_skill(skill_id) for skill_id in ability.combinations)

    def start_cooldown(self, ability: Ability) -> None:
        if not ability.cooldown:
            return
        for cooldown in self.skill_cooldowns:
            if cooldown.skill_name == ability.name:
                cooldown.remaining_turns = ability.cooldown
                return
        self.skill_cooldowns.append(
            SkillCooldown(skill_name=ability.name, remaining_turns=ability.cooldown)
        )

    def tick_cooldowns(self) -> None:
        """Advance cooldowns one round and drop the expired ones."""
        remaining: list[SkillCooldown] = []
        for cooldown in self.skill_cooldowns:
            cooldown.remaining_turns -= 1
            if cooldown.remaining_turns > 0:
                remaining.append(cooldown)
        self.skill_cooldowns = remaining
