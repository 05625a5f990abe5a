"""Target resolution -- translate target kinds to a living participant.

Every selector only considers living participants.  An empty pool or an
unknown kind yields ``TargetSelection(target=None, reason=...)``; nothing
here raises on authored content.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Sequence

from autobattle.ir.abilities import AbilityKind
from autobattle.sim.core.entities import Participant
from autobattle.sim.core.rng import CombatRNG


class TargetKind(str, Enum):
    SELF = "self"
    WEAKEST_ENEMY = "weakestEnemy"
    LOWEST_HP_ENEMY = "lowestHpEnemy"
    STRONGEST_ENEMY = "strongestEnemy"
    RANDOM_ENEMY = "randomEnemy"
    BOSS_ENEMY = "bossEnemy"
    LOWEST_HP_ALLY = "lowestHpAlly"
    RANDOM_ALLY = "randomAlly"
    STRONGEST_ALLY = "strongestAlly"
    HIGHEST_MP_ALLY = "highestMpAlly"


_DESCRIPTIONS: dict[TargetKind, str] = {
    TargetKind.SELF: "The acting participant",
    TargetKind.WEAKEST_ENEMY: "Living enemy with the lowest current HP",
    TargetKind.LOWEST_HP_ENEMY: "Living enemy with the lowest current HP",
    TargetKind.STRONGEST_ENEMY: "Living enemy with the highest current HP",
    TargetKind.RANDOM_ENEMY: "A random living enemy",
    TargetKind.BOSS_ENEMY: "First living boss enemy, else the strongest enemy",
    TargetKind.LOWEST_HP_ALLY: "Living ally (self included) with the lowest HP percentage",
    TargetKind.RANDOM_ALLY: "A random living ally (self included)",
    TargetKind.STRONGEST_ALLY: "Living ally (self included) with the highest current HP",
    TargetKind.HIGHEST_MP_ALLY: "Living ally (self included) with the highest current MP",
}


@dataclass
class TargetSelection:
    target: Participant | None
    reason: str
    alternatives: list[Participant] = field(default_factory=list)
    """Other living participants that were eligible."""


def parse_target_kind(value: str) -> TargetKind | None:
    """Return the kind named by *value* (exact, then case-insensitive)."""
    text = value.strip()
    try:
        return TargetKind(text)
    except ValueError:
        pass
    lowered = text.lower()
    for kind in TargetKind:
        if kind.value.lower() == lowered:
            return kind
    return None


def is_valid_target_kind(value: str) -> bool:
    return parse_target_kind(value) is not None


def all_valid_targets() -> list[str]:
    return [kind.value for kind in TargetKind]


def describe_target(kind: TargetKind | str) -> str:
    parsed = kind if isinstance(kind, TargetKind) else parse_target_kind(kind)
    if parsed is None:
        return f"Unknown target type: {kind}"
    return _DESCRIPTIONS[parsed]


def suggest_optimal_target(
    purpose: AbilityKind | str,
    enemies: Sequence[Participant] = (),
) -> TargetKind:
    """Pick a sensible default target kind for an action *purpose*.

    Attacks go for a living boss when one is present, otherwise the weakest
    enemy.
    """
    purpose = AbilityKind(purpose) if not isinstance(purpose, AbilityKind) else purpose
    if purpose == AbilityKind.ATTACK:
        if any(e.is_alive and e.is_boss for e in enemies):
            return TargetKind.BOSS_ENEMY
        return TargetKind.WEAKEST_ENEMY
    if purpose == AbilityKind.HEAL:
        return TargetKind.LOWEST_HP_ALLY
    if purpose == AbilityKind.BUFF:
        return TargetKind.STRONGEST_ALLY
    return TargetKind.STRONGEST_ENEMY


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

def _living(pool: Sequence[Participant]) -> list[Participant]:
    return [p for p in pool if p.is_alive]


def _ally_pool(actor: Participant, allies: Sequence[Participant]) -> list[Participant]:
    seen: set[str] = set()
    pool: list[Participant] = []
    for participant in [actor, *allies]:
        if participant.id in seen or not participant.is_alive:
            continue
        seen.add(participant.id)
        pool.append(participant)
    return pool


def _others(pool: list[Participant], chosen: Participant) -> list[Participant]:
    return [p for p in pool if p is not chosen]


def _pick(
    pool: list[Participant],
    chooser: Callable[[list[Participant]], Participant],
    reason: str,
    empty_reason: str,
) -> TargetSelection:
    if not pool:
        return TargetSelection(target=None, reason=empty_reason)
    chosen = chooser(pool)
    return TargetSelection(target=chosen, reason=reason, alternatives=_others(pool, chosen))


def _min_hp(pool: list[Participant]) -> Participant:
    return min(pool, key=lambda p: p.current_stats.hp)


def _max_hp(pool: list[Participant]) -> Participant:
    return max(pool, key=lambda p: p.current_stats.hp)


def select_target(
    kind: TargetKind | str,
    actor: Participant,
    allies: Sequence[Participant],
    enemies: Sequence[Participant],
    rng: CombatRNG,
) -> TargetSelection:
    """Resolve *kind* to a single living participant.

    Parameters
    ----------
    kind:
        A :class:`TargetKind` or its string value.
    actor:
        The participant choosing a target.
    allies:
        The actor's own side.  The actor is always part of the ally pool.
    enemies:
        The opposing side.
    rng:
        Source for the random kinds.
    """
    parsed = kind if isinstance(kind, TargetKind) else parse_target_kind(kind)
    if parsed is None:
        return TargetSelection(target=None, reason=f"Unknown target type: {kind}")

    foes = _living(enemies)
    friends = _ally_pool(actor, allies)

    if parsed == TargetKind.SELF:
        if not actor.is_alive:
            return TargetSelection(target=None, reason="Actor is defeated")
        return TargetSelection(target=actor, reason="Targeting self")

    if parsed in (TargetKind.WEAKEST_ENEMY, TargetKind.LOWEST_HP_ENEMY):
        return _pick(foes, _min_hp, "Enemy with the lowest HP", "No living enemies")

    if parsed == TargetKind.STRONGEST_ENEMY:
        return _pick(foes, _max_hp, "Enemy with the highest HP", "No living enemies")

    if parsed == TargetKind.RANDOM_ENEMY:
        return _pick(foes, rng.random_choice, "Random enemy", "No living enemies")

    if parsed == TargetKind.BOSS_ENEMY:
        bosses = [e for e in foes if e.is_boss]
        if bosses:
            return TargetSelection(
                target=bosses[0],
                reason="Boss enemy",
                alternatives=_others(foes, bosses[0]),
            )
        return _pick(
            foes,
            _max_hp,
            "No boss present, targeting the strongest enemy",
            "No living enemies",
        )

    if parsed == TargetKind.LOWEST_HP_ALLY:
        return _pick(
            friends,
            lambda pool: min(pool, key=lambda p: p.hp_percent),
            "Ally with the lowest HP percentage",
            "No living allies",
        )

    if parsed == TargetKind.RANDOM_ALLY:
        return _pick(friends, rng.random_choice, "Random ally", "No living allies")

    if parsed == TargetKind.STRONGEST_ALLY:
        return _pick(friends, _max_hp, "Ally with the highest HP", "No living allies")

    # HIGHEST_MP_ALLY
    return _pick(
        friends,
        lambda pool: max(pool, key=lambda p: p.current_stats.mp),
        "Ally with the highest MP",
        "No living allies",
    )
