"""Telemetry data models for per-battle and per-batch statistics.

- **BattleTelemetry**: outcome, turn count, damage dealt/taken, healing and
  skill usage of a single battle.
- **BatchSummary**: aggregate view over many seeded replays.

Both are plain ``dataclass`` instances to keep collection cheap during
batch runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from autobattle.sim.core.actions import ActionKind
from autobattle.sim.core.battle_state import BattleResult, BattleState


@dataclass
class BattleTelemetry:
    """Stats from a single battle.

    Attributes
    ----------
    seed:
        Master RNG seed the battle ran with.
    result:
        ``"win"``, ``"loss"`` or ``"timeout"``.
    reason:
        The battle result's reason string.
    turns:
        Round number the battle ended on.
    actions_taken:
        Number of executed turns (history length).
    party_hp_start, party_hp_end:
        Summed current HP of the allied side.
    damage_dealt:
        Damage dealt by allies.
    damage_taken:
        Damage dealt by enemies.
    healing_done:
        HP restored by allies.
    skills_used:
        ``actor name -> skill id -> casts``.
    """

    seed: int
    result: str
    reason: str
    turns: int
    actions_taken: int
    party_hp_start: int
    party_hp_end: int
    damage_dealt: int = 0
    damage_taken: int = 0
    healing_done: int = 0
    skills_used: dict[str, dict[str, int]] = field(default_factory=dict)


@dataclass
class BatchSummary:
    runs: int
    wins: int
    losses: int
    timeouts: int
    win_rate: float
    average_turns: float
    average_damage_taken: float


def _outcome(result: BattleResult) -> str:
    if result.victory:
        return "win"
    if result.reason == "timeout":
        return "timeout"
    return "loss"


def collect_battle_telemetry(
    seed: int,
    state: BattleState,
    result: BattleResult,
    party_hp_start: int,
) -> BattleTelemetry:
    """Summarize a finished battle from its state and result."""
    telemetry = BattleTelemetry(
        seed=seed,
        result=_outcome(result),
        reason=result.reason,
        turns=result.turns,
        actions_taken=len(state.history),
        party_hp_start=party_hp_start,
        party_hp_end=sum(a.current_stats.hp for a in state.allies),
    )
    for turn in state.history:
        actor = state.find(turn.actor_id)
        from_enemy = actor is not None and actor.is_enemy
        if turn.damage:
            if from_enemy:
                telemetry.damage_taken += turn.damage
            else:
                telemetry.damage_dealt += turn.damage
        if turn.heal and not from_enemy:
            telemetry.healing_done += turn.heal
        if turn.success and turn.action.action_type == ActionKind.CAST and turn.action.skill_id:
            per_actor = telemetry.skills_used.setdefault(turn.actor_name, {})
            per_actor[turn.action.skill_id] = per_actor.get(turn.action.skill_id, 0) + 1
    return telemetry


def summarize_batch(runs: Sequence[BattleTelemetry]) -> BatchSummary:
    n = len(runs)
    wins = sum(1 for r in runs if r.result == "win")
    timeouts = sum(1 for r in runs if r.result == "timeout")
    return BatchSummary(
        runs=n,
        wins=wins,
        losses=n - wins - timeouts,
        timeouts=timeouts,
        win_rate=wins / n if n else 0.0,
        average_turns=sum(r.turns for r in runs) / n if n else 0.0,
        average_damage_taken=sum(r.damage_taken for r in runs) / n if n else 0.0,
    )
