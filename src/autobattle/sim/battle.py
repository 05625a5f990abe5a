"""Battle state machine -- turn order, rounds, action execution, end detection.

Usage::

    system = BattleSystem(CombatRNG(42), entity_factory=registry, loot_system=loot)
    system.initialize_battle(party, enemies)
    result = system.simulate_full_battle()

Each call to :meth:`BattleSystem.execute_turn` lets exactly one living
participant act and appends one :class:`TurnResult` to the history.  When
the turn index wraps, a new round starts: buffs and cooldowns tick once and
initiative is re-rolled for everyone still standing.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Sequence

from autobattle.config import BattleConfig
from autobattle.errors import BattleError, BattleSetupError
from autobattle.ir.abilities import (
    Ability,
    AbilityKind,
    DamageEffect,
    HealEffect,
    StatModifierEffect,
    SummonEffect,
)
from autobattle.sim.collaborators import BattleLogger, EntityFactory, LootSystem
from autobattle.sim.conditions import ConditionEvaluator
from autobattle.sim.core.actions import ActionKind, ResolvedAction
from autobattle.sim.core.battle_state import (
    AppliedModifier,
    BattleLoot,
    BattleResult,
    BattleState,
    TurnOrderEntry,
    TurnResult,
    Victor,
)
from autobattle.sim.core.entities import BuffKind, Participant
from autobattle.sim.core.rng import CombatRNG
from autobattle.sim.enemy_ai import EnemyAI
from autobattle.sim.resolver import ActionResolver

logger = logging.getLogger(__name__)

REASON_ENEMIES_DEFEATED = "All enemies defeated"
REASON_ALLIES_DEFEATED = "All allies defeated"
REASON_TIMEOUT = "timeout"
REASON_NO_ACTOR = "no actionable participant"


@dataclass
class ParticipantStatus:
    participant: Participant
    hp_percent: int
    mp_percent: int
    buffs: int
    active_cooldowns: int


class BattleSystem:
    """Runs one battle between two rosters.

    Parameters
    ----------
    rng:
        Seeded source for every random draw.  Initiative, combat rolls and
        target picks use separate forks so they do not perturb each other.
    config:
        Tunable numbers; defaults to :class:`BattleConfig()`.
    entity_factory:
        Needed only for summon skills.
    loot_system:
        Produces the loot in :meth:`get_battle_result`; no loot when omitted.
    battle_logger:
        Optional turn sink.
    """

    def __init__(
        self,
        rng: CombatRNG,
        config: BattleConfig | None = None,
        entity_factory: EntityFactory | None = None,
        loot_system: LootSystem | None = None,
        battle_logger: BattleLogger | None = None,
    ) -> None:
        self.rng = rng
        self.config = config or BattleConfig()
        self.entity_factory = entity_factory
        self.loot_system = loot_system
        self.battle_logger = battle_logger

        self._initiative_rng = rng.fork("initiative")
        self._combat_rng = rng.fork("combat")
        target_rng = rng.fork("targets")
        evaluator = ConditionEvaluator()
        self.action_resolver = ActionResolver(target_rng, evaluator)
        self.enemy_ai = EnemyAI(target_rng, evaluator)

        self._state: BattleState | None = None
        self._end_reason: str | None = None

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def initialize_battle(
        self,
        allies: Sequence[Participant],
        enemies: Sequence[Participant],
    ) -> BattleState:
        """Validate the rosters and build the initial state.

        Only living participants enter the battle.

        Raises
        ------
        BattleSetupError
            If a side is empty or fully defeated, or ids collide.
        """
        if not allies:
            raise BattleSetupError("Cannot start battle with no allies")
        if not enemies:
            raise BattleSetupError("Cannot start battle with no enemies")

        living_allies = [a for a in allies if a.is_alive]
        living_enemies = [e for e in enemies if e.is_alive]
        if not living_allies:
            raise BattleSetupError("Cannot start battle - all allies are defeated")
        if not living_enemies:
            raise BattleSetupError("Cannot start battle - all enemies are defeated")

        seen: set[str] = set()
        for participant in [*living_allies, *living_enemies]:
            if participant.id in seen:
                raise BattleSetupError(
                    f"Duplicate participant id {participant.id!r}",
                    {"participant_id": participant.id},
                )
            seen.add(participant.id)

        for ally in living_allies:
            ally.is_enemy = False
        for enemy in living_enemies:
            enemy.is_enemy = True

        state = BattleState(allies=living_allies, enemies=living_enemies)
        state.turn_order = self._calculate_turn_order(state.participants)
        self._state = state
        self._end_reason = None

        logger.debug(
            "Battle initialized: %d allies vs %d enemies, order %s",
            len(living_allies),
            len(living_enemies),
            [entry.participant_id for entry in state.turn_order],
        )
        return state

    def _require_state(self) -> BattleState:
        if self._state is None:
            raise BattleError("Battle not initialized. Call initialize_battle() first.")
        return self._state

    def _calculate_turn_order(self, participants: Sequence[Participant]) -> list[TurnOrderEntry]:
        entries = [
            TurnOrderEntry(
                participant_id=p.id,
                speed=p.current_stats.speed,
                initiative=(
                    p.current_stats.speed
                    + self._initiative_rng.jitter(self.config.initiative_jitter)
                ),
            )
            for p in participants
            if p.is_alive
        ]
        # sorted() is stable: equal initiative keeps roster order.
        return sorted(entries, key=lambda entry: -entry.initiative)

    # ------------------------------------------------------------------
    # Turn sequencing
    # ------------------------------------------------------------------

    def get_current_actor(self) -> Participant | None:
        """Return the participant whose turn it is, skipping the defeated."""
        state = self._state
        if state is None or state.is_complete:
            return None

        attempts = 0
        max_attempts = 2 * len(state.turn_order)
        while attempts < max_attempts:
            if state.current_turn_index < len(state.turn_order):
                entry = state.turn_order[state.current_turn_index]
                participant = state.find(entry.participant_id)
                if participant is not None and participant.is_alive:
                    return participant
            self.advance_turn()
            attempts += 1
            if state.is_complete:
                return None
        return None

    def advance_turn(self) -> None:
        """Move to the next turn slot, starting a new round on wrap."""
        state = self._require_state()
        state.current_turn_index += 1
        if state.current_turn_index >= len(state.turn_order):
            self._start_new_round(state)

    def _start_new_round(self, state: BattleState) -> None:
        state.turn_number += 1
        for participant in state.participants:
            if not participant.is_alive:
                continue
            for buff in participant.tick_buffs():
                logger.debug("%s: %s wore off", participant.name, buff.name)
            participant.tick_cooldowns()

        # Expiring buffs can reduce HP to zero.
        self.check_battle_end()
        state.turn_order = self._calculate_turn_order(state.participants)
        state.current_turn_index = 0

    def execute_turn(self) -> TurnResult | None:
        """Let the current actor act.

        Returns ``None`` once the battle is complete or nobody can act.

        Raises
        ------
        BattleError
            If the battle was never initialized.
        """
        state = self._require_state()
        if state.is_complete:
            return None

        actor = self.get_current_actor()
        if actor is None:
            return None

        own_side, opposing_side = state.sides_for(actor)
        if actor.is_enemy and not actor.rules:
            decision = self.enemy_ai.make_decision(
                actor, own_side, opposing_side, state.turn_number,
            )
            action = decision.to_resolved_action()
        else:
            action = self.action_resolver.resolve_action(
                actor, own_side, opposing_side, state.turn_number,
            )

        if not action.success or action.target_id is None:
            result = self._turn_result(
                actor,
                action,
                success=False,
                message=f"{actor.name} skips turn ({action.message})",
            )
        else:
            result = self._execute_action(actor, action)

        state.history.append(result)
        if self.battle_logger is not None:
            self.battle_logger.log_turn(result)
        logger.debug("%s", result.message)

        if not self.check_battle_end():
            self.advance_turn()
        return result

    # ------------------------------------------------------------------
    # Action execution
    # ------------------------------------------------------------------

    def _turn_result(
        self,
        actor: Participant,
        action: ResolvedAction,
        *,
        success: bool,
        message: str,
        target: Participant | None = None,
        **fields: object,
    ) -> TurnResult:
        return TurnResult(
            actor_id=actor.id,
            actor_name=actor.name,
            target_id=target.id if target else None,
            target_name=target.name if target else None,
            action=action,
            success=success,
            message=message,
            turn_number=self._require_state().turn_number,
            **fields,
        )

    def _execute_action(self, actor: Participant, action: ResolvedAction) -> TurnResult:
        state = self._require_state()
        target = state.find(action.target_id)
        if target is None:
            return self._turn_result(
                actor, action, success=False,
                message=f"{actor.name} cannot find target for action",
            )
        if not target.is_alive:
            return self._turn_result(
                actor, action, success=False, target=target,
                message=f"{actor.name} cannot target defeated {target.name}",
            )

        if action.action_type == ActionKind.ATTACK:
            return self._basic_attack(actor, target, action)
        if action.action_type == ActionKind.CAST and action.skill_id:
            return self._cast_skill(actor, target, action)
        return self._turn_result(
            actor, action, success=False, target=target,
            message=f"{actor.name} unknown action type: {action.action_type.value}",
        )

    def _roll(self) -> int:
        return self._combat_rng.jitter(self.config.damage_jitter)

    def _basic_attack(
        self,
        actor: Participant,
        target: Participant,
        action: ResolvedAction,
    ) -> TurnResult:
        damage = max(
            self.config.minimum_damage,
            actor.current_stats.strength - target.current_stats.defense + self._roll(),
        )
        before = target.current_stats.hp
        target.take_damage(damage)
        return self._turn_result(
            actor, action, success=True, target=target,
            damage=damage, before_hp=before, after_hp=target.current_stats.hp,
            message=(
                f"{actor.name} attacks {target.name} for {damage} damage "
                f"({target.current_stats.hp}/{target.max_stats.hp} HP remaining)"
            ),
        )

    def _cast_skill(
        self,
        actor: Participant,
        target: Participant,
        action: ResolvedAction,
    ) -> TurnResult:
        ability = actor.find_ability(action.skill_id or "")
        if ability is None:
            return self._turn_result(
                actor, action, success=False, target=target,
                message=f"{actor.name} does not know skill: {action.skill_id}",
            )
        if actor.is_on_cooldown(ability.name):
            return self._turn_result(
                actor, action, success=False, target=target,
                message=(
                    f"{actor.name} cannot use {ability.name} - on cooldown for "
                    f"{actor.cooldown_remaining(ability.name)} more turns"
                ),
            )
        if not actor.has_combinations_for(ability):
            return self._turn_result(
                actor, action, success=False, target=target,
                message=f"{actor.name} cannot use {ability.name} - missing required combination skills",
            )
        if not actor.can_afford(ability):
            return self._turn_result(
                actor, action, success=False, target=target,
                message=(
                    f"{actor.name} not enough MP to cast {ability.name} "
                    f"(need {ability.mp_cost}, have {actor.current_stats.mp})"
                ),
            )

        actor.spend_mp(ability.mp_cost)
        actor.start_cooldown(ability)
        handler = _EFFECT_HANDLERS[type(ability.effect)]
        return handler(self, actor, target, ability, ability.effect, action)

    def _damage_skill(
        self,
        actor: Participant,
        target: Participant,
        ability: Ability,
        effect: DamageEffect,
        action: ResolvedAction,
    ) -> TurnResult:
        damage = max(
            self.config.minimum_damage,
            effect.damage
            + actor.current_stats.magic
            - target.current_stats.defense
            + self._roll(),
        )
        before = target.current_stats.hp
        target.take_damage(damage)
        return self._turn_result(
            actor, action, success=True, target=target,
            damage=damage, before_hp=before, after_hp=target.current_stats.hp,
            message=(
                f"{actor.name} casts {ability.name} on {target.name} for {damage} damage "
                f"({target.current_stats.hp}/{target.max_stats.hp} HP remaining)"
            ),
        )

    def _heal_skill(
        self,
        actor: Participant,
        target: Participant,
        ability: Ability,
        effect: HealEffect,
        action: ResolvedAction,
    ) -> TurnResult:
        amount = (
            effect.heal
            + math.floor(actor.current_stats.magic * self.config.heal_magic_ratio)
            + self._roll()
        )
        before = target.current_stats.hp
        healed = target.restore_hp(amount)
        return self._turn_result(
            actor, action, success=True, target=target,
            heal=healed, before_hp=before, after_hp=target.current_stats.hp,
            message=(
                f"{actor.name} casts {ability.name} on {target.name} healing {healed} HP "
                f"({target.current_stats.hp}/{target.max_stats.hp} HP)"
            ),
        )

    def _stat_modifier_skill(
        self,
        actor: Participant,
        target: Participant,
        ability: Ability,
        effect: StatModifierEffect,
        action: ResolvedAction,
    ) -> TurnResult:
        kind = BuffKind.DEBUFF if ability.kind == AbilityKind.DEBUFF else BuffKind.BUFF
        before = target.current_stats.hp

        applied: AppliedModifier | None = None
        if effect.stat_modifier and effect.duration > 0:
            target.add_buff(ability.name, kind, effect.stat_modifier, effect.duration)
            applied = AppliedModifier(
                name=ability.name,
                stat_modifier=dict(effect.stat_modifier),
                duration=effect.duration,
            )

        message = f"{actor.name} casts {ability.name} on {target.name}"
        if applied is not None:
            message += f" ({kind.value} applied for {applied.duration} turns)"
        if not target.is_alive:
            message += f", {target.name} is defeated"
        return self._turn_result(
            actor, action, success=True, target=target,
            buff_applied=applied if kind == BuffKind.BUFF else None,
            debuff_applied=applied if kind == BuffKind.DEBUFF else None,
            before_hp=before, after_hp=target.current_stats.hp,
            message=message,
        )

    def _summon_skill(
        self,
        actor: Participant,
        target: Participant,
        ability: Ability,
        effect: SummonEffect,
        action: ResolvedAction,
    ) -> TurnResult:
        state = self._require_state()
        if self.entity_factory is None:
            return self._turn_result(
                actor, action, success=False, target=actor,
                message=f"{actor.name} cannot summon - no entity factory available",
            )

        summoned: list[str] = []
        for _ in range(effect.count):
            try:
                minion = self.entity_factory.create_enemy(
                    effect.summon, self._minion_name(state, effect.summon), 1,
                )
            except (KeyError, ValueError) as exc:
                logger.warning("Failed to summon %s: %s", effect.summon, exc)
                continue
            minion.is_enemy = actor.is_enemy
            minion.id = self._unique_id(state, minion.id)
            state.add_participant(minion)
            summoned.append(minion.name)

        if not summoned:
            return self._turn_result(
                actor, action, success=False, target=actor,
                message=f"{actor.name} failed to summon {effect.summon}",
            )

        self._refresh_turn_order(state)
        if self.battle_logger is not None:
            self.battle_logger.log_debug(
                "SUMMON",
                f"Turn order after summon: {[e.participant_id for e in state.turn_order]}",
            )
        return self._turn_result(
            actor, action, success=True, target=actor,
            summoned=tuple(summoned),
            message=f"{actor.name} summons {', '.join(summoned)} to join the battle!",
        )

    @staticmethod
    def _minion_name(state: BattleState, summon: str) -> str:
        taken = {p.name for p in state.participants}
        n = 1
        while f"{summon} {n}" in taken:
            n += 1
        return f"{summon} {n}"

    @staticmethod
    def _unique_id(state: BattleState, base: str) -> str:
        if not state.contains_id(base):
            return base
        n = 2
        while state.contains_id(f"{base}_{n}"):
            n += 1
        return f"{base}_{n}"

    def _refresh_turn_order(self, state: BattleState) -> None:
        """Re-roll initiative for everyone yet to act this round, summons included.

        Entries up to and including the current actor stay where they are, so
        nobody acts twice in one round.
        """
        acted = state.turn_order[: state.current_turn_index + 1]
        acted_ids = {e.participant_id for e in acted}
        pending = [p for p in state.participants if p.id not in acted_ids]
        state.turn_order = acted + self._calculate_turn_order(pending)

    # ------------------------------------------------------------------
    # Ending
    # ------------------------------------------------------------------

    def check_battle_end(self) -> bool:
        """Mark the battle complete if a side is wiped out.  Returns ``is_complete``."""
        state = self._state
        if state is None:
            return False
        if state.is_complete:
            return True
        if not state.living_allies:
            self._complete(state, Victor.ENEMIES, REASON_ALLIES_DEFEATED)
        elif not state.living_enemies:
            self._complete(state, Victor.ALLIES, REASON_ENEMIES_DEFEATED)
        return state.is_complete

    def _complete(self, state: BattleState, victor: Victor | None, reason: str) -> None:
        state.is_complete = True
        state.victor = victor
        self._end_reason = reason
        logger.debug("Battle complete on turn %d: %s", state.turn_number, reason)

    def simulate_full_battle(self, max_turns: int | None = None) -> BattleResult:
        """Execute turns until the battle ends or *max_turns* turns ran.

        Never raises: a crash mid-battle becomes a defeat result whose
        reason carries the error message.
        """
        state = self._state
        if state is None:
            return BattleResult(
                victory=False,
                reason="Battle simulation failed: battle not initialized",
                turns=0,
            )
        limit = self.config.max_turns if max_turns is None else max_turns

        try:
            executed = 0
            while not state.is_complete and executed < limit:
                if self.execute_turn() is None:
                    if not self.check_battle_end():
                        self._complete(state, None, REASON_NO_ACTOR)
                    break
                executed += 1
            if not state.is_complete:
                self._complete(state, None, REASON_TIMEOUT)
            return self.get_battle_result()
        except Exception as exc:
            logger.exception("Battle simulation failed on turn %d", state.turn_number)
            if self.battle_logger is not None:
                self.battle_logger.log_error("BATTLE", "Battle simulation failed", exc)
            state.is_complete = True
            state.victor = None
            self._end_reason = f"Battle simulation failed: {exc}"
            return BattleResult(
                victory=False,
                reason=self._end_reason,
                turns=state.turn_number,
                survivors=state.living_allies,
                defeated_enemies=[e for e in state.enemies if not e.is_alive],
            )

    def get_battle_result(self) -> BattleResult:
        """Summarize a completed battle.

        Raises
        ------
        BattleError
            If the battle is not initialized or still running.
        """
        state = self._require_state()
        if not state.is_complete:
            raise BattleError("Battle is not complete")

        defeated = [e for e in state.enemies if not e.is_alive]
        loot = (
            self.loot_system.generate_battle_loot(defeated)
            if self.loot_system is not None
            else BattleLoot()
        )
        if self._end_reason is not None:
            reason = self._end_reason
        elif state.victor == Victor.ALLIES:
            reason = REASON_ENEMIES_DEFEATED
        else:
            reason = REASON_ALLIES_DEFEATED
        return BattleResult(
            victory=state.victor == Victor.ALLIES,
            victor=state.victor,
            reason=reason,
            turns=state.turn_number,
            survivors=state.living_allies,
            defeated_enemies=defeated,
            loot=loot,
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def get_battle_state(self) -> BattleState | None:
        return self._state

    def get_turn_history(self) -> list[TurnResult]:
        return list(self._state.history) if self._state else []

    def get_turn_order(self) -> list[TurnOrderEntry]:
        return list(self._state.turn_order) if self._state else []

    def get_current_turn(self) -> int:
        return self._state.turn_number if self._state else 0

    def is_battle_complete(self) -> bool:
        return self._state is not None and self._state.is_complete

    def get_participant_status(self) -> list[ParticipantStatus]:
        if self._state is None:
            return []
        return [
            ParticipantStatus(
                participant=p,
                hp_percent=round(p.hp_percent),
                mp_percent=round(p.mp_percent),
                buffs=len(p.buffs),
                active_cooldowns=sum(1 for c in p.skill_cooldowns if c.remaining_turns > 0),
            )
            for p in self._state.participants
        ]


_EffectHandler = Callable[..., TurnResult]

_EFFECT_HANDLERS: dict[type, _EffectHandler] = {
    DamageEffect: BattleSystem._damage_skill,
    HealEffect: BattleSystem._heal_skill,
    StatModifierEffect: BattleSystem._stat_modifier_skill,
    SummonEffect: BattleSystem._summon_skill,
}
