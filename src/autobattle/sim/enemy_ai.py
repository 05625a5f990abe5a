"""Behaviour-pattern AI for enemies that carry no authored rules.

Each enemy maps to a :class:`BehaviorType` archetype (by keyword on its type
and job, or ``is_boss``).  The archetype owns a list of
:class:`BehaviorPattern` entries; the highest-scoring pattern whose gate
holds chooses the target kind and action.  Adaptive rules let a pattern
react to the battle by overriding its preferences and adding a priority
bonus.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from pydantic import BaseModel, Field

from autobattle.ir.abilities import AbilityKind
from autobattle.ir.rules import Rule
from autobattle.sim.conditions import ConditionContext, ConditionEvaluator
from autobattle.sim.core.actions import ActionKind, ParsedAction, ResolvedAction, parse_action
from autobattle.sim.core.entities import Participant
from autobattle.sim.core.rng import CombatRNG
from autobattle.sim.targeting import TargetKind, select_target

logger = logging.getLogger(__name__)


class BehaviorType(str, Enum):
    AGGRESSIVE = "aggressive"
    DEFENSIVE = "defensive"
    HEALING = "healing"
    SUPPORT = "support"
    BOSS = "boss"
    ADAPTIVE = "adaptive"


class PatternModifier(BaseModel):
    """Partial override applied to a pattern when an adaptive rule fires."""

    preferred_targets: list[TargetKind] | None = None
    preferred_actions: list[str] | None = None
    priority_bonus: int = 0


class AdaptiveRule(BaseModel):
    condition: str
    modifier: PatternModifier


class BehaviorPattern(BaseModel):
    """One way an archetype may act.

    The pattern is usable when *any* of its ``conditions`` holds.
    """

    type: BehaviorType
    priority: int
    conditions: list[str]
    preferred_targets: list[TargetKind]
    preferred_actions: list[str]
    adaptive_rules: list[AdaptiveRule] = Field(default_factory=list)


class EnemyDecision(BaseModel):
    action: ActionKind
    skill_id: str | None = None
    target_id: str | None = None
    target_name: str | None = None
    target_kind: str = TargetKind.RANDOM_ENEMY.value
    priority: int = 0
    reasoning: str = ""

    def to_resolved_action(self) -> ResolvedAction:
        action = "attack" if self.action == ActionKind.ATTACK else f"cast:{self.skill_id}"
        return ResolvedAction(
            rule=Rule(
                priority=max(0, self.priority),
                condition="enemy_ai",
                target=self.target_kind,
                action=action,
            ),
            action_type=self.action,
            skill_id=self.skill_id,
            target_id=self.target_id,
            target_name=self.target_name,
            priority=self.priority,
            success=self.target_id is not None,
            message=self.reasoning,
        )


@dataclass
class PartyComposition:
    has_healer: bool = False
    has_tank: bool = False
    has_dps: bool = False
    healer: Participant | None = None
    tank: Participant | None = None
    dps: list[Participant] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Default catalog
# ---------------------------------------------------------------------------

def _modifier(
    targets: list[TargetKind] | None = None,
    actions: list[str] | None = None,
    bonus: int = 0,
) -> PatternModifier:
    return PatternModifier(
        preferred_targets=targets, preferred_actions=actions, priority_bonus=bonus,
    )


def default_behavior_patterns() -> dict[BehaviorType, list[BehaviorPattern]]:
    """Build a fresh copy of the built-in pattern catalog."""
    T = TargetKind
    return {
        BehaviorType.AGGRESSIVE: [
            BehaviorPattern(
                type=BehaviorType.AGGRESSIVE,
                priority=100,
                conditions=["enemy.count > 0"],
                preferred_targets=[T.WEAKEST_ENEMY, T.LOWEST_HP_ALLY],
                preferred_actions=["attack", "cast:high_damage_skill"],
                adaptive_rules=[
                    AdaptiveRule(
                        condition="self.hp < 30%",
                        modifier=_modifier([T.SELF], ["cast:defensive_skill"]),
                    ),
                ],
            ),
        ],
        BehaviorType.DEFENSIVE: [
            BehaviorPattern(
                type=BehaviorType.DEFENSIVE,
                priority=90,
                conditions=["self.hp < 50%"],
                preferred_targets=[T.SELF],
                preferred_actions=["cast:defensive_buff", "cast:healing_skill"],
                adaptive_rules=[
                    AdaptiveRule(
                        condition="ally.hp < 20%",
                        modifier=_modifier([T.LOWEST_HP_ALLY], ["cast:healing_skill"]),
                    ),
                ],
            ),
        ],
        BehaviorType.HEALING: [
            BehaviorPattern(
                type=BehaviorType.HEALING,
                priority=85,
                conditions=["ally.hp < 50%"],
                preferred_targets=[T.LOWEST_HP_ALLY],
                preferred_actions=["cast:healing_skill", "cast:regeneration_buff"],
            ),
        ],
        BehaviorType.SUPPORT: [
            BehaviorPattern(
                type=BehaviorType.SUPPORT,
                priority=80,
                conditions=["always"],
                preferred_targets=[T.RANDOM_ALLY],
                preferred_actions=["cast:attack_buff", "cast:defense_buff"],
            ),
        ],
        BehaviorType.BOSS: [
            BehaviorPattern(
                type=BehaviorType.BOSS,
                priority=120,
                conditions=["self.hp > 70%"],
                preferred_targets=[T.STRONGEST_ENEMY],
                preferred_actions=["cast:boss_special_attack", "cast:aoe_damage"],
                adaptive_rules=[
                    AdaptiveRule(
                        condition="self.hp < 30%",
                        modifier=_modifier(
                            [T.SELF], ["cast:ultimate_skill", "cast:emergency_heal"],
                        ),
                    ),
                    AdaptiveRule(
                        condition="enemy.count > 3",
                        modifier=_modifier(actions=["cast:aoe_damage", "cast:debuff_all"]),
                    ),
                ],
            ),
        ],
        BehaviorType.ADAPTIVE: [
            BehaviorPattern(
                type=BehaviorType.ADAPTIVE,
                priority=95,
                conditions=["always"],
                preferred_targets=[T.RANDOM_ENEMY],
                preferred_actions=["attack"],
                adaptive_rules=[
                    AdaptiveRule(
                        condition="party.hasHealer",
                        modifier=_modifier([T.LOWEST_HP_ALLY], ["cast:anti_heal_debuff"]),
                    ),
                    AdaptiveRule(
                        condition="party.hasTank",
                        modifier=_modifier([T.STRONGEST_ENEMY], ["cast:armor_break"]),
                    ),
                    AdaptiveRule(
                        condition="party.hasDps",
                        modifier=_modifier([T.WEAKEST_ENEMY], ["cast:damage_skill"]),
                    ),
                ],
            ),
        ],
    }


_ARCHETYPE_KEYWORDS: list[tuple[tuple[str, ...], BehaviorType]] = [
    (("healer", "cleric"), BehaviorType.HEALING),
    (("mage", "wizard"), BehaviorType.SUPPORT),
    (("warrior", "fighter"), BehaviorType.AGGRESSIVE),
    (("tank", "guardian"), BehaviorType.DEFENSIVE),
]


# ---------------------------------------------------------------------------
# EnemyAI
# ---------------------------------------------------------------------------

class EnemyAI:
    """Chooses actions for rule-less enemies.

    Parameters
    ----------
    rng:
        Source for random target kinds and fallback targets.
    evaluator:
        Condition evaluator for gates and adaptive rules.
    patterns:
        Optional catalog replacing :func:`default_behavior_patterns`.
    """

    def __init__(
        self,
        rng: CombatRNG,
        evaluator: ConditionEvaluator | None = None,
        patterns: dict[BehaviorType, list[BehaviorPattern]] | None = None,
    ) -> None:
        self._rng = rng
        self._evaluator = evaluator or ConditionEvaluator()
        self._patterns = patterns if patterns is not None else default_behavior_patterns()

    # -- decision ------------------------------------------------------------

    def make_decision(
        self,
        enemy: Participant,
        allies: Sequence[Participant],
        enemies: Sequence[Participant],
        turn_number: int = 1,
    ) -> EnemyDecision:
        """Decide *enemy*'s action.

        *allies* is the enemy's own side, *enemies* the side it fights.
        """
        context = self._evaluator.create_context(enemy, allies, enemies, turn_number)
        behavior = self.determine_behavior_type(enemy)
        patterns = self._patterns.get(behavior, [])

        best = self._select_best_pattern(patterns, context)
        if best is None:
            return self._fallback_decision(context, "No suitable behavior pattern found")
        pattern, score = best

        target, kind = self._select_target(pattern, context)
        if target is None:
            return self._fallback_decision(context, "No valid target found")

        action = self._select_action(pattern, enemy)
        logger.debug(
            "%s uses %s pattern (score %d): %s -> %s",
            enemy.name, pattern.type.value, score, action.kind.value, target.name,
        )
        return EnemyDecision(
            action=action.kind,
            skill_id=action.skill_id,
            target_id=target.id,
            target_name=target.name,
            target_kind=kind.value,
            priority=pattern.priority,
            reasoning=f"Using {behavior.value} behavior: {pattern.type.value} pattern",
        )

    @staticmethod
    def determine_behavior_type(enemy: Participant) -> BehaviorType:
        if enemy.is_boss:
            return BehaviorType.BOSS
        labels = (enemy.type.lower(), enemy.job.lower())
        for keywords, behavior in _ARCHETYPE_KEYWORDS:
            if any(word in label for word in keywords for label in labels):
                return behavior
        return BehaviorType.ADAPTIVE

    def _merged_modifier(
        self,
        pattern: BehaviorPattern,
        context: ConditionContext,
    ) -> PatternModifier | None:
        """Merge every triggered adaptive rule; later rules win per field."""
        merged: PatternModifier | None = None
        for rule in pattern.adaptive_rules:
            if not self._evaluator.evaluate_condition(rule.condition, context):
                continue
            mod = rule.modifier
            if merged is None:
                merged = mod.model_copy()
                continue
            merged = PatternModifier(
                preferred_targets=(
                    mod.preferred_targets
                    if mod.preferred_targets is not None
                    else merged.preferred_targets
                ),
                preferred_actions=(
                    mod.preferred_actions
                    if mod.preferred_actions is not None
                    else merged.preferred_actions
                ),
                priority_bonus=merged.priority_bonus + mod.priority_bonus,
            )
        return merged

    def _select_best_pattern(
        self,
        patterns: Sequence[BehaviorPattern],
        context: ConditionContext,
    ) -> tuple[BehaviorPattern, int] | None:
        best: BehaviorPattern | None = None
        best_score = 0
        for pattern in patterns:
            if not any(self._evaluator.evaluate_condition(c, context) for c in pattern.conditions):
                continue
            modifier = self._merged_modifier(pattern, context)
            score = pattern.priority + (modifier.priority_bonus if modifier else 0)
            if best is not None and score <= best_score:
                continue
            effective = pattern
            if modifier is not None:
                updates: dict[str, object] = {}
                if modifier.preferred_targets is not None:
                    updates["preferred_targets"] = list(modifier.preferred_targets)
                if modifier.preferred_actions is not None:
                    updates["preferred_actions"] = list(modifier.preferred_actions)
                effective = pattern.model_copy(update=updates)
            best, best_score = effective, score
        if best is None:
            return None
        return best, best_score

    def _select_target(
        self,
        pattern: BehaviorPattern,
        context: ConditionContext,
    ) -> tuple[Participant | None, TargetKind]:
        for kind in pattern.preferred_targets:
            selection = select_target(
                kind, context.actor, context.living_allies, context.living_enemies, self._rng,
            )
            if selection.target is not None and selection.target.is_alive:
                return selection.target, kind
        fallback = select_target(
            TargetKind.RANDOM_ENEMY,
            context.actor,
            context.living_allies,
            context.living_enemies,
            self._rng,
        )
        return fallback.target, TargetKind.RANDOM_ENEMY

    @staticmethod
    def _select_action(pattern: BehaviorPattern, enemy: Participant) -> ParsedAction:
        for action in pattern.preferred_actions:
            parsed = parse_action(action)
            if parsed is None:
                logger.warning("Unknown action format %r in %s pattern", action, pattern.type.value)
                continue
            if parsed.kind == ActionKind.ATTACK:
                return parsed
            ability = enemy.find_ability(parsed.skill_id or "")
            if (
                ability is not None
                and not enemy.is_on_cooldown(ability.name)
                and enemy.can_afford(ability)
            ):
                return parsed
        return ParsedAction(kind=ActionKind.ATTACK)

    def _fallback_decision(self, context: ConditionContext, reason: str) -> EnemyDecision:
        target = None
        if context.living_enemies:
            target = self._rng.random_choice(context.living_enemies)
        return EnemyDecision(
            action=ActionKind.ATTACK,
            target_id=target.id if target else None,
            target_name=target.name if target else None,
            priority=0,
            reasoning=f"Fallback decision: {reason}",
        )

    # -- catalog management ----------------------------------------------------

    def get_behavior_patterns(self, behavior: BehaviorType | str) -> list[BehaviorPattern]:
        return list(self._patterns.get(BehaviorType(behavior), []))

    def add_behavior_pattern(self, behavior: BehaviorType | str, pattern: BehaviorPattern) -> None:
        self._patterns.setdefault(BehaviorType(behavior), []).append(pattern)

    def set_behavior_patterns(
        self,
        behavior: BehaviorType | str,
        patterns: Sequence[BehaviorPattern],
    ) -> None:
        self._patterns[BehaviorType(behavior)] = list(patterns)

    @staticmethod
    def analyze_party_composition(party: Sequence[Participant]) -> PartyComposition:
        """Classify each living member as healer, tank or damage dealer."""
        result = PartyComposition()
        for member in party:
            if not member.is_alive:
                continue
            heals = any(
                ability.kind == AbilityKind.HEAL or "heal" in ability.name.lower()
                for ability in member.abilities
            )
            if heals:
                result.has_healer = True
                result.healer = member
            elif member.current_stats.defense > member.current_stats.strength:
                result.has_tank = True
                result.tank = member
            else:
                result.has_dps = True
                result.dps.append(member)
        return result
