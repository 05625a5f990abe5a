"""Rule-based action resolution for participants with authored rules.

Picks the first matching rule by descending priority, resolves its target
and action, and substitutes a basic attack when the chosen skill cannot be
cast right now (cooldown or MP).  Authored mistakes degrade with a warning,
they never raise.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from autobattle.ir.rules import Rule
from autobattle.sim.conditions import (
    ConditionContext,
    ConditionEvaluator,
    validate_condition_syntax,
)
from autobattle.sim.core.actions import ActionKind, ParsedAction, ResolvedAction, parse_action
from autobattle.sim.core.entities import Participant
from autobattle.sim.core.rng import CombatRNG
from autobattle.sim.targeting import (
    TargetKind,
    is_valid_target_kind,
    parse_target_kind,
    select_target,
)

logger = logging.getLogger(__name__)


@dataclass
class ActionValidation:
    valid: bool
    errors: list[str] = field(default_factory=list)


@dataclass
class RuleIssue:
    rule: Rule | None
    message: str


@dataclass
class RulesValidation:
    valid: bool
    errors: list[RuleIssue] = field(default_factory=list)
    warnings: list[RuleIssue] = field(default_factory=list)


@dataclass
class ActionResolutionDebug:
    context: ConditionContext
    rule_evaluations: list[tuple[Rule, bool]]
    selected_rule: Rule | None
    resolved_action: ResolvedAction


class ActionResolver:
    """Turns an actor's rule list into a :class:`ResolvedAction`.

    Parameters
    ----------
    rng:
        Used for the random target kinds.
    evaluator:
        Condition evaluator; a fresh one is created when omitted.
    """

    def __init__(self, rng: CombatRNG, evaluator: ConditionEvaluator | None = None) -> None:
        self._rng = rng
        self._evaluator = evaluator or ConditionEvaluator()

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve_action(
        self,
        actor: Participant,
        allies: Sequence[Participant],
        enemies: Sequence[Participant],
        turn_number: int = 1,
    ) -> ResolvedAction:
        """Resolve *actor*'s action for this turn.

        *allies* is the actor's own side and *enemies* the opposing side.
        """
        context = self._evaluator.create_context(actor, allies, enemies, turn_number)
        rule = self._evaluator.evaluate_rules(actor.rules, context)
        matched = rule is not None
        if rule is None:
            rule = Rule.fallback()

        target = self._resolve_target(rule.target, context)
        if target is None:
            return ResolvedAction(
                rule=rule,
                action_type=ActionKind.ATTACK,
                priority=rule.priority,
                success=False,
                message=f"{actor.name} cannot find a valid target for {rule.target}",
            )

        parsed = parse_action(rule.action)
        if parsed is None:
            logger.warning("Unknown action format %r, defaulting to attack", rule.action)
            parsed = ParsedAction(kind=ActionKind.ATTACK)

        if parsed.kind == ActionKind.CAST and parsed.skill_id is not None:
            substitute = self._substitute_if_unusable(actor, rule, parsed.skill_id, target, context)
            if substitute is not None:
                return substitute

        if not matched:
            message = f"{actor.name} performs a basic attack on {target.name} (no rules matched)"
        else:
            message = self._describe(actor, target, parsed, rule)
        logger.debug(
            "%s selected rule %r -> %s -> %s, target %s",
            actor.name, rule.condition, rule.target, rule.action, target.name,
        )
        return ResolvedAction(
            rule=rule,
            action_type=parsed.kind,
            skill_id=parsed.skill_id,
            target_id=target.id,
            target_name=target.name,
            priority=rule.priority,
            success=True,
            message=message,
        )

    def _resolve_target(self, target: str, context: ConditionContext) -> Participant | None:
        kind: TargetKind | str = target
        if not is_valid_target_kind(target):
            logger.warning("Unknown target type %r, falling back to randomEnemy", target)
            kind = TargetKind.RANDOM_ENEMY
        selection = select_target(
            kind, context.actor, context.living_allies, context.living_enemies, self._rng,
        )
        return selection.target

    def _substitute_if_unusable(
        self,
        actor: Participant,
        rule: Rule,
        skill_id: str,
        target: Participant,
        context: ConditionContext,
    ) -> ResolvedAction | None:
        """Return a basic-attack substitute when the skill cannot be cast.

        Skills the actor does not own pass through unchanged; the battle
        system reports them as an unknown skill.
        """
        ability = actor.find_ability(skill_id)
        if ability is None:
            return None

        if actor.is_on_cooldown(ability.name):
            reason = f"{ability.name} is on cooldown"
            condition = "fallback_cooldown"
        elif not actor.can_afford(ability):
            reason = f"not enough MP for {ability.name}"
            condition = "fallback_mp"
        else:
            return None

        target_kind = rule.target
        attack_target: Participant | None = target
        if parse_target_kind(rule.target) is TargetKind.SELF:
            target_kind = TargetKind.RANDOM_ENEMY.value
            attack_target = self._resolve_target(target_kind, context) or target

        logger.debug("%s cannot cast %s: %s", actor.name, ability.name, reason)
        return ResolvedAction(
            rule=Rule(
                priority=rule.priority,
                condition=condition,
                target=target_kind,
                action="attack",
            ),
            action_type=ActionKind.ATTACK,
            target_id=attack_target.id,
            target_name=attack_target.name,
            priority=rule.priority,
            success=True,
            message=f"{actor.name} attacks {attack_target.name} ({reason})",
        )

    @staticmethod
    def _describe(
        actor: Participant,
        target: Participant,
        parsed: ParsedAction,
        rule: Rule,
    ) -> str:
        verb = "attacks" if parsed.kind == ActionKind.ATTACK else f"casts {parsed.skill_id} on"
        who = "themselves" if target.id == actor.id else target.name
        return f"{actor.name} {verb} {who} (rule: {rule.condition}, priority: {rule.priority})"

    # ------------------------------------------------------------------
    # Validation and debugging
    # ------------------------------------------------------------------

    def validate_action(
        self,
        action: ResolvedAction,
        actor: Participant,
        available_skills: Sequence[str] | None = None,
    ) -> ActionValidation:
        """Check that *action* is executable by *actor* right now."""
        errors: list[str] = []

        if action.action_type == ActionKind.CAST and action.skill_id:
            ability = actor.find_ability(action.skill_id)
            if ability is None:
                owned = ", ".join(a.skill_id for a in actor.abilities)
                errors.append(
                    f"Actor {actor.name} does not have skill: {action.skill_id}. "
                    f"Available skills: {owned}"
                )
            if available_skills is not None and action.skill_id not in available_skills:
                errors.append(f"Skill {action.skill_id} is not in the available skills list")
            if ability is not None:
                if actor.is_on_cooldown(ability.name):
                    errors.append(f"Skill {action.skill_id} is on cooldown")
                if not actor.can_afford(ability):
                    errors.append(
                        f"Not enough MP to cast {action.skill_id} "
                        f"(need {ability.mp_cost}, have {actor.current_stats.mp})"
                    )

        if not action.target_id:
            errors.append("No valid target found for action")

        return ActionValidation(valid=not errors, errors=errors)

    def validate_rules_configuration(self, rules: Sequence[Rule]) -> RulesValidation:
        """Design-time lint of a rule list.

        Unparsable conditions are errors.  Duplicate priorities, unknown
        target kinds, unknown action formats and the absence of an
        ``always`` rule are warnings.
        """
        errors: list[RuleIssue] = []
        warnings: list[RuleIssue] = []
        by_priority: dict[int, list[Rule]] = {}

        for rule in rules:
            check = validate_condition_syntax(rule.condition)
            if not check.valid:
                errors.append(RuleIssue(rule, check.error or "Invalid condition"))
            if not is_valid_target_kind(rule.target):
                warnings.append(RuleIssue(rule, f"Unknown target type: {rule.target}"))
            if parse_action(rule.action) is None:
                warnings.append(RuleIssue(rule, f"Unknown action format: {rule.action}"))
            by_priority.setdefault(rule.priority, []).append(rule)

        for priority, group in by_priority.items():
            if len(group) > 1:
                for rule in group:
                    warnings.append(RuleIssue(
                        rule,
                        f"Multiple rules with priority {priority}; "
                        "they are evaluated in declaration order",
                    ))

        if not any(rule.condition.strip().lower() == "always" for rule in rules):
            warnings.append(RuleIssue(
                rules[0] if rules else None,
                'No fallback rule with condition "always"; '
                "a basic attack is used when nothing matches",
            ))

        return RulesValidation(valid=not errors, errors=errors, warnings=warnings)

    def debug_action_resolution(
        self,
        actor: Participant,
        allies: Sequence[Participant],
        enemies: Sequence[Participant],
        turn_number: int = 1,
    ) -> ActionResolutionDebug:
        context = self._evaluator.create_context(actor, allies, enemies, turn_number)
        return ActionResolutionDebug(
            context=context,
            rule_evaluations=self._evaluator.get_matching_rules(actor.rules, context),
            selected_rule=self._evaluator.evaluate_rules(actor.rules, context),
            resolved_action=self.resolve_action(actor, allies, enemies, turn_number),
        )

    def get_all_possible_targets(
        self,
        actor: Participant,
        allies: Sequence[Participant],
        enemies: Sequence[Participant],
    ) -> dict[str, Participant | None]:
        """Resolve every target kind once, for inspection."""
        return {
            kind.value: select_target(kind, actor, allies, enemies, self._rng).target
            for kind in TargetKind
        }
