"""Condition DSL -- parse authored condition strings once, evaluate many times.

Grammar (case-insensitive, surrounding whitespace ignored)::

    always
    enemy.isBoss
    party.hasHealer | party.hasTank | party.hasDps
    (ally|self|enemy).hp (<|>) N%
    self.mp > N%
    (enemy|ally).count > N
    turn > N
    self.hp < N
    self.mp > N

``ally`` and ``enemy`` subjects mean "any living member of that side".
Anything else parses to :class:`UnknownCondition`, which evaluates to
``False`` with a warning: authored content must never crash a battle.

Usage::

    evaluator = ConditionEvaluator()
    ctx = evaluator.create_context(actor, allies, enemies, turn_number=3)
    evaluator.evaluate_condition("ally.hp < 30%", ctx)
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Any, Callable, Sequence, Union

from autobattle.errors import ValidationError
from autobattle.ir.abilities import AbilityKind
from autobattle.ir.rules import Rule
from autobattle.sim.core.entities import Participant

logger = logging.getLogger(__name__)

_HEALER_KEYWORDS = ("heal", "cure", "regeneration")
_DPS_KEYWORDS = ("strike", "blast", "bolt", "slash")
_TANK_DEF_TO_STR_RATIO = 1.2


# ---------------------------------------------------------------------------
# AST
# ---------------------------------------------------------------------------

class Subject(str, Enum):
    SELF = "self"
    ALLY = "ally"
    ENEMY = "enemy"


class Comparator(str, Enum):
    LESS = "<"
    GREATER = ">"

    def compare(self, left: float, right: float) -> bool:
        if self is Comparator.LESS:
            return left < right
        return left > right


class PartyRole(str, Enum):
    HEALER = "healer"
    TANK = "tank"
    DPS = "dps"


@dataclass(frozen=True)
class Always:
    pass


@dataclass(frozen=True)
class BossPresent:
    pass


@dataclass(frozen=True)
class PartyHas:
    role: PartyRole


@dataclass(frozen=True)
class HpPercent:
    subject: Subject
    comparator: Comparator
    percent: int


@dataclass(frozen=True)
class SelfMpPercentAbove:
    percent: int


@dataclass(frozen=True)
class CountAbove:
    subject: Subject
    count: int


@dataclass(frozen=True)
class TurnAbove:
    turn: int


@dataclass(frozen=True)
class SelfHpBelow:
    threshold: int


@dataclass(frozen=True)
class SelfMpAbove:
    threshold: int


@dataclass(frozen=True)
class UnknownCondition:
    text: str


Condition = Union[
    Always,
    BossPresent,
    PartyHas,
    HpPercent,
    SelfMpPercentAbove,
    CountAbove,
    TurnAbove,
    SelfHpBelow,
    SelfMpAbove,
    UnknownCondition,
]


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

_KEYWORDS: dict[str, Condition] = {
    "always": Always(),
    "enemy.isboss": BossPresent(),
    "party.hashealer": PartyHas(PartyRole.HEALER),
    "party.hastank": PartyHas(PartyRole.TANK),
    "party.hasdps": PartyHas(PartyRole.DPS),
}

_PATTERNS: list[tuple[re.Pattern[str], Callable[[re.Match[str]], Condition]]] = [
    (
        re.compile(r"^(ally|self|enemy)\.hp\s*([<>])\s*(\d+)%$"),
        lambda m: HpPercent(Subject(m.group(1)), Comparator(m.group(2)), int(m.group(3))),
    ),
    (
        re.compile(r"^self\.mp\s*>\s*(\d+)%$"),
        lambda m: SelfMpPercentAbove(int(m.group(1))),
    ),
    (
        re.compile(r"^(enemy|ally)\.count\s*>\s*(\d+)$"),
        lambda m: CountAbove(Subject(m.group(1)), int(m.group(2))),
    ),
    (
        re.compile(r"^turn\s*>\s*(\d+)$"),
        lambda m: TurnAbove(int(m.group(1))),
    ),
    (
        re.compile(r"^self\.hp\s*<\s*(\d+)$"),
        lambda m: SelfHpBelow(int(m.group(1))),
    ),
    (
        re.compile(r"^self\.mp\s*>\s*(\d+)$"),
        lambda m: SelfMpAbove(int(m.group(1))),
    ),
]

SUPPORTED_CONDITIONS: tuple[str, ...] = (
    "always",
    "enemy.isBoss",
    "ally.hp < X%",
    "self.hp < X%",
    "enemy.hp < X%",
    "ally.hp > X%",
    "self.hp > X%",
    "enemy.hp > X%",
    "self.mp > X%",
    "enemy.count > X",
    "ally.count > X",
    "turn > X",
    "self.hp < X",
    "self.mp > X",
    "party.hasHealer",
    "party.hasTank",
    "party.hasDps",
)


@lru_cache(maxsize=1024)
def parse_condition(condition: str) -> Condition:
    """Parse *condition* into its AST node.  Never raises."""
    text = condition.strip().lower()
    keyword = _KEYWORDS.get(text)
    if keyword is not None:
        return keyword
    for pattern, build in _PATTERNS:
        match = pattern.match(text)
        if match:
            return build(match)
    return UnknownCondition(condition)


@dataclass(frozen=True)
class ConditionValidation:
    valid: bool
    error: str | None = None


def validate_condition_syntax(condition: str) -> ConditionValidation:
    """Design-time check that *condition* belongs to the grammar."""
    if not isinstance(parse_condition(condition), UnknownCondition):
        return ConditionValidation(valid=True)
    return ConditionValidation(
        valid=False,
        error=(
            f"Invalid condition syntax: {condition}. Valid patterns: "
            + ", ".join(SUPPORTED_CONDITIONS)
        ),
    )


# ---------------------------------------------------------------------------
# Evaluation context
# ---------------------------------------------------------------------------

@dataclass
class ConditionContext:
    """Snapshot of the battle from one actor's point of view.

    ``allies`` is the actor's own side (the actor included); ``enemies`` is
    the opposing side.
    """

    actor: Participant
    allies: list[Participant]
    enemies: list[Participant]
    living_allies: list[Participant] = field(default_factory=list)
    living_enemies: list[Participant] = field(default_factory=list)
    turn_number: int = 1


@dataclass
class RuleDebug:
    rule: Rule
    evaluation: bool
    snapshot: dict[str, Any]


def _percent(current: int, maximum: int) -> float | None:
    if maximum <= 0:
        return None
    return current / maximum * 100


def _hp_matches(participant: Participant, comparator: Comparator, percent: int) -> bool:
    value = _percent(participant.current_stats.hp, participant.max_stats.hp)
    return value is not None and comparator.compare(value, percent)


def _is_healer(participant: Participant) -> bool:
    return any(
        ability.kind == AbilityKind.HEAL
        or any(word in ability.name.lower() for word in _HEALER_KEYWORDS)
        for ability in participant.abilities
    )


def _is_tank(participant: Participant) -> bool:
    strength = participant.current_stats.strength
    defense = participant.current_stats.defense
    if strength == 0:
        return defense > 0
    return defense / strength > _TANK_DEF_TO_STR_RATIO


def _is_dps(participant: Participant) -> bool:
    return any(
        ability.kind == AbilityKind.ATTACK
        or any(word in ability.name.lower() for word in _DPS_KEYWORDS)
        for ability in participant.abilities
    )


_ROLE_CHECKS: dict[PartyRole, Callable[[Participant], bool]] = {
    PartyRole.HEALER: _is_healer,
    PartyRole.TANK: _is_tank,
    PartyRole.DPS: _is_dps,
}


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------

class ConditionEvaluator:
    """Evaluates condition strings and rule lists against a context.

    The evaluator is stateless; parsed conditions are cached module-wide by
    :func:`parse_condition`.
    """

    def create_context(
        self,
        actor: Participant,
        allies: Sequence[Participant],
        enemies: Sequence[Participant],
        turn_number: int = 1,
    ) -> ConditionContext:
        """Build a context, filtering the living subsets.

        Raises
        ------
        ValidationError
            If *actor* is not a :class:`Participant`.
        """
        if not isinstance(actor, Participant):
            raise ValidationError(
                f"Condition actor must be a Participant, got {type(actor).__name__}",
                {"actor": repr(actor)},
            )
        allies = list(allies)
        enemies = list(enemies)
        return ConditionContext(
            actor=actor,
            allies=allies,
            enemies=enemies,
            living_allies=[a for a in allies if a.is_alive],
            living_enemies=[e for e in enemies if e.is_alive],
            turn_number=turn_number,
        )

    def evaluate_condition(self, condition: str, context: ConditionContext) -> bool:
        return self.evaluate(parse_condition(condition), context)

    def evaluate(self, node: Condition, context: ConditionContext) -> bool:
        handler = _DISPATCH.get(type(node))
        if handler is None:
            logger.warning("No evaluator for condition node %r", node)
            return False
        return handler(self, node, context)

    def evaluate_rules(self, rules: Sequence[Rule], context: ConditionContext) -> Rule | None:
        """Return the highest-priority rule whose condition holds.

        ``sorted`` is stable, so equal priorities keep declaration order.
        """
        for rule in sorted(rules, key=lambda r: -r.priority):
            if self.evaluate_condition(rule.condition, context):
                return rule
        return None

    def get_matching_rules(
        self,
        rules: Sequence[Rule],
        context: ConditionContext,
    ) -> list[tuple[Rule, bool]]:
        """Evaluate every rule, in declaration order."""
        return [(rule, self.evaluate_condition(rule.condition, context)) for rule in rules]

    def validate_condition_syntax(self, condition: str) -> ConditionValidation:
        return validate_condition_syntax(condition)

    def list_supported_conditions(self) -> list[str]:
        return list(SUPPORTED_CONDITIONS)

    def debug_rule(self, rule: Rule, context: ConditionContext) -> RuleDebug:
        actor = context.actor
        return RuleDebug(
            rule=rule,
            evaluation=self.evaluate_condition(rule.condition, context),
            snapshot={
                "actor_hp": round(actor.hp_percent),
                "actor_mp": round(actor.mp_percent),
                "living_allies": len(context.living_allies),
                "living_enemies": len(context.living_enemies),
                "has_boss": any(e.is_boss for e in context.living_enemies),
                "turn": context.turn_number,
            },
        )

    # ------------------------------------------------------------------
    # Node handlers
    # ------------------------------------------------------------------

    def _eval_always(self, node: Always, ctx: ConditionContext) -> bool:
        return True

    def _eval_boss_present(self, node: BossPresent, ctx: ConditionContext) -> bool:
        return any(enemy.is_boss for enemy in ctx.living_enemies)

    def _eval_party_has(self, node: PartyHas, ctx: ConditionContext) -> bool:
        check = _ROLE_CHECKS[node.role]
        return any(check(ally) for ally in ctx.living_allies)

    def _eval_hp_percent(self, node: HpPercent, ctx: ConditionContext) -> bool:
        if node.subject is Subject.SELF:
            return _hp_matches(ctx.actor, node.comparator, node.percent)
        pool = ctx.living_allies if node.subject is Subject.ALLY else ctx.living_enemies
        return any(_hp_matches(p, node.comparator, node.percent) for p in pool)

    def _eval_self_mp_percent(self, node: SelfMpPercentAbove, ctx: ConditionContext) -> bool:
        value = _percent(ctx.actor.current_stats.mp, ctx.actor.max_stats.mp)
        return value is not None and value > node.percent

    def _eval_count_above(self, node: CountAbove, ctx: ConditionContext) -> bool:
        pool = ctx.living_allies if node.subject is Subject.ALLY else ctx.living_enemies
        return len(pool) > node.count

    def _eval_turn_above(self, node: TurnAbove, ctx: ConditionContext) -> bool:
        return ctx.turn_number > node.turn

    def _eval_self_hp_below(self, node: SelfHpBelow, ctx: ConditionContext) -> bool:
        return ctx.actor.current_stats.hp < node.threshold

    def _eval_self_mp_above(self, node: SelfMpAbove, ctx: ConditionContext) -> bool:
        return ctx.actor.current_stats.mp > node.threshold

    def _eval_unknown(self, node: UnknownCondition, ctx: ConditionContext) -> bool:
        logger.warning("Unknown condition %r, evaluating to False", node.text)
        return False


_DISPATCH: dict[type, Callable[[ConditionEvaluator, Any, ConditionContext], bool]] = {
    Always: ConditionEvaluator._eval_always,
    BossPresent: ConditionEvaluator._eval_boss_present,
    PartyHas: ConditionEvaluator._eval_party_has,
    HpPercent: ConditionEvaluator._eval_hp_percent,
    SelfMpPercentAbove: ConditionEvaluator._eval_self_mp_percent,
    CountAbove: ConditionEvaluator._eval_count_above,
    TurnAbove: ConditionEvaluator._eval_turn_above,
    SelfHpBelow: ConditionEvaluator._eval_self_hp_below,
    SelfMpAbove: ConditionEvaluator._eval_self_mp_above,
    UnknownCondition: ConditionEvaluator._eval_unknown,
}
