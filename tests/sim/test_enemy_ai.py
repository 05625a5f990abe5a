"""Tests for the behaviour-pattern enemy AI."""

import pytest

from autobattle.ir.abilities import Ability, AbilityKind, DamageEffect
from autobattle.sim.core.actions import ActionKind
from autobattle.sim.core.rng import CombatRNG
from autobattle.sim.enemy_ai import (
    AdaptiveRule,
    BehaviorPattern,
    BehaviorType,
    EnemyAI,
    EnemyDecision,
    PatternModifier,
    default_behavior_patterns,
)
from autobattle.sim.targeting import TargetKind
from tests.sim.conftest import make_attack_skill, make_enemy, make_heal_skill, make_participant


def _skill(name: str, mp_cost: int = 0) -> Ability:
    return Ability(name=name, kind=AbilityKind.ATTACK, effect=DamageEffect(damage=10), mp_cost=mp_cost)


def _party(n: int = 2):
    hp_values = [90, 40, 70, 60]
    return [make_participant(f"hero{i}", hp=hp_values[i], max_hp=100) for i in range(n)]


def _decide(enemy, own_side=None, party=None, seed=5):
    ai = EnemyAI(CombatRNG(seed))
    own_side = own_side if own_side is not None else [enemy]
    party = party if party is not None else _party()
    return ai.make_decision(enemy, own_side, party)


class TestBehaviorType:
    @pytest.mark.parametrize(
        "type_, job, is_boss, expected",
        [
            ("Goblin", "warrior", False, BehaviorType.AGGRESSIVE),
            ("Dark Mage", "", False, BehaviorType.SUPPORT),
            ("Stone Guardian", "", False, BehaviorType.DEFENSIVE),
            ("Cleric Zombie", "", False, BehaviorType.HEALING),
            ("Slime", "", False, BehaviorType.ADAPTIVE),
            ("Slime", "warrior", True, BehaviorType.BOSS),
        ],
    )
    def test_archetype(self, type_, job, is_boss, expected):
        enemy = make_enemy("e", type=type_, job=job, is_boss=is_boss)
        assert EnemyAI.determine_behavior_type(enemy) is expected


class TestMakeDecision:
    def test_aggressive_hits_weakest(self):
        enemy = make_enemy("goblin", type="Goblin", job="warrior")
        decision = _decide(enemy)
        assert decision.action == ActionKind.ATTACK
        assert decision.target_id == "hero1"
        assert decision.target_kind == "weakestEnemy"
        assert decision.priority == 100
        assert decision.reasoning == "Using aggressive behavior: aggressive pattern"

    def test_aggressive_low_hp_turns_defensive(self):
        enemy = make_enemy(
            "goblin",
            type="Goblin",
            job="warrior",
            hp=20,
            max_hp=100,
            abilities=[_skill("Defensive Skill")],
        )
        decision = _decide(enemy)
        assert decision.action == ActionKind.CAST
        assert decision.skill_id == "defensive_skill"
        assert decision.target_id == "goblin"
        assert decision.target_kind == "self"

    def test_unaffordable_skill_degrades_to_attack(self):
        enemy = make_enemy(
            "goblin",
            type="Goblin",
            job="warrior",
            hp=20,
            max_hp=100,
            mp=0,
            abilities=[_skill("Defensive Skill", mp_cost=10)],
        )
        decision = _decide(enemy)
        assert decision.action == ActionKind.ATTACK
        assert decision.skill_id is None

    def test_healer_without_wounded_ally_falls_back(self):
        enemy = make_enemy("priest", type="Cleric")
        decision = _decide(enemy)
        assert decision.reasoning == "Fallback decision: No suitable behavior pattern found"
        assert decision.priority == 0
        assert decision.target_id in {"hero0", "hero1"}

    def test_healer_heals_wounded_ally(self):
        healer = make_enemy("priest", type="Cleric", abilities=[_skill("Healing Skill")])
        wounded = make_enemy("orc", hp=20, max_hp=100)
        decision = _decide(healer, own_side=[healer, wounded])
        assert decision.action == ActionKind.CAST
        assert decision.skill_id == "healing_skill"
        assert decision.target_id == "orc"

    def test_boss_targets_strongest(self):
        boss = make_enemy("king", is_boss=True, abilities=[_skill("Boss Special Attack")])
        decision = _decide(boss)
        assert decision.skill_id == "boss_special_attack"
        assert decision.target_id == "hero0"
        assert decision.priority == 120

    def test_boss_switches_to_aoe_against_large_party(self):
        boss = make_enemy(
            "king",
            is_boss=True,
            abilities=[_skill("Boss Special Attack"), _skill("AoE Damage")],
        )
        decision = _decide(boss, party=_party(4))
        assert decision.skill_id == "aoe_damage"
        assert decision.target_id == "hero0"

    def test_wounded_boss_has_no_pattern(self):
        boss = make_enemy("king", hp=50, max_hp=100, is_boss=True)
        decision = _decide(boss)
        assert decision.reasoning.startswith("Fallback decision")

    def test_adaptive_later_rule_wins(self):
        slime = make_enemy(
            "slime",
            type="Slime",
            abilities=[make_heal_skill(), _skill("Damage Skill")],
        )
        decision = _decide(slime)
        assert decision.skill_id == "damage_skill"
        assert decision.target_kind == "weakestEnemy"
        assert decision.target_id == "hero1"

    def test_no_living_opponents(self):
        dead = make_participant("hero", hp=0, max_hp=10)

        goblin = make_enemy("goblin", type="Goblin", job="warrior")
        decision = _decide(goblin, party=[dead])
        assert decision.target_id is None
        assert decision.reasoning == "Fallback decision: No suitable behavior pattern found"

        slime = make_enemy("slime", type="Slime")
        decision = _decide(slime, party=[dead])
        assert decision.target_id is None
        assert decision.reasoning == "Fallback decision: No valid target found"


class TestPatternCatalog:
    def test_default_catalog_is_fresh_copy(self):
        a = default_behavior_patterns()
        a[BehaviorType.AGGRESSIVE].clear()
        assert default_behavior_patterns()[BehaviorType.AGGRESSIVE]

    def test_add_and_set_patterns(self):
        ai = EnemyAI(CombatRNG(1))
        custom = BehaviorPattern(
            type=BehaviorType.AGGRESSIVE,
            priority=10,
            conditions=["always"],
            preferred_targets=[TargetKind.STRONGEST_ENEMY],
            preferred_actions=["attack"],
        )
        ai.set_behavior_patterns("aggressive", [custom])
        enemy = make_enemy("goblin", job="warrior")
        decision = ai.make_decision(enemy, [enemy], _party())
        assert decision.target_id == "hero0"

        better = custom.model_copy(update={
            "priority": 50,
            "preferred_targets": [TargetKind.WEAKEST_ENEMY],
        })
        ai.add_behavior_pattern(BehaviorType.AGGRESSIVE, better)
        assert len(ai.get_behavior_patterns("aggressive")) == 2
        assert ai.make_decision(enemy, [enemy], _party()).target_id == "hero1"

    def test_equal_scores_keep_first_pattern(self):
        first = BehaviorPattern(
            type=BehaviorType.ADAPTIVE,
            priority=10,
            conditions=["always"],
            preferred_targets=[TargetKind.STRONGEST_ENEMY],
            preferred_actions=["attack"],
        )
        second = first.model_copy(update={"preferred_targets": [TargetKind.WEAKEST_ENEMY]})
        ai = EnemyAI(CombatRNG(1), patterns={BehaviorType.ADAPTIVE: [first, second]})
        enemy = make_enemy("slime")
        assert ai.make_decision(enemy, [enemy], _party()).target_id == "hero0"

    def test_priority_bonus_can_promote_pattern(self):
        base = BehaviorPattern(
            type=BehaviorType.ADAPTIVE,
            priority=20,
            conditions=["always"],
            preferred_targets=[TargetKind.STRONGEST_ENEMY],
            preferred_actions=["attack"],
        )
        boosted = BehaviorPattern(
            type=BehaviorType.ADAPTIVE,
            priority=10,
            conditions=["always"],
            preferred_targets=[TargetKind.STRONGEST_ENEMY],
            preferred_actions=["attack"],
            adaptive_rules=[
                AdaptiveRule(
                    condition="turn > 2",
                    modifier=PatternModifier(
                        preferred_targets=[TargetKind.WEAKEST_ENEMY], priority_bonus=15,
                    ),
                ),
            ],
        )
        ai = EnemyAI(CombatRNG(1), patterns={BehaviorType.ADAPTIVE: [base, boosted]})
        enemy = make_enemy("slime")
        assert ai.make_decision(enemy, [enemy], _party(), turn_number=1).target_id == "hero0"
        late = ai.make_decision(enemy, [enemy], _party(), turn_number=3)
        assert late.target_id == "hero1"
        assert late.priority == 10


class TestDecisionConversion:
    def test_to_resolved_action(self):
        decision = EnemyDecision(
            action=ActionKind.CAST,
            skill_id="fireball",
            target_id="hero0",
            target_name="Hero0",
            target_kind="weakestEnemy",
            priority=100,
            reasoning="Using aggressive behavior: aggressive pattern",
        )
        action = decision.to_resolved_action()
        assert action.success
        assert action.rule.action == "cast:fireball"
        assert action.rule.target == "weakestEnemy"
        assert action.message == decision.reasoning

    def test_missing_target_is_unsuccessful(self):
        decision = EnemyDecision(action=ActionKind.ATTACK, reasoning="Fallback decision: none")
        assert not decision.to_resolved_action().success


class TestPartyComposition:
    def test_analyze(self):
        healer = make_participant("cleric", abilities=[make_heal_skill()])
        tank = make_participant("knight", strength=5, defense=12)
        dps = make_participant("rogue", strength=14, defense=4, abilities=[make_attack_skill()])
        dead = make_participant("fallen", hp=0, max_hp=10)
        comp = EnemyAI.analyze_party_composition([healer, tank, dps, dead])
        assert comp.has_healer and comp.healer is healer
        assert comp.has_tank and comp.tank is tank
        assert comp.has_dps and comp.dps == [dps]
