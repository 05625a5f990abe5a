"""Tests for target kinds and target selection."""

import pytest

from autobattle.ir.abilities import AbilityKind
from autobattle.sim.core.rng import CombatRNG
from autobattle.sim.targeting import (
    TargetKind,
    all_valid_targets,
    describe_target,
    is_valid_target_kind,
    parse_target_kind,
    select_target,
    suggest_optimal_target,
)
from tests.sim.conftest import make_enemy, make_participant


def _roster():
    hero = make_participant("hero", hp=80, max_hp=100, mp=10)
    cleric = make_participant("cleric", hp=30, max_hp=90, mp=60)
    tank = make_participant("knight", hp=120, max_hp=150, mp=5)
    enemies = [
        make_enemy("slime", hp=20, max_hp=30),
        make_enemy("orc", hp=70, max_hp=70),
        make_enemy("goblin", hp=40, max_hp=45),
    ]
    return hero, [hero, cleric, tank], enemies


class TestTargetKinds:
    def test_parse_exact_and_case_insensitive(self):
        assert parse_target_kind("weakestEnemy") is TargetKind.WEAKEST_ENEMY
        assert parse_target_kind("LOWESTHPALLY") is TargetKind.LOWEST_HP_ALLY
        assert parse_target_kind(" self ") is TargetKind.SELF
        assert parse_target_kind("everyone") is None

    def test_validity_and_listing(self):
        assert is_valid_target_kind("bossEnemy")
        assert not is_valid_target_kind("nearestEnemy")
        assert len(all_valid_targets()) == len(TargetKind)
        assert "highestMpAlly" in all_valid_targets()

    def test_describe(self):
        assert "boss" in describe_target("bossEnemy").lower()
        assert describe_target("nope") == "Unknown target type: nope"


class TestSelectTarget:
    @pytest.mark.parametrize(
        "kind, expected",
        [
            ("self", "hero"),
            ("weakestEnemy", "slime"),
            ("lowestHpEnemy", "slime"),
            ("strongestEnemy", "orc"),
            ("lowestHpAlly", "cleric"),
            ("strongestAlly", "knight"),
            ("highestMpAlly", "cleric"),
        ],
    )
    def test_deterministic_kinds(self, kind, expected, rng):
        hero, allies, enemies = _roster()
        selection = select_target(kind, hero, allies, enemies, rng)
        assert selection.target.id == expected

    def test_random_kinds_stay_in_pool(self):
        hero, allies, enemies = _roster()
        rng = CombatRNG(3)
        for _ in range(20):
            assert select_target("randomEnemy", hero, allies, enemies, rng).target in enemies
            assert select_target("randomAlly", hero, allies, enemies, rng).target in allies

    def test_dead_participants_skipped(self, rng):
        hero, allies, enemies = _roster()
        enemies[0].take_damage(999)
        selection = select_target("weakestEnemy", hero, allies, enemies, rng)
        assert selection.target.id == "goblin"
        assert enemies[0] not in selection.alternatives

    def test_ally_pool_includes_actor(self, rng):
        hero = make_participant("hero", hp=10, max_hp=100)
        other = make_participant("other", hp=90, max_hp=100)
        selection = select_target("lowestHpAlly", hero, [other], [], rng)
        assert selection.target is hero

    def test_boss_preferred(self, rng):
        hero, allies, _ = _roster()
        king = make_enemy("king", hp=50, max_hp=300, is_boss=True)
        enemies = [make_enemy("orc", hp=70), king]
        selection = select_target("bossEnemy", hero, allies, enemies, rng)
        assert selection.target is king
        assert selection.reason == "Boss enemy"

    def test_boss_fallback_to_strongest(self, rng):
        hero, allies, enemies = _roster()
        selection = select_target("bossEnemy", hero, allies, enemies, rng)
        assert selection.target.id == "orc"
        assert selection.reason == "No boss present, targeting the strongest enemy"

    def test_empty_pools(self, rng):
        hero = make_participant("hero")
        no_enemies = select_target("randomEnemy", hero, [hero], [], rng)
        assert no_enemies.target is None
        assert no_enemies.reason == "No living enemies"

        dead_hero = make_participant("hero", hp=0, max_hp=10)
        no_allies = select_target("randomAlly", dead_hero, [dead_hero], [], rng)
        assert no_allies.target is None
        assert no_allies.reason == "No living allies"

    def test_unknown_kind(self, rng):
        hero, allies, enemies = _roster()
        selection = select_target("nearestEnemy", hero, allies, enemies, rng)
        assert selection.target is None
        assert selection.reason == "Unknown target type: nearestEnemy"


class TestSuggestOptimalTarget:
    def test_attack_prefers_living_boss(self):
        assert suggest_optimal_target(AbilityKind.ATTACK) is TargetKind.WEAKEST_ENEMY
        boss = make_enemy("king", is_boss=True)
        assert suggest_optimal_target("attack", [boss]) is TargetKind.BOSS_ENEMY

    def test_other_purposes(self):
        assert suggest_optimal_target("heal") is TargetKind.LOWEST_HP_ALLY
        assert suggest_optimal_target("buff") is TargetKind.STRONGEST_ALLY
        assert suggest_optimal_target("debuff") is TargetKind.STRONGEST_ENEMY
