"""Tests for Participant, Buff bookkeeping and CombatRNG."""

import pytest

from autobattle.ir.stats import StatName, Stats
from autobattle.sim.core.entities import BuffKind, Participant
from autobattle.sim.core.rng import CombatRNG
from tests.sim.conftest import make_attack_skill, make_participant


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

class TestParticipantConstruction:
    def test_current_pools_clamped_to_max(self):
        p = Participant(
            id="p",
            name="P",
            current_stats=Stats(hp=150, mp=80),
            max_stats=Stats(hp=100, mp=40),
        )
        assert p.current_stats.hp == 100
        assert p.current_stats.mp == 40

    def test_short_stat_aliases_accepted(self):
        stats = Stats.model_validate({"hp": 10, "str": 4, "def": 3, "mag": 2, "spd": 1})
        assert stats.strength == 4
        assert stats.defense == 3
        assert stats.magic == 2
        assert stats.speed == 1

    def test_is_alive_follows_hp(self):
        p = make_participant(hp=10)
        assert p.is_alive
        p.take_damage(10)
        assert not p.is_alive
        p.restore_hp(5)
        assert p.is_alive

    def test_percentages_with_zero_max(self):
        p = make_participant(hp=0, max_hp=0, mp=0, max_mp=0)
        assert p.hp_percent == 0.0
        assert p.mp_percent == 0.0


# ---------------------------------------------------------------------------
# HP / MP mutators
# ---------------------------------------------------------------------------

class TestParticipantPools:
    def test_damage_capped_at_current_hp(self):
        p = make_participant(hp=5, max_hp=50)
        assert p.take_damage(20) == 5
        assert p.current_stats.hp == 0

    def test_negative_damage_ignored(self):
        p = make_participant(hp=50)
        assert p.take_damage(-5) == 0
        assert p.current_stats.hp == 50

    def test_heal_caps_at_max(self):
        p = make_participant(hp=40, max_hp=50)
        assert p.restore_hp(30) == 10
        assert p.current_stats.hp == 50

    def test_spend_mp_insufficient_raises(self):
        p = make_participant(mp=3)
        with pytest.raises(ValueError, match="cannot spend 5 MP"):
            p.spend_mp(5)
        assert p.current_stats.mp == 3

    def test_restore_mp_caps_at_max(self):
        p = make_participant(mp=10, max_mp=20)
        assert p.restore_mp(50) == 10
        assert p.current_stats.mp == 20


# ---------------------------------------------------------------------------
# Buffs
# ---------------------------------------------------------------------------

class TestBuffs:
    def test_buff_applies_and_reverts(self):
        p = make_participant(strength=10)
        p.add_buff("Rage", BuffKind.BUFF, {StatName.STR: 5}, duration=2)
        assert p.current_stats.strength == 15

        assert p.tick_buffs() == []
        assert p.current_stats.strength == 15

        expired = p.tick_buffs()
        assert [b.name for b in expired] == ["Rage"]
        assert p.current_stats.strength == 10
        assert p.buffs == []

    def test_clamped_debuff_reverts_only_applied_delta(self):
        p = make_participant(defense=3)
        buff = p.add_buff("Armor Break", BuffKind.DEBUFF, {StatName.DEF: -10}, duration=1)
        assert p.current_stats.defense == 0
        assert buff.applied[StatName.DEF] == -3

        p.tick_buffs()
        assert p.current_stats.defense == 3

    def test_hp_modifier_respects_max(self):
        p = make_participant(hp=90, max_hp=100)
        buff = p.add_buff("Vigor", BuffKind.BUFF, {StatName.HP: 30}, duration=1)
        assert p.current_stats.hp == 100
        assert buff.applied[StatName.HP] == 10

    def test_hp_debuff_can_kill(self):
        p = make_participant(hp=20)
        p.add_buff("Doom", BuffKind.DEBUFF, {StatName.HP: -50}, duration=3)
        assert p.current_stats.hp == 0
        assert not p.is_alive

    def test_revert_removes_only_that_buff(self):
        p = make_participant(strength=10)
        first = p.add_buff("Rage", BuffKind.BUFF, {StatName.STR: 2}, duration=3)
        p.add_buff("Rage", BuffKind.BUFF, {StatName.STR: 2}, duration=3)
        p.revert_buff(first)
        assert len(p.buffs) == 1
        assert p.current_stats.strength == 12

    def test_clear_buffs(self):
        p = make_participant(strength=10, speed=10)
        p.add_buff("Rage", BuffKind.BUFF, {StatName.STR: 4}, duration=3)
        p.add_buff("Slow", BuffKind.DEBUFF, {StatName.SPD: -4}, duration=3)
        p.clear_buffs()
        assert p.buffs == []
        assert p.current_stats.strength == 10
        assert p.current_stats.speed == 10


# ---------------------------------------------------------------------------
# Abilities and cooldowns
# ---------------------------------------------------------------------------

class TestAbilitiesAndCooldowns:
    def test_find_ability_by_normalized_id(self):
        p = make_participant(abilities=[make_attack_skill("Power Strike")])
        assert p.find_ability("power_strike") is not None
        assert p.find_ability("Power  Strike") is not None
        assert p.find_ability("fireball") is None

    def test_cooldown_lifecycle(self):
        skill = make_attack_skill("Power Strike", cooldown=2)
        p = make_participant(abilities=[skill])
        p.start_cooldown(skill)
        assert p.cooldown_remaining("Power Strike") == 2

        p.tick_cooldowns()
        assert p.is_on_cooldown("Power Strike")

        p.tick_cooldowns()
        assert not p.is_on_cooldown("Power Strike")
        assert p.skill_cooldowns == []

    def test_no_cooldown_for_uncooled_skill(self):
        skill = make_attack_skill("Jab", cooldown=None)
        p = make_participant(abilities=[skill])
        p.start_cooldown(skill)
        assert p.skill_cooldowns == []

    def test_combinations_require_all_skills(self):
        combo = make_attack_skill("Meteor", combinations=["fireball", "ice_shard"])
        p = make_participant(abilities=[combo, make_attack_skill("Fireball")])
        assert not p.has_combinations_for(combo)
        p.abilities.append(make_attack_skill("Ice Shard"))
        assert p.has_combinations_for(combo)


# ---------------------------------------------------------------------------
# CombatRNG
# ---------------------------------------------------------------------------

class TestCombatRNG:
    def test_same_seed_same_sequence(self):
        a, b = CombatRNG(7), CombatRNG(7)
        assert [a.random_int(0, 100) for _ in range(10)] == [b.random_int(0, 100) for _ in range(10)]

    def test_fork_is_stable_and_distinct(self):
        master = CombatRNG(7)
        assert master.fork("loot").seed == CombatRNG(7).fork("loot").seed
        assert master.fork("loot").seed != master.fork("initiative").seed

    def test_jitter_range(self):
        rng = CombatRNG(1)
        values = {rng.jitter(5) for _ in range(200)}
        assert values == {0, 1, 2, 3, 4}
        assert rng.jitter(1) == 0
