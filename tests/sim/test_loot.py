"""Tests for table-driven loot generation."""

import logging

import pytest

from autobattle.sim.collaborators import LootSystem
from autobattle.sim.core.rng import CombatRNG
from autobattle.sim.loot import (
    DEFAULT_EXPERIENCE,
    ItemType,
    LootDrop,
    LootItem,
    LootTable,
    TableLootSystem,
)
from tests.sim.conftest import make_enemy


def _slime(pid="slime", type="Slime"):
    return make_enemy(pid, type=type, hp=0, max_hp=30)


class TestLootModels:
    def test_drop_quantity_validation(self):
        with pytest.raises(ValueError):
            LootDrop(item_id="x", min_quantity=3, max_quantity=1)

    def test_drop_rate_bounds(self):
        with pytest.raises(ValueError):
            LootDrop(item_id="x", drop_rate=1.5)

    def test_default_catalog(self):
        system = TableLootSystem(CombatRNG(1))
        assert system.get_loot_table("Orc").gold_max == 35
        assert "health_potion" in system.get_available_items()
        assert system.get_loot_table("Dragon") is None

    def test_satisfies_protocol(self):
        assert isinstance(TableLootSystem(CombatRNG(1)), LootSystem)


class TestGenerateLoot:
    def test_known_enemy_ranges(self):
        system = TableLootSystem(CombatRNG(7))
        for _ in range(50):
            loot = system.generate_loot_for_enemy(_slime())
            assert 5 <= loot.gold <= 15
            assert loot.experience == 10
            assert loot.source == "Slime"
            for stack in loot.items:
                assert stack.item_id in {"slime_gel", "health_potion"}
                assert 1 <= stack.quantity <= 2

    def test_unknown_enemy_gets_default(self):
        system = TableLootSystem(CombatRNG(7))
        loot = system.generate_loot_for_enemy(_slime(type="Dragon"))
        assert 5 <= loot.gold <= 24
        assert loot.experience == DEFAULT_EXPERIENCE
        assert loot.items == []

    def test_guaranteed_and_impossible_drops(self):
        table = LootTable(
            enemy_type="Chest",
            gold_min=10,
            gold_max=10,
            guaranteed_drops=[LootDrop(item_id="key", min_quantity=2, max_quantity=2)],
            random_drops=[LootDrop(item_id="gem", drop_rate=0.0)],
        )
        items = [
            LootItem(id="key", name="Key", type=ItemType.MATERIAL, value=5),
            LootItem(id="gem", name="Gem", type=ItemType.MATERIAL, value=500),
        ]
        system = TableLootSystem(CombatRNG(1), tables=[table], items=items)
        loot = system.generate_loot_for_enemy(_slime(type="Chest"))
        assert loot.gold == 10
        assert [(s.item_id, s.quantity) for s in loot.items] == [("key", 2)]
        assert TableLootSystem.calculate_loot_value(loot) == 20

    def test_unknown_item_warns(self, caplog):
        table = LootTable(enemy_type="Slime", guaranteed_drops=[LootDrop(item_id="ghost")])
        system = TableLootSystem(CombatRNG(1), tables=[table], items=[])
        with caplog.at_level(logging.WARNING, logger="autobattle.sim.loot"):
            loot = system.generate_loot_for_enemy(_slime())
        assert loot.items == []
        assert "unknown item" in caplog.text

    def test_battle_loot_totals(self):
        system = TableLootSystem(CombatRNG(11))
        defeated = [_slime("a"), _slime("b"), make_enemy("orc", type="Orc", hp=0, max_hp=10)]
        loot = system.generate_battle_loot(defeated)
        assert len(loot.loot_by_enemy) == 3
        assert loot.total_gold == sum(e.gold for e in loot.loot_by_enemy)
        assert loot.total_experience == 10 + 10 + 25
        assert len(loot.items) == sum(len(e.items) for e in loot.loot_by_enemy)

    def test_same_seed_same_loot(self):
        a = TableLootSystem(CombatRNG(5)).generate_battle_loot([_slime()])
        b = TableLootSystem(CombatRNG(5)).generate_battle_loot([_slime()])
        assert a == b

    def test_add_table_overrides(self):
        system = TableLootSystem(CombatRNG(1))
        system.add_loot_table(LootTable(enemy_type="Slime", gold_min=99, gold_max=99))
        assert system.generate_loot_for_enemy(_slime()).gold == 99
