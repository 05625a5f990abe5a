"""Table-driven loot generation for defeated enemies.

Each enemy type maps to a :class:`LootTable`: a gold range, a fixed
experience reward, guaranteed drops and independently rolled random drops.
Enemy types without a table still pay out a small default.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Sequence

from pydantic import BaseModel, Field, model_validator

from autobattle.ir.stats import StatName
from autobattle.sim.core.battle_state import BattleLoot, EnemyLoot, ItemStack
from autobattle.sim.core.entities import Participant
from autobattle.sim.core.rng import CombatRNG

logger = logging.getLogger(__name__)

DEFAULT_GOLD_MIN = 5
DEFAULT_GOLD_MAX = 24
DEFAULT_EXPERIENCE = 10


class ItemType(str, Enum):
    CONSUMABLE = "consumable"
    MATERIAL = "material"
    WEAPON = "weapon"
    ARMOR = "armor"


class ItemRarity(str, Enum):
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"


class LootItem(BaseModel):
    id: str
    name: str
    type: ItemType
    rarity: ItemRarity = ItemRarity.COMMON
    value: int = Field(default=0, ge=0)
    description: str = ""
    stat_modifier: dict[StatName, int] = Field(default_factory=dict)


class LootDrop(BaseModel):
    item_id: str
    drop_rate: float = Field(default=1.0, ge=0.0, le=1.0)
    min_quantity: int = Field(default=1, ge=1)
    max_quantity: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def _check_quantities(self) -> LootDrop:
        if self.max_quantity < self.min_quantity:
            raise ValueError(
                f"max_quantity ({self.max_quantity}) < min_quantity ({self.min_quantity})"
            )
        return self


class LootTable(BaseModel):
    enemy_type: str
    guaranteed_drops: list[LootDrop] = Field(default_factory=list)
    random_drops: list[LootDrop] = Field(default_factory=list)
    gold_min: int = Field(default=0, ge=0)
    gold_max: int = Field(default=0, ge=0)
    experience: int = Field(default=0, ge=0)


def default_loot_items() -> list[LootItem]:
    return [
        LootItem(id="health_potion", name="Health Potion", type=ItemType.CONSUMABLE,
                 value=50, description="Restores 50 HP"),
        LootItem(id="mana_potion", name="Mana Potion", type=ItemType.CONSUMABLE,
                 value=40, description="Restores 30 MP"),
        LootItem(id="greater_health_potion", name="Greater Health Potion",
                 type=ItemType.CONSUMABLE, rarity=ItemRarity.UNCOMMON, value=120,
                 description="Restores 120 HP"),
        LootItem(id="slime_gel", name="Slime Gel", type=ItemType.MATERIAL, value=10),
        LootItem(id="goblin_tooth", name="Goblin Tooth", type=ItemType.MATERIAL, value=15),
        LootItem(id="orc_tusk", name="Orc Tusk", type=ItemType.MATERIAL,
                 rarity=ItemRarity.UNCOMMON, value=35),
        LootItem(id="dark_crystal", name="Dark Crystal", type=ItemType.MATERIAL,
                 rarity=ItemRarity.RARE, value=100),
        LootItem(id="rusty_sword", name="Rusty Sword", type=ItemType.WEAPON, value=75,
                 stat_modifier={StatName.STR: 2}),
        LootItem(id="bone_staff", name="Bone Staff", type=ItemType.WEAPON,
                 rarity=ItemRarity.UNCOMMON, value=150, stat_modifier={StatName.MAG: 3}),
        LootItem(id="leather_armor", name="Leather Armor", type=ItemType.ARMOR, value=80,
                 stat_modifier={StatName.DEF: 3}),
        LootItem(id="chain_mail", name="Chain Mail", type=ItemType.ARMOR,
                 rarity=ItemRarity.UNCOMMON, value=200, stat_modifier={StatName.DEF: 5}),
    ]


def default_loot_tables() -> list[LootTable]:
    return [
        LootTable(
            enemy_type="Slime", gold_min=5, gold_max=15, experience=10,
            random_drops=[
                LootDrop(item_id="slime_gel", drop_rate=0.8, max_quantity=2),
                LootDrop(item_id="health_potion", drop_rate=0.3),
            ],
        ),
        LootTable(
            enemy_type="Goblin", gold_min=8, gold_max=20, experience=15,
            random_drops=[
                LootDrop(item_id="goblin_tooth", drop_rate=0.6, max_quantity=3),
                LootDrop(item_id="health_potion", drop_rate=0.4),
                LootDrop(item_id="rusty_sword", drop_rate=0.2),
            ],
        ),
        LootTable(
            enemy_type="Orc", gold_min=15, gold_max=35, experience=25,
            random_drops=[
                LootDrop(item_id="orc_tusk", drop_rate=0.5, max_quantity=2),
                LootDrop(item_id="health_potion", drop_rate=0.3),
                LootDrop(item_id="mana_potion", drop_rate=0.2),
                LootDrop(item_id="chain_mail", drop_rate=0.1),
            ],
        ),
        LootTable(
            enemy_type="DarkMage", gold_min=20, gold_max=45, experience=30,
            random_drops=[
                LootDrop(item_id="dark_crystal", drop_rate=0.4),
                LootDrop(item_id="mana_potion", drop_rate=0.5, max_quantity=2),
                LootDrop(item_id="bone_staff", drop_rate=0.15),
            ],
        ),
        LootTable(
            enemy_type="Troll", gold_min=12, gold_max=28, experience=20,
            random_drops=[
                LootDrop(item_id="greater_health_potion", drop_rate=0.3),
                LootDrop(item_id="health_potion", drop_rate=0.6, max_quantity=2),
                LootDrop(item_id="leather_armor", drop_rate=0.25),
            ],
        ),
    ]


class TableLootSystem:
    """Rolls loot from per-enemy-type tables.

    Parameters
    ----------
    rng:
        Source for gold, drop and quantity rolls.
    tables, items:
        Catalog to start from; the built-in defaults when ``None``.
    """

    def __init__(
        self,
        rng: CombatRNG,
        tables: Sequence[LootTable] | None = None,
        items: Sequence[LootItem] | None = None,
    ) -> None:
        self._rng = rng
        self._tables: dict[str, LootTable] = {}
        self._items: dict[str, LootItem] = {}
        for table in default_loot_tables() if tables is None else tables:
            self.add_loot_table(table)
        for item in default_loot_items() if items is None else items:
            self.add_item(item)

    # -- catalog ---------------------------------------------------------------

    def add_loot_table(self, table: LootTable) -> None:
        self._tables[table.enemy_type] = table

    def add_item(self, item: LootItem) -> None:
        self._items[item.id] = item

    def get_loot_table(self, enemy_type: str) -> LootTable | None:
        return self._tables.get(enemy_type)

    def get_available_items(self) -> dict[str, LootItem]:
        return dict(self._items)

    # -- generation --------------------------------------------------------------

    def _roll_drop(self, drop: LootDrop, source: str) -> ItemStack | None:
        item = self._items.get(drop.item_id)
        if item is None:
            logger.warning("Loot table for %s references unknown item %r", source, drop.item_id)
            return None
        return ItemStack(
            item_id=item.id,
            name=item.name,
            quantity=self._rng.random_int(drop.min_quantity, drop.max_quantity),
            value=item.value,
            source=source,
        )

    def generate_loot_for_enemy(self, enemy: Participant) -> EnemyLoot:
        table = self._tables.get(enemy.type)
        if table is None:
            return EnemyLoot(
                source=enemy.name,
                gold=self._rng.random_int(DEFAULT_GOLD_MIN, DEFAULT_GOLD_MAX),
                experience=DEFAULT_EXPERIENCE,
            )

        loot = EnemyLoot(
            source=enemy.name,
            gold=self._rng.random_int(table.gold_min, max(table.gold_min, table.gold_max)),
            experience=table.experience,
        )
        for drop in table.guaranteed_drops:
            stack = self._roll_drop(drop, enemy.name)
            if stack is not None:
                loot.items.append(stack)
        for drop in table.random_drops:
            if self._rng.random_float() < drop.drop_rate:
                stack = self._roll_drop(drop, enemy.name)
                if stack is not None:
                    loot.items.append(stack)
        return loot

    def generate_battle_loot(self, defeated: Sequence[Participant]) -> BattleLoot:
        battle_loot = BattleLoot()
        for enemy in defeated:
            loot = self.generate_loot_for_enemy(enemy)
            battle_loot.total_gold += loot.gold
            battle_loot.total_experience += loot.experience
            battle_loot.items.extend(loot.items)
            battle_loot.loot_by_enemy.append(loot)
        return battle_loot

    @staticmethod
    def calculate_loot_value(loot: EnemyLoot | BattleLoot) -> int:
        """Gold plus the value of every item stack."""
        gold = loot.gold if isinstance(loot, EnemyLoot) else loot.total_gold
        return gold + sum(stack.value * stack.quantity for stack in loot.items)
