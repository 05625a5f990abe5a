"""Combat statistics shared by characters, enemies and stat modifiers."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class StatName(str, Enum):
    """Keys used in authored stat-modifier maps."""

    HP = "hp"
    MP = "mp"
    STR = "str"
    DEF = "def"
    MAG = "mag"
    SPD = "spd"

    @property
    def field_name(self) -> str:
        """Attribute name of this stat on :class:`Stats`."""
        return _FIELD_NAMES[self]


_FIELD_NAMES: dict[StatName, str] = {
    StatName.HP: "hp",
    StatName.MP: "mp",
    StatName.STR: "strength",
    StatName.DEF: "defense",
    StatName.MAG: "magic",
    StatName.SPD: "speed",
}


class Stats(BaseModel):
    """The six combat stats.  All values are non-negative integers.

    Authored content uses the short names (``str``, ``def``, ``mag``,
    ``spd``); Python code uses the long attribute names.
    """

    hp: int = Field(default=0, ge=0)
    mp: int = Field(default=0, ge=0)
    strength: int = Field(default=0, ge=0, alias="str")
    defense: int = Field(default=0, ge=0, alias="def")
    magic: int = Field(default=0, ge=0, alias="mag")
    speed: int = Field(default=0, ge=0, alias="spd")

    model_config = {"populate_by_name": True}

    def get(self, stat: StatName) -> int:
        return getattr(self, stat.field_name)

    def set(self, stat: StatName, value: int) -> None:
        setattr(self, stat.field_name, value)

    def scaled(self, multiplier: float) -> Stats:
        """Return a copy with every stat multiplied and floored."""
        return Stats(**{
            name: int(getattr(self, name) * multiplier)
            for name in _FIELD_NAMES.values()
        })
