"""Authored combat rules -- ``condition -> target -> action`` triples."""

from __future__ import annotations

from pydantic import BaseModel, Field

FALLBACK_CONDITION = "fallback"


class Rule(BaseModel):
    """A single prioritized behaviour rule.

    Rules are evaluated in descending ``priority``; rules sharing a priority
    keep their declaration order.
    """

    priority: int = Field(ge=0)
    """Higher fires first."""

    condition: str
    """Condition DSL string, e.g. ``"ally.hp < 30%"`` or ``"always"``."""

    target: str
    """Target kind, e.g. ``"weakestEnemy"`` or ``"self"``."""

    action: str
    """Either ``"attack"`` or ``"cast:<skill_id>"``."""

    model_config = {"frozen": True}

    @classmethod
    def fallback(cls) -> Rule:
        """The rule used when no authored rule matches."""
        return cls(
            priority=0,
            condition=FALLBACK_CONDITION,
            target="randomEnemy",
            action="attack",
        )
