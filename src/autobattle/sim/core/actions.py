"""The resolved-action value object shared by both decision sources.

``ActionResolver`` (authored rules) and ``EnemyAI`` (behaviour patterns)
both produce a :class:`ResolvedAction`, so the battle system executes them
the same way.
"""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel

from autobattle.ir.abilities import skill_id_for
from autobattle.ir.rules import Rule

_CAST_PATTERN = re.compile(r"^cast:(.+)$", re.IGNORECASE)


class ActionKind(str, Enum):
    ATTACK = "attack"
    CAST = "cast"


class ParsedAction(BaseModel):
    """An action string split into its verb and optional skill id."""

    kind: ActionKind
    skill_id: str | None = None

    model_config = {"frozen": True}


def parse_action(action: str) -> ParsedAction | None:
    """Parse ``"attack"`` or ``"cast:<skill_id>"``.

    Returns ``None`` for anything else; callers decide how to degrade.
    """
    text = action.strip()
    if text.lower() == "attack":
        return ParsedAction(kind=ActionKind.ATTACK)
    match = _CAST_PATTERN.match(text)
    if match and match.group(1).strip():
        return ParsedAction(kind=ActionKind.CAST, skill_id=skill_id_for(match.group(1)))
    return None


class ResolvedAction(BaseModel):
    """What a participant will do this turn, and at whom."""

    rule: Rule
    """The rule that produced this action (synthetic for fallbacks and AI)."""

    action_type: ActionKind
    skill_id: str | None = None
    target_id: str | None = None
    target_name: str | None = None
    priority: int = 0
    success: bool = True
    """``False`` when no executable action could be produced."""

    message: str = ""

    model_config = {"frozen": True}
