"""``BattleLogger`` implementation backed by the standard ``logging`` module."""

from __future__ import annotations

import logging
from typing import Any

from autobattle.sim.core.battle_state import TurnResult
from autobattle.sim.core.actions import ActionKind

_DEFAULT_LOGGER = logging.getLogger("autobattle.battle")


def format_turn(result: TurnResult) -> str:
    """One-line human-readable summary of a turn."""
    line = f"Turn {result.turn_number}: {result.actor_name}"
    if result.target_name is not None:
        if result.action.action_type == ActionKind.CAST and result.action.skill_id:
            line += f" casts {result.action.skill_id} on {result.target_name}"
        elif result.action.action_type == ActionKind.ATTACK:
            line += f" attacks {result.target_name}"
    if result.damage is not None:
        line += f" for {result.damage} damage"
    if result.heal is not None:
        line += f" healing {result.heal} HP"
    if result.before_hp is not None and result.after_hp is not None:
        line += f" [{result.before_hp} -> {result.after_hp} HP]"
    if not result.success:
        line += f" (failed: {result.message})"
    return line


class StdlibBattleLogger:
    """Routes battle events to a :class:`logging.Logger`.

    Turns are logged at INFO, debug events at DEBUG with the category as a
    prefix, errors at ERROR with the exception attached.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or _DEFAULT_LOGGER

    def log_turn(self, result: TurnResult) -> None:
        self._logger.info("%s", format_turn(result))

    def log_debug(self, category: str, message: str, data: Any | None = None) -> None:
        if data is None:
            self._logger.debug("[%s] %s", category, message)
        else:
            self._logger.debug("[%s] %s %r", category, message, data)

    def log_error(self, category: str, message: str, error: BaseException | None = None) -> None:
        self._logger.error("[%s] %s", category, message, exc_info=error)
