"""Exception hierarchy for the auto-battle simulator.

Two severities exist:

- **Setup failures** (``BattleSetupError``, ``ValidationError``) are raised
  before any turn executes.  The caller must not start a battle it cannot
  run.
- **In-simulation degradations** never raise.  Unknown conditions, targets
  and actions in authored rules are logged and replaced with safe defaults
  by the evaluators themselves.

The setup errors also derive from ``ValueError`` so callers that already
guard against bad input with ``except ValueError`` keep working.
"""

from __future__ import annotations

from typing import Any


class AutoBattleError(Exception):
    """Base class for every error raised by this package.

    Parameters
    ----------
    message:
        Human-readable description.
    context:
        Optional structured details (participant ids, counts, ...).
    """

    code = "AUTOBATTLE_ERROR"

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context or {}


class ValidationError(AutoBattleError, ValueError):
    """Input handed to the core is structurally unusable."""

    code = "VALIDATION_ERROR"


class BattleSetupError(ValidationError):
    """A battle cannot be started with the given rosters."""

    code = "BATTLE_SETUP_ERROR"


class BattleError(AutoBattleError):
    """The battle state machine was driven in an invalid order."""

    code = "BATTLE_ERROR"


class ContentNotFoundError(AutoBattleError, KeyError):
    """A job, enemy template or skill id is not registered."""

    code = "CONTENT_NOT_FOUND"

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message.
        return self.message
