"""Rejections raised by the combat resolver.

Every rejection is raised before the session is touched.
"""
from typing import Optional


class CombatError(Exception):
    """Base class for rejected combat actions."""

    code = "combat_error"

    def __init__(self, reason: str, actor_id: Optional[str] = None) -> None:
        self.reason = reason
        self.actor_id = actor_id
        super().__init__(reason)

    def to_dict(self) -> dict:
        return {"error": self.code, "reason": self.reason, "actor_id": self.actor_id}


class InvalidTurn(CombatError):
    """Not the actor's turn, or the actor cannot act."""

    code = "invalid_turn"


class InsufficientResource(CombatError):
    """No spell slot, mana, item charge, or the ability is on cooldown."""

    code = "insufficient_resource"


class IllegalTarget(CombatError):
    """Target missing, out of combat, or on the wrong side."""

    code = "illegal_target"


class UnknownAbility(CombatError):
    """Spell, item or ability id not present in the data tables."""

    code = "unknown_ability"


class SessionComplete(CombatError):
    """The session already reached a terminal state."""

    code = "session_complete"


class IllegalAction(CombatError):
    """Action not allowed in this session or missing its payload."""

    code = "illegal_action"
