"""
Combat session data model
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from .action import StatusTickResult, TurnLogEntry
from .combatant import Combatant


class SessionType(str, Enum):
    """Kind of fight"""

    PVE = "PVE"
    PVP = "PVP"
    DUEL = "DUEL"
    ARENA = "ARENA"
    WAR = "WAR"


class SessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class CombatEndReason(str, Enum):
    """Why a session completed"""

    VICTORY = "victory"  # one team left standing
    MUTUAL_DESTRUCTION = "mutual_destruction"
    TIMEOUT = "timeout"


@dataclass
class CombatSession:
    """
    Combat session

    Holds every piece of state for one fight. The engine treats a session as
    a snapshot: ``resolve_action`` returns a new session and leaves the one it
    was given untouched.
    """

    # ===== Identity =====
    session_id: str
    session_type: SessionType = SessionType.PVE
    status: SessionStatus = SessionStatus.ACTIVE

    # ===== Combatants =====
    combatants: List[Combatant] = field(default_factory=list)

    # ===== Turn order =====
    turn_order: List[str] = field(default_factory=list)  # ids, initiative descending
    turn_index: int = 0
    round: int = 1

    # ===== Log =====
    log: List[TurnLogEntry] = field(default_factory=list)
    tick_log: List[StatusTickResult] = field(default_factory=list)

    # ===== Outcome =====
    winning_team: Optional[int] = None
    end_reason: Optional[CombatEndReason] = None

    # ===== Convenience =====

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    def get_combatant(self, combatant_id: str) -> Optional[Combatant]:
        for combatant in self.combatants:
            if combatant.id == combatant_id:
                return combatant
        return None

    def current_actor_id(self) -> Optional[str]:
        if not self.turn_order:
            return None
        return self.turn_order[self.turn_index]

    def get_current_actor(self) -> Optional[Combatant]:
        actor_id = self.current_actor_id()
        return self.get_combatant(actor_id) if actor_id else None

    def combatants_in_combat(self, team: Optional[int] = None) -> List[Combatant]:
        """Alive, not fled. Optionally filtered by team."""
        present = [c for c in self.combatants if c.in_combat]
        if team is not None:
            present = [c for c in present if c.team == team]
        return present

    def enemies_of(self, combatant: Combatant) -> List[Combatant]:
        return [
            c for c in self.combatants_in_combat()
            if c.team != combatant.team and not c.is_banished
        ]

    def allies_of(self, combatant: Combatant, include_self: bool = True) -> List[Combatant]:
        return [
            c for c in self.combatants_in_combat(combatant.team)
            if include_self or c.id != combatant.id
        ]

    def teams_standing(self) -> Set[int]:
        return {c.team for c in self.combatants_in_combat()}

    def to_dict(self, log_tail: int = 10) -> Dict[str, Any]:
        """Serialize for the client."""
        return {
            "session_id": self.session_id,
            "type": self.session_type.value,
            "status": self.status.value,
            "round": self.round,
            "turn_index": self.turn_index,
            "current_turn": self.current_actor_id() if self.is_active else None,
            "turn_order": list(self.turn_order),
            "combatants": [c.to_dict() for c in self.combatants],
            "log": [entry.to_dict() for entry in self.log[-log_tail:]] if log_tail else [],
            "status_ticks": [tick.to_dict() for tick in self.tick_log if tick.round == self.round],
            "winning_team": self.winning_team,
            "end_reason": self.end_reason.value if self.end_reason else None,
        }
