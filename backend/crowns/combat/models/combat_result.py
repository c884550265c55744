"""
Combat outcome data models
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .combat_session import CombatEndReason


@dataclass(frozen=True)
class DeathPenalty:
    """Penalty for a character killed in combat"""

    character_id: str
    gold_lost_percent: int
    gold_lost: int
    xp_lost: int
    durability_damage: int
    respawn_town_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "character_id": self.character_id,
            "gold_lost_percent": self.gold_lost_percent,
            "gold_lost": self.gold_lost,
            "xp_lost": self.xp_lost,
            "durability_damage": self.durability_damage,
            "respawn_town_id": self.respawn_town_id,
        }


@dataclass
class CombatResult:
    """
    Final summary of a completed session.

    Written back by the persistence layer after the fight.
    """

    session_id: str
    end_reason: Optional[CombatEndReason]
    winning_team: Optional[int]
    total_rounds: int = 0

    survivors: List[str] = field(default_factory=list)
    fallen: List[str] = field(default_factory=list)
    fled: List[str] = field(default_factory=list)

    damage_dealt: Dict[str, int] = field(default_factory=dict)  # by actor id
    healing_done: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "end_reason": self.end_reason.value if self.end_reason else None,
            "winning_team": self.winning_team,
            "statistics": {
                "total_rounds": self.total_rounds,
                "damage_dealt": dict(self.damage_dealt),
                "healing_done": dict(self.healing_done),
            },
            "survivors": list(self.survivors),
            "fallen": list(self.fallen),
            "fled": list(self.fled),
        }
