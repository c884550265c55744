"""Combat system package."""

from .ai_opponent import OpponentAI
from .combat_engine import CombatEngine
from .data_repository import CombatDataRepository
from .dice import DiceRoller, ScriptedDice
from .errors import (
    CombatError,
    IllegalAction,
    IllegalTarget,
    InsufficientResource,
    InvalidTurn,
    SessionComplete,
    UnknownAbility,
)
from .rules import CombatRules, calculate_death_penalty, calculate_hit_chance

__all__ = [
    "CombatEngine",
    "OpponentAI",
    "CombatDataRepository",
    "DiceRoller",
    "ScriptedDice",
    "CombatError",
    "IllegalAction",
    "IllegalTarget",
    "InsufficientResource",
    "InvalidTurn",
    "SessionComplete",
    "UnknownAbility",
    "CombatRules",
    "calculate_death_penalty",
    "calculate_hit_chance",
]
