"""Data models for the combat system."""

from .combatant import (
    AbilityScores,
    Combatant,
    CombatantType,
    StatusEffect,
    StatusEffectInstance,
    ability_modifier,
)
from .content import (
    AbilityDefinition,
    AbilityKind,
    BanishEffect,
    ControlEffect,
    DamageEffect,
    HealEffect,
    ItemInfo,
    ItemType,
    SpellInfo,
    SpellType,
    StatusEffectGrant,
    TargetMode,
    WeaponInfo,
)
from .action import (
    AbilityResult,
    AbilityTargetOutcome,
    ActionOption,
    ActionType,
    AttackResult,
    CastResult,
    CombatAction,
    DefendResult,
    FleeResult,
    ItemResult,
    SkipResult,
    StatusTickResult,
    TurnLogEntry,
    TurnResult,
)
from .combat_session import CombatEndReason, CombatSession, SessionStatus, SessionType
from .combat_result import CombatResult, DeathPenalty

__all__ = [
    "AbilityScores",
    "Combatant",
    "CombatantType",
    "StatusEffect",
    "StatusEffectInstance",
    "ability_modifier",
    "AbilityDefinition",
    "AbilityKind",
    "BanishEffect",
    "ControlEffect",
    "DamageEffect",
    "HealEffect",
    "ItemInfo",
    "ItemType",
    "SpellInfo",
    "SpellType",
    "StatusEffectGrant",
    "TargetMode",
    "WeaponInfo",
    "AbilityResult",
    "AbilityTargetOutcome",
    "ActionOption",
    "ActionType",
    "AttackResult",
    "CastResult",
    "CombatAction",
    "DefendResult",
    "FleeResult",
    "ItemResult",
    "SkipResult",
    "StatusTickResult",
    "TurnLogEntry",
    "TurnResult",
    "CombatEndReason",
    "CombatSession",
    "SessionStatus",
    "SessionType",
    "CombatResult",
    "DeathPenalty",
]
