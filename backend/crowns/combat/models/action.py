"""
Combat actions and turn results
"""
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Tuple, Union

from .combatant import StatusEffect


class ActionType(str, Enum):
    """Action types"""

    ATTACK = "attack"
    CAST = "cast"
    DEFEND = "defend"
    ITEM = "item"
    FLEE = "flee"
    RACIAL_ABILITY = "racial_ability"
    PSION_ABILITY = "psion_ability"


@dataclass(frozen=True)
class CombatAction:
    """
    A chosen action for the current actor.

    ``resource_id`` names the spell or item; ``ability_id`` names a racial or
    psion ability. ``target_ids`` is used by abilities hitting several targets.
    """

    action_type: ActionType
    actor_id: str
    target_id: Optional[str] = None
    target_ids: Tuple[str, ...] = ()
    resource_id: Optional[str] = None
    spell_slot_level: Optional[int] = None
    ability_id: Optional[str] = None

    @classmethod
    def attack(cls, actor_id: str, target_id: str) -> "CombatAction":
        return cls(ActionType.ATTACK, actor_id, target_id=target_id)

    @classmethod
    def cast(
        cls, actor_id: str, spell_id: str, target_id: str, slot_level: Optional[int] = None
    ) -> "CombatAction":
        return cls(
            ActionType.CAST,
            actor_id,
            target_id=target_id,
            resource_id=spell_id,
            spell_slot_level=slot_level,
        )

    @classmethod
    def defend(cls, actor_id: str) -> "CombatAction":
        return cls(ActionType.DEFEND, actor_id)

    @classmethod
    def use_item(cls, actor_id: str, item_id: str, target_id: Optional[str] = None) -> "CombatAction":
        return cls(ActionType.ITEM, actor_id, target_id=target_id or actor_id, resource_id=item_id)

    @classmethod
    def flee(cls, actor_id: str) -> "CombatAction":
        return cls(ActionType.FLEE, actor_id)

    @classmethod
    def ability(
        cls,
        action_type: ActionType,
        actor_id: str,
        ability_id: str,
        target_id: Optional[str] = None,
        target_ids: Tuple[str, ...] = (),
    ) -> "CombatAction":
        return cls(
            action_type,
            actor_id,
            target_id=target_id,
            target_ids=tuple(target_ids),
            ability_id=ability_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.action_type.value,
            "actor_id": self.actor_id,
            "target_id": self.target_id,
            "target_ids": list(self.target_ids),
            "resource_id": self.resource_id,
            "spell_slot_level": self.spell_slot_level,
            "ability_id": self.ability_id,
        }


@dataclass(frozen=True)
class ActionOption:
    """An action the current actor may legally choose."""

    action_type: ActionType
    display_name: str
    resource_id: Optional[str] = None
    target_ids: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.action_type.value,
            "display_name": self.display_name,
            "resource_id": self.resource_id,
            "target_ids": list(self.target_ids),
        }


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


class _Result:
    """Serialization shared by all turn results."""

    kind: ClassVar[str] = ""

    def to_dict(self) -> Dict[str, Any]:
        payload = {"type": self.kind}
        payload.update(_plain(asdict(self)))
        return payload


# ============================================
# Turn results
# ============================================


@dataclass(frozen=True)
class AttackResult(_Result):
    kind: ClassVar[str] = "attack"

    actor_id: str
    target_id: str
    weapon_id: str
    attack_roll: int  # natural d20
    attack_total: int
    target_ac: int
    hit: bool
    critical: bool
    damage_rolls: Tuple[int, ...] = ()
    total_damage: int = 0
    target_hp_after: int = 0
    target_killed: bool = False


@dataclass(frozen=True)
class CastResult(_Result):
    kind: ClassVar[str] = "cast"

    actor_id: str
    target_id: str
    spell_id: str
    spell_name: str
    spell_level: int
    slot_expended: Optional[int]
    save_required: bool
    save_dc: int
    damage_rolls: Tuple[int, ...] = ()
    total_damage: Optional[int] = None
    heal_amount: Optional[int] = None
    save_roll: Optional[int] = None
    save_total: Optional[int] = None
    save_succeeded: Optional[bool] = None
    status_applied: Optional[StatusEffect] = None
    status_duration: Optional[int] = None
    target_hp_after: int = 0
    target_killed: bool = False


@dataclass(frozen=True)
class DefendResult(_Result):
    kind: ClassVar[str] = "defend"

    actor_id: str
    ac_bonus_granted: int


@dataclass(frozen=True)
class ItemResult(_Result):
    kind: ClassVar[str] = "item"

    actor_id: str
    target_id: str
    item_id: str
    item_name: str
    rolls: Tuple[int, ...] = ()
    heal_amount: Optional[int] = None
    damage_amount: Optional[int] = None
    status_applied: Optional[StatusEffect] = None
    status_removed: Optional[StatusEffect] = None
    target_hp_after: int = 0
    target_killed: bool = False


@dataclass(frozen=True)
class FleeResult(_Result):
    kind: ClassVar[str] = "flee"

    actor_id: str
    flee_roll: int
    flee_total: int
    flee_dc: int
    success: bool


@dataclass(frozen=True)
class AbilityTargetOutcome:
    """What a special ability did to one target."""

    target_id: str
    damage: int = 0
    healing: int = 0
    save_roll: Optional[int] = None
    save_total: Optional[int] = None
    save_succeeded: Optional[bool] = None
    status_applied: Optional[StatusEffect] = None
    status_duration: Optional[int] = None
    controlled: bool = False
    banished: bool = False
    hp_after: int = 0
    killed: bool = False


@dataclass(frozen=True)
class AbilityResult(_Result):
    kind: ClassVar[str] = "ability"

    action_type: ActionType
    actor_id: str
    ability_id: str
    ability_name: str
    mana_spent: int
    save_dc: Optional[int]
    outcomes: Tuple[AbilityTargetOutcome, ...] = ()
    description: str = ""

    @property
    def target_killed(self) -> bool:
        return any(outcome.killed for outcome in self.outcomes)

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["type"] = self.action_type.value
        return payload


@dataclass(frozen=True)
class SkipResult(_Result):
    """Recorded when a combatant's turn passes without an action."""

    kind: ClassVar[str] = "skip"

    actor_id: str
    reason: str


@dataclass(frozen=True)
class StatusTickResult(_Result):
    kind: ClassVar[str] = "status_tick"

    combatant_id: str
    effect_name: StatusEffect
    remaining_rounds: int
    expired: bool
    hp_after: int
    round: int = 0
    damage: int = 0
    healing: int = 0
    killed: bool = False


TurnResult = Union[
    AttackResult,
    CastResult,
    DefendResult,
    ItemResult,
    FleeResult,
    AbilityResult,
    SkipResult,
]


@dataclass(frozen=True)
class TurnLogEntry:
    """One entry in a session's log"""

    round: int
    actor_id: str
    result: TurnResult
    action: Optional[CombatAction] = None
    forced: bool = False  # action chosen by the engine (dominated actor)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "round": self.round,
            "actor": self.actor_id,
            "action": self.action.to_dict() if self.action else None,
            "result": self.result.to_dict(),
            "forced": self.forced,
        }
