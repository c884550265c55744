"""
Combatant data model
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

if TYPE_CHECKING:
    from .content import WeaponInfo

ABILITY_NAMES = ("str", "dex", "con", "int", "wis", "cha")

_ABILITY_FIELDS = {
    "str": "strength",
    "dex": "dexterity",
    "con": "constitution",
    "int": "intelligence",
    "wis": "wisdom",
    "cha": "charisma",
}


def ability_modifier(score: int) -> int:
    """D&D style ability modifier: floor((score - 10) / 2)."""
    return (score - 10) // 2


class CombatantType(str, Enum):
    """Combatant origin"""

    CHARACTER = "character"
    MONSTER = "monster"


class StatusEffect(str, Enum):
    """Status effects"""

    POISONED = "poisoned"
    STUNNED = "stunned"
    BLESSED = "blessed"
    BURNING = "burning"
    FROZEN = "frozen"
    PARALYZED = "paralyzed"
    BLINDED = "blinded"
    SHIELDED = "shielded"
    WEAKENED = "weakened"
    HASTED = "hasted"
    SLOWED = "slowed"
    REGENERATING = "regenerating"
    DOMINATED = "dominated"
    BANISHED = "banished"
    PHASED = "phased"
    FORESIGHT = "foresight"


@dataclass
class AbilityScores:
    """The six ability scores"""

    strength: int = 10
    dexterity: int = 10
    constitution: int = 10
    intelligence: int = 10
    wisdom: int = 10
    charisma: int = 10

    def score(self, ability: str) -> int:
        """Look up a score by its short name ("str", "dex", ...)."""
        if ability not in _ABILITY_FIELDS:
            raise KeyError(f"Unknown ability: {ability}")
        return getattr(self, _ABILITY_FIELDS[ability])

    def modifier(self, ability: str) -> int:
        return ability_modifier(self.score(ability))

    def to_dict(self) -> Dict[str, int]:
        return {name: self.score(name) for name in ABILITY_NAMES}


@dataclass
class StatusEffectInstance:
    """A status effect attached to one combatant"""

    name: StatusEffect
    remaining_rounds: int  # rounds left, never negative
    source_id: str = ""
    damage_per_round: Optional[int] = None  # DoT damage, or healing for regenerating
    modifier: Optional[int] = None

    def __post_init__(self):
        if self.remaining_rounds < 0:
            raise ValueError("Status effect duration cannot be negative")

    def tick(self) -> bool:
        """
        Decrement the duration by one round.

        Returns:
            bool: whether the effect has expired
        """
        self.remaining_rounds = max(0, self.remaining_rounds - 1)
        return self.remaining_rounds == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name.value,
            "remaining_rounds": self.remaining_rounds,
            "source_id": self.source_id,
            "damage_per_round": self.damage_per_round,
            "modifier": self.modifier,
        }


@dataclass
class Combatant:
    """
    A participant in a combat session.

    Owned by the session for the duration of the fight. HP and mana are
    clamped at zero; a combatant at 0 HP is not alive.
    """

    # ===== Identity =====
    id: str
    name: str
    team: int

    # ===== Stat block =====
    stats: AbilityScores
    hp: int
    max_hp: int
    level: int = 1
    mana: int = 0
    max_mana: int = 0
    ac: int = 10
    proficiency_bonus: int = 2
    entity_type: CombatantType = CombatantType.CHARACTER

    # ===== Initiative =====
    initiative: int = 0

    # ===== Equipment and resources =====
    weapon: Optional["WeaponInfo"] = None
    spell_slots: Dict[int, int] = field(default_factory=dict)
    spells_known: List[str] = field(default_factory=list)  # empty means unrestricted
    items: Dict[str, int] = field(default_factory=dict)
    cooldowns: Dict[str, int] = field(default_factory=dict)  # ability id -> first usable round

    # ===== State =====
    is_alive: bool = True
    is_defending: bool = False
    has_fled: bool = False
    status_effects: List[StatusEffectInstance] = field(default_factory=list)

    # ===== Special mechanics =====
    race: Optional[str] = None
    sub_race: Optional[str] = None
    character_class: Optional[str] = None
    controlled_by: Optional[str] = None
    control_rounds: int = 0
    banished_until_round: Optional[int] = None

    # ===== Monster AI =====
    ai_personality: Optional[str] = None

    def __post_init__(self):
        self.hp = max(0, min(self.hp, self.max_hp))
        self.mana = max(0, min(self.mana, self.max_mana))
        if self.hp == 0:
            self.is_alive = False

    # ===== Convenience =====

    @property
    def in_combat(self) -> bool:
        """Alive and still on the field."""
        return self.is_alive and not self.has_fled

    @property
    def is_banished(self) -> bool:
        return self.banished_until_round is not None

    def is_monster(self) -> bool:
        return self.entity_type == CombatantType.MONSTER

    def ability_modifier(self, ability: str) -> int:
        return self.stats.modifier(ability)

    def take_damage(self, amount: int) -> int:
        """
        Apply damage.

        Returns:
            int: damage actually removed (never more than current HP)
        """
        actual_damage = max(0, min(amount, self.hp))
        self.hp -= actual_damage
        if self.hp <= 0:
            self.hp = 0
            self.is_alive = False
        return actual_damage

    def heal(self, amount: int) -> int:
        """
        Restore HP up to the maximum. Dead combatants are not revived.

        Returns:
            int: HP actually restored
        """
        if not self.is_alive:
            return 0
        actual_heal = max(0, min(amount, self.max_hp - self.hp))
        self.hp += actual_heal
        return actual_heal

    def spend_mana(self, amount: int) -> None:
        if amount > self.mana:
            raise ValueError(f"{self.id} has {self.mana} mana, needs {amount}")
        self.mana -= amount

    def add_status_effect(
        self,
        name: StatusEffect,
        duration: int,
        source_id: str = "",
        damage_per_round: Optional[int] = None,
        modifier: Optional[int] = None,
    ) -> StatusEffectInstance:
        """Attach an effect, replacing any existing effect of the same name."""
        effect = StatusEffectInstance(
            name=name,
            remaining_rounds=duration,
            source_id=source_id,
            damage_per_round=damage_per_round,
            modifier=modifier,
        )
        self.status_effects = [se for se in self.status_effects if se.name != name]
        self.status_effects.append(effect)
        return effect

    def remove_status_effect(self, name: StatusEffect) -> bool:
        before = len(self.status_effects)
        self.status_effects = [se for se in self.status_effects if se.name != name]
        return len(self.status_effects) != before

    def has_status_effect(self, name: StatusEffect) -> bool:
        return any(se.name == name for se in self.status_effects)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for the JSON boundary."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.entity_type.value,
            "team": self.team,
            "stats": self.stats.to_dict(),
            "level": self.level,
            "hp": self.hp,
            "max_hp": self.max_hp,
            "mana": self.mana,
            "max_mana": self.max_mana,
            "ac": self.ac,
            "initiative": self.initiative,
            "proficiency_bonus": self.proficiency_bonus,
            "weapon": self.weapon.model_dump() if self.weapon else None,
            "spell_slots": {str(level): count for level, count in self.spell_slots.items()},
            "items": dict(self.items),
            "is_alive": self.is_alive,
            "is_defending": self.is_defending,
            "has_fled": self.has_fled,
            "race": self.race,
            "sub_race": self.sub_race,
            "character_class": self.character_class,
            "controlled_by": self.controlled_by,
            "banished_until_round": self.banished_until_round,
            "status_effects": [se.to_dict() for se in self.status_effects],
        }
