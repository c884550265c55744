"""Static content definitions (weapons, spells, items, special abilities).

These are loaded from game-data tables, so they are validated pydantic
models. Ability effects are a tagged union on ``kind`` so the resolver can
match every variant explicitly.
"""
from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .combatant import StatusEffect

StatName = Literal["str", "dex", "con", "int", "wis", "cha"]
CastingStat = Literal["int", "wis", "cha"]


class _Content(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class WeaponInfo(_Content):
    """Equipped weapon: damage dice plus governing stats."""

    id: str
    name: str
    dice_count: int = Field(default=1, ge=1)
    dice_sides: int = Field(default=4, ge=1)
    attack_stat: StatName = "str"
    damage_stat: StatName = "str"
    bonus_attack: int = 0
    bonus_damage: int = 0

    @property
    def damage_notation(self) -> str:
        return f"{self.dice_count}d{self.dice_sides}"


class SpellType(str, Enum):
    DAMAGE = "damage"
    HEAL = "heal"
    STATUS = "status"
    DAMAGE_STATUS = "damage_status"


class SpellInfo(_Content):
    """Spell definition."""

    id: str
    name: str
    level: int = Field(default=1, ge=0, le=9)
    casting_stat: CastingStat = "int"
    spell_type: SpellType
    dice_count: int = Field(default=0, ge=0)
    dice_sides: int = Field(default=0, ge=0)
    modifier: int = 0
    status_effect: Optional[StatusEffect] = None
    status_duration: int = Field(default=0, ge=0)
    requires_save: bool = False
    save_stat: Optional[StatName] = None

    @model_validator(mode="after")
    def _check_shape(self) -> "SpellInfo":
        if self.requires_save and self.save_stat is None:
            raise ValueError(f"spell {self.id} requires a save but names no save_stat")
        if self.spell_type in (SpellType.STATUS, SpellType.DAMAGE_STATUS):
            if self.status_effect is None or self.status_duration <= 0:
                raise ValueError(f"spell {self.id} must define a status effect and duration")
        if self.spell_type != SpellType.STATUS and (self.dice_count == 0 or self.dice_sides == 0):
            raise ValueError(f"spell {self.id} must define its dice")
        return self

    @property
    def deals_damage(self) -> bool:
        return self.spell_type in (SpellType.DAMAGE, SpellType.DAMAGE_STATUS)

    @property
    def applies_status(self) -> bool:
        return self.spell_type in (SpellType.STATUS, SpellType.DAMAGE_STATUS)


class ItemType(str, Enum):
    HEAL = "heal"
    DAMAGE = "damage"
    BUFF = "buff"
    CLEANSE = "cleanse"


class ItemInfo(_Content):
    """Consumable item definition."""

    id: str
    name: str
    item_type: ItemType
    dice_count: int = Field(default=0, ge=0)
    dice_sides: int = Field(default=0, ge=0)
    flat_amount: int = Field(default=0, ge=0)
    status_effect: Optional[StatusEffect] = None
    status_duration: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _check_shape(self) -> "ItemInfo":
        if self.item_type == ItemType.BUFF and (
            self.status_effect is None or self.status_duration <= 0
        ):
            raise ValueError(f"buff item {self.id} must define a status effect and duration")
        return self

    @property
    def has_dice(self) -> bool:
        return self.dice_count > 0 and self.dice_sides > 0


# ============================================
# Special ability effects (tagged variants)
# ============================================


class DamageEffect(_Content):
    """Roll damage; half on a successful save, optional status on a failed one."""

    kind: Literal["damage"] = "damage"
    dice_count: int = Field(ge=1)
    dice_sides: int = Field(ge=1)
    add_stat_modifier: bool = True
    status_on_fail: Optional[StatusEffect] = None
    status_duration: int = Field(default=0, ge=0)


class HealEffect(_Content):
    kind: Literal["heal"] = "heal"
    dice_count: int = Field(default=0, ge=0)
    dice_sides: int = Field(default=0, ge=0)
    flat_amount: int = Field(default=0, ge=0)
    add_stat_modifier: bool = False


class StatusEffectGrant(_Content):
    """Apply a status effect (buffs always land, debuffs land on a failed save)."""

    kind: Literal["status"] = "status"
    effect: StatusEffect
    duration: int = Field(ge=1)
    damage_per_round: Optional[int] = None
    modifier: Optional[int] = None


class ControlEffect(_Content):
    """Take control of the target; a successful save applies the fallback status."""

    kind: Literal["control"] = "control"
    rounds: int = Field(ge=1)
    status_on_save: Optional[StatusEffect] = None
    status_on_save_duration: int = Field(default=0, ge=0)


class BanishEffect(_Content):
    """Remove the target from the field; a successful save deals fallback damage."""

    kind: Literal["banish"] = "banish"
    rounds: int = Field(ge=1)
    save_dice_count: int = Field(default=0, ge=0)
    save_dice_sides: int = Field(default=0, ge=0)
    status_on_save: Optional[StatusEffect] = None
    status_on_save_duration: int = Field(default=0, ge=0)


AbilityEffect = Annotated[
    Union[DamageEffect, HealEffect, StatusEffectGrant, ControlEffect, BanishEffect],
    Field(discriminator="kind"),
]


class AbilityKind(str, Enum):
    RACIAL = "racial"
    PSION = "psion"


class TargetMode(str, Enum):
    SELF = "self"
    SINGLE_ENEMY = "single_enemy"
    SINGLE_ALLY = "single_ally"
    ALL_ENEMIES = "all_enemies"


class AbilityDefinition(_Content):
    """Racial or psion ability definition."""

    id: str
    name: str
    kind: AbilityKind
    target: TargetMode
    effect: AbilityEffect
    race: Optional[str] = None
    character_class: Optional[str] = None
    level_required: int = Field(default=1, ge=1)
    mana_cost: int = Field(default=0, ge=0)
    cooldown_rounds: int = Field(default=0, ge=0)
    ability_stat: StatName = "int"
    save_stat: Optional[StatName] = None
    save_penalty: int = Field(default=0, ge=0)

    @property
    def requires_save(self) -> bool:
        return self.save_stat is not None
