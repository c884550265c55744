"""Spell templates for combat."""
from typing import Dict

from .models.combatant import StatusEffect
from .models.content import SpellInfo, SpellType

_SPELLS = [
    SpellInfo(
        id="fire_bolt",
        name="Fire Bolt",
        level=0,
        casting_stat="int",
        spell_type=SpellType.DAMAGE,
        dice_count=1,
        dice_sides=10,
    ),
    SpellInfo(
        id="magic_missile",
        name="Magic Missile",
        level=1,
        casting_stat="int",
        spell_type=SpellType.DAMAGE,
        dice_count=3,
        dice_sides=4,
        modifier=3,
    ),
    SpellInfo(
        id="burning_hands",
        name="Burning Hands",
        level=1,
        casting_stat="int",
        spell_type=SpellType.DAMAGE_STATUS,
        dice_count=3,
        dice_sides=6,
        status_effect=StatusEffect.BURNING,
        status_duration=2,
        requires_save=True,
        save_stat="dex",
    ),
    SpellInfo(
        id="ray_of_frost",
        name="Ray of Frost",
        level=0,
        casting_stat="int",
        spell_type=SpellType.DAMAGE_STATUS,
        dice_count=1,
        dice_sides=8,
        status_effect=StatusEffect.SLOWED,
        status_duration=1,
        requires_save=True,
        save_stat="con",
    ),
    SpellInfo(
        id="poison_spray",
        name="Poison Spray",
        level=0,
        casting_stat="int",
        spell_type=SpellType.DAMAGE_STATUS,
        dice_count=1,
        dice_sides=12,
        status_effect=StatusEffect.POISONED,
        status_duration=2,
        requires_save=True,
        save_stat="con",
    ),
    SpellInfo(
        id="hold_person",
        name="Hold Person",
        level=2,
        casting_stat="wis",
        spell_type=SpellType.STATUS,
        status_effect=StatusEffect.PARALYZED,
        status_duration=2,
        requires_save=True,
        save_stat="wis",
    ),
    SpellInfo(
        id="bless",
        name="Bless",
        level=1,
        casting_stat="wis",
        spell_type=SpellType.STATUS,
        status_effect=StatusEffect.BLESSED,
        status_duration=3,
    ),
    SpellInfo(
        id="shield",
        name="Shield",
        level=1,
        casting_stat="int",
        spell_type=SpellType.STATUS,
        status_effect=StatusEffect.SHIELDED,
        status_duration=1,
    ),
    SpellInfo(
        id="healing_word",
        name="Healing Word",
        level=1,
        casting_stat="wis",
        spell_type=SpellType.HEAL,
        dice_count=1,
        dice_sides=4,
        modifier=3,
    ),
    SpellInfo(
        id="cure_wounds",
        name="Cure Wounds",
        level=1,
        casting_stat="wis",
        spell_type=SpellType.HEAL,
        dice_count=1,
        dice_sides=8,
        modifier=3,
    ),
]

SPELL_TEMPLATES: Dict[str, SpellInfo] = {spell.id: spell for spell in _SPELLS}
