"""Racial and psion ability definitions."""
from typing import Dict

from .models.combatant import StatusEffect
from .models.content import (
    AbilityDefinition,
    AbilityKind,
    BanishEffect,
    ControlEffect,
    DamageEffect,
    HealEffect,
    StatusEffectGrant,
    TargetMode,
)

# ============================================
# Racial abilities
# ============================================

RACIAL_ABILITIES = [
    AbilityDefinition(
        id="drakonid_breath_weapon",
        name="Breath Weapon",
        kind=AbilityKind.RACIAL,
        race="drakonid",
        target=TargetMode.ALL_ENEMIES,
        cooldown_rounds=5,
        ability_stat="con",
        save_stat="dex",
        effect=DamageEffect(dice_count=2, dice_sides=6, add_stat_modifier=False),
    ),
    AbilityDefinition(
        id="orc_blood_fury",
        name="Blood Fury",
        kind=AbilityKind.RACIAL,
        race="orc",
        target=TargetMode.SELF,
        cooldown_rounds=5,
        effect=StatusEffectGrant(effect=StatusEffect.HASTED, duration=2),
    ),
    AbilityDefinition(
        id="goliath_stone_endurance",
        name="Stone's Endurance",
        kind=AbilityKind.RACIAL,
        race="goliath",
        target=TargetMode.SELF,
        cooldown_rounds=4,
        effect=StatusEffectGrant(effect=StatusEffect.SHIELDED, duration=1),
    ),
    AbilityDefinition(
        id="mosskin_verdant_renewal",
        name="Verdant Renewal",
        kind=AbilityKind.RACIAL,
        race="mosskin",
        target=TargetMode.SINGLE_ALLY,
        cooldown_rounds=4,
        ability_stat="wis",
        effect=HealEffect(dice_count=2, dice_sides=8, add_stat_modifier=True),
    ),
]

# ============================================
# Psion abilities
# ============================================

PSION_ABILITIES = [
    AbilityDefinition(
        id="psi-tel-1",
        name="Mind Spike",
        kind=AbilityKind.PSION,
        character_class="psion",
        target=TargetMode.SINGLE_ENEMY,
        mana_cost=4,
        save_stat="int",
        effect=DamageEffect(
            dice_count=2,
            dice_sides=6,
            status_on_fail=StatusEffect.WEAKENED,
            status_duration=2,
        ),
    ),
    AbilityDefinition(
        id="psi-tel-3",
        name="Psychic Crush",
        kind=AbilityKind.PSION,
        character_class="psion",
        level_required=5,
        target=TargetMode.SINGLE_ENEMY,
        mana_cost=8,
        save_stat="wis",
        effect=DamageEffect(
            dice_count=3,
            dice_sides=8,
            status_on_fail=StatusEffect.STUNNED,
            status_duration=1,
        ),
    ),
    AbilityDefinition(
        id="psi-tel-4",
        name="Dominate",
        kind=AbilityKind.PSION,
        character_class="psion",
        level_required=7,
        target=TargetMode.SINGLE_ENEMY,
        mana_cost=10,
        save_stat="wis",
        save_penalty=2,
        effect=ControlEffect(
            rounds=1,
            status_on_save=StatusEffect.WEAKENED,
            status_on_save_duration=2,
        ),
    ),
    AbilityDefinition(
        id="psi-tel-5",
        name="Mind Shatter",
        kind=AbilityKind.PSION,
        character_class="psion",
        level_required=9,
        target=TargetMode.ALL_ENEMIES,
        mana_cost=12,
        save_stat="wis",
        effect=DamageEffect(
            dice_count=3,
            dice_sides=6,
            status_on_fail=StatusEffect.WEAKENED,
            status_duration=2,
        ),
    ),
    AbilityDefinition(
        id="psi-see-1",
        name="Foresight",
        kind=AbilityKind.PSION,
        character_class="psion",
        target=TargetMode.SELF,
        mana_cost=4,
        effect=StatusEffectGrant(effect=StatusEffect.FORESIGHT, duration=3),
    ),
    AbilityDefinition(
        id="psi-nom-3",
        name="Dimensional Pocket",
        kind=AbilityKind.PSION,
        character_class="psion",
        level_required=5,
        target=TargetMode.SELF,
        mana_cost=6,
        effect=StatusEffectGrant(effect=StatusEffect.PHASED, duration=1),
    ),
    AbilityDefinition(
        id="psi-nom-6",
        name="Banishment",
        kind=AbilityKind.PSION,
        character_class="psion",
        level_required=11,
        target=TargetMode.SINGLE_ENEMY,
        mana_cost=14,
        save_stat="int",
        save_penalty=2,
        effect=BanishEffect(
            rounds=3,
            save_dice_count=2,
            save_dice_sides=6,
            status_on_save=StatusEffect.SLOWED,
            status_on_save_duration=1,
        ),
    ),
]

ABILITY_DEFINITIONS: Dict[str, AbilityDefinition] = {
    ability.id: ability for ability in [*RACIAL_ABILITIES, *PSION_ABILITIES]
}
