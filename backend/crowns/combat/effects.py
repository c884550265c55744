"""Status effect definitions and helpers."""
from dataclasses import dataclass
from types import MappingProxyType
from typing import List, Mapping, Optional

from .models.action import StatusTickResult
from .models.combatant import Combatant, StatusEffect, StatusEffectInstance


@dataclass(frozen=True)
class StatusEffectDef:
    """Mechanical profile of a status effect."""

    prevents_action: bool = False
    dot_damage: int = 0  # default per-round damage when the instance sets none
    hot_healing: int = 0  # default per-round healing when the instance sets none
    attack_modifier: int = 0
    ac_modifier: int = 0
    save_modifier: int = 0
    harmful: bool = False


STATUS_EFFECT_DEFS: Mapping[StatusEffect, StatusEffectDef] = MappingProxyType(
    {
        StatusEffect.POISONED: StatusEffectDef(dot_damage=3, attack_modifier=-2, harmful=True),
        StatusEffect.STUNNED: StatusEffectDef(
            prevents_action=True, ac_modifier=-2, save_modifier=-4, harmful=True
        ),
        StatusEffect.BLESSED: StatusEffectDef(attack_modifier=2, save_modifier=2),
        StatusEffect.BURNING: StatusEffectDef(dot_damage=5, harmful=True),
        StatusEffect.FROZEN: StatusEffectDef(
            prevents_action=True, ac_modifier=-4, save_modifier=-2, harmful=True
        ),
        StatusEffect.PARALYZED: StatusEffectDef(
            prevents_action=True, ac_modifier=-4, save_modifier=-4, harmful=True
        ),
        StatusEffect.BLINDED: StatusEffectDef(attack_modifier=-4, ac_modifier=-2, harmful=True),
        StatusEffect.SHIELDED: StatusEffectDef(ac_modifier=4),
        StatusEffect.WEAKENED: StatusEffectDef(attack_modifier=-3, save_modifier=-2, harmful=True),
        StatusEffect.HASTED: StatusEffectDef(attack_modifier=2, ac_modifier=2),
        StatusEffect.SLOWED: StatusEffectDef(
            attack_modifier=-2, ac_modifier=-2, save_modifier=-2, harmful=True
        ),
        StatusEffect.REGENERATING: StatusEffectDef(hot_healing=5),
        StatusEffect.DOMINATED: StatusEffectDef(harmful=True),
        StatusEffect.BANISHED: StatusEffectDef(prevents_action=True, harmful=True),
        StatusEffect.PHASED: StatusEffectDef(ac_modifier=4),
        StatusEffect.FORESIGHT: StatusEffectDef(ac_modifier=2, save_modifier=2),
    }
)


def _def(effect: StatusEffectInstance) -> StatusEffectDef:
    return STATUS_EFFECT_DEFS[effect.name]


def attack_modifier(combatant: Combatant) -> int:
    """Sum of attack roll modifiers from active effects."""
    return sum(_def(effect).attack_modifier for effect in combatant.status_effects)


def ac_modifier(combatant: Combatant) -> int:
    return sum(_def(effect).ac_modifier for effect in combatant.status_effects)


def save_modifier(combatant: Combatant) -> int:
    return sum(_def(effect).save_modifier for effect in combatant.status_effects)


def preventing_effect(combatant: Combatant) -> Optional[StatusEffect]:
    """First active effect that stops the combatant from acting, if any."""
    for effect in combatant.status_effects:
        if _def(effect).prevents_action:
            return effect.name
    return None


def is_incapacitated(combatant: Combatant) -> bool:
    """Check if combatant cannot act."""
    return preventing_effect(combatant) is not None


def first_harmful_effect(combatant: Combatant) -> Optional[StatusEffectInstance]:
    for effect in combatant.status_effects:
        if _def(effect).harmful:
            return effect
    return None


def tick_combatant(combatant: Combatant, round_number: int = 0) -> List[StatusTickResult]:
    """
    Apply one round of status effects to a combatant, in place.

    DoT damage and HoT healing are applied, every duration drops by exactly
    one, and effects reaching zero are removed.
    """
    ticks: List[StatusTickResult] = []
    remaining: List[StatusEffectInstance] = []

    for effect in combatant.status_effects:
        definition = _def(effect)
        damage = 0
        healing = 0

        if definition.dot_damage and combatant.is_alive:
            per_round = effect.damage_per_round
            damage = combatant.take_damage(per_round if per_round is not None else definition.dot_damage)

        if definition.hot_healing and combatant.is_alive:
            per_round = effect.damage_per_round
            healing = combatant.heal(per_round if per_round is not None else definition.hot_healing)

        expired = effect.tick()
        ticks.append(
            StatusTickResult(
                combatant_id=combatant.id,
                effect_name=effect.name,
                remaining_rounds=effect.remaining_rounds,
                expired=expired,
                hp_after=combatant.hp,
                round=round_number,
                damage=damage,
                healing=healing,
                killed=damage > 0 and not combatant.is_alive,
            )
        )
        if not expired:
            remaining.append(effect)

    combatant.status_effects = remaining
    return ticks
