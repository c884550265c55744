"""
Combat rules (simplified D&D)

Constants are grouped in an immutable ``CombatRules`` value that is injected
into the engine; nothing here is mutated at runtime.
"""
from dataclasses import dataclass, field
from typing import Any, Dict

from .models.combatant import ability_modifier
from .models.combat_result import DeathPenalty
from .models.content import WeaponInfo

UNARMED_STRIKE = WeaponInfo(
    id="unarmed",
    name="Unarmed Strike",
    dice_count=1,
    dice_sides=4,
    attack_stat="str",
    damage_stat="str",
)


@dataclass(frozen=True)
class CombatRules:
    """Combat constants"""

    # Defend stance
    defend_ac_bonus: int = 2

    # Armor class when no equipment AC is set
    base_ac: int = 10

    # Flee check: base DC, plus this much per living enemy beyond the first
    base_flee_dc: int = 10
    flee_dc_per_extra_enemy: int = 2

    # Natural rolls
    critical_hit_roll: int = 20
    critical_miss_roll: int = 1

    # Spell / ability save DC = spell_dc_base + proficiency + stat modifier
    spell_dc_base: int = 8

    # Sessions running past this round end in a timeout with no winner
    max_rounds: int = 50

    # Returning from banishment
    banish_return_dice: str = "4d6"
    banish_return_stun_rounds: int = 1

    unarmed_weapon: WeaponInfo = field(default=UNARMED_STRIKE)

    # Death penalty
    death_gold_loss_percent: int = 5
    death_xp_loss_per_level: int = 15
    death_durability_damage: int = 5

    def flee_dc(self, enemy_count: int) -> int:
        """DC grows with the number of enemies still standing."""
        return self.base_flee_dc + max(0, enemy_count - 1) * self.flee_dc_per_extra_enemy

    def save_dc(self, proficiency_bonus: int, stat_modifier: int) -> int:
        return self.spell_dc_base + proficiency_bonus + stat_modifier


DEFAULT_RULES = CombatRules()


def proficiency_bonus_for_level(level: int) -> int:
    """+2 at levels 1-4, +1 every four levels after."""
    return 2 + (max(1, level) - 1) // 4


def default_ac(dexterity: int, equipment_ac: int = 0, rules: CombatRules = DEFAULT_RULES) -> int:
    """Equipment AC when present, otherwise base AC + DEX modifier."""
    if equipment_ac > 0:
        return equipment_ac
    return rules.base_ac + ability_modifier(dexterity)


def calculate_hit_chance(attack_bonus: int, target_ac: int) -> float:
    """
    Probability that d20 + attack_bonus meets target_ac.

    Natural 1 always misses and natural 20 always hits, so the result is
    clamped to [0.05, 0.95].
    """
    required_roll = target_ac - attack_bonus

    if required_roll <= 2:
        return 0.95
    if required_roll >= 20:
        return 0.05
    return (21 - required_roll) / 20


def calculate_death_penalty(
    character_id: str,
    level: int,
    gold: int,
    respawn_town_id: str,
    rules: CombatRules = DEFAULT_RULES,
) -> DeathPenalty:
    """Gold, XP and durability lost by a character that died in combat."""
    gold_lost = max(0, gold * rules.death_gold_loss_percent // 100)
    return DeathPenalty(
        character_id=character_id,
        gold_lost_percent=rules.death_gold_loss_percent,
        gold_lost=gold_lost,
        xp_lost=max(1, level) * rules.death_xp_loss_per_level,
        durability_damage=rules.death_durability_damage,
        respawn_town_id=respawn_town_id,
    )


# ============================================
# Monster AI personalities
# ============================================

AI_PERSONALITIES: Dict[str, Dict[str, Any]] = {
    "cowardly": {
        "flee_threshold": 0.3,  # try to flee below 30% HP
        "prefer_weaker_targets": True,
    },
    "aggressive": {
        "flee_threshold": 0.0,  # never flees
    },
    "pack_hunter": {
        "flee_threshold": 0.2,
        "prefer_wounded_targets": True,
    },
    "defensive": {
        "flee_threshold": 0.4,
        "prefer_defend": True,
        "heal_threshold": 0.5,
    },
}

DEFAULT_PERSONALITY = "aggressive"
