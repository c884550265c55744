"""Consumable item effects (healing potions etc.)."""
from typing import Dict

from .models.combatant import StatusEffect
from .models.content import ItemInfo, ItemType

_ITEMS = [
    ItemInfo(
        id="healing_potion",
        name="Healing Potion",
        item_type=ItemType.HEAL,
        dice_count=2,
        dice_sides=4,
        flat_amount=2,
    ),
    ItemInfo(
        id="greater_healing_potion",
        name="Greater Healing Potion",
        item_type=ItemType.HEAL,
        dice_count=4,
        dice_sides=4,
        flat_amount=4,
    ),
    ItemInfo(id="bread_ration", name="Bread Ration", item_type=ItemType.HEAL, flat_amount=3),
    ItemInfo(
        id="alchemist_fire",
        name="Alchemist's Fire",
        item_type=ItemType.DAMAGE,
        dice_count=1,
        dice_sides=6,
        flat_amount=2,
    ),
    ItemInfo(
        id="elixir_of_haste",
        name="Elixir of Haste",
        item_type=ItemType.BUFF,
        status_effect=StatusEffect.HASTED,
        status_duration=3,
    ),
    ItemInfo(id="antidote", name="Antidote", item_type=ItemType.CLEANSE),
]

ITEM_EFFECTS: Dict[str, ItemInfo] = {item.id: item for item in _ITEMS}
