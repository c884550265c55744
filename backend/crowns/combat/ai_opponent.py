"""
Monster AI

Rule-based decisions for engine-controlled combatants.
"""
import random
from typing import Any, Dict, List, Optional

from .combat_engine import CombatEngine
from .models.action import ActionOption, ActionType, CombatAction
from .models.combatant import Combatant
from .models.combat_session import CombatSession
from .models.content import ItemType
from .rules import AI_PERSONALITIES, DEFAULT_PERSONALITY


class OpponentAI:
    """
    Monster AI

    A simple rule tree:
    - flee when badly hurt (personality threshold, 50% chance)
    - defensive personalities drink potions or defend when hurt
    - otherwise attack the preferred target
    """

    def __init__(self, engine: CombatEngine, rng: Optional[random.Random] = None):
        self.engine = engine
        self.rng = rng or random.Random()

    def decide_action(self, session: CombatSession, actor_id: str) -> Optional[CombatAction]:
        """
        Choose an action for the current actor.

        Returns:
            Optional[CombatAction]: None when the actor has nothing to choose
            (not their turn, or unable to act)
        """
        actor = session.get_combatant(actor_id)
        options = self.engine.available_actions(session, actor_id)
        if actor is None or not options:
            return None

        personality = self.personality_for(actor)
        by_type = {option.action_type: option for option in options}
        hp_ratio = actor.hp / actor.max_hp if actor.max_hp else 0.0

        # 1. flee
        if ActionType.FLEE in by_type and self._should_flee(hp_ratio, personality):
            return CombatAction.flee(actor.id)

        # 2. heal or defend
        heal = self._healing_item(options, actor, hp_ratio, personality)
        if heal is not None:
            return CombatAction.use_item(actor.id, heal.resource_id, actor.id)
        if self._should_defend(hp_ratio, personality):
            return CombatAction.defend(actor.id)

        # 3. attack
        attack = by_type.get(ActionType.ATTACK)
        if attack is not None:
            targets = [session.get_combatant(tid) for tid in attack.target_ids]
            target = self._select_target([t for t in targets if t is not None], personality)
            if target is not None:
                return CombatAction.attack(actor.id, target.id)

        # 4. nothing to attack
        return CombatAction.defend(actor.id)

    @staticmethod
    def personality_for(actor: Combatant) -> Dict[str, Any]:
        name = actor.ai_personality or DEFAULT_PERSONALITY
        return AI_PERSONALITIES.get(name, AI_PERSONALITIES[DEFAULT_PERSONALITY])

    # ===== Private =====

    def _should_flee(self, hp_ratio: float, personality: Dict[str, Any]) -> bool:
        flee_threshold = personality.get("flee_threshold", 0.0)
        if flee_threshold <= 0:
            return False
        return hp_ratio < flee_threshold and self.rng.random() < 0.5

    def _should_defend(self, hp_ratio: float, personality: Dict[str, Any]) -> bool:
        if not personality.get("prefer_defend", False):
            return False
        # 30% chance below half HP
        return hp_ratio < 0.5 and self.rng.random() < 0.3

    def _healing_item(
        self,
        options: List[ActionOption],
        actor: Combatant,
        hp_ratio: float,
        personality: Dict[str, Any],
    ) -> Optional[ActionOption]:
        threshold = personality.get("heal_threshold", 0.0)
        if hp_ratio >= threshold:
            return None
        for option in options:
            if option.action_type != ActionType.ITEM or actor.id not in option.target_ids:
                continue
            item = self.engine.data.get_item(option.resource_id)
            if item is not None and item.item_type == ItemType.HEAL:
                return option
        return None

    def _select_target(
        self, targets: List[Combatant], personality: Dict[str, Any]
    ) -> Optional[Combatant]:
        if not targets:
            return None

        if personality.get("prefer_weaker_targets", False):
            return min(targets, key=lambda target: target.hp)

        if personality.get("prefer_wounded_targets", False):
            wounded = [t for t in targets if t.hp < t.max_hp]
            if wounded:
                return min(wounded, key=lambda t: t.hp / t.max_hp)

        return self.rng.choice(targets)
