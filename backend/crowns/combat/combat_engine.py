"""
Combat engine

Core combat resolution. The engine holds no session state: every public
operation takes a ``CombatSession`` and returns a new one, leaving its input
untouched.
"""
import copy
import logging
import uuid
from collections import defaultdict
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from . import effects
from .data_repository import CombatDataRepository
from .dice import DiceRoller
from .errors import (
    CombatError,
    IllegalAction,
    IllegalTarget,
    InsufficientResource,
    InvalidTurn,
    SessionComplete,
    UnknownAbility,
)
from .models.action import (
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
from .models.combatant import Combatant, StatusEffect
from .models.combat_result import CombatResult
from .models.combat_session import CombatEndReason, CombatSession, SessionStatus, SessionType
from .models.content import (
    AbilityDefinition,
    AbilityKind,
    BanishEffect,
    ControlEffect,
    DamageEffect,
    HealEffect,
    ItemType,
    SpellInfo,
    SpellType,
    StatusEffectGrant,
    TargetMode,
    WeaponInfo,
)
from .rules import DEFAULT_RULES, CombatRules, default_ac

logger = logging.getLogger(__name__)

ABILITY_ACTIONS = {
    AbilityKind.RACIAL: ActionType.RACIAL_ABILITY,
    AbilityKind.PSION: ActionType.PSION_ABILITY,
}

_Handler = Callable[[CombatSession, Combatant, CombatAction], TurnResult]


class CombatEngine:
    """
    Combat engine

    Responsibilities:
    - start sessions (initiative, turn order)
    - validate and resolve actions atomically
    - run turn and round flow (skips, forced turns, status ticks)
    - detect terminal states
    """

    def __init__(
        self,
        rules: Optional[CombatRules] = None,
        data: Optional[CombatDataRepository] = None,
        dice: Optional[DiceRoller] = None,
    ):
        self.rules = rules or DEFAULT_RULES
        self.data = data or CombatDataRepository.default()
        self.dice = dice or DiceRoller()
        self._handlers: Dict[ActionType, _Handler] = {
            ActionType.ATTACK: self._resolve_attack,
            ActionType.CAST: self._resolve_cast,
            ActionType.DEFEND: self._resolve_defend,
            ActionType.ITEM: self._resolve_item,
            ActionType.FLEE: self._resolve_flee,
            ActionType.RACIAL_ABILITY: self._resolve_ability,
            ActionType.PSION_ABILITY: self._resolve_ability,
        }

    # ============================================
    # Public API
    # ============================================

    def start_combat(
        self,
        combatants: Iterable[Combatant],
        session_type: SessionType = SessionType.PVE,
        session_id: Optional[str] = None,
    ) -> CombatSession:
        """
        Start a combat session.

        Args:
            combatants: participants; copied, never mutated
            session_type: PVE allows fleeing, the other types do not
            session_id: optional explicit id

        Returns:
            CombatSession: active session positioned on the first actor able to act

        Flow:
        1. roll initiative (1d20 + DEX modifier) in input order
        2. sort descending; ties keep input order
        3. skip forward past anyone who cannot act
        """
        roster = [copy.deepcopy(combatant) for combatant in combatants]
        ids = [combatant.id for combatant in roster]
        if len(set(ids)) != len(ids):
            raise ValueError("Combatant ids must be unique")
        if len({combatant.team for combatant in roster if combatant.in_combat}) < 2:
            raise ValueError("Combat needs at least two opposing teams")

        session = CombatSession(
            session_id=session_id or f"combat_{uuid.uuid4().hex[:8]}",
            session_type=SessionType(session_type),
            combatants=roster,
        )

        for combatant in roster:
            combatant.initiative = self.dice.d20() + combatant.ability_modifier("dex")

        session.turn_order = self._initiative_order(session)
        session.turn_index = 0
        logger.info(
            "Combat %s started (%s), turn order: %s",
            session.session_id,
            session.session_type.value,
            ", ".join(session.turn_order),
        )

        if not self._begin_turn(session):
            self._advance_turn(session)
        return session

    def resolve_action(
        self, session: CombatSession, action: CombatAction
    ) -> Tuple[CombatSession, TurnResult]:
        """
        Resolve one action for the current actor.

        Returns the updated session and the result. On rejection a
        ``CombatError`` is raised and the given session is unchanged.
        """
        try:
            self._validate_turn(session, action)
            working = copy.deepcopy(session)
            actor = working.get_combatant(action.actor_id)
            result = self._handlers[action.action_type](working, actor, action)
        except CombatError as exc:
            logger.info(
                "Rejected %s from %s in %s: %s (%s)",
                action.action_type.value,
                action.actor_id,
                session.session_id,
                exc.reason,
                exc.code,
            )
            raise

        working.log.append(
            TurnLogEntry(round=working.round, actor_id=actor.id, result=result, action=action)
        )
        logger.debug(
            "Combat %s round %d: %s resolved %s",
            working.session_id,
            working.round,
            actor.id,
            action.action_type.value,
        )

        self._check_end(working)
        if working.is_active:
            self._advance_turn(working)
        return working, result

    def tick_status_effects(
        self, session: CombatSession
    ) -> Tuple[CombatSession, List[StatusTickResult]]:
        """Apply one round of status effects to everyone still in combat."""
        working = copy.deepcopy(session)
        ticks = self._tick_all(working)
        working.tick_log.extend(ticks)
        self._check_end(working)
        return working, ticks

    def calculate_ac(self, combatant: Combatant) -> int:
        """Effective AC: base AC + defend bonus + status modifiers."""
        base = combatant.ac if combatant.ac > 0 else default_ac(
            combatant.stats.dexterity, rules=self.rules
        )
        if combatant.is_defending:
            base += self.rules.defend_ac_bonus
        return base + effects.ac_modifier(combatant)

    def attack_bonus(self, combatant: Combatant, weapon: Optional[WeaponInfo] = None) -> int:
        weapon = weapon or combatant.weapon or self.rules.unarmed_weapon
        return (
            combatant.ability_modifier(weapon.attack_stat)
            + combatant.proficiency_bonus
            + weapon.bonus_attack
            + effects.attack_modifier(combatant)
        )

    def available_actions(self, session: CombatSession, actor_id: str) -> List[ActionOption]:
        """Options the actor may choose right now; empty when it is not their turn."""
        if not session.is_active or session.current_actor_id() != actor_id:
            return []
        actor = session.get_combatant(actor_id)
        if actor is None or not actor.in_combat:
            return []
        if effects.is_incapacitated(actor) or actor.controlled_by is not None:
            return []

        enemy_ids = tuple(c.id for c in session.enemies_of(actor))
        ally_ids = tuple(c.id for c in session.allies_of(actor) if not c.is_banished)
        options: List[ActionOption] = []

        if enemy_ids:
            weapon = actor.weapon or self.rules.unarmed_weapon
            options.append(
                ActionOption(
                    ActionType.ATTACK,
                    f"Attack with {weapon.name}",
                    resource_id=weapon.id,
                    target_ids=enemy_ids,
                )
            )

        options.append(ActionOption(ActionType.DEFEND, "Defend"))

        for spell_id in actor.spells_known:
            spell = self.data.get_spell(spell_id)
            if spell is None:
                continue
            if spell.level > 0 and actor.spell_slots.get(spell.level, 0) <= 0:
                continue
            targets = ally_ids if self._spell_is_friendly(spell) else enemy_ids
            if targets:
                options.append(
                    ActionOption(
                        ActionType.CAST, f"Cast {spell.name}", resource_id=spell.id, target_ids=targets
                    )
                )

        for item_id, count in actor.items.items():
            item = self.data.get_item(item_id)
            if item is None or count <= 0:
                continue
            targets = enemy_ids if item.item_type == ItemType.DAMAGE else ally_ids
            if targets:
                options.append(
                    ActionOption(
                        ActionType.ITEM, f"Use {item.name} ({count})", resource_id=item.id, target_ids=targets
                    )
                )

        if session.session_type == SessionType.PVE and enemy_ids:
            options.append(ActionOption(ActionType.FLEE, "Flee"))

        for ability in self.data.list_abilities():
            try:
                self._check_ability_requirements(session, actor, ability, ABILITY_ACTIONS[ability.kind])
            except CombatError:
                continue
            targets = self._default_ability_targets(session, actor, ability)
            if targets:
                options.append(
                    ActionOption(
                        ABILITY_ACTIONS[ability.kind],
                        ability.name,
                        resource_id=ability.id,
                        target_ids=tuple(t.id for t in targets),
                    )
                )

        return options

    def combat_result(self, session: CombatSession) -> CombatResult:
        """Summary of a session for persistence."""
        damage_dealt: Dict[str, int] = defaultdict(int)
        healing_done: Dict[str, int] = defaultdict(int)
        for entry in session.log:
            damage, healing = self._result_totals(entry.result)
            if damage:
                damage_dealt[entry.actor_id] += damage
            if healing:
                healing_done[entry.actor_id] += healing

        return CombatResult(
            session_id=session.session_id,
            end_reason=session.end_reason,
            winning_team=session.winning_team,
            total_rounds=session.round,
            survivors=[c.id for c in session.combatants if c.in_combat],
            fallen=[c.id for c in session.combatants if not c.is_alive],
            fled=[c.id for c in session.combatants if c.is_alive and c.has_fled],
            damage_dealt=dict(damage_dealt),
            healing_done=dict(healing_done),
        )

    # ============================================
    # Action resolution
    # ============================================

    def _validate_turn(self, session: CombatSession, action: CombatAction) -> None:
        if not session.is_active:
            raise SessionComplete(f"session {session.session_id} is over", action.actor_id)
        actor = session.get_combatant(action.actor_id)
        if actor is None:
            raise InvalidTurn(f"unknown actor {action.actor_id}", action.actor_id)
        if session.current_actor_id() != actor.id:
            raise InvalidTurn(
                f"it is {session.current_actor_id()}'s turn, not {actor.id}'s", actor.id
            )
        if not actor.in_combat:
            raise InvalidTurn(f"{actor.id} is out of combat", actor.id)
        blocking = effects.preventing_effect(actor)
        if blocking is not None:
            raise InvalidTurn(f"{actor.id} is {blocking.value}", actor.id)
        if actor.controlled_by is not None:
            raise InvalidTurn(f"{actor.id} is dominated by {actor.controlled_by}", actor.id)

    def _resolve_attack(
        self, session: CombatSession, actor: Combatant, action: CombatAction
    ) -> AttackResult:
        target = self._target(session, actor, action.target_id, hostile=True)
        return self._strike(actor, target)

    def _strike(self, actor: Combatant, target: Combatant) -> AttackResult:
        """Weapon attack: d20 + bonus vs effective AC, crit doubles the dice."""
        weapon = actor.weapon or self.rules.unarmed_weapon
        natural = self.dice.d20()
        total = natural + self.attack_bonus(actor, weapon)
        target_ac = self.calculate_ac(target)
        critical = natural >= self.rules.critical_hit_roll
        hit = critical or (natural > self.rules.critical_miss_roll and total >= target_ac)

        if not hit:
            return AttackResult(
                actor_id=actor.id,
                target_id=target.id,
                weapon_id=weapon.id,
                attack_roll=natural,
                attack_total=total,
                target_ac=target_ac,
                hit=False,
                critical=False,
                target_hp_after=target.hp,
            )

        dice_count = weapon.dice_count * 2 if critical else weapon.dice_count
        rolls = self.dice.roll_many(dice_count, weapon.dice_sides)
        damage = max(0, sum(rolls) + actor.ability_modifier(weapon.damage_stat) + weapon.bonus_damage)
        target.take_damage(damage)

        return AttackResult(
            actor_id=actor.id,
            target_id=target.id,
            weapon_id=weapon.id,
            attack_roll=natural,
            attack_total=total,
            target_ac=target_ac,
            hit=True,
            critical=critical,
            damage_rolls=tuple(rolls),
            total_damage=damage,
            target_hp_after=target.hp,
            target_killed=not target.is_alive,
        )

    def _resolve_cast(
        self, session: CombatSession, actor: Combatant, action: CombatAction
    ) -> CastResult:
        if not action.resource_id:
            raise IllegalAction("cast needs a spell id", actor.id)
        spell = self.data.get_spell(action.resource_id)
        if spell is None:
            raise UnknownAbility(f"unknown spell {action.resource_id}", actor.id)
        if actor.spells_known and spell.id not in actor.spells_known:
            raise IllegalAction(f"{actor.id} does not know {spell.id}", actor.id)

        slot_level: Optional[int] = None
        if spell.level > 0:
            slot_level = action.spell_slot_level if action.spell_slot_level is not None else spell.level
            if slot_level < spell.level:
                raise IllegalAction(
                    f"{spell.id} needs a level {spell.level} slot, got {slot_level}", actor.id
                )
            if actor.spell_slots.get(slot_level, 0) <= 0:
                raise InsufficientResource(f"no level {slot_level} spell slots left", actor.id)

        friendly = self._spell_is_friendly(spell)
        target_id = action.target_id or (actor.id if friendly else None)
        target = self._target(session, actor, target_id, hostile=not friendly)

        # validation done
        if slot_level is not None:
            actor.spell_slots[slot_level] -= 1

        save_dc = self.rules.save_dc(actor.proficiency_bonus, actor.ability_modifier(spell.casting_stat))
        save_roll = save_total = saved = None
        if spell.requires_save:
            save_roll, save_total, saved = self._saving_throw(target, spell.save_stat, save_dc)
        lands = not saved

        rolls: List[int] = []
        total_damage = heal_amount = None
        if spell.deals_damage:
            rolls = self.dice.roll_many(spell.dice_count, spell.dice_sides)
            raw = max(0, sum(rolls) + spell.modifier)
            total_damage = raw if lands else raw // 2
            target.take_damage(total_damage)
        elif spell.spell_type == SpellType.HEAL:
            rolls = self.dice.roll_many(spell.dice_count, spell.dice_sides)
            heal_amount = target.heal(max(0, sum(rolls) + spell.modifier))

        status_applied = None
        if spell.applies_status and lands and target.is_alive:
            target.add_status_effect(spell.status_effect, spell.status_duration, source_id=actor.id)
            status_applied = spell.status_effect

        return CastResult(
            actor_id=actor.id,
            target_id=target.id,
            spell_id=spell.id,
            spell_name=spell.name,
            spell_level=spell.level,
            slot_expended=slot_level,
            save_required=spell.requires_save,
            save_dc=save_dc,
            damage_rolls=tuple(rolls),
            total_damage=total_damage,
            heal_amount=heal_amount,
            save_roll=save_roll,
            save_total=save_total,
            save_succeeded=saved,
            status_applied=status_applied,
            status_duration=spell.status_duration if status_applied else None,
            target_hp_after=target.hp,
            target_killed=not target.is_alive,
        )

    def _resolve_defend(
        self, session: CombatSession, actor: Combatant, action: CombatAction
    ) -> DefendResult:
        actor.is_defending = True
        return DefendResult(actor_id=actor.id, ac_bonus_granted=self.rules.defend_ac_bonus)

    def _resolve_item(
        self, session: CombatSession, actor: Combatant, action: CombatAction
    ) -> ItemResult:
        if not action.resource_id:
            raise IllegalAction("item use needs an item id", actor.id)
        item = self.data.get_item(action.resource_id)
        if item is None:
            raise UnknownAbility(f"unknown item {action.resource_id}", actor.id)
        if actor.items.get(item.id, 0) <= 0:
            raise InsufficientResource(f"{actor.id} has no {item.id} left", actor.id)

        hostile = item.item_type == ItemType.DAMAGE
        target_id = action.target_id or (None if hostile else actor.id)
        target = self._target(session, actor, target_id, hostile=hostile)

        actor.items[item.id] -= 1

        rolls = self.dice.roll_many(item.dice_count, item.dice_sides) if item.has_dice else []
        amount = sum(rolls) + item.flat_amount
        heal_amount = damage_amount = None
        status_applied = status_removed = None

        if item.item_type == ItemType.HEAL:
            heal_amount = target.heal(amount)
        elif item.item_type == ItemType.DAMAGE:
            damage_amount = amount
            target.take_damage(amount)
        elif item.item_type == ItemType.BUFF:
            target.add_status_effect(item.status_effect, item.status_duration, source_id=actor.id)
            status_applied = item.status_effect
        elif item.item_type == ItemType.CLEANSE:
            harmful = effects.first_harmful_effect(target)
            if harmful is not None:
                if harmful.name == StatusEffect.DOMINATED:
                    self._release_control(target)
                else:
                    target.remove_status_effect(harmful.name)
                status_removed = harmful.name

        return ItemResult(
            actor_id=actor.id,
            target_id=target.id,
            item_id=item.id,
            item_name=item.name,
            rolls=tuple(rolls),
            heal_amount=heal_amount,
            damage_amount=damage_amount,
            status_applied=status_applied,
            status_removed=status_removed,
            target_hp_after=target.hp,
            target_killed=not target.is_alive,
        )

    def _resolve_flee(
        self, session: CombatSession, actor: Combatant, action: CombatAction
    ) -> FleeResult:
        if session.session_type != SessionType.PVE:
            raise IllegalAction(
                f"cannot flee a {session.session_type.value} session", actor.id
            )

        flee_dc = self.rules.flee_dc(len(session.enemies_of(actor)))
        natural = self.dice.d20()
        total = natural + actor.ability_modifier("dex")
        success = self._passes(natural, total, flee_dc)
        if success:
            actor.has_fled = True
            actor.is_defending = False

        return FleeResult(
            actor_id=actor.id,
            flee_roll=natural,
            flee_total=total,
            flee_dc=flee_dc,
            success=success,
        )

    def _resolve_ability(
        self, session: CombatSession, actor: Combatant, action: CombatAction
    ) -> AbilityResult:
        if not action.ability_id:
            raise IllegalAction("ability use needs an ability id", actor.id)
        ability = self.data.get_ability(action.ability_id)
        if ability is None:
            raise UnknownAbility(f"unknown ability {action.ability_id}", actor.id)
        self._check_ability_requirements(session, actor, ability, action.action_type)
        targets = self._ability_targets(session, actor, ability, action)

        actor.spend_mana(ability.mana_cost)
        if ability.cooldown_rounds > 0:
            actor.cooldowns[ability.id] = session.round + ability.cooldown_rounds

        save_dc = None
        if ability.requires_save:
            save_dc = self.rules.save_dc(
                actor.proficiency_bonus, actor.ability_modifier(ability.ability_stat)
            )

        outcomes = tuple(
            self._apply_ability(session, actor, ability, target, save_dc) for target in targets
        )
        return AbilityResult(
            action_type=action.action_type,
            actor_id=actor.id,
            ability_id=ability.id,
            ability_name=ability.name,
            mana_spent=ability.mana_cost,
            save_dc=save_dc,
            outcomes=outcomes,
            description=f"{actor.name} uses {ability.name}",
        )

    def _check_ability_requirements(
        self,
        session: CombatSession,
        actor: Combatant,
        ability: AbilityDefinition,
        action_type: ActionType,
    ) -> None:
        if ABILITY_ACTIONS[ability.kind] != action_type:
            raise IllegalAction(f"{ability.id} is not a {action_type.value}", actor.id)
        if ability.race and actor.race != ability.race:
            raise IllegalAction(f"{ability.id} requires race {ability.race}", actor.id)
        if ability.character_class and actor.character_class != ability.character_class:
            raise IllegalAction(f"{ability.id} requires class {ability.character_class}", actor.id)
        if actor.level < ability.level_required:
            raise IllegalAction(
                f"{ability.id} requires level {ability.level_required}", actor.id
            )
        ready_round = actor.cooldowns.get(ability.id, 0)
        if ready_round > session.round:
            raise InsufficientResource(
                f"{ability.id} is on cooldown until round {ready_round}", actor.id
            )
        if actor.mana < ability.mana_cost:
            raise InsufficientResource(
                f"{ability.id} costs {ability.mana_cost} mana, {actor.id} has {actor.mana}", actor.id
            )

    def _ability_targets(
        self,
        session: CombatSession,
        actor: Combatant,
        ability: AbilityDefinition,
        action: CombatAction,
    ) -> List[Combatant]:
        if ability.target == TargetMode.SELF:
            return [actor]
        if ability.target == TargetMode.SINGLE_ENEMY:
            return [self._target(session, actor, action.target_id, hostile=True)]
        if ability.target == TargetMode.SINGLE_ALLY:
            return [self._target(session, actor, action.target_id or actor.id, hostile=False)]

        if action.target_ids:
            if len(set(action.target_ids)) != len(action.target_ids):
                raise IllegalTarget(f"{ability.id} names a target more than once", actor.id)
            return [self._target(session, actor, tid, hostile=True) for tid in action.target_ids]
        targets = session.enemies_of(actor)
        if not targets:
            raise IllegalTarget("no enemies to target", actor.id)
        return targets

    def _default_ability_targets(
        self, session: CombatSession, actor: Combatant, ability: AbilityDefinition
    ) -> List[Combatant]:
        if ability.target == TargetMode.SELF:
            return [actor]
        if ability.target == TargetMode.SINGLE_ALLY:
            return [c for c in session.allies_of(actor) if not c.is_banished]
        return session.enemies_of(actor)

    def _apply_ability(
        self,
        session: CombatSession,
        actor: Combatant,
        ability: AbilityDefinition,
        target: Combatant,
        save_dc: Optional[int],
    ) -> AbilityTargetOutcome:
        """Apply one ability effect variant to one target."""
        effect = ability.effect
        save_roll = save_total = saved = None
        if save_dc is not None:
            save_roll, save_total, saved = self._saving_throw(
                target, ability.save_stat, save_dc, ability.save_penalty
            )
        lands = not saved

        damage = healing = 0
        status: Optional[StatusEffect] = None
        duration: Optional[int] = None
        controlled = banished = False

        if isinstance(effect, DamageEffect):
            rolls = self.dice.roll_many(effect.dice_count, effect.dice_sides)
            stat_bonus = actor.ability_modifier(ability.ability_stat) if effect.add_stat_modifier else 0
            raw = max(0, sum(rolls) + stat_bonus)
            damage = raw if lands else raw // 2
            target.take_damage(damage)
            if lands and effect.status_on_fail and target.is_alive:
                status, duration = effect.status_on_fail, effect.status_duration
                target.add_status_effect(status, duration, source_id=actor.id)
        elif isinstance(effect, HealEffect):
            rolls = self.dice.roll_many(effect.dice_count, effect.dice_sides)
            stat_bonus = actor.ability_modifier(ability.ability_stat) if effect.add_stat_modifier else 0
            healing = target.heal(max(0, sum(rolls) + effect.flat_amount + stat_bonus))
        elif isinstance(effect, StatusEffectGrant):
            if lands:
                target.add_status_effect(
                    effect.effect,
                    effect.duration,
                    source_id=actor.id,
                    damage_per_round=effect.damage_per_round,
                    modifier=effect.modifier,
                )
                status, duration = effect.effect, effect.duration
        elif isinstance(effect, ControlEffect):
            if lands:
                # DOMINATED outlives the forced turns by one round so a target
                # that already acted this round still gets its forced turn
                target.controlled_by = actor.id
                target.control_rounds = effect.rounds
                target.is_defending = False
                target.add_status_effect(StatusEffect.DOMINATED, effect.rounds + 1, source_id=actor.id)
                controlled = True
                status, duration = StatusEffect.DOMINATED, effect.rounds + 1
            elif effect.status_on_save:
                status, duration = effect.status_on_save, effect.status_on_save_duration
                target.add_status_effect(status, duration, source_id=actor.id)
        elif isinstance(effect, BanishEffect):
            if lands:
                target.banished_until_round = session.round + effect.rounds
                target.is_defending = False
                target.add_status_effect(StatusEffect.BANISHED, effect.rounds, source_id=actor.id)
                banished = True
                status, duration = StatusEffect.BANISHED, effect.rounds
            else:
                rolls = self.dice.roll_many(effect.save_dice_count, effect.save_dice_sides)
                damage = sum(rolls)
                target.take_damage(damage)
                if effect.status_on_save and target.is_alive:
                    status, duration = effect.status_on_save, effect.status_on_save_duration
                    target.add_status_effect(status, duration, source_id=actor.id)
        else:
            raise TypeError(f"Unhandled ability effect: {effect!r}")

        return AbilityTargetOutcome(
            target_id=target.id,
            damage=damage,
            healing=healing,
            save_roll=save_roll,
            save_total=save_total,
            save_succeeded=saved,
            status_applied=status,
            status_duration=duration,
            controlled=controlled,
            banished=banished,
            hp_after=target.hp,
            killed=not target.is_alive,
        )

    # ============================================
    # Turn and round flow
    # ============================================

    def _advance_turn(self, session: CombatSession) -> None:
        """Move to the next combatant able to act, wrapping rounds as needed."""
        while session.is_active:
            session.turn_index += 1
            if session.turn_index >= len(session.turn_order):
                self._start_round(session, session.round + 1)
                if not session.is_active:
                    return
            if self._begin_turn(session):
                return

    def _begin_turn(self, session: CombatSession) -> bool:
        """
        Start the current combatant's turn.

        Returns True when the combatant is waiting for an action; False when
        the turn was skipped or played by the engine.
        """
        actor = session.get_current_actor()
        if actor is None:
            return False
        if not actor.is_alive:
            self._log_skip(session, actor, "dead")
            return False
        if actor.has_fled:
            self._log_skip(session, actor, "fled")
            return False

        actor.is_defending = False

        blocking = effects.preventing_effect(actor)
        if blocking is not None:
            self._log_skip(session, actor, blocking.value)
            return False
        if actor.controlled_by is not None:
            self._forced_turn(session, actor)
            return False
        return True

    def _forced_turn(self, session: CombatSession, actor: Combatant) -> None:
        """A dominated combatant attacks its first living ally."""
        allies = [c for c in session.allies_of(actor, include_self=False) if not c.is_banished]
        if allies:
            result: TurnResult = self._strike(actor, allies[0])
        else:
            result = SkipResult(actor_id=actor.id, reason="dominated")

        actor.control_rounds -= 1
        if actor.control_rounds <= 0:
            self._release_control(actor)

        session.log.append(
            TurnLogEntry(round=session.round, actor_id=actor.id, result=result, forced=True)
        )
        logger.debug("Combat %s: %s acted under domination", session.session_id, actor.id)
        self._check_end(session)

    def _start_round(self, session: CombatSession, round_number: int) -> None:
        if round_number > self.rules.max_rounds:
            self._complete(session, None, CombatEndReason.TIMEOUT)
            return

        session.round = round_number
        session.tick_log.extend(self._tick_all(session))
        self._return_banished(session)
        for combatant in session.combatants:
            if combatant.controlled_by is not None and not combatant.has_status_effect(
                StatusEffect.DOMINATED
            ):
                self._release_control(combatant)

        self._check_end(session)
        if not session.is_active:
            return
        session.turn_order = self._initiative_order(session)
        session.turn_index = 0

    def _tick_all(self, session: CombatSession) -> List[StatusTickResult]:
        ticks: List[StatusTickResult] = []
        for combatant in session.combatants_in_combat():
            ticks.extend(effects.tick_combatant(combatant, session.round))
        return ticks

    def _return_banished(self, session: CombatSession) -> None:
        for combatant in session.combatants:
            if combatant.banished_until_round is None:
                continue
            if combatant.banished_until_round > session.round:
                continue

            combatant.banished_until_round = None
            combatant.remove_status_effect(StatusEffect.BANISHED)
            if not combatant.in_combat:
                continue

            damage, _ = self.dice.roll(self.rules.banish_return_dice)
            combatant.take_damage(damage)
            if combatant.is_alive:
                combatant.add_status_effect(
                    StatusEffect.STUNNED, self.rules.banish_return_stun_rounds, source_id="banishment"
                )
            session.tick_log.append(
                StatusTickResult(
                    combatant_id=combatant.id,
                    effect_name=StatusEffect.BANISHED,
                    remaining_rounds=0,
                    expired=True,
                    hp_after=combatant.hp,
                    round=session.round,
                    damage=damage,
                    killed=not combatant.is_alive,
                )
            )
            logger.debug("Combat %s: %s returned from banishment", session.session_id, combatant.id)

    def _check_end(self, session: CombatSession) -> None:
        if not session.is_active:
            return
        teams = session.teams_standing()
        if len(teams) > 1:
            return
        if teams:
            self._complete(session, next(iter(teams)), CombatEndReason.VICTORY)
        else:
            self._complete(session, None, CombatEndReason.MUTUAL_DESTRUCTION)

    def _complete(
        self, session: CombatSession, winning_team: Optional[int], reason: CombatEndReason
    ) -> None:
        session.status = SessionStatus.COMPLETED
        session.winning_team = winning_team
        session.end_reason = reason
        logger.info(
            "Combat %s ended in round %d: %s, winning team %s",
            session.session_id,
            session.round,
            reason.value,
            winning_team,
        )

    # ============================================
    # Helpers
    # ============================================

    @staticmethod
    def _initiative_order(session: CombatSession) -> List[str]:
        # sorted() is stable, so ties keep input order
        present = session.combatants_in_combat()
        return [c.id for c in sorted(present, key=lambda c: -c.initiative)]

    @staticmethod
    def _log_skip(session: CombatSession, actor: Combatant, reason: str) -> None:
        session.log.append(
            TurnLogEntry(
                round=session.round,
                actor_id=actor.id,
                result=SkipResult(actor_id=actor.id, reason=reason),
            )
        )

    @staticmethod
    def _release_control(combatant: Combatant) -> None:
        combatant.controlled_by = None
        combatant.control_rounds = 0
        combatant.remove_status_effect(StatusEffect.DOMINATED)

    @staticmethod
    def _spell_is_friendly(spell: SpellInfo) -> bool:
        """Heals and unresisted buffs go on allies; everything else on enemies."""
        if spell.spell_type == SpellType.HEAL:
            return True
        return spell.spell_type == SpellType.STATUS and not spell.requires_save

    def _passes(self, natural: int, total: int, dc: int) -> bool:
        """Natural 20 always succeeds, natural 1 always fails."""
        if natural >= self.rules.critical_hit_roll:
            return True
        if natural <= self.rules.critical_miss_roll:
            return False
        return total >= dc

    def _saving_throw(
        self, target: Combatant, save_stat: str, dc: int, penalty: int = 0
    ) -> Tuple[int, int, bool]:
        natural = self.dice.d20()
        total = natural + target.ability_modifier(save_stat) + effects.save_modifier(target) - penalty
        return natural, total, self._passes(natural, total, dc)

    @staticmethod
    def _target(
        session: CombatSession, actor: Combatant, target_id: Optional[str], hostile: bool
    ) -> Combatant:
        if not target_id:
            raise IllegalTarget("no target given", actor.id)
        target = session.get_combatant(target_id)
        if target is None:
            raise IllegalTarget(f"unknown target {target_id}", actor.id)
        if not target.in_combat:
            raise IllegalTarget(f"{target_id} is out of combat", actor.id)
        if target.is_banished:
            raise IllegalTarget(f"{target_id} is banished", actor.id)
        if hostile and target.team == actor.team:
            raise IllegalTarget(f"{target_id} is not an enemy of {actor.id}", actor.id)
        if not hostile and target.team != actor.team:
            raise IllegalTarget(f"{target_id} is not an ally of {actor.id}", actor.id)
        return target

    @staticmethod
    def _result_totals(result: TurnResult) -> Tuple[int, int]:
        """(damage, healing) credited to the acting combatant."""
        if isinstance(result, AttackResult):
            return result.total_damage, 0
        if isinstance(result, CastResult):
            return result.total_damage or 0, result.heal_amount or 0
        if isinstance(result, ItemResult):
            return result.damage_amount or 0, result.heal_amount or 0
        if isinstance(result, AbilityResult):
            return (
                sum(outcome.damage for outcome in result.outcomes),
                sum(outcome.healing for outcome in result.outcomes),
            )
        return 0, 0
