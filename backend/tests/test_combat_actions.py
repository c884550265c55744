import pytest

from crowns.combat import (
    CombatEngine,
    IllegalAction,
    IllegalTarget,
    InsufficientResource,
    InvalidTurn,
    ScriptedDice,
    SessionComplete,
    UnknownAbility,
)
from crowns.combat.models import (
    AbilityScores,
    CombatAction,
    Combatant,
    CombatSession,
    SessionStatus,
    SessionType,
    StatusEffect,
    WeaponInfo,
)

LONGSWORD = WeaponInfo(id="longsword", name="Longsword", dice_count=1, dice_sides=8)


def _combatant(cid: str, team: int, **fields) -> Combatant:
    data = dict(id=cid, name=cid.title(), team=team, stats=AbilityScores(), hp=20, max_hp=20, ac=12)
    data.update(fields)
    return Combatant(**data)


def _session(*combatants: Combatant, session_type: SessionType = SessionType.PVE) -> CombatSession:
    return CombatSession(
        session_id="s1",
        session_type=session_type,
        combatants=list(combatants),
        turn_order=[c.id for c in combatants],
    )


def _engine(*rolls: int) -> CombatEngine:
    return CombatEngine(dice=ScriptedDice(rolls))


# ===== Attack =====


def test_attack_scenario_hits_for_weapon_dice_plus_strength():
    fighter = _combatant("fighter", 1, stats=AbilityScores(strength=16), weapon=LONGSWORD)
    goblin = _combatant("goblin", 2, ac=13)
    session = _session(fighter, goblin)

    updated, result = _engine(15, 6).resolve_action(session, CombatAction.attack("fighter", "goblin"))

    assert result.attack_roll == 15
    assert result.attack_total == 20
    assert result.target_ac == 13
    assert result.hit and not result.critical
    assert result.damage_rolls == (6,)
    assert result.total_damage == 9
    assert updated.get_combatant("goblin").hp == 11
    assert session.get_combatant("goblin").hp == 20
    assert updated.current_actor_id() == "goblin"
    assert updated.log[-1].result == result


def test_natural_twenty_crits_and_doubles_dice_count():
    fighter = _combatant("fighter", 1, stats=AbilityScores(strength=16), weapon=LONGSWORD)
    golem = _combatant("golem", 2, ac=40, hp=50, max_hp=50)

    _, result = _engine(20, 3, 4).resolve_action(
        _session(fighter, golem), CombatAction.attack("fighter", "golem")
    )

    assert result.hit and result.critical
    assert result.damage_rolls == (3, 4)
    assert result.total_damage == 3 + 4 + 3


def test_natural_one_always_misses():
    fighter = _combatant("fighter", 1, stats=AbilityScores(strength=20), weapon=LONGSWORD)
    goblin = _combatant("goblin", 2, ac=2)

    updated, result = _engine(1).resolve_action(
        _session(fighter, goblin), CombatAction.attack("fighter", "goblin")
    )

    assert not result.hit
    assert result.total_damage == 0
    assert updated.get_combatant("goblin").hp == 20


def test_killing_blow_ends_the_session():
    fighter = _combatant("fighter", 1, stats=AbilityScores(strength=16), weapon=LONGSWORD)
    goblin = _combatant("goblin", 2, hp=5, max_hp=7)

    updated, result = _engine(18, 8).resolve_action(
        _session(fighter, goblin), CombatAction.attack("fighter", "goblin")
    )

    assert result.target_killed
    assert result.target_hp_after == 0
    assert not updated.is_active
    assert updated.winning_team == 1
    assert updated.end_reason.value == "victory"


def test_unarmed_strike_when_no_weapon():
    brawler = _combatant("brawler", 1)
    goblin = _combatant("goblin", 2, ac=10)

    _, result = _engine(12, 3).resolve_action(
        _session(brawler, goblin), CombatAction.attack("brawler", "goblin")
    )

    assert result.weapon_id == "unarmed"
    assert result.total_damage == 3


def test_status_modifiers_apply_to_attack_and_ac():
    fighter = _combatant("fighter", 1, weapon=LONGSWORD)
    fighter.add_status_effect(StatusEffect.BLESSED, 2)
    goblin = _combatant("goblin", 2, ac=14, is_defending=True)
    goblin.add_status_effect(StatusEffect.SHIELDED, 1)

    _, result = _engine(10).resolve_action(
        _session(fighter, goblin), CombatAction.attack("fighter", "goblin")
    )

    assert result.attack_total == 10 + 0 + 2 + 2
    assert result.target_ac == 14 + 2 + 4
    assert not result.hit


def test_attacking_an_ally_is_rejected_without_mutation():
    fighter = _combatant("fighter", 1)
    squire = _combatant("squire", 1)
    goblin = _combatant("goblin", 2)
    session = _session(fighter, squire, goblin)
    before = session.to_dict(log_tail=0)
    engine = _engine(15)

    with pytest.raises(IllegalTarget):
        engine.resolve_action(session, CombatAction.attack("fighter", "squire"))

    assert session.to_dict(log_tail=0) == before
    assert engine.dice.remaining == 1


def test_attacking_the_dead_is_rejected():
    fighter = _combatant("fighter", 1)
    corpse = _combatant("corpse", 2, hp=0)
    goblin = _combatant("goblin", 2)

    with pytest.raises(IllegalTarget):
        _engine(15).resolve_action(
            _session(fighter, corpse, goblin), CombatAction.attack("fighter", "corpse")
        )


def test_acting_out_of_turn_is_rejected():
    fighter = _combatant("fighter", 1)
    goblin = _combatant("goblin", 2)

    with pytest.raises(InvalidTurn):
        _engine(15).resolve_action(_session(fighter, goblin), CombatAction.attack("goblin", "fighter"))


def test_actions_after_the_end_are_rejected():
    fighter = _combatant("fighter", 1)
    goblin = _combatant("goblin", 2)
    session = _session(fighter, goblin)
    session.status = SessionStatus.COMPLETED

    with pytest.raises(SessionComplete):
        _engine().resolve_action(session, CombatAction.defend("fighter"))


# ===== Cast =====


def test_cantrip_uses_no_slot():
    wizard = _combatant("wizard", 1, stats=AbilityScores(intelligence=16))
    goblin = _combatant("goblin", 2)

    updated, result = _engine(7).resolve_action(
        _session(wizard, goblin), CombatAction.cast("wizard", "fire_bolt", "goblin")
    )

    assert result.slot_expended is None
    assert result.total_damage == 7
    assert updated.get_combatant("goblin").hp == 13


def test_cast_without_slot_is_rejected_and_state_unchanged():
    wizard = _combatant("wizard", 1, spell_slots={1: 0})
    goblin = _combatant("goblin", 2)
    session = _session(wizard, goblin)
    before = session.to_dict(log_tail=0)

    with pytest.raises(InsufficientResource):
        _engine(4, 4, 4).resolve_action(session, CombatAction.cast("wizard", "magic_missile", "goblin"))

    assert session.to_dict(log_tail=0) == before


def test_cast_with_slot_below_spell_level_is_rejected():
    cleric = _combatant("cleric", 1, spell_slots={1: 2})
    goblin = _combatant("goblin", 2)

    with pytest.raises(IllegalAction):
        _engine().resolve_action(
            _session(cleric, goblin), CombatAction.cast("cleric", "hold_person", "goblin", slot_level=1)
        )


def test_unknown_spell_is_rejected():
    wizard = _combatant("wizard", 1)
    goblin = _combatant("goblin", 2)

    with pytest.raises(UnknownAbility):
        _engine().resolve_action(_session(wizard, goblin), CombatAction.cast("wizard", "wish", "goblin"))


def test_spells_known_restricts_casting():
    wizard = _combatant("wizard", 1, spells_known=["fire_bolt"], spell_slots={1: 1})
    goblin = _combatant("goblin", 2)

    with pytest.raises(IllegalAction):
        _engine().resolve_action(
            _session(wizard, goblin), CombatAction.cast("wizard", "magic_missile", "goblin")
        )


def test_successful_save_halves_damage_and_blocks_status():
    wizard = _combatant("wizard", 1, stats=AbilityScores(intelligence=16), spell_slots={1: 2})
    goblin = _combatant("goblin", 2, hp=30, max_hp=30)

    updated, result = _engine(15, 4, 5, 6).resolve_action(
        _session(wizard, goblin), CombatAction.cast("wizard", "burning_hands", "goblin")
    )

    assert result.save_dc == 8 + 2 + 3
    assert result.save_succeeded is True
    assert result.total_damage == 15 // 2
    assert result.status_applied is None
    assert updated.get_combatant("wizard").spell_slots[1] == 1
    assert updated.get_combatant("goblin").hp == 30 - 7


def test_failed_save_takes_full_damage_and_status():
    wizard = _combatant("wizard", 1, stats=AbilityScores(intelligence=16), spell_slots={1: 2})
    goblin = _combatant("goblin", 2, hp=30, max_hp=30)

    updated, result = _engine(5, 4, 5, 6).resolve_action(
        _session(wizard, goblin), CombatAction.cast("wizard", "burning_hands", "goblin")
    )

    assert result.save_succeeded is False
    assert result.total_damage == 15
    assert result.status_applied == StatusEffect.BURNING
    assert updated.get_combatant("goblin").has_status_effect(StatusEffect.BURNING)


def test_natural_twenty_save_always_succeeds():
    wizard = _combatant("wizard", 1, stats=AbilityScores(intelligence=20), spell_slots={2: 1})
    ogre = _combatant("ogre", 2, stats=AbilityScores(wisdom=1))

    updated, result = _engine(20).resolve_action(
        _session(wizard, ogre), CombatAction.cast("wizard", "hold_person", "ogre")
    )

    assert result.save_succeeded is True
    assert not updated.get_combatant("ogre").has_status_effect(StatusEffect.PARALYZED)


def test_heal_spell_restores_hp_up_to_max():
    cleric = _combatant("cleric", 1, spell_slots={1: 1})
    squire = _combatant("squire", 1, hp=5)
    goblin = _combatant("goblin", 2)

    updated, result = _engine(4).resolve_action(
        _session(cleric, squire, goblin), CombatAction.cast("cleric", "healing_word", "squire")
    )

    assert result.heal_amount == 7
    assert updated.get_combatant("squire").hp == 12


def test_heal_spell_cannot_revive():
    cleric = _combatant("cleric", 1, spell_slots={1: 1})
    squire = _combatant("squire", 1, hp=0)
    goblin = _combatant("goblin", 2)

    with pytest.raises(IllegalTarget):
        _engine(4).resolve_action(
            _session(cleric, squire, goblin), CombatAction.cast("cleric", "healing_word", "squire")
        )


def test_buff_spell_lands_on_an_ally_without_a_save():
    cleric = _combatant("cleric", 1, spell_slots={1: 1})
    goblin = _combatant("goblin", 2)

    updated, result = _engine().resolve_action(
        _session(cleric, goblin), CombatAction.cast("cleric", "bless", "cleric")
    )

    assert result.status_applied == StatusEffect.BLESSED
    assert updated.get_combatant("cleric").has_status_effect(StatusEffect.BLESSED)


# ===== Defend =====


def test_defend_raises_ac_until_own_next_turn():
    knight = _combatant("knight", 1, ac=15)
    goblin = _combatant("goblin", 2)
    engine = _engine(1)

    session, result = engine.resolve_action(_session(knight, goblin), CombatAction.defend("knight"))
    assert result.ac_bonus_granted == 2
    assert engine.calculate_ac(session.get_combatant("knight")) == 17

    session, attack = engine.resolve_action(session, CombatAction.attack("goblin", "knight"))
    assert attack.target_ac == 17

    assert session.current_actor_id() == "knight"
    assert session.round == 2
    assert not session.get_combatant("knight").is_defending


# ===== Items =====


def test_healing_potion_consumes_one_item():
    hero = _combatant("hero", 1, hp=5, items={"healing_potion": 2})
    goblin = _combatant("goblin", 2)

    updated, result = _engine(3, 2).resolve_action(
        _session(hero, goblin), CombatAction.use_item("hero", "healing_potion")
    )

    assert result.heal_amount == 3 + 2 + 2
    assert updated.get_combatant("hero").hp == 12
    assert updated.get_combatant("hero").items["healing_potion"] == 1


def test_item_with_no_charges_is_rejected():
    hero = _combatant("hero", 1, items={"healing_potion": 0})
    goblin = _combatant("goblin", 2)

    with pytest.raises(InsufficientResource):
        _engine().resolve_action(_session(hero, goblin), CombatAction.use_item("hero", "healing_potion"))


def test_unknown_item_is_rejected():
    hero = _combatant("hero", 1, items={"mystery_box": 1})
    goblin = _combatant("goblin", 2)

    with pytest.raises(UnknownAbility):
        _engine().resolve_action(_session(hero, goblin), CombatAction.use_item("hero", "mystery_box"))


def test_damage_item_hits_an_enemy():
    hero = _combatant("hero", 1, items={"alchemist_fire": 1})
    goblin = _combatant("goblin", 2)

    updated, result = _engine(4).resolve_action(
        _session(hero, goblin), CombatAction.use_item("hero", "alchemist_fire", "goblin")
    )

    assert result.damage_amount == 6
    assert updated.get_combatant("goblin").hp == 14


def test_antidote_removes_the_first_harmful_effect():
    hero = _combatant("hero", 1, items={"antidote": 1})
    hero.add_status_effect(StatusEffect.BLESSED, 3)
    hero.add_status_effect(StatusEffect.POISONED, 3)
    hero.add_status_effect(StatusEffect.BURNING, 3)
    goblin = _combatant("goblin", 2)

    updated, result = _engine().resolve_action(
        _session(hero, goblin), CombatAction.use_item("hero", "antidote")
    )

    assert result.status_removed == StatusEffect.POISONED
    remaining = [e.name for e in updated.get_combatant("hero").status_effects]
    assert remaining == [StatusEffect.BLESSED, StatusEffect.BURNING]


def test_antidote_frees_a_dominated_ally_before_its_turn():
    hero = _combatant("hero", 1, items={"antidote": 1})
    squire = _combatant("squire", 1, controlled_by="witch", control_rounds=2)
    squire.add_status_effect(StatusEffect.DOMINATED, 3, source_id="witch")
    witch = _combatant("witch", 2)

    updated, result = _engine().resolve_action(
        _session(hero, squire, witch), CombatAction.use_item("hero", "antidote", "squire")
    )

    assert result.status_removed == StatusEffect.DOMINATED
    freed = updated.get_combatant("squire")
    assert freed.controlled_by is None
    assert freed.control_rounds == 0
    assert not freed.has_status_effect(StatusEffect.DOMINATED)
    assert updated.current_actor_id() == "squire"
    assert not any(entry.forced for entry in updated.log)
    assert updated.get_combatant("hero").hp == 20


# ===== Flee =====


def test_flee_scenario_fails_and_consumes_the_turn():
    rogue = _combatant("rogue", 1, stats=AbilityScores(dexterity=12))
    goblins = [_combatant("goblin_1", 2), _combatant("goblin_2", 2)]

    updated, result = _engine(3).resolve_action(
        _session(rogue, *goblins), CombatAction.flee("rogue")
    )

    assert result.flee_roll == 3
    assert result.flee_total == 4
    assert result.flee_dc == 12
    assert not result.success
    assert updated.get_combatant("rogue").in_combat
    assert updated.current_actor_id() == "goblin_1"


def test_successful_flee_leaves_the_fight():
    rogue = _combatant("rogue", 1, stats=AbilityScores(dexterity=12))
    goblin = _combatant("goblin", 2)

    updated, result = _engine(14).resolve_action(_session(rogue, goblin), CombatAction.flee("rogue"))

    assert result.success
    rogue_after = updated.get_combatant("rogue")
    assert rogue_after.has_fled and rogue_after.is_alive
    assert not updated.is_active
    assert updated.winning_team == 2


def test_natural_twenty_flee_always_succeeds():
    rogue = _combatant("rogue", 1, stats=AbilityScores(dexterity=1))
    horde = [_combatant(f"orc_{i}", 2) for i in range(6)]

    _, result = _engine(20).resolve_action(_session(rogue, *horde), CombatAction.flee("rogue"))

    assert result.flee_dc == 20
    assert result.success


def test_flee_is_pve_only():
    rogue = _combatant("rogue", 1)
    rival = _combatant("rival", 2)

    with pytest.raises(IllegalAction):
        _engine(20).resolve_action(
            _session(rogue, rival, session_type=SessionType.DUEL), CombatAction.flee("rogue")
        )
