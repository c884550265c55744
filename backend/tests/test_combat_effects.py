import pytest

from crowns.combat import CombatEngine, ScriptedDice
from crowns.combat.effects import (
    STATUS_EFFECT_DEFS,
    ac_modifier,
    attack_modifier,
    first_harmful_effect,
    preventing_effect,
    save_modifier,
    tick_combatant,
)
from crowns.combat.models import (
    AbilityScores,
    Combatant,
    CombatSession,
    StatusEffect,
    StatusEffectInstance,
)


def _combatant(cid: str, team: int = 1, hp: int = 20, max_hp: int = 20) -> Combatant:
    return Combatant(id=cid, name=cid.title(), team=team, stats=AbilityScores(), hp=hp, max_hp=max_hp)


def test_every_status_effect_has_a_definition():
    assert set(STATUS_EFFECT_DEFS) == set(StatusEffect)


def test_modifiers_sum_across_active_effects():
    hero = _combatant("hero")
    hero.add_status_effect(StatusEffect.BLESSED, 3)
    hero.add_status_effect(StatusEffect.WEAKENED, 2)
    hero.add_status_effect(StatusEffect.SHIELDED, 1)

    assert attack_modifier(hero) == 2 - 3
    assert save_modifier(hero) == 2 - 2
    assert ac_modifier(hero) == 4


def test_preventing_effect_and_first_harmful_effect():
    hero = _combatant("hero")
    hero.add_status_effect(StatusEffect.BLESSED, 3)
    assert preventing_effect(hero) is None
    assert first_harmful_effect(hero) is None

    hero.add_status_effect(StatusEffect.FROZEN, 1)
    hero.add_status_effect(StatusEffect.POISONED, 2)
    assert preventing_effect(hero) == StatusEffect.FROZEN
    assert first_harmful_effect(hero).name == StatusEffect.FROZEN


def test_adding_an_effect_again_replaces_it():
    hero = _combatant("hero")
    hero.add_status_effect(StatusEffect.POISONED, 1)
    hero.add_status_effect(StatusEffect.POISONED, 4)

    assert [(e.name, e.remaining_rounds) for e in hero.status_effects] == [(StatusEffect.POISONED, 4)]


def test_negative_duration_is_rejected():
    with pytest.raises(ValueError):
        StatusEffectInstance(name=StatusEffect.BURNING, remaining_rounds=-1)


def test_tick_applies_dot_and_decrements_duration():
    hero = _combatant("hero")
    hero.add_status_effect(StatusEffect.POISONED, 2)

    ticks = tick_combatant(hero, round_number=3)

    assert hero.hp == 17
    assert hero.status_effects[0].remaining_rounds == 1
    assert ticks[0].damage == 3
    assert ticks[0].round == 3
    assert not ticks[0].expired


def test_tick_removes_effects_exactly_at_zero():
    hero = _combatant("hero")
    hero.add_status_effect(StatusEffect.BURNING, 1, damage_per_round=2)

    ticks = tick_combatant(hero)

    assert hero.hp == 18
    assert hero.status_effects == []
    assert ticks[0].expired
    assert ticks[0].remaining_rounds == 0


def test_regeneration_heals_up_to_max():
    hero = _combatant("hero", hp=18)
    hero.add_status_effect(StatusEffect.REGENERATING, 2)

    ticks = tick_combatant(hero)

    assert hero.hp == 20
    assert ticks[0].healing == 2


def test_dot_can_kill():
    hero = _combatant("hero", hp=4)
    hero.add_status_effect(StatusEffect.BURNING, 3)

    ticks = tick_combatant(hero)

    assert hero.hp == 0
    assert not hero.is_alive
    assert ticks[0].killed


def test_engine_tick_returns_new_session_and_leaves_input_alone():
    hero = _combatant("hero", team=1)
    goblin = _combatant("goblin", team=2, hp=10, max_hp=10)
    goblin.add_status_effect(StatusEffect.POISONED, 2)
    session = CombatSession(session_id="s1", combatants=[hero, goblin], turn_order=["hero", "goblin"])
    engine = CombatEngine(dice=ScriptedDice([]))

    updated, ticks = engine.tick_status_effects(session)

    assert session.get_combatant("goblin").hp == 10
    assert updated.get_combatant("goblin").hp == 7
    assert [t.combatant_id for t in ticks] == ["goblin"]
    assert updated.tick_log == ticks


def test_engine_tick_can_end_the_fight():
    hero = _combatant("hero", team=1)
    goblin = _combatant("goblin", team=2, hp=3, max_hp=10)
    goblin.add_status_effect(StatusEffect.POISONED, 2)
    session = CombatSession(session_id="s1", combatants=[hero, goblin], turn_order=["hero", "goblin"])

    updated, _ = CombatEngine(dice=ScriptedDice([])).tick_status_effects(session)

    assert not updated.is_active
    assert updated.winning_team == 1
