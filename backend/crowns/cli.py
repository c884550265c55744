"""
Rule engine simulator - developer CLI

Runs the engines directly, without any server:
- a seeded PvE skirmish where every combatant is driven by the monster AI
- a seeded market cycle over a handful of listings

Usage:
    crowns-sim combat --seed 7
    crowns-sim market --seed 7 --tax 0.02
"""
import argparse
import random
from dataclasses import replace
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from rich.box import ROUNDED, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from crowns.combat import CombatEngine, OpponentAI
from crowns.combat.dice import DiceRoller
from crowns.combat.models import (
    AbilityResult,
    AbilityScores,
    AttackResult,
    CastResult,
    Combatant,
    CombatantType,
    CombatSession,
    DefendResult,
    FleeResult,
    ItemResult,
    SkipResult,
    TurnLogEntry,
    WeaponInfo,
)
from crowns.config import configure_logging, settings, validate_config
from crowns.market import BuyOrder, MarketEngine, MarketListing

COLORS = {
    "system": "bright_magenta",
    "hero": "bright_green",
    "monster": "bold red",
    "hint": "dim",
    "gold": "yellow",
}

HERO_TEAM = 1
MONSTER_TEAM = 2


# ==================== Scenario data ====================


def build_party() -> List[Combatant]:
    longsword = WeaponInfo(id="longsword", name="Longsword", dice_count=1, dice_sides=8)
    dagger = WeaponInfo(
        id="dagger", name="Dagger", dice_count=1, dice_sides=4, attack_stat="dex", damage_stat="dex"
    )
    return [
        Combatant(
            id="aldric",
            name="Aldric",
            team=HERO_TEAM,
            stats=AbilityScores(strength=16, dexterity=12, constitution=14),
            hp=32,
            max_hp=32,
            level=3,
            ac=16,
            weapon=longsword,
            items={"healing_potion": 2},
            race="goliath",
            ai_personality="aggressive",
        ),
        Combatant(
            id="mira",
            name="Mira",
            team=HERO_TEAM,
            stats=AbilityScores(dexterity=14, intelligence=17, wisdom=12),
            hp=22,
            max_hp=22,
            level=5,
            mana=20,
            max_mana=20,
            ac=13,
            weapon=dagger,
            character_class="psion",
            items={"healing_potion": 1},
            ai_personality="defensive",
        ),
    ]


def build_monsters() -> List[Combatant]:
    scimitar = WeaponInfo(
        id="scimitar", name="Scimitar", dice_count=1, dice_sides=6, attack_stat="dex", damage_stat="dex"
    )
    greataxe = WeaponInfo(id="greataxe", name="Greataxe", dice_count=1, dice_sides=12)
    goblins = [
        Combatant(
            id=f"goblin_{index}",
            name=f"Goblin {index}",
            team=MONSTER_TEAM,
            stats=AbilityScores(strength=8, dexterity=14),
            hp=7,
            max_hp=7,
            ac=15,
            entity_type=CombatantType.MONSTER,
            weapon=scimitar,
            ai_personality="cowardly",
        )
        for index in (1, 2)
    ]
    orc = Combatant(
        id="orc_1",
        name="Orc Raider",
        team=MONSTER_TEAM,
        stats=AbilityScores(strength=16, dexterity=12, constitution=16),
        hp=15,
        max_hp=15,
        ac=13,
        entity_type=CombatantType.MONSTER,
        weapon=greataxe,
        ai_personality="pack_hunter",
    )
    return [*goblins, orc]


def build_market(now: datetime) -> Tuple[List[MarketListing], List[BuyOrder]]:
    expires = now + timedelta(days=7)
    listings = [
        MarketListing(
            id="lst_sword", item_id="iron_sword", asking_price=100, quantity=1,
            seller_id="smith", seller_professions={"BLACKSMITH"}, expires_at=expires,
            town_id="kingshold",
        ),
        MarketListing(
            id="lst_herbs", item_id="silverleaf", asking_price=40, quantity=5,
            seller_id="herbalist", seller_professions={"MERCHANT"}, expires_at=expires,
            town_id="kingshold",
        ),
        MarketListing(
            id="lst_ring", item_id="gold_ring", asking_price=250, quantity=1, min_price=200,
            seller_id="jeweler", expires_at=expires, town_id="kingshold",
        ),
    ]
    placed = now - timedelta(minutes=10)
    orders = [
        BuyOrder(id="o1", listing_id="lst_sword", buyer_id="aldric", bid_price=100,
                 submitted_at=placed, charisma_modifier=0),
        BuyOrder(id="o2", listing_id="lst_sword", buyer_id="mira", bid_price=98,
                 submitted_at=placed + timedelta(minutes=1), charisma_modifier=1),
        BuyOrder(id="o3", listing_id="lst_sword", buyer_id="trader_jo", bid_price=90,
                 submitted_at=placed + timedelta(minutes=2), professions={"MERCHANT"}),
        BuyOrder(id="o4", listing_id="lst_herbs", buyer_id="mira", bid_price=200,
                 submitted_at=placed),
        BuyOrder(id="o5", listing_id="lst_ring", buyer_id="aldric", bid_price=150,
                 submitted_at=placed),
    ]
    return listings, orders


# ==================== Rendering ====================


def describe(entry: TurnLogEntry, session: CombatSession) -> str:
    """One-line description of a log entry."""
    result = entry.result
    actor = session.get_combatant(entry.actor_id)
    name = actor.name if actor else entry.actor_id

    def target_name(target_id: str) -> str:
        target = session.get_combatant(target_id)
        return target.name if target else target_id

    if isinstance(result, AttackResult):
        prefix = "(forced) " if entry.forced else ""
        if not result.hit:
            return f"{prefix}{name} misses {target_name(result.target_id)} ({result.attack_total} vs AC {result.target_ac})"
        crit = " CRIT" if result.critical else ""
        killed = ", slain!" if result.target_killed else ""
        return (
            f"{prefix}{name} hits {target_name(result.target_id)}{crit} for "
            f"{result.total_damage} (HP {result.target_hp_after}){killed}"
        )
    if isinstance(result, CastResult):
        if result.heal_amount is not None:
            return f"{name} casts {result.spell_name}, heals {result.heal_amount}"
        return f"{name} casts {result.spell_name} on {target_name(result.target_id)} for {result.total_damage or 0}"
    if isinstance(result, DefendResult):
        return f"{name} defends (+{result.ac_bonus_granted} AC)"
    if isinstance(result, ItemResult):
        return f"{name} uses {result.item_name} (HP {result.target_hp_after})"
    if isinstance(result, FleeResult):
        outcome = "escapes" if result.success else "fails to flee"
        return f"{name} {outcome} ({result.flee_total} vs DC {result.flee_dc})"
    if isinstance(result, AbilityResult):
        hits = ", ".join(
            f"{target_name(o.target_id)} -{o.damage}" if o.damage else target_name(o.target_id)
            for o in result.outcomes
        )
        return f"{name} uses {result.ability_name}: {hits}"
    if isinstance(result, SkipResult):
        return f"{name} skips ({result.reason})"
    return repr(result)


def run_combat(console: Console, seed: Optional[int], max_turns: int) -> CombatSession:
    rng = random.Random(seed)
    engine = CombatEngine(rules=settings.combat_rules(), dice=DiceRoller(rng=rng))
    ai = OpponentAI(engine, rng=rng)

    session = engine.start_combat([*build_party(), *build_monsters()], session_id="skirmish")
    console.print(f"[{COLORS['system']}]Turn order: {', '.join(session.turn_order)}[/]")

    shown = 0
    for _ in range(max_turns):
        if not session.is_active:
            break
        actor_id = session.current_actor_id()
        action = ai.decide_action(session, actor_id)
        if action is None:
            break
        session, _ = engine.resolve_action(session, action)

        for entry in session.log[shown:]:
            team = session.get_combatant(entry.actor_id).team
            color = COLORS["hero"] if team == HERO_TEAM else COLORS["monster"]
            console.print(f"[dim]R{entry.round}[/] [{color}]{describe(entry, session)}[/]")
        shown = len(session.log)

    summary = engine.combat_result(session)
    table = Table(title="Combatants", box=ROUNDED)
    table.add_column("ID", style="cyan")
    table.add_column("Team")
    table.add_column("HP", justify="right")
    table.add_column("State")
    table.add_column("Damage dealt", justify="right")
    for combatant in session.combatants:
        if not combatant.is_alive:
            state = "fallen"
        elif combatant.has_fled:
            state = "fled"
        else:
            state = "standing"
        table.add_row(
            combatant.id,
            str(combatant.team),
            f"{combatant.hp}/{combatant.max_hp}",
            state,
            str(summary.damage_dealt.get(combatant.id, 0)),
        )
    console.print(table)

    end = summary.end_reason.value if summary.end_reason else "in progress"
    console.print(
        Panel(
            f"Result: {end}\nWinning team: {summary.winning_team}\nRounds: {summary.total_rounds}",
            title="Combat over" if not session.is_active else "Stopped",
            border_style="red",
        )
    )
    return session


def run_market(console: Console, seed: Optional[int], tax: Optional[float]) -> None:
    rules = settings.market_rules()
    if tax is not None:
        rules = replace(rules, town_tax_rate=tax)
    engine = MarketEngine(rules=rules, dice=DiceRoller(seed=seed))

    now = datetime(2024, 1, 1, 12, 0)
    listings, orders = build_market(now)
    report = engine.resolve_cycle(listings, orders, now)

    table = Table(title="Settlements", box=ROUNDED)
    table.add_column("Listing", style="cyan")
    table.add_column("Buyer")
    table.add_column("Price", justify="right", style=COLORS["gold"])
    table.add_column("Fee", justify="right")
    table.add_column("Net", justify="right")
    table.add_column("Tax", justify="right")
    table.add_column("Haggled")
    for match in report.matches:
        s = match.settlement
        table.add_row(
            s.listing_id,
            s.buyer_id,
            str(s.price),
            str(s.fee),
            str(s.net_proceeds),
            str(s.town_tax),
            "yes" if match.haggled else "no",
        )
    console.print(table)

    for match in report.matches:
        if not match.haggling_rolls:
            continue
        rolls = Table(title=f"Haggling for {match.listing.id}", box=SIMPLE)
        rolls.add_column("Buyer")
        rolls.add_column("d20", justify="right")
        rolls.add_column("Total", justify="right")
        for roll in match.haggling_rolls:
            rolls.add_row(roll.buyer_id, str(roll.natural), str(roll.total))
        console.print(rolls)

    for listing_id, code in report.skipped.items():
        console.print(f"[{COLORS['hint']}]{listing_id}: {code}[/]")

    console.print(
        Panel(
            f"Orders processed: {report.orders_processed}\n"
            f"Transactions: {report.transactions_completed}\n"
            f"Contested listings: {report.contested_listings}\n"
            f"Merchant wins: {report.merchant_wins} / others: {report.non_merchant_wins}\n"
            f"Gold traded: {report.total_gold_traded}",
            title="Market cycle",
            border_style="yellow",
        )
    )


# ==================== Entry point ====================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="crowns-sim", description="Realm of Crowns rule engine simulator")
    parser.add_argument("--log-level", default=None, help="override CROWNS_LOG_LEVEL")
    parser.add_argument("--seed", type=int, default=settings.rng_seed, help="dice seed")
    sub = parser.add_subparsers(dest="command", required=True)

    combat = sub.add_parser("combat", help="run an AI-driven skirmish")
    combat.add_argument("--max-turns", type=int, default=200)

    market = sub.add_parser("market", help="resolve one market cycle")
    market.add_argument("--tax", type=float, default=None, help="town tax rate")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    if not validate_config():
        return 2

    console = Console()
    if args.command == "combat":
        run_combat(console, args.seed, args.max_turns)
    else:
        run_market(console, args.seed, args.tax)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
