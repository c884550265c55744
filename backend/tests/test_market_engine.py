from datetime import datetime, timedelta
from fractions import Fraction
from itertools import permutations

import pytest

from crowns.combat import ScriptedDice
from crowns.market import (
    BuyOrder,
    ExpiredListing,
    InvalidOrder,
    ListingStatus,
    MarketEngine,
    MarketListing,
    MarketRules,
    NoMatch,
    calculate_net_proceeds,
    fee_rate_for,
)

NOW = datetime(2024, 3, 1, 12, 0)


def _listing(**fields) -> MarketListing:
    data = dict(
        id="lst_1",
        item_id="iron_sword",
        asking_price=100,
        quantity=1,
        seller_id="smith",
        expires_at=NOW + timedelta(days=7),
    )
    data.update(fields)
    return MarketListing(**data)


def _order(order_id: str, bid: int, minutes: int = 0, **fields) -> BuyOrder:
    data = dict(
        id=order_id,
        listing_id="lst_1",
        buyer_id=f"buyer_{order_id}",
        bid_price=bid,
        submitted_at=NOW - timedelta(minutes=30) + timedelta(minutes=minutes),
    )
    data.update(fields)
    return BuyOrder(**data)


def _engine(*rolls: int, **rule_overrides) -> MarketEngine:
    return MarketEngine(rules=MarketRules(**rule_overrides), dice=ScriptedDice(rolls))


# ===== Scoring =====


def test_priority_score_components():
    engine = _engine()
    listing = _listing()

    plain = _order("o1", 100)
    boosted = _order("o2", 50, charisma_modifier=2, professions={"MERCHANT"}, item_bonuses=1, skill_bonuses=1)

    assert engine.priority_score(listing, plain) == pytest.approx(10.0)
    assert engine.priority_score(listing, boosted) == pytest.approx(5.0 + 2 + 5 + 1 + 1)


def test_free_listing_scores_against_one_gold():
    assert _engine().priority_score(_listing(asking_price=0), _order("o1", 3)) == pytest.approx(30.0)


def test_haggling_roll_adds_merchant_and_charisma():
    roll = _engine(11).calculate_haggling_roll(_order("o1", 100, charisma_modifier=2, professions={"MERCHANT"}))

    assert roll.natural == 11
    assert roll.total == 11 + 2 + 5
    assert [m["source"] for m in roll.to_dict()["modifiers"]] == ["CHA", "Merchant"]


# ===== Matching =====


def test_close_bids_haggle_and_the_higher_roll_wins():
    engine = _engine(5, 12)
    orders = [_order("o1", 100), _order("o2", 98, minutes=1)]

    result = engine.match_orders(_listing(), orders, NOW)

    assert [so.order.id for so in result.ranked_orders] == ["o1", "o2"]
    assert result.haggled
    assert [r.natural for r in result.haggling_rolls] == [5, 12]
    assert result.winning_order.id == "o2"

    settlement = result.settlement
    assert settlement.price == 98
    assert settlement.fee_rate == pytest.approx(0.10)
    assert settlement.fee == 9
    assert settlement.net_proceeds == 89
    assert [(r.order_id, r.amount) for r in settlement.refunds] == [("o1", 100)]
    assert result.listing.status == ListingStatus.CLOSED
    assert result.listing.quantity == 0


def test_clear_leader_wins_without_rolling():
    engine = _engine()

    result = engine.match_orders(_listing(), [_order("o1", 100), _order("o2", 70)], NOW)

    assert result.winning_order.id == "o1"
    assert not result.haggled
    assert result.contested


def test_scores_exactly_at_the_threshold_do_not_haggle():
    result = _engine().match_orders(_listing(), [_order("o1", 100), _order("o2", 80)], NOW)

    assert not result.haggled
    assert result.winning_order.id == "o1"


def test_threshold_comparison_is_exact_for_fractional_ratios():
    orders = [_order("o1", 57), _order("o2", 37, minutes=1)]

    result = _engine(1, 20).match_orders(_listing(), orders, NOW)

    assert [so.priority_score for so in result.ranked_orders] == [Fraction(57, 10), Fraction(37, 10)]
    assert result.ranked_orders[0].to_dict()["priority_score"] == 5.7
    assert result.contested
    assert not result.haggled
    assert result.winning_order.id == "o1"


def test_ranking_ignores_the_order_orders_arrive_in():
    orders = [
        _order("a", 100, minutes=0),
        _order("a_late", 100, minutes=3),
        _order("b", 99, minutes=1),
        _order("c", 90, minutes=2),
        _order("d", 60, minutes=4),
    ]

    for arrangement in permutations(orders):
        result = _engine(4, 7, 15, 9).match_orders(_listing(), list(arrangement), NOW)

        assert [so.order.id for so in result.ranked_orders] == ["a", "a_late", "b", "c", "d"]
        assert [r.order_id for r in result.haggling_rolls] == ["a", "a_late", "b", "c"]
        assert [r.natural for r in result.haggling_rolls] == [4, 7, 15, 9]
        assert result.winning_order.id == "b"


def test_merchant_priority_bonus_can_outrank_a_higher_bid():
    orders = [_order("o1", 100), _order("o2", 80, professions={"MERCHANT"})]

    result = _engine().match_orders(_listing(), orders, NOW)

    assert result.winning_order.id == "o2"
    assert result.settlement.price == 80


def test_tied_rolls_go_to_the_earlier_order():
    orders = [_order("late", 100, minutes=5), _order("early", 100, minutes=1)]

    result = _engine(10, 10).match_orders(_listing(), orders, NOW)

    assert [so.order.id for so in result.ranked_orders] == ["early", "late"]
    assert result.winning_order.id == "early"


def test_single_order_is_uncontested():
    result = _engine().match_orders(_listing(), [_order("o1", 60)], NOW)

    assert not result.contested
    assert result.settlement.refunds == ()


# ===== Fees and tax =====


def test_standard_and_merchant_seller_fees():
    standard = _engine().match_orders(_listing(), [_order("o1", 200)], NOW).settlement
    merchant = _engine().match_orders(
        _listing(seller_professions={"MERCHANT"}), [_order("o1", 200)], NOW
    ).settlement

    assert (standard.fee, standard.net_proceeds) == (20, 180)
    assert (merchant.fee, merchant.net_proceeds) == (10, 190)


def test_town_tax_is_reported():
    settlement = _engine(town_tax_rate=0.02).match_orders(_listing(), [_order("o1", 200)], NOW).settlement

    assert settlement.town_tax == 4
    assert settlement.net_proceeds == 180


def test_fee_helpers():
    assert fee_rate_for({"MERCHANT"}) == 0.05
    assert fee_rate_for({"BLACKSMITH"}) == 0.10
    assert calculate_net_proceeds(99, 0.10) == (9, 90)
    with pytest.raises(ValueError):
        calculate_net_proceeds(-1, 0.10)


def test_rules_reject_out_of_range_rates():
    with pytest.raises(ValueError):
        MarketRules(standard_fee_rate=1.0)
    with pytest.raises(ValueError):
        MarketRules(cycle_duration=timedelta(0))


# ===== Rejections =====


def test_no_order_meets_the_minimum_price():
    with pytest.raises(NoMatch) as excinfo:
        _engine().match_orders(_listing(min_price=200), [_order("o1", 150)], NOW)

    assert excinfo.value.to_dict()["error"] == "no_match"


def test_orders_below_minimum_are_ignored_not_fatal():
    orders = [_order("o1", 150), _order("o2", 210)]

    result = _engine().match_orders(_listing(min_price=200), orders, NOW)

    assert result.winning_order.id == "o2"
    assert [so.order.id for so in result.ranked_orders] == ["o2"]
    assert [r.order_id for r in result.settlement.refunds] == ["o1"]


def test_expired_listing_is_rejected():
    with pytest.raises(ExpiredListing):
        _engine().match_orders(_listing(expires_at=NOW), [_order("o1", 100)], NOW)


def test_closed_listing_is_rejected():
    with pytest.raises(ExpiredListing):
        _engine().match_orders(_listing(status=ListingStatus.CLOSED), [_order("o1", 100)], NOW)


@pytest.mark.parametrize(
    "order",
    [
        _order("o1", 100, listing_id="lst_other"),
        _order("o1", 0),
        _order("o1", 100, quantity=2),
        _order("o1", 100, quantity=0),
    ],
)
def test_malformed_orders_are_rejected(order):
    with pytest.raises(InvalidOrder):
        _engine().match_orders(_listing(), [order], NOW)


def test_repeated_order_id_is_rejected():
    orders = [_order("o1", 100), _order("o1", 90, minutes=1, buyer_id="someone_else")]

    with pytest.raises(InvalidOrder):
        _engine(10, 10).match_orders(_listing(), orders, NOW)


# ===== Quantity =====


def test_partial_quantity_leaves_the_listing_open():
    listing = _listing(quantity=5, asking_price=40)

    result = _engine().match_orders(listing, [_order("o1", 80, quantity=2)], NOW)

    assert result.settlement.quantity == 2
    assert result.listing.quantity == 3
    assert result.listing.status == ListingStatus.ACTIVE
    assert listing.quantity == 5


def test_whole_lot_when_order_names_no_quantity():
    result = _engine().match_orders(_listing(quantity=5), [_order("o1", 100)], NOW)

    assert result.settlement.quantity == 5
    assert result.listing.status == ListingStatus.CLOSED
