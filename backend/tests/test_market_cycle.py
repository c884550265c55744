from datetime import date, datetime, timedelta

from crowns.combat import ScriptedDice
from crowns.market import (
    AuctionCycle,
    BuyOrder,
    ListingStatus,
    MarketEngine,
    MarketListing,
    PriceHistory,
    can_view_price_history,
)

NOW = datetime(2024, 3, 1, 12, 0)
EXPIRES = NOW + timedelta(days=7)
PLACED = NOW - timedelta(minutes=10)


def _order(order_id: str, listing_id: str, bid: int, **fields) -> BuyOrder:
    return BuyOrder(
        id=order_id,
        listing_id=listing_id,
        buyer_id=f"buyer_{order_id}",
        bid_price=bid,
        submitted_at=PLACED,
        **fields,
    )


def _market():
    listings = [
        MarketListing(
            id="sword", item_id="iron_sword", asking_price=100, quantity=1,
            seller_id="smith", expires_at=EXPIRES, town_id="kingshold",
        ),
        MarketListing(
            id="herbs", item_id="silverleaf", asking_price=40, quantity=5,
            seller_id="herbalist", expires_at=EXPIRES, town_id="kingshold",
        ),
        MarketListing(
            id="idle", item_id="rope", asking_price=5, quantity=1,
            seller_id="weaver", expires_at=EXPIRES, town_id="kingshold",
        ),
        MarketListing(
            id="stale", item_id="old_boot", asking_price=5, quantity=1,
            seller_id="cobbler", expires_at=NOW - timedelta(hours=1), town_id="kingshold",
        ),
    ]
    orders = [
        _order("o1", "sword", 100),
        _order("o2", "sword", 95, professions={"MERCHANT"}),
        _order("o3", "herbs", 120),
        _order("o4", "stale", 5),
        _order("o5", "ghost", 50),
    ]
    return listings, orders


def test_cycle_report_counts():
    listings, orders = _market()
    engine = MarketEngine(dice=ScriptedDice([]))

    report = engine.resolve_cycle(listings, orders, NOW)

    assert report.orders_processed == 3
    assert report.transactions_completed == 2
    assert report.contested_listings == 1
    assert report.merchant_wins == 1
    assert report.non_merchant_wins == 1
    assert report.total_gold_traded == 95 + 120
    assert report.skipped == {"stale": "expired_listing", "ghost": "invalid_order"}


def test_cycle_returns_every_listing_in_its_new_state():
    listings, orders = _market()

    report = MarketEngine(dice=ScriptedDice([])).resolve_cycle(listings, orders, NOW)

    by_id = {listing.id: listing for listing in report.listings}
    assert by_id["sword"].status == ListingStatus.CLOSED
    assert by_id["herbs"].quantity == 0
    assert by_id["idle"] == listings[2]
    assert by_id["stale"] == listings[3]
    assert listings[0].status == ListingStatus.ACTIVE


def test_cycle_records_prices_without_touching_the_given_history():
    listings, orders = _market()
    history = PriceHistory()
    history.record("iron_sword", "kingshold", NOW.date(), 110, 1)

    report = MarketEngine(dice=ScriptedDice([])).resolve_cycle(listings, orders, NOW, history)

    point = report.price_history.get("iron_sword", "kingshold", NOW.date())
    assert point.volume == 2
    assert point.avg_price == (110 + 95) / 2
    assert history.get("iron_sword", "kingshold", NOW.date()).volume == 1
    assert report.to_dict()["transactions_completed"] == 2


def test_price_history_is_volume_weighted():
    history = PriceHistory()
    day = date(2024, 3, 1)

    history.record("silverleaf", None, day, 100, 1)
    point = history.record("silverleaf", None, day, 200, 3)

    assert point.avg_price == 175
    assert point.volume == 4
    assert history.to_dict() == [
        {"item_id": "silverleaf", "town_id": None, "date": "2024-03-01", "avg_price": 175.0, "volume": 4}
    ]


def test_auction_cycle_timing():
    cycle = AuctionCycle(started_at=NOW, town_id="kingshold")

    assert not cycle.is_due(NOW + timedelta(minutes=14))
    assert cycle.is_due(NOW + timedelta(minutes=15))

    following = cycle.next_cycle(NOW + timedelta(minutes=15))
    assert following.cycle_number == 2
    assert following.started_at == NOW + timedelta(minutes=15)
    assert following.town_id == "kingshold"


def test_price_history_is_a_merchant_perk():
    assert can_view_price_history({"MERCHANT", "HERBALIST"})
    assert not can_view_price_history({"HERBALIST"})
