"""
Market matching engine

Batch auction: buy orders collected during a cycle are matched against each
listing at the cycle boundary. Highest priority score wins; closely scored
orders settle it with a haggling roll.
"""
import copy
import logging
from collections import OrderedDict
from dataclasses import replace
from datetime import datetime
from fractions import Fraction
from typing import Dict, Iterable, List, Optional, Sequence

from crowns.combat.dice import DiceRoller

from .errors import ExpiredListing, InvalidOrder, MarketError, NoMatch
from .models import (
    BuyOrder,
    CycleReport,
    HagglingRoll,
    ListingStatus,
    MarketListing,
    MatchResult,
    PriceHistory,
    Refund,
    ScoredOrder,
    Settlement,
)
from .rules import DEFAULT_MARKET_RULES, MarketRules, calculate_net_proceeds

logger = logging.getLogger(__name__)


class MarketEngine:
    """Stateless matcher; listings and orders are passed in and returned, never mutated."""

    def __init__(self, rules: Optional[MarketRules] = None, dice: Optional[DiceRoller] = None):
        self.rules = rules or DEFAULT_MARKET_RULES
        self.dice = dice or DiceRoller()

    # ============================================
    # Scoring
    # ============================================

    def priority_score(self, listing: MarketListing, order: BuyOrder) -> Fraction:
        """
        Priority of an order against a listing.

        (bid / asking) * 10 + CHA modifier + Merchant bonus + item and skill bonuses.
        An asking price of 0 is treated as 1. The score is an exact fraction so
        the haggling threshold compares without rounding.
        """
        bid_ratio = Fraction(order.bid_price, max(listing.asking_price, 1)) * 10
        merchant_bonus = self.rules.merchant_priority_bonus if order.is_merchant else 0
        return (
            bid_ratio
            + order.charisma_modifier
            + merchant_bonus
            + order.item_bonuses
            + order.skill_bonuses
        )

    def calculate_haggling_roll(self, order: BuyOrder) -> HagglingRoll:
        """1d20 + CHA modifier + Merchant roll bonus + item bonuses."""
        natural = self.dice.d20()
        merchant_bonus = self.rules.merchant_roll_bonus if order.is_merchant else 0
        return HagglingRoll(
            order_id=order.id,
            buyer_id=order.buyer_id,
            natural=natural,
            charisma_modifier=order.charisma_modifier,
            merchant_bonus=merchant_bonus,
            item_bonuses=order.item_bonuses,
            total=natural + order.charisma_modifier + merchant_bonus + order.item_bonuses,
        )

    # ============================================
    # Matching
    # ============================================

    def match_orders(
        self,
        listing: MarketListing,
        orders: Sequence[BuyOrder],
        now: Optional[datetime] = None,
    ) -> MatchResult:
        """
        Match competing orders against one listing.

        Raises:
            ExpiredListing: the listing is closed, sold out, or past expiry at ``now``
            InvalidOrder: an order is malformed or its id repeats
            NoMatch: no order reaches the listing's minimum price
        """
        if not listing.is_active:
            raise ExpiredListing(f"listing {listing.id} is closed", listing.id)
        if now is not None and listing.is_expired(now):
            raise ExpiredListing(
                f"listing {listing.id} expired at {listing.expires_at.isoformat()}", listing.id
            )
        seen_ids = set()
        for order in orders:
            self._validate_order(listing, order)
            if order.id in seen_ids:
                raise InvalidOrder(f"order id {order.id} submitted twice", listing.id)
            seen_ids.add(order.id)

        eligible = [
            ScoredOrder(order=order, priority_score=self.priority_score(listing, order), position=index)
            for index, order in enumerate(orders)
            if order.bid_price >= listing.min_price
        ]
        if not eligible:
            raise NoMatch(
                f"no order on listing {listing.id} meets the minimum of {listing.min_price}",
                listing.id,
            )

        ranked = sorted(
            eligible,
            key=lambda so: (-so.priority_score, so.order.submitted_at, so.position),
        )

        top_score = ranked[0].priority_score
        threshold = Fraction(str(self.rules.priority_tie_threshold))
        contenders = [so for so in ranked if top_score - so.priority_score < threshold]

        rolls: List[HagglingRoll] = []
        winner = ranked[0]
        if len(contenders) > 1:
            rolls = [self.calculate_haggling_roll(so.order) for so in contenders]
            best = sorted(
                zip(rolls, contenders),
                key=lambda pair: (-pair[0].total, pair[1].order.submitted_at, pair[1].position),
            )[0]
            winner = best[1]

        winning_order = winner.order
        losing_orders = tuple(order for order in orders if order.id != winning_order.id)
        quantity = min(winning_order.quantity or listing.quantity, listing.quantity)
        settlement = self._settle(listing, winning_order, quantity, losing_orders)

        remaining = listing.quantity - quantity
        updated_listing = replace(
            listing,
            quantity=remaining,
            status=ListingStatus.CLOSED if remaining == 0 else listing.status,
        )

        logger.debug(
            "Listing %s sold to %s for %d (%d bidders, haggled=%s)",
            listing.id,
            winning_order.buyer_id,
            settlement.price,
            len(orders),
            bool(rolls),
        )
        return MatchResult(
            listing=updated_listing,
            winning_order=winning_order,
            settlement=settlement,
            ranked_orders=tuple(ranked),
            haggling_rolls=tuple(rolls),
            losing_orders=losing_orders,
        )

    def resolve_cycle(
        self,
        listings: Iterable[MarketListing],
        orders: Iterable[BuyOrder],
        now: datetime,
        price_history: Optional[PriceHistory] = None,
    ) -> CycleReport:
        """
        Resolve every listing with pending orders at a cycle boundary.

        Each listing is matched on its own; a listing that cannot be matched
        (expired, no qualifying bid, bad order) is recorded in ``skipped`` and
        left unchanged. The given price history is copied, not mutated.
        """
        report = CycleReport(
            resolved_at=now,
            price_history=copy.deepcopy(price_history) if price_history else PriceHistory(),
        )

        pending: Dict[str, List[BuyOrder]] = OrderedDict()
        for order in orders:
            pending.setdefault(order.listing_id, []).append(order)

        known_ids = set()
        for listing in listings:
            known_ids.add(listing.id)
            listing_orders = pending.get(listing.id, [])
            if not listing_orders:
                report.listings.append(listing)
                continue

            try:
                match = self.match_orders(listing, listing_orders, now)
            except MarketError as exc:
                logger.info("Listing %s skipped: %s", listing.id, exc.reason)
                report.skipped[listing.id] = exc.code
                report.listings.append(listing)
                continue

            report.listings.append(match.listing)
            report.matches.append(match)
            report.orders_processed += len(listing_orders)
            report.transactions_completed += 1
            if match.contested:
                report.contested_listings += 1
            if match.winning_order.is_merchant:
                report.merchant_wins += 1
            else:
                report.non_merchant_wins += 1
            report.total_gold_traded += match.settlement.price
            report.price_history.record(
                listing.item_id,
                listing.town_id,
                now.date(),
                match.settlement.price,
                match.settlement.quantity,
            )

        for listing_id in pending:
            if listing_id not in known_ids:
                logger.warning("Orders for unknown listing %s ignored", listing_id)
                report.skipped[listing_id] = InvalidOrder.code

        logger.info(
            "Market cycle resolved: %d orders, %d transactions, %d gold traded",
            report.orders_processed,
            report.transactions_completed,
            report.total_gold_traded,
        )
        return report

    # ============================================
    # Helpers
    # ============================================

    @staticmethod
    def _validate_order(listing: MarketListing, order: BuyOrder) -> None:
        if order.listing_id != listing.id:
            raise InvalidOrder(f"order {order.id} targets listing {order.listing_id}", listing.id)
        if order.bid_price <= 0:
            raise InvalidOrder(f"order {order.id} bids {order.bid_price}", listing.id)
        if order.quantity is not None and not 0 < order.quantity <= listing.quantity:
            raise InvalidOrder(
                f"order {order.id} wants {order.quantity} of {listing.quantity}", listing.id
            )

    def _settle(
        self,
        listing: MarketListing,
        order: BuyOrder,
        quantity: int,
        losing_orders: Sequence[BuyOrder],
    ) -> Settlement:
        price = order.bid_price
        fee_rate = self.rules.fee_rate_for(listing.seller_professions)
        fee, net = calculate_net_proceeds(price, fee_rate)
        return Settlement(
            listing_id=listing.id,
            order_id=order.id,
            buyer_id=order.buyer_id,
            seller_id=listing.seller_id,
            item_id=listing.item_id,
            price=price,
            quantity=quantity,
            fee_rate=fee_rate,
            fee=fee,
            net_proceeds=net,
            town_tax=int(price * self.rules.town_tax_rate),
            refunds=tuple(
                Refund(order_id=o.id, buyer_id=o.buyer_id, amount=o.bid_price) for o in losing_orders
            ),
        )
