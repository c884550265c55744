"""
Market data models
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from fractions import Fraction
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from .rules import is_merchant


class ListingStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"


@dataclass(frozen=True)
class MarketListing:
    """An item lot offered for sale in a town market"""

    id: str
    item_id: str
    asking_price: int
    quantity: int
    seller_id: str
    expires_at: datetime
    seller_professions: FrozenSet[str] = frozenset()
    min_price: int = 0
    status: ListingStatus = ListingStatus.ACTIVE
    town_id: Optional[str] = None

    def __post_init__(self):
        if self.asking_price < 0:
            raise ValueError(f"listing {self.id}: asking price cannot be negative")
        if self.quantity < 0:
            raise ValueError(f"listing {self.id}: quantity cannot be negative")
        object.__setattr__(self, "seller_professions", frozenset(self.seller_professions))

    @property
    def is_active(self) -> bool:
        return self.status == ListingStatus.ACTIVE and self.quantity > 0

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "asking_price": self.asking_price,
            "quantity": self.quantity,
            "seller_id": self.seller_id,
            "seller_professions": sorted(self.seller_professions),
            "expires_at": self.expires_at.isoformat(),
            "min_price": self.min_price,
            "status": self.status.value,
            "town_id": self.town_id,
        }


@dataclass(frozen=True)
class BuyOrder:
    """
    A bid on one listing, placed during a market cycle.

    The bid price is held in escrow until the cycle resolves. ``quantity``
    of None means the whole lot.
    """

    id: str
    listing_id: str
    buyer_id: str
    bid_price: int
    submitted_at: datetime
    charisma_modifier: int = 0
    professions: FrozenSet[str] = frozenset()
    item_bonuses: int = 0
    skill_bonuses: int = 0
    quantity: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "professions", frozenset(self.professions))

    @property
    def is_merchant(self) -> bool:
        return is_merchant(self.professions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "listing_id": self.listing_id,
            "buyer_id": self.buyer_id,
            "bid_price": self.bid_price,
            "submitted_at": self.submitted_at.isoformat(),
            "charisma_modifier": self.charisma_modifier,
            "professions": sorted(self.professions),
            "item_bonuses": self.item_bonuses,
            "skill_bonuses": self.skill_bonuses,
            "quantity": self.quantity,
        }


@dataclass(frozen=True)
class ScoredOrder:
    order: BuyOrder
    priority_score: Fraction
    position: int  # index in the submitted order list

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order_id": self.order.id,
            "buyer_id": self.order.buyer_id,
            "bid_price": self.order.bid_price,
            "is_merchant": self.order.is_merchant,
            "priority_score": float(self.priority_score),
        }


@dataclass(frozen=True)
class HagglingRoll:
    """Tie-break roll between closely scored orders"""

    order_id: str
    buyer_id: str
    natural: int
    charisma_modifier: int
    merchant_bonus: int
    item_bonuses: int
    total: int

    def to_dict(self) -> Dict[str, Any]:
        modifiers = []
        if self.charisma_modifier:
            modifiers.append({"source": "CHA", "value": self.charisma_modifier})
        if self.merchant_bonus:
            modifiers.append({"source": "Merchant", "value": self.merchant_bonus})
        if self.item_bonuses:
            modifiers.append({"source": "Items", "value": self.item_bonuses})
        return {
            "order_id": self.order_id,
            "buyer_id": self.buyer_id,
            "raw": self.natural,
            "modifiers": modifiers,
            "total": self.total,
        }


@dataclass(frozen=True)
class Refund:
    order_id: str
    buyer_id: str
    amount: int


@dataclass(frozen=True)
class Settlement:
    """Money and goods moved by one cleared listing"""

    listing_id: str
    order_id: str
    buyer_id: str
    seller_id: str
    item_id: str
    price: int
    quantity: int
    fee_rate: float
    fee: int
    net_proceeds: int
    town_tax: int = 0
    refunds: Tuple[Refund, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "listing_id": self.listing_id,
            "order_id": self.order_id,
            "buyer_id": self.buyer_id,
            "seller_id": self.seller_id,
            "item_id": self.item_id,
            "price": self.price,
            "quantity": self.quantity,
            "fee_rate": self.fee_rate,
            "fee": self.fee,
            "net_proceeds": self.net_proceeds,
            "town_tax": self.town_tax,
            "refunds": [
                {"order_id": r.order_id, "buyer_id": r.buyer_id, "amount": r.amount}
                for r in self.refunds
            ],
        }


@dataclass(frozen=True)
class MatchResult:
    """Outcome of matching one listing"""

    listing: MarketListing  # after the sale
    winning_order: BuyOrder
    settlement: Settlement
    ranked_orders: Tuple[ScoredOrder, ...]
    haggling_rolls: Tuple[HagglingRoll, ...] = ()
    losing_orders: Tuple[BuyOrder, ...] = ()

    @property
    def contested(self) -> bool:
        """More than one buyer bid on the listing."""
        return len(self.ranked_orders) > 1

    @property
    def haggled(self) -> bool:
        return bool(self.haggling_rolls)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "listing": self.listing.to_dict(),
            "winning_order_id": self.winning_order.id,
            "settlement": self.settlement.to_dict(),
            "ranked_orders": [so.to_dict() for so in self.ranked_orders],
            "haggling_rolls": [roll.to_dict() for roll in self.haggling_rolls],
            "losing_order_ids": [order.id for order in self.losing_orders],
            "contested": self.contested,
        }


@dataclass
class PricePoint:
    avg_price: float
    volume: int


@dataclass
class PriceHistory:
    """Daily volume-weighted average sale price per item and town"""

    points: Dict[Tuple[str, Optional[str], date], PricePoint] = field(default_factory=dict)

    def record(
        self, item_id: str, town_id: Optional[str], day: date, price: int, quantity: int
    ) -> PricePoint:
        key = (item_id, town_id, day)
        point = self.points.get(key)
        if point is None:
            point = PricePoint(avg_price=float(price), volume=quantity)
            self.points[key] = point
            return point

        new_volume = point.volume + quantity
        if new_volume > 0:
            point.avg_price = (point.avg_price * point.volume + price * quantity) / new_volume
        point.volume = new_volume
        return point

    def get(self, item_id: str, town_id: Optional[str], day: date) -> Optional[PricePoint]:
        return self.points.get((item_id, town_id, day))

    def to_dict(self) -> List[Dict[str, Any]]:
        return [
            {
                "item_id": item_id,
                "town_id": town_id,
                "date": day.isoformat(),
                "avg_price": point.avg_price,
                "volume": point.volume,
            }
            for (item_id, town_id, day), point in sorted(
                self.points.items(), key=lambda kv: (kv[0][2], kv[0][0], kv[0][1] or "")
            )
        ]


@dataclass
class CycleReport:
    """Statistics for one resolved market cycle"""

    resolved_at: datetime
    orders_processed: int = 0
    transactions_completed: int = 0
    contested_listings: int = 0
    merchant_wins: int = 0
    non_merchant_wins: int = 0
    total_gold_traded: int = 0
    matches: List[MatchResult] = field(default_factory=list)
    listings: List[MarketListing] = field(default_factory=list)  # every listing after the cycle
    skipped: Dict[str, str] = field(default_factory=dict)  # listing id -> error code
    price_history: PriceHistory = field(default_factory=PriceHistory)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resolved_at": self.resolved_at.isoformat(),
            "orders_processed": self.orders_processed,
            "transactions_completed": self.transactions_completed,
            "contested_listings": self.contested_listings,
            "merchant_wins": self.merchant_wins,
            "non_merchant_wins": self.non_merchant_wins,
            "total_gold_traded": self.total_gold_traded,
            "matches": [match.to_dict() for match in self.matches],
            "skipped": dict(self.skipped),
            "price_history": self.price_history.to_dict(),
        }


@dataclass
class AuctionCycle:
    """Timing for one town's cycle; the engine itself never looks at clocks."""

    started_at: datetime
    duration: timedelta = timedelta(minutes=15)
    cycle_number: int = 1
    town_id: Optional[str] = None

    def is_due(self, now: datetime) -> bool:
        return now - self.started_at >= self.duration

    def next_cycle(self, now: datetime) -> "AuctionCycle":
        return AuctionCycle(
            started_at=now,
            duration=self.duration,
            cycle_number=self.cycle_number + 1,
            town_id=self.town_id,
        )
