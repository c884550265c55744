"""Market matching package."""

from .engine import MarketEngine
from .errors import ExpiredListing, InvalidOrder, MarketError, NoMatch
from .models import (
    AuctionCycle,
    BuyOrder,
    CycleReport,
    HagglingRoll,
    ListingStatus,
    MarketListing,
    MatchResult,
    PriceHistory,
    ScoredOrder,
    Settlement,
)
from .rules import MarketRules, calculate_net_proceeds, can_view_price_history, fee_rate_for

__all__ = [
    "MarketEngine",
    "ExpiredListing",
    "InvalidOrder",
    "MarketError",
    "NoMatch",
    "AuctionCycle",
    "BuyOrder",
    "CycleReport",
    "HagglingRoll",
    "ListingStatus",
    "MarketListing",
    "MatchResult",
    "PriceHistory",
    "ScoredOrder",
    "Settlement",
    "MarketRules",
    "calculate_net_proceeds",
    "can_view_price_history",
    "fee_rate_for",
]
