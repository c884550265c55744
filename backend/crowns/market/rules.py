"""
Market rules (batch auction with competitive bidding)

Constants are grouped in an immutable ``MarketRules`` value that is injected
into the engine.
"""
from dataclasses import dataclass
from datetime import timedelta
from typing import Iterable, Tuple

MERCHANT = "MERCHANT"


def is_merchant(professions: Iterable[str]) -> bool:
    return MERCHANT in professions


def can_view_price_history(professions: Iterable[str]) -> bool:
    """Price history is a Merchant perk."""
    return is_merchant(professions)


@dataclass(frozen=True)
class MarketRules:
    """Market constants"""

    # Seller fees
    standard_fee_rate: float = 0.10
    merchant_fee_rate: float = 0.05

    # Buyer bonuses
    merchant_priority_bonus: int = 5
    merchant_roll_bonus: int = 5

    # Orders scoring within this many points of the top score haggle
    priority_tie_threshold: float = 2

    # Timing
    cycle_duration: timedelta = timedelta(minutes=15)
    listing_duration: timedelta = timedelta(days=7)

    # Town tax, reported alongside the fee
    town_tax_rate: float = 0.0

    def __post_init__(self):
        for name in ("standard_fee_rate", "merchant_fee_rate", "town_tax_rate"):
            rate = getattr(self, name)
            if not 0.0 <= rate < 1.0:
                raise ValueError(f"{name} must be in [0, 1), got {rate}")
        if self.cycle_duration <= timedelta(0):
            raise ValueError("cycle_duration must be positive")

    def fee_rate_for(self, seller_professions: Iterable[str]) -> float:
        return self.merchant_fee_rate if is_merchant(seller_professions) else self.standard_fee_rate


DEFAULT_MARKET_RULES = MarketRules()


def fee_rate_for(seller_professions: Iterable[str], rules: MarketRules = DEFAULT_MARKET_RULES) -> float:
    """5% for Merchant sellers, 10% for everyone else."""
    return rules.fee_rate_for(seller_professions)


def calculate_net_proceeds(price: int, fee_rate: float) -> Tuple[int, int]:
    """
    Split a sale price into the house fee and the seller's net.

    Returns:
        Tuple[int, int]: (fee, net); fee is floor(price * fee_rate)
    """
    if price < 0:
        raise ValueError(f"price cannot be negative: {price}")
    fee = int(price * fee_rate)
    return fee, price - fee
