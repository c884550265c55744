"""Rejections raised by the market engine."""
from typing import Optional


class MarketError(Exception):
    """Base class for market matching failures."""

    code = "market_error"

    def __init__(self, reason: str, listing_id: Optional[str] = None) -> None:
        self.reason = reason
        self.listing_id = listing_id
        super().__init__(reason)

    def to_dict(self) -> dict:
        return {"error": self.code, "reason": self.reason, "listing_id": self.listing_id}


class NoMatch(MarketError):
    """No order meets the listing's minimum price."""

    code = "no_match"


class ExpiredListing(MarketError):
    """Matching attempted past expiry or on a closed listing."""

    code = "expired_listing"


class InvalidOrder(MarketError):
    """Order malformed or aimed at another listing."""

    code = "invalid_order"
