"""
Configuration management.

Rule constants live in immutable structures (``CombatRules`` / ``MarketRules``)
that are built from these settings and injected into the engines.
"""
import logging
import os
from datetime import timedelta
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

from crowns.combat.rules import CombatRules
from crowns.market.rules import MarketRules

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def _optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else None


class Settings(BaseModel):
    """Application settings."""

    # Logging
    log_level: str = os.getenv("CROWNS_LOG_LEVEL", "INFO")

    # Combat
    combat_max_rounds: int = int(os.getenv("CROWNS_COMBAT_MAX_ROUNDS", "50"))
    combat_base_flee_dc: int = int(os.getenv("CROWNS_FLEE_DC", "10"))

    # Market
    market_cycle_minutes: int = int(os.getenv("CROWNS_MARKET_CYCLE_MINUTES", "15"))
    market_town_tax_rate: float = float(os.getenv("CROWNS_TOWN_TAX_RATE", "0.0"))

    # Dice (unset means a fresh system seed per process)
    rng_seed: Optional[int] = _optional_int("CROWNS_RNG_SEED")

    model_config = ConfigDict(case_sensitive=False)

    def combat_rules(self) -> CombatRules:
        return CombatRules(
            max_rounds=self.combat_max_rounds,
            base_flee_dc=self.combat_base_flee_dc,
        )

    def market_rules(self) -> MarketRules:
        return MarketRules(
            cycle_duration=timedelta(minutes=self.market_cycle_minutes),
            town_tax_rate=self.market_town_tax_rate,
        )


# Global settings instance
settings = Settings()


def configure_logging(level: Optional[str] = None) -> None:
    """Install a root handler at the configured level."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def validate_config(config: Optional[Settings] = None) -> bool:
    """
    Check that the settings describe a usable rule set.

    Returns:
        bool: whether the configuration is valid
    """
    config = config or settings

    if config.combat_max_rounds <= 0:
        logger.warning("CROWNS_COMBAT_MAX_ROUNDS must be positive, got %s", config.combat_max_rounds)
        return False

    if config.market_cycle_minutes <= 0:
        logger.warning(
            "CROWNS_MARKET_CYCLE_MINUTES must be positive, got %s", config.market_cycle_minutes
        )
        return False

    if not 0.0 <= config.market_town_tax_rate < 1.0:
        logger.warning("CROWNS_TOWN_TAX_RATE out of range: %s", config.market_town_tax_rate)
        return False

    return True
