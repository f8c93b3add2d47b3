"""
Configuration settings for the CLAMM engine

Loads environment variables and provides engine/CLI configuration.
"""
import logging
import os

from dotenv import load_dotenv

from .constants import FEE_TIERS, TICK_SPACINGS

# Load environment variables from .env file
load_dotenv()


class Settings:
    """Engine settings"""

    # Logging
    LOG_LEVEL: str = os.getenv("CLAMM_LOG_LEVEL", "INFO").upper()
    LOG_FORMAT: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"

    # Pool defaults
    DEFAULT_FEE_TIER: int = int(os.getenv("CLAMM_DEFAULT_FEE_TIER", 3000))

    # Scenario runner
    SCENARIO_DIR: str = os.getenv("CLAMM_SCENARIO_DIR", "scenarios")

    def get_tick_spacing(self, fee_tier: int) -> int:
        """Tick spacing for a fee tier (pips)"""
        if fee_tier not in TICK_SPACINGS:
            raise ValueError(f"Unknown fee tier {fee_tier}, expected one of {sorted(FEE_TIERS)}")
        return TICK_SPACINGS[fee_tier]


# Create global settings instance
settings = Settings()


def setup_logging(level: str = None) -> None:
    """Configure the root logger. Library code never calls this; the CLI does."""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL),
        format=settings.LOG_FORMAT,
    )
