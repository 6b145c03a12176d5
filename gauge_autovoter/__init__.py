"""Gauge Auto-Voter - commits stored gauge votes for escrow holders every epoch."""

__version__ = "0.1.0"

from .shared.config import BotConfig
from .votes import AutoVoter

__all__ = ["AutoVoter", "BotConfig"]
