"""
Core infrastructure for the trip ledger.

This module provides:
- Config: Configuration management
- Money: Currency-safe arithmetic
- Errors: Exception taxonomy
"""

from .config import ConfigManager, get_config
from .errors import InvalidConfigurationError, TripLedgerError

__all__ = ["ConfigManager", "get_config", "InvalidConfigurationError", "TripLedgerError"]
