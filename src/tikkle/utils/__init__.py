"""Utility modules for tikkle."""

from tikkle.utils.dates import day_bounds, parse_range
from tikkle.utils.logging import get_logger, setup_logging
from tikkle.utils.storage import StorageManager

__all__ = ["day_bounds", "get_logger", "parse_range", "setup_logging", "StorageManager"]
