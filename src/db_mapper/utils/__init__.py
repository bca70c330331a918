"""Shared utilities.

Usage:
    from db_mapper.utils import configure_logging
"""

from db_mapper.utils.logging import JsonFormatter, configure_logging

__all__ = ["configure_logging", "JsonFormatter"]
