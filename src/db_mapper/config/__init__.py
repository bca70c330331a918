"""Configuration management: profiles, TOML loading, environment settings.

Usage:
    >>> from db_mapper.config import load_db_config, DatabaseProfile, DatabaseConfig
    >>> from db_mapper.config import get_settings
"""

from db_mapper.config.loader import load_db_config
from db_mapper.config.models import DatabaseConfig, DatabaseProfile
from db_mapper.config.settings import Settings, get_settings

__all__ = ["load_db_config", "DatabaseConfig", "DatabaseProfile", "Settings", "get_settings"]
