"""
Configuration Module

Settings for the voice order resolver (database, correction cache,
matching thresholds, logging).
"""

from .settings import settings, get_settings, Settings

__all__ = ["settings", "get_settings", "Settings"]
