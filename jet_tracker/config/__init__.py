"""Configuration: environment settings and static search vocabulary."""

from jet_tracker.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
