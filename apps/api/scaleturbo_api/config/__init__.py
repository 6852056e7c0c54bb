"""Configuration: environment resolution and injected settings."""

from scaleturbo_api.config.settings import Settings, get_settings, load_settings

__all__ = ["Settings", "get_settings", "load_settings"]
