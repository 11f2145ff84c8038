"""Configuration modules for SMART Vitals."""

from smart_vitals.config.logging import configure_logging, get_logger
from smart_vitals.config.settings import Settings, get_settings, reset_settings

__all__ = [
    "Settings",
    "get_settings",
    "reset_settings",
    "configure_logging",
    "get_logger",
]
