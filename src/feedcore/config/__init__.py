"""Configuration module for feedcore."""

from .settings import Settings, get_settings, settings
from .constants import AlertSeverity, MarketItemType, SEVERITY_ORDER

__all__ = [
    "Settings",
    "get_settings",
    "settings",
    "AlertSeverity",
    "MarketItemType",
    "SEVERITY_ORDER",
]
