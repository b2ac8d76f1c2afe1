"""Configuration package."""

from recurrence_engine.config.settings import (
    EngineSettings,
    Settings,
    get_settings,
)

__all__ = [
    "EngineSettings",
    "Settings",
    "get_settings",
]
