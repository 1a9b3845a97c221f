# Configuration module for the session store
from .settings import (
    ConfigurationError,
    Settings,
    clear_settings_cache,
    get_settings,
    load_settings,
)

__all__ = [
    "ConfigurationError",
    "Settings",
    "clear_settings_cache",
    "get_settings",
    "load_settings",
]
