"""Core module.

Shared components used across the service:
- Configuration management
- Logging setup
"""

from endorsement_distribution.core.config import (
    ConfigValidationError,
    DatabaseSettings,
    Environment,
    ResolverSettings,
    Settings,
)
from endorsement_distribution.core.log import configure_logging
from endorsement_distribution.core.settings import (
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "ConfigValidationError",
    "DatabaseSettings",
    "Environment",
    "ResolverSettings",
    "Settings",
    "clear_settings_cache",
    "configure_logging",
    "get_settings",
]
