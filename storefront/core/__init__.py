"""
Core module: settings, logging setup and the application error types.
"""

from storefront.core.config import EnvironmentMode, Settings, get_settings, setup_logging
from storefront.core.errors import StorefrontError

__all__ = ["EnvironmentMode", "Settings", "StorefrontError", "get_settings", "setup_logging"]
