"""
Core module initialization.
Exports configuration, logging and session utilities.
"""

from cocktail_menu.core.config import get_settings, Settings, setup_logging
from cocktail_menu.core.sessions import SessionStore, SessionData

__all__ = ["get_settings", "Settings", "setup_logging", "SessionStore", "SessionData"]
