"""
Configuration modules for overlay generation.
"""

from .overlay import Bounds, OverlayConfig
from .settings import Settings, settings
from .log_config import configure_logging

__all__ = ['Bounds', 'OverlayConfig', 'Settings', 'settings', 'configure_logging']
