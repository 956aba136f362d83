"""
Storage Layer.

This package handles all data persistence: the configuration file and the
installed release tag kept under the installation root.
"""

from .config_manager import ConfigManager
from .state_store import STATE_FILE_NAME, StateStore

__all__ = ["STATE_FILE_NAME", "ConfigManager", "StateStore"]
