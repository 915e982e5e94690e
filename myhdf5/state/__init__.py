"""
Settings management for myhdf5.

This module handles saving and loading application settings across sessions.
"""

from .state_manager import StateManager, IntakeSettings, get_default_state_file

__all__ = ['StateManager', 'IntakeSettings', 'get_default_state_file']
