"""
State manager for myhdf5.

Handles saving and loading application settings in a hierarchical JSON
format.  The state file is human-readable and can be edited manually if
needed.
"""

from __future__ import annotations

import json
import logging
from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from myhdf5.intake.loader import DEFAULT_SIZE_THRESHOLD
from myhdf5.intake.machine import DEFAULT_DEBOUNCE_S

log = logging.getLogger(__name__)


def get_default_state_file() -> Path:
    """
    Get the default state file path.

    Returns the path to ~/.myhdf5/state.json
    """
    state_dir = Path.home() / '.myhdf5'
    state_dir.mkdir(exist_ok=True)
    return state_dir / 'state.json'


class StateManager:
    """
    Manages persisted settings for myhdf5.

    The state is stored in a hierarchical JSON structure:
    {
        "version": "1.0",
        "intake": { ... },
        "viewer": { ... }
    }
    """

    DEFAULT_STATE = {
        "version": "1.0",
        "intake": {
            # schema_version is bumped whenever a default value changes so that
            # old saved states can be migrated automatically on load.
            "schema_version": 2,
            "size_threshold": DEFAULT_SIZE_THRESHOLD,   # bytes, inclusive
            "debounce_s": DEFAULT_DEBOUNCE_S,           # new in schema_version 2
        },
        "viewer": {
            "last_folder": "",
        },
    }

    def __init__(self, state_file: Optional[Path] = None):
        self.state_file = state_file or get_default_state_file()
        self.state = deepcopy(self.DEFAULT_STATE)
        self.load()

    def load(self) -> bool:
        """
        Load state from file.

        Returns:
            True if state was loaded, False if using defaults
        """
        if not self.state_file.exists():
            log.info(f"State file not found: {self.state_file}, using defaults")
            return False

        try:
            with open(self.state_file, 'r') as f:
                loaded_state = json.load(f)
        except (OSError, ValueError) as e:
            log.warning(f"Error loading state file {self.state_file}: {e}; using defaults")
            return False

        if not isinstance(loaded_state, dict):
            log.warning(f"State file {self.state_file} is not a JSON object; using defaults")
            return False

        # Read before merging: merged values would show the default version.
        loaded_version = loaded_state.get('intake', {}).get('schema_version', 1)
        self.state = self._merge_state(self.DEFAULT_STATE, loaded_state)
        self._migrate_state(loaded_version)
        log.debug(f"Loaded state from: {self.state_file}")
        return True

    def save(self) -> bool:
        """
        Save current state to file.

        Returns:
            True if successful, False otherwise
        """
        try:
            self.state_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.state_file, 'w') as f:
                json.dump(self.state, f, indent=2)
        except OSError as e:
            log.warning(f"Error saving state file {self.state_file}: {e}")
            return False

        log.debug(f"Saved state to: {self.state_file}")
        return True

    def get(self, section: str, key: Optional[str] = None, default: Any = None) -> Any:
        section_state = self.state.get(section, {})
        if key is None:
            return section_state
        return section_state.get(key, default)

    def set(self, section: str, key: str, value: Any):
        self.state.setdefault(section, {})[key] = value

    def update(self, section: str, state_dict: Dict[str, Any]):
        self.state.setdefault(section, {}).update(state_dict)

    def reset(self, section: Optional[str] = None):
        """Reset one section, or everything when *section* is None."""
        if section is None:
            self.state = deepcopy(self.DEFAULT_STATE)
        elif section in self.DEFAULT_STATE:
            self.state[section] = deepcopy(self.DEFAULT_STATE[section])

    def _migrate_state(self, loaded_version: int):
        intake = self.state.get('intake', {})
        target_version = self.DEFAULT_STATE['intake']['schema_version']

        if loaded_version < 2 <= target_version:
            # schema_version 1 → 2: debounce_s added
            intake['debounce_s'] = self.DEFAULT_STATE['intake']['debounce_s']
            intake['schema_version'] = 2
            self.state['intake'] = intake

    def _merge_state(self, default: Dict, loaded: Dict) -> Dict:
        """Loaded values win; keys missing from *loaded* keep their defaults."""
        merged = deepcopy(default)
        for key, value in loaded.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = self._merge_state(merged[key], value)
            else:
                merged[key] = value
        return merged


@dataclass(frozen=True)
class IntakeSettings:
    """Intake policy frozen for the lifetime of one running instance."""

    size_threshold: int = DEFAULT_SIZE_THRESHOLD
    debounce_s: float = DEFAULT_DEBOUNCE_S

    @classmethod
    def from_state(cls, manager: StateManager) -> "IntakeSettings":
        section = manager.get('intake')
        threshold = section.get('size_threshold', DEFAULT_SIZE_THRESHOLD)
        debounce = section.get('debounce_s', DEFAULT_DEBOUNCE_S)
        try:
            threshold = int(threshold)
            debounce = float(debounce)
        except (TypeError, ValueError):
            log.warning("Invalid intake settings in state file; using defaults")
            return cls()
        if threshold <= 0:
            log.warning(f"Ignoring non-positive size_threshold {threshold}")
            threshold = DEFAULT_SIZE_THRESHOLD
        return cls(size_threshold=threshold, debounce_s=max(0.0, debounce))
