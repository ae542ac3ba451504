"""
Configuration Management
========================
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional
from dataclasses import dataclass, field

import yaml

from .presets import normalize_code

logger = logging.getLogger(__name__)


DEFAULT_PARAMETERS = {
    'brightness': '0x10',
    'contrast': '0x12',
    'red_gain': '0x16',
    'green_gain': '0x18',
    'blue_gain': '0x1a',
}


@dataclass
class StorageConfig:
    """Where custom presets are persisted."""
    path: Path = field(default_factory=lambda: Path.home() / ".config" / "radiant-control" / "presets")
    key: str = "custom_presets"


@dataclass
class SelectionConfig:
    """Preset selection behaviour."""
    per_display: bool = False  # False = one selection shared by all displays


@dataclass
class DispatchConfig:
    """Set-value command dispatch."""
    threaded: bool = True


class Config:
    """
    Configuration manager for Radiant Control.

    Handles loading, saving, and accessing configuration settings.
    """

    DEFAULT_CONFIG_PATH = Path.home() / ".config" / "radiant-control" / "config.yaml"

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize configuration.

        Args:
            config_path: Path to configuration file, or None for default
        """
        self.config_path = Path(config_path) if config_path else self.DEFAULT_CONFIG_PATH
        self._data: Dict[str, Any] = {}

        self.storage = StorageConfig()
        self.selection = SelectionConfig()
        self.dispatch = DispatchConfig()
        self.parameters: Dict[str, str] = dict(DEFAULT_PARAMETERS)

        # App state (persisted settings)
        self.last_selected_display_id: Optional[str] = None
        self.startup_preset: Optional[str] = None

    def load(self) -> bool:
        """
        Load configuration from file.

        Returns:
            True if configuration was loaded successfully
        """
        if not self.config_path.exists():
            logger.warning(f"Configuration file not found: {self.config_path}")
            return False

        try:
            with open(self.config_path, 'r') as f:
                self._data = yaml.safe_load(f) or {}
            if not isinstance(self._data, dict):
                logger.error(f"Configuration must be a mapping: {self.config_path}")
                self._data = {}
                return False

            self._parse_config()
            logger.info(f"Loaded configuration from {self.config_path}")
            return True

        except yaml.YAMLError as e:
            logger.error(f"Failed to parse configuration: {e}")
            return False
        except Exception as e:
            logger.error(f"Failed to load configuration: {e}")
            return False

    def _section(self, name: str) -> Dict[str, Any]:
        section = self._data.get(name) or {}
        if not isinstance(section, dict):
            raise ValueError(f"Section '{name}' must be a mapping, got {type(section).__name__}")
        return section

    def _parse_config(self):
        """
        Parse loaded configuration data into typed objects.

        Nothing is applied unless every section parses.
        """
        storage = self._section('storage')
        selection = self._section('selection')
        dispatch = self._section('dispatch')
        aliases = self._section('parameters')
        app_state = self._section('app_state')

        default_storage = StorageConfig()
        path = storage.get('path')
        storage_config = StorageConfig(
            path=Path(path).expanduser() if path else default_storage.path,
            key=str(storage.get('key', default_storage.key)),
        )

        # Parameter aliases (name -> code)
        parameters = dict(DEFAULT_PARAMETERS)
        for name, code in aliases.items():
            try:
                parameters[str(name).lower()] = normalize_code(code)
            except ValueError as e:
                logger.warning(f"Ignoring parameter alias '{name}': {e}")

        self.storage = storage_config
        self.selection = SelectionConfig(per_display=bool(selection.get('per_display', False)))
        self.dispatch = DispatchConfig(threaded=bool(dispatch.get('threaded', True)))
        self.parameters = parameters
        self.last_selected_display_id = app_state.get('last_selected_display_id')
        self.startup_preset = app_state.get('startup_preset')

    def save(self) -> bool:
        """
        Save current configuration to file.

        Returns:
            True if configuration was saved successfully
        """
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, 'w') as f:
                yaml.safe_dump(self._data, f, default_flow_style=False, sort_keys=False)
            logger.info(f"Saved configuration to {self.config_path}")
            return True
        except OSError as e:
            logger.error(f"Failed to save configuration: {e}")
            return False

    def resolve_code(self, name_or_code) -> str:
        """
        Resolve a parameter alias or raw code to a canonical code.

        Raises:
            ValueError: If neither an alias nor a valid code
        """
        return normalize_code(name_or_code, self.parameters)

    def get_parameter_name(self, code: str) -> str:
        """Get the alias of a parameter code, or the code itself."""
        for name, value in self.parameters.items():
            if value == code:
                return name
        return code

    def _set_app_state(self, key: str, value: Any) -> bool:
        if 'app_state' not in self._data or not isinstance(self._data['app_state'], dict):
            self._data['app_state'] = {}
        if value is None:
            self._data['app_state'].pop(key, None)
        else:
            self._data['app_state'][key] = value
        return self.save()

    def set_last_selected_display(self, display_id: Optional[str]) -> bool:
        """
        Remember the display the user looked at last.

        Returns:
            True if successfully saved
        """
        if display_id == self.last_selected_display_id:
            return True
        self.last_selected_display_id = display_id
        logger.info(f"Last selected display: {display_id}")
        return self._set_app_state('last_selected_display_id', display_id)

    def set_startup_preset(self, preset_id: Optional[str]) -> bool:
        """
        Set the preset applied to the first display that becomes ready.

        Args:
            preset_id: Preset id, or None to disable

        Returns:
            True if successfully saved
        """
        self.startup_preset = preset_id
        logger.info(f"Startup preset {'set to ' + preset_id if preset_id else 'disabled'}")
        return self._set_app_state('startup_preset', preset_id)
