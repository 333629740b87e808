"""
Settings Management System for Constellation

This module provides settings management with JSON-based configuration storage
and default values shipped with the package.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from constellation.utils.helpers import get_resource_base_path, load_json_file, save_json_file


class SettingsManager:
    """
    Settings management system for Constellation.

    This class handles:
    - Loading default values from the packaged configuration file
    - Loading and saving user overrides to a JSON file
    - Runtime settings access and modification
    """

    DEFAULTS_FILE = "defaults.json"
    SETTINGS_FILE = "settings.json"

    def __init__(self):
        """Initialize the settings manager."""
        self.logger = logging.getLogger("Constellation")
        self.settings_file: Optional[Path] = None
        self.current_settings: Dict[str, Any] = self._get_default_settings()
        self._is_loaded = False

        self.logger.info("Settings manager initialized")

    def _get_default_settings(self) -> Dict[str, Any]:
        """Load default configuration from resources."""
        config_path = get_resource_base_path() / "config" / self.DEFAULTS_FILE
        if not config_path.exists():
            self.logger.warning(f"Default config file not found: {config_path}")
            return {}

        return load_json_file(config_path) or {}

    def initialize(self, settings_dir: Path) -> bool:
        """
        Initialize the settings manager and load settings.

        Args:
            settings_dir: Directory where the settings file should be stored

        Returns:
            bool: True if initialization was successful
        """
        try:
            self.logger.info("Initializing settings manager...")

            settings_dir.mkdir(parents=True, exist_ok=True)
            self.settings_file = settings_dir / self.SETTINGS_FILE
            self._load_settings()

            self._is_loaded = True

            self.logger.info("Settings manager initialized successfully")
            return True

        except OSError as e:
            self.logger.error(f"Failed to initialize settings manager: {e}")
            return False

    def read(self, setting_name: str, default: Any = None) -> Any:
        """
        Read a setting value.

        Args:
            setting_name: Name of the setting to read
            default: Default value if setting doesn't exist

        Returns:
            Any: Setting value or default
        """
        return self.current_settings.get(setting_name, default)

    def store(self, setting_name: str, value: Any) -> bool:
        """
        Store a setting value.

        Args:
            setting_name: Name of the setting to store
            value: Value to store

        Returns:
            bool: True if setting was stored successfully
        """
        if not self._is_loaded:
            self.logger.warning("Settings not loaded, cannot store setting")
            return False

        self.current_settings[setting_name] = value
        self.logger.debug(f"Setting '{setting_name}' = {value}")
        return True

    def save(self) -> bool:
        """
        Save current settings to file.

        Returns:
            bool: True if settings were saved successfully
        """
        if not self.settings_file:
            self.logger.error("Settings file not set")
            return False

        self.logger.debug(f"Saving settings to {self.settings_file}")
        return save_json_file(self.settings_file, self.current_settings)

    def _load_settings(self):
        """Load settings from file on top of the defaults."""
        self.current_settings = self._get_default_settings()

        if self.settings_file.exists():
            self.logger.info(f"Loading settings from {self.settings_file}")
            loaded = load_json_file(self.settings_file)
            if isinstance(loaded, dict):
                self.current_settings.update(loaded)
            else:
                self.logger.error("Failed to load settings, using defaults")
        else:
            self.logger.info("No settings file found, using defaults")
            self.save()

    def get_all_settings(self) -> Dict[str, Any]:
        """Copy of all current settings."""
        return self.current_settings.copy()

    def reset_to_defaults(self) -> None:
        """Reset settings to default values."""
        self.current_settings = self._get_default_settings()
        self.logger.info("Settings reset to defaults")


# Global settings instance (will be initialized by the application)
settings: Optional[SettingsManager] = None


def get_settings() -> SettingsManager:
    """
    Get the global settings instance.

    Returns:
        SettingsManager: Global settings instance

    Raises:
        RuntimeError: If settings haven't been initialized
    """
    if settings is None:
        raise RuntimeError("Settings manager not initialized")
    return settings


def initialize_settings(settings_dir: Path) -> bool:
    """
    Initialize the global settings instance.

    Args:
        settings_dir: Directory where settings should be stored

    Returns:
        bool: True if initialization was successful
    """
    global settings
    settings = SettingsManager()
    return settings.initialize(settings_dir)


def shutdown_settings():
    """Save and drop the global settings instance."""
    global settings
    if settings:
        settings.save()
        settings = None
