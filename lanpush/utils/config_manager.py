import configparser
import logging
import os
from pathlib import Path
import sys

# Use constants for consistency
from .constants import (APP_NAME, APP_PORT, CONFIG_FILE_NAME, DEFAULT_DOWNLOADS_DIR_NAME,
                        PROTOCOL_HTTP, PROTOCOLS)

logger = logging.getLogger(__name__)


def get_default_config_dir() -> Path:
    """Gets the platform-specific default config directory."""
    if sys.platform == "win32":
        # Use %APPDATA% on Windows
        appdata = os.getenv('APPDATA')
        if appdata:
            return Path(appdata) / APP_NAME
    elif sys.platform == "darwin":
        # Use ~/Library/Application Support on macOS
        return Path.home() / "Library" / "Application Support" / APP_NAME
    # Use ~/.config on Linux/other Unix-like
    xdg_config_home = os.getenv('XDG_CONFIG_HOME')
    if xdg_config_home:
        return Path(xdg_config_home) / APP_NAME
    return Path.home() / ".config" / APP_NAME


def get_default_data_dir() -> Path:
    """Gets the application-private data directory (parent of ReceivedFiles)."""
    if sys.platform == "win32":
        local_appdata = os.getenv('LOCALAPPDATA') or os.getenv('APPDATA')
        if local_appdata:
            return Path(local_appdata) / APP_NAME
    elif sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_NAME
    xdg_data_home = os.getenv('XDG_DATA_HOME')
    if xdg_data_home:
        return Path(xdg_data_home) / APP_NAME
    return Path.home() / ".local" / "share" / APP_NAME


def get_default_downloads_path() -> str:
    """Attempts to find the user's Downloads folder."""
    home = Path.home()
    candidates = [DEFAULT_DOWNLOADS_DIR_NAME, "Download", "download", "downloads"]

    for candidate in candidates:
        path = home / candidate
        if path.is_dir():
            return str(path)

    logger.warning("Could not find a '%s' folder, using home directory.", DEFAULT_DOWNLOADS_DIR_NAME)
    return str(home)


DEFAULT_CONFIG_PATH = get_default_config_dir() / CONFIG_FILE_NAME


class ConfigManager:
    """Read-only access to optional settings stored in config.ini.

    The file is never written: a save directory picked at runtime lives in
    memory only, and a missing file simply means defaults.
    """
    def __init__(self, config_path=DEFAULT_CONFIG_PATH):
        self.config_path = Path(config_path)
        self.config = configparser.ConfigParser()
        self._defaults = {
            'Network': {
                'protocol': PROTOCOL_HTTP,
                'port': str(APP_PORT),
            },
            'Preferences': {
                'save_directory': '',
                'log_level': 'INFO',
            }
        }
        self.load_settings()

    def _reset_to_defaults(self):
        self.config = configparser.ConfigParser()
        for section, options in self._defaults.items():
            self.config[section] = options

    def load_settings(self):
        """Loads settings from the config file, filling gaps with defaults."""
        self._reset_to_defaults()
        if not self.config_path.is_file():
            logger.debug("No config file at %s, using defaults.", self.config_path)
            return

        try:
            self.config.read(self.config_path, encoding='utf-8')
        except configparser.Error as e:
            logger.warning("Error reading config file %s: %s. Using defaults.", self.config_path, e)
            self._reset_to_defaults()

    def get_setting(self, section, key):
        """Gets a setting value, falling back to the default."""
        return self.config.get(section, key, fallback=self._defaults.get(section, {}).get(key))

    def get_int_setting(self, section, key):
        """Gets an integer setting value."""
        default = int(self._defaults[section][key])
        try:
            return self.config.getint(section, key, fallback=default)
        except ValueError:
            logger.warning("Invalid integer value for %s/%s. Returning default.", section, key)
            return default

    @property
    def protocol(self) -> str:
        value = (self.get_setting('Network', 'protocol') or '').strip().lower()
        if value not in PROTOCOLS:
            logger.warning("Unknown transfer protocol '%s' in config, using '%s'.", value, PROTOCOL_HTTP)
            return PROTOCOL_HTTP
        return value

    @property
    def port(self) -> int:
        port = self.get_int_setting('Network', 'port')
        if not 0 <= port <= 65535:
            logger.warning("Port %s out of range, using %s.", port, APP_PORT)
            return APP_PORT
        return port

    @property
    def save_directory(self) -> str | None:
        value = (self.get_setting('Preferences', 'save_directory') or '').strip()
        return value or None

    @property
    def log_level(self) -> str:
        return (self.get_setting('Preferences', 'log_level') or 'INFO').strip().upper()
