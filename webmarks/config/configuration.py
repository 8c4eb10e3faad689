"""
Configuration facade for Webmarks.

Wraps the Pydantic-based ``ConfigurationManager`` with typed getters used by
the session and the CLI.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

from .pydantic_config import ConfigurationManager, WebmarksConfig


class Configuration:
    """
    Configuration object handed to the rest of the application.

    Example:
        >>> config = Configuration(Path("webmarks_config.toml"))
        >>> config.get_backend()
        'chrome'
    """

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize configuration.

        Args:
            config_path: Optional path to user configuration file (TOML/JSON)
        """
        self._manager = ConfigurationManager(config_path)
        self._config = self._manager.config

    @property
    def config(self) -> WebmarksConfig:
        """Get the underlying Pydantic configuration."""
        return self._config

    def update_from_args(self, args: Dict[str, Any]) -> None:
        """
        Update configuration from command-line arguments.

        Args:
            args: Dictionary of parsed arguments
        """
        self._manager.update_from_cli_args(args)
        self._config = self._manager.config

    def get_backend(self) -> str:
        return self._config.store.backend

    def get_bookmarks_file(self) -> Optional[Path]:
        return self._config.store.bookmarks_file

    def get_bridge_url(self) -> Optional[str]:
        return self._config.store.bridge_url

    def get_bridge_token(self) -> Optional[str]:
        """Get the bridge access token. Returns None if not configured."""
        return self._manager.get_bridge_token()

    def get_timeout(self) -> float:
        return self._config.store.timeout

    def get_selection_path(self) -> Path:
        """Path of the local key-value storage file."""
        return self._config.storage.selection_path

    def get_palette(self) -> List[str]:
        return list(self._config.display.palette)

    def get_list_colors(self) -> List[str]:
        return list(self._config.display.list_colors)

    def get_favicon_settings(self) -> Dict[str, Any]:
        return {
            "favicon_template": self._config.display.favicon_template,
            "favicon_size": self._config.display.favicon_size,
        }
