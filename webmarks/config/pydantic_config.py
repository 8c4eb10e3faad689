"""
Pydantic-based configuration system for Webmarks.

Settings are grouped into four small sections (store, storage, display,
logging) and loaded from a TOML or JSON file, with a few values overridable
from the environment.
"""

import json
import os
import re
import sys
from pathlib import Path
from typing import Dict, List, Literal, Optional

import toml
from pydantic import (
    BaseModel,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
    model_validator,
)

from ..core.data_models import DEFAULT_PALETTE, FAVICON_TEMPLATE, LIST_COLORS

HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")

ENV_OVERRIDES = {
    "WEBMARKS_BRIDGE_TOKEN": ("store", "bridge_token"),
    "WEBMARKS_BOOKMARKS_FILE": ("store", "bookmarks_file"),
    "WEBMARKS_STATE_DIR": ("storage", "state_dir"),
}


class StoreConfig(BaseModel):
    """Where the bookmark tree comes from."""

    backend: Literal["chrome", "bridge", "none"] = Field(
        default="chrome",
        description="Bookmark tree backend",
        json_schema_extra={
            "error_msg": "Backend must be 'chrome', 'bridge', or 'none'. "
            "'none' runs with the local selection storage only."
        },
    )
    bookmarks_file: Optional[Path] = Field(
        default=None,
        description="Path to a Chromium 'Bookmarks' profile file",
    )
    bridge_url: Optional[str] = Field(
        default=None,
        description="Base URL of the browser bridge",
    )
    bridge_token: Optional[SecretStr] = Field(
        default=None,
        description="Access token for the browser bridge",
    )
    timeout: float = Field(
        default=10.0,
        ge=1.0,
        le=120.0,
        description="Bridge request timeout in seconds",
        json_schema_extra={
            "error_msg": "Timeout must be between 1 and 120 seconds."
        },
    )

    @field_validator("bookmarks_file", mode="before")
    @classmethod
    def validate_bookmarks_file(cls, v):
        """Expand ``~`` in the profile path."""
        if v is None or v == "":
            return None
        return Path(v).expanduser()

    @field_validator("bridge_url")
    @classmethod
    def validate_bridge_url(cls, v):
        if v is None or v == "":
            return None
        if not v.startswith(("http://", "https://")):
            raise ValueError("Bridge URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("bridge_token", mode="before")
    @classmethod
    def validate_bridge_token(cls, v):
        if v is None or v == "":
            return None
        if str(v) == "your-bridge-token-here":
            raise ValueError(
                "Please replace the placeholder bridge token with the token "
                "shown by the browser extension"
            )
        return SecretStr(str(v))


class StorageConfig(BaseModel):
    """Local state location."""

    state_dir: Path = Field(
        default=Path(".webmarks"),
        description="Directory for local state and logs",
    )
    selection_file: str = Field(
        default="storage.json",
        min_length=1,
        description="File (inside state_dir) holding the local key-value storage",
    )

    @field_validator("state_dir", mode="before")
    @classmethod
    def validate_state_dir(cls, v):
        """Ensure the state directory is a Path object."""
        if isinstance(v, str):
            return Path(v).expanduser()
        return v

    @property
    def selection_path(self) -> Path:
        return self.state_dir / self.selection_file


class DisplayConfig(BaseModel):
    """List colors and favicon lookup."""

    palette: List[str] = Field(
        default_factory=lambda: list(DEFAULT_PALETTE),
        min_length=1,
        description="Colors cycled over extracted lists",
    )
    list_colors: List[str] = Field(
        default_factory=lambda: list(LIST_COLORS),
        min_length=1,
        description="Colors offered for new lists",
    )
    favicon_template: str = Field(
        default=FAVICON_TEMPLATE,
        description="Favicon service URL with {domain} and {size} placeholders",
    )
    favicon_size: int = Field(
        default=16,
        ge=8,
        le=256,
        description="Favicon size in pixels",
    )

    @field_validator("palette", "list_colors")
    @classmethod
    def validate_colors(cls, v):
        for color in v:
            if not HEX_COLOR.match(color):
                raise ValueError(f"Color must look like #rrggbb: {color}")
        return [color.lower() for color in v]

    @field_validator("favicon_template")
    @classmethod
    def validate_favicon_template(cls, v):
        if "{domain}" not in v:
            raise ValueError("Favicon template must contain a {domain} placeholder")
        return v


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level",
    )
    log_to_file: bool = Field(default=True, description="Write a log file under state_dir/logs")
    console_output: bool = Field(default=False, description="Also log to stderr")

    @field_validator("level", mode="before")
    @classmethod
    def validate_level(cls, v):
        return v.upper() if isinstance(v, str) else v


class WebmarksConfig(BaseModel):
    """Main configuration model."""

    store: StoreConfig = Field(default_factory=StoreConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def validate_backend_settings(self):
        """Validate that the selected backend has what it needs."""
        backend = self.store.backend

        if backend == "chrome" and self.store.bookmarks_file is None:
            raise ValueError("Chrome backend selected but no bookmarks_file provided")
        elif backend == "bridge" and not self.store.bridge_url:
            raise ValueError("Bridge backend selected but no bridge_url provided")

        return self


class ConfigurationManager:
    """Manages loading and validation of configuration from multiple sources."""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize configuration manager.

        Args:
            config_path: Optional path to configuration file (TOML or JSON)
        """
        self._config: Optional[WebmarksConfig] = None
        self._load_configuration(config_path)

    def _get_default_config_paths(self) -> List[Path]:
        """Get list of default configuration file paths to try."""
        if getattr(sys, "frozen", False):
            app_dir = Path(sys.executable).parent
            return [
                app_dir / "config" / "user_config.toml",
                app_dir / "config" / "user_config.json",
                app_dir / "webmarks_config.toml",
                app_dir / "webmarks_config.json",
            ]

        config_dir = Path(__file__).parent
        return [
            config_dir / "user_config.toml",
            config_dir / "user_config.json",
            Path.cwd() / "webmarks_config.toml",
            Path.cwd() / "webmarks_config.json",
        ]

    def _load_configuration(self, config_path: Optional[Path] = None) -> None:
        """Load configuration from file or use defaults."""
        config_data: Dict = {}

        if config_path:
            config_data = self._load_config_file(Path(config_path))
        else:
            for path in self._get_default_config_paths():
                if path.exists():
                    config_data = self._load_config_file(path)
                    break

        self._load_overrides_from_env(config_data)

        # Without a profile file there is nothing to read the tree from
        store = config_data.setdefault("store", {})
        if not store.get("bookmarks_file") and store.get("backend", "chrome") == "chrome":
            store.setdefault("backend", "none")

        try:
            self._config = WebmarksConfig(**config_data)
        except ValidationError as e:
            raise ValueError(format_config_error(e))

    def _load_config_file(self, config_path: Path) -> Dict:
        """Load configuration from TOML or JSON file."""
        if not config_path.exists():
            raise FileNotFoundError(2, "Configuration file not found", str(config_path))

        try:
            if config_path.suffix.lower() == ".toml":
                return toml.load(config_path)
            elif config_path.suffix.lower() == ".json":
                with open(config_path, "r", encoding="utf-8") as f:
                    return json.load(f)
            else:
                raise ValueError(
                    f"Unsupported configuration file format: {config_path.suffix}"
                )
        except (OSError, ValueError, toml.TomlDecodeError) as e:
            raise ValueError(f"Failed to load configuration from {config_path}: {e}")

    def _load_overrides_from_env(self, config_data: Dict) -> None:
        """Apply environment variable overrides on top of the file values."""
        for env_name, (section, option) in ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if value:
                config_data.setdefault(section, {})[option] = value

    def update_from_cli_args(self, args: Dict) -> None:
        """Update configuration from command-line arguments."""
        if not self._config:
            raise RuntimeError("Configuration not loaded")

        config_dict = self._config.model_dump()
        if self._config.store.bridge_token is not None:
            config_dict["store"]["bridge_token"] = self._config.store.bridge_token.get_secret_value()

        if args.get("bookmarks_file"):
            config_dict["store"]["bookmarks_file"] = args["bookmarks_file"]
            if not args.get("backend"):
                config_dict["store"]["backend"] = "chrome"

        if args.get("bridge_url"):
            config_dict["store"]["bridge_url"] = args["bridge_url"]
            if not args.get("backend"):
                config_dict["store"]["backend"] = "bridge"

        if args.get("backend"):
            config_dict["store"]["backend"] = args["backend"]

        if args.get("state_dir"):
            config_dict["storage"]["state_dir"] = args["state_dir"]

        if args.get("verbose"):
            config_dict["logging"]["level"] = "DEBUG"
            config_dict["logging"]["console_output"] = True

        try:
            self._config = WebmarksConfig(**config_dict)
        except ValidationError as e:
            raise ValueError(format_config_error(e))

    @property
    def config(self) -> WebmarksConfig:
        """Get the current configuration."""
        if not self._config:
            raise RuntimeError("Configuration not loaded")
        return self._config

    def get_bridge_token(self) -> Optional[str]:
        """Get the bridge token, returning the actual secret value."""
        token = self.config.store.bridge_token
        return token.get_secret_value() if token else None

    @staticmethod
    def create_sample_config(output_path: Path, format: str = "toml") -> None:
        """Create a sample configuration file."""
        sample_config = {
            "store": {
                "backend": "chrome",
                "bookmarks_file": "~/.config/google-chrome/Default/Bookmarks",
                "bridge_url": "http://127.0.0.1:8765",
                # Note: the token should be added manually and not
                # committed to version control
                "bridge_token": "your-bridge-token-here",
                "timeout": 10.0,
            },
            "storage": {"state_dir": ".webmarks", "selection_file": "storage.json"},
            "display": {
                "palette": list(DEFAULT_PALETTE),
                "list_colors": list(LIST_COLORS),
                "favicon_template": FAVICON_TEMPLATE,
                "favicon_size": 16,
            },
            "logging": {"level": "INFO", "log_to_file": True, "console_output": False},
        }

        if format.lower() == "toml":
            with open(output_path, "w", encoding="utf-8") as f:
                toml.dump(sample_config, f)
        elif format.lower() == "json":
            with open(output_path, "w", encoding="utf-8") as f:
                json.dump(sample_config, f, indent=2)
        else:
            raise ValueError(f"Unsupported format: {format}")


class ConfigurationErrorFormatter:
    """Formats Pydantic validation errors into user-friendly messages."""

    @staticmethod
    def format_validation_error(error: ValidationError) -> str:
        """
        Convert Pydantic ValidationError into a user-friendly error message.

        Args:
            error: Pydantic ValidationError instance

        Returns:
            Formatted error message with helpful guidance
        """
        error_messages = []

        for error_detail in error.errors():
            location = ConfigurationErrorFormatter._format_error_location(
                error_detail["loc"]
            )
            error_messages.append(
                ConfigurationErrorFormatter._format_by_error_type(
                    location,
                    error_detail["type"],
                    error_detail,
                    error_detail.get("input", "N/A"),
                )
            )

        header = "Configuration Validation Failed:\n"
        separator = "\n" + "-" * 60 + "\n"
        footer = (
            "\n\nTips:\n"
            "* Check the configuration file format (TOML or JSON)\n"
            "* Verify the bridge token is not a placeholder value\n"
            "* Make sure the selected backend has its file or URL set\n"
            "* Use 'webmarks create-config' to generate a sample file"
        )

        return header + separator + "\n".join(error_messages) + footer

    @staticmethod
    def _format_error_location(location: tuple) -> str:
        """Format the error location path."""
        if not location:
            return "Configuration"

        path_parts = []
        for part in location:
            if isinstance(part, str):
                path_parts.append(part)
            else:
                path_parts.append(f"[{part}]")

        return " -> ".join(path_parts)

    @staticmethod
    def _format_by_error_type(
        location: str, error_type: str, error_detail: dict, input_value
    ) -> str:
        """Format error message based on Pydantic error type."""

        if error_type == "missing":
            return f"x {location}: Required field is missing"

        elif error_type == "value_error":
            msg = error_detail.get("msg", "Invalid value")
            return f"x {location}: {msg}"

        elif error_type in [
            "greater_than_equal",
            "less_than_equal",
            "greater_than",
            "less_than",
        ]:
            ctx = error_detail.get("ctx", {})
            limit = next(iter(ctx.values()), "limit")
            operator = {
                "greater_than_equal": ">=",
                "less_than_equal": "<=",
                "greater_than": ">",
                "less_than": "<",
            }.get(error_type, "?")
            return f"x {location}: Value must be {operator} {limit} (got: {input_value})"

        elif error_type == "literal_error":
            expected = error_detail.get("ctx", {}).get("expected", "valid option")
            return f"x {location}: Must be one of {expected} (got: {input_value})"

        elif error_type in ("too_short", "string_too_short"):
            return f"x {location}: Value must not be empty"

        else:
            msg = error_detail.get("msg", "Invalid configuration value")
            return f"x {location}: {msg} (got: {input_value})"


def format_config_error(error: Exception) -> str:
    """
    Format any configuration-related error into a user-friendly message.

    Args:
        error: Exception that occurred during configuration

    Returns:
        Formatted error message
    """
    if isinstance(error, ValidationError):
        return ConfigurationErrorFormatter.format_validation_error(error)

    elif isinstance(error, FileNotFoundError):
        return (
            f"Configuration File Not Found:\n"
            f"x Could not find configuration file: {error.filename}\n\n"
            f"Solutions:\n"
            f"* Create a configuration file using: webmarks create-config\n"
            f"* Use default configuration by omitting the --config parameter\n"
            f"* Check the file path is correct and accessible"
        )

    elif isinstance(error, ValueError) and "configuration" in str(error).lower():
        return (
            f"Configuration Error:\n"
            f"x {str(error)}\n\n"
            f"Tips:\n"
            f"* Check your configuration file syntax\n"
            f"* Verify all required values are provided\n"
            f"* Use the sample configuration as reference"
        )

    else:
        return f"Unexpected Configuration Error:\nx {str(error)}"
