"""Configuration management for travel-companion.

Handles loading configuration from TOML files and environment variables
with proper precedence.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


DEFAULT_CONFIG_PATH = Path.home() / ".config" / "travel-companion" / "config.toml"
LOCAL_CONFIG_NAME = ".travel-companion.toml"
DEFAULT_DATA_DIR = Path("./data")
DEFAULT_ALLOWED_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


@dataclass
class ServerConfig:
    """History service configuration."""

    host: str = "127.0.0.1"
    port: int = 5000
    base_path: str = "/api"
    allowed_origins: list[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS))


@dataclass
class DataConfig:
    """Data storage configuration."""

    directory: Path = field(default_factory=lambda: DEFAULT_DATA_DIR)
    filename: str = "locations.json"

    @property
    def locations_file(self) -> Path:
        """Path of the JSON file holding the location history."""
        return self.directory / self.filename


@dataclass
class ClientConfig:
    """Client-side settings."""

    api_url: str = "http://localhost:5000"
    app_name: str = "Smart Travel Companion"
    app_version: str = "1.0.0"
    dev_mode: bool = False
    enable_logging: bool = False
    sync_interval: float = 10.0

    @property
    def sync_logging(self) -> bool:
        """Whether sync and API client failures are logged; dev mode implies it."""
        return self.enable_logging or self.dev_mode


@dataclass
class Config:
    """Main configuration container."""

    server: ServerConfig = field(default_factory=ServerConfig)
    data: DataConfig = field(default_factory=DataConfig)
    client: ClientConfig = field(default_factory=ClientConfig)
    config_path: Path | None = None


def _get_env_value(key: str, default: str = "") -> str:
    """Get environment variable value."""
    return os.environ.get(key, default)


def _get_env_bool(key: str, default: bool = False) -> bool:
    """Get environment variable as boolean."""
    value = os.environ.get(key, "")
    if not value:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def normalize_base_path(base_path: str) -> str:
    """Normalize an API base path to a leading slash and no trailing slash.

    Args:
        base_path: Raw base path such as ``api/`` or ``/api``.

    Returns:
        Normalized path (``""`` for the root).
    """
    stripped = base_path.strip().strip("/")
    return f"/{stripped}" if stripped else ""


def _parse_origins(value: str) -> list[str]:
    return [origin.strip() for origin in value.split(",") if origin.strip()]


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from file and environment variables.

    Configuration is loaded with the following precedence (highest to lowest):
    1. Environment variables
    2. Configuration file
    3. Default values

    Args:
        config_path: Path to configuration file. If None, uses
            $TRAVEL_COMPANION_CONFIG, then ./.travel-companion.toml, then the
            default location.

    Returns:
        Populated Config object.
    """
    config = Config()

    # Determine config path
    if config_path is None:
        env_config = _get_env_value("TRAVEL_COMPANION_CONFIG")
        if env_config:
            config_path = Path(env_config)
        elif Path(LOCAL_CONFIG_NAME).exists():
            config_path = Path(LOCAL_CONFIG_NAME)
        else:
            config_path = DEFAULT_CONFIG_PATH

    config.config_path = config_path

    if config_path.exists():
        config = _load_from_file(config_path, config)

    config = _apply_env_overrides(config)
    config.server.base_path = normalize_base_path(config.server.base_path)

    return config


def _load_from_file(path: Path, config: Config) -> Config:
    """Load configuration from TOML file.

    Args:
        path: Path to TOML file.
        config: Existing config to update.

    Returns:
        Updated Config object.
    """
    with open(path, "rb") as f:
        data = tomllib.load(f)

    # Server section
    if "server" in data:
        server = data["server"]
        config.server.host = server.get("host", config.server.host)
        config.server.port = int(server.get("port", config.server.port))
        config.server.base_path = server.get("base_path", config.server.base_path)
        origins = server.get("allowed_origins", config.server.allowed_origins)
        if isinstance(origins, str):
            origins = _parse_origins(origins)
        config.server.allowed_origins = list(origins)

    # Data section
    if "data" in data:
        data_section = data["data"]
        if "directory" in data_section:
            config.data.directory = Path(data_section["directory"])
        config.data.filename = data_section.get("filename", config.data.filename)

    # Client section
    if "client" in data:
        client = data["client"]
        config.client.api_url = client.get("api_url", config.client.api_url)
        config.client.app_name = client.get("app_name", config.client.app_name)
        config.client.app_version = client.get("app_version", config.client.app_version)
        config.client.dev_mode = client.get("dev_mode", config.client.dev_mode)
        config.client.enable_logging = client.get("enable_logging", config.client.enable_logging)
        config.client.sync_interval = float(
            client.get("sync_interval", config.client.sync_interval)
        )

    return config


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides to configuration.

    Args:
        config: Config to update.

    Returns:
        Updated Config object.
    """
    # Server environment variables
    if host := _get_env_value("HOST"):
        config.server.host = host
    if port := _get_env_value("PORT"):
        config.server.port = int(port)
    if base_path := _get_env_value("API_BASE_PATH"):
        config.server.base_path = base_path
    if origins := _get_env_value("ALLOWED_ORIGINS"):
        config.server.allowed_origins = _parse_origins(origins)

    # Data directory
    if data_dir := _get_env_value("DATA_STORAGE_PATH"):
        config.data.directory = Path(data_dir)

    # Client settings
    if api_url := _get_env_value("TRAVEL_COMPANION_API_URL"):
        config.client.api_url = api_url
    if app_name := _get_env_value("APP_NAME"):
        config.client.app_name = app_name
    if app_version := _get_env_value("APP_VERSION"):
        config.client.app_version = app_version
    config.client.dev_mode = _get_env_bool("DEV_MODE", config.client.dev_mode)
    config.client.enable_logging = _get_env_bool("ENABLE_LOGGING", config.client.enable_logging)
    if sync_interval := _get_env_value("SYNC_INTERVAL"):
        config.client.sync_interval = float(sync_interval)

    return config


def ensure_data_dir(config: Config) -> Path:
    """Ensure data directory exists and return its path.

    Args:
        config: Configuration with data directory setting.

    Returns:
        Path to data directory.
    """
    data_dir = config.data.directory.resolve()
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir
