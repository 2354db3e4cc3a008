"""Shared pytest fixtures for travel-companion tests."""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterator
from pathlib import Path

import pytest
from click.testing import CliRunner

from travel_companion.config import Config, DataConfig, ServerConfig
from travel_companion.services.api import create_server

SAMPLE_LOCATIONS = [
    {"id": "1700000000000", "latitude": 40.7128, "longitude": -74.0060,
     "timestamp": 1700000000000, "address": "City Hall"},
    {"id": "1700000060000", "latitude": 40.7218, "longitude": -74.0060,
     "timestamp": 1700000060000, "address": None},
    {"id": "1700000120000", "latitude": 40.7308, "longitude": -74.0060,
     "timestamp": 1700000120000, "address": None},
]


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep user config and service environment variables out of tests."""
    for key in (
        "PORT", "HOST", "API_BASE_PATH", "ALLOWED_ORIGINS", "DATA_STORAGE_PATH",
        "TRAVEL_COMPANION_API_URL", "APP_NAME", "APP_VERSION", "DEV_MODE",
        "ENABLE_LOGGING", "SYNC_INTERVAL",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("TRAVEL_COMPANION_CONFIG", str(tmp_path / "no-such-config.toml"))


@pytest.fixture
def cli_runner() -> CliRunner:
    """Click test runner."""
    return CliRunner()


@pytest.fixture
def cli_data_dir(tmp_path: Path) -> Path:
    """Data directory holding a small location history."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "locations.json").write_text(json.dumps(SAMPLE_LOCATIONS, indent=2))
    return data_dir


@pytest.fixture
def cli_env(cli_data_dir: Path, tmp_path: Path) -> dict[str, str]:
    """Environment pointing the CLI at the sample data and a mocked API."""
    return {
        "TRAVEL_COMPANION_CONFIG": str(tmp_path / "no-such-config.toml"),
        "DATA_STORAGE_PATH": str(cli_data_dir),
        "TRAVEL_COMPANION_API_URL": "http://api.test",
    }


@pytest.fixture
def server_config(tmp_path: Path) -> Config:
    """Configuration for a throwaway history service."""
    return Config(
        server=ServerConfig(host="127.0.0.1", port=0),
        data=DataConfig(directory=tmp_path / "server-data"),
    )


@pytest.fixture
def live_server(server_config: Config) -> Iterator[str]:
    """Run the history service on a free port; yields its base URL."""
    httpd = create_server(server_config)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    host, port = httpd.server_address[:2]
    try:
        yield f"http://{host}:{port}"
    finally:
        httpd.shutdown()
        httpd.server_close()
        thread.join()


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """Drop handlers and levels left behind by setup_logging."""
    yield
    from travel_companion.lib.logging import SYNC_LOGGERS, logger

    urllib3_logger = logging.getLogger("urllib3")
    for handler in list(logger.handlers):
        urllib3_logger.removeHandler(handler)
        handler.close()
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    urllib3_logger.setLevel(logging.NOTSET)
    for name in SYNC_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET)
