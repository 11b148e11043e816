"""Property-based tests for configuration service."""

import json
import os
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest
from hypothesis import given, strategies as st

from stream_companion.models import AppConfig
from stream_companion.services import ConfigurationService
from stream_companion.services.config import ENV_DATA_DIR, ENV_LOG_LEVEL, ENV_TWITCH_CLIENT_ID

CLEAN_ENV = {ENV_DATA_DIR: "", ENV_LOG_LEVEL: "", ENV_TWITCH_CLIENT_ID: ""}

valid_paths = st.builds(
    lambda x: Path.home() / "test" / x,
    st.text(min_size=1, max_size=50, alphabet=st.characters(whitelist_categories=("Lu", "Ll", "Nd"))),
)

valid_config_strategy = st.builds(
    AppConfig,
    data_directory=valid_paths,
    log_level=st.sampled_from(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    twitch_client_id=st.text(max_size=30, alphabet=st.characters(whitelist_categories=("Ll", "Nd"))),
    twitch_api_base_url=st.sampled_from(["https://api.twitch.tv/helix", "http://localhost:8080/mock"]),
    request_timeout=st.floats(min_value=0.5, max_value=120.0, allow_nan=False, allow_infinity=False),
    max_retries=st.integers(min_value=0, max_value=10),
    channel_updates_enabled=st.booleans(),
)


@given(valid_config_strategy)
def test_configuration_round_trip(config: AppConfig) -> None:
    """Saving a valid configuration and loading it back preserves every value."""
    with tempfile.TemporaryDirectory() as temp_dir, patch.dict(os.environ, CLEAN_ENV):
        service = ConfigurationService(Path(temp_dir) / "test_config.json")

        service.save_config(config)
        loaded_config = service.load_config()

    assert loaded_config == config


def test_missing_file_uses_defaults() -> None:
    with tempfile.TemporaryDirectory() as temp_dir, patch.dict(os.environ, CLEAN_ENV):
        service = ConfigurationService(Path(temp_dir) / "missing.json")
        config = service.load_config()

    assert config.data_directory == Path.home() / ".local" / "share" / "stream-companion"
    assert config.log_level == "INFO"
    assert config.channel_updates_enabled is True


def test_corrupt_file_uses_defaults() -> None:
    with tempfile.TemporaryDirectory() as temp_dir, patch.dict(os.environ, CLEAN_ENV):
        config_path = Path(temp_dir) / "config.json"
        config_path.write_text("{not json", encoding="utf-8")

        config = ConfigurationService(config_path).load_config()

    assert config.log_level == "INFO"


def test_invalid_file_values_use_defaults() -> None:
    with tempfile.TemporaryDirectory() as temp_dir, patch.dict(os.environ, CLEAN_ENV):
        config_path = Path(temp_dir) / "config.json"
        config_path.write_text(json.dumps({"log_level": "LOUD", "data_directory": "/srv/data"}), encoding="utf-8")

        config = ConfigurationService(config_path).load_config()

    assert config.log_level == "INFO"
    assert config.data_directory != Path("/srv/data")


def test_environment_overrides_file() -> None:
    with tempfile.TemporaryDirectory() as temp_dir:
        config_path = Path(temp_dir) / "config.json"
        config_path.write_text(
            json.dumps({"data_directory": "/srv/file", "log_level": "INFO", "twitch_client_id": "file-id"}),
            encoding="utf-8",
        )
        env = {ENV_DATA_DIR: "/srv/env", ENV_LOG_LEVEL: "debug", ENV_TWITCH_CLIENT_ID: "env-id"}

        with patch.dict(os.environ, env):
            config = ConfigurationService(config_path).load_config()

    assert config.data_directory == Path("/srv/env")
    assert config.log_level == "DEBUG"
    assert config.twitch_client_id == "env-id"


def test_invalid_environment_override_is_ignored() -> None:
    with tempfile.TemporaryDirectory() as temp_dir:
        env = {ENV_DATA_DIR: "", ENV_LOG_LEVEL: "chatty", ENV_TWITCH_CLIENT_ID: ""}
        with patch.dict(os.environ, env):
            config = ConfigurationService(Path(temp_dir) / "missing.json").load_config()

    assert config.log_level == "INFO"


@pytest.mark.parametrize(
    "overrides",
    [
        {"log_level": "VERBOSE"},
        {"request_timeout": 0.0},
        {"request_timeout": 500.0},
        {"max_retries": -1},
        {"max_retries": 11},
        {"twitch_api_base_url": "ftp://api.twitch.tv"},
    ],
)
def test_validation_rejects_bad_values(overrides: dict[str, object]) -> None:
    service = ConfigurationService(Path("unused.json"))
    config = AppConfig(data_directory=Path("/tmp/data"), **{"log_level": "INFO", **overrides})  # type: ignore[arg-type]

    result = service.validate_config(config)

    assert not result.is_valid
    assert result.errors


def test_save_invalid_config_raises() -> None:
    with tempfile.TemporaryDirectory() as temp_dir:
        service = ConfigurationService(Path(temp_dir) / "config.json")
        config = AppConfig(data_directory=Path(temp_dir), log_level="NOISY")

        with pytest.raises(ValueError, match="Invalid configuration"):
            service.save_config(config)

        assert not (Path(temp_dir) / "config.json").exists()
