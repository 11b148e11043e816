"""Configuration service for managing application settings."""

import json
import os
from pathlib import Path

import structlog

from ..models import AppConfig

log = structlog.stdlib.get_logger()

ENV_DATA_DIR = "STREAM_COMPANION_DATA_DIR"
ENV_LOG_LEVEL = "STREAM_COMPANION_LOG_LEVEL"
ENV_TWITCH_CLIENT_ID = "TWITCH_CLIENT_ID"

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class ValidationResult:
    """Result of configuration validation."""

    def __init__(self, is_valid: bool, errors: list[str] | None = None) -> None:
        self.is_valid: bool = is_valid
        self.errors: list[str] = errors or []


class ConfigurationService:
    """Service for managing application configuration."""

    def __init__(self, config_path: Path | None = None) -> None:
        self.config_path: Path = config_path or Path.home() / ".config" / "stream-companion" / "config.json"
        log.info("Configuration service initialized", config_path=str(self.config_path))

    def load_config(self) -> AppConfig:
        """Load configuration from file (or defaults) and apply environment overrides."""
        return self._apply_environment(self._load_file_config())

    def _load_file_config(self) -> AppConfig:
        if not self.config_path.exists():
            log.info("Configuration file not found, using defaults")
            return self._get_default_config()

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                data: dict[str, str | int | float | bool | None] = json.load(f)

            config = self._dict_to_config(data)
            validation_result = self.validate_config(config)

            if not validation_result.is_valid:
                log.warning("Invalid configuration loaded, using defaults", errors=validation_result.errors)
                return self._get_default_config()

            log.info("Configuration loaded successfully")
            return config

        except (json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
            log.error("Failed to load configuration, using defaults", error=str(e))
            return self._get_default_config()

    def save_config(self, config: AppConfig) -> None:
        """Save configuration to file."""
        validation_result = self.validate_config(config)
        if not validation_result.is_valid:
            raise ValueError(f"Invalid configuration: {', '.join(validation_result.errors)}")

        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            data = self._config_to_dict(config)
            with open(self.config_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)

            log.info("Configuration saved successfully")

        except OSError as e:
            log.error("Failed to save configuration", error=str(e))
            raise

    def validate_config(self, config: AppConfig) -> ValidationResult:
        """Validate configuration settings."""
        errors = []

        if not isinstance(config.data_directory, Path):
            errors.append("data_directory must be a Path object")

        if config.log_level not in VALID_LOG_LEVELS:
            errors.append(f"log_level must be one of: {', '.join(sorted(VALID_LOG_LEVELS))}")

        if not isinstance(config.twitch_api_base_url, str) or not config.twitch_api_base_url.startswith(("http://", "https://")):
            errors.append("twitch_api_base_url must be an http(s) URL")

        if not isinstance(config.request_timeout, (int, float)) or config.request_timeout <= 0:
            errors.append("request_timeout must be a positive number")
        elif config.request_timeout > 120:
            errors.append("request_timeout should not exceed 120 seconds")

        if not isinstance(config.max_retries, int) or config.max_retries < 0:
            errors.append("max_retries must be a non-negative integer")
        elif config.max_retries > 10:
            errors.append("max_retries should not exceed 10")

        return ValidationResult(len(errors) == 0, errors)

    def _apply_environment(self, config: AppConfig) -> AppConfig:
        """Environment variables take precedence over the config file."""
        data = self._config_to_dict(config)
        if os.getenv(ENV_DATA_DIR):
            data["data_directory"] = os.environ[ENV_DATA_DIR]
        if os.getenv(ENV_LOG_LEVEL):
            data["log_level"] = os.environ[ENV_LOG_LEVEL].upper()
        if os.getenv(ENV_TWITCH_CLIENT_ID):
            data["twitch_client_id"] = os.environ[ENV_TWITCH_CLIENT_ID]

        overridden = self._dict_to_config(data)
        if not self.validate_config(overridden).is_valid:
            log.warning("Ignoring invalid environment overrides")
            return config
        return overridden

    def _get_default_config(self) -> AppConfig:
        """Get default configuration."""
        return AppConfig(
            data_directory=Path.home() / ".local" / "share" / "stream-companion",
            log_level="INFO",
        )

    def _config_to_dict(self, config: AppConfig) -> dict[str, str | int | float | bool | None]:
        """Convert AppConfig to dictionary for JSON serialization."""
        return {
            "data_directory": str(config.data_directory),
            "log_level": config.log_level,
            "twitch_client_id": config.twitch_client_id,
            "twitch_api_base_url": config.twitch_api_base_url,
            "request_timeout": config.request_timeout,
            "max_retries": config.max_retries,
            "channel_updates_enabled": config.channel_updates_enabled,
        }

    def _dict_to_config(self, data: dict[str, str | int | float | bool | None]) -> AppConfig:
        """Convert dictionary to AppConfig."""
        default = self._get_default_config()

        timeout_raw = data.get("request_timeout", default.request_timeout)
        retries_raw = data.get("max_retries", default.max_retries)
        updates_raw = data.get("channel_updates_enabled", True)

        return AppConfig(
            data_directory=Path(str(data.get("data_directory") or default.data_directory)),
            log_level=str(data["log_level"]).upper() if isinstance(data.get("log_level"), str) else "INFO",
            twitch_client_id=str(data.get("twitch_client_id") or ""),
            twitch_api_base_url=str(data.get("twitch_api_base_url") or default.twitch_api_base_url),
            request_timeout=float(timeout_raw) if isinstance(timeout_raw, (int, float)) else default.request_timeout,
            max_retries=int(retries_raw) if isinstance(retries_raw, int) else default.max_retries,
            channel_updates_enabled=updates_raw if isinstance(updates_raw, bool) else True,
        )
