"""Configuration data models."""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class AppConfig:
    """Application configuration settings."""
    data_directory: Path
    log_level: str
    twitch_client_id: str = ""
    twitch_api_base_url: str = "https://api.twitch.tv/helix"
    request_timeout: float = 15.0
    max_retries: int = 2
    channel_updates_enabled: bool = True  # False = dry run, never call the platform
