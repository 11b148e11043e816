"""Data models for the stream companion service."""

from .config import AppConfig
from .counters import (
    CORE_COUNTERS,
    ChatCommandConfiguration,
    ChatCommandDefinition,
    Counter,
    CustomCounterConfiguration,
    CustomCounterDefinition,
    GameCoreCountersConfig,
)
from .game import GameContext, GameLibraryItem
from .profile import FeatureFlags, OverlayCounters, OverlaySettings, Profile, StreamSettings

__all__ = [
    "AppConfig",
    "CORE_COUNTERS",
    "ChatCommandConfiguration",
    "ChatCommandDefinition",
    "Counter",
    "CustomCounterConfiguration",
    "CustomCounterDefinition",
    "FeatureFlags",
    "GameContext",
    "GameCoreCountersConfig",
    "GameLibraryItem",
    "OverlayCounters",
    "OverlaySettings",
    "Profile",
    "StreamSettings",
]
