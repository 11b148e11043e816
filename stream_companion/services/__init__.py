"""Service layer: stores, platform integrations and game switch orchestration."""

from .channel_update_handler import ChannelUpdateHandler
from .channel_updater import (
    KNOWN_CONTENT_CLASSIFICATION_LABELS,
    ChannelUpdater,
    DisabledChannelUpdater,
    StaticTokenProvider,
    TokenProvider,
    TwitchChannelUpdater,
    build_label_payload,
)
from .config import ConfigurationService, ValidationResult
from .dispatcher import GameSwitchDispatcher
from .errors import (
    AppError,
    ChannelUpdateError,
    ConfigurationError,
    ErrorCategory,
    ErrorHandlingService,
    ErrorSeverity,
    StoreError,
    ValidationError,
    get_error_service,
    handle_error,
)
from .filesystem import FileSystemService
from .game_switch import GameSwitchService, reconcile_chat_commands
from .http_client import HttpClientService
from .overlay_notifier import BroadcastOverlayNotifier, OverlayMessage, OverlayNotifier
from .stores import (
    JsonActiveStateStore,
    JsonGameContextStore,
    JsonGameLibraryStore,
    JsonGameStateStore,
    JsonProfileStore,
    game_chat_commands_store,
    game_core_counters_store,
    game_counters_store,
    game_custom_counters_store,
)

__all__ = [
    "AppError",
    "BroadcastOverlayNotifier",
    "ChannelUpdateError",
    "ChannelUpdateHandler",
    "ChannelUpdater",
    "ConfigurationError",
    "ConfigurationService",
    "DisabledChannelUpdater",
    "ErrorCategory",
    "ErrorHandlingService",
    "ErrorSeverity",
    "FileSystemService",
    "GameSwitchDispatcher",
    "GameSwitchService",
    "HttpClientService",
    "JsonActiveStateStore",
    "JsonGameContextStore",
    "JsonGameLibraryStore",
    "JsonGameStateStore",
    "JsonProfileStore",
    "KNOWN_CONTENT_CLASSIFICATION_LABELS",
    "OverlayMessage",
    "OverlayNotifier",
    "StaticTokenProvider",
    "StoreError",
    "TokenProvider",
    "TwitchChannelUpdater",
    "ValidationError",
    "ValidationResult",
    "build_label_payload",
    "game_chat_commands_store",
    "game_core_counters_store",
    "game_counters_store",
    "game_custom_counters_store",
    "get_error_service",
    "handle_error",
    "reconcile_chat_commands",
]
