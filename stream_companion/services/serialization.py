"""Conversion between data models and JSON-ready dictionaries.

Used by the JSON stores for persistence and by the overlay notifier for
message payloads. Decoders are lenient: missing or mistyped fields fall back
to the model defaults so that older records keep loading.
"""

from datetime import datetime, timezone
from typing import Any

from ..models import (
    ChatCommandConfiguration,
    ChatCommandDefinition,
    Counter,
    CustomCounterConfiguration,
    CustomCounterDefinition,
    FeatureFlags,
    GameContext,
    GameCoreCountersConfig,
    GameLibraryItem,
    OverlayCounters,
    OverlaySettings,
    Profile,
    StreamSettings,
)


def _dt_to_str(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _dt_from_str(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return int(value)
    return default


def _bool(value: Any, default: bool) -> bool:
    return value if isinstance(value, bool) else default


def _labels(value: Any) -> list[str] | None:
    if value is None:
        return None
    if not isinstance(value, list):
        return []
    return [str(label) for label in value if label]


# Counters

def counter_to_dict(counter: Counter) -> dict[str, Any]:
    return {
        "owner_id": counter.owner_id,
        "deaths": counter.deaths,
        "swears": counter.swears,
        "screams": counter.screams,
        "bits": counter.bits,
        "custom_counters": dict(counter.custom_counters),
        "last_category_name": counter.last_category_name,
        "last_updated": _dt_to_str(counter.last_updated),
        "stream_started": _dt_to_str(counter.stream_started),
    }


def counter_from_dict(data: dict[str, Any], owner_id: str = "") -> Counter:
    custom_raw = data.get("custom_counters")
    custom = {
        str(name): _int(value)
        for name, value in (custom_raw.items() if isinstance(custom_raw, dict) else [])
    }
    return Counter(
        owner_id=str(data.get("owner_id") or owner_id),
        deaths=_int(data.get("deaths")),
        swears=_int(data.get("swears")),
        screams=_int(data.get("screams")),
        bits=_int(data.get("bits")),
        custom_counters=custom,
        last_category_name=data.get("last_category_name") if isinstance(data.get("last_category_name"), str) else None,
        last_updated=_dt_from_str(data.get("last_updated")),
        stream_started=_dt_from_str(data.get("stream_started")),
    )


# Chat commands

def chat_commands_to_dict(config: ChatCommandConfiguration) -> dict[str, Any]:
    return {
        "commands": {
            name: {
                "enabled": definition.enabled,
                "response": definition.response,
                "permission": definition.permission,
                "cooldown": definition.cooldown,
            }
            for name, definition in config.commands.items()
        }
    }


def chat_commands_from_dict(data: dict[str, Any]) -> ChatCommandConfiguration:
    commands_raw = data.get("commands")
    commands: dict[str, ChatCommandDefinition] = {}
    if isinstance(commands_raw, dict):
        for name, raw in commands_raw.items():
            if not isinstance(raw, dict):
                continue
            commands[str(name)] = ChatCommandDefinition(
                enabled=_bool(raw.get("enabled"), True),
                response=str(raw.get("response") or ""),
                permission=str(raw.get("permission") or "everyone"),
                cooldown=_int(raw.get("cooldown")),
            )
    return ChatCommandConfiguration(commands=commands)


# Custom counters

def custom_counters_to_dict(config: CustomCounterConfiguration) -> dict[str, Any]:
    return {
        "counters": {
            counter_id: {
                "name": definition.name,
                "icon": definition.icon,
                "increment_by": definition.increment_by,
                "milestones": list(definition.milestones),
            }
            for counter_id, definition in config.counters.items()
        }
    }


def custom_counters_from_dict(data: dict[str, Any]) -> CustomCounterConfiguration:
    counters_raw = data.get("counters")
    counters: dict[str, CustomCounterDefinition] = {}
    if isinstance(counters_raw, dict):
        for counter_id, raw in counters_raw.items():
            if not isinstance(raw, dict):
                continue
            milestones_raw = raw.get("milestones")
            counters[str(counter_id)] = CustomCounterDefinition(
                name=str(raw.get("name") or counter_id),
                icon=str(raw.get("icon") or ""),
                increment_by=_int(raw.get("increment_by"), 1),
                milestones=[_int(m) for m in milestones_raw] if isinstance(milestones_raw, list) else [],
            )
    return CustomCounterConfiguration(counters=counters)


# Core counter selection

def core_selection_to_dict(config: GameCoreCountersConfig) -> dict[str, Any]:
    return {
        "user_id": config.user_id,
        "game_id": config.game_id,
        "deaths_enabled": config.deaths_enabled,
        "swears_enabled": config.swears_enabled,
        "screams_enabled": config.screams_enabled,
        "bits_enabled": config.bits_enabled,
        "updated_at": _dt_to_str(config.updated_at),
    }


def core_selection_from_dict(data: dict[str, Any], user_id: str = "", game_id: str = "") -> GameCoreCountersConfig:
    defaults = OverlayCounters()
    return GameCoreCountersConfig(
        user_id=str(data.get("user_id") or user_id),
        game_id=str(data.get("game_id") or game_id),
        deaths_enabled=_bool(data.get("deaths_enabled"), defaults.deaths),
        swears_enabled=_bool(data.get("swears_enabled"), defaults.swears),
        screams_enabled=_bool(data.get("screams_enabled"), defaults.screams),
        bits_enabled=_bool(data.get("bits_enabled"), defaults.bits),
        updated_at=_dt_from_str(data.get("updated_at")) or datetime.now(timezone.utc),
    )


# Game context and library

def game_context_to_dict(context: GameContext) -> dict[str, Any]:
    return {
        "user_id": context.user_id,
        "active_game_id": context.active_game_id,
        "active_game_name": context.active_game_name,
        "updated_at": _dt_to_str(context.updated_at),
    }


def game_context_from_dict(data: dict[str, Any], user_id: str = "") -> GameContext:
    game_id = data.get("active_game_id")
    game_name = data.get("active_game_name")
    return GameContext(
        user_id=str(data.get("user_id") or user_id),
        active_game_id=str(game_id) if game_id else None,
        active_game_name=str(game_name) if game_name is not None else None,
        updated_at=_dt_from_str(data.get("updated_at")),
    )


def library_item_to_dict(item: GameLibraryItem) -> dict[str, Any]:
    return {
        "user_id": item.user_id,
        "game_id": item.game_id,
        "game_name": item.game_name,
        "box_art_url": item.box_art_url,
        "created_at": _dt_to_str(item.created_at),
        "last_seen_at": _dt_to_str(item.last_seen_at),
        "enabled_content_classification_labels": (
            list(item.enabled_content_classification_labels)
            if item.enabled_content_classification_labels is not None
            else None
        ),
    }


def library_item_from_dict(data: dict[str, Any], user_id: str = "", game_id: str = "") -> GameLibraryItem:
    now = datetime.now(timezone.utc)
    return GameLibraryItem(
        user_id=str(data.get("user_id") or user_id),
        game_id=str(data.get("game_id") or game_id),
        game_name=str(data.get("game_name") or ""),
        box_art_url=str(data.get("box_art_url") or ""),
        created_at=_dt_from_str(data.get("created_at")) or now,
        last_seen_at=_dt_from_str(data.get("last_seen_at")) or now,
        enabled_content_classification_labels=_labels(data.get("enabled_content_classification_labels")),
    )


# Profile

def overlay_settings_to_dict(settings: OverlaySettings) -> dict[str, Any]:
    return {
        "enabled": settings.enabled,
        "position": settings.position,
        "counters": {
            "deaths": settings.counters.deaths,
            "swears": settings.counters.swears,
            "screams": settings.counters.screams,
            "bits": settings.counters.bits,
        },
    }


def overlay_settings_from_dict(data: dict[str, Any]) -> OverlaySettings:
    defaults = OverlayCounters()
    counters_raw = data.get("counters") if isinstance(data.get("counters"), dict) else {}
    return OverlaySettings(
        enabled=_bool(data.get("enabled"), False),
        position=str(data.get("position") or "top-right"),
        counters=OverlayCounters(
            deaths=_bool(counters_raw.get("deaths"), defaults.deaths),
            swears=_bool(counters_raw.get("swears"), defaults.swears),
            screams=_bool(counters_raw.get("screams"), defaults.screams),
            bits=_bool(counters_raw.get("bits"), defaults.bits),
        ),
    )


def profile_to_dict(profile: Profile) -> dict[str, Any]:
    features = profile.features
    default_labels = features.stream_settings.default_content_classification_labels
    return {
        "user_id": profile.user_id,
        "display_name": profile.display_name,
        "features": {
            "chat_commands": features.chat_commands,
            "stream_overlay": features.stream_overlay,
            "stream_alerts": features.stream_alerts,
            "stream_settings": {
                "default_content_classification_labels": (
                    list(default_labels) if default_labels is not None else None
                ),
            },
        },
        "overlay_settings": overlay_settings_to_dict(profile.overlay_settings),
    }


def profile_from_dict(data: dict[str, Any], user_id: str = "") -> Profile:
    features_raw = data.get("features") if isinstance(data.get("features"), dict) else {}
    stream_raw = features_raw.get("stream_settings") if isinstance(features_raw.get("stream_settings"), dict) else {}
    overlay_raw = data.get("overlay_settings") if isinstance(data.get("overlay_settings"), dict) else {}
    defaults = FeatureFlags()
    return Profile(
        user_id=str(data.get("user_id") or user_id),
        display_name=str(data.get("display_name") or ""),
        features=FeatureFlags(
            chat_commands=_bool(features_raw.get("chat_commands"), defaults.chat_commands),
            stream_overlay=_bool(features_raw.get("stream_overlay"), defaults.stream_overlay),
            stream_alerts=_bool(features_raw.get("stream_alerts"), defaults.stream_alerts),
            stream_settings=StreamSettings(
                default_content_classification_labels=_labels(
                    stream_raw.get("default_content_classification_labels")
                ),
            ),
        ),
        overlay_settings=overlay_settings_from_dict(overlay_raw),
    )
