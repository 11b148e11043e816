"""Game switch orchestration.

When the platform reports that a broadcaster moved to another category, the
live counters and configurations of the old game are archived, the new
game's state is loaded (or seeded) and installed as the active state, the
core-counter selection is applied to the overlay and chat commands, and the
channel's content classification labels are pushed to Twitch.

Every dependency call is isolated: a failing store or platform call is
reported through the error handling service and replaced by a default, so a
switch always completes with a game context write and overlay notifications.
"""

from collections.abc import Awaitable, Callable
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, TypeVar

import structlog

from ..models import (
    ChatCommandConfiguration,
    ChatCommandDefinition,
    Counter,
    CustomCounterConfiguration,
    GameContext,
    GameCoreCountersConfig,
    GameLibraryItem,
    OverlayCounters,
    Profile,
)
from .channel_updater import ChannelUpdater
from .errors import ErrorHandlingService, get_error_service
from .overlay_notifier import OverlayNotifier
from .serialization import chat_commands_to_dict, custom_counters_to_dict
from .stores import (
    ActiveStateStore,
    GameContextStore,
    GameLibraryStore,
    GameStateStore,
    ProfileStore,
)

log = structlog.stdlib.get_logger()

T = TypeVar("T")

COMPONENT = "game_switch"

# Chat command bound to each core counter
CORE_COUNTER_COMMANDS: dict[str, str] = {
    "deaths": "!deaths",
    "swears": "!swears",
    "screams": "!screams",
    "bits": "!bits",
}

CHAT_COMMANDS_UPDATED = "chatCommandsUpdated"
CUSTOM_COUNTERS_UPDATED = "customCountersUpdated"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def same_game(left: str | None, right: str | None) -> bool:
    """Game ids compare case-insensitively; blank ids never match."""
    if not left or not right:
        return False
    return left.strip().lower() == right.strip().lower()


def selection_flags(selection: GameCoreCountersConfig) -> dict[str, bool]:
    return {
        "deaths": selection.deaths_enabled,
        "swears": selection.swears_enabled,
        "screams": selection.screams_enabled,
        "bits": selection.bits_enabled,
    }


def selection_from_overlay(
    user_id: str, game_id: str, counters: OverlayCounters, now: datetime
) -> GameCoreCountersConfig:
    """Build a core-counter selection mirroring the overlay's visibility."""
    return GameCoreCountersConfig(
        user_id=user_id,
        game_id=game_id,
        deaths_enabled=counters.deaths,
        swears_enabled=counters.swears,
        screams_enabled=counters.screams,
        bits_enabled=counters.bits,
        updated_at=now,
    )


def reconcile_chat_commands(
    config: ChatCommandConfiguration, selection: GameCoreCountersConfig
) -> ChatCommandConfiguration:
    """Align the chat command overrides with a core-counter selection.

    An enabled counter loses any override for its command so the default
    applies again. A disabled counter gets an explicit ``enabled=False``
    override; other fields of an existing override are kept. Command names
    match case-insensitively. The input configuration is not modified.
    """
    commands = dict(config.commands)
    for counter, enabled in selection_flags(selection).items():
        command = CORE_COUNTER_COMMANDS[counter]
        matches = [name for name in commands if name.lower() == command]

        if enabled:
            for name in matches:
                del commands[name]
            continue

        if not matches:
            commands[command] = ChatCommandDefinition(enabled=False)
            continue
        for name in matches:
            commands[name] = replace(commands[name], enabled=False)

    return ChatCommandConfiguration(commands=commands)


def apply_selection_to_overlay(counters: OverlayCounters, selection: GameCoreCountersConfig) -> bool:
    """Copy the selection onto overlay visibility. Returns True if anything changed."""
    changed = False
    for counter, enabled in selection_flags(selection).items():
        if getattr(counters, counter) != enabled:
            setattr(counters, counter, enabled)
            changed = True
    return changed


class GameSwitchService:
    """Moves a broadcaster's live state from one game to the next."""

    def __init__(
        self,
        game_context_store: GameContextStore,
        game_counters_store: GameStateStore[Counter],
        game_chat_commands_store: GameStateStore[ChatCommandConfiguration],
        game_custom_counters_store: GameStateStore[CustomCounterConfiguration],
        game_core_counters_store: GameStateStore[GameCoreCountersConfig],
        active_state_store: ActiveStateStore,
        game_library_store: GameLibraryStore,
        profile_store: ProfileStore,
        channel_updater: ChannelUpdater,
        overlay_notifier: OverlayNotifier,
        error_service: ErrorHandlingService | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._game_context_store = game_context_store
        self._game_counters_store = game_counters_store
        self._game_chat_commands_store = game_chat_commands_store
        self._game_custom_counters_store = game_custom_counters_store
        self._game_core_counters_store = game_core_counters_store
        self._active_state_store = active_state_store
        self._game_library_store = game_library_store
        self._profile_store = profile_store
        self._channel_updater = channel_updater
        self._overlay_notifier = overlay_notifier
        self._error_service = error_service or get_error_service()
        self._clock = clock or _utcnow

    async def handle_game_detected(
        self,
        user_id: str,
        game_id: str,
        game_name: str,
        box_art_url: str | None = None,
    ) -> None:
        """Switch the broadcaster's active game.

        Args:
            user_id: Broadcaster id
            game_id: Platform category id
            game_name: Display name of the category
            box_art_url: Optional box art for the game library
        """
        if not user_id or not user_id.strip() or not game_id or not game_id.strip():
            log.warning("Ignoring game detection without user or game id", user_id=user_id, game_id=game_id)
            return

        game_name = game_name or ""
        now = self._clock()
        try:
            context = await self._game_context_store.get(user_id)
        except Exception as e:
            self._report(e, "load_game_context", user_id=user_id)
            await self._handle_unknown_context(user_id, game_id, game_name, box_art_url, now)
            return

        if context is not None and same_game(context.active_game_id, game_id):
            await self._handle_same_game(user_id, game_id, game_name, box_art_url, now)
            return

        previous_game_id = context.active_game_id if context is not None else None
        log.info(
            "Game switch started",
            user_id=user_id,
            previous_game_id=previous_game_id,
            game_id=game_id,
            game_name=game_name,
        )

        profile = await self._load_profile(user_id)
        overlay_counters = profile.overlay_settings.counters if profile is not None else OverlayCounters()

        if previous_game_id:
            await self._archive_active_state(
                user_id, previous_game_id, context.active_game_name if context else None, overlay_counters, now
            )

        await self._upsert_library(user_id, game_id, game_name, box_art_url, now)

        counters = await self._load_or_seed(
            self._game_counters_store, user_id, game_id, lambda: Counter(owner_id=user_id), "counters"
        )
        chat_commands = await self._load_or_seed(
            self._game_chat_commands_store, user_id, game_id, ChatCommandConfiguration, "chat_commands"
        )
        custom_counters = await self._load_or_seed(
            self._game_custom_counters_store, user_id, game_id, CustomCounterConfiguration, "custom_counters"
        )
        selection = await self._load_or_seed(
            self._game_core_counters_store,
            user_id,
            game_id,
            lambda: selection_from_overlay(user_id, game_id, overlay_counters, now),
            "core_counters",
        )

        counters = replace(counters, owner_id=user_id, last_category_name=game_name, last_updated=now)
        chat_commands = reconcile_chat_commands(chat_commands, selection)

        await self._guard(self._active_state_store.save_counters(counters), None, "save_active_counters", user_id=user_id)
        await self._guard(
            self._active_state_store.save_chat_commands(user_id, chat_commands),
            None,
            "save_active_chat_commands",
            user_id=user_id,
        )
        await self._guard(
            self._active_state_store.save_custom_counters_config(user_id, custom_counters),
            None,
            "save_active_custom_counters",
            user_id=user_id,
        )

        await self._apply_overlay_visibility(user_id, profile, selection, notify_unchanged=False)
        await self._push_channel_information(user_id, game_id)

        await self._guard(
            self._game_context_store.save(
                GameContext(user_id=user_id, active_game_id=game_id, active_game_name=game_name, updated_at=now)
            ),
            None,
            "save_game_context",
            user_id=user_id,
            game_id=game_id,
        )

        await self._notify_counters(user_id, counters)
        await self._notify_chat_commands(user_id, chat_commands)
        await self._notify_alert(
            user_id,
            CUSTOM_COUNTERS_UPDATED,
            {"counters": custom_counters_to_dict(custom_counters)["counters"]},
        )

        log.info("Active game switched", user_id=user_id, game_id=game_id, game_name=game_name)

    async def apply_active_core_counters_selection(self, user_id: str, game_id: str) -> None:
        """Apply a game's core-counter selection to overlay and chat commands.

        Does nothing when the game has no selection yet.
        """
        selection = await self._guard(
            self._game_core_counters_store.get(user_id, game_id),
            None,
            "load_core_counters_selection",
            user_id=user_id,
            game_id=game_id,
        )
        if selection is None:
            log.debug("No core counter selection to apply", user_id=user_id, game_id=game_id)
            return

        await self._apply_selection(user_id, selection)

    async def _apply_selection(self, user_id: str, selection: GameCoreCountersConfig) -> None:
        profile = await self._load_profile(user_id)
        await self._apply_overlay_visibility(user_id, profile, selection)

        current = await self._guard(
            self._active_state_store.get_chat_commands(user_id),
            None,
            "load_active_chat_commands",
            user_id=user_id,
        )
        chat_commands = reconcile_chat_commands(current or ChatCommandConfiguration(), selection)
        await self._guard(
            self._active_state_store.save_chat_commands(user_id, chat_commands),
            None,
            "save_active_chat_commands",
            user_id=user_id,
        )
        await self._notify_chat_commands(user_id, chat_commands)

        log.info(
            "Core counter selection applied", user_id=user_id, game_id=selection.game_id, **selection_flags(selection)
        )

    async def resolve_content_classification_labels(self, user_id: str, game_id: str) -> list[str]:
        """Labels a switch to ``game_id`` would apply.

        The game's own override wins, even when it is an empty list. Without
        one, the broadcaster's default labels apply. An empty result means no
        labels are pushed.
        """
        item = await self._guard(
            self._game_library_store.get(user_id, game_id),
            None,
            "load_game_library_item",
            user_id=user_id,
            game_id=game_id,
        )
        if item is not None and item.enabled_content_classification_labels is not None:
            return list(item.enabled_content_classification_labels)

        profile = await self._load_profile(user_id)
        if profile is not None:
            defaults = profile.features.stream_settings.default_content_classification_labels
            if defaults is not None:
                return list(defaults)
        return []

    async def seed_core_counters_selection(self, user_id: str, game_id: str) -> GameCoreCountersConfig:
        """Ensure ``game_id`` has a core-counter selection and return it.

        A missing selection is created from the overlay's current counter
        visibility. An existing one is returned untouched. If the stored
        selection cannot be read, the overlay-derived selection is returned
        without being saved.
        """
        try:
            existing = await self._game_core_counters_store.get(user_id, game_id)
        except Exception as e:
            self._report(e, "load_core_counters_selection", user_id=user_id, game_id=game_id)
            return selection_from_overlay(user_id, game_id, await self._overlay_counters(user_id), self._clock())

        if existing is not None:
            return existing
        return await self._seed_selection(user_id, game_id)

    async def _seed_selection(self, user_id: str, game_id: str) -> GameCoreCountersConfig:
        selection = selection_from_overlay(user_id, game_id, await self._overlay_counters(user_id), self._clock())
        await self._guard(
            self._game_core_counters_store.save(user_id, game_id, selection),
            None,
            "seed_core_counters_selection",
            user_id=user_id,
            game_id=game_id,
        )
        log.info("Seeded core counter selection", user_id=user_id, game_id=game_id, **selection_flags(selection))
        return selection

    async def _handle_same_game(
        self, user_id: str, game_id: str, game_name: str, box_art_url: str | None, now: datetime
    ) -> None:
        await self._upsert_library(user_id, game_id, game_name, box_art_url, now)

        try:
            existing = await self._game_core_counters_store.get(user_id, game_id)
        except Exception as e:
            # The stored selection may still exist; never reseed over it
            self._report(e, "load_core_counters_selection", user_id=user_id, game_id=game_id)
            return

        if existing is not None:
            log.debug("Game unchanged", user_id=user_id, game_id=game_id)
            return

        selection = await self._seed_selection(user_id, game_id)
        await self._apply_selection(user_id, selection)

    async def _handle_unknown_context(
        self, user_id: str, game_id: str, game_name: str, box_art_url: str | None, now: datetime
    ) -> None:
        """Record the new game while leaving the live state in place.

        Without the previous game id the live counters cannot be archived,
        so they are not replaced either.
        """
        log.warning(
            "Game context unreadable, keeping live state", user_id=user_id, game_id=game_id, game_name=game_name
        )
        await self._upsert_library(user_id, game_id, game_name, box_art_url, now)
        await self._push_channel_information(user_id, game_id)
        await self._guard(
            self._game_context_store.save(
                GameContext(user_id=user_id, active_game_id=game_id, active_game_name=game_name, updated_at=now)
            ),
            None,
            "save_game_context",
            user_id=user_id,
            game_id=game_id,
        )

        counters = await self._guard(
            self._active_state_store.get_counters(user_id), None, "load_active_counters", user_id=user_id
        )
        await self._notify_counters(user_id, counters or Counter(owner_id=user_id))

    async def _archive_active_state(
        self,
        user_id: str,
        game_id: str,
        game_name: str | None,
        overlay_counters: OverlayCounters,
        now: datetime,
    ) -> None:
        """Copy the live state to the per-game stores of the game being left.

        A live record that cannot be read is skipped, so the game's previous
        archive stays as it was.
        """
        await self._archive(
            self._active_state_store.get_counters(user_id),
            self._game_counters_store,
            user_id,
            game_id,
            lambda counters: replace(
                counters or Counter(owner_id=user_id),
                owner_id=user_id,
                last_category_name=game_name,
                last_updated=now,
            ),
            "counters",
        )
        await self._archive(
            self._active_state_store.get_chat_commands(user_id),
            self._game_chat_commands_store,
            user_id,
            game_id,
            lambda config: config or ChatCommandConfiguration(),
            "chat_commands",
        )
        await self._archive(
            self._active_state_store.get_custom_counters_config(user_id),
            self._game_custom_counters_store,
            user_id,
            game_id,
            lambda config: config or CustomCounterConfiguration(),
            "custom_counters",
        )

        try:
            selection = await self._game_core_counters_store.get(user_id, game_id)
        except Exception as e:
            # Unknown state; leave whatever is stored alone
            self._report(e, "load_core_counters_selection", user_id=user_id, game_id=game_id)
        else:
            if selection is None:
                await self._guard(
                    self._game_core_counters_store.save(
                        user_id, game_id, selection_from_overlay(user_id, game_id, overlay_counters, now)
                    ),
                    None,
                    "archive_core_counters_selection",
                    user_id=user_id,
                    game_id=game_id,
                )

        log.info("Archived active state", user_id=user_id, game_id=game_id, game_name=game_name)

    async def _archive(
        self,
        read: Awaitable[T | None],
        store: GameStateStore[T],
        user_id: str,
        game_id: str,
        snapshot: Callable[[T | None], T],
        name: str,
    ) -> None:
        try:
            live = await read
        except Exception as e:
            self._report(e, f"load_active_{name}", user_id=user_id)
            return

        await self._guard(
            store.save(user_id, game_id, snapshot(live)),
            None,
            f"archive_{name}",
            user_id=user_id,
            game_id=game_id,
        )

    async def _upsert_library(
        self, user_id: str, game_id: str, game_name: str, box_art_url: str | None, now: datetime
    ) -> None:
        # The store merges: created_at and any label override on disk survive
        item = GameLibraryItem(
            user_id=user_id,
            game_id=game_id,
            game_name=game_name,
            box_art_url=box_art_url or "",
            created_at=now,
            last_seen_at=now,
        )
        await self._guard(
            self._game_library_store.upsert(item), None, "upsert_game_library_item", user_id=user_id, game_id=game_id
        )

    async def _load_or_seed(
        self,
        store: GameStateStore[T],
        user_id: str,
        game_id: str,
        factory: Callable[[], T],
        name: str,
    ) -> T:
        """Load a per-game record, seeding the store with a default if absent.

        A failed read falls back to the default without writing it, so an
        unreadable record is never overwritten.
        """
        try:
            value = await store.get(user_id, game_id)
        except Exception as e:
            self._report(e, f"load_game_{name}", user_id=user_id, game_id=game_id)
            return factory()

        if value is not None:
            return value

        value = factory()
        await self._guard(store.save(user_id, game_id, value), None, f"seed_game_{name}", user_id=user_id, game_id=game_id)
        log.info("Seeded per-game state", store=name, user_id=user_id, game_id=game_id)
        return value

    async def _load_profile(self, user_id: str) -> Profile | None:
        """The stored profile, a fresh default if none exists, or None if unreadable."""
        try:
            profile = await self._profile_store.get(user_id)
        except Exception as e:
            self._report(e, "load_profile", user_id=user_id)
            return None
        return profile if profile is not None else Profile(user_id=user_id)

    async def _overlay_counters(self, user_id: str) -> OverlayCounters:
        profile = await self._load_profile(user_id)
        return profile.overlay_settings.counters if profile is not None else OverlayCounters()

    async def _apply_overlay_visibility(
        self,
        user_id: str,
        profile: Profile | None,
        selection: GameCoreCountersConfig,
        notify_unchanged: bool = True,
    ) -> None:
        if profile is None:
            log.warning("Profile unavailable, overlay visibility left unchanged", user_id=user_id)
            return

        changed = apply_selection_to_overlay(profile.overlay_settings.counters, selection)
        log.debug("Overlay visibility applied", user_id=user_id, changed=changed)
        if not changed and not notify_unchanged:
            return

        await self._guard(self._profile_store.save(profile), None, "save_profile", user_id=user_id)
        await self._guard(
            self._overlay_notifier.notify_settings_update(user_id, profile.overlay_settings),
            None,
            "notify_settings_update",
            user_id=user_id,
        )

    async def _push_channel_information(self, user_id: str, game_id: str) -> None:
        labels = await self.resolve_content_classification_labels(user_id, game_id)
        if not labels:
            log.debug("No content classification labels to apply", user_id=user_id, game_id=game_id)
            return

        await self._guard(
            self._channel_updater.update_channel_information(user_id, game_id, labels),
            None,
            "update_channel_information",
            user_id=user_id,
            game_id=game_id,
        )

    async def _notify_counters(self, user_id: str, counters: Counter) -> None:
        await self._guard(
            self._overlay_notifier.notify_counter_update(user_id, counters),
            None,
            "notify_counter_update",
            user_id=user_id,
        )

    async def _notify_chat_commands(self, user_id: str, config: ChatCommandConfiguration) -> None:
        await self._notify_alert(user_id, CHAT_COMMANDS_UPDATED, {"commands": chat_commands_to_dict(config)["commands"]})

    async def _notify_alert(self, user_id: str, alert_type: str, payload: dict[str, Any]) -> None:
        await self._guard(
            self._overlay_notifier.notify_custom_alert(user_id, alert_type, payload),
            None,
            "notify_custom_alert",
            user_id=user_id,
            alert_type=alert_type,
        )

    async def _guard(self, call: Awaitable[T], default: T, operation: str, **context: Any) -> T:
        """Await ``call``, reporting any failure and returning ``default`` instead."""
        try:
            return await call
        except Exception as e:
            self._report(e, operation, **context)
            return default

    def _report(self, error: Exception, operation: str, **context: Any) -> None:
        self._error_service.handle_error(error, operation, COMPONENT, context)
