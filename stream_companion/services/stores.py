"""Store contracts and their JSON-file implementations.

Every store is keyed by user id and, for per-game stores, by game id. Game
ids are matched case-insensitively, so they are lower-cased before they
become part of a path. A missing record is reported as ``None``; a record
that exists but cannot be read or written raises ``StoreError``.

On-disk layout below the data directory::

    game_context/<user>.json
    profiles/<user>.json
    active/<user>/{counters,chat_commands,custom_counters}.json
    game_library/<user>/<game>.json
    game_counters/<user>/<game>.json            (and the other per-game stores)
"""

from collections.abc import Callable
from pathlib import Path
from typing import Any, Generic, Protocol, TypeVar
from urllib.parse import quote

import structlog

from ..models import (
    ChatCommandConfiguration,
    Counter,
    CustomCounterConfiguration,
    GameContext,
    GameCoreCountersConfig,
    GameLibraryItem,
    Profile,
)
from . import serialization
from .errors import StoreError
from .filesystem import FileSystemService

log = structlog.stdlib.get_logger()

T = TypeVar("T")


class GameContextStore(Protocol):
    async def get(self, user_id: str) -> GameContext | None: ...

    async def save(self, context: GameContext) -> None: ...


class GameStateStore(Protocol[T]):
    async def get(self, user_id: str, game_id: str) -> T | None: ...

    async def save(self, user_id: str, game_id: str, value: T) -> None: ...


class ActiveStateStore(Protocol):
    async def get_counters(self, user_id: str) -> Counter | None: ...

    async def save_counters(self, counter: Counter) -> None: ...

    async def get_chat_commands(self, user_id: str) -> ChatCommandConfiguration | None: ...

    async def save_chat_commands(self, user_id: str, config: ChatCommandConfiguration) -> None: ...

    async def get_custom_counters_config(self, user_id: str) -> CustomCounterConfiguration | None: ...

    async def save_custom_counters_config(self, user_id: str, config: CustomCounterConfiguration) -> None: ...


class GameLibraryStore(Protocol):
    async def get(self, user_id: str, game_id: str) -> GameLibraryItem | None: ...

    async def upsert(self, item: GameLibraryItem) -> None: ...


class ProfileStore(Protocol):
    async def get(self, user_id: str) -> Profile | None: ...

    async def save(self, profile: Profile) -> None: ...


def user_key(user_id: str) -> str:
    """Path-safe form of a user id."""
    return quote(user_id, safe="").replace(".", "%2E")


def game_key(game_id: str) -> str:
    """Path-safe, case-folded form of a game id."""
    return user_key(game_id.strip().lower())


class JsonRecordStore:
    """Shared read/write plumbing for the JSON stores."""

    def __init__(self, filesystem: FileSystemService, name: str) -> None:
        self._filesystem = filesystem
        self.name = name

    def _path(self, *parts: str) -> Path:
        return self._filesystem.resolve(self.name, *parts[:-1], f"{parts[-1]}.json")

    async def _read(self, path: Path) -> dict[str, Any] | None:
        try:
            return await self._filesystem.load_json_if_exists(path)
        except (OSError, ValueError) as e:
            raise StoreError(
                f"Failed to read {self.name} record",
                store=self.name,
                key=str(path),
                original_error=e,
            ) from e

    async def _write(self, path: Path, data: dict[str, Any]) -> None:
        try:
            await self._filesystem.save_json(data, path)
        except (OSError, ValueError) as e:
            raise StoreError(
                f"Failed to write {self.name} record",
                store=self.name,
                key=str(path),
                original_error=e,
            ) from e


class JsonGameContextStore(JsonRecordStore):
    """One GameContext record per user."""

    def __init__(self, filesystem: FileSystemService) -> None:
        super().__init__(filesystem, "game_context")

    async def get(self, user_id: str) -> GameContext | None:
        data = await self._read(self._path(user_key(user_id)))
        return serialization.game_context_from_dict(data, user_id) if data is not None else None

    async def save(self, context: GameContext) -> None:
        await self._write(self._path(user_key(context.user_id)), serialization.game_context_to_dict(context))


class JsonGameStateStore(JsonRecordStore, Generic[T]):
    """A per-(user, game) record store parameterised by its codec."""

    def __init__(
        self,
        filesystem: FileSystemService,
        name: str,
        encode: Callable[[T], dict[str, Any]],
        decode: Callable[[dict[str, Any], str, str], T],
    ) -> None:
        super().__init__(filesystem, name)
        self._encode = encode
        self._decode = decode

    async def get(self, user_id: str, game_id: str) -> T | None:
        data = await self._read(self._path(user_key(user_id), game_key(game_id)))
        return self._decode(data, user_id, game_id) if data is not None else None

    async def save(self, user_id: str, game_id: str, value: T) -> None:
        await self._write(self._path(user_key(user_id), game_key(game_id)), self._encode(value))


def game_counters_store(filesystem: FileSystemService) -> JsonGameStateStore[Counter]:
    return JsonGameStateStore(
        filesystem,
        "game_counters",
        serialization.counter_to_dict,
        lambda data, user_id, _game_id: serialization.counter_from_dict(data, user_id),
    )


def game_chat_commands_store(filesystem: FileSystemService) -> JsonGameStateStore[ChatCommandConfiguration]:
    return JsonGameStateStore(
        filesystem,
        "game_chat_commands",
        serialization.chat_commands_to_dict,
        lambda data, _user_id, _game_id: serialization.chat_commands_from_dict(data),
    )


def game_custom_counters_store(filesystem: FileSystemService) -> JsonGameStateStore[CustomCounterConfiguration]:
    return JsonGameStateStore(
        filesystem,
        "game_custom_counters",
        serialization.custom_counters_to_dict,
        lambda data, _user_id, _game_id: serialization.custom_counters_from_dict(data),
    )


def game_core_counters_store(filesystem: FileSystemService) -> JsonGameStateStore[GameCoreCountersConfig]:
    return JsonGameStateStore(
        filesystem,
        "game_core_counters",
        serialization.core_selection_to_dict,
        serialization.core_selection_from_dict,
    )


class JsonActiveStateStore(JsonRecordStore):
    """The live counters and configurations read by chat and overlays."""

    def __init__(self, filesystem: FileSystemService) -> None:
        super().__init__(filesystem, "active")

    async def get_counters(self, user_id: str) -> Counter | None:
        data = await self._read(self._path(user_key(user_id), "counters"))
        return serialization.counter_from_dict(data, user_id) if data is not None else None

    async def save_counters(self, counter: Counter) -> None:
        await self._write(self._path(user_key(counter.owner_id), "counters"), serialization.counter_to_dict(counter))

    async def get_chat_commands(self, user_id: str) -> ChatCommandConfiguration | None:
        data = await self._read(self._path(user_key(user_id), "chat_commands"))
        return serialization.chat_commands_from_dict(data) if data is not None else None

    async def save_chat_commands(self, user_id: str, config: ChatCommandConfiguration) -> None:
        await self._write(self._path(user_key(user_id), "chat_commands"), serialization.chat_commands_to_dict(config))

    async def get_custom_counters_config(self, user_id: str) -> CustomCounterConfiguration | None:
        data = await self._read(self._path(user_key(user_id), "custom_counters"))
        return serialization.custom_counters_from_dict(data) if data is not None else None

    async def save_custom_counters_config(self, user_id: str, config: CustomCounterConfiguration) -> None:
        await self._write(self._path(user_key(user_id), "custom_counters"), serialization.custom_counters_to_dict(config))


class JsonGameLibraryStore(JsonRecordStore):
    """Per-user game metadata cache.

    Upserts merge with the stored record: the original ``created_at`` is
    kept, and a ``None`` label override never erases a stored one.
    """

    def __init__(self, filesystem: FileSystemService) -> None:
        super().__init__(filesystem, "game_library")

    async def get(self, user_id: str, game_id: str) -> GameLibraryItem | None:
        data = await self._read(self._path(user_key(user_id), game_key(game_id)))
        return serialization.library_item_from_dict(data, user_id, game_id) if data is not None else None

    async def upsert(self, item: GameLibraryItem) -> None:
        if not item.game_id.strip():
            log.debug("Skipping library upsert without game id", user_id=item.user_id)
            return

        path = self._path(user_key(item.user_id), game_key(item.game_id))
        existing_data = await self._read(path)
        merged = serialization.library_item_to_dict(item)
        if existing_data is not None:
            existing = serialization.library_item_from_dict(existing_data, item.user_id, item.game_id)
            merged["created_at"] = serialization.library_item_to_dict(existing)["created_at"]
            if item.enabled_content_classification_labels is None:
                merged["enabled_content_classification_labels"] = existing.enabled_content_classification_labels

        await self._write(path, merged)


class JsonProfileStore(JsonRecordStore):
    """Broadcaster profiles."""

    def __init__(self, filesystem: FileSystemService) -> None:
        super().__init__(filesystem, "profiles")

    async def get(self, user_id: str) -> Profile | None:
        data = await self._read(self._path(user_key(user_id)))
        return serialization.profile_from_dict(data, user_id) if data is not None else None

    async def save(self, profile: Profile) -> None:
        await self._write(self._path(user_key(profile.user_id)), serialization.profile_to_dict(profile))
