"""Tests for the file system service and the JSON stores."""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from hypothesis import given, strategies as st

from stream_companion.models import (
    ChatCommandConfiguration,
    ChatCommandDefinition,
    Counter,
    CustomCounterConfiguration,
    CustomCounterDefinition,
    GameContext,
    GameCoreCountersConfig,
    GameLibraryItem,
    OverlayCounters,
    OverlaySettings,
    Profile,
)
from stream_companion.services import (
    FileSystemService,
    JsonActiveStateStore,
    JsonGameContextStore,
    JsonGameLibraryStore,
    JsonProfileStore,
    StoreError,
    game_chat_commands_store,
    game_core_counters_store,
    game_counters_store,
    game_custom_counters_store,
)
from stream_companion.services.stores import game_key, user_key

NOW = datetime(2026, 3, 1, 20, 0, tzinfo=timezone.utc)


@pytest.fixture
def filesystem(tmp_path: Path) -> FileSystemService:
    return FileSystemService(base_path=tmp_path)


class TestFileSystemService:
    @pytest.mark.asyncio
    async def test_save_and_load(self, filesystem: FileSystemService) -> None:
        path = filesystem.resolve("nested", "record.json")

        await filesystem.save_json({"a": 1}, path)

        assert await filesystem.load_json(path) == {"a": 1}
        assert not path.with_suffix(".json.tmp").exists()

    @pytest.mark.asyncio
    async def test_missing_file(self, filesystem: FileSystemService) -> None:
        path = filesystem.resolve("missing.json")

        with pytest.raises(FileNotFoundError):
            await filesystem.load_json(path)
        assert await filesystem.load_json_if_exists(path) is None

    @pytest.mark.asyncio
    async def test_invalid_json(self, filesystem: FileSystemService) -> None:
        path = filesystem.resolve("broken.json")
        path.write_text("{oops", encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid JSON"):
            await filesystem.load_json_if_exists(path)

    @pytest.mark.asyncio
    async def test_non_object_json(self, filesystem: FileSystemService) -> None:
        path = filesystem.resolve("list.json")
        path.write_text("[1, 2]", encoding="utf-8")

        with pytest.raises(ValueError, match="Expected JSON object"):
            await filesystem.load_json(path)

    @pytest.mark.asyncio
    async def test_unserializable_data_leaves_no_file(self, filesystem: FileSystemService) -> None:
        path = filesystem.resolve("bad.json")

        with pytest.raises(ValueError, match="Cannot serialize"):
            await filesystem.save_json({"when": object()}, path)

        assert not path.exists()
        assert not path.with_suffix(".json.tmp").exists()

    def test_ensure_directory_rejects_file(self, filesystem: FileSystemService) -> None:
        target = filesystem.resolve("file")
        target.write_text("x", encoding="utf-8")

        with pytest.raises(OSError):
            filesystem.ensure_directory(target)


class TestKeys:
    def test_game_key_is_case_insensitive(self) -> None:
        assert game_key("Game-ABC") == game_key("game-abc")

    def test_keys_cannot_escape_directory(self) -> None:
        assert "/" not in user_key("../../etc/passwd")
        assert ".." not in user_key("..")

    @given(st.text(min_size=1, max_size=40))
    def test_user_key_is_a_single_path_component(self, user_id: str) -> None:
        key = user_key(user_id)
        assert "/" not in key
        assert "\\" not in key
        assert key not in (".", "..")


class TestGameContextStore:
    @pytest.mark.asyncio
    async def test_missing_record_is_none(self, filesystem: FileSystemService) -> None:
        assert await JsonGameContextStore(filesystem).get("user1") is None

    @pytest.mark.asyncio
    async def test_save_overwrites(self, filesystem: FileSystemService) -> None:
        store = JsonGameContextStore(filesystem)

        await store.save(GameContext("user1", "game-a", "Game A", NOW))
        await store.save(GameContext("user1", "game-b", "Game B", NOW))

        assert await store.get("user1") == GameContext("user1", "game-b", "Game B", NOW)

    @pytest.mark.asyncio
    async def test_corrupt_record_raises_store_error(self, filesystem: FileSystemService) -> None:
        store = JsonGameContextStore(filesystem)
        path = filesystem.resolve("game_context", "user1.json")
        path.parent.mkdir(parents=True)
        path.write_text("not json", encoding="utf-8")

        with pytest.raises(StoreError) as exc_info:
            await store.get("user1")

        assert exc_info.value.store == "game_context"


class TestGameStateStores:
    @pytest.mark.asyncio
    async def test_counters_keyed_by_user_and_case_folded_game(self, filesystem: FileSystemService) -> None:
        store = game_counters_store(filesystem)
        counter = Counter(owner_id="user1", deaths=3, custom_counters={"kills": 5}, last_category_name="Old Game")

        await store.save("user1", "Game-Old", counter)

        loaded = await store.get("user1", "game-old")
        assert loaded == counter
        assert await store.get("user2", "game-old") is None
        assert await store.get("user1", "game-new") is None

    @pytest.mark.asyncio
    async def test_chat_commands(self, filesystem: FileSystemService) -> None:
        store = game_chat_commands_store(filesystem)
        config = ChatCommandConfiguration(
            commands={"!swears": ChatCommandDefinition(enabled=False), "!lurk": ChatCommandDefinition(response="hi")}
        )

        await store.save("user1", "game1", config)

        assert await store.get("user1", "game1") == config

    @pytest.mark.asyncio
    async def test_custom_counters(self, filesystem: FileSystemService) -> None:
        store = game_custom_counters_store(filesystem)
        config = CustomCounterConfiguration(
            counters={"kills": CustomCounterDefinition(name="Kills", icon="sword", milestones=[10, 50])}
        )

        await store.save("user1", "game1", config)

        assert await store.get("user1", "game1") == config

    @pytest.mark.asyncio
    async def test_core_counters_selection(self, filesystem: FileSystemService) -> None:
        store = game_core_counters_store(filesystem)
        selection = GameCoreCountersConfig("user1", "game1", True, False, True, False, NOW)

        await store.save("user1", "game1", selection)

        assert await store.get("user1", "GAME1") == selection


class TestActiveStateStore:
    @pytest.mark.asyncio
    async def test_round_trip(self, filesystem: FileSystemService) -> None:
        store = JsonActiveStateStore(filesystem)
        counter = Counter(owner_id="user1", swears=2, last_updated=NOW)
        chat = ChatCommandConfiguration(commands={"!deaths": ChatCommandDefinition(enabled=False)})
        custom = CustomCounterConfiguration(counters={"assists": CustomCounterDefinition(name="Assists")})

        await store.save_counters(counter)
        await store.save_chat_commands("user1", chat)
        await store.save_custom_counters_config("user1", custom)

        assert await store.get_counters("user1") == counter
        assert await store.get_chat_commands("user1") == chat
        assert await store.get_custom_counters_config("user1") == custom

    @pytest.mark.asyncio
    async def test_missing_records(self, filesystem: FileSystemService) -> None:
        store = JsonActiveStateStore(filesystem)

        assert await store.get_counters("user1") is None
        assert await store.get_chat_commands("user1") is None
        assert await store.get_custom_counters_config("user1") is None

    @pytest.mark.asyncio
    async def test_lenient_decoding_of_old_records(self, filesystem: FileSystemService) -> None:
        path = filesystem.resolve("active", "user1", "counters.json")
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"deaths": 4, "custom_counters": {"kills": "many"}}), encoding="utf-8")

        counter = await JsonActiveStateStore(filesystem).get_counters("user1")

        assert counter == Counter(owner_id="user1", deaths=4, custom_counters={"kills": 0})


class TestGameLibraryStore:
    def _item(self, **overrides: object) -> GameLibraryItem:
        values: dict[str, object] = {
            "user_id": "user1",
            "game_id": "game1",
            "game_name": "Test Game",
            "box_art_url": "https://example.com/old.jpg",
            "created_at": NOW,
            "last_seen_at": NOW,
        }
        values.update(overrides)
        return GameLibraryItem(**values)  # type: ignore[arg-type]

    @pytest.mark.asyncio
    async def test_insert(self, filesystem: FileSystemService) -> None:
        store = JsonGameLibraryStore(filesystem)

        await store.upsert(self._item())

        assert await store.get("user1", "game1") == self._item()

    @pytest.mark.asyncio
    async def test_upsert_keeps_created_at_and_refreshes_the_rest(self, filesystem: FileSystemService) -> None:
        store = JsonGameLibraryStore(filesystem)
        later = NOW + timedelta(days=2)
        await store.upsert(self._item())

        await store.upsert(
            self._item(created_at=later, last_seen_at=later, box_art_url="https://example.com/new.jpg")
        )

        item = await store.get("user1", "game1")
        assert item is not None
        assert item.created_at == NOW
        assert item.last_seen_at == later
        assert item.box_art_url == "https://example.com/new.jpg"

    @pytest.mark.asyncio
    async def test_none_labels_do_not_erase_override(self, filesystem: FileSystemService) -> None:
        store = JsonGameLibraryStore(filesystem)
        await store.upsert(self._item(enabled_content_classification_labels=["Gambling"]))

        await store.upsert(self._item(enabled_content_classification_labels=None))

        item = await store.get("user1", "game1")
        assert item is not None
        assert item.enabled_content_classification_labels == ["Gambling"]

    @pytest.mark.asyncio
    async def test_empty_labels_replace_override(self, filesystem: FileSystemService) -> None:
        store = JsonGameLibraryStore(filesystem)
        await store.upsert(self._item(enabled_content_classification_labels=["Gambling"]))

        await store.upsert(self._item(enabled_content_classification_labels=[]))

        item = await store.get("user1", "game1")
        assert item is not None
        assert item.enabled_content_classification_labels == []

    @pytest.mark.asyncio
    async def test_blank_game_id_is_skipped(self, filesystem: FileSystemService) -> None:
        store = JsonGameLibraryStore(filesystem)

        await store.upsert(self._item(game_id="  "))

        assert not filesystem.resolve("game_library").exists()


class TestProfileStore:
    @pytest.mark.asyncio
    async def test_round_trip(self, filesystem: FileSystemService) -> None:
        store = JsonProfileStore(filesystem)
        profile = Profile(
            user_id="user1",
            display_name="Streamer",
            overlay_settings=OverlaySettings(enabled=True, counters=OverlayCounters(swears=False)),
        )
        profile.features.stream_settings.default_content_classification_labels = ["Gambling"]

        await store.save(profile)

        assert await store.get("user1") == profile

    @pytest.mark.asyncio
    async def test_missing_profile(self, filesystem: FileSystemService) -> None:
        assert await JsonProfileStore(filesystem).get("nobody") is None

    @pytest.mark.asyncio
    async def test_partial_record_uses_defaults(self, filesystem: FileSystemService) -> None:
        path = filesystem.resolve("profiles", "user1.json")
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"display_name": "Streamer"}), encoding="utf-8")

        profile = await JsonProfileStore(filesystem).get("user1")

        assert profile == Profile(user_id="user1", display_name="Streamer")


