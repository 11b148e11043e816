"""Per-user serialization of game switches."""

import asyncio
from typing import Protocol

import structlog

log = structlog.stdlib.get_logger()


class GameDetectedHandler(Protocol):
    async def handle_game_detected(
        self, user_id: str, game_id: str, game_name: str, box_art_url: str | None = None
    ) -> None: ...


class GameSwitchDispatcher:
    """Runs game switches for the same user one at a time.

    Switches for different users run concurrently. Repeated signals for the
    same game are forwarded as-is; the switch itself treats them as a no-op.
    A user's lock is dropped once no switch holds or awaits it.
    """

    def __init__(self, game_switch: GameDetectedHandler) -> None:
        self._game_switch = game_switch
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}  # callers holding or awaiting each lock

    async def dispatch(self, user_id: str, game_id: str, game_name: str, box_art_url: str | None = None) -> None:
        lock = self._locks.setdefault(user_id, asyncio.Lock())
        if lock.locked():
            log.debug("Waiting for previous game switch", user_id=user_id, game_id=game_id)

        self._users[user_id] = self._users.get(user_id, 0) + 1
        try:
            async with lock:
                await self._game_switch.handle_game_detected(user_id, game_id, game_name, box_art_url)
        finally:
            self._users[user_id] -= 1
            if not self._users[user_id]:
                del self._users[user_id]
                del self._locks[user_id]

    def pending_users(self) -> list[str]:
        """Users with a switch currently in progress."""
        return [user_id for user_id, lock in self._locks.items() if lock.locked()]

    def tracked_users(self) -> list[str]:
        """Users with a switch running or queued."""
        return list(self._users)
