"""Intake of Twitch ``channel.update`` notifications."""

from typing import Any

import structlog

from .dispatcher import GameSwitchDispatcher

log = structlog.stdlib.get_logger()


def _field(event: dict[str, Any], name: str) -> str:
    value = event.get(name)
    if value is None:
        return ""
    return str(value).strip()


class ChannelUpdateHandler:
    """Turns channel.update events into game switches."""

    subscription_type = "channel.update"

    def __init__(self, dispatcher: GameSwitchDispatcher) -> None:
        self._dispatcher = dispatcher

    async def handle(self, event: dict[str, Any]) -> bool:
        """Dispatch a game switch for ``event``.

        Returns:
            False if the event lacks a broadcaster or category id and was ignored
        """
        user_id = _field(event, "broadcaster_user_id")
        game_id = _field(event, "category_id")
        game_name = _field(event, "category_name")

        if not user_id or not game_id:
            log.debug("Ignoring channel update without broadcaster or category", user_id=user_id, game_id=game_id)
            return False

        log.info("Channel category changed", user_id=user_id, game_id=game_id, game_name=game_name)
        await self._dispatcher.dispatch(user_id, game_id, game_name)
        return True
