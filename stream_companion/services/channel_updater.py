"""Pushes category and content classification labels to Twitch."""

from typing import Protocol

import httpx
import structlog

from .errors import ChannelUpdateError
from .http_client import HttpClientService

log = structlog.stdlib.get_logger()

# Content classification labels a broadcaster can toggle on Twitch
KNOWN_CONTENT_CLASSIFICATION_LABELS: tuple[str, ...] = (
    "DebatedSocialIssuesAndPolitics",
    "DrugsIntoxication",
    "SexualThemes",
    "ViolentGraphic",
    "Gambling",
    "ProfanityVulgarity",
)


class ChannelUpdater(Protocol):
    async def update_channel_information(self, user_id: str, game_id: str, labels: list[str]) -> None: ...


class TokenProvider(Protocol):
    async def get_access_token(self, user_id: str) -> str: ...


class StaticTokenProvider:
    """Serves one pre-issued user access token for every broadcaster."""

    def __init__(self, access_token: str) -> None:
        self._access_token = access_token

    async def get_access_token(self, user_id: str) -> str:
        return self._access_token


def build_label_payload(labels: list[str]) -> list[dict[str, object]]:
    """Describe every known label, enabled only if it is in ``labels``.

    Sending the complete list makes the channel's label set equal to
    ``labels`` instead of merely adding to it. Unknown ids are passed
    through as enabled.
    """
    wanted = {label.strip().lower(): label.strip() for label in labels if label and label.strip()}
    payload: list[dict[str, object]] = [
        {"id": label, "is_enabled": label.lower() in wanted}
        for label in KNOWN_CONTENT_CLASSIFICATION_LABELS
    ]
    known = {label.lower() for label in KNOWN_CONTENT_CLASSIFICATION_LABELS}
    for key, label in wanted.items():
        if key not in known:
            payload.append({"id": label, "is_enabled": True})
    return payload


class TwitchChannelUpdater:
    """Modify Channel Information via the Helix API."""

    def __init__(
        self,
        http_client: HttpClientService,
        token_provider: TokenProvider,
        client_id: str,
        base_url: str = "https://api.twitch.tv/helix",
    ) -> None:
        self._http_client = http_client
        self._token_provider = token_provider
        self._client_id = client_id
        self._base_url = base_url.rstrip("/")

    async def update_channel_information(self, user_id: str, game_id: str, labels: list[str]) -> None:
        """Set the channel's category and content classification labels.

        Raises:
            ChannelUpdateError: If the platform call fails
        """
        url = f"{self._base_url}/channels"
        body = {
            "game_id": game_id,
            "content_classification_labels": build_label_payload(labels),
        }

        try:
            token = await self._token_provider.get_access_token(user_id)
            await self._http_client.patch(
                url,
                json=body,
                params={"broadcaster_id": user_id},
                headers={
                    "Authorization": f"Bearer {token}",
                    "Client-Id": self._client_id,
                },
            )
        except httpx.HTTPStatusError as e:
            raise ChannelUpdateError(
                "Twitch rejected the channel update",
                original_error=e,
                url=url,
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ChannelUpdateError(
                "Unable to reach Twitch",
                original_error=e,
                url=url,
            ) from e

        log.info(
            "Channel information updated",
            user_id=user_id,
            game_id=game_id,
            labels=sorted(labels),
        )


class DisabledChannelUpdater:
    """Channel updater used for dry runs: logs and does nothing."""

    async def update_channel_information(self, user_id: str, game_id: str, labels: list[str]) -> None:
        log.info("Channel update skipped (dry run)", user_id=user_id, game_id=game_id, labels=sorted(labels))
