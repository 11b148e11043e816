"""Game-related data models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class GameContext:
    """The game currently attributed to a broadcaster's session."""
    user_id: str
    active_game_id: str | None = None
    active_game_name: str | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class GameLibraryItem:
    """Cached metadata for a game a broadcaster has played."""
    user_id: str
    game_id: str
    game_name: str
    box_art_url: str
    created_at: datetime
    last_seen_at: datetime
    # None = no game-specific override, [] = explicitly no labels
    enabled_content_classification_labels: list[str] | None = None
