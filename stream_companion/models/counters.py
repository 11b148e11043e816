"""Counter and per-game counter configuration data models."""

from dataclasses import dataclass, field
from datetime import datetime


# The four built-in counters, in display order
CORE_COUNTERS: tuple[str, ...] = ("deaths", "swears", "screams", "bits")


@dataclass
class Counter:
    """Live or archived counter values for a broadcaster."""
    owner_id: str
    deaths: int = 0
    swears: int = 0
    screams: int = 0
    bits: int = 0
    custom_counters: dict[str, int] = field(default_factory=dict)
    last_category_name: str | None = None
    last_updated: datetime | None = None
    stream_started: datetime | None = None


@dataclass
class ChatCommandDefinition:
    """Override for a single chat command."""
    enabled: bool = True
    response: str = ""
    permission: str = "everyone"  # everyone, subscriber, moderator, broadcaster
    cooldown: int = 0


@dataclass
class ChatCommandConfiguration:
    """Sparse chat command overrides. A missing command uses its default."""
    commands: dict[str, ChatCommandDefinition] = field(default_factory=dict)


@dataclass
class CustomCounterDefinition:
    """A user-defined counter."""
    name: str
    icon: str = ""
    increment_by: int = 1
    milestones: list[int] = field(default_factory=list)


@dataclass
class CustomCounterConfiguration:
    """User-defined counters keyed by counter id."""
    counters: dict[str, CustomCounterDefinition] = field(default_factory=dict)


@dataclass(frozen=True)
class GameCoreCountersConfig:
    """Which built-in counters are relevant to a game."""
    user_id: str
    game_id: str
    deaths_enabled: bool
    swears_enabled: bool
    screams_enabled: bool
    bits_enabled: bool
    updated_at: datetime
