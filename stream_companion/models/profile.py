"""Broadcaster profile data models."""

from dataclasses import dataclass, field


@dataclass
class OverlayCounters:
    """Visibility of the built-in counters on the overlay."""
    deaths: bool = True
    swears: bool = True
    screams: bool = True
    bits: bool = False


@dataclass
class OverlaySettings:
    """Overlay presentation settings."""
    enabled: bool = False
    position: str = "top-right"
    counters: OverlayCounters = field(default_factory=OverlayCounters)


@dataclass
class StreamSettings:
    """Channel defaults applied when the broadcaster changes category."""
    default_content_classification_labels: list[str] | None = None


@dataclass
class FeatureFlags:
    """Per-account feature toggles."""
    chat_commands: bool = True
    stream_overlay: bool = False
    stream_alerts: bool = True
    stream_settings: StreamSettings = field(default_factory=StreamSettings)


@dataclass
class Profile:
    """Broadcaster account record."""
    user_id: str
    display_name: str = ""
    features: FeatureFlags = field(default_factory=FeatureFlags)
    overlay_settings: OverlaySettings = field(default_factory=OverlaySettings)
