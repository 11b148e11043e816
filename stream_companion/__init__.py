"""Game-aware counters, chat commands and channel labels for Twitch broadcasters."""

__version__ = "0.1.0"
