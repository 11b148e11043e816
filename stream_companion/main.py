"""Main entry point for the stream companion service.

This module provides:
- Command-line argument parsing
- Service wiring and dependency injection
- Graceful shutdown handling
"""

import argparse
import asyncio
import json
import os
import signal
import sys
from dataclasses import replace
from pathlib import Path

import structlog

from stream_companion.models import AppConfig
from stream_companion.services.channel_update_handler import ChannelUpdateHandler
from stream_companion.services.channel_updater import (
    ChannelUpdater,
    DisabledChannelUpdater,
    StaticTokenProvider,
    TwitchChannelUpdater,
)
from stream_companion.services.config import ConfigurationService
from stream_companion.services.dispatcher import GameSwitchDispatcher
from stream_companion.services.errors import ErrorHandlingService, get_error_service, handle_error
from stream_companion.services.filesystem import FileSystemService
from stream_companion.services.game_switch import GameSwitchService
from stream_companion.services.http_client import HttpClientService
from stream_companion.services.logging import setup_logging
from stream_companion.services.overlay_notifier import BroadcastOverlayNotifier
from stream_companion.services.stores import (
    JsonActiveStateStore,
    JsonGameContextStore,
    JsonGameLibraryStore,
    JsonProfileStore,
    game_chat_commands_store,
    game_core_counters_store,
    game_counters_store,
    game_custom_counters_store,
)

log = structlog.stdlib.get_logger()

ENV_ACCESS_TOKEN = "TWITCH_ACCESS_TOKEN"


class ApplicationContext:
    """Container for application services and state.

    Services are created on first use so that a command only builds what it
    needs.
    """

    def __init__(
        self,
        config_path: Path | None = None,
        data_dir: Path | None = None,
        dry_run: bool = False,
        access_token: str | None = None,
    ) -> None:
        """Initialize the application context.

        Args:
            config_path: Path to configuration file
            data_dir: Overrides the configured data directory
            dry_run: Never call the streaming platform
            access_token: User access token for channel updates
        """
        self._config_path = config_path
        self._data_dir = data_dir
        self._dry_run = dry_run
        self._access_token = access_token if access_token is not None else os.getenv(ENV_ACCESS_TOKEN, "")

        # Services (initialized lazily)
        self._config_service: ConfigurationService | None = None
        self._config: AppConfig | None = None
        self._filesystem: FileSystemService | None = None
        self._http_client: HttpClientService | None = None
        self._error_service: ErrorHandlingService | None = None
        self._channel_updater: ChannelUpdater | None = None
        self._overlay_notifier: BroadcastOverlayNotifier | None = None
        self._game_switch: GameSwitchService | None = None
        self._dispatcher: GameSwitchDispatcher | None = None

        self._shutdown_requested: bool = False

    @property
    def config_service(self) -> ConfigurationService:
        if self._config_service is None:
            self._config_service = ConfigurationService(config_path=self._config_path)
        return self._config_service

    @property
    def config(self) -> AppConfig:
        """Loaded configuration with command-line overrides applied."""
        if self._config is None:
            config = self.config_service.load_config()
            if self._data_dir is not None:
                config = replace(config, data_directory=self._data_dir)
            if self._dry_run:
                config = replace(config, channel_updates_enabled=False)
            self._config = config
        return self._config

    @property
    def filesystem(self) -> FileSystemService:
        if self._filesystem is None:
            self._filesystem = FileSystemService(base_path=self.config.data_directory)
        return self._filesystem

    @property
    def http_client(self) -> HttpClientService:
        if self._http_client is None:
            self._http_client = HttpClientService(
                timeout=self.config.request_timeout,
                max_retries=self.config.max_retries,
            )
        return self._http_client

    @property
    def error_service(self) -> ErrorHandlingService:
        if self._error_service is None:
            self._error_service = get_error_service()
        return self._error_service

    @property
    def channel_updater(self) -> ChannelUpdater:
        """Twitch updater, or a logging stand-in when updates are disabled."""
        if self._channel_updater is None:
            if not self.config.channel_updates_enabled:
                self._channel_updater = DisabledChannelUpdater()
            else:
                if not self._access_token or not self.config.twitch_client_id:
                    log.warning(
                        "Twitch credentials incomplete, channel updates will fail",
                        has_token=bool(self._access_token),
                        has_client_id=bool(self.config.twitch_client_id),
                    )
                self._channel_updater = TwitchChannelUpdater(
                    http_client=self.http_client,
                    token_provider=StaticTokenProvider(self._access_token),
                    client_id=self.config.twitch_client_id,
                    base_url=self.config.twitch_api_base_url,
                )
        return self._channel_updater

    @property
    def overlay_notifier(self) -> BroadcastOverlayNotifier:
        if self._overlay_notifier is None:
            self._overlay_notifier = BroadcastOverlayNotifier()
        return self._overlay_notifier

    @property
    def game_switch(self) -> GameSwitchService:
        if self._game_switch is None:
            fs = self.filesystem
            self._game_switch = GameSwitchService(
                game_context_store=JsonGameContextStore(fs),
                game_counters_store=game_counters_store(fs),
                game_chat_commands_store=game_chat_commands_store(fs),
                game_custom_counters_store=game_custom_counters_store(fs),
                game_core_counters_store=game_core_counters_store(fs),
                active_state_store=JsonActiveStateStore(fs),
                game_library_store=JsonGameLibraryStore(fs),
                profile_store=JsonProfileStore(fs),
                channel_updater=self.channel_updater,
                overlay_notifier=self.overlay_notifier,
                error_service=self.error_service,
            )
        return self._game_switch

    @property
    def dispatcher(self) -> GameSwitchDispatcher:
        if self._dispatcher is None:
            self._dispatcher = GameSwitchDispatcher(self.game_switch)
        return self._dispatcher

    @property
    def channel_update_handler(self) -> ChannelUpdateHandler:
        return ChannelUpdateHandler(self.dispatcher)

    def request_shutdown(self) -> None:
        """Request graceful shutdown of the application."""
        self._shutdown_requested = True
        log.info("Shutdown requested")

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown_requested

    async def cleanup(self) -> None:
        """Close connections."""
        if self._http_client is not None:
            await self._http_client.close()
        log.info("Application cleanup complete")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stream-companion",
        description="Game-aware counters, chat commands and channel labels for Twitch broadcasters",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  stream-companion detect 12345 509658 "Just Chatting"     Replay a category change
  stream-companion --dry-run detect 12345 33214 Fortnite   Same, without calling Twitch
  stream-companion labels 12345 33214                      Show labels a switch would apply
        """,
    )

    _ = parser.add_argument("--version", action="version", version="%(prog)s 0.1.0")
    _ = parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: ~/.config/stream-companion/config.json)",
    )
    _ = parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Set the logging level (default: INFO)",
    )
    _ = parser.add_argument("--log-dir", type=Path, default=None, help="Directory for log files (default: console only)")
    _ = parser.add_argument("--data-dir", type=Path, default=None, help="Override the data directory")
    _ = parser.add_argument("--dry-run", action="store_true", help="Do not push channel updates to Twitch")

    commands = parser.add_subparsers(dest="command", required=True)

    detect = commands.add_parser("detect", help="Handle a game change for a broadcaster")
    _ = detect.add_argument("user_id")
    _ = detect.add_argument("game_id")
    _ = detect.add_argument("game_name")
    _ = detect.add_argument("--box-art", default=None, help="Box art URL for the game library")

    labels = commands.add_parser("labels", help="Print the content classification labels for a game")
    _ = labels.add_argument("user_id")
    _ = labels.add_argument("game_id")

    return parser


def setup_signal_handlers(context: ApplicationContext) -> None:
    """Set up signal handlers for graceful shutdown."""
    def signal_handler(signum: int, frame: object) -> None:
        _ = frame
        log.info("Received signal", signal=signal.Signals(signum).name)
        context.request_shutdown()
        raise KeyboardInterrupt

    _ = signal.signal(signal.SIGINT, signal_handler)
    _ = signal.signal(signal.SIGTERM, signal_handler)
    log.debug("Signal handlers registered")


async def run_command(context: ApplicationContext, args: argparse.Namespace) -> int:
    """Run the selected command.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    try:
        if args.command == "detect":
            await context.dispatcher.dispatch(args.user_id, args.game_id, args.game_name, args.box_art)
            errors = context.error_service.get_recent_errors()
            if errors:
                log.warning("Game switch completed with degraded steps", failures=len(errors))
            print(f"Active game for {args.user_id}: {args.game_id} ({args.game_name})")
            return 0

        if args.command == "labels":
            labels = await context.game_switch.resolve_content_classification_labels(args.user_id, args.game_id)
            print(json.dumps(labels))
            return 0

        log.error("Unknown command", command=args.command)
        return 1
    finally:
        await context.cleanup()


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the application."""
    args = build_parser().parse_args(argv)

    _ = setup_logging(log_level=args.log_level, log_dir=args.log_dir)

    log.info(
        "Starting stream companion",
        version="0.1.0",
        command=args.command,
        config_path=str(args.config) if args.config else "default",
        dry_run=args.dry_run,
    )

    context = ApplicationContext(config_path=args.config, data_dir=args.data_dir, dry_run=args.dry_run)
    setup_signal_handlers(context)

    try:
        exit_code = asyncio.run(run_command(context, args))

    except KeyboardInterrupt:
        log.info("Application interrupted by user")
        exit_code = 130

    except Exception as e:
        app_error = handle_error(e, f"run_{args.command}", "main")
        log.error("Unhandled exception", error=str(e), exc_info=True)
        print(f"Fatal error: {app_error.message}", file=sys.stderr)
        exit_code = 1

    log.info("Application exiting", exit_code=exit_code)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
