"""Main entry point for the trick-taking game server."""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

from trickroom_server.config import load_config
from trickroom_server.game.engine import GameEngine
from trickroom_server.logging import GameLogConfig, GameLogger
from trickroom_server.network.http_api import VoiceTokenServer
from trickroom_server.network.server import GameServer
from trickroom_server.utils.logger import GameDisplay, setup_logging

logger = logging.getLogger(__name__)


def generate_log_filename(log_dir: str) -> str:
    """Generate a log filename for this server run.

    Format: {ISO timestamp}_games.jsonl

    Args:
        log_dir: Directory for log files.

    Returns:
        Full path to log file.
    """
    timestamp = datetime.now().strftime("%Y%m%dT%H%M%S")
    return str(Path(log_dir) / f"{timestamp}_games.jsonl")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Trick-taking card game server"
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        help="Path to config file (YAML)",
    )
    parser.add_argument(
        "-p",
        "--port",
        type=int,
        help="Game server port (overrides config)",
    )
    parser.add_argument(
        "--http-port",
        type=int,
        help="Voice token HTTP port (overrides config)",
    )
    parser.add_argument(
        "--turn-timeout",
        type=float,
        help="Seconds before a turn is autoplayed (overrides config)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "--show-hands",
        action="store_true",
        help="Show dealt hands in output",
    )
    parser.add_argument(
        "--game-log",
        type=Path,
        help="Directory for game log files (filename auto-generated)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 for success)
    """
    args = parse_args(argv)

    # Load config
    config = load_config(args.config)

    # Apply command-line overrides
    if args.port:
        config.server.port = args.port
    if args.http_port:
        config.server.http_port = args.http_port
    if args.turn_timeout:
        config.timing.turn_timeout = args.turn_timeout
    if args.verbose:
        config.logging.level = "DEBUG"
    if args.show_hands:
        config.logging.show_hands = True

    # Determine game log directory (CLI argument overrides config file)
    game_log_enabled = args.game_log is not None or config.game_log.enabled
    game_log_dir = str(args.game_log) if args.game_log else config.game_log.output_path

    setup_logging(config.logging.level)
    display = GameDisplay(show_hands=config.logging.show_hands)

    print("Trickroom server starting...")
    print(f"Port: {config.server.port}")
    print(f"Voice token port: {config.server.http_port}")
    print(f"Turn timeout: {config.timing.turn_timeout}s")

    if game_log_enabled:
        game_log_config = GameLogConfig(enabled=True, output_path=generate_log_filename(game_log_dir))
        print(f"Game log: {game_log_config.output_path}")
    else:
        game_log_config = GameLogConfig(enabled=False)
    print()

    engine = None
    http_server = None
    try:
        with GameServer(host=config.server.host, port=config.server.port) as server, \
                GameLogger(game_log_config) as game_logger:
            engine = GameEngine(server, config, game_logger=game_logger)
            engine.set_callbacks(
                on_game_start=display.print_hands,
                on_trick_won=display.print_trick_won,
                on_game_end=display.print_game_end,
            )
            server.attach(engine)

            http_server = VoiceTokenServer(
                (config.server.host, config.server.http_port),
                engine.credential_issuer,
            )
            http_server.start_background()

            display.print_separator()
            server.serve_forever()
            return 0

    except KeyboardInterrupt:
        print("\nServer interrupted by user")
        return 1
    except Exception as e:
        logger.exception(f"Server error: {e}")
        return 1
    finally:
        if engine is not None:
            engine.shutdown()
        if http_server is not None:
            http_server.shutdown()
            http_server.server_close()


if __name__ == "__main__":
    sys.exit(main())
