"""ntfybell entry point.

Usage:
    python -m ntfybell

Configuration is read from the environment and an optional ``.env`` file
in the working directory (NTFY_SERVER_URL, NTFY_PORT, NTFY_TOPICS,
MP3_FILE, NTFY_LOG_LEVEL, NTFY_MAX_CONCURRENT_PLAYS, NTFY_AUDIO_DEVICE).
"""

import logging
import sys

from . import __version__
from .config.loader import load_config
from .errors import BellError
from .supervisor import Supervisor

# Libraries whose debug output is frame-level noise
NOISY_LOGGERS = ("websockets", "websockets.client", "websockets.protocol")


def setup_logging(level: str) -> None:
    """Configure logging based on config."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def main() -> int:
    """Main entry point for ntfybell.

    Returns:
        Exit code (0 after a signal-driven shutdown, 1 on startup failure)
    """
    try:
        config = load_config()
    except BellError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(config.logging.level)
    logger = logging.getLogger("ntfybell")

    logger.info("ntfybell v%s", __version__)
    logger.info("Server: %s:%s", config.server, config.port)
    logger.info("Topics: %s", ", ".join(config.topics))
    logger.info("Clip: %s", config.mp3_file)
    logger.info("Audio device: %s", config.audio_device)

    supervisor = Supervisor(config)
    try:
        return supervisor.run()
    except BellError as e:
        logger.error("%s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
