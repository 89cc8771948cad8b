"""Environment configuration loader.

Supports:
- Loading a ``.env`` file (python-dotenv) without overriding the
  real environment
- Reading and validating the NTFY_* / MP3_FILE variables
- Parsing the comma-separated topic list
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from ..errors import ConfigError
from . import DEFAULT_AUDIO_DEVICE, DEFAULT_PORT, DEFAULT_SERVER, BellConfig, LoggingConfig

logger = logging.getLogger(__name__)

ENV_SERVER = "NTFY_SERVER_URL"
ENV_PORT = "NTFY_PORT"
ENV_TOPICS = "NTFY_TOPICS"
ENV_MP3_FILE = "MP3_FILE"
ENV_LOG_LEVEL = "NTFY_LOG_LEVEL"
ENV_MAX_PLAYS = "NTFY_MAX_CONCURRENT_PLAYS"
ENV_AUDIO_DEVICE = "NTFY_AUDIO_DEVICE"


def parse_topics(raw: str) -> list[str]:
    """Split a comma-separated topic list.

    Each element is whitespace-trimmed and empty elements are skipped,
    so ``"a, ,b,"`` gives ``["a", "b"]``.
    """
    return [topic.strip() for topic in raw.split(",") if topic.strip()]


def _get(environ: Mapping[str, str], key: str, fallback: str = "") -> str:
    value = environ.get(key, "").strip()
    return value if value else fallback


def _parse_port(raw: str) -> int:
    try:
        port = int(raw)
    except ValueError:
        raise ConfigError(f"{ENV_PORT} must be an integer, got {raw!r}") from None
    if not (1 <= port <= 65535):
        raise ConfigError(f"{ENV_PORT} out of range: {port}")
    return port


def _parse_max_plays(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{ENV_MAX_PLAYS} must be an integer, got {raw!r}") from None
    if value < 0:
        raise ConfigError(f"{ENV_MAX_PLAYS} must not be negative: {value}")
    return value


def config_from_env(environ: Mapping[str, str] | None = None) -> BellConfig:
    """Build a BellConfig from environment variables.

    Required environment variables:
    - NTFY_TOPICS: comma-separated topic names
    - MP3_FILE: path to the notification clip

    Optional:
    - NTFY_SERVER_URL: server host (default: ntfy.sh)
    - NTFY_PORT: server port (default: 80)
    - NTFY_LOG_LEVEL: logging level (default: INFO)
    - NTFY_MAX_CONCURRENT_PLAYS: overlap cap, 0 for none (default: 0)
    - NTFY_AUDIO_DEVICE: output device name (default: the system default)

    Args:
        environ: Mapping to read from. Defaults to ``os.environ``.

    Returns:
        Validated BellConfig.

    Raises:
        ConfigError: If topics or clip path are missing, or a number is malformed.
    """
    if environ is None:
        environ = os.environ

    topics = parse_topics(_get(environ, ENV_TOPICS))
    mp3_file = _get(environ, ENV_MP3_FILE)

    if not topics or not mp3_file:
        raise ConfigError(f"{ENV_TOPICS} and {ENV_MP3_FILE} must be defined")

    return BellConfig(
        topics=topics,
        mp3_file=mp3_file,
        server=_get(environ, ENV_SERVER, DEFAULT_SERVER),
        port=_parse_port(_get(environ, ENV_PORT, str(DEFAULT_PORT))),
        max_concurrent_plays=_parse_max_plays(_get(environ, ENV_MAX_PLAYS, "0")),
        audio_device=_get(environ, ENV_AUDIO_DEVICE, DEFAULT_AUDIO_DEVICE),
        logging=LoggingConfig(level=_get(environ, ENV_LOG_LEVEL, "INFO")),
    )


def load_env_file(path: str | Path | None = None) -> bool:
    """Load a .env file into the process environment.

    Variables that are already set are left untouched. A missing file is
    not an error.

    Args:
        path: Explicit .env path. Searches upward from the working
            directory if None.

    Returns:
        True if a file was found and loaded.
    """
    if path is not None:
        path = Path(path)
        if not path.exists():
            logger.debug("No .env file at %s", path)
            return False
        return load_dotenv(path)
    return load_dotenv(find_dotenv(usecwd=True))


def load_config(
    env_file: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> BellConfig:
    """Load ntfybell configuration.

    Args:
        env_file: .env file to load first (ignored when ``environ`` is given)
        environ: Explicit variable mapping, bypassing .env and os.environ

    Returns:
        Validated BellConfig

    Examples:
        >>> config = load_config()
        >>> config = load_config(environ={"NTFY_TOPICS": "a", "MP3_FILE": "bell.mp3"})
    """
    if environ is None:
        load_env_file(env_file)
    return config_from_env(environ)


__all__ = [
    "ENV_AUDIO_DEVICE",
    "ENV_LOG_LEVEL",
    "ENV_MAX_PLAYS",
    "ENV_MP3_FILE",
    "ENV_PORT",
    "ENV_SERVER",
    "ENV_TOPICS",
    "config_from_env",
    "load_config",
    "load_env_file",
    "parse_topics",
]
