"""Configuration module for ntfybell.

This module provides the configuration dataclasses; loading from the
environment lives in :mod:`ntfybell.config.loader`.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from urllib.parse import quote

DEFAULT_SERVER = "ntfy.sh"
DEFAULT_PORT = 80
DEFAULT_AUDIO_DEVICE = "default"


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"


@dataclass
class BellConfig:
    """Main ntfybell configuration.

    Attributes:
        topics: Topic names to subscribe to, already trimmed, never empty
        mp3_file: Path to the notification clip
        server: ntfy server host name
        port: ntfy server TCP port
        max_concurrent_plays: Cap on overlapping clips, 0 for no cap
        audio_device: Output device name (substring match) or "default"
    """

    topics: list[str]
    mp3_file: str
    server: str = DEFAULT_SERVER
    port: int = DEFAULT_PORT
    max_concurrent_plays: int = 0
    audio_device: str = DEFAULT_AUDIO_DEVICE
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def topic_url(self, topic: str) -> str:
        """Build the WebSocket subscription URL for a topic.

        The topic is percent-encoded as a single path segment.
        """
        return f"ws://{self.server}:{self.port}/{quote(topic, safe='')}/ws"

    def topic_urls(self) -> Iterator[tuple[str, str]]:
        """Yield (topic, url) pairs for every configured topic."""
        for topic in self.topics:
            if not topic:
                continue
            yield topic, self.topic_url(topic)


__all__ = [
    "DEFAULT_AUDIO_DEVICE",
    "DEFAULT_PORT",
    "DEFAULT_SERVER",
    "BellConfig",
    "LoggingConfig",
]
