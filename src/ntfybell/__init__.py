"""ntfybell - play a sound whenever an ntfy topic receives a message.

ntfybell keeps WebSocket subscriptions open to one or more topics on an
ntfy server and plays a short pre-loaded clip through the local audio
device for every message that arrives. Messages that arrive close
together play overlapping clips.

Usage:
    NTFY_TOPICS=alerts,builds MP3_FILE=bell.mp3 python -m ntfybell
"""

__version__ = "0.1.0"

from .config import BellConfig
from .config.loader import load_config
from .errors import BellError, ConfigError, StartupError

__all__ = [
    "BellConfig",
    "BellError",
    "ConfigError",
    "StartupError",
    "__version__",
    "load_config",
]
