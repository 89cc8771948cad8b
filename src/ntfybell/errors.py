"""Error types for ntfybell.

Startup problems are fatal and propagate to the entry point. Network
problems inside a subscription worker never surface here; they are logged
and retried.
"""


class BellError(Exception):
    """Base exception for ntfybell errors."""

    pass


class ConfigError(BellError):
    """Raised when required configuration is missing or invalid."""

    pass


class StartupError(BellError):
    """Raised when a resource needed before subscribing cannot be set up."""

    pass


class ClipLoadError(StartupError):
    """Raised when the notification clip cannot be read or decoded."""

    def __init__(self, message: str, path: str | None = None) -> None:
        """Initialize clip load error.

        Args:
            message: Error message.
            path: Path of the clip that failed, if known.
        """
        super().__init__(message)
        self.path = path


class AudioDeviceError(StartupError):
    """Raised when the audio output device cannot be opened."""

    pass


__all__ = [
    "AudioDeviceError",
    "BellError",
    "ClipLoadError",
    "ConfigError",
    "StartupError",
]
