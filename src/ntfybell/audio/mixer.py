"""Additive mixer feeding the output stream.

The mixer is not thread-safe on its own. Every call must happen while the
owning output stream's lock is held; the output stream's audio callback
holds it while pulling.
"""

from collections import deque
from typing import Protocol

import numpy as np


class Streamer(Protocol):
    """Anything the mixer can pull frames from (e.g. a ClipCursor)."""

    def read(self, frames: int) -> np.ndarray:
        """Return up to ``frames`` frames, shape ``(n, channels)``."""
        ...

    @property
    def exhausted(self) -> bool:
        """Return True when no frames are left."""
        ...


class Mixer:
    """Sums every active sub-stream into one block of frames.

    Sub-streams are dropped as soon as they report exhaustion. Sums are not
    normalized; out-of-range samples are left to the output device.
    """

    def __init__(self, channels: int, max_streams: int = 0) -> None:
        """Initialize the mixer.

        Args:
            channels: Channel count of every sub-stream and of the output
            max_streams: Cap on active sub-streams (0 = unlimited). When the
                cap is reached the oldest sub-stream is dropped.
        """
        self._channels = channels
        self._max_streams = max_streams
        self._streams: deque[Streamer] = deque()

    def add(self, streamer: Streamer) -> None:
        """Start mixing a new sub-stream."""
        if self._max_streams and len(self._streams) >= self._max_streams:
            self._streams.popleft()
        self._streams.append(streamer)

    def pull(self, frames: int) -> np.ndarray:
        """Mix the next ``frames`` frames.

        Returns:
            float32 array of shape ``(frames, channels)``; silence when idle
        """
        out = np.zeros((frames, self._channels), dtype=np.float32)
        finished = []

        for streamer in self._streams:
            chunk = streamer.read(frames)
            out[: len(chunk)] += chunk
            if streamer.exhausted:
                finished.append(streamer)

        for streamer in finished:
            self._streams.remove(streamer)

        return out

    def clear(self) -> None:
        """Drop every active sub-stream."""
        self._streams.clear()

    @property
    def active(self) -> int:
        """Number of sub-streams currently being mixed."""
        return len(self._streams)

    @property
    def channels(self) -> int:
        return self._channels

    @property
    def max_streams(self) -> int:
        return self._max_streams


__all__ = ["Mixer", "Streamer"]
