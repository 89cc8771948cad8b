"""Audio output stream protocol.

Defines the interface every output backend follows: one long-lived device
stream that continuously pulls frames from an attached source, with a lock
that guards changes to that source.
"""

from contextlib import AbstractContextManager
from typing import Protocol

import numpy as np


class FrameSource(Protocol):
    """A source the output stream pulls frames from (normally a Mixer)."""

    def pull(self, frames: int) -> np.ndarray:
        """Return exactly ``frames`` frames, shape ``(frames, channels)``."""
        ...


class OutputStream(Protocol):
    """Interface for the process-wide audio output stream.

    Implementations pull from the attached source while holding their own
    lock, so code that mutates the source must hold the same lock.
    """

    def play(self, source: FrameSource) -> None:
        """Attach the source that feeds the device.

        Args:
            source: Frame source, replacing any previous one
        """
        ...

    def lock(self) -> AbstractContextManager[object]:
        """Return the critical section guarding the attached source.

        Usage:
            with output.lock():
                mixer.add(streamer)
        """
        ...

    def close(self) -> None:
        """Stop the device stream and release it.

        Audio stops immediately. Safe to call more than once; the device
        is only closed the first time.
        """
        ...

    @property
    def is_open(self) -> bool:
        """Return True until close() has been called."""
        ...

    @property
    def sample_rate(self) -> int:
        """Output sample rate in Hz."""
        ...

    @property
    def buffer_frames(self) -> int:
        """Device buffer size in frames."""
        ...


__all__ = ["FrameSource", "OutputStream"]
