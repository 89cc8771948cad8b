"""Mock audio output for testing.

Provides an OutputStream implementation that needs no audio hardware.
Nothing pulls frames on its own; tests drive the attached source with
pull() and inspect the recorded counters.
"""

import threading
from types import TracebackType

import numpy as np

from .output import FrameSource


class CountingLock:
    """Lock that records how often it was entered and exited."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._count_lock = threading.Lock()
        self.acquired = 0
        self.released = 0

    def __enter__(self) -> "CountingLock":
        self._lock.acquire()
        with self._count_lock:
            self.acquired += 1
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        with self._count_lock:
            self.released += 1
        self._lock.release()

    def locked(self) -> bool:
        return self._lock.locked()


class MockOutputStream:
    """Mock output stream for testing.

    Records opens, closes and lock usage. Implements the OutputStream
    protocol.
    """

    def __init__(
        self, sample_rate: int = 44100, channels: int = 2, buffer_frames: int = 4410
    ) -> None:
        """Initialize mock output.

        Args:
            sample_rate: Output sample rate in Hz
            channels: Output channel count
            buffer_frames: Nominal device buffer size in frames
        """
        self._sample_rate = sample_rate
        self._channels = channels
        self._buffer_frames = buffer_frames
        self._lock = CountingLock()
        self._source: FrameSource | None = None
        self._is_open = True
        self._close_calls = 0
        self._device_closes = 0
        self._pulled_frames = 0

    def play(self, source: FrameSource) -> None:
        """Attach the source."""
        with self._lock:
            self._source = source

    def lock(self) -> CountingLock:
        """Return the counting lock."""
        return self._lock

    def pull(self, frames: int | None = None) -> np.ndarray:
        """Pull one block from the source, as the device callback would.

        Returns silence once closed or when nothing is attached.
        """
        if frames is None:
            frames = self._buffer_frames
        with self._lock:
            if not self._is_open or self._source is None:
                return np.zeros((frames, self._channels), dtype=np.float32)
            block = self._source.pull(frames)
        self._pulled_frames += frames
        return block

    def close(self) -> None:
        """Mark the stream closed."""
        self._close_calls += 1
        if not self._is_open:
            return
        self._is_open = False
        self._device_closes += 1

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def channels(self) -> int:
        return self._channels

    @property
    def buffer_frames(self) -> int:
        return self._buffer_frames

    @property
    def source(self) -> FrameSource | None:
        """Get the attached source."""
        return self._source

    @property
    def close_calls(self) -> int:
        """Number of times close() was called."""
        return self._close_calls

    @property
    def device_closes(self) -> int:
        """Number of times the 'device' was actually closed."""
        return self._device_closes

    @property
    def pulled_frames(self) -> int:
        """Total frames pulled through pull()."""
        return self._pulled_frames


__all__ = ["CountingLock", "MockOutputStream"]
