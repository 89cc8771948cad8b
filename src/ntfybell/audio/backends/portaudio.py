"""PortAudio output backend using PyAudio.

Provides the OutputStream implementation used on real hardware. The
device runs in callback mode: PortAudio's audio thread asks for a block of
frames, and the callback pulls that block from the attached source while
holding the stream lock.
"""

import logging
import threading
from typing import Any

import numpy as np

from ...errors import AudioDeviceError
from ..output import FrameSource

logger = logging.getLogger(__name__)

# PyAudio import with fallback for type hints
try:
    import pyaudio

    PYAUDIO_AVAILABLE = True
except ImportError:
    PYAUDIO_AVAILABLE = False
    pyaudio = None


class PortAudioOutputStream:
    """Audio output stream on the default (or named) PortAudio device.

    Implements the OutputStream protocol.
    """

    def __init__(
        self,
        sample_rate: int,
        channels: int,
        buffer_frames: int,
        device_name: str = "default",
    ) -> None:
        """Open the output device and start the callback stream.

        Args:
            sample_rate: Output sample rate in Hz
            channels: Number of interleaved output channels
            buffer_frames: Frames per device buffer
            device_name: Output device name or "default"

        Raises:
            AudioDeviceError: If PyAudio is missing or the device cannot be opened
        """
        if not PYAUDIO_AVAILABLE:
            raise AudioDeviceError("PyAudio not available. Install with: pip install pyaudio")

        self._sample_rate = sample_rate
        self._channels = channels
        self._buffer_frames = buffer_frames
        self._device_name = device_name

        self._lock = threading.Lock()
        self._close_lock = threading.Lock()
        self._source: FrameSource | None = None
        self._is_open = False

        self._pa: Any = pyaudio.PyAudio()
        try:
            self._stream: Any = self._pa.open(
                format=pyaudio.paFloat32,
                channels=channels,
                rate=sample_rate,
                output=True,
                output_device_index=self._get_device_index(),
                frames_per_buffer=buffer_frames,
                stream_callback=self._callback,
            )
        except (OSError, ValueError) as e:
            self._pa.terminate()
            raise AudioDeviceError(f"initialize audio output: {e}") from e

        self._is_open = True
        logger.debug(
            "Audio output open: %d Hz, %d ch, %d frame buffer",
            sample_rate,
            channels,
            buffer_frames,
        )

    def _get_device_index(self) -> int | None:
        """Get device index for configured device name."""
        if self._device_name == "default":
            return None

        for i in range(self._pa.get_device_count()):
            info = self._pa.get_device_info_by_index(i)
            if self._device_name.lower() in info["name"].lower() and info["maxOutputChannels"] > 0:
                return i

        return None  # Fall back to default

    def _callback(
        self,
        _in_data: bytes | None,
        frame_count: int,
        _time_info: dict,
        _status: int,
    ) -> tuple[bytes, int]:
        with self._lock:
            source = self._source
            if source is None:
                block = np.zeros((frame_count, self._channels), dtype=np.float32)
            else:
                block = source.pull(frame_count)
        return block.tobytes(), pyaudio.paContinue

    def play(self, source: FrameSource) -> None:
        """Attach the source that feeds the device."""
        with self._lock:
            self._source = source

    def lock(self) -> threading.Lock:
        """Return the lock held by the audio callback while pulling."""
        return self._lock

    def close(self) -> None:
        """Close the device immediately, discarding queued audio."""
        with self._close_lock:
            if not self._is_open:
                return
            self._is_open = False

        # Closing an active stream aborts it rather than draining
        self._stream.close()
        self._pa.terminate()
        with self._lock:
            self._source = None
        logger.debug("Audio output closed")

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


__all__ = ["PortAudioOutputStream"]
