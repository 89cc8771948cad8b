"""Notification clip decoding.

The clip is decoded once at startup into a single read-only float32
buffer. Every playback reads it through its own ClipCursor, so any number
of playbacks can run over the same buffer at once.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

import av
import numpy as np
from av.error import FFmpegError

from ..errors import ClipLoadError

logger = logging.getLogger(__name__)

# Packed float32, matches the PortAudio paFloat32 output format
SAMPLE_FORMAT = "flt"


@dataclass(frozen=True)
class ClipFormat:
    """Format descriptor of a decoded clip.

    Attributes:
        sample_rate: Sample rate in Hz
        channels: Number of interleaved channels
        sample_format: Sample encoding name (PyAV/FFmpeg naming)
    """

    sample_rate: int
    channels: int
    sample_format: str = SAMPLE_FORMAT

    def frames_for(self, seconds: float) -> int:
        """Number of frames covering the given duration."""
        return int(self.sample_rate * seconds)


class ClipCursor:
    """Independent sequential reader over a range of a clip."""

    def __init__(self, samples: np.ndarray, start: int, end: int) -> None:
        self._samples = samples
        self._position = start
        self._end = end

    def read(self, frames: int) -> np.ndarray:
        """Read up to ``frames`` frames and advance.

        Returns fewer frames (possibly none) near the end of the range.
        """
        stop = min(self._position + frames, self._end)
        chunk = self._samples[self._position : stop]
        self._position = stop
        return chunk

    @property
    def remaining(self) -> int:
        """Frames left before the end of the range."""
        return self._end - self._position

    @property
    def exhausted(self) -> bool:
        """Return True once the whole range has been read."""
        return self._position >= self._end


class Clip:
    """Fully decoded, immutable PCM clip.

    Samples are float32 with shape ``(frames, channels)``.
    """

    def __init__(self, samples: np.ndarray, clip_format: ClipFormat) -> None:
        if samples.ndim != 2 or samples.shape[1] != clip_format.channels:
            raise ValueError(
                f"Sample shape {samples.shape} does not match {clip_format.channels} channels"
            )
        samples = np.ascontiguousarray(samples, dtype=np.float32)
        samples.flags.writeable = False
        self._samples = samples
        self._format = clip_format

    def __len__(self) -> int:
        return self._samples.shape[0]

    def streamer(self, start: int, end: int) -> ClipCursor:
        """Create a fresh cursor over frames ``[start, end)``.

        Raises:
            ValueError: If the range is outside the clip
        """
        if not (0 <= start <= end <= len(self)):
            raise ValueError(f"Invalid clip range [{start}, {end}) for {len(self)} frames")
        return ClipCursor(self._samples, start, end)

    @property
    def samples(self) -> np.ndarray:
        """Read-only view of the decoded samples."""
        return self._samples

    @property
    def format(self) -> ClipFormat:
        return self._format

    @property
    def sample_rate(self) -> int:
        return self._format.sample_rate

    @property
    def channels(self) -> int:
        return self._format.channels

    @property
    def duration(self) -> float:
        """Clip length in seconds."""
        return len(self) / self._format.sample_rate


def _decode(path: Path) -> Clip:
    chunks: list[np.ndarray] = []
    layout = ""
    sample_rate = 0

    def collect(frames: list) -> None:
        for frame in frames:
            # Packed formats come out as a single plane of interleaved samples
            chunks.append(frame.to_ndarray().reshape(-1, len(frame.layout.channels)))

    with av.open(str(path)) as container:
        if not container.streams.audio:
            raise ClipLoadError(f"No audio stream in {path}", path=str(path))
        stream = container.streams.audio[0]

        resampler = None
        source = None
        for frame in container.decode(stream):
            if resampler is None:
                # Output keeps the first frame's layout and rate throughout
                layout = frame.layout.name
                sample_rate = frame.sample_rate
            shape = (frame.format.name, frame.layout.name, frame.sample_rate)
            if shape != source:
                # A resampler only accepts frames shaped like its first one
                if resampler is not None:
                    collect(resampler.resample(None))
                resampler = av.AudioResampler(format=SAMPLE_FORMAT, layout=layout, rate=sample_rate)
                source = shape
            collect(resampler.resample(frame))
        if resampler is not None:
            collect(resampler.resample(None))

    if not chunks or not sample_rate:
        raise ClipLoadError(f"No audio decoded from {path}", path=str(path))

    samples = np.concatenate(chunks).astype(np.float32, copy=False)
    if samples.shape[0] == 0:
        raise ClipLoadError(f"No audio decoded from {path}", path=str(path))

    return Clip(samples, ClipFormat(sample_rate=sample_rate, channels=samples.shape[1]))


def load_clip(path: str | Path) -> Clip:
    """Decode an audio file (normally MP3) into a Clip.

    Args:
        path: Path to the audio file

    Returns:
        Decoded Clip

    Raises:
        ClipLoadError: If the file is missing or cannot be decoded
    """
    path = Path(path)
    if not path.exists():
        raise ClipLoadError(f"Clip file not found: {path}", path=str(path))

    try:
        clip = _decode(path)
    except (FFmpegError, ValueError) as e:
        raise ClipLoadError(f"decode {path}: {e}", path=str(path)) from e

    logger.info(
        "Loaded clip %s: %d frames, %d Hz, %d ch (%.2fs)",
        path,
        len(clip),
        clip.sample_rate,
        clip.channels,
        clip.duration,
    )
    return clip


__all__ = ["Clip", "ClipCursor", "ClipFormat", "SAMPLE_FORMAT", "load_clip"]
