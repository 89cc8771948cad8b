"""Unit tests for clip decoding and cursors."""

import struct
import wave
from fractions import Fraction
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

import av
import numpy as np
import pytest

from ntfybell.audio.clip import Clip, ClipFormat, load_clip
from ntfybell.errors import ClipLoadError


def write_wav(path: Path, samples: list[tuple[int, int]], sample_rate: int = 8000) -> None:
    """Write 16-bit stereo PCM frames to a WAV file."""
    with wave.open(str(path), "wb") as wf:
        wf.setnchannels(2)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(b"".join(struct.pack("<hh", left, right) for left, right in samples))


def make_clip(frames: int = 10, channels: int = 1, sample_rate: int = 1000) -> Clip:
    """Create a clip whose sample values equal their frame index."""
    samples = np.repeat(np.arange(frames, dtype=np.float32)[:, None], channels, axis=1)
    return Clip(samples, ClipFormat(sample_rate=sample_rate, channels=channels))


@pytest.fixture
def ramp_wav(tmp_path: Path) -> Path:
    """A short stereo WAV with a ramp on the left and silence on the right."""
    path = tmp_path / "ramp.wav"
    write_wav(path, [(i * 16, 0) for i in range(800)])
    return path


class TestClipFormat:
    """Tests for ClipFormat."""

    def test_frames_for_device_buffer(self) -> None:
        """Test that 100ms at 44.1kHz is 4410 frames."""
        assert ClipFormat(sample_rate=44100, channels=2).frames_for(0.1) == 4410

    def test_default_sample_format(self) -> None:
        """Test that clips are float32 packed."""
        assert ClipFormat(sample_rate=8000, channels=1).sample_format == "flt"


class TestClip:
    """Tests for the Clip buffer."""

    def test_length_and_duration(self) -> None:
        """Test frame count and duration."""
        clip = make_clip(frames=500, sample_rate=1000)
        assert len(clip) == 500
        assert clip.duration == pytest.approx(0.5)

    def test_samples_are_read_only(self) -> None:
        """Test that the decoded buffer cannot be mutated."""
        clip = make_clip()
        with pytest.raises(ValueError):
            clip.samples[0, 0] = 1.0

    def test_channel_mismatch_rejected(self) -> None:
        """Test that the sample shape must match the format."""
        with pytest.raises(ValueError, match="channels"):
            Clip(np.zeros((10, 2), dtype=np.float32), ClipFormat(sample_rate=8000, channels=1))

    @pytest.mark.parametrize(("start", "end"), [(-1, 5), (5, 4), (0, 11)])
    def test_invalid_range(self, start: int, end: int) -> None:
        """Test that out-of-range cursors are rejected."""
        clip = make_clip(frames=10)
        with pytest.raises(ValueError, match="Invalid clip range"):
            clip.streamer(start, end)


class TestClipCursor:
    """Tests for ClipCursor."""

    def test_reads_sequentially(self) -> None:
        """Test reading a clip in blocks."""
        cursor = make_clip(frames=10).streamer(0, 10)

        first = cursor.read(4)
        second = cursor.read(4)
        third = cursor.read(4)

        assert first[:, 0].tolist() == [0, 1, 2, 3]
        assert second[:, 0].tolist() == [4, 5, 6, 7]
        assert third[:, 0].tolist() == [8, 9]
        assert cursor.exhausted

    def test_sub_range(self) -> None:
        """Test that a cursor honors [start, end)."""
        cursor = make_clip(frames=10).streamer(3, 6)
        assert cursor.remaining == 3
        assert cursor.read(100)[:, 0].tolist() == [3, 4, 5]
        assert cursor.exhausted

    def test_read_after_end_is_empty(self) -> None:
        """Test that an exhausted cursor returns no frames."""
        cursor = make_clip(frames=2).streamer(0, 2)
        cursor.read(2)
        assert len(cursor.read(5)) == 0

    def test_cursors_are_independent(self) -> None:
        """Test that two cursors over one clip do not share position."""
        clip = make_clip(frames=10)
        a = clip.streamer(0, len(clip))
        b = clip.streamer(0, len(clip))

        a.read(7)

        assert b.read(3)[:, 0].tolist() == [0, 1, 2]
        assert a.remaining == 3
        assert b.remaining == 7


class TestLoadClip:
    """Tests for decoding files with load_clip."""

    def test_decodes_wav(self, ramp_wav: Path) -> None:
        """Test format and content of a decoded file."""
        clip = load_clip(ramp_wav)

        assert len(clip) == 800
        assert clip.sample_rate == 8000
        assert clip.channels == 2
        assert clip.samples.dtype == np.float32
        assert clip.samples[100, 0] == pytest.approx(100 * 16 / 32768, abs=1e-4)
        assert np.all(clip.samples[:, 1] == 0)

    def test_decode_is_idempotent(self, ramp_wav: Path) -> None:
        """Test that decoding the same file twice gives identical buffers."""
        first = load_clip(ramp_wav)
        second = load_clip(str(ramp_wav))

        assert len(first) == len(second)
        assert np.array_equal(first.samples, second.samples)

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test that a nonexistent file is a load error."""
        with pytest.raises(ClipLoadError, match="not found") as exc_info:
            load_clip(tmp_path / "missing.mp3")
        assert exc_info.value.path.endswith("missing.mp3")

    def test_undecodable_file(self, tmp_path: Path) -> None:
        """Test that garbage data is a load error."""
        path = tmp_path / "broken.mp3"
        path.write_text("this is not audio at all\n" * 10)

        with pytest.raises(ClipLoadError):
            load_clip(path)


def make_frame(samples: int, layout: str, pts: int, sample_rate: int = 8000) -> av.AudioFrame:
    """Build a packed 16-bit frame of constant quarter-scale samples."""
    channels = 2 if layout == "stereo" else 1
    data = np.full((1, samples * channels), 8192, dtype=np.int16)
    frame = av.AudioFrame.from_ndarray(data, format="s16", layout=layout)
    frame.sample_rate = sample_rate
    frame.pts = pts
    frame.time_base = Fraction(1, sample_rate)
    return frame


class FakeContainer:
    """Container stand-in that yields prepared frames from one audio stream."""

    def __init__(self, frames: list[av.AudioFrame]) -> None:
        self._frames = frames
        self.streams = SimpleNamespace(audio=[object()])

    def __enter__(self) -> "FakeContainer":
        return self

    def __exit__(self, *args: object) -> None:
        pass

    def decode(self, _stream: object) -> list[av.AudioFrame]:
        return self._frames


class TestLayoutChanges:
    """Tests for streams whose channel layout changes mid-file."""

    def test_layout_change_is_converted(self, tmp_path: Path) -> None:
        """Test that frames after a layout switch follow the first layout."""
        path = tmp_path / "switch.mp3"
        path.write_bytes(b"\0")
        frames = [make_frame(400, "mono", 0), make_frame(400, "stereo", 400)]

        with patch("ntfybell.audio.clip.av.open", return_value=FakeContainer(frames)):
            clip = load_clip(path)

        assert clip.channels == 1
        assert clip.sample_rate == 8000
        assert len(clip) == 800
        assert clip.samples.shape == (800, 1)

    def test_mismatched_chunks_are_a_load_error(self, tmp_path: Path) -> None:
        """Test that an unusable decode result is reported, not raised raw."""
        path = tmp_path / "bad.mp3"
        path.write_bytes(b"\0")

        with patch("ntfybell.audio.clip._decode", side_effect=ValueError("shape mismatch")):
            with pytest.raises(ClipLoadError, match="shape mismatch"):
                load_clip(path)
