"""Unit tests for the play action."""

import threading

import numpy as np

from ntfybell.audio import ClipFormat, Mixer, PlayAction
from ntfybell.audio.clip import Clip
from ntfybell.audio.mock_output import MockOutputStream


def make_setup(frames: int = 100) -> tuple[PlayAction, Mixer, MockOutputStream]:
    """Create a play action over a mock output."""
    clip = Clip(
        np.full((frames, 1), 0.1, dtype=np.float32),
        ClipFormat(sample_rate=1000, channels=1),
    )
    output = MockOutputStream(sample_rate=1000, channels=1, buffer_frames=10)
    mixer = Mixer(channels=1)
    output.play(mixer)
    return PlayAction(clip, mixer, output), mixer, output


class TestPlayAction:
    """Tests for PlayAction."""

    def test_play_adds_one_stream(self) -> None:
        """Test that one call starts one playback."""
        play, mixer, _ = make_setup()

        play()

        assert mixer.active == 1
        assert play.plays == 1

    def test_play_does_not_wait_for_audio(self) -> None:
        """Test that play returns with nothing pulled yet."""
        play, mixer, output = make_setup()

        play.play()

        assert output.pulled_frames == 0
        assert mixer.active == 1

    def test_play_holds_lock(self) -> None:
        """Test that every add happens inside the output lock."""
        play, _, output = make_setup()
        lock = output.lock()
        before = lock.acquired

        play()
        play()

        assert lock.acquired == before + 2
        assert lock.released == lock.acquired

    def test_overlapping_plays(self) -> None:
        """Test that a second play overlaps the first."""
        play, mixer, output = make_setup(frames=20)

        play()
        output.pull(10)
        play()
        block = output.pull(10)

        assert mixer.active == 1
        assert np.allclose(block, 0.2)

    def test_playback_runs_to_completion(self) -> None:
        """Test that a playback leaves the mixer when the clip ends."""
        play, mixer, output = make_setup(frames=25)

        play()
        for _ in range(3):
            output.pull(10)

        assert mixer.active == 0

    def test_concurrent_plays(self) -> None:
        """Test many threads playing at once."""
        play, mixer, output = make_setup()
        threads = [threading.Thread(target=play) for _ in range(20)]

        for t in threads:
            t.start()
        for t in threads:
            t.join()

        lock = output.lock()
        assert mixer.active == 20
        assert play.plays == 20
        assert lock.acquired == lock.released
