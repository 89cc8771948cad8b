"""Play action: the capability to start one playback of the clip."""

import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .clip import Clip
    from .mixer import Mixer
    from .output import OutputStream

logger = logging.getLogger(__name__)


class PlayAction:
    """Enqueues one full playback of the clip per call.

    Safe to call from any thread. Returns as soon as the new sub-stream is
    in the mixer; playbacks started while others are still running overlap.
    """

    def __init__(self, clip: "Clip", mixer: "Mixer", output: "OutputStream") -> None:
        self._clip = clip
        self._mixer = mixer
        self._output = output
        self._plays = 0
        self._count_lock = threading.Lock()

    def play(self) -> None:
        """Start a fresh playback of the whole clip."""
        streamer = self._clip.streamer(0, len(self._clip))
        with self._output.lock():
            self._mixer.add(streamer)
            active = self._mixer.active
        with self._count_lock:
            self._plays += 1
        logger.debug("Clip queued (%d active)", active)

    __call__ = play

    @property
    def plays(self) -> int:
        """Number of playbacks started so far."""
        return self._plays


__all__ = ["PlayAction"]
