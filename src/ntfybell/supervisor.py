"""Supervisor: wires the clip, output stream and subscription workers.

Startup order:
    1. decode the clip
    2. open the output stream (100 ms buffer at the clip's rate), attach the mixer
    3. arm the cancellation token on SIGINT/SIGTERM
    4. start one worker per topic
Shutdown order:
    5. wait for the token
    6. close the output stream (silences at once)
    7. join every worker
"""

import logging
import signal
import sys
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

from .audio import (
    Clip,
    Mixer,
    OutputStream,
    PlayAction,
    create_output_stream,
    load_clip,
)
from .cancel import CancellationToken
from .config import BellConfig
from .subscription import RECONNECT_DELAY, Dialer, SubscriptionWorker, dial

logger = logging.getLogger(__name__)

ClipLoader = Callable[[str | Path], Clip]
OutputFactory = Callable[..., OutputStream]

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class Supervisor:
    """Owns the shared audio state and the set of subscription workers."""

    def __init__(
        self,
        config: BellConfig,
        *,
        clip_loader: ClipLoader = load_clip,
        output_factory: OutputFactory = create_output_stream,
        dial: Dialer = dial,
        reconnect_delay: float = RECONNECT_DELAY,
        token: CancellationToken | None = None,
    ) -> None:
        """Initialize the supervisor.

        Args:
            config: Validated configuration.
            clip_loader: Decodes the clip file.
            output_factory: Opens the output stream for a clip format, called
                as ``output_factory(clip_format, device_name=...)``.
            dial: Cancellable WebSocket dialer, passed to every worker.
            reconnect_delay: Seconds between reconnect attempts.
            token: Cancellation token; a new one is created if None.
        """
        self._config = config
        self._clip_loader = clip_loader
        self._output_factory = output_factory
        self._dial = dial
        self._reconnect_delay = reconnect_delay
        self._token = token if token is not None else CancellationToken()

        self._clip: Clip | None = None
        self._output: OutputStream | None = None
        self._mixer: Mixer | None = None
        self._play: PlayAction | None = None
        self._workers: list[SubscriptionWorker] = []
        self._previous_handlers: dict[int, Any] = {}
        self._shutdown_lock = threading.Lock()
        self._shut_down = False

    @property
    def token(self) -> CancellationToken:
        return self._token

    @property
    def clip(self) -> Clip | None:
        return self._clip

    @property
    def output(self) -> OutputStream | None:
        return self._output

    @property
    def mixer(self) -> Mixer | None:
        return self._mixer

    @property
    def play_action(self) -> PlayAction | None:
        return self._play

    @property
    def workers(self) -> list[SubscriptionWorker]:
        return list(self._workers)

    def prepare_audio(self) -> None:
        """Decode the clip, open the output stream and attach the mixer.

        Raises:
            ClipLoadError: If the clip cannot be read or decoded.
            AudioDeviceError: If the output device cannot be opened.
        """
        self._clip = self._clip_loader(self._config.mp3_file)
        self._output = self._output_factory(
            self._clip.format, device_name=self._config.audio_device
        )

        self._mixer = Mixer(self._clip.channels, max_streams=self._config.max_concurrent_plays)
        self._output.play(self._mixer)
        self._play = PlayAction(self._clip, self._mixer, self._output)

    def start_workers(self) -> None:
        """Start one subscription worker per configured topic."""
        if self._play is None:
            raise RuntimeError("prepare_audio() must run before start_workers()")

        for topic, url in self._config.topic_urls():
            worker = SubscriptionWorker(
                topic,
                url,
                self._play,
                self._token,
                dial=self._dial,
                reconnect_delay=self._reconnect_delay,
            )
            self._workers.append(worker)
            worker.start()

        logger.info(
            "Subscribed to %d topic(s) on %s:%s",
            len(self._workers),
            self._config.server,
            self._config.port,
        )

    def start(self) -> None:
        """Prepare audio and start the workers, without touching signals."""
        self.prepare_audio()
        self.start_workers()

    def install_signal_handlers(self) -> None:
        """Trip the cancellation token on SIGINT and SIGTERM.

        Must be called from the main thread. A second signal while shutting
        down forces the process to exit.
        """

        def signal_handler(signum: int, _frame: object) -> None:
            if self._token.cancelled:
                logger.warning("Force quit requested")
                sys.exit(1)
            logger.debug("Received signal %d", signum)
            self._token.cancel()

        for sig in SHUTDOWN_SIGNALS:
            self._previous_handlers[sig] = signal.signal(sig, signal_handler)

    def restore_signal_handlers(self) -> None:
        """Put back the handlers that were active before install."""
        for sig, handler in self._previous_handlers.items():
            signal.signal(sig, handler)
        self._previous_handlers.clear()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the cancellation token trips.

        Without a timeout, waits in short slices so the main thread stays
        responsive to signals on every platform.

        Returns:
            True if the token tripped.
        """
        if timeout is not None:
            return self._token.wait(timeout)
        while not self._token.wait(0.5):
            pass
        return True

    def shutdown(self) -> None:
        """Silence the audio, then wait for every worker to exit.

        Trips the token if nothing else has. Safe to call more than once.
        """
        with self._shutdown_lock:
            if self._shut_down:
                return
            self._shut_down = True

        logger.info("shutting down ...")
        self._token.cancel()

        if self._output is not None:
            self._output.close()

        for worker in self._workers:
            worker.join()

        self.restore_signal_handlers()
        logger.info("ntfybell stopped")

    def run(self, install_signals: bool = True) -> int:
        """Run until cancelled.

        Args:
            install_signals: Arm the token on SIGINT/SIGTERM (main thread only).

        Returns:
            Exit code 0 after a clean shutdown.

        Raises:
            StartupError: If the clip or the output device cannot be set up.
        """
        self.prepare_audio()

        try:
            if install_signals:
                self.install_signal_handlers()
            self.start_workers()
            self.wait()
        finally:
            self.shutdown()

        return 0


__all__ = ["SHUTDOWN_SIGNALS", "ClipLoader", "OutputFactory", "Supervisor"]
