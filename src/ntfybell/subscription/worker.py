"""Per-topic subscription worker.

Each worker owns one WebSocket subscription to ``<server>/<topic>/ws``
and turns every frame received on it into one play action. Connection
failures are never fatal: the worker waits RECONNECT_DELAY seconds and
dials again, until the cancellation token trips.

States:
    connecting -> reading    (dial succeeded)
    connecting -> backoff    (dial failed)
    connecting -> end        (cancelled; the socket is shut down mid-handshake)
    reading    -> backoff    (read error or server close; socket closed)
    reading    -> end        (cancelled; the worker closes the socket)
    backoff    -> connecting (delay elapsed) or end (cancelled)

Consecutive dials on one topic are always at least RECONNECT_DELAY apart.
"""

from __future__ import annotations

import errno
import logging
import os
import select
import socket
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, ExitStack, contextmanager
from typing import TYPE_CHECKING, Any, Protocol

from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.sync.client import ClientConnection, connect
from websockets.uri import parse_uri

if TYPE_CHECKING:
    from ..cancel import CancellationToken

logger = logging.getLogger(__name__)

RECONNECT_DELAY: float = 5.0  # Seconds between a failure and the next dial
OPEN_TIMEOUT: float = 10.0  # Seconds allowed for the TCP and WebSocket handshakes
CONNECT_POLL: float = 0.1  # Token check interval while the TCP connect is pending

_CONNECT_PENDING = (errno.EINPROGRESS, errno.EWOULDBLOCK, errno.EALREADY)


class Connection(Protocol):
    """The part of a WebSocket client connection the worker uses."""

    def recv(self) -> Any:
        """Block until the next data frame arrives."""
        ...

    def close(self) -> None:
        """Close the connection, failing any blocked recv()."""
        ...


Dialer = Callable[[str, "CancellationToken"], AbstractContextManager[Connection]]


def _abort(sock: socket.socket) -> None:
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError as e:
        logger.debug("shutdown during handshake: %s", e)


def _connect_address(
    family: int,
    kind: int,
    proto: int,
    address: Any,
    token: CancellationToken,
    deadline: float,
) -> socket.socket:
    sock = socket.socket(family, kind, proto)
    try:
        sock.setblocking(False)
        code = sock.connect_ex(address)
        while code in _CONNECT_PENDING:
            if token.cancelled:
                raise ConnectionAbortedError("dial cancelled")
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise TimeoutError("timed out while connecting")
            _, writable, failed = select.select([], [sock], [sock], min(remaining, CONNECT_POLL))
            if writable or failed:
                code = sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
        if code:
            raise OSError(code, os.strerror(code))
    except BaseException:
        sock.close()
        raise

    sock.setblocking(True)
    return sock


def open_socket(
    host: str,
    port: int,
    token: CancellationToken,
    timeout: float = OPEN_TIMEOUT,
) -> socket.socket:
    """Open a TCP connection, giving up as soon as the token trips.

    Tries each resolved address in turn, like ``socket.create_connection``.

    Raises:
        ConnectionAbortedError: If the token trips while connecting.
        TimeoutError: If no address connects within ``timeout`` seconds.
        OSError: If every address refuses or is unreachable.
    """
    deadline = time.monotonic() + timeout
    last_error: OSError | None = None
    for family, kind, proto, _, address in socket.getaddrinfo(host, port, type=socket.SOCK_STREAM):
        try:
            return _connect_address(family, kind, proto, address, token, deadline)
        except (ConnectionAbortedError, TimeoutError):
            raise
        except OSError as e:
            last_error = e
    if last_error is not None:
        raise last_error
    raise OSError(f"no address found for {host}")


@contextmanager
def dial(
    url: str,
    token: CancellationToken,
    open_timeout: float = OPEN_TIMEOUT,
) -> Iterator[ClientConnection]:
    """Open a WebSocket connection that the token can abort.

    The TCP socket is opened here and handed to websockets. A trip of the
    token while connecting abandons the TCP connect, and a trip during the
    opening handshake shuts the socket down, so the dial fails at once
    instead of running into ``open_timeout``.

    Args:
        url: ``ws://`` URL to connect to.
        token: Cancellation token watched until the connection is open.
        open_timeout: Seconds allowed for the TCP and WebSocket handshakes.

    Yields:
        Open client connection, closed on exit.

    Raises:
        OSError: If the TCP connection fails or times out.
        WebSocketException: If the URL or the opening handshake is invalid.
    """
    uri = parse_uri(url)
    sock = open_socket(uri.host, uri.port, token, open_timeout)

    unregister = token.on_cancel(lambda: _abort(sock))
    try:
        with connect(url, sock=sock, open_timeout=open_timeout) as conn:
            unregister()
            yield conn
    finally:
        unregister()
        sock.close()


class SubscriptionWorker:
    """Keeps one topic subscribed and plays the clip per frame.

    Frames on one topic trigger plays in arrival order. Frame type and
    payload are ignored; ping/pong is answered inside the WebSocket
    library and never reaches the worker.
    """

    def __init__(
        self,
        topic: str,
        url: str,
        play: Callable[[], None],
        token: CancellationToken,
        dial: Dialer = dial,
        reconnect_delay: float = RECONNECT_DELAY,
    ) -> None:
        """Initialize the worker.

        Args:
            topic: Topic name, used for logging and thread naming.
            url: Subscription URL, ``ws://<server>:<port>/<topic>/ws``.
            play: Play action, called once per received frame.
            token: Shared cancellation token.
            dial: Opens a WebSocket connection for a URL as a context
                manager, aborting the handshake when the token trips.
            reconnect_delay: Seconds to wait before redialing.
        """
        self._topic = topic
        self._url = url
        self._play = play
        self._token = token
        self._dial = dial
        self._reconnect_delay = reconnect_delay
        self._thread: threading.Thread | None = None
        self._dial_attempts: list[float] = []
        self._connections = 0
        self._messages = 0

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def url(self) -> str:
        return self._url

    @property
    def dial_attempts(self) -> list[float]:
        """Monotonic timestamps of every dial attempt."""
        return list(self._dial_attempts)

    @property
    def connections(self) -> int:
        """Number of successful dials."""
        return self._connections

    @property
    def messages(self) -> int:
        """Number of frames received (and plays issued)."""
        return self._messages

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Run the worker on its own thread."""
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self.run,
            daemon=True,
            name=f"ntfy-{self._topic}",
        )
        self._thread.start()

    def join(self, timeout: float | None = None) -> None:
        """Wait for the worker thread to finish."""
        if self._thread is not None:
            self._thread.join(timeout)

    def run(self) -> None:
        """Connect, read and reconnect until the token trips."""
        while not self._token.cancelled:
            with ExitStack() as stack:
                conn = self._connect(stack)
                if conn is not None:
                    self._serve(conn)
            if self._token.wait(self._reconnect_delay):
                break

        logger.debug("Worker for %s stopped", self._url)

    def _connect(self, stack: ExitStack) -> Connection | None:
        self._dial_attempts.append(time.monotonic())
        try:
            conn = stack.enter_context(self._dial(self._url, self._token))
        except (OSError, WebSocketException) as e:
            if self._token.cancelled:
                logger.debug("dial %s aborted: %s", self._url, e)
            else:
                logger.info("dial %s: %s (retrying in %g s)", self._url, e, self._reconnect_delay)
            return None

        self._connections += 1
        logger.info("listening on %s", self._url)
        return conn

    def _serve(self, conn: Connection) -> None:
        """Read from an open connection until it fails or the token trips.

        The reader runs on its own thread so that this thread can wait for
        either event. Whichever comes first, this thread closes the socket
        and then joins the reader.
        """
        wake = threading.Event()
        reader = threading.Thread(
            target=self._read_loop,
            args=(conn, wake),
            daemon=True,
            name=f"ntfy-{self._topic}-reader",
        )
        reader.start()

        unregister = self._token.on_cancel(wake.set)
        try:
            wake.wait()
        finally:
            unregister()

        try:
            conn.close()
        except (OSError, WebSocketException) as e:
            logger.debug("close %s: %s", self._url, e)
        reader.join()

    def _read_loop(self, conn: Connection, done: threading.Event) -> None:
        try:
            while True:
                conn.recv()
                self._messages += 1
                self._play()
        except (ConnectionClosed, OSError) as e:
            if not self._token.cancelled:
                logger.info(
                    "connection to %s lost: %s (reconnecting in %g s)",
                    self._url,
                    e,
                    self._reconnect_delay,
                )
        finally:
            done.set()


__all__ = [
    "CONNECT_POLL",
    "OPEN_TIMEOUT",
    "RECONNECT_DELAY",
    "Connection",
    "Dialer",
    "SubscriptionWorker",
    "dial",
    "open_socket",
]
