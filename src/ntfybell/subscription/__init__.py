"""Subscription module for ntfybell.

Provides the per-topic WebSocket worker with automatic reconnection and
the cancellable dialer it connects with.
"""

from .worker import (
    OPEN_TIMEOUT,
    RECONNECT_DELAY,
    Connection,
    Dialer,
    SubscriptionWorker,
    dial,
)

__all__ = [
    "OPEN_TIMEOUT",
    "RECONNECT_DELAY",
    "Connection",
    "Dialer",
    "SubscriptionWorker",
    "dial",
]
