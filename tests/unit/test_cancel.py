"""Unit tests for CancellationToken."""

import threading
import time

from ntfybell.cancel import CancellationToken


class TestCancellationToken:
    """Tests for CancellationToken."""

    def test_initially_armed(self) -> None:
        """Test that a new token is not cancelled."""
        token = CancellationToken()
        assert token.cancelled is False
        assert token.wait(0.01) is False

    def test_cancel(self) -> None:
        """Test tripping the token."""
        token = CancellationToken()
        token.cancel()
        assert token.cancelled is True
        assert token.wait(0) is True

    def test_wait_wakes_on_cancel(self) -> None:
        """Test that a blocked wait returns when another thread cancels."""
        token = CancellationToken()
        timer = threading.Timer(0.05, token.cancel)
        timer.start()

        start = time.monotonic()
        assert token.wait(5.0) is True
        assert time.monotonic() - start < 1.0
        timer.join()

    def test_callbacks_run_once(self) -> None:
        """Test that callbacks fire on the first cancel only."""
        token = CancellationToken()
        calls: list[str] = []
        token.on_cancel(lambda: calls.append("a"))
        token.on_cancel(lambda: calls.append("b"))

        token.cancel()
        token.cancel()

        assert sorted(calls) == ["a", "b"]

    def test_unregister(self) -> None:
        """Test that an unregistered callback does not fire."""
        token = CancellationToken()
        calls: list[str] = []
        unregister = token.on_cancel(lambda: calls.append("x"))

        unregister()
        token.cancel()

        assert calls == []

    def test_register_after_cancel_runs_immediately(self) -> None:
        """Test that late registration still observes the cancellation."""
        token = CancellationToken()
        token.cancel()
        event = threading.Event()

        unregister = token.on_cancel(event.set)

        assert event.is_set()
        unregister()

    def test_failing_callback_does_not_block_others(self) -> None:
        """Test that one broken callback does not stop the rest."""
        token = CancellationToken()
        event = threading.Event()

        def broken() -> None:
            raise RuntimeError("boom")

        token.on_cancel(broken)
        token.on_cancel(event.set)
        token.cancel()

        assert event.is_set()
