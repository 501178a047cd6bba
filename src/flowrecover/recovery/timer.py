"""Cancellable backoff wait used between retry attempts."""

from __future__ import annotations

import asyncio
import contextlib


class BackoffTimer:
    """Suspends the calling coroutine for a backoff delay.

    The wait is cooperative: only the awaiting recovery call is suspended.
    Setting ``cancel_event`` ends the wait early.
    """

    supports_cancellation = True

    async def wait(self, delay_ms: int, cancel_event: asyncio.Event | None = None) -> bool:
        """Wait for ``delay_ms`` milliseconds.

        Returns:
            True if the full delay elapsed, False if the wait was cancelled.
        """
        seconds = max(delay_ms, 0) / 1000
        if cancel_event is None:
            await asyncio.sleep(seconds)
            return True

        if cancel_event.is_set():
            return False

        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(cancel_event.wait(), timeout=seconds)
            return False
        return True
