"""Cooperative cancellation for long running scans."""

from __future__ import annotations

import asyncio

from breakout_scanner.utils.errors import ScanCancelled


class CancellationToken:
    """Flag checked at every suspension point of a scan.

    Cancelling never interrupts an in-flight HTTP call. The scan stops at the
    next checkpoint: before a request, inside a rate-limit backoff delay,
    between timeframes or between symbols.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        """Return whether cancellation was requested."""
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise :class:`ScanCancelled` when cancellation was requested."""
        if self._event.is_set():
            raise ScanCancelled("Scan was cancelled")

    async def wait(self) -> None:
        """Block until cancellation is requested."""
        await self._event.wait()


__all__ = ["CancellationToken"]
