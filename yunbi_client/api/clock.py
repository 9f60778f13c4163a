"""
Server clock skew tracking.

Signed requests carry a millisecond ``tonce`` that the exchange only accepts
within a small window around its own clock. The tracker keeps the offset
between the local clock and the server clock, measured from the public
timestamp endpoint.
"""

import asyncio
import logging
import time
from numbers import Real
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


def now_millis() -> int:
    """Local wall clock in milliseconds since the Unix epoch."""
    return int(time.time() * 1000)


class ClockSkewTracker:
    """
    Best-effort estimate of ``server_now - local_now`` in milliseconds.

    The offset starts at 0 and is only changed by refresh(). Signing reads it
    without waiting for a pending refresh, so requests signed before the first
    sync completes use offset 0.
    """

    def __init__(self, fetch_server_time: Callable[[], Awaitable[Any]],
                 clock: Optional[Callable[[], int]] = None):
        """
        Initialize the tracker.

        Args:
            fetch_server_time: Coroutine function returning server time in seconds
            clock: Local millisecond clock, defaults to the wall clock
        """
        self._fetch_server_time = fetch_server_time
        self._clock = clock or now_millis
        self._offset_ms = 0
        self._pending: Optional[asyncio.Task] = None

    def current_offset_millis(self) -> int:
        return self._offset_ms

    def now_millis(self) -> int:
        """Local clock corrected by the current offset."""
        return self._clock() + self._offset_ms

    @property
    def pending(self) -> Optional[asyncio.Task]:
        """The scheduled background refresh, if any."""
        return self._pending

    async def refresh(self) -> int:
        """
        Measure the offset against the server clock once.

        Failures are logged and swallowed; the previous offset is kept.

        Returns:
            int: Offset in effect after the attempt
        """
        try:
            server_time = await self._fetch_server_time()
        except Exception as e:
            logger.warning(f"Clock sync failed, keeping offset {self._offset_ms}ms: {e}")
            return self._offset_ms

        if isinstance(server_time, bool) or not isinstance(server_time, (Real, str)):
            logger.warning(f"Clock sync returned malformed server time: {server_time!r}")
            return self._offset_ms

        try:
            server_ms = int(float(server_time) * 1000)
        except (TypeError, ValueError, OverflowError):
            logger.warning(f"Clock sync returned malformed server time: {server_time!r}")
            return self._offset_ms

        self._offset_ms = server_ms - self._clock()
        logger.debug(f"Clock offset updated to {self._offset_ms}ms")
        return self._offset_ms

    def schedule_refresh(self) -> asyncio.Task:
        """
        Start a refresh in the background on the running event loop.

        Nothing awaits the returned task on behalf of the caller.

        Raises:
            RuntimeError: If no event loop is running
        """
        self._pending = asyncio.get_running_loop().create_task(self.refresh())
        return self._pending
