"""
Cooperative cancellation for workflow runs.

The engine checks the signal at the top of every iteration, so a step that
is already running always finishes and the stream then ends with a single
``workflow-cancelled`` event. One signal may be shared by several runs.
"""

import asyncio
from datetime import datetime, timezone

from flowcraft.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_ABORT_REASON = "Cancelled by caller"


class AbortSignal:
    """
    Cancellation flag set from outside a run.

    The first ``abort()`` wins; later calls keep the original reason and
    report False.

    Examples:
        >>> signal = AbortSignal()
        >>> task = asyncio.create_task(engine.run(definition, abort_signal=signal))
        >>> signal.abort("user closed the session")
    """

    def __init__(self):
        self._event = asyncio.Event()
        self._reason: str | None = None
        self._requested_at: datetime | None = None

    def abort(self, reason: str = DEFAULT_ABORT_REASON) -> bool:
        """Request cancellation. Returns False if it was already requested."""
        if self._event.is_set():
            return False
        self._reason = reason
        self._requested_at = datetime.now(timezone.utc)
        self._event.set()
        logger.info("abort_requested", reason=reason)
        return True

    def is_aborted(self) -> bool:
        return self._event.is_set()

    async def wait(self, timeout: float | None = None) -> bool:
        """Wait for cancellation; False when ``timeout`` elapses first."""
        try:
            await asyncio.wait_for(self._event.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    @property
    def reason(self) -> str | None:
        return self._reason

    @property
    def requested_at(self) -> datetime | None:
        return self._requested_at

    def reset(self) -> None:
        self._event.clear()
        self._reason = None
        self._requested_at = None


__all__ = ["AbortSignal", "DEFAULT_ABORT_REASON"]
