"""Quiet-period finalizer: one debounced countdown per conversation buffer."""

import asyncio
from typing import Awaitable, Callable

from ..logging_config import get_logger
from ..models import ConversationBuffer

logger = get_logger(__name__)


ElapsedHandler = Callable[[ConversationBuffer], Awaitable[None]]


class QuietPeriodFinalizer:
    """Arms, re-arms and cancels the countdown owned by a ConversationBuffer.

    The countdown handle lives on ``buffer.pending_timer``. Arming always
    cancels the previous handle first, so at most one countdown per buffer is
    ever live. When a countdown elapses uninterrupted, ``on_elapsed`` is
    awaited with the buffer; the handler decides whether the buffer is still
    current.
    """

    def __init__(self, quiet_period: float, on_elapsed: ElapsedHandler):
        if quiet_period <= 0:
            raise ValueError("quiet_period must be positive")
        self._quiet_period = quiet_period
        self._on_elapsed = on_elapsed

    @property
    def quiet_period(self) -> float:
        return self._quiet_period

    def arm(self, buffer: ConversationBuffer) -> None:
        """Cancel any running countdown for ``buffer`` and start a new one."""
        self.cancel(buffer)
        buffer.pending_timer = asyncio.get_running_loop().create_task(
            self._countdown(buffer),
            name=f"quiet-period:{buffer.conversation_id}:{buffer.cycle}",
        )

    def cancel(self, buffer: ConversationBuffer) -> None:
        """Release the countdown owned by ``buffer``, if any."""
        timer = buffer.pending_timer
        buffer.pending_timer = None
        if timer is not None and not timer.done():
            timer.cancel()

    async def _countdown(self, buffer: ConversationBuffer) -> None:
        await asyncio.sleep(self._quiet_period)

        if buffer.pending_timer is not asyncio.current_task():
            # Superseded between wake-up and now
            logger.debug(
                "Stale countdown for %s ignored", buffer.conversation_id
            )
            return
        buffer.pending_timer = None

        try:
            await self._on_elapsed(buffer)
        except Exception as e:
            logger.error(
                "Finalization failed for %s: %s",
                buffer.conversation_id,
                e,
                exc_info=True,
            )
