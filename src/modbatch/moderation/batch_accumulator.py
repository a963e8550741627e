"""
BatchAccumulator: queue moderation messages and release them as batches.

A batch is released by whichever of three conditions is met first:

- the pending queue reaches ``max_batch_size`` (sliced off synchronously),
- no new message arrived for ``inactivity_timeout`` seconds,
- the oldest pending message has waited ``max_batch_wait_time`` seconds.

Released batches are detached from the pending queue and handed to the batch
handler in their own task, so later ``offer`` calls never observe them.

Usage:
    accumulator = BatchAccumulator(handler, max_batch_size=128,
                                   inactivity_timeout=60, max_batch_wait_time=300)
    accumulator.offer(message)
    await accumulator.drain()
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List, Set

from modbatch.datatypes.message_datatypes import ModerationMessage
from modbatch.util.logger import get_logger

logger = get_logger("batch_accumulator")

# Async callback that analyzes and dispatches one detached batch
BatchHandler = Callable[[List[ModerationMessage]], Awaitable[None]]


class BatchAccumulator:
    """
    Owns the pending batch and its two release timers.

    All state is touched from the event loop thread only, so no lock is
    needed. Both timers may be armed at once; whichever fires first flushes
    the whole pending batch and cancels the other.

    Attributes:
        _handler: Async callback invoked with each released batch.
        _pending: Messages waiting for the next release, in arrival order.
        _inactivity_handle: Timer that fires after a quiet period.
        _max_wait_handle: Timer bounding the staleness of the oldest message.
        _max_wait_deadline: Loop time at which the max-wait timer fires.
        _in_flight: Tasks analyzing batches that were already released.
    """

    def __init__(
        self,
        handler: BatchHandler,
        max_batch_size: int,
        inactivity_timeout: float,
        max_batch_wait_time: float,
    ) -> None:
        if max_batch_size < 1:
            raise ValueError("max_batch_size must be at least 1")
        self._handler: BatchHandler = handler
        self._max_batch_size = max_batch_size
        self._inactivity_timeout = inactivity_timeout
        self._max_batch_wait_time = max_batch_wait_time
        self._pending: List[ModerationMessage] = []
        self._inactivity_handle: asyncio.TimerHandle | None = None
        self._max_wait_handle: asyncio.TimerHandle | None = None
        self._max_wait_deadline: float | None = None
        self._in_flight: Set[asyncio.Task[None]] = set()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    @property
    def timers_armed(self) -> bool:
        return self._inactivity_handle is not None or self._max_wait_handle is not None

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def offer(self, message: ModerationMessage) -> None:
        """
        Queue a message and release any batch that became due.

        Must be called from inside the running event loop.

        Args:
            message: The normalized message to queue.
        """
        loop = asyncio.get_running_loop()

        if not self._pending:
            self._arm_max_wait(loop)
        self._pending.append(message)
        logger.debug(
            "[ACCUMULATOR] Queued message %s from %s (pending: %d)",
            message.message_id,
            message.channel_id,
            len(self._pending),
        )

        while len(self._pending) >= self._max_batch_size:
            batch = self._pending[: self._max_batch_size]
            self._pending = self._pending[self._max_batch_size :]
            self._submit(batch, "size")

        if not self._pending:
            self._cancel_timers()
            return

        if self._max_wait_handle is None:
            self._arm_max_wait(loop)

        # A busy loop can run offer() after the max-wait deadline passed
        if self._max_wait_deadline is not None and self._max_wait_deadline - loop.time() <= 0:
            self._flush("max-wait")
            return

        if self._inactivity_handle is not None:
            self._inactivity_handle.cancel()
        self._inactivity_handle = loop.call_later(self._inactivity_timeout, self._flush, "inactivity")

    async def drain(self) -> None:
        """
        Release the pending batch and wait for every released batch to finish.

        Called on shutdown; the process must not exit before this returns or
        the side effects of pending batches are lost.
        """
        if self._pending:
            self._flush("drain")
        else:
            self._cancel_timers()

        if self._in_flight:
            logger.info("[ACCUMULATOR] Waiting for %d in-flight batch(es)", len(self._in_flight))
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)
        logger.info("[ACCUMULATOR] Drain complete")

    # ------------------------------------------------------------------
    # Timers and submission
    # ------------------------------------------------------------------

    def _arm_max_wait(self, loop: asyncio.AbstractEventLoop) -> None:
        if self._max_wait_handle is not None:
            self._max_wait_handle.cancel()
        self._max_wait_deadline = loop.time() + self._max_batch_wait_time
        self._max_wait_handle = loop.call_at(self._max_wait_deadline, self._flush, "max-wait")

    def _cancel_timers(self) -> None:
        if self._inactivity_handle is not None:
            self._inactivity_handle.cancel()
            self._inactivity_handle = None
        if self._max_wait_handle is not None:
            self._max_wait_handle.cancel()
            self._max_wait_handle = None
        self._max_wait_deadline = None

    def _flush(self, reason: str) -> None:
        """Release the entire pending batch, whatever its size."""
        self._cancel_timers()
        if not self._pending:
            return
        batch = self._pending
        self._pending = []
        self._submit(batch, reason)

    def _submit(self, batch: List[ModerationMessage], reason: str) -> None:
        logger.info("[ACCUMULATOR] Releasing batch of %d message(s) (trigger: %s)", len(batch), reason)
        task = asyncio.get_running_loop().create_task(self._run_handler(batch))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _run_handler(self, batch: List[ModerationMessage]) -> None:
        try:
            await self._handler(batch)
        except Exception:
            logger.exception("[ACCUMULATOR] Exception while processing a batch of %d message(s)", len(batch))
