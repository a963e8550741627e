"""
Connect the host's message and shutdown hooks to the batch accumulator.

Inbound events are filtered before they are normalized: direct messages,
messages without a guild, bot authors, whitelisted users and messages posted
in the audit forward target itself never reach the accumulator.
"""

from __future__ import annotations

import time
from typing import Callable

from modbatch.configuration.settings import ModerationSettings
from modbatch.datatypes.message_datatypes import InboundEvent
from modbatch.moderation.batch_accumulator import BatchAccumulator
from modbatch.moderation.message_normalizer import normalize
from modbatch.util.logger import get_logger

logger = get_logger("lifecycle")


class LifecycleController:
    """Entry point the host framework calls for every message and on shutdown."""

    def __init__(
        self,
        accumulator: BatchAccumulator,
        settings: ModerationSettings,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._accumulator = accumulator
        self._settings = settings
        self._clock = clock
        self._closing = False

    @property
    def closing(self) -> bool:
        return self._closing

    def should_moderate(self, event: InboundEvent) -> bool:
        """Return True if the event belongs in a moderation batch."""
        if event.is_direct or not event.guild_id:
            return False
        if event.is_bot:
            return False
        if str(event.user_id) in self._settings.whitelist:
            return False
        # Moderating the audit channel would forward its own transcripts again
        target = self._settings.target
        if target and event.channel_id == target:
            return False
        return True

    def handle_event(self, event: InboundEvent) -> bool:
        """
        Normalize and queue an inbound event.

        Returns:
            True if the event was queued, False if it was filtered out.
        """
        if self._closing:
            logger.debug("[LIFECYCLE] Shutting down, ignoring message %s", event.message_id)
            return False
        if not self.should_moderate(event):
            return False
        self._accumulator.offer(normalize(event, self._clock))
        return True

    async def shutdown(self) -> None:
        """Stop accepting messages and wait until every pending batch is dispatched."""
        if self._closing:
            return
        self._closing = True
        logger.info("[LIFECYCLE] Draining %d pending message(s)", self._accumulator.pending_count)
        await self._accumulator.drain()
