"""
Assemble the moderation pipeline from configuration.

``ModerationPipeline`` owns one instance of every core component and passes
each released batch through the judge and the dispatcher:

    inbound event -> LifecycleController -> BatchAccumulator
        -> JudgeClient.analyze -> ViolationDispatcher.apply
"""

from __future__ import annotations

from typing import List

from modbatch.configuration.app_configuration import AppConfig
from modbatch.configuration.settings import ModerationSettings
from modbatch.datatypes.message_datatypes import ModerationMessage
from modbatch.moderation.batch_accumulator import BatchAccumulator
from modbatch.moderation.judge_client import JudgeClient, RetryState
from modbatch.moderation.lifecycle import LifecycleController
from modbatch.moderation.violation_dispatcher import ViolationDispatcher
from modbatch.platforms.platform_bot import BotRegistry
from modbatch.util.logger import get_logger

logger = get_logger("moderation_pipeline")


class ModerationPipeline:
    """
    Owns the judge, dispatcher, accumulator and lifecycle controller.

    Attributes:
        judge: Client that turns batches into violation records.
        dispatcher: Applies violation records through the bot registry.
        accumulator: Batches messages and releases them to ``process_batch``.
        controller: Filters host events and drains on shutdown.
    """

    def __init__(
        self,
        judge: JudgeClient,
        dispatcher: ViolationDispatcher,
        moderation_settings: ModerationSettings,
        max_batch_size: int,
        inactivity_timeout: float,
        max_batch_wait_time: float,
    ) -> None:
        self.judge = judge
        self.dispatcher = dispatcher
        self.accumulator = BatchAccumulator(
            self.process_batch,
            max_batch_size=max_batch_size,
            inactivity_timeout=inactivity_timeout,
            max_batch_wait_time=max_batch_wait_time,
        )
        self.controller = LifecycleController(self.accumulator, moderation_settings)

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        registry: BotRegistry,
        retry_state: RetryState | None = None,
    ) -> "ModerationPipeline":
        """Build a pipeline from the application configuration."""
        batching = config.batching
        batching.warn_if_misconfigured()
        moderation_settings = config.moderation
        return cls(
            judge=JudgeClient(config.judge, retry_state=retry_state),
            dispatcher=ViolationDispatcher(registry, moderation_settings),
            moderation_settings=moderation_settings,
            max_batch_size=batching.max_batch_size,
            inactivity_timeout=batching.inactivity_timeout,
            max_batch_wait_time=batching.max_batch_wait_time,
        )

    async def process_batch(self, batch: List[ModerationMessage]) -> None:
        """Judge one released batch and apply whatever the judge reports."""
        violations = await self.judge.analyze(batch)
        if violations:
            await self.dispatcher.apply(violations, batch)

    async def shutdown(self) -> None:
        """Drain pending batches, then release the judge's HTTP client."""
        await self.controller.shutdown()
        try:
            await self.judge.close()
        except Exception as exc:
            logger.warning("[PIPELINE] Error while closing the judge client: %s", exc)
