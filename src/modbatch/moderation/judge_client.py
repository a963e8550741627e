"""Send message batches to the AI judge and retry until a usable reply arrives.

This module talks to any OpenAI-compatible chat completion endpoint:
- Serializing a batch into the judge wire format (one JSON user turn).
- Prefixing it with the system instruction that embeds the operator rules.
- Coercing the free-form reply into violation records.
- Retrying every failure with a growing delay that is shared by all batches,
  so a struggling provider slows the whole pipeline down instead of being
  hammered by several batches at once.
"""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Sequence

from openai import AsyncOpenAI
from openai.types.chat import ChatCompletionMessageParam

from modbatch.configuration.settings import JudgeSettings
from modbatch.datatypes.message_datatypes import ModerationMessage
from modbatch.datatypes.violation_datatypes import ViolationRecord
from modbatch.moderation.judge_parsing import JudgeReplyError, parse_violations
from modbatch.util.logger import get_logger

logger = get_logger("judge_client")


@dataclass(slots=True)
class RetryState:
    """Process-wide retry gate shared by every judge call.

    Attributes:
        next_allowed_attempt_at: Epoch seconds before which no attempt may start.
    """

    next_allowed_attempt_at: float = 0.0


class JudgeClient:
    """
    Turn a batch of messages into violation records using the AI judge.

    ``analyze`` never raises to its caller: transport errors, timeouts, empty
    and unparsable replies are all retried without a cap.
    """

    def __init__(
        self,
        settings: JudgeSettings,
        client: AsyncOpenAI | None = None,
        retry_state: RetryState | None = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the judge client.

        Args:
            settings: Endpoint, credentials, model, rules and retry tuning.
            client: Pre-built OpenAI client; one is created from settings if omitted.
            retry_state: Shared retry gate; a private one is created if omitted.
            clock: Wall clock in epoch seconds.
            sleep: Coroutine used to wait out the retry delay.
        """
        self._settings = settings
        self._client = client or AsyncOpenAI(
            api_key=settings.api_key,
            base_url=settings.endpoint or None,
            timeout=settings.request_timeout,
            # The shared backoff below is the only retry loop
            max_retries=0,
        )
        self._retry_state = retry_state if retry_state is not None else RetryState()
        self._clock = clock
        self._sleep = sleep
        self._system_prompt = settings.system_prompt
        logger.info(
            "[JUDGE] Initialized with endpoint=%s, model=%s",
            settings.endpoint,
            settings.model,
        )

    @property
    def retry_state(self) -> RetryState:
        return self._retry_state

    def build_messages(self, batch: Sequence[ModerationMessage]) -> List[ChatCompletionMessageParam]:
        """Build the system and user turns for a batch."""
        payload = [message.to_judge_payload() for message in batch]
        return [
            {"role": "system", "content": self._system_prompt},
            {"role": "user", "content": json.dumps(payload, ensure_ascii=False)},
        ]

    async def analyze(self, batch: Sequence[ModerationMessage]) -> List[ViolationRecord]:
        """
        Ask the judge about a batch, retrying until a reply parses.

        Args:
            batch: Detached batch snapshot; it is not modified.

        Returns:
            The violation records reported by the judge, possibly empty.
        """
        if not batch:
            return []

        messages = self.build_messages(batch)
        if self._settings.debug:
            logger.info("[JUDGE] Request payload:\n%s", messages[1]["content"])

        attempt = 0
        while True:
            wait = self._retry_state.next_allowed_attempt_at - self._clock()
            if wait > 0:
                logger.debug("[JUDGE] Waiting %.1fs before the next attempt", wait)
                await self._sleep(wait)

            try:
                reply = await self._request(messages)
                if self._settings.debug:
                    logger.info("[JUDGE] Raw reply:\n%s", reply)
                violations = parse_violations(reply)
            except Exception as exc:
                attempt += 1
                delay = self._settings.retry_base_delay + attempt * self._settings.retry_increment
                self._retry_state.next_allowed_attempt_at = self._clock() + delay
                logger.error(
                    "[JUDGE] Attempt %d for a batch of %d message(s) failed: %s; retrying in %.0fs",
                    attempt,
                    len(batch),
                    str(exc) or type(exc).__name__,
                    delay,
                )
                continue

            self._retry_state.next_allowed_attempt_at = self._clock()
            logger.info(
                "[JUDGE] Batch of %d message(s) judged: %d violation(s)",
                len(batch),
                len(violations),
            )
            return violations

    async def _request(self, messages: List[ChatCompletionMessageParam]) -> str:
        response = await self._client.chat.completions.create(
            model=self._settings.model,
            messages=messages,
        )
        if not response.choices:
            raise JudgeReplyError("Judge response carried no choices")
        return (response.choices[0].message.content or "").strip()

    async def close(self) -> None:
        await self._client.close()
