"""
Apply judge violations back onto the chat platform.

For each batch this module:
- Resolves every violation to the batch messages it references.
- Orders violations by the timestamp of their first resolved message.
- Applies the enabled actions (mute, kick, recall, forward) through the bot
  registered for the message's platform, isolating every single call.
- Sends one bundled audit forward to the configured review channel.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Awaitable, Dict, List, Sequence, Tuple

from modbatch.configuration.settings import ModerationSettings
from modbatch.datatypes.message_datatypes import ModerationMessage, TextSegment
from modbatch.datatypes.violation_datatypes import (
    ActionType,
    AuditBundle,
    AuditEntry,
    ViolationRecord,
)
from modbatch.platforms.platform_bot import BotRegistry
from modbatch.util.logger import get_logger

logger = get_logger("violation_dispatcher")

AUDIT_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

ResolvedViolation = Tuple[ViolationRecord, List[ModerationMessage]]


def resolve_violations(
    violations: Sequence[ViolationRecord],
    batch: Sequence[ModerationMessage],
) -> List[ResolvedViolation]:
    """
    Pair each violation with the batch messages it references.

    Violations whose ids all fall outside the batch are dropped. The result is
    sorted by the timestamp of each violation's first resolved message; the
    sort is stable so ties keep the judge's order.

    Args:
        violations: Records returned by the judge.
        batch: The batch the records were produced from.

    Returns:
        List of ``(violation, resolved_messages)`` pairs in dispatch order.
    """
    index: Dict[str, ModerationMessage] = {message.message_id: message for message in batch}
    resolved: List[ResolvedViolation] = []

    for violation in violations:
        sources = [index[mid] for mid in violation.source_message_ids if mid in index]
        if not sources:
            logger.warning(
                "[DISPATCH] Dropping violation referencing unknown message(s) %s",
                violation.source_message_ids,
            )
            continue
        resolved.append((violation, sources))

    resolved.sort(key=lambda pair: pair[1][0].timestamp)
    return resolved


class ViolationDispatcher:
    """
    Carry out moderation actions for judged batches.

    ``apply`` is best effort: a failing platform call is logged and the
    remaining actions and violations still run.
    """

    def __init__(self, registry: BotRegistry, settings: ModerationSettings) -> None:
        self._registry = registry
        self._settings = settings

    async def apply(self, violations: Sequence[ViolationRecord], batch: Sequence[ModerationMessage]) -> None:
        """
        Apply every violation of a batch and forward the audit bundle.

        Args:
            violations: Records returned by the judge for ``batch``.
            batch: The detached batch the records refer to.
        """
        if not violations:
            return
        actions = self._settings.actions
        if not actions:
            logger.debug("[DISPATCH] No moderation actions enabled, ignoring %d violation(s)", len(violations))
            return

        bundle = AuditBundle()
        for violation, sources in resolve_violations(violations, batch):
            await self._apply_violation(violation, sources, bundle)

        if ActionType.FORWARD in actions and bundle:
            await self._forward(bundle)

    async def _apply_violation(
        self,
        violation: ViolationRecord,
        sources: List[ModerationMessage],
        bundle: AuditBundle,
    ) -> None:
        primary = sources[0]
        bot = self._registry.for_channel(primary.channel_id)
        if bot is None:
            logger.warning(
                "[DISPATCH] No bot registered for %s, skipping violation on message %s",
                primary.channel_id,
                primary.message_id,
            )
            return

        if violation.subject_user_id and violation.subject_user_id != primary.user_id:
            logger.debug(
                "[DISPATCH] Judge named user %s but message %s belongs to %s; acting on the author",
                violation.subject_user_id,
                primary.message_id,
                primary.user_id,
            )

        actions = self._settings.actions
        reason = violation.reason

        # The sign of the magnitude selects at most one of mute and kick
        if ActionType.MUTE in actions and violation.mute_seconds > 0:
            await self._attempt(
                f"mute {primary.user_id} for {violation.mute_seconds}s",
                bot.mute_member(primary.guild_id, primary.user_id, violation.mute_seconds * 1000, reason),
            )
        elif ActionType.KICK in actions and violation.is_removal:
            await self._attempt(
                f"kick {primary.user_id}",
                bot.kick_member(primary.guild_id, primary.user_id, reason),
            )

        if ActionType.RECALL in actions:
            for message in sources:
                message_bot = self._registry.for_channel(message.channel_id)
                if message_bot is None:
                    logger.warning("[DISPATCH] No bot registered for %s, cannot recall %s", message.channel_id, message.message_id)
                    continue
                await self._attempt(
                    f"recall {message.message_id}",
                    message_bot.delete_message(message.channel_id, message.message_id),
                )

        if ActionType.FORWARD in actions:
            self._append_audit(bundle, violation, sources)

        logger.info(
            "[DISPATCH] Handled violation by %s on %d message(s): %s",
            primary.user_id,
            len(sources),
            reason or "no reason given",
        )

    async def _attempt(self, description: str, call: Awaitable[None]) -> bool:
        try:
            await call
        except Exception as exc:
            logger.warning("[DISPATCH] Failed to %s: %s", description, exc)
            return False
        return True

    def _append_audit(
        self,
        bundle: AuditBundle,
        violation: ViolationRecord,
        sources: List[ModerationMessage],
    ) -> None:
        primary = sources[0]
        header = (
            f"Time: {datetime.fromtimestamp(primary.timestamp).strftime(AUDIT_TIME_FORMAT)}\n"
            f"User: {primary.user_name} ({primary.guild_id}:{primary.user_id})\n"
            f"Reason: {violation.reason}"
        )
        bundle.append(AuditEntry(primary.user_id, primary.user_name, (TextSegment(header),)))

        for message in sources:
            bundle.append(AuditEntry(message.user_id, message.user_name, message.segments))
            if self._settings.forward_raw:
                # The raw tree still holds what normalization dropped, e.g. embeds
                raw = json.dumps(
                    [element.to_dict() for element in message.raw_elements],
                    ensure_ascii=False,
                    indent=2,
                    default=str,
                )
                bundle.append(AuditEntry(message.user_id, message.user_name, (TextSegment(raw),)))

    async def _forward(self, bundle: AuditBundle) -> None:
        target = self._settings.target
        if not target:
            logger.debug("[DISPATCH] No forward target configured, dropping audit bundle")
            return
        bot = self._registry.for_channel(target)
        if bot is None:
            logger.error("[DISPATCH] No bot registered for forward target %s", target)
            return
        try:
            await bot.broadcast([target], bundle)
        except Exception as exc:
            logger.error("[DISPATCH] Failed to forward audit bundle to %s: %s", target, exc)
