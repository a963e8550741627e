"""
Capability interface the dispatcher uses to act on a chat platform.

Every supported platform provides one ``PlatformBot`` implementation. The
``BotRegistry`` picks the implementation for a message by the platform prefix
of its qualified channel id (``"discord:1234"`` resolves to the ``discord`` bot).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, List, Sequence

from modbatch.datatypes.message_datatypes import split_channel_id
from modbatch.datatypes.violation_datatypes import AuditBundle
from modbatch.util.logger import get_logger

logger = get_logger("platform_bot")


class PlatformBot(ABC):
    """Moderation capabilities of one chat platform."""

    platform: str

    @abstractmethod
    async def delete_message(self, channel_id: str, message_id: str) -> None:
        """Delete a message; a message that is already gone counts as deleted."""

    @abstractmethod
    async def mute_member(self, guild_id: str, user_id: str, duration_ms: int, reason: str = "") -> None:
        """Mute a guild member for ``duration_ms`` milliseconds."""

    @abstractmethod
    async def kick_member(self, guild_id: str, user_id: str, reason: str = "") -> None:
        """Remove a member from a guild."""

    @abstractmethod
    async def broadcast(self, channel_ids: Sequence[str], bundle: AuditBundle) -> None:
        """Send a bundled audit forward to each of the given qualified channels."""


class BotRegistry:
    """Lookup of platform bots keyed by platform prefix."""

    def __init__(self, bots: Sequence[PlatformBot] = ()) -> None:
        self._bots: Dict[str, PlatformBot] = {}
        for bot in bots:
            self.register(bot)

    def register(self, bot: PlatformBot) -> None:
        if bot.platform in self._bots:
            logger.warning("[REGISTRY] Replacing bot registered for platform %s", bot.platform)
        self._bots[bot.platform] = bot

    def get(self, platform: str) -> PlatformBot | None:
        return self._bots.get(platform)

    def for_channel(self, channel_id: str) -> PlatformBot | None:
        """Return the bot whose platform prefixes ``channel_id``, if any."""
        platform, _ = split_channel_id(channel_id)
        return self._bots.get(platform)

    @property
    def platforms(self) -> List[str]:
        return list(self._bots)
