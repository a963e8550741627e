"""
Discord implementation of the moderation capability interface.

Wraps a py-cord ``discord.Bot`` and translates platform-qualified ids
(``"discord:<snowflake>"``) into Discord API calls.
"""

from __future__ import annotations

import datetime
from typing import Sequence

import discord

from modbatch.datatypes.message_datatypes import split_channel_id
from modbatch.datatypes.violation_datatypes import AuditBundle
from modbatch.platforms.audit_embed import build_audit_pages
from modbatch.platforms.platform_bot import PlatformBot
from modbatch.util.logger import get_logger

logger = get_logger("discord_bot")

DISCORD_PLATFORM = "discord"

# Discord rejects communication timeouts longer than 28 days
MAX_TIMEOUT = datetime.timedelta(days=28)
MAX_TIMEOUT_MS = MAX_TIMEOUT // datetime.timedelta(milliseconds=1)


def _snowflake(value: str) -> int:
    return int(str(value).strip())


class DiscordPlatformBot(PlatformBot):
    """PlatformBot backed by a connected py-cord bot."""

    platform = DISCORD_PLATFORM

    def __init__(self, bot: discord.Bot) -> None:
        self._bot = bot

    @property
    def bot(self) -> discord.Bot:
        return self._bot

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def _resolve_channel(self, channel_id: str):
        _, local_id = split_channel_id(channel_id)
        snowflake = _snowflake(local_id)
        channel = self._bot.get_channel(snowflake)
        if channel is None:
            channel = await self._bot.fetch_channel(snowflake)
        return channel

    async def _resolve_guild(self, guild_id: str) -> discord.Guild:
        snowflake = _snowflake(guild_id)
        guild = self._bot.get_guild(snowflake)
        if guild is None:
            guild = await self._bot.fetch_guild(snowflake)
        return guild

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    async def delete_message(self, channel_id: str, message_id: str) -> None:
        channel = await self._resolve_channel(channel_id)
        try:
            await channel.get_partial_message(_snowflake(message_id)).delete()
        except discord.NotFound:
            logger.debug("[DISCORD] Message %s in %s was already deleted", message_id, channel_id)

    async def mute_member(self, guild_id: str, user_id: str, duration_ms: int, reason: str = "") -> None:
        # Clamp before building the timedelta; huge judge values overflow it
        duration = datetime.timedelta(milliseconds=min(max(duration_ms, 0), MAX_TIMEOUT_MS))
        guild = await self._resolve_guild(guild_id)
        member = guild.get_member(_snowflake(user_id)) or await guild.fetch_member(_snowflake(user_id))
        until = discord.utils.utcnow() + duration
        await member.timeout(until, reason=f"Modbatch: {reason}")

    async def kick_member(self, guild_id: str, user_id: str, reason: str = "") -> None:
        guild = await self._resolve_guild(guild_id)
        await guild.kick(discord.Object(id=_snowflake(user_id)), reason=f"Modbatch: {reason}")

    async def broadcast(self, channel_ids: Sequence[str], bundle: AuditBundle) -> None:
        pages = build_audit_pages(bundle)
        for channel_id in channel_ids:
            channel = await self._resolve_channel(channel_id)
            for embeds in pages:
                await channel.send(embeds=embeds)
            logger.debug("[DISCORD] Forwarded %d audit entries to %s", len(bundle), channel_id)
