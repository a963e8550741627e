"""Message listener Cog for Modbatch.

This cog receives Discord ``on_message`` events, converts each message into a
platform-neutral inbound event and hands it to the lifecycle controller.
"""

from typing import List

import discord
from discord.ext import commands

from modbatch.datatypes.message_datatypes import InboundEvent, RawElement, qualify_channel_id
from modbatch.moderation.lifecycle import LifecycleController
from modbatch.platforms.discord_bot import DISCORD_PLATFORM
from modbatch.util.logger import get_logger

logger = get_logger("message_listener_cog")

FORWARDED_AUTHOR = "forwarded"


def _is_image(attachment) -> bool:
    content_type = getattr(attachment, "content_type", None) or ""
    return content_type.startswith("image/")


def content_elements(message) -> List[RawElement]:
    """Return the elements of a message or forwarded snapshot.

    Only text and image elements are judged; files, embeds and stickers are
    carried along so raw audit forwards can show them.
    """
    elements: List[RawElement] = []
    text = getattr(message, "clean_content", None) or getattr(message, "content", None) or ""
    if text:
        elements.append(RawElement("text", {"content": text}))
    for attachment in getattr(message, "attachments", None) or []:
        if _is_image(attachment):
            elements.append(RawElement("img", {"src": attachment.url}))
        else:
            elements.append(RawElement("file", {"url": attachment.url, "filename": getattr(attachment, "filename", None)}))
    for embed in getattr(message, "embeds", None) or []:
        elements.append(RawElement("embed", embed.to_dict()))
    for sticker in getattr(message, "stickers", None) or []:
        elements.append(RawElement("sticker", {"id": str(sticker.id), "name": sticker.name}))
    return elements


def _quote_element(message: discord.Message) -> RawElement | None:
    reference = message.reference
    resolved = getattr(reference, "resolved", None) if reference else None
    if not isinstance(resolved, discord.Message):
        return None
    return RawElement(
        "quote",
        {
            "user_id": str(resolved.author.id),
            "user_name": resolved.author.display_name,
            "channel_id": qualify_channel_id(DISCORD_PLATFORM, resolved.channel.id),
            "timestamp": resolved.created_at.timestamp(),
        },
        content_elements(resolved),
    )


def _forward_element(message: discord.Message) -> RawElement | None:
    snapshots = getattr(message, "snapshots", None) or getattr(message, "message_snapshots", None) or []
    nodes: List[RawElement] = []
    for snapshot in snapshots:
        forwarded = getattr(snapshot, "message", None) or snapshot
        nodes.append(RawElement("message", {"user_name": FORWARDED_AUTHOR}, content_elements(forwarded)))
    if not nodes:
        return None
    return RawElement("forward", {}, nodes)


def inbound_event_from_message(message: discord.Message) -> InboundEvent:
    """Convert a Discord message into the platform-neutral inbound event."""
    elements: List[RawElement] = []
    quote = _quote_element(message)
    if quote is not None:
        elements.append(quote)
    elements.extend(content_elements(message))
    forward = _forward_element(message)
    if forward is not None:
        elements.append(forward)

    return InboundEvent(
        user_id=str(message.author.id),
        user_name=getattr(message.author, "display_name", None),
        channel_id=qualify_channel_id(DISCORD_PLATFORM, message.channel.id),
        guild_id=str(message.guild.id) if message.guild else None,
        message_id=str(message.id),
        elements=elements,
        is_bot=bool(message.author.bot),
        is_direct=message.guild is None,
    )


class MessageListenerCog(commands.Cog):
    """Cog responsible for feeding new messages into the moderation pipeline."""

    def __init__(self, discord_bot_instance, controller: LifecycleController):
        """
        Initialize the message listener cog.

        Parameters
        ----------
        discord_bot_instance:
            The Discord bot instance to attach this cog to.
        controller:
            Lifecycle controller that filters and queues inbound events.
        """
        self.bot = discord_bot_instance
        self._controller = controller
        logger.info("[MESSAGE LISTENER] Message listener cog loaded")

    @commands.Cog.listener(name="on_message")
    async def on_message(self, message: discord.Message):
        """Queue every moderatable message for batched judging."""
        event = inbound_event_from_message(message)
        if self._controller.handle_event(event):
            logger.debug(
                "[MESSAGE LISTENER] Queued message %s from %s in %s",
                event.message_id,
                event.user_id,
                event.channel_id,
            )


def setup(discord_bot_instance, controller: LifecycleController):
    """Register the MessageListenerCog with the bot."""
    discord_bot_instance.add_cog(MessageListenerCog(discord_bot_instance, controller))
