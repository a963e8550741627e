"""
Convert inbound chat events into immutable moderation messages.

The normalizer walks the raw element tree of an event, merging adjacent text
fragments and expanding forwarded or quoted messages into nested
``ForwardSegment`` nodes. It is a pure transform: unknown element types are
dropped so that one odd element never blocks a whole message.
"""

from __future__ import annotations

import time
from typing import Callable, List, Sequence

from modbatch.datatypes.message_datatypes import (
    ContentSegment,
    ForwardedMessage,
    ForwardSegment,
    ImageSegment,
    InboundEvent,
    ModerationMessage,
    RawElement,
    TextSegment,
    render_plain_text,
)

TEXT_TYPES = {"text"}
MENTION_TYPES = {"at"}
IMAGE_TYPES = {"img", "image"}
FORWARD_TYPES = {"forward"}
MESSAGE_TYPES = {"message"}
QUOTE_TYPES = {"quote"}


def _text_of(element: RawElement) -> str:
    if element.type in MENTION_TYPES:
        name = element.attrs.get("name") or element.attrs.get("id") or ""
        return f"@{name}" if name else ""
    return str(element.attrs.get("content") or "")


def _forwarded_message(element: RawElement) -> ForwardedMessage:
    user_id = str(element.attrs.get("user_id") or "")
    user_name = str(element.attrs.get("user_name") or user_id)
    timestamp = element.attrs.get("timestamp")
    return ForwardedMessage(
        user_id=user_id,
        user_name=user_name,
        segments=tuple(normalize_elements(element.children)),
        channel_id=element.attrs.get("channel_id"),
        timestamp=float(timestamp) if isinstance(timestamp, (int, float)) else None,
    )


def normalize_elements(elements: Sequence[RawElement]) -> List[ContentSegment]:
    """Normalize a raw element list into content segments.

    Adjacent text and mention fragments are buffered and flushed as a single
    trimmed ``TextSegment`` whenever an image or forward boundary is reached
    and at the end of the list. Empty flushes produce nothing.

    Args:
        elements: Raw elements in message order.

    Returns:
        Ordered content segments.
    """
    segments: List[ContentSegment] = []
    buffer: List[str] = []

    def flush() -> None:
        text = "".join(buffer).strip()
        buffer.clear()
        if text:
            segments.append(TextSegment(text))

    for element in elements:
        kind = element.type
        if kind in TEXT_TYPES or kind in MENTION_TYPES:
            buffer.append(_text_of(element))
        elif kind in IMAGE_TYPES:
            url = element.attrs.get("src") or element.attrs.get("url")
            if not url:
                continue
            flush()
            segments.append(ImageSegment(str(url)))
        elif kind in FORWARD_TYPES:
            flush()
            nested = tuple(
                _forwarded_message(child)
                for child in element.children
                if child.type in MESSAGE_TYPES
            )
            segments.append(ForwardSegment(nested))
        elif kind in QUOTE_TYPES or kind in MESSAGE_TYPES:
            flush()
            segments.append(ForwardSegment((_forwarded_message(element),)))
        # anything else is dropped

    flush()
    return segments


def normalize(event: InboundEvent, clock: Callable[[], float] = time.time) -> ModerationMessage:
    """Build the immutable moderation message for an inbound event.

    Args:
        event: Event delivered by the host message hook.
        clock: Source of the ingestion timestamp in epoch seconds.

    Returns:
        ModerationMessage stamped with the ingestion time.
    """
    segments = tuple(normalize_elements(event.elements))
    return ModerationMessage(
        message_id=str(event.message_id),
        channel_id=event.channel_id,
        guild_id=str(event.guild_id or ""),
        user_id=str(event.user_id),
        user_name=event.user_name or str(event.user_id),
        segments=segments,
        text=render_plain_text(segments),
        timestamp=clock(),
        raw_elements=tuple(event.elements),
    )
