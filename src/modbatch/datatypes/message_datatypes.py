"""
Message data structures shared by the moderation pipeline.

This module defines the platform-neutral inbound event that listeners produce,
and the immutable moderation message that the normalizer builds from it.

Key Types:
- `RawElement`: One node of a raw chat element tree (text, image, forward, ...).
- `InboundEvent`: A single chat message as delivered by the host framework.
- `TextSegment`, `ImageSegment`, `ForwardSegment`: Normalized content segments.
- `ForwardedMessage`: A quoted or forwarded message nested inside a segment.
- `ModerationMessage`: The pipeline's internal, immutable message record.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple, Union


PLATFORM_SEPARATOR = ":"


def split_channel_id(channel_id: str) -> Tuple[str, str]:
    """Split a platform-qualified channel id into ``(platform, local_id)``.

    Args:
        channel_id: Identifier such as ``"discord:1234"``.

    Returns:
        Tuple of the platform prefix and the platform-local channel id. The
        platform is an empty string when the id carries no prefix.
    """
    platform, sep, local_id = channel_id.partition(PLATFORM_SEPARATOR)
    if not sep:
        return "", channel_id
    return platform, local_id


def qualify_channel_id(platform: str, local_id: int | str) -> str:
    """Return the platform-qualified form of a platform-local channel id."""
    return f"{platform}{PLATFORM_SEPARATOR}{local_id}"


@dataclass(slots=True)
class RawElement:
    """One node of the raw element tree attached to an inbound event.

    Attributes:
        type: Element type (``text``, ``at``, ``img``, ``image``, ``forward``,
            ``message``, ``quote``; anything else is dropped by the normalizer
            but kept on the message for raw audit dumps).
        attrs: Element attributes, e.g. ``content`` for text or ``src`` for images.
        children: Nested elements, used by forward, message and quote nodes.
    """

    type: str
    attrs: Dict[str, Any] = field(default_factory=dict)
    children: List["RawElement"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-friendly dump of this node and its children."""
        return {
            "type": self.type,
            "attrs": dict(self.attrs),
            "children": [child.to_dict() for child in self.children],
        }


@dataclass(slots=True)
class InboundEvent:
    """A chat message as delivered by the host message hook."""

    user_id: str
    user_name: str | None
    channel_id: str
    guild_id: str | None
    message_id: str
    elements: List[RawElement] = field(default_factory=list)
    is_bot: bool = False
    is_direct: bool = False


@dataclass(frozen=True, slots=True)
class TextSegment:
    text: str

    def to_wire(self) -> Dict[str, Any]:
        return {"text": self.text}


@dataclass(frozen=True, slots=True)
class ImageSegment:
    url: str

    def to_wire(self) -> Dict[str, Any]:
        return {"image": self.url}


@dataclass(frozen=True, slots=True)
class ForwardedMessage:
    """A message nested inside a forward segment, with its own author."""

    user_id: str
    user_name: str
    segments: Tuple["ContentSegment", ...] = ()
    channel_id: str | None = None
    timestamp: float | None = None

    def to_wire(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "userName": self.user_name,
            "content": [segment.to_wire() for segment in self.segments],
        }


@dataclass(frozen=True, slots=True)
class ForwardSegment:
    messages: Tuple[ForwardedMessage, ...] = ()

    def to_wire(self) -> Dict[str, Any]:
        return {"forward": [message.to_wire() for message in self.messages]}


ContentSegment = Union[TextSegment, ImageSegment, ForwardSegment]


def render_plain_text(segments: Tuple[ContentSegment, ...] | List[ContentSegment]) -> str:
    """Flatten content segments into the plain text used for audit and logs.

    Images render as ``[image]``; forwarded messages render one line per
    nested message prefixed with its author.
    """
    parts: List[str] = []
    for segment in segments:
        if isinstance(segment, TextSegment):
            parts.append(segment.text)
        elif isinstance(segment, ImageSegment):
            parts.append("[image]")
        elif isinstance(segment, ForwardSegment):
            for message in segment.messages:
                parts.append(f"[forward] {message.user_name}: {render_plain_text(message.segments)}")
    return "\n".join(part for part in parts if part)


@dataclass(frozen=True, slots=True)
class ModerationMessage:
    """Normalized, immutable message record held inside a single batch.

    Attributes:
        message_id: Unique identifier of the message within its channel.
        channel_id: Platform-qualified channel identifier (``"discord:1234"``).
        guild_id: Group/server scope the message was posted in.
        user_id: Author identifier.
        user_name: Author display name, the user id when no name was given.
        segments: Ordered content segments.
        text: Plain-text rendering of ``segments``.
        timestamp: Ingestion time in epoch seconds.
        raw_elements: The unnormalized element tree, for diagnostic forwards.
    """

    message_id: str
    channel_id: str
    guild_id: str
    user_id: str
    user_name: str
    segments: Tuple[ContentSegment, ...]
    text: str
    timestamp: float
    raw_elements: Tuple[RawElement, ...] = field(default=(), repr=False, compare=False)

    @property
    def platform(self) -> str:
        return split_channel_id(self.channel_id)[0]

    def to_judge_payload(self) -> Dict[str, Any]:
        """Return the JSON-serializable form sent to the judge."""
        return {
            "id": self.message_id,
            "guildId": self.guild_id,
            "userId": self.user_id,
            "content": [segment.to_wire() for segment in self.segments],
        }
