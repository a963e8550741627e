"""
Violation records and moderation action types.

This module defines the structured output of the AI judge and the audit
bundle the dispatcher builds while applying actions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple

from modbatch.datatypes.message_datatypes import ContentSegment


class ActionType(Enum):
    """Enumeration of moderation actions an operator can enable."""

    RECALL = "recall"
    MUTE = "mute"
    KICK = "kick"
    FORWARD = "forward"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True)
class ViolationRecord:
    """A single violation reported by the judge.

    Attributes:
        source_message_ids: Ids of the batch messages the violation refers to,
            in the order the judge listed them.
        reason: Free-text explanation, used only for audit text.
        action_magnitude: Positive values are a mute duration in seconds,
            negative values request removal, zero means flag only.
        subject_user_id: User the judge named, if any. The dispatcher acts on
            the author of the first resolved source message.
    """

    source_message_ids: List[str]
    reason: str = ""
    action_magnitude: int = 0
    subject_user_id: str | None = None

    @property
    def mute_seconds(self) -> int:
        return self.action_magnitude if self.action_magnitude > 0 else 0

    @property
    def is_removal(self) -> bool:
        return self.action_magnitude < 0


@dataclass(slots=True)
class AuditEntry:
    """One node of a bundled audit forward: an author and the content to show."""

    author_id: str
    author_name: str
    segments: Tuple[ContentSegment, ...] = ()


@dataclass(slots=True)
class AuditBundle:
    """Transcript of flagged messages forwarded to the review destination."""

    entries: List[AuditEntry] = field(default_factory=list)

    def append(self, entry: AuditEntry) -> None:
        self.entries.append(entry)

    def __len__(self) -> int:
        return len(self.entries)

    def __bool__(self) -> bool:
        return bool(self.entries)
