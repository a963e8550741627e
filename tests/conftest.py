"""
Pytest configuration and fixtures for Modbatch tests.
"""

import sys
from itertools import count
from pathlib import Path

import pytest

# Add src directory to path so imports work without an editable install
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from modbatch.datatypes.message_datatypes import ModerationMessage, TextSegment  # noqa: E402


@pytest.fixture
def make_message():
    """Factory for ModerationMessage instances with unique ids and rising timestamps."""
    ids = count(1)

    def _make(
        message_id: str | None = None,
        *,
        user_id: str = "u1",
        user_name: str | None = None,
        channel_id: str = "discord:100",
        guild_id: str = "g1",
        text: str = "hello",
        timestamp: float | None = None,
    ) -> ModerationMessage:
        n = next(ids)
        return ModerationMessage(
            message_id=message_id or f"m{n}",
            channel_id=channel_id,
            guild_id=guild_id,
            user_id=user_id,
            user_name=user_name or user_id,
            segments=(TextSegment(text),),
            text=text,
            timestamp=timestamp if timestamp is not None else 1_700_000_000.0 + n,
        )

    return _make
