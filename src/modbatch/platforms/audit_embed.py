"""
Embed rendering for bundled audit forwards.

Discord has no native "forward node" message, so each audit entry becomes an
embed with the entry's author set as the embed author. Embeds are packed into
pages that respect Discord's per-message limits.
"""

from typing import List

import discord

from modbatch.datatypes.message_datatypes import ImageSegment, render_plain_text
from modbatch.datatypes.violation_datatypes import AuditBundle, AuditEntry

MAX_EMBEDS_PER_MESSAGE = 10
MAX_EMBED_CHARS_PER_MESSAGE = 6000
MAX_DESCRIPTION_CHARS = 4096
EMPTY_CONTENT = "*(no text content)*"

AUDIT_COLOR = discord.Color.orange()


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


def create_audit_entry_embed(entry: AuditEntry) -> discord.Embed:
    """
    Create the embed for one audit entry.

    The description holds the entry's plain text; the first image segment, if
    any, is attached as the embed image.
    """
    description = render_plain_text(entry.segments) or EMPTY_CONTENT
    embed = discord.Embed(
        description=_truncate(description, MAX_DESCRIPTION_CHARS),
        color=AUDIT_COLOR,
    )
    embed.set_author(name=_truncate(f"{entry.author_name} ({entry.author_id})", 256))

    image = next((segment for segment in entry.segments if isinstance(segment, ImageSegment)), None)
    if image is not None:
        embed.set_image(url=image.url)
    return embed


def build_audit_pages(bundle: AuditBundle) -> List[List[discord.Embed]]:
    """Split an audit bundle into lists of embeds, one list per Discord message."""
    pages: List[List[discord.Embed]] = []
    page: List[discord.Embed] = []
    page_chars = 0

    for entry in bundle.entries:
        embed = create_audit_entry_embed(entry)
        size = len(embed)
        if page and (len(page) >= MAX_EMBEDS_PER_MESSAGE or page_chars + size > MAX_EMBED_CHARS_PER_MESSAGE):
            pages.append(page)
            page, page_chars = [], 0
        page.append(embed)
        page_chars += size

    if page:
        pages.append(page)
    return pages
