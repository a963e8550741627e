"""
Chat platform adapters for Modbatch.

- **platform_bot.py**: The PlatformBot capability interface (delete, mute, kick,
  broadcast) and the BotRegistry that selects an implementation by the platform
  prefix of a qualified channel id.

- **discord_bot.py**: PlatformBot implementation over a py-cord bot.

- **audit_embed.py**: Renders bundled audit forwards as Discord embeds, packed
  into pages that respect Discord's per-message limits.
"""
