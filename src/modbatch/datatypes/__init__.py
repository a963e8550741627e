"""
Data types shared across the moderation pipeline.

- **message_datatypes.py**: Inbound events, raw element trees, normalized
  content segments and the immutable ModerationMessage.
- **violation_datatypes.py**: ActionType, ViolationRecord and the audit bundle.
"""
