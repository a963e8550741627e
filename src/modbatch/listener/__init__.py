"""
Discord event listeners for Modbatch.

- **message_listener.py**: Cog that converts ``on_message`` events into inbound
  events (text, image attachments, replied-to and forwarded messages) and hands
  them to the lifecycle controller.
"""
