"""
Modbatch - Batched AI Chat Moderation Bot

Modbatch collects chat messages from group channels, hands them to a large
language model "judge" in batches, and carries out the moderation actions the
judge asks for.

Core Components:

- **Message Normalizer**: Turns raw chat events (text, images, forwarded and
  quoted messages) into immutable moderation messages.
- **Batch Accumulator**: Queues messages and releases batches on a size
  threshold, an inactivity timeout, or an absolute max-wait timeout.
- **Judge Client**: Sends each batch to an OpenAI-compatible chat completion
  endpoint, coerces the free-form reply into violation records, and retries
  failures with a shared, growing backoff.
- **Violation Dispatcher**: Maps violations back to their source messages and
  applies mute, kick, recall and audit-forward actions through the platform bot.
- **Lifecycle Controller**: Filters inbound events and drains pending batches
  on shutdown.

Usage:
    from modbatch.main import main
    main()
"""
