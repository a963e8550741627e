"""
Moderation pipeline for Modbatch.

- **message_normalizer.py**: Converts inbound events into immutable
  ModerationMessage records, merging text fragments and expanding forwarded
  and quoted messages.

- **batch_accumulator.py**: Queues messages and releases batches on the size
  threshold, the inactivity timeout or the max-wait timeout; drains on shutdown.

- **judge_parsing.py**: Extracts a violation list from a free-form model reply
  (fenced json block, bracket span, raw text) and validates it with jsonschema.

- **judge_client.py**: Calls the OpenAI-compatible judge with unbounded retries
  gated by a shared, growing delay.

- **violation_dispatcher.py**: Maps violations back to batch messages and applies
  mute, kick, recall and forward actions through the platform bots.

- **lifecycle.py**: Filters host events and drains the accumulator on shutdown.

- **moderation_pipeline.py**: Builds and wires all of the above from configuration.
"""
