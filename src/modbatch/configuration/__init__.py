"""
Configuration management for Modbatch.

- **app_configuration.py**: YAML configuration loader for global settings. Falls
  back to an empty mapping on missing or malformed files and exposes typed
  views for the judge, the batch accumulator and the moderation actions.

- **settings.py**: The typed views themselves (JudgeSettings, BatchSettings,
  ModerationSettings) with bounds checking and defaults.
"""
