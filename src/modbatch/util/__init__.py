"""
Utility helpers for Modbatch.

- **logger.py**: Centralized logging configuration with colored console output
  through prompt_toolkit, a shared rotating session log file, and suppression of
  chatty library loggers (py-cord, openai, httpx).
"""
