"""
Utility functions and helpers for Anchor.

- **logger.py**: Centralized logging configuration with colored console
  output, rotating file handlers, and per-session log aggregation. Suppresses
  noise from verbose libraries (openai, httpx, aiohttp, aiosqlite). Uses
  prompt_toolkit for console output.
"""
