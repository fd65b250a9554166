"""
Configuration management for Anchor.

- **app_configuration.py**: YAML configuration loader guarded by fcntl locks.
  Falls back to defaults on missing or malformed files.

- **ai_settings.py**: Typed accessors for the model names, timeouts and
  sampling knobs of the OpenAI-backed stages.

- **service_settings.py**: Typed accessors for the scripture service, push
  delivery, daily content schedule and event bus sections.
"""
