"""
Content moderation for Anchor.

- **moderation_gate.py**: Orchestrates the empty check, Stage A and Stage B
  and writes the single terminal status.

- **moderation_classifier.py**: Stage A, the OpenAI moderations endpoint.
  Fails open.

- **content_filter.py**: Stage B, a chat completion that must answer
  ``ALLOW``. Fails closed and maps other answers to rejection reasons.

- **filtering_prompts.py** / **prompt_templates.py**: Per-type filtering
  prompts read from config documents, validated as templates, with
  hardcoded fallbacks.
"""
