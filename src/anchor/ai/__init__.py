"""
OpenAI client construction.

- **openai_client.py**: Builds the shared AsyncOpenAI client (timeout and
  retry count from configuration) used by both moderation stages and the
  devotional generator.
"""
