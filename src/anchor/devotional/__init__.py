"""
Daily devotional generation.

- **daily_content_generator.py**: prompt, model call, reference parsing,
  chapter fetch and upsert, with fallbacks at every external step.
- **devotional_prompt.py**: base prompt store, recent-history block and the
  response schema.
- **reference_parser.py**: ``<Book> <chapter>:<verse>[-<verse>]`` parsing.
- **scripture_client.py**: ESV passage-text client.
"""
