"""
Scheduled tasks.

- **daily_content_scheduler.py**: publishes the daily generation tick at the
  configured UTC time with a target date two days ahead.
"""
