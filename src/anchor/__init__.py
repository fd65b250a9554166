"""
Anchor - backend event pipeline for a peer-support app

Core Components:

- **Moderation Gate**: two-stage filter (OpenAI moderation classifier, then a
  prompt-driven chat filter) that settles every plea, encouragement, post
  and comment to approved or rejected exactly once
- **Notifications**: audience resolution with opt-in flags and blocks, and
  chunked Expo push delivery with per-chunk results
- **Daily Content**: model-written prayer and verse with anti-repetition
  against recent history, plus the ESV chapter text
- **Event Bus**: typed events, worker pool, at-least-once redelivery

Usage:
    from anchor.main import main
    main()  # Runs the pipeline until interrupted
"""
