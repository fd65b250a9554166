"""Client-facing write operations."""
