"""Dataclasses and enums shared across the pipeline."""
