"""Debounced request deduplication."""
