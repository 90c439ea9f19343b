"""Extraction prompt templates and the user's active prompt."""
