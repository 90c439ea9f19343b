"""Resident identity matching."""
