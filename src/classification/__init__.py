"""Document archetype classification."""
