"""Text-recognition service adapters."""
