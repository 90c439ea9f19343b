"""Public entry points for embedding careocr in another application."""
