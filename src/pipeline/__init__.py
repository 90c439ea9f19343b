"""Recognition pipeline orchestration."""
