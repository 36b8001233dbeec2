"""Infrastructure layer - configuration and persistence."""
