"""Core utilities: configuration, timezone conversion and calendar math."""
