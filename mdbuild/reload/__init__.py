"""Browser live-reload notification."""
