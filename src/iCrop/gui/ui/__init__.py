"""Qt widgets and background tasks."""
