"""Session management core."""
