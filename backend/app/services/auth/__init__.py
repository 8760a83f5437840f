"""Session-token authentication."""
