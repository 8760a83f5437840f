"""Order placement and lifecycle."""
