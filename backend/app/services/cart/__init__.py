"""Cart management."""
