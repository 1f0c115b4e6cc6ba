"""Record storage."""
