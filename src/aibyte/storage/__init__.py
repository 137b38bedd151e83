"""Article cache."""
