"""Public feed output."""
