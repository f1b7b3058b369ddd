"""Labeled logging and the JSON Lines error log."""
