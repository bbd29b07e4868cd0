"""Utilities: configuration constants and file I/O."""
