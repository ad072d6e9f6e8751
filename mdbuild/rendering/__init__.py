"""Markdown rendering and output I/O."""
