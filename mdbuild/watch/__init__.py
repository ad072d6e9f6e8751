"""Filesystem watching and incremental rebuilds."""
