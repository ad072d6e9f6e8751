"""CLI argument parsers and validators."""

from __future__ import annotations

import typer


def parse_asset(value: str) -> dict[str, str]:
    """Parse an asset argument in format SRC or SRC=DEST."""
    src, sep, dest = value.partition("=")
    src = src.strip()
    if not src:
        raise typer.BadParameter(f"Must be SRC or SRC=DEST, got: {value!r}")
    if not sep:
        return {"src": src}
    return {"src": src, "dest": dest.strip() or "."}


def parse_debounce(value: float | None) -> float | None:
    """Validate a debounce interval in seconds."""
    if value is not None and value < 0:
        raise typer.BadParameter(f"Debounce must be >= 0, got: {value}")
    return value
