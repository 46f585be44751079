"""Static configuration for locating posterior inputs on disk."""

from __future__ import annotations

from pathlib import Path

# Default input directory used by the Typer CLI; callers may override it.
DEFAULT_INPUT_DIR = Path("data/posteriors")

# One file per species; the file stem is the species id.
POSTERIOR_SUFFIX = ".csv"


__all__ = [
    "DEFAULT_INPUT_DIR",
    "POSTERIOR_SUFFIX",
]
