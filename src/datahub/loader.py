"""Read per-species posterior draws and year masks from CSV files."""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Tuple

import pandas as pd

from .config import POSTERIOR_SUFFIX


@dataclass(frozen=True)
class LoadedPosteriors:
    """Year-indexed draw frames keyed by species id, plus the files that were skipped."""

    frames: Dict[str, pd.DataFrame]
    skipped: Tuple[str, ...]


def read_posterior_csv(path: Path) -> pd.DataFrame:
    """Load one species file: first column is the year, remaining columns are draws."""
    frame = pd.read_csv(path, index_col=0)
    if frame.shape[1] == 0:
        raise ValueError(f"{path} has no posterior draw columns.")
    frame.index.name = "year"
    return frame


def load_posterior_dir(input_dir: Path, verbose: bool = True) -> LoadedPosteriors:
    """Load every ``*.csv`` file in ``input_dir``; other files are skipped with a warning."""
    if not input_dir.is_dir():
        raise FileNotFoundError(f"Input directory not found: {input_dir}")

    frames: Dict[str, pd.DataFrame] = {}
    skipped: List[str] = []
    for path in sorted(input_dir.iterdir()):
        if not path.is_file():
            continue
        if path.suffix.lower() != POSTERIOR_SUFFIX:
            skipped.append(path.name)
            continue
        frames[path.stem] = read_posterior_csv(path)

    if skipped:
        warnings.warn(
            f"Not all files in {input_dir} are {POSTERIOR_SUFFIX} files; ignored: {', '.join(skipped)}",
            UserWarning,
            stacklevel=2,
        )
    if verbose:
        print(f"[datahub] Loaded {len(frames)} species posteriors from {input_dir}")
    return LoadedPosteriors(frames=frames, skipped=tuple(skipped))


def load_year_mask(path: Path) -> pd.DataFrame:
    """Load a species × year validity table (species ids in the first column)."""
    if not path.exists():
        raise FileNotFoundError(f"Year mask not found: {path}")
    mask = pd.read_csv(path, index_col=0)
    mask.index = mask.index.astype(str)
    return mask


__all__ = [
    "LoadedPosteriors",
    "load_posterior_dir",
    "load_year_mask",
    "read_posterior_csv",
]
