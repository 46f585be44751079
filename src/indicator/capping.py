"""Clamp rescaled posterior values into a fixed range."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Tuple

import numpy as np

from .records import PosteriorMatrix


@dataclass(frozen=True)
class CapResult:
    matrix: PosteriorMatrix
    n_clamped: int


def cap_matrix(matrix: PosteriorMatrix, lower: float, upper: float) -> CapResult:
    """Clamp every draw into ``[lower, upper]`` and count how many values moved."""
    if not lower <= upper:
        raise ValueError("Cap bounds must satisfy lower <= upper.")
    n_clamped = int(np.count_nonzero((matrix.draws < lower) | (matrix.draws > upper)))
    if n_clamped == 0:
        return CapResult(matrix=matrix, n_clamped=0)
    return CapResult(matrix=matrix.with_draws(np.clip(matrix.draws, lower, upper)), n_clamped=n_clamped)


def cap_collection(
    collection: Mapping[str, PosteriorMatrix], lower: float, upper: float
) -> Tuple[Dict[str, PosteriorMatrix], int]:
    """Cap each matrix in the collection, returning the new mapping and the total clamped count."""
    capped: Dict[str, PosteriorMatrix] = {}
    total = 0
    for species, matrix in collection.items():
        result = cap_matrix(matrix, lower, upper)
        capped[species] = result.matrix
        total += result.n_clamped
    return capped, total


__all__ = ["CapResult", "cap_collection", "cap_matrix"]
