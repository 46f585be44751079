"""Cross-species geometric mean for a single year."""

from __future__ import annotations

from typing import Collection, Mapping, Optional

import numpy as np

from .errors import EmptyYearError
from .records import GeomeanResult, PosteriorMatrix


def species_log_means(
    collection: Mapping[str, PosteriorMatrix],
    year: int,
    exclude: Optional[Collection[str]] = None,
) -> np.ndarray:
    """Representative log value (mean log draw) of each included species with data in ``year``."""
    skip = set(exclude or ())
    values = [
        matrix.log_mean(year)
        for species, matrix in collection.items()
        if species not in skip and matrix.has_year(year)
    ]
    return np.asarray(values, dtype=float)


def geomean(
    collection: Mapping[str, PosteriorMatrix],
    year: int,
    exclude: Optional[Collection[str]] = None,
) -> GeomeanResult:
    """Geometric mean across species for ``year``, optionally leaving out ``exclude``.

    Each species contributes the geometric mean of its own draws, so species
    weigh equally regardless of how many posterior draws they carry. With equal
    draw counts this is the geometric mean of all pooled draws.

    Raises:
        EmptyYearError: if no species contributes to ``year``.
    """
    log_means = species_log_means(collection, year, exclude)
    if log_means.size == 0:
        raise EmptyYearError(year)
    return GeomeanResult(value=float(np.exp(log_means.mean())), n_species=int(log_means.size))


__all__ = ["geomean", "species_log_means"]
