"""Entry/exit years per species and the ordering used by the chaining loop."""

from __future__ import annotations

from typing import Iterable, Mapping, Tuple

import numpy as np

from .errors import NoSeriesError, YearGapError
from .records import PosteriorMatrix, SpeciesPeriod


def check_contiguous(matrix: PosteriorMatrix) -> None:
    """Raise `YearGapError` when the species' years skip any value."""
    if matrix.n_years < 2:
        return
    expected = np.arange(matrix.first_year, matrix.last_year + 1)
    if expected.shape[0] != matrix.n_years:
        missing = np.setdiff1d(expected, matrix.years)
        raise YearGapError(matrix.species, missing.tolist())


def extract_periods(matrices: Mapping[str, PosteriorMatrix]) -> Tuple[SpeciesPeriod, ...]:
    """Return one period per species, ordered by entry year and then species id."""
    periods = []
    for species, matrix in matrices.items():
        if matrix.n_years == 0:
            raise NoSeriesError(f"Species '{species}' has no years left to analyse.")
        check_contiguous(matrix)
        periods.append(SpeciesPeriod(species=str(species), first_year=matrix.first_year, last_year=matrix.last_year))
    return tuple(sorted(periods, key=lambda period: period.sort_key))


def union_years(periods: Iterable[SpeciesPeriod]) -> range:
    """Every year from the earliest entry to the latest exit, inclusive."""
    period_list = list(periods)
    if not period_list:
        raise NoSeriesError("No species periods supplied.")
    first = min(period.first_year for period in period_list)
    last = max(period.last_year for period in period_list)
    return range(first, last + 1)


def entering_species(periods: Iterable[SpeciesPeriod], year: int) -> Tuple[str, ...]:
    return tuple(period.species for period in periods if period.first_year == year)


def leaving_species(periods: Iterable[SpeciesPeriod], year: int) -> Tuple[str, ...]:
    """Species whose last year of data is ``year``."""
    return tuple(period.species for period in periods if period.last_year == year)


__all__ = [
    "check_contiguous",
    "entering_species",
    "extract_periods",
    "leaving_species",
    "union_years",
]
