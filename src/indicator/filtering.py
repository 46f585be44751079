"""Restrict species series to valid years and drop short series."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Set, Tuple

import numpy as np
import pandas as pd

from .records import PosteriorMatrix, to_year


@dataclass(frozen=True)
class FilterOutcome:
    """Surviving species (input order kept) plus what was removed along the way."""

    kept: Dict[str, PosteriorMatrix]
    dropped: Tuple[str, ...]
    masked_rows: int


def valid_years_from_mask(mask: pd.DataFrame) -> Dict[str, Set[int]]:
    """Translate a species × year validity table into the set of valid years per species.

    Column labels may be ints or strings such as ``"1998"`` or ``"X1998"``.
    Cells are valid when truthy; missing cells count as invalid.
    """
    columns = [to_year(column) for column in mask.columns]
    flags = np.nan_to_num(mask.to_numpy(dtype=float), nan=0.0) != 0
    valid: Dict[str, Set[int]] = {}
    for species, row in zip(mask.index, flags):
        valid[str(species)] = {year for year, flag in zip(columns, row) if flag}
    return valid


def filter_series(
    matrices: Mapping[str, PosteriorMatrix],
    mask: Optional[pd.DataFrame] = None,
    year_limit: int = 10,
) -> FilterOutcome:
    """Apply the optional year mask, then drop species with fewer than `year_limit` rows."""
    if year_limit < 1:
        raise ValueError("year_limit must be at least 1.")

    valid_years = valid_years_from_mask(mask) if mask is not None else None
    kept: Dict[str, PosteriorMatrix] = {}
    dropped: List[str] = []
    masked_rows = 0

    for species, matrix in matrices.items():
        if valid_years is not None:
            # Species missing from the mask have no valid years at all.
            allowed = valid_years.get(str(species), set())
            restricted = matrix.subset_years(allowed)
            masked_rows += matrix.n_years - restricted.n_years
            matrix = restricted
        if matrix.n_years < year_limit:
            dropped.append(str(species))
            continue
        kept[str(species)] = matrix

    return FilterOutcome(kept=kept, dropped=tuple(dropped), masked_rows=masked_rows)


__all__ = ["FilterOutcome", "filter_series", "valid_years_from_mask"]
