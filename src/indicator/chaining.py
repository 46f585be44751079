"""Sequential chaining of species series into one continuous indicator.

The loop walks the union year range once. Species present in the first year
are indexed to the baseline value. In every later year, species whose data
ended the year before trigger a rebasing of the continuing species (so the
index does not jump when they drop out), and species whose data starts that
year are brought in at the current index level.

All multipliers are applied to every posterior draw of the affected rows, which
keeps the shape of each species' posterior intact through the chain.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Sequence, Tuple

import numpy as np

from .aggregation import geomean
from .capping import cap_collection
from .errors import EmptyYearError, NoSeriesError, ZeroLevelError
from .periods import entering_species, leaving_species, union_years
from .records import GeomeanResult, PosteriorMatrix, SpeciesPeriod


@dataclass(frozen=True)
class ChainState:
    """Accumulator threaded through the year steps.

    ``collection`` holds every species brought into the chain so far, in entry
    order. Steps never mutate a state; they return a new one.
    """

    collection: Dict[str, PosteriorMatrix] = field(default_factory=dict)
    n_clamped: int = 0

    def merged(self, updates: Mapping[str, PosteriorMatrix], clamped: int) -> "ChainState":
        collection = dict(self.collection)
        collection.update(updates)
        return ChainState(collection=collection, n_clamped=self.n_clamped + clamped)


@dataclass(frozen=True)
class CapBounds:
    lower: float
    upper: float


@dataclass(frozen=True)
class ChainOutcome:
    """Final chain state plus the aggregate recorded for every year, in order."""

    state: ChainState
    aggregates: Tuple[Tuple[int, GeomeanResult], ...]


def rescale_to_level(matrices: Mapping[str, PosteriorMatrix], target: float) -> Dict[str, PosteriorMatrix]:
    """Scale each species' whole series so its first-year geometric mean equals ``target``.

    Zero draws in later years stay zero here and are floored by the cap that follows.
    """
    rescaled: Dict[str, PosteriorMatrix] = {}
    for species, matrix in matrices.items():
        first_level = float(np.exp(matrix.log_mean(matrix.first_year)))
        if first_level <= 0:
            raise ZeroLevelError(species, matrix.first_year)
        rescaled[species] = matrix.scale(target / first_level)
    return rescaled


def baseline_step(
    matrices: Mapping[str, PosteriorMatrix],
    periods: Sequence[SpeciesPeriod],
    index: float,
    bounds: CapBounds,
) -> ChainState:
    """Index the species present in the first year to ``index`` and cap them."""
    if not periods:
        raise NoSeriesError("No species available to start the chain.")
    first_year = min(period.first_year for period in periods)
    initial = {species: matrices[species] for species in entering_species(periods, first_year)}
    capped, clamped = cap_collection(rescale_to_level(initial, index), bounds.lower, bounds.upper)
    return ChainState().merged(capped, clamped)


def exit_step(
    state: ChainState,
    year: int,
    leaving: Sequence[str],
    bounds: CapBounds,
) -> Tuple[ChainState, float]:
    """Rebase continuing species from ``year`` onward after ``leaving`` species ended at ``year - 1``.

    Returns the new state and the multiplier that was applied (1.0 if nobody left).
    """
    if not leaving:
        return state, 1.0

    previous = year - 1
    gm_with = geomean(state.collection, previous)
    try:
        gm_without = geomean(state.collection, previous, exclude=leaving)
    except EmptyYearError as exc:
        raise EmptyYearError(
            previous,
            "Every species present leaves after this year, so no continuing species can carry the index forward.",
        ) from exc
    multiplier = gm_with.value / gm_without.value

    leaving_set = set(leaving)
    rebased = {
        species: matrix.scale(multiplier, from_year=year)
        for species, matrix in state.collection.items()
        if species not in leaving_set and matrix.last_year >= year
    }
    capped, clamped = cap_collection(rebased, bounds.lower, bounds.upper)
    return state.merged(capped, clamped), multiplier


def entry_step(
    state: ChainState,
    year: int,
    entering: Mapping[str, PosteriorMatrix],
    bounds: CapBounds,
) -> Tuple[ChainState, Optional[float]]:
    """Bring ``entering`` species in at the current geometric mean for ``year``.

    All entering species are rescaled against the same target. Returns the new
    state and that target (None if nobody entered).
    """
    if not entering:
        return state, None
    try:
        target = geomean(state.collection, year)
    except EmptyYearError as exc:
        raise EmptyYearError(
            year,
            "Species enter this year but no established species overlap it to set their level.",
        ) from exc

    capped, clamped = cap_collection(rescale_to_level(entering, target.value), bounds.lower, bounds.upper)
    return state.merged(capped, clamped), target.value


def advance_year(
    state: ChainState,
    year: int,
    matrices: Mapping[str, PosteriorMatrix],
    periods: Sequence[SpeciesPeriod],
    bounds: CapBounds,
    verbose: bool = False,
) -> ChainState:
    """Apply exit handling, then entry handling, for ``year``."""
    leaving = leaving_species(periods, year - 1)
    state, multiplier = exit_step(state, year, leaving, bounds)
    if verbose and leaving:
        print(f"[indicator] {year}: {len(leaving)} species left after {year - 1}; multiplier={multiplier:.6g}")

    entering = {species: matrices[species] for species in entering_species(periods, year)}
    state, target = entry_step(state, year, entering, bounds)
    if verbose and entering:
        print(f"[indicator] {year}: {len(entering)} species entering at {target:.6g}")
    return state


def run_chain(
    matrices: Mapping[str, PosteriorMatrix],
    periods: Sequence[SpeciesPeriod],
    index: float,
    bounds: CapBounds,
    verbose: bool = False,
) -> ChainOutcome:
    """Run the full chaining loop and record the aggregate geometric mean for every year."""
    years = union_years(periods)
    state = baseline_step(matrices, periods, index, bounds)

    aggregates = []
    for year in years:
        if year != years.start:
            state = advance_year(state, year, matrices, periods, bounds, verbose=verbose)
        result = geomean(state.collection, year)
        aggregates.append((year, result))
    return ChainOutcome(state=state, aggregates=tuple(aggregates))


__all__ = [
    "CapBounds",
    "ChainOutcome",
    "ChainState",
    "advance_year",
    "baseline_step",
    "entry_step",
    "exit_step",
    "rescale_to_level",
    "run_chain",
]
