"""Shared data records for the indicator chaining pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

SUMMARY_COLUMNS: Tuple[str, ...] = (
    "year",
    "indicator",
    "n_species",
    "ci_lower",
    "ci_upper",
    "bootstrap_lower",
    "bootstrap_upper",
)


def to_year(label: Any) -> int:
    """Convert an integer or integer-like year label (e.g. ``"1998"``) to int."""
    if isinstance(label, bool):
        raise ValueError(f"Year label must be integer-like, received {label!r}")
    if isinstance(label, (int, np.integer)):
        return int(label)
    if isinstance(label, (float, np.floating)):
        if not float(label).is_integer():
            raise ValueError(f"Year label must be integer-like, received {label!r}")
        return int(label)
    text = str(label).strip()
    if text[:1] in ("X", "x"):
        text = text[1:]
    try:
        return int(text)
    except ValueError as exc:
        raise ValueError(f"Year label must be integer-like, received {label!r}") from exc


@dataclass(frozen=True)
class PosteriorMatrix:
    """Posterior draws for one species: rows are years, columns exchangeable draws."""

    species: str
    years: np.ndarray
    draws: np.ndarray

    def __post_init__(self) -> None:
        years = np.asarray([to_year(year) for year in np.asarray(self.years).ravel()], dtype=int)
        draws = np.asarray(self.draws, dtype=float)
        if draws.ndim == 1:
            draws = draws.reshape(-1, 1)
        if draws.ndim != 2:
            raise ValueError(f"{self.species}: draws must be 2-D (years × draws), got shape {draws.shape}")
        if years.shape[0] != draws.shape[0]:
            raise ValueError(
                f"{self.species}: {years.shape[0]} year labels for {draws.shape[0]} rows of draws."
            )
        if draws.shape[0] > 0 and draws.shape[1] == 0:
            raise ValueError(f"{self.species}: at least one posterior draw per year is required.")
        if np.unique(years).shape[0] != years.shape[0]:
            raise ValueError(f"{self.species}: duplicate year labels.")
        if not np.all(np.isfinite(draws)):
            raise ValueError(f"{self.species}: posterior draws contain non-finite entries.")
        if np.any(draws < 0):
            raise ValueError(f"{self.species}: posterior draws must be non-negative.")

        order = np.argsort(years, kind="stable")
        years = years[order]
        draws = draws[order]
        years.setflags(write=False)
        draws.setflags(write=False)
        # Frozen dataclass: bypass __setattr__ to store the normalized arrays.
        object.__setattr__(self, "species", str(self.species))
        object.__setattr__(self, "years", years)
        object.__setattr__(self, "draws", draws)

    @classmethod
    def from_frame(cls, species: str, frame: pd.DataFrame) -> "PosteriorMatrix":
        """Build a matrix from a frame indexed by year with one column per draw."""
        return cls(species=species, years=frame.index.to_numpy(), draws=frame.to_numpy(dtype=float))

    def to_frame(self) -> pd.DataFrame:
        """Return the draws as a DataFrame indexed by year."""
        columns = [f"draw_{idx}" for idx in range(self.n_draws)]
        return pd.DataFrame(self.draws, index=pd.Index(self.years, name="year"), columns=columns)

    @property
    def n_years(self) -> int:
        return int(self.years.shape[0])

    @property
    def n_draws(self) -> int:
        return int(self.draws.shape[1])

    @property
    def first_year(self) -> int:
        if self.n_years == 0:
            raise ValueError(f"{self.species}: no years available.")
        return int(self.years[0])

    @property
    def last_year(self) -> int:
        if self.n_years == 0:
            raise ValueError(f"{self.species}: no years available.")
        return int(self.years[-1])

    def has_year(self, year: int) -> bool:
        return bool(np.any(self.years == year))

    def row(self, year: int) -> np.ndarray:
        """Return the posterior draws for ``year``."""
        positions = np.flatnonzero(self.years == year)
        if positions.size == 0:
            raise KeyError(f"{self.species} has no data for {year}")
        return self.draws[positions[0]]

    def log_mean(self, year: int) -> float:
        """Mean log draw for ``year``; its exponential is the species' representative value.

        A zero draw gives ``-inf``, i.e. a representative value of 0.
        """
        with np.errstate(divide="ignore"):
            return float(np.mean(np.log(self.row(year))))

    def subset_years(self, years: Iterable[int]) -> "PosteriorMatrix":
        """Keep only the rows whose year appears in ``years``."""
        wanted = np.asarray(sorted({int(year) for year in years}), dtype=int)
        keep = np.isin(self.years, wanted)
        return PosteriorMatrix(species=self.species, years=self.years[keep], draws=self.draws[keep])

    def scale(self, multiplier: float, from_year: Optional[int] = None) -> "PosteriorMatrix":
        """Multiply every draw (or only rows from ``from_year`` onward) by ``multiplier``."""
        if not np.isfinite(multiplier) or multiplier <= 0:
            raise ValueError(f"{self.species}: multiplier must be finite and positive, got {multiplier!r}")
        factors = np.ones(self.n_years, dtype=float)
        if from_year is None:
            factors[:] = multiplier
        else:
            factors[self.years >= from_year] = multiplier
        return self.with_draws(self.draws * factors[:, None])

    def with_draws(self, draws: np.ndarray) -> "PosteriorMatrix":
        return PosteriorMatrix(species=self.species, years=self.years, draws=draws)


RescaledCollection = Dict[str, PosteriorMatrix]


@dataclass(frozen=True)
class SpeciesPeriod:
    """First and last year with data for one species."""

    species: str
    first_year: int
    last_year: int

    @property
    def sort_key(self) -> Tuple[int, str]:
        """Entry year first; ties fall back to the species id."""
        return (self.first_year, self.species)

    def covers(self, year: int) -> bool:
        return self.first_year <= year <= self.last_year


@dataclass(frozen=True)
class GeomeanResult:
    """Cross-species geometric mean for a year and the number of contributing species."""

    value: float
    n_species: int


@dataclass(frozen=True)
class YearRecord:
    """One row of the indicator summary table."""

    year: int
    indicator: float
    n_species: int
    ci_lower: float
    ci_upper: float
    bootstrap_lower: Optional[float] = None
    bootstrap_upper: Optional[float] = None


@dataclass(frozen=True)
class RunDiagnostics:
    """Counts that explain what the run filtered, skipped, or clamped."""

    dropped_species: Tuple[str, ...] = ()
    masked_rows: int = 0
    n_clamped: int = 0
    skipped_files: Tuple[str, ...] = ()


@dataclass(frozen=True)
class IndicatorResult:
    """Summary table, per-year records, and the final rescaled species data."""

    summary: pd.DataFrame
    records: Tuple[YearRecord, ...]
    data: Mapping[str, PosteriorMatrix]
    periods: Tuple[SpeciesPeriod, ...]
    diagnostics: RunDiagnostics


def summary_frame(records: Sequence[YearRecord]) -> pd.DataFrame:
    """Assemble year records into the summary DataFrame (bootstrap columns NaN if absent)."""
    rows = [
        {
            "year": record.year,
            "indicator": record.indicator,
            "n_species": record.n_species,
            "ci_lower": record.ci_lower,
            "ci_upper": record.ci_upper,
            "bootstrap_lower": np.nan if record.bootstrap_lower is None else record.bootstrap_lower,
            "bootstrap_upper": np.nan if record.bootstrap_upper is None else record.bootstrap_upper,
        }
        for record in records
    ]
    frame = pd.DataFrame(rows, columns=list(SUMMARY_COLUMNS))
    return frame.astype({"year": int, "n_species": int})


__all__ = [
    "GeomeanResult",
    "IndicatorResult",
    "PosteriorMatrix",
    "RescaledCollection",
    "RunDiagnostics",
    "SUMMARY_COLUMNS",
    "SpeciesPeriod",
    "YearRecord",
    "summary_frame",
    "to_year",
]
