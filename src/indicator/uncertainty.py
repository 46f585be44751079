"""Uncertainty bounds for the chained indicator.

Two estimators run on the finished chain and never feed back into it:

* `posterior_interval` summarises within-model uncertainty by forming one
  composite index per posterior draw and taking quantiles (or an HDI) of those.
* `bootstrap_species` summarises between-species uncertainty by resampling the
  species present in each year with replacement.
"""

from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional, Tuple

import arviz as az
import numpy as np

from .aggregation import species_log_means
from .config import IntervalMethod
from .errors import EmptyYearError
from .records import PosteriorMatrix

Bounds = Tuple[float, float]


def _check_probabilities(lower: float, upper: float) -> None:
    if not 0.0 <= lower < upper <= 1.0:
        raise ValueError("Quantile probabilities must satisfy 0 <= lower < upper <= 1.")


def composite_draws(
    collection: Mapping[str, PosteriorMatrix],
    year: int,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """Per-draw geometric mean across the species contributing to ``year``.

    Draw ``j`` of the composite combines draw ``j`` of every species. Species with
    fewer draws than the largest contributor are resampled with replacement up to
    that count, so every draw of the larger posteriors is kept.
    """
    rows = [matrix.row(year) for matrix in collection.values() if matrix.has_year(year)]
    if not rows:
        raise EmptyYearError(year)
    n_target = max(row.shape[0] for row in rows)
    generator = rng if rng is not None else np.random.default_rng()
    aligned = [row if row.shape[0] == n_target else generator.choice(row, size=n_target, replace=True) for row in rows]
    logs = np.log(np.stack(aligned, axis=0))
    return np.exp(logs.mean(axis=0))


def interval_of(samples: np.ndarray, lower: float, upper: float, method: IntervalMethod = "quantile") -> Bounds:
    """Equal-tailed quantile interval, or the highest-density interval of the same mass."""
    values = np.asarray(samples, dtype=float).ravel()
    if values.size == 0:
        raise ValueError("Cannot summarise an empty sample.")
    if method == "quantile":
        lo, hi = np.quantile(values, [lower, upper])
        return float(lo), float(hi)
    if method == "hdi":
        mass = upper - lower
        if values.size < 2 or mass >= 1.0:
            return float(values.min()), float(values.max())
        hdi = np.asarray(az.hdi(values, hdi_prob=mass), dtype=float)
        return float(hdi[0]), float(hdi[1])
    raise ValueError(f"Unknown interval method '{method}'.")


def posterior_interval(
    collection: Mapping[str, PosteriorMatrix],
    years: Iterable[int],
    lower: float = 0.025,
    upper: float = 0.975,
    method: IntervalMethod = "quantile",
    rng: Optional[np.random.Generator] = None,
) -> Dict[int, Bounds]:
    """Posterior credible bounds of the composite index for each year."""
    _check_probabilities(lower, upper)
    generator = rng if rng is not None else np.random.default_rng()
    return {
        int(year): interval_of(composite_draws(collection, year, generator), lower, upper, method) for year in years
    }


def bootstrap_species(
    collection: Mapping[str, PosteriorMatrix],
    years: Iterable[int],
    iterations: int = 10,
    lower: float = 0.025,
    upper: float = 0.975,
    rng: Optional[np.random.Generator] = None,
) -> Dict[int, Bounds]:
    """Bootstrap bounds from resampling species identities with replacement.

    For each year, every iteration draws as many species as are present that
    year and recomputes the geometric mean of their representative values.
    """
    if iterations < 1:
        raise ValueError("iterations must be at least 1.")
    _check_probabilities(lower, upper)
    generator = rng if rng is not None else np.random.default_rng()

    bounds: Dict[int, Bounds] = {}
    for year in years:
        log_means = species_log_means(collection, year)
        if log_means.size == 0:
            raise EmptyYearError(year)
        picks = generator.integers(0, log_means.size, size=(iterations, log_means.size))
        resampled = np.exp(log_means[picks].mean(axis=1))
        lo, hi = np.quantile(resampled, [lower, upper])
        bounds[int(year)] = (float(lo), float(hi))
    return bounds


__all__ = ["Bounds", "bootstrap_species", "composite_draws", "interval_of", "posterior_interval"]
