"""High-level orchestration: filter, chain, summarise."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from src.datahub.config import POSTERIOR_SUFFIX
from src.datahub.loader import load_posterior_dir, load_year_mask

from .chaining import CapBounds, run_chain
from .config import RescaleConfig
from .errors import NoSeriesError
from .filtering import filter_series
from .periods import extract_periods
from .records import IndicatorResult, PosteriorMatrix, RunDiagnostics, YearRecord, summary_frame
from .uncertainty import Bounds, bootstrap_species, posterior_interval

SeriesInput = Union[PosteriorMatrix, pd.DataFrame]


def coerce_matrices(series: Mapping[str, SeriesInput]) -> Dict[str, PosteriorMatrix]:
    """Accept matrices or year-indexed frames keyed by species id."""
    matrices: Dict[str, PosteriorMatrix] = {}
    for species, value in series.items():
        if isinstance(value, PosteriorMatrix):
            matrices[str(species)] = value if value.species == str(species) else replace(value, species=str(species))
        elif isinstance(value, pd.DataFrame):
            matrices[str(species)] = PosteriorMatrix.from_frame(str(species), value)
        else:
            raise TypeError(f"Unsupported series type for '{species}': {type(value)}")
    return matrices


def rescale_posterior(
    series: Mapping[str, SeriesInput],
    mask: Optional[pd.DataFrame] = None,
    config: Optional[RescaleConfig] = None,
    skipped_files: Sequence[str] = (),
) -> IndicatorResult:
    """Chain species posteriors into a single indicator anchored at ``config.index``.

    Args:
        series: Posterior draws per species (rows = years, columns = draws).
        mask: Optional species × year table; only truthy cells are kept.
        config: Run settings; defaults to `RescaleConfig()`.
        skipped_files: Input artifacts the caller skipped, reported in diagnostics.

    Returns:
        IndicatorResult with the summary table, year records, rescaled data and
        diagnostics.

    Raises:
        NoSeriesError: no species survive filtering.
        EmptyYearError: a year in the range has no contributing species.
        YearGapError: a species has a hole in its year sequence.
    """
    cfg = config or RescaleConfig()
    cfg.validate()

    if not series:
        raise NoSeriesError("No input series supplied.")
    matrices = coerce_matrices(series)

    filtered = filter_series(matrices, mask=mask, year_limit=cfg.year_limit)
    if cfg.verbose:
        print(
            f"[indicator] {len(filtered.kept)} of {len(matrices)} species kept "
            f"({len(filtered.dropped)} below year_limit={cfg.year_limit}, {filtered.masked_rows} masked rows)."
        )
    if not filtered.kept:
        raise NoSeriesError(f"No species have at least {cfg.year_limit} good years.")

    periods = extract_periods(filtered.kept)
    bounds = CapBounds(lower=cfg.cap_min, upper=cfg.cap_max)
    chain = run_chain(filtered.kept, periods, cfg.index, bounds, verbose=cfg.verbose)
    collection = chain.state.collection
    years = [year for year, _ in chain.aggregates]

    # Independent streams so the bootstrap does not depend on how many draws were resampled.
    interval_rng, bootstrap_rng = np.random.default_rng(cfg.random_seed).spawn(2)
    credible = posterior_interval(
        collection,
        years,
        lower=cfg.lower_quantile,
        upper=cfg.upper_quantile,
        method=cfg.interval,
        rng=interval_rng,
    )
    bootstrapped: Dict[int, Bounds] = {}
    if cfg.bootstrap:
        if cfg.verbose:
            print(f"[indicator] Bootstrapping species over {cfg.iterations} iterations ...")
        bootstrapped = bootstrap_species(
            collection,
            years,
            iterations=cfg.iterations,
            lower=cfg.lower_quantile,
            upper=cfg.upper_quantile,
            rng=bootstrap_rng,
        )

    records = []
    for year, aggregate in chain.aggregates:
        boot_lower, boot_upper = bootstrapped[year] if year in bootstrapped else (None, None)
        ci_lower, ci_upper = credible[year]
        records.append(
            YearRecord(
                year=year,
                indicator=aggregate.value,
                n_species=aggregate.n_species,
                ci_lower=ci_lower,
                ci_upper=ci_upper,
                bootstrap_lower=boot_lower,
                bootstrap_upper=boot_upper,
            )
        )

    if cfg.verbose and chain.state.n_clamped:
        print(f"[indicator] Capping clamped {chain.state.n_clamped} values into [{cfg.cap_min:g}, {cfg.cap_max:g}].")

    diagnostics = RunDiagnostics(
        dropped_species=filtered.dropped,
        masked_rows=filtered.masked_rows,
        n_clamped=chain.state.n_clamped,
        skipped_files=tuple(skipped_files),
    )
    return IndicatorResult(
        summary=summary_frame(records),
        records=tuple(records),
        data=collection,
        periods=periods,
        diagnostics=diagnostics,
    )


def rescale_posterior_dir(
    input_dir: Path,
    mask_path: Optional[Path] = None,
    config: Optional[RescaleConfig] = None,
) -> IndicatorResult:
    """Load one CSV of posterior draws per species from ``input_dir`` and run `rescale_posterior`."""
    cfg = config or RescaleConfig()
    loaded = load_posterior_dir(input_dir, verbose=cfg.verbose)
    if not loaded.frames:
        raise NoSeriesError(f"No posterior {POSTERIOR_SUFFIX} files found in {input_dir}")
    mask = load_year_mask(mask_path) if mask_path is not None else None
    return rescale_posterior(loaded.frames, mask=mask, config=cfg, skipped_files=loaded.skipped)


__all__ = ["SeriesInput", "coerce_matrices", "rescale_posterior", "rescale_posterior_dir"]
