"""Chain per-species posterior draws into a composite biodiversity indicator."""

from .aggregation import geomean
from .capping import cap_matrix
from .chaining import ChainState, run_chain
from .config import RescaleConfig
from .errors import EmptyYearError, IndicatorError, NoSeriesError, YearGapError, ZeroLevelError
from .filtering import filter_series
from .periods import extract_periods
from .pipeline import rescale_posterior, rescale_posterior_dir
from .records import GeomeanResult, IndicatorResult, PosteriorMatrix, SpeciesPeriod, YearRecord
from .uncertainty import bootstrap_species, posterior_interval

__all__ = [
    "ChainState",
    "EmptyYearError",
    "GeomeanResult",
    "IndicatorError",
    "IndicatorResult",
    "NoSeriesError",
    "PosteriorMatrix",
    "RescaleConfig",
    "SpeciesPeriod",
    "YearGapError",
    "YearRecord",
    "ZeroLevelError",
    "bootstrap_species",
    "cap_matrix",
    "extract_periods",
    "filter_series",
    "geomean",
    "posterior_interval",
    "rescale_posterior",
    "rescale_posterior_dir",
    "run_chain",
]
