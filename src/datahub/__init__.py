from .loader import LoadedPosteriors, load_posterior_dir, load_year_mask, read_posterior_csv

__all__ = [
    "LoadedPosteriors",
    "load_posterior_dir",
    "load_year_mask",
    "read_posterior_csv",
]
