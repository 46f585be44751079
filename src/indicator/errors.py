"""Exceptions raised while building a composite indicator."""

from __future__ import annotations

from typing import Sequence


class IndicatorError(ValueError):
    """Base class for indicator construction failures."""


class NoSeriesError(IndicatorError):
    """Raised when no eligible species series remain for the analysis."""


class EmptyYearError(IndicatorError):
    """Raised when a year has no contributing species, so its geometric mean is undefined."""

    def __init__(self, year: int, detail: str = "") -> None:
        self.year = year
        message = f"No species contribute to year {year}."
        if detail:
            message = f"{message} {detail}"
        super().__init__(message)


class ZeroLevelError(IndicatorError):
    """Raised when a species' first-year geometric mean is 0, so it cannot be rescaled to a level."""

    def __init__(self, species: str, year: int) -> None:
        self.species = species
        self.year = year
        super().__init__(
            f"Species '{species}' has a zero draw in its first year {year}; its geometric mean is 0 and cannot be rescaled."
        )


class YearGapError(IndicatorError):
    """Raised when a species' year sequence is not contiguous."""

    def __init__(self, species: str, missing: Sequence[int]) -> None:
        self.species = species
        self.missing = tuple(int(year) for year in missing)
        joined = ", ".join(str(year) for year in self.missing)
        super().__init__(f"Gap in year sequence for species '{species}': missing {joined}.")


__all__ = ["EmptyYearError", "IndicatorError", "NoSeriesError", "YearGapError", "ZeroLevelError"]
