"""Configuration for `rescale_posterior`."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Dict, Literal, Mapping, Optional

IntervalMethod = Literal["quantile", "hdi"]

# Option spellings accepted by `RescaleConfig.from_options` alongside the field names.
OPTION_ALIASES: Dict[str, str] = {
    "max": "cap_max",
    "min": "cap_min",
    "upperQuantile": "upper_quantile",
    "lowerQuantile": "lower_quantile",
    "seed": "random_seed",
}


@dataclass(frozen=True)
class RescaleConfig:
    """Settings for chaining species posteriors into an indicator."""

    index: float = 100.0
    cap_max: float = 10000.0
    cap_min: float = 1.0
    year_limit: int = 10
    bootstrap: bool = True
    iterations: int = 10
    upper_quantile: float = 0.975
    lower_quantile: float = 0.025
    interval: IntervalMethod = "quantile"
    random_seed: Optional[int] = None
    verbose: bool = True

    def validate(self) -> None:
        if not self.cap_min > 0:
            raise ValueError("min must be strictly positive; geometric means need positive values.")
        if not self.cap_max > self.cap_min:
            raise ValueError("max must be larger than min.")
        if not self.cap_min <= self.index <= self.cap_max:
            raise ValueError("index must fall within [min, max].")
        if self.year_limit < 1:
            raise ValueError("year_limit must be at least 1.")
        if self.iterations < 1:
            raise ValueError("iterations must be at least 1.")
        if not 0.0 <= self.lower_quantile < self.upper_quantile <= 1.0:
            raise ValueError("Quantiles must satisfy 0 <= lowerQuantile < upperQuantile <= 1.")
        if self.interval not in ("quantile", "hdi"):
            raise ValueError(f"Unknown interval method '{self.interval}'.")

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> "RescaleConfig":
        """Build a config from keyword options, accepting the ``max``/``upperQuantile`` style names."""
        known = {item.name for item in fields(cls)}
        resolved: Dict[str, Any] = {}
        for key, value in options.items():
            name = OPTION_ALIASES.get(key, key)
            if name not in known:
                raise ValueError(f"Unknown option '{key}'.")
            if name in resolved:
                raise ValueError(f"Option '{key}' given more than once.")
            resolved[name] = value
        config = cls(**resolved)
        config.validate()
        return config


__all__ = ["IntervalMethod", "OPTION_ALIASES", "RescaleConfig"]
