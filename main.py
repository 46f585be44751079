from pathlib import Path
from typing import Optional

import typer

from experiments.synthetic import run_synthetic
from src.datahub.config import DEFAULT_INPUT_DIR
from src.indicator import IndicatorError, IndicatorResult, RescaleConfig, rescale_posterior_dir

app = typer.Typer()


def _echo_result(result: IndicatorResult) -> None:
    typer.echo(result.summary.to_string(index=False))
    diagnostics = result.diagnostics
    if diagnostics.dropped_species:
        typer.echo(f"[indicator] Dropped species: {', '.join(diagnostics.dropped_species)}")
    if diagnostics.n_clamped:
        typer.echo(f"[indicator] Clamped values: {diagnostics.n_clamped}")


@app.command()
def rescale(
    input_dir: Path = typer.Argument(
        DEFAULT_INPUT_DIR,
        exists=False,
        file_okay=False,
        dir_okay=True,
        help="Directory with one CSV of posterior draws per species (year column first).",
    ),
    mask: Optional[Path] = typer.Option(
        None,
        "--mask",
        help="CSV table of valid years (species rows, year columns).",
    ),
    index: float = typer.Option(100.0, "--index", help="Indicator value in the first year."),
    cap_max: float = typer.Option(10000.0, "--max", help="Upper cap for rescaled values."),
    cap_min: float = typer.Option(1.0, "--min", help="Lower cap for rescaled values."),
    year_limit: int = typer.Option(10, "--year-limit", help="Minimum good years to keep a species."),
    bootstrap: bool = typer.Option(True, "--bootstrap/--no-bootstrap", help="Bootstrap over species."),
    iterations: int = typer.Option(
        10,
        "--iterations",
        help="Bootstrap iterations (use 1000+ for production runs).",
        show_default=True,
    ),
    upper_quantile: float = typer.Option(0.975, "--upper-quantile", help="Upper interval probability."),
    lower_quantile: float = typer.Option(0.025, "--lower-quantile", help="Lower interval probability."),
    interval: str = typer.Option("quantile", "--interval", help="Posterior interval: quantile or hdi."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed for the bootstrap."),
    quiet: bool = typer.Option(False, "--quiet", help="Suppress progress output."),
) -> None:
    """
    Chain species posteriors into a composite indicator and print the summary table.
    """
    try:
        config = RescaleConfig.from_options(
            {
                "index": index,
                "max": cap_max,
                "min": cap_min,
                "year_limit": year_limit,
                "bootstrap": bootstrap,
                "iterations": iterations,
                "upperQuantile": upper_quantile,
                "lowerQuantile": lower_quantile,
                "interval": interval,
                "seed": seed,
                "verbose": not quiet,
            }
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    try:
        result = rescale_posterior_dir(input_dir, mask_path=mask, config=config)
    except (IndicatorError, FileNotFoundError) as exc:
        typer.echo(f"[indicator] {exc}", err=True)
        raise typer.Exit(code=1) from exc
    _echo_result(result)


@app.command()
def synthetic(
    n_species: int = typer.Option(20, "--species", help="Number of simulated species."),
    n_draws: int = typer.Option(200, "--draws", help="Posterior draws per species-year."),
    iterations: int = typer.Option(200, "--iterations", help="Bootstrap iterations."),
    seed: int = typer.Option(42, "--seed", help="Random seed for simulation and bootstrap."),
) -> None:
    """
    Run the indicator on simulated species with staggered entry and exit years.
    """
    result = run_synthetic(n_species=n_species, n_draws=n_draws, iterations=iterations, seed=seed)
    _echo_result(result)


if __name__ == "__main__":
    app()
