"""Tests for capping, geometric-mean aggregation and the chaining loop."""

from __future__ import annotations

from pathlib import Path
import sys
from typing import Dict, Sequence

import numpy as np
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.indicator.aggregation import geomean
from src.indicator.capping import cap_collection, cap_matrix
from src.indicator.chaining import CapBounds, ChainState, entry_step, exit_step, run_chain
from src.indicator.errors import EmptyYearError
from src.indicator.periods import extract_periods
from src.indicator.records import PosteriorMatrix

WIDE = CapBounds(lower=1e-9, upper=1e9)
DEFAULT = CapBounds(lower=1.0, upper=10000.0)


def _series(species: str, start: int, values: Sequence[float]) -> PosteriorMatrix:
    """Single-draw series starting at ``start``."""
    years = list(range(start, start + len(values)))
    return PosteriorMatrix(species, years=years, draws=np.asarray(values, dtype=float).reshape(-1, 1))


def _indicator(matrices: Dict[str, PosteriorMatrix], bounds: CapBounds = WIDE) -> Dict[int, float]:
    outcome = run_chain(matrices, extract_periods(matrices), 100.0, bounds)
    return {year: result.value for year, result in outcome.aggregates}


# ---------------------------------------------------------------------------
# Capper


def test_cap_matrix_clamps_and_counts() -> None:
    matrix = PosteriorMatrix("wren", years=[2000, 2001], draws=[[0.5, 5.0], [50.0, 20000.0]])
    result = cap_matrix(matrix, 1.0, 10000.0)
    assert result.matrix.draws.tolist() == [[1.0, 5.0], [50.0, 10000.0]]
    assert result.n_clamped == 2


def test_cap_matrix_is_idempotent() -> None:
    rng = np.random.default_rng(0)
    matrix = PosteriorMatrix("wren", years=range(2000, 2010), draws=rng.lognormal(3.0, 4.0, size=(10, 50)))
    once = cap_matrix(matrix, 1.0, 10000.0).matrix
    twice = cap_matrix(once, 1.0, 10000.0)
    assert np.array_equal(once.draws, twice.matrix.draws)
    assert twice.n_clamped == 0
    assert twice.matrix is once


def test_cap_collection_sums_clamped_counts() -> None:
    capped, clamped = cap_collection(
        {"wren": _series("wren", 2000, [0.1, 2.0]), "kite": _series("kite", 2000, [3.0, 1e6])}, 1.0, 100.0
    )
    assert clamped == 2
    assert capped["kite"].draws[:, 0].tolist() == [3.0, 100.0]


# ---------------------------------------------------------------------------
# Aggregator


def test_geomean_returns_value_and_species_count() -> None:
    collection = {
        "wren": PosteriorMatrix("wren", years=[2000], draws=[[2.0, 8.0]]),
        "kite": PosteriorMatrix("kite", years=[2000, 2001], draws=[[16.0, 16.0], [1.0, 1.0]]),
    }
    result = geomean(collection, 2000)
    assert result.value == pytest.approx(8.0)
    assert result.n_species == 2

    later = geomean(collection, 2001)
    assert later.value == pytest.approx(1.0)
    assert later.n_species == 1

    without_kite = geomean(collection, 2000, exclude=["kite"])
    assert without_kite.value == pytest.approx(4.0)
    assert without_kite.n_species == 1


def test_geomean_fails_when_no_species_contribute() -> None:
    collection = {"wren": _series("wren", 2000, [1.0])}
    with pytest.raises(EmptyYearError):
        geomean(collection, 2001)
    with pytest.raises(EmptyYearError):
        geomean(collection, 2000, exclude={"wren"})


# ---------------------------------------------------------------------------
# Individual steps


def test_exit_step_without_leavers_is_identity() -> None:
    state = ChainState(collection={"wren": _series("wren", 2000, [1.0, 2.0])})
    new_state, multiplier = exit_step(state, 2001, (), WIDE)
    assert new_state is state
    assert multiplier == 1.0


def test_entry_step_requires_overlapping_species() -> None:
    state = ChainState(collection={"wren": _series("wren", 2000, [1.0, 2.0])})
    with pytest.raises(EmptyYearError):
        entry_step(state, 2005, {"kite": _series("kite", 2005, [3.0])}, WIDE)


def test_entering_species_share_the_same_target() -> None:
    state = ChainState(collection={"wren": _series("wren", 2000, [100.0, 250.0])})
    entering = {"kite": _series("kite", 2001, [2.0, 4.0]), "tern": _series("tern", 2001, [50.0, 25.0])}
    new_state, target = entry_step(state, 2001, entering, WIDE)
    assert target == pytest.approx(250.0)
    assert new_state.collection["kite"].draws[:, 0].tolist() == pytest.approx([250.0, 500.0])
    assert new_state.collection["tern"].draws[:, 0].tolist() == pytest.approx([250.0, 125.0])
    assert list(new_state.collection) == ["wren", "kite", "tern"]
    assert "kite" not in state.collection


# ---------------------------------------------------------------------------
# Chaining scenarios


def test_single_species_scales_by_its_entry_multiplier() -> None:
    matrices = {
        "x": PosteriorMatrix(
            "x",
            years=range(2000, 2006),
            draws=[[2.0, 8.0], [4.0, 4.0], [1.0, 9.0], [5.0, 5.0], [6.0, 6.0], [2.0, 2.0]],
        )
    }
    indicator = _indicator(matrices, DEFAULT)
    multiplier = 100.0 / 4.0
    assert indicator[2000] == pytest.approx(100.0)
    assert indicator[2001] == pytest.approx(4.0 * multiplier)
    assert indicator[2002] == pytest.approx(3.0 * multiplier)
    assert indicator[2005] == pytest.approx(2.0 * multiplier)


def test_late_entry_and_early_exit_are_chained() -> None:
    matrices = {
        "x": _series("x", 2000, [10.0, 20.0, 20.0, 40.0, 40.0, 40.0]),
        "y": _series("y", 2003, [5.0, 5.0, 10.0, 10.0, 10.0, 10.0, 10.0, 10.0]),
    }
    outcome = run_chain(matrices, extract_periods(matrices), 100.0, WIDE)
    indicator = {year: result.value for year, result in outcome.aggregates}
    counts = {year: result.n_species for year, result in outcome.aggregates}
    y = outcome.state.collection["y"]

    # y enters in 2003 at the level of x alone (400 after indexing x to 100 in 2000).
    assert y.row(2003)[0] == pytest.approx(400.0)
    assert indicator[2003] == pytest.approx(400.0)

    # In 2006 x has left: y is rebased by gm({x, y} in 2005) / gm({y} in 2005).
    gm_with = np.sqrt(400.0 * 800.0)
    multiplier = gm_with / 800.0
    assert y.row(2005)[0] == pytest.approx(800.0)
    assert y.row(2006)[0] == pytest.approx(800.0 * multiplier)
    assert indicator[2006] == pytest.approx(indicator[2005])
    assert counts == {2000: 1, 2001: 1, 2002: 1, 2003: 2, 2004: 2, 2005: 2, 2006: 1, 2007: 1, 2008: 1, 2009: 1, 2010: 1}


def test_exit_is_applied_before_entry_in_the_same_year() -> None:
    matrices = {
        "x": _series("x", 2000, [10.0, 10.0, 10.0]),
        "y": _series("y", 2000, [10.0, 10.0, 40.0, 40.0, 40.0]),
        "z": _series("z", 2003, [7.0, 14.0, 7.0]),
    }
    outcome = run_chain(matrices, extract_periods(matrices), 100.0, WIDE)
    indicator = {year: result.value for year, result in outcome.aggregates}
    # x leaves after 2002 while z enters in 2003; z must come in at y's rebased level.
    gm_2002 = np.sqrt(100.0 * 400.0)
    y_2003 = 400.0 * gm_2002 / 400.0
    assert outcome.state.collection["y"].row(2003)[0] == pytest.approx(y_2003)
    assert outcome.state.collection["z"].row(2003)[0] == pytest.approx(y_2003)
    assert indicator[2003] == pytest.approx(gm_2002)
    assert indicator[2004] == pytest.approx(np.sqrt(y_2003 * 2 * y_2003))


def test_no_event_years_follow_species_values_only() -> None:
    matrices = {
        "x": _series("x", 2000, [10.0, 20.0, 5.0]),
        "y": _series("y", 2000, [4.0, 4.0, 16.0]),
    }
    indicator = _indicator(matrices)
    raw = {year: np.sqrt(xv * yv) for year, xv, yv in zip(range(2000, 2003), [10.0, 20.0, 5.0], [4.0, 4.0, 16.0])}
    assert indicator[2001] / indicator[2000] == pytest.approx(raw[2001] / raw[2000])
    assert indicator[2002] / indicator[2001] == pytest.approx(raw[2002] / raw[2001])


def test_capped_value_feeds_later_computations() -> None:
    matrices = {
        "x": _series("x", 2000, [1.0, 200.0, 300.0]),
        "y": _series("y", 2001, [2.0, 2.0]),
    }
    outcome = run_chain(matrices, extract_periods(matrices), 100.0, DEFAULT)
    x = outcome.state.collection["x"]
    assert x.row(2001)[0] == 10000.0
    assert x.row(2002)[0] == 10000.0
    # y is brought in at the clamped level, not at the uncapped 20000.
    assert outcome.state.collection["y"].row(2001)[0] == pytest.approx(10000.0)
    assert outcome.aggregates[1][1].value == pytest.approx(10000.0)
    assert outcome.state.n_clamped >= 2


def test_chain_breaks_when_no_species_overlap() -> None:
    matrices = {
        "x": _series("x", 2000, [1.0, 2.0, 3.0]),
        "y": _series("y", 2004, [1.0, 2.0, 3.0]),
    }
    with pytest.raises(EmptyYearError):
        run_chain(matrices, extract_periods(matrices), 100.0, WIDE)


def test_leaving_all_species_at_once_raises() -> None:
    matrices = {
        "x": _series("x", 2000, [1.0, 2.0]),
        "y": _series("y", 2002, [1.0, 2.0]),
    }
    with pytest.raises(EmptyYearError) as excinfo:
        run_chain(matrices, extract_periods(matrices), 100.0, WIDE)
    assert excinfo.value.year == 2001
