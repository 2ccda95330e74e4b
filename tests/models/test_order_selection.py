"""Unit tests for AIC-based order selection.

Selection logic (ranking, ties, failure handling, refits) is tested with a fake
estimator returning models of known AIC; a few tests run the real estimator.
"""

import logging

import numpy as np
import pandas as pd
import pytest

from models.estimator import ARMAEstimator
from models.order_selection import OrderSelectionResult, select_order
from models.results import ARIMAOrder, FittedModel
from utils.exceptions import ConvergenceError, InsufficientDataError
from utils.simulation import simulate_arma

SERIES = np.random.default_rng(0).normal(size=50)


def model_with_aic(order, aic, method="css") -> FittedModel:
    order = ARIMAOrder(*order)
    k = order.n_params()
    return FittedModel(
        order=order,
        ar_params=np.zeros(order.p),
        ma_params=np.zeros(order.q),
        mean=0.0,
        sigma2=1.0,
        llf=(2 * k - aic) / 2,
        nobs=50,
        anchors=(0.0,) * order.d,
        method=method,
    )


class FakeEstimator:
    """Returns preset models, or raises preset errors, keyed by order."""

    def __init__(self, outcomes, method="css"):
        self.outcomes = {ARIMAOrder(*order): outcome for order, outcome in outcomes.items()}
        self.method = method
        self.cancel_event = None
        self.calls = []
        self.samples = []

    def fit(self, series, order, n_cond=None):
        self.calls.append(ARIMAOrder(*order))
        self.samples.append((len(series), n_cond))
        outcome = self.outcomes[ARIMAOrder(*order)]
        if isinstance(outcome, Exception):
            raise outcome
        return model_with_aic(order, outcome, self.method)


# --- Ranking ---

def test_minimum_aic_wins():
    estimator = FakeEstimator({(0, 0, 0): 30.0, (1, 0, 0): 10.0, (0, 0, 1): 20.0})
    result = select_order(SERIES, grid=[(0, 0, 0), (1, 0, 0), (0, 0, 1)], estimator=estimator)
    assert isinstance(result, OrderSelectionResult)
    assert result.order == ARIMAOrder(1, 0, 0)
    assert result.best.aic == pytest.approx(10.0)
    assert estimator.calls == [ARIMAOrder(0, 0, 0), ARIMAOrder(1, 0, 0), ARIMAOrder(0, 0, 1)]


def test_table_has_one_row_per_candidate_in_grid_order():
    estimator = FakeEstimator({(0, 1, 0): 5.0, (1, 1, 0): InsufficientDataError("too short")})
    result = select_order(SERIES, grid=[(0, 1, 0), (1, 1, 0)], estimator=estimator)
    table = result.table
    assert isinstance(table, pd.DataFrame)
    assert list(table.columns) == ["p", "d", "q", "aic", "bic", "llf", "nobs", "n_params", "status"]
    assert table["status"].tolist() == ["ok", "InsufficientDataError"]
    assert table.loc[0, "aic"] == pytest.approx(5.0)
    assert np.isnan(table.loc[1, "aic"])


# --- Common sample ---

def test_candidates_share_trimmed_levels_and_conditioning():
    grid = [(0, 0, 0), (2, 1, 0), (1, 2, 1)]
    estimator = FakeEstimator({order: 1.0 for order in grid})
    select_order(SERIES, grid=grid, estimator=estimator)
    # each window leaves len(SERIES) - 2 differences; CSS conditions on max p = 2
    assert estimator.samples == [(48, 2), (49, 2), (50, 2)]


def test_css_candidates_are_scored_on_the_same_observations():
    y = simulate_arma([0.4], [], 120, seed=3)
    grid = [(p, d, 0) for d in (0, 1) for p in (0, 1, 3)]
    result = select_order(y, grid=grid, estimator=ARMAEstimator(method="css"))
    assert set(result.table["status"]) == {"ok"}
    assert set(result.table["nobs"]) == {120 - 1 - 3}


def test_exact_likelihood_candidates_are_scored_on_the_same_observations():
    y = simulate_arma([0.4], [], 120, seed=3)
    grid = [(0, 0, 0), (2, 0, 0), (1, 1, 0)]
    result = select_order(y, grid=grid, estimator=ARMAEstimator(method="mle"))
    assert set(result.table["nobs"]) == {120 - 1}


@pytest.mark.parametrize("seed", [0, 1, 2])
def test_selected_order_does_not_depend_on_units(seed):
    noise = np.random.default_rng(seed).normal(size=200)
    grid = [(p, 0, 0) for p in range(6)]
    small = select_order(noise * 0.01, grid=grid, estimator=ARMAEstimator(method="css"))
    large = select_order(noise * 100.0, grid=grid, estimator=ARMAEstimator(method="css"))
    assert small.order == large.order
    np.testing.assert_allclose(
        small.table["aic"] - small.table.loc[0, "aic"],
        large.table["aic"] - large.table.loc[0, "aic"],
        atol=1e-4,
    )


# --- Ties ---

def test_tie_prefers_fewer_parameters():
    estimator = FakeEstimator({(1, 0, 0): 10.0, (0, 0, 0): 10.0 + 1e-9})
    result = select_order(SERIES, grid=[(1, 0, 0), (0, 0, 0)], estimator=estimator)
    assert result.order == ARIMAOrder(0, 0, 0)


def test_tie_with_equal_parameter_count_prefers_smaller_order():
    estimator = FakeEstimator({(1, 0, 0): 10.0, (0, 0, 1): 10.0})
    result = select_order(SERIES, grid=[(1, 0, 0), (0, 0, 1)], estimator=estimator)
    assert result.order == ARIMAOrder(0, 0, 1)


def test_difference_beyond_tolerance_is_not_a_tie():
    estimator = FakeEstimator({(0, 0, 0): 10.0, (2, 0, 0): 10.0 - 1e-6})
    result = select_order(SERIES, grid=[(0, 0, 0), (2, 0, 0)], estimator=estimator)
    assert result.order == ARIMAOrder(2, 0, 0)


# --- Failures ---

def test_failed_candidates_are_logged_and_excluded(caplog):
    estimator = FakeEstimator({(0, 0, 0): 12.0, (1, 0, 0): ConvergenceError("no convergence")})
    with caplog.at_level(logging.WARNING):
        result = select_order(SERIES, grid=[(0, 0, 0), (1, 0, 0)], estimator=estimator, model_name="search")
    assert result.order == ARIMAOrder(0, 0, 0)
    assert result.failures == {"ARIMA(1,0,0)": "no convergence"}
    assert "[search] Candidate ARIMA(1,0,0) excluded (ConvergenceError)" in caplog.text


def test_all_candidates_failing_raises_convergence_error():
    estimator = FakeEstimator({(0, 0, 0): ConvergenceError("a"), (1, 0, 0): InsufficientDataError("b")})
    with pytest.raises(ConvergenceError, match="No candidate order could be fitted"):
        select_order(SERIES, grid=[(0, 0, 0), (1, 0, 0)], estimator=estimator)


def test_unexpected_errors_propagate():
    estimator = FakeEstimator({(0, 0, 0): KeyError("bug")})
    with pytest.raises(KeyError):
        select_order(SERIES, grid=[(0, 0, 0)], estimator=estimator)


# --- Refit ---

def test_winner_is_refit_with_refit_estimator():
    search = FakeEstimator({(0, 0, 0): 10.0, (1, 0, 0): 5.0}, method="css")
    refit = FakeEstimator({(1, 0, 0): 4.0}, method="mle")
    result = select_order(SERIES, grid=[(0, 0, 0), (1, 0, 0)], estimator=search, refit_estimator=refit)
    assert refit.calls == [ARIMAOrder(1, 0, 0)]
    assert result.best.method == "mle"
    # the table keeps the search-stage AIC values
    assert result.table.loc[1, "aic"] == pytest.approx(5.0)


def test_failed_refit_keeps_search_estimate(caplog):
    search = FakeEstimator({(1, 0, 0): 5.0})
    refit = FakeEstimator({(1, 0, 0): ConvergenceError("stuck")}, method="mle")
    result = select_order(SERIES, grid=[(1, 0, 0)], estimator=search, refit_estimator=refit)
    assert result.best.method == "css"
    assert "keeping the search estimate" in caplog.text


# --- Arguments ---

@pytest.mark.parametrize("kwargs, message", [
    ({"grid": []}, "grid cannot be empty"),
    ({"n_jobs": 0}, "n_jobs"),
    ({"grid": [(0, -1, 0)]}, "non-negative"),
])
def test_invalid_arguments(kwargs, message):
    with pytest.raises(ValueError, match=message):
        select_order(SERIES, **kwargs)


# --- Real estimator ---

def test_true_order_has_lower_aic_than_misspecified_on_average():
    aic_true, aic_wrong = [], []
    for seed in range(5):
        y = simulate_arma([0.7], [], 300, seed=seed)
        result = select_order(y, grid=[(0, 0, 0), (1, 0, 0)], estimator=ARMAEstimator(method="css"))
        aic_wrong.append(result.table.loc[0, "aic"])
        aic_true.append(result.table.loc[1, "aic"])
    assert np.mean(aic_true) < np.mean(aic_wrong)


def test_insufficient_candidates_are_skipped_on_short_series():
    y = np.random.default_rng(8).normal(size=8)
    result = select_order(y, grid=[(0, 0, 0), (3, 0, 3)], estimator=ARMAEstimator(method="css"))
    assert result.order == ARIMAOrder(0, 0, 0)
    assert "ARIMA(3,0,3)" in result.failures


def test_parallel_search_matches_sequential():
    y = simulate_arma([0.5], [0.2], 200, seed=9)
    grid = [(0, 0, 0), (1, 0, 0), (0, 0, 1), (1, 0, 1)]
    sequential = select_order(y, grid=grid, estimator=ARMAEstimator(method="css"))
    parallel = select_order(y, grid=grid, estimator=ARMAEstimator(method="css"), n_jobs=2)
    assert parallel.order == sequential.order
    np.testing.assert_allclose(parallel.table["aic"], sequential.table["aic"])
