import logging

import pytest

from models.results import ARIMAOrder
from utils.logging_utils import (
    log_best_order,
    log_candidate_failure,
    log_coefficients,
    log_fit_start,
    log_fit_success,
)
from utils.exceptions import ConvergenceError


class DummyModel:
    pass


# --- Tests for `log_fit_start` ---

def test_log_fit_start_success(caplog):
    """Tests that the function correctly logs the start of a fit."""
    with caplog.at_level(logging.INFO):
        log_fit_start("arima", DummyModel(), 120)
    assert "[arima] Starting fit of DummyModel on 120 observations" in caplog.text


@pytest.mark.parametrize("model_name, nobs, message", [
    ("", 10, "model_name cannot be empty"),
    ("arima", 0, "nobs must be a positive integer"),
    ("arima", 2.5, "nobs must be a positive integer"),
])
def test_log_fit_start_invalid_arguments(model_name, nobs, message):
    with pytest.raises(ValueError, match=message):
        log_fit_start(model_name, DummyModel(), nobs)


# --- Tests for `log_fit_success` ---

def test_log_fit_success(caplog):
    with caplog.at_level(logging.INFO):
        log_fit_success("arima", ARIMAOrder(1, 1, 0), -123.45678, 0.0004)
    assert "[arima] Fit completed for ARIMA(1,1,0). AIC: -123.4568, sigma2: 0.0004" in caplog.text


def test_log_fit_success_rejects_non_positive_variance():
    with pytest.raises(ValueError, match="sigma2 must be a positive number"):
        log_fit_success("arima", ARIMAOrder(0, 0, 0), 1.0, 0.0)
    with pytest.raises(ValueError, match="aic must be a number"):
        log_fit_success("arima", ARIMAOrder(0, 0, 0), "low", 1.0)


# --- Tests for `log_candidate_failure` ---

def test_log_candidate_failure(caplog):
    with caplog.at_level(logging.WARNING):
        log_candidate_failure("auto_arima", ARIMAOrder(2, 1, 2), ConvergenceError("did not converge"))
    assert "[auto_arima] Candidate ARIMA(2,1,2) excluded (ConvergenceError): did not converge" in caplog.text


def test_log_candidate_failure_requires_exception():
    with pytest.raises(ValueError, match="exception must be an Exception instance"):
        log_candidate_failure("auto_arima", ARIMAOrder(0, 0, 0), "boom")


# --- Tests for `log_best_order` ---

def test_log_best_order(caplog):
    with caplog.at_level(logging.INFO):
        log_best_order("auto_arima", ARIMAOrder(1, 1, 1), 10.0, 12, 2)
    assert "[auto_arima] Best order (aic): ARIMA(1,1,1), AIC: 10.0000 (10/12 candidates fitted)" in caplog.text


@pytest.mark.parametrize("n_candidates, n_failed", [(0, 0), (3, 3), (3, -1)])
def test_log_best_order_inconsistent_counts(n_candidates, n_failed):
    with pytest.raises(ValueError):
        log_best_order("auto_arima", ARIMAOrder(0, 0, 0), 1.0, n_candidates, n_failed)


# --- Tests for `log_coefficients` ---

def test_log_coefficients_at_debug_level(caplog):
    with caplog.at_level(logging.DEBUG):
        log_coefficients("arima", {"ar.L1": 0.5, "mean": 0.01})
    assert "[arima] Coefficients: ar.L1=0.500000, mean=0.010000" in caplog.text


def test_log_coefficients_requires_dict():
    with pytest.raises(ValueError, match="params must be a dictionary"):
        log_coefficients("arima", [0.5])
