"""Unit tests for the unit-root and stationarity tests.

The ADF regression is compared against statsmodels' ``adfuller`` on the same
sample, which builds the identical design matrix.
"""

import numpy as np
import pytest
from statsmodels.tsa.stattools import adfuller

from utils.exceptions import DomainError, InsufficientDataError
from utils.stationarity import (
    ADFResult,
    adf_test,
    determine_differencing_order,
    kpss_test,
)


@pytest.fixture
def white_noise():
    return np.random.default_rng(0).normal(size=300)


@pytest.fixture
def random_walk():
    return np.cumsum(np.random.default_rng(1).normal(size=300)) + 100.0


# --- adf_test ---

@pytest.mark.parametrize("regression", ["n", "c", "ct"])
@pytest.mark.parametrize("lags", [0, 2])
def test_adf_matches_statsmodels_fixed_lags(random_walk, regression, lags):
    """Statistic, p-value and nobs agree with adfuller for a fixed lag count."""
    result = adf_test(random_walk, lags=lags, regression=regression)
    stat, pvalue, usedlag, nobs, crit = adfuller(random_walk, maxlag=lags, regression=regression, autolag=None)
    assert result.statistic == pytest.approx(stat, rel=1e-8)
    assert result.pvalue == pytest.approx(pvalue, rel=1e-8)
    assert result.lags == usedlag
    assert result.nobs == nobs
    assert result.critical_values["5%"] == pytest.approx(crit["5%"])


def test_adf_autolag_matches_statsmodels(random_walk):
    result = adf_test(random_walk, regression="c", autolag="aic", max_lags=4)
    stat, _, usedlag, _, _, icbest = adfuller(random_walk, maxlag=4, regression="c", autolag="AIC")
    assert result.lags == usedlag
    assert result.statistic == pytest.approx(stat, rel=1e-8)
    assert result.icbest == pytest.approx(icbest, rel=1e-6)


def test_adf_rejects_unit_root_for_white_noise(white_noise):
    result = adf_test(white_noise)
    assert isinstance(result, ADFResult)
    assert result.is_stationary(0.05)
    assert result.pvalue < 0.01


def test_adf_does_not_reject_for_random_walk(random_walk):
    assert not adf_test(random_walk, autolag="aic").is_stationary(0.05)


def test_adf_constant_series_raises_domain_error():
    with pytest.raises(DomainError, match="constant"):
        adf_test(np.full(50, 3.0))


def test_adf_too_short_series():
    with pytest.raises(InsufficientDataError):
        adf_test([1.0, 2.0])
    with pytest.raises(InsufficientDataError):
        adf_test([1.0, 3.0, 2.0, 5.0], lags=3)


@pytest.mark.parametrize("kwargs, message", [
    ({"regression": "x"}, "regression"),
    ({"autolag": "hqic"}, "autolag"),
    ({"lags": -1}, "lags"),
])
def test_adf_invalid_arguments(white_noise, kwargs, message):
    with pytest.raises(ValueError, match=message):
        adf_test(white_noise, **kwargs)


def test_adf_rejects_nan():
    with pytest.raises(ValueError, match="NaN"):
        adf_test([1.0, np.nan, 2.0, 3.0])


def test_is_stationary_validates_significance():
    result = ADFResult(statistic=-3.0, pvalue=0.03, lags=0, nobs=10)
    assert result.is_stationary(0.05)
    assert not result.is_stationary(0.01)
    with pytest.raises(ValueError):
        result.is_stationary(1.5)


# --- kpss_test ---

def test_kpss_white_noise_is_stationary(white_noise):
    assert kpss_test(white_noise).is_stationary(0.05)


def test_kpss_random_walk_is_not_stationary(random_walk):
    assert not kpss_test(random_walk).is_stationary(0.05)


def test_kpss_rejects_regression_none(white_noise):
    with pytest.raises(ValueError, match="KPSS"):
        kpss_test(white_noise, regression="n")


# --- determine_differencing_order ---

def test_differencing_order_of_white_noise(white_noise):
    assert determine_differencing_order(white_noise) == 0


def test_differencing_order_of_random_walk(random_walk):
    assert determine_differencing_order(random_walk) == 1


def test_differencing_order_of_doubly_integrated_series():
    values = np.cumsum(np.cumsum(np.random.default_rng(2).normal(size=500)))
    assert determine_differencing_order(values, max_d=2) == 2


def test_differencing_order_caps_at_max_d(random_walk, caplog):
    assert determine_differencing_order(random_walk, max_d=0) == 0
    assert "Using d=0" in caplog.text


def test_differencing_order_with_kpss(random_walk):
    assert determine_differencing_order(random_walk, test="kpss") == 1


@pytest.mark.parametrize("kwargs", [{"test": "pp"}, {"max_d": -1}, {"threshold": 0.0}])
def test_differencing_order_invalid_arguments(white_noise, kwargs):
    with pytest.raises(ValueError):
        determine_differencing_order(white_noise, **kwargs)
