import numpy as np
import pandas as pd
import pytest

from utils.exceptions import DomainError
from utils.preprocessor import Preprocessor
from utils.simulation import simulate_prices
from utils.timeseries import StationaryResult, TimeSeries


# --- Test Helpers & Fixtures ---

@pytest.fixture
def prices() -> pd.Series:
    return simulate_prices(150, start_price=80.0, ar=(0.2,), sigma=0.03, seed=21)


# --- Basic Initialization and Validation Tests ---

def test_initialization_and_defaults():
    """Test that the preprocessor initializes correctly and sets defaults."""
    preprocessor = Preprocessor({'log_transform': {'enabled': True}, 'differencing': {'enabled': True, 'auto': 'none'}})
    assert preprocessor.log_enabled
    assert preprocessor.preprocessing_steps['differencing']['order'] == 1

    auto = Preprocessor({'differencing': {'enabled': True, 'auto': 'adf'}})
    assert auto.preprocessing_steps['differencing'] == {
        'enabled': True, 'auto': 'adf', 'order': 0, 'max_d': 2, 'p_value_threshold': 0.05,
    }
    assert not auto.log_enabled


def test_empty_config_disables_every_step(prices):
    preprocessor = Preprocessor({})
    levels = preprocessor.fit_transform(prices)
    np.testing.assert_allclose(levels.values, prices.to_numpy())
    assert preprocessor.diff_order is None


def test_invalid_config_raises_error():
    """Test that an invalid configuration raises a ValueError."""
    with pytest.raises(ValueError, match="Configuration validation failed"):
        Preprocessor({'differencing': {'enabled': True, 'auto': 'pp'}})


def test_validation_raises_on_invalid_data():
    """Test that input validation correctly raises errors for NaN or Inf data."""
    preprocessor = Preprocessor({'log_transform': {'enabled': True}})
    with pytest.raises(ValueError, match="NaN values found in 'training' data"):
        preprocessor.fit(pd.Series([1.0, np.nan, 2.0]))
    with pytest.raises(ValueError, match="Infinite values found"):
        preprocessor.transform(pd.DataFrame({'Close': [1.0, np.inf]}))


def test_log_transform_rejects_non_positive_prices():
    with pytest.raises(DomainError):
        Preprocessor({'log_transform': {'enabled': True}}).fit([1.0, 0.0, 2.0])


# --- Fit / transform ---

def test_log_transform_and_inverse(prices):
    preprocessor = Preprocessor({'log_transform': {'enabled': True}})
    levels = preprocessor.fit_transform(prices)
    assert isinstance(levels, TimeSeries)
    assert levels.name == 'Close'
    assert levels.index.equals(prices.index)
    np.testing.assert_allclose(levels.values, np.log(prices.to_numpy()))
    np.testing.assert_allclose(preprocessor.inverse_transform(levels.values), prices.to_numpy())


def test_fixed_differencing_order(prices):
    preprocessor = Preprocessor({'differencing': {'enabled': True, 'order': 2}})
    preprocessor.fit(prices)
    assert preprocessor.diff_order == 2
    assert preprocessor.fitted


def test_auto_differencing_on_log_prices(prices):
    preprocessor = Preprocessor({
        'log_transform': {'enabled': True},
        'differencing': {'enabled': True, 'auto': 'adf'},
    })
    preprocessor.fit(prices)
    assert preprocessor.diff_order == 1


def test_stationary_returns_log_returns(prices):
    preprocessor = Preprocessor({'log_transform': {'enabled': True}, 'differencing': {'enabled': True}})
    preprocessor.fit(prices)
    result = preprocessor.stationary(prices)
    assert isinstance(result, StationaryResult)
    assert result.diff_order == 1
    np.testing.assert_allclose(result.values, np.diff(np.log(prices.to_numpy())))
    assert result.anchors == pytest.approx((np.log(prices.iloc[-1]),))


def test_stationary_explicit_order_overrides_fitted_order(prices):
    preprocessor = Preprocessor({})
    result = preprocessor.stationary(prices, diff_order=2)
    assert len(result) == len(prices) - 2
