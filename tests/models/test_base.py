"""Unit tests for the abstract base forecaster classes.

This module tests the non-abstract logic of `TSForecaster` and `StatTSForecaster`
from `models/base.py`: initialization, parameter validation, MSE evaluation and
the hold-out evaluation loop.

To test the abstract classes, a simple concrete subclass is defined locally and
the Preprocessor is mocked so the tests are isolated and deterministic.
"""

import logging

import numpy as np
import pandas as pd
import pytest
from pytest import approx

from models.base import StatTSForecaster, TSForecaster

# --- Mocks for Dependencies ---


@pytest.fixture
def mock_preprocessor_class(mocker):
    """Mocks the Preprocessor class and returns the patch object."""
    return mocker.patch('models.base.Preprocessor')


@pytest.fixture
def price_frame():
    index = pd.date_range('2022-01-01', periods=30, freq='D')
    return pd.DataFrame({'Close': np.linspace(10.0, 39.0, 30)}, index=index)


# --- Concrete Subclasses for Testing ---

class ConcreteStatForecaster(StatTSForecaster):
    """Predicts the last training value for every step."""

    def fit(self, train_series, *args, **kwargs):
        self.last_value = float(train_series.iloc[-1, 0])
        self.fitted = True

    def predict(self, input_data=None, forecast_steps=None, **kwargs):
        steps = forecast_steps or self.forecast_steps
        return pd.DataFrame({'Close': np.full(steps, self.last_value)})


# --- Initialization ---

def test_initialization_sets_attributes(mock_preprocessor_class, caplog):
    with caplog.at_level(logging.INFO):
        model = ConcreteStatForecaster({'preprocessing': {'log_transform': {'enabled': True}}}, 1, 5)
    assert model.forecast_steps == 5
    assert not model.fitted
    mock_preprocessor_class.assert_called_once_with({'log_transform': {'enabled': True}})
    assert "Initialized ConcreteStatForecaster" in caplog.text


@pytest.mark.parametrize("args, message", [
    (([1, 2], 1, 5), "model_params must be a dictionary"),
    (({}, 1, 0), "forecast_steps must be positive"),
    (({}, 0, 5), "num_features must be positive"),
])
def test_initialization_validation(mock_preprocessor_class, args, message):
    with pytest.raises(ValueError, match=message):
        ConcreteStatForecaster(*args)


def test_abstract_class_cannot_be_instantiated():
    with pytest.raises(TypeError):
        TSForecaster({}, 1, 1)


def test_name_falls_back_to_class_name(mock_preprocessor_class):
    assert ConcreteStatForecaster({}, 1, 1).name == 'ConcreteStatForecaster'

    class NamedForecaster(ConcreteStatForecaster):
        model_name = 'last_value'

    assert NamedForecaster({}, 1, 1).name == 'last_value'


def test_default_valid_params(mock_preprocessor_class):
    assert ConcreteStatForecaster({}, 1, 1).get_valid_params() == {'preprocessing'}


# --- Evaluation ---

def test_evaluate_returns_mse(mock_preprocessor_class):
    model = ConcreteStatForecaster({}, 1, 3)
    y_true = pd.DataFrame({'Close': [1.0, 2.0, 3.0]})
    y_pred = pd.DataFrame({'Close': [1.0, 3.0, 5.0]})
    assert model.evaluate(y_true, y_pred) == approx(5.0 / 3)


def test_evaluate_handles_empty_and_misaligned_inputs(mock_preprocessor_class, caplog):
    model = ConcreteStatForecaster({}, 1, 3)
    assert model.evaluate(pd.DataFrame(), pd.DataFrame({'a': [1.0]})) == float('inf')
    assert model.evaluate(pd.DataFrame({'a': [1.0]}), pd.DataFrame({'b': [1.0]})) == float('inf')
    assert "Could not align" in caplog.text


# --- Hold-out evaluation ---

def test_holdout_evaluate_fits_on_prefix_and_scores_suffix(mock_preprocessor_class, price_frame):
    model = ConcreteStatForecaster({}, 1, 5)
    loss = model.holdout_evaluate(price_frame)
    # last training value is 34, hold-out values are 35..39
    assert loss == approx(np.mean(np.arange(1.0, 6.0) ** 2))
    assert model.fitted


def test_holdout_evaluate_rejects_short_series(mock_preprocessor_class, price_frame):
    model = ConcreteStatForecaster({}, 1, 5)
    with pytest.raises(ValueError, match="too small"):
        model.holdout_evaluate(price_frame.iloc[:10])
    with pytest.raises(ValueError, match="holdout_size must be positive"):
        model.holdout_evaluate(price_frame, holdout_size=0)
