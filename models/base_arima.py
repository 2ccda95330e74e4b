"""Base module for ARIMA time series forecasting models.

This module defines the ARIMABaseForecaster class, which wires the preprocessing,
ARMA estimation and forecasting routines of the framework into the StatTSForecaster
fit / predict interface.
"""

import logging
from abc import abstractmethod
from typing import Any, Dict, Optional, Set, Union

import numpy as np
import pandas as pd

from models.base import StatTSForecaster
from models.estimator import ARMAEstimator
from models.forecast import forecast
from models.results import FittedModel, Forecast
from utils.logging_utils import log_coefficients, log_fit_start, log_fit_success
from utils.timeseries import TimeSeries

logger = logging.getLogger(__name__)


class ARIMABaseForecaster(StatTSForecaster):
    """Base class for ARIMA forecasting models on price series."""

    is_univariate: bool = True

    def __init__(self, model_params: Dict[str, Any], num_features: int, forecast_steps: int) -> None:
        """
        Initialize the ARIMA forecaster.

        Args:
            model_params: Model-specific parameters (orders or search space, estimation settings,
                preprocessing).
            num_features: Number of features in the time series data (must be 1).
            forecast_steps: Number of steps to forecast.

        Raises:
            ValueError: If num_features is not 1 or if model parameters are invalid.
        """
        if self.is_univariate and num_features != 1:
            raise ValueError("Univariate ARIMA models require num_features=1.")
        super().__init__(model_params, num_features, forecast_steps)
        self._validate_model_params()
        self.fitted_model: Optional[FittedModel] = None
        self.train_index: Optional[pd.Index] = None

    def _validate_model_params(self) -> None:
        """
        Validate estimation settings shared by the ARIMA models.

        Raises:
            ValueError: If a setting has the wrong type or range.
        """
        confidence_level = self.model_params.get("confidence_level", 0.95)
        if not 0.0 < confidence_level < 1.0:
            raise ValueError("confidence_level must be in (0, 1).")
        if self.model_params.get("distribution", "normal") not in ("normal", "t"):
            raise ValueError("distribution must be 'normal' or 't'.")
        unknown = set(self.model_params) - self.get_valid_params()
        if unknown:
            raise ValueError(f"Unknown parameter(s) for {self.__class__.__name__}: {sorted(unknown)}")

    def _make_estimator(self, method: Optional[str] = None) -> ARMAEstimator:
        """Build an estimator from the model parameters, optionally overriding the method."""
        return ARMAEstimator(
            include_mean=self.model_params.get("include_mean", True),
            method=method or self.model_params.get("method", "css-mle"),
            maxiter=self.model_params.get("maxiter", 2000),
            timeout=self.model_params.get("timeout"),
            tol=self.model_params.get("tol", 1e-6),
        )

    @abstractmethod
    def _estimate(self, levels: TimeSeries) -> FittedModel:
        """
        Estimate the model on the (log) level series.

        Args:
            levels: Output of the preprocessor's ``transform``.

        Returns:
            The fitted model.
        """
        pass

    def fit(self, train_series: Union[pd.DataFrame, pd.Series], val_series: Optional[pd.DataFrame] = None) -> None:
        """
        Fit the ARIMA model to the training prices.

        Args:
            train_series: Training data (pandas Series or single-column DataFrame).
            val_series: Validation data (ignored). Defaults to None.

        Raises:
            ValueError: If train_series is not univariate or contains NaN/Inf values.
            ARIMAError: If a transform or the estimation fails.
        """
        if isinstance(train_series, pd.DataFrame) and train_series.shape[1] != 1:
            raise ValueError("Univariate ARIMA models require a single-column train_series.")

        levels = self.preprocessor.fit_transform(train_series)
        log_fit_start(self.name, self, len(levels))
        try:
            self.fitted_model = self._estimate(levels)
        except (ValueError, RuntimeError) as e:
            logger.error(f"Failed to fit {self.__class__.__name__}: {str(e)}")
            raise
        self.model = self.fitted_model
        self.train_index = levels.index
        self.last_fit_timestamp = levels.index[-1]
        self.fitted = True
        log_fit_success(
            self.name,
            self.fitted_model.order,
            self.fitted_model.aic,
            self.fitted_model.sigma2,
        )
        log_coefficients(self.name, self.fitted_model.params)

    def forecast_levels(self, steps: int, confidence_level: Optional[float] = None) -> Forecast:
        """
        Forecast on the estimator's level scale (log prices when the log transform is enabled).

        Raises:
            ValueError: If the model is not fitted or the arguments are invalid.
        """
        if not self.fitted:
            raise ValueError("Model must be fitted before predicting.")
        return forecast(
            self.fitted_model,
            steps,
            confidence_level=confidence_level or self.model_params.get("confidence_level", 0.95),
            distribution=self.model_params.get("distribution", "normal"),
        )

    def _future_index(self, steps: int) -> pd.Index:
        """Index continuing from ``last_fit_timestamp`` by ``steps`` periods."""
        index = self.train_index
        last = self.last_fit_timestamp
        if isinstance(index, pd.DatetimeIndex):
            freq = index.freq or (pd.infer_freq(index) if len(index) >= 3 else None)
            if freq is not None:
                return pd.date_range(start=last, periods=steps + 1, freq=freq)[1:]
            logger.warning("Could not infer the frequency of the training index. Using a positional index.")
            return pd.RangeIndex(len(index), len(index) + steps)
        if isinstance(index, pd.RangeIndex):
            return pd.RangeIndex(last + 1, last + 1 + steps)
        return pd.RangeIndex(len(index), len(index) + steps)

    def predict(
        self,
        input_data: Optional[pd.DataFrame] = None,
        forecast_steps: Optional[int] = None,
        confidence_level: Optional[float] = None,
    ) -> pd.DataFrame:
        """
        Generate price forecasts with confidence bounds.

        Predictions are based on the fitted model's history; input_data is ignored.

        Args:
            input_data: Input data (ignored for ARIMA). Defaults to None.
            forecast_steps: Number of steps to forecast. Defaults to self.forecast_steps.
            confidence_level: Interval coverage. Defaults to the model's setting.

        Returns:
            DataFrame with 'forecast', 'lower' and 'upper' columns in the original price scale,
            indexed by the periods following the training data.

        Raises:
            ValueError: If model is not fitted or forecast_steps is invalid.
        """
        if not self.fitted:
            raise ValueError("Model must be fitted before predicting.")

        steps = forecast_steps if forecast_steps is not None else self.forecast_steps
        if steps < 1:
            raise ValueError("forecast_steps must be positive.")

        result = self.forecast_levels(steps, confidence_level)
        predictions = pd.DataFrame(
            {
                "forecast": self.preprocessor.inverse_transform(result.mean),
                "lower": self.preprocessor.inverse_transform(result.lower),
                "upper": self.preprocessor.inverse_transform(result.upper),
            },
            index=self._future_index(steps),
        )
        logger.info(f"Generated {steps} predictions for {self.__class__.__name__}")
        return predictions

    def evaluate(self, y_true: Union[pd.DataFrame, pd.Series], y_pred: pd.DataFrame) -> float:
        """
        Mean Squared Error between observed prices and the 'forecast' column.

        Returns:
            MSE over the common length. Returns inf if either input is empty.
        """
        actual = y_true.iloc[:, 0] if isinstance(y_true, pd.DataFrame) else y_true
        if actual.empty or y_pred.empty:
            logger.warning("Empty inputs provided for evaluation.")
            return float("inf")
        n = min(len(actual), len(y_pred))
        return float(np.mean((actual.to_numpy()[:n] - y_pred["forecast"].to_numpy()[:n]) ** 2))

    def summary(self) -> Dict[str, Any]:
        """
        Summary statistics and the coefficient table of the fitted model.

        Raises:
            ValueError: If the model is not fitted.
        """
        if not self.fitted:
            raise ValueError("Model must be fitted before summarizing.")
        return {
            "model": self.name,
            "last_fit_timestamp": self.last_fit_timestamp,
            **self.fitted_model.summary(),
            "coefficients": self.fitted_model.coefficient_table(),
        }

    def get_valid_params(self) -> Set[str]:
        """
        Get the set of valid parameter names for ARIMA models.

        Returns:
            Set of valid parameter names.
        """
        return {
            "preprocessing", "include_mean", "method", "maxiter", "timeout", "tol",
            "confidence_level", "distribution",
        }
