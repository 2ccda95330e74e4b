"""Base module for time series forecasting models.

This module defines the abstract base classes for the statistical forecasters in the
framework. It provides model initialization, preprocessing setup, hold-out evaluation,
and the fit / predict interface every registered model implements.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd

from utils.preprocessor import Preprocessor

logger = logging.getLogger(__name__)


class TSForecaster(ABC):
    """Abstract base class for time series forecasting models."""

    # Class attribute indicating if the model is univariate
    is_univariate: bool = False
    model_name: str = ""

    def __init__(self, model_params: Dict[str, Any], num_features: int, forecast_steps: int) -> None:
        """
        Initialize the forecaster with model-specific parameters.

        Args:
            model_params: Model-specific parameters (e.g., p, d, q for ARIMA).
            num_features: Number of features in the time series data (columns).
            forecast_steps: Number of steps to forecast.

        Raises:
            ValueError: If model_params is not a dictionary or forecast_steps is not positive.
        """
        if not isinstance(model_params, dict):
            raise ValueError("model_params must be a dictionary.")
        if forecast_steps < 1:
            raise ValueError("forecast_steps must be positive.")
        if num_features < 1:
            raise ValueError("num_features must be positive.")

        self.model_params = model_params
        self.num_features = num_features
        self.forecast_steps = forecast_steps
        self.model = None
        self.fitted = False
        self.last_fit_timestamp = None
        self.preprocessor = Preprocessor(self.model_params.get("preprocessing", {}))
        logger.info(f"Initialized {self.name} with params: {model_params}")

    @property
    def name(self) -> str:
        """Registry name of the model, or the class name for unregistered subclasses."""
        return self.model_name or self.__class__.__name__

    def evaluate(self, y_true: pd.DataFrame, y_pred: pd.DataFrame) -> float:
        """
        Calculate Mean Squared Error (MSE) between true and predicted values.

        Args:
            y_true: True values.
            y_pred: Predicted values.

        Returns:
            Mean Squared Error value. Returns inf if alignment fails or inputs are empty.
        """
        if y_true.empty or y_pred.empty:
            logger.warning("Empty input DataFrames provided for evaluation.")
            return float("inf")

        y_true_aligned, y_pred_aligned = y_true.align(y_pred, join="inner", axis=1)
        if y_true_aligned.empty:
            logger.warning("Could not align y_true and y_pred for evaluation.")
            return float("inf")

        mse = np.mean((y_true_aligned.values - y_pred_aligned.values) ** 2)
        return float(mse)

    def get_valid_params(self) -> set:
        """
        Get the set of valid parameter names for the model.

        Returns:
            Set of valid parameter names.
        """
        return {"preprocessing"}

    @abstractmethod
    def fit(self, *args, **kwargs) -> None:
        """
        Fit the model to the training data.

        Args:
            *args: Variable length argument list.
            **kwargs: Arbitrary keyword arguments.
        """
        pass

    @abstractmethod
    def predict(self, *args, **kwargs) -> pd.DataFrame:
        """
        Generate predictions for the specified horizon.

        Args:
            *args: Variable length argument list.
            **kwargs: Arbitrary keyword arguments.

        Returns:
            Predicted values in the original scale.
        """
        pass


class StatTSForecaster(TSForecaster, ABC):
    """Abstract base class for statistical time series forecasting models."""

    def holdout_evaluate(self, series: pd.DataFrame, holdout_size: Optional[int] = None) -> float:
        """
        Fit on all but the last ``holdout_size`` observations and score the forecast of the rest.

        Args:
            series: Full single-column price data.
            holdout_size: Observations held out. Defaults to ``forecast_steps``.

        Returns:
            Hold-out loss from ``evaluate`` in the original scale.

        Raises:
            ValueError: If the series is too short for the hold-out split.
        """
        holdout_size = holdout_size if holdout_size is not None else self.forecast_steps
        if holdout_size < 1:
            raise ValueError("holdout_size must be positive.")
        if len(series) <= 2 * holdout_size:
            raise ValueError(
                f"Series too small ({len(series)}) for a hold-out of {holdout_size} observations."
            )

        fit_set_raw = series.iloc[:-holdout_size]
        hold_out_set_raw = series.iloc[-holdout_size:]

        # Pass raw data to the fit method. The fit method will handle preprocessing.
        self.fit(fit_set_raw)
        predictions_original = self.predict(forecast_steps=holdout_size)
        return self.evaluate(hold_out_set_raw, predictions_original)
