"""Module for preprocessing price series in the forecasting framework.

This module provides the Preprocessor class that applies an optional log transform and
decides the differencing order of a price series, and inverts the log transform on
forecasts so they are reported in the original price scale.
"""

import logging
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd
from schema import SchemaError

from utils.config_utils import validate_preprocessing
from utils.stationarity import determine_differencing_order
from utils.timeseries import SeriesLike, StationaryResult, TimeSeries, as_timeseries
from utils.transforms import exp_transform, log_transform, make_stationary

# Set up a logger for the module
logger = logging.getLogger(__name__)


class Preprocessor:
    """
    Orchestrates the log and differencing transformations applied before ARIMA estimation.

    The differencing step only decides the order d: the estimator applies the
    differencing itself so that the integration anchors stay attached to the
    fitted model.

    Attributes:
        config (Dict): The configuration dictionary that defines which steps are
            enabled and their parameters.
        preprocessing_steps (Dict[str, Dict]): Per-step settings with defaults filled in.
        diff_order (Optional[int]): Differencing order chosen by ``fit``; None when
            differencing is disabled and the model's own d applies.
        name (Optional[str]): Name of the fitted series.
    """

    def __init__(self, config: Dict):
        """
        Initializes the Preprocessor with a given configuration.

        Args:
            config (Dict): A dictionary specifying the preprocessing steps and
                their parameters.

        Raises:
            ValueError: If the configuration is invalid.
        """
        logger.debug(f"Received config for validation: {config}")
        try:
            validate_preprocessing(config)
        except SchemaError as e:
            logger.error(f"Configuration validation failed: {str(e)}")
            raise ValueError(f"Configuration validation failed: {str(e)}")
        self.config = config
        self.diff_order: Optional[int] = None
        self.name: Optional[str] = None
        self.fitted = False

        self.preprocessing_steps = {
            name: {
                **self.config.get(name, {}),
                "enabled": self.config.get(name, {}).get("enabled", False),
            }
            for name in ("log_transform", "differencing")
        }
        self._initialize_preprocessing_defaults()
        active = [step for step, settings in self.preprocessing_steps.items() if settings["enabled"]]
        logger.info(f"Active preprocessing steps: {', '.join(active) if active else 'None'}")

    # ---------------------------------------------------------------------------------
    # Defaults & validation
    # ---------------------------------------------------------------------------------

    def _initialize_preprocessing_defaults(self) -> None:
        """Fills missing differencing fields so an enabled step has every parameter it needs."""
        differencing = self.preprocessing_steps["differencing"]
        if not differencing["enabled"]:
            return
        differencing.setdefault("auto", "none")
        differencing.setdefault("order", 1 if differencing["auto"] == "none" else 0)
        differencing.setdefault("max_d", 2)
        differencing.setdefault("p_value_threshold", 0.05)

    @property
    def log_enabled(self) -> bool:
        return self.preprocessing_steps["log_transform"]["enabled"]

    def _validate_series(self, series: SeriesLike, context: str) -> TimeSeries:
        """
        Converts the input to a TimeSeries, rejecting NaN or Inf values with a clear message.

        Raises:
            ValueError: If any NaN or infinite values are found.
        """
        if isinstance(series, (pd.Series, pd.DataFrame)):
            array = series.to_numpy(dtype=float)
        elif isinstance(series, TimeSeries):
            array = series.values
        else:
            array = np.asarray(series, dtype=float)
        if np.isnan(array).any():
            raise ValueError(f"NaN values found in '{context}' data. Please handle them before preprocessing.")
        if np.isinf(array).any():
            raise ValueError(f"Infinite values found in '{context}' data. Please handle them before preprocessing.")
        return as_timeseries(series)

    # ---------------------------------------------------------------------------------
    # Fit / transform
    # ---------------------------------------------------------------------------------

    def fit(self, series: SeriesLike) -> "Preprocessor":
        """
        Decides the differencing order on the (log) levels of a training series.

        Args:
            series: Training price series.

        Returns:
            The fitted Preprocessor.

        Raises:
            ValueError: If the series contains NaN/Inf values.
            DomainError: If the log transform is enabled and a price is not positive.
        """
        levels = self.transform(series, context="training")
        self.name = levels.name
        settings = self.preprocessing_steps["differencing"]
        if settings["enabled"]:
            if settings["auto"] == "none":
                self.diff_order = settings["order"]
            else:
                self.diff_order = determine_differencing_order(
                    levels.values,
                    test=settings["auto"],
                    max_d=settings["max_d"],
                    threshold=settings["p_value_threshold"],
                )
            logger.info(f"Differencing order for '{self.name}': d={self.diff_order} (auto={settings['auto']})")
        self.fitted = True
        return self

    def transform(self, series: SeriesLike, context: str = "input") -> TimeSeries:
        """
        Applies the log transform (if enabled) and returns the level series the estimator sees.

        Args:
            series: Price series.
            context: Description used in error messages.

        Returns:
            TimeSeries of log prices, or the prices themselves when logging is disabled.
        """
        source = self._validate_series(series, context)
        if not self.log_enabled:
            return source
        return TimeSeries(index=source.index, values=log_transform(source.values), name=source.name)

    def fit_transform(self, series: SeriesLike) -> TimeSeries:
        return self.fit(series).transform(series, context="training")

    def stationary(self, series: SeriesLike, diff_order: Optional[int] = None) -> StationaryResult:
        """
        Log-transforms and differences a series in one step.

        Args:
            series: Price series.
            diff_order: Differencing order; defaults to the fitted order (0 when none was fitted).

        Returns:
            StationaryResult carrying the anchors needed to invert the differencing.
        """
        d = diff_order if diff_order is not None else (self.diff_order or 0)
        return make_stationary(self._validate_series(series, "input"), log=self.log_enabled, diff_order=d)

    def inverse_transform(self, values: Any) -> np.ndarray:
        """Maps level-scale values (e.g. forecasts and bounds) back to the price scale."""
        values = np.asarray(values, dtype=float)
        return exp_transform(values) if self.log_enabled else values
