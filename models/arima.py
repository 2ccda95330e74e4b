"""Module for non-seasonal ARIMA time series forecasting model."""

import logging
from typing import Any, Dict, Set

from models.base_arima import ARIMABaseForecaster
from models.model_registry import register_model
from models.results import ARIMAOrder, FittedModel
from utils.timeseries import TimeSeries

logger = logging.getLogger(__name__)


@register_model("arima", is_univariate=True)
class ARIMAForecaster(ARIMABaseForecaster):
    """ARIMA forecasting model with a fixed (p, d, q) order."""

    def __init__(self, model_params: Dict[str, Any], num_features: int, forecast_steps: int) -> None:
        """
        Initialize the ARIMA forecaster.

        Args:
            model_params: Model-specific parameters (p, d, q and estimation settings).
            num_features: Number of features in the time series data (must be 1).
            forecast_steps: Number of steps to forecast.
        """
        super().__init__(model_params=model_params, num_features=num_features, forecast_steps=forecast_steps)

    def _validate_model_params(self) -> None:
        """
        Validate the ARIMA orders.

        Raises:
            ValueError: If an order is missing or not a non-negative integer.
        """
        for param in ("p", "d", "q"):
            if param not in self.model_params:
                raise ValueError(f"Missing required parameter: {param}")
            if not isinstance(self.model_params[param], int) or self.model_params[param] < 0:
                raise ValueError(f"Parameter {param} must be a non-negative integer.")
        super()._validate_model_params()

    @property
    def order(self) -> ARIMAOrder:
        """Configured order; d is replaced by the preprocessor's choice once fitted with differencing enabled."""
        d = self.model_params["d"]
        if self.preprocessor.diff_order is not None:
            d = self.preprocessor.diff_order
        return ARIMAOrder(self.model_params["p"], d, self.model_params["q"])

    def _estimate(self, levels: TimeSeries) -> FittedModel:
        order = self.order
        if order.d != self.model_params["d"]:
            logger.info(f"Preprocessing overrides d={self.model_params['d']} with d={order.d}")
        return self._make_estimator().fit(levels, order)

    def get_valid_params(self) -> Set[str]:
        return super().get_valid_params() | {"p", "d", "q"}
