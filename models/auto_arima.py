"""Module for ARIMA forecasting with automatic order selection by AIC."""

import logging
from typing import Any, Dict, Optional, Set

import pandas as pd

from models.base_arima import ARIMABaseForecaster
from models.model_registry import register_model
from models.order_selection import OrderSelectionResult, select_order
from models.results import FittedModel
from utils.hyperopt.grid_params import generate_order_grid
from utils.timeseries import TimeSeries

logger = logging.getLogger(__name__)


@register_model("auto_arima", is_univariate=True)
class AutoARIMAForecaster(ARIMABaseForecaster):
    """
    ARIMA forecasting model whose order is chosen by an exhaustive AIC grid search.

    The search fits every candidate with ``method`` (CSS by default, for speed) and
    refits the winner with ``refit_method`` (exact MLE by default). When the
    preprocessor decides a differencing order, the grid is restricted to that d.
    """

    def __init__(self, model_params: Dict[str, Any], num_features: int, forecast_steps: int) -> None:
        """
        Initialize the automatic ARIMA forecaster.

        Args:
            model_params: Search space ('search'), 'max_params', 'n_jobs', 'method',
                'refit_method' and the shared estimation settings.
            num_features: Number of features in the time series data (must be 1).
            forecast_steps: Number of steps to forecast.
        """
        model_params = {"method": "css", "refit_method": "mle", **model_params}
        super().__init__(model_params=model_params, num_features=num_features, forecast_steps=forecast_steps)
        self.selection: Optional[OrderSelectionResult] = None

    def _validate_model_params(self) -> None:
        """
        Validate the search settings.

        Raises:
            ValueError: If n_jobs is not a positive integer or the search space is invalid.
        """
        n_jobs = self.model_params.get("n_jobs", 1)
        if not isinstance(n_jobs, int) or n_jobs < 1:
            raise ValueError("n_jobs must be a positive integer.")
        super()._validate_model_params()
        self.grid = generate_order_grid(self.model_params.get("search"), self.model_params.get("max_params"))

    def _estimate(self, levels: TimeSeries) -> FittedModel:
        grid = self.grid
        if self.preprocessor.diff_order is not None:
            grid = [order for order in grid if order.d == self.preprocessor.diff_order]
            if not grid:
                raise ValueError(
                    f"No candidate order has d={self.preprocessor.diff_order} chosen by preprocessing."
                )
        refit_method = self.model_params.get("refit_method")
        refit = None
        if refit_method and refit_method != self.model_params["method"]:
            refit = self._make_estimator(refit_method)
        self.selection = select_order(
            levels,
            grid=grid,
            estimator=self._make_estimator(),
            n_jobs=self.model_params.get("n_jobs", 1),
            refit_estimator=refit,
            model_name=self.name,
        )
        return self.selection.best

    @property
    def aic_table(self) -> pd.DataFrame:
        """Per-candidate AIC table of the last search."""
        if self.selection is None:
            raise ValueError("Model must be fitted before reading the AIC table.")
        return self.selection.table

    def get_valid_params(self) -> Set[str]:
        return super().get_valid_params() | {"search", "max_params", "n_jobs", "refit_method"}
