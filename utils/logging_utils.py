"""Module for logging estimation-related events in the forecasting framework.

This module provides functions to log the start and completion of model fitting,
failed order-search candidates, and the order chosen by the AIC search, ensuring
consistent messages across the ARIMA forecasters and the order selection routine.
"""

import logging
from typing import Any, Dict

logger = logging.getLogger(__name__)


def log_fit_start(model_name: str, model_object: Any, nobs: int) -> None:
    """
    Log the start of model fitting.

    Args:
        model_name: Name of the model (e.g., 'arima', 'auto_arima').
        model_object: Instance of the model being fitted.
        nobs: Number of observations passed to the fit.

    Raises:
        ValueError: If model_name is empty or nobs is not a positive integer.
    """
    if not model_name:
        raise ValueError("model_name cannot be empty.")
    if not isinstance(nobs, int) or nobs < 1:
        raise ValueError("nobs must be a positive integer.")

    logger.info(f"[{model_name}] Starting fit of {type(model_object).__name__} on {nobs} observations")


def log_fit_success(model_name: str, order: Any, aic: float, sigma2: float) -> None:
    """
    Log the successful completion of model fitting.

    Args:
        model_name: Name of the model.
        order: Fitted (p, d, q) order.
        aic: Akaike information criterion of the fitted model.
        sigma2: Estimated innovation variance.

    Raises:
        ValueError: If model_name is empty, aic is not a number, or sigma2 is not positive.
    """
    if not model_name:
        raise ValueError("model_name cannot be empty.")
    if not isinstance(aic, (int, float)):
        raise ValueError("aic must be a number.")
    if not isinstance(sigma2, (int, float)) or sigma2 <= 0:
        raise ValueError("sigma2 must be a positive number.")

    logger.info(f"[{model_name}] Fit completed for {order}. AIC: {float(aic):.4f}, sigma2: {float(sigma2):.6g}")


def log_candidate_failure(model_name: str, order: Any, exception: Exception) -> None:
    """
    Log an order-search candidate that could not be fitted.

    Args:
        model_name: Name of the model running the search.
        order: The (p, d, q) candidate.
        exception: Exception raised by the estimator.

    Raises:
        ValueError: If model_name is empty or exception is not an Exception.
    """
    if not model_name:
        raise ValueError("model_name cannot be empty.")
    if not isinstance(exception, Exception):
        raise ValueError("exception must be an Exception instance.")

    logger.warning(f"[{model_name}] Candidate {order} excluded ({type(exception).__name__}): {str(exception)}")


def log_best_order(model_name: str, order: Any, aic: float, n_candidates: int, n_failed: int) -> None:
    """
    Log the order selected by the AIC search.

    Args:
        model_name: Name of the model running the search.
        order: Selected (p, d, q) order.
        aic: AIC of the selected model.
        n_candidates: Total candidates in the grid.
        n_failed: Candidates excluded because fitting failed.

    Raises:
        ValueError: If model_name is empty, aic is not a number, or the counts are inconsistent.
    """
    if not model_name:
        raise ValueError("model_name cannot be empty.")
    if not isinstance(aic, (int, float)):
        raise ValueError("aic must be a number.")
    if not isinstance(n_candidates, int) or n_candidates < 1:
        raise ValueError("n_candidates must be a positive integer.")
    if not isinstance(n_failed, int) or not 0 <= n_failed < n_candidates:
        raise ValueError("n_failed must be a non-negative integer smaller than n_candidates.")

    logger.info(
        f"[{model_name}] Best order (aic): {order}, AIC: {float(aic):.4f} "
        f"({n_candidates - n_failed}/{n_candidates} candidates fitted)"
    )


def log_coefficients(model_name: str, params: Dict[str, float]) -> None:
    """
    Log estimated coefficients at debug level.

    Raises:
        ValueError: If model_name is empty or params is not a dictionary.
    """
    if not model_name:
        raise ValueError("model_name cannot be empty.")
    if not isinstance(params, dict):
        raise ValueError("params must be a dictionary.")

    formatted = ", ".join(f"{name}={value:.6f}" for name, value in params.items())
    logger.debug(f"[{model_name}] Coefficients: {formatted}")
