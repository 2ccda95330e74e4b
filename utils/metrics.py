"""Module for calculating evaluation metrics for price forecasts.

This module provides functions to compute point-forecast accuracy (MAE, RMSE, MAPE, MASE)
and the empirical coverage of forecast confidence intervals on a hold-out period.
"""

import logging
from typing import Dict

import numpy as np

logger = logging.getLogger(__name__)


def _validate_pair(y_true: np.ndarray, y_pred: np.ndarray) -> None:
    if y_true.shape != y_pred.shape:
        raise ValueError(f"Shape mismatch: y_true {y_true.shape}, y_pred {y_pred.shape}")
    if y_true.size == 0:
        raise ValueError("Input arrays cannot be empty.")
    if np.any(np.isnan(y_true)) or np.any(np.isnan(y_pred)):
        raise ValueError("Input arrays cannot contain NaN values.")
    if np.any(np.isinf(y_true)) or np.any(np.isinf(y_pred)):
        raise ValueError("Input arrays cannot contain infinite values.")


def calculate_metrics(y_true: np.ndarray, y_pred: np.ndarray, epsilon: float = 1e-10) -> Dict[str, float]:
    """
    Calculate evaluation metrics: MAE, RMSE, MAPE, and MASE for price forecasts.

    Args:
        y_true: Array of actual prices.
        y_pred: Array of forecast prices.
        epsilon: Small constant to avoid division by zero in MAPE and MASE. Defaults to 1e-10.

    Returns:
        Dictionary containing the following metrics:
            - 'mae': Mean Absolute Error.
            - 'rmse': Root Mean Squared Error.
            - 'mape': Mean Absolute Percentage Error (in percentage).
            - 'mase': Mean Absolute Scaled Error, using a random-walk forecast as baseline.

    Raises:
        ValueError: If inputs have incompatible shapes, contain NaNs, or are insufficient for MASE.
    """
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    _validate_pair(y_true, y_pred)
    if epsilon <= 0:
        raise ValueError("epsilon must be positive.")
    if y_true.size <= 1:
        raise ValueError("MASE requires at least two actual values for naive forecast calculation.")

    errors = y_true - y_pred
    mae = np.mean(np.abs(errors))
    rmse = np.sqrt(np.mean(errors ** 2))
    mape = np.mean(np.abs(errors) / np.maximum(np.abs(y_true), epsilon)) * 100

    naive_error = np.mean(np.abs(y_true[1:] - y_true[:-1]))
    if naive_error < epsilon:
        logger.warning(f"Naive error is very small ({naive_error}). Using epsilon ({epsilon}) to avoid division by zero.")
        naive_error = epsilon

    return {
        "mae": float(mae),
        "rmse": float(rmse),
        "mape": float(mape),
        "mase": float(mae / naive_error),
    }


def interval_coverage(y_true: np.ndarray, lower: np.ndarray, upper: np.ndarray) -> float:
    """
    Share of actual values inside their forecast interval.

    Args:
        y_true: Array of actual values.
        lower: Lower interval bounds.
        upper: Upper interval bounds.

    Returns:
        Coverage in [0, 1].

    Raises:
        ValueError: If shapes differ, inputs contain NaNs, or a lower bound exceeds its upper bound.
    """
    y_true = np.asarray(y_true, dtype=float)
    lower = np.asarray(lower, dtype=float)
    upper = np.asarray(upper, dtype=float)
    _validate_pair(y_true, lower)
    _validate_pair(y_true, upper)
    if np.any(lower > upper):
        raise ValueError("lower bounds cannot exceed upper bounds.")
    return float(np.mean((y_true >= lower) & (y_true <= upper)))
