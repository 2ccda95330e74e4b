"""Module for visualizing price series, correlograms and forecasts.

This module provides the Visualizer class with methods to create and save plots of the
raw and transformed series, ACF/PACF correlograms with white-noise bands, and forecasts
with confidence intervals. Plotting is a presentation layer used by the scripts only.
"""

import logging
import os
from typing import Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from utils.correlation import CorrelationResult

logger = logging.getLogger(__name__)


class Visualizer:
    """Class for visualizing price series, correlations and forecasts."""

    @staticmethod
    def _save(output_path: str, description: str) -> None:
        try:
            plt.savefig(output_path)
        except OSError as e:
            logger.error(f"Failed to save {description} plot: {str(e)}", exc_info=True)
            raise RuntimeError(f"Failed to save {description} plot: {str(e)}")
        finally:
            plt.close()
        logger.info(f"Saved {description} plot to {output_path}")

    @staticmethod
    def plot_series(
        dataset_name: str, series: pd.Series, title: str, ylabel: str, output_dir: str = "results/plots"
    ) -> str:
        """
        Plot a price (or transformed) series over time.

        Args:
            dataset_name: Name of the dataset for organizing output files.
            series: Series to plot.
            title: Plot title, also used in the file name.
            ylabel: Label of the y axis.
            output_dir: Root directory for plots.

        Returns:
            Path of the saved figure.

        Raises:
            ValueError: If the series is empty or contains NaN values.
            RuntimeError: If plot saving fails due to I/O errors.
        """
        if series.empty:
            raise ValueError("series cannot be empty.")
        if series.isna().any():
            raise ValueError("series cannot contain NaN values.")

        target_dir = os.path.join(output_dir, dataset_name)
        os.makedirs(target_dir, exist_ok=True)
        plt.figure(figsize=(10, 6))
        plt.plot(series.index, series.values, label=series.name or "value")
        plt.title(f"{dataset_name} - {title}")
        plt.xlabel("Date")
        plt.ylabel(ylabel)
        plt.legend()
        plt.grid(True)
        output_path = os.path.join(target_dir, f"{title.lower().replace(' ', '_')}.png")
        Visualizer._save(output_path, title)
        return output_path

    @staticmethod
    def plot_correlations(
        dataset_name: str,
        acf_result: CorrelationResult,
        pacf_result: CorrelationResult,
        alpha: float = 0.05,
        output_dir: str = "results/plots",
    ) -> str:
        """
        Plot ACF and PACF side by side with the white-noise significance band.

        Args:
            dataset_name: Name of the dataset for organizing output files.
            acf_result: Output of ``utils.correlation.acf``.
            pacf_result: Output of ``utils.correlation.pacf``.
            alpha: Significance level of the band.
            output_dir: Root directory for plots.

        Returns:
            Path of the saved figure.

        Raises:
            ValueError: If the results are of the wrong kind.
            RuntimeError: If plot saving fails due to I/O errors.
        """
        if acf_result.kind != "acf" or pacf_result.kind != "pacf":
            raise ValueError("Expected an ACF result and a PACF result.")

        target_dir = os.path.join(output_dir, dataset_name)
        os.makedirs(target_dir, exist_ok=True)
        fig, axes = plt.subplots(1, 2, figsize=(12, 4))
        for ax, result in zip(axes, (acf_result, pacf_result)):
            band = result.significance_band(alpha)
            ax.bar(result.lags, result.values, width=0.3)
            ax.axhline(band, linestyle="--", color="grey")
            ax.axhline(-band, linestyle="--", color="grey")
            ax.axhline(0.0, color="black", linewidth=0.8)
            ax.set_title(f"{dataset_name} - {result.kind.upper()}")
            ax.set_xlabel("Lag")
        output_path = os.path.join(target_dir, "correlations.png")
        Visualizer._save(output_path, "correlation")
        return output_path

    @staticmethod
    def plot_forecast(
        dataset_name: str,
        model_name: str,
        history: pd.Series,
        predictions: pd.DataFrame,
        actual: Optional[pd.Series] = None,
        output_dir: str = "results/plots",
    ) -> str:
        """
        Plot the price history, the point forecast and its confidence band.

        Args:
            dataset_name: Name of the dataset for organizing output files.
            model_name: Name of the forecasting model.
            history: Observed prices used for fitting.
            predictions: DataFrame with 'forecast', 'lower' and 'upper' columns.
            actual: Optional hold-out prices to overlay.
            output_dir: Root directory for plots.

        Returns:
            Path of the saved figure.

        Raises:
            ValueError: If inputs are empty, columns are missing, or values are NaN.
            RuntimeError: If plot saving fails due to I/O errors.
        """
        if history.empty or predictions.empty:
            raise ValueError("history and predictions cannot be empty.")
        missing = {"forecast", "lower", "upper"} - set(predictions.columns)
        if missing:
            raise ValueError(f"predictions is missing columns: {sorted(missing)}")
        if np.any(np.isnan(predictions[["forecast", "lower", "upper"]].to_numpy())):
            raise ValueError("predictions cannot contain NaN values.")

        target_dir = os.path.join(output_dir, dataset_name)
        os.makedirs(target_dir, exist_ok=True)
        plt.figure(figsize=(10, 6))
        plt.plot(history.index, history.values, label="Observed")
        plt.plot(predictions.index, predictions["forecast"].values, label="Forecast", marker="x")
        plt.fill_between(
            predictions.index, predictions["lower"].values, predictions["upper"].values, alpha=0.2, label="Interval"
        )
        if actual is not None and not actual.empty:
            plt.plot(actual.index, actual.values, label="Actual", marker="o")
        plt.title(f"{dataset_name} - {model_name} forecast ({len(predictions)} steps)")
        plt.xlabel("Date")
        plt.ylabel(history.name or "price")
        plt.legend()
        plt.grid(True)
        output_path = os.path.join(target_dir, f"{model_name}_forecast.png")
        Visualizer._save(output_path, "forecast")
        return output_path
