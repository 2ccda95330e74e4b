"""Module for managing price datasets in the forecasting framework.

This module provides the TimeSeriesDataset class to load a price column from CSV, index it by
date, split off a hold-out period, and save forecasts, coefficients and metrics. It stands in
for an external market-data provider: the rest of the framework only needs an ordered,
timestamped series.
"""

import logging
import os
from typing import Dict, Optional

import numpy as np
import pandas as pd

from utils.timeseries import TimeSeries

logger = logging.getLogger(__name__)


class TimeSeriesDataset:
    """Class for managing a univariate price series: loading, splitting, and saving results."""

    def __init__(
        self,
        dataset_name: str,
        config: Dict,
        data: Optional[pd.DataFrame] = None,
        column: Optional[str] = None,
        freq: Optional[str] = None,
        date_column: Optional[str] = None,
    ) -> None:
        """
        Initialize the TimeSeriesDataset.

        Args:
            dataset_name: Name of the dataset, used to load from config if data is None.
            config: Configuration dictionary (e.g., from config.yaml).
            data: Optional DataFrame containing the prices. If None, loads from the file in config.
            column: Optional price column. If None, uses config or the only numeric column.
            freq: Optional frequency of the data (e.g., 'D', 'MS'). If None, uses config or infers it.
            date_column: Name of the date column. If None, uses config or 'Date'.

        Raises:
            ValueError: If dataset_name is invalid or the price column cannot be determined.
            FileNotFoundError: If data is None and the file specified in config does not exist.
        """
        if not dataset_name:
            raise ValueError("dataset_name cannot be empty.")
        if data is None and (dataset_name not in config.get("datasets", {})):
            raise ValueError(f"Dataset '{dataset_name}' not found in config['datasets'].")
        if freq is not None and not isinstance(freq, str):
            raise ValueError("freq must be a string (e.g., 'D', 'MS').")

        dataset_config = config.get("datasets", {}).get(dataset_name, {})
        self.name = dataset_name
        self.config = config
        self.date_column = date_column or dataset_config.get("date_column", "Date")
        self.path = dataset_config["path"] if data is None else None
        config_columns = dataset_config.get("columns")
        self.column = column or (config_columns[0] if config_columns else None)
        self.freq = freq if freq is not None else dataset_config.get("freq")
        self.series = self._prepare_data(data.copy() if data is not None else self._load_data())
        self.development_data: Optional[pd.DataFrame] = None
        self.test_data: Optional[pd.DataFrame] = None
        logger.info(f"TimeSeriesDataset '{self.name}' initialized. Column: {self.column}, Freq: {self.freq}")

    def _load_data(self) -> pd.DataFrame:
        """
        Load data from the CSV file specified in the config.

        Returns:
            DataFrame containing the loaded data.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the data is empty or contains no numeric columns.
            RuntimeError: If CSV parsing fails.
        """
        if not os.path.exists(self.path):
            raise FileNotFoundError(f"Dataset file not found: {self.path}")
        try:
            df = pd.read_csv(self.path)
        except pd.errors.ParserError as e:
            logger.error(f"Failed to parse CSV file {self.path}: {str(e)}")
            raise RuntimeError(f"Failed to parse CSV file: {str(e)}")
        if df.empty:
            raise ValueError(f"Dataset '{self.path}' is empty.")
        if not df.select_dtypes(include=np.number).columns.tolist():
            raise ValueError(f"Dataset '{self.path}' contains no numeric columns.")
        logger.info(f"Dataset '{self.path}' loaded with {len(df)} rows.")
        return df

    def _prepare_data(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Prepare data by setting a datetime index and selecting the price column.

        Args:
            df: Input DataFrame to prepare.

        Returns:
            Single-column DataFrame sorted by date.

        Raises:
            ValueError: If the column is missing, data is empty, or contains infinite values.
        """
        if df.empty:
            raise ValueError("Input DataFrame cannot be empty.")

        if isinstance(df.index, pd.DatetimeIndex):
            logger.info("DataFrame already has a DatetimeIndex. Using it.")
        elif self.date_column in df.columns:
            try:
                df[self.date_column] = pd.to_datetime(df[self.date_column])
            except (ValueError, TypeError) as e:
                logger.error(f"Failed to convert '{self.date_column}' to datetime: {str(e)}")
                raise ValueError(f"Invalid date column: {str(e)}")
            df = df.set_index(self.date_column)
        else:
            logger.warning(f"No DatetimeIndex or '{self.date_column}' column found. Using default RangeIndex.")
            df.index = pd.RangeIndex(len(df))

        if isinstance(df.index, pd.DatetimeIndex):
            df = df[~df.index.duplicated(keep="last")].sort_index()
            if self.freq is None:
                self.freq = pd.infer_freq(df.index) if len(df) >= 3 else None
                logger.info(f"Inferred frequency: {self.freq}")
            if self.freq:
                df = df.asfreq(self.freq)

        if self.column is None:
            numeric = df.select_dtypes(include=np.number).columns.tolist()
            if len(numeric) != 1:
                raise ValueError(f"Specify the price column; numeric columns found: {numeric}")
            self.column = numeric[0]
            logger.info(f"No column provided. Using the only numeric column: {self.column}")
        if self.column not in df.columns:
            raise ValueError(f"Missing column in dataset: {self.column}")
        df = df[[self.column]]

        if df.isna().any().any():
            logger.warning("NaN values detected in data. Dropping NaNs.")
            df = df.dropna()
        if np.any(np.isinf(df.values)):
            raise ValueError("Data contains infinite values.")
        return df

    def split_data(self, holdout: int) -> None:
        """
        Split data into development and test sets.

        Args:
            holdout: Number of final observations to reserve for the test set.

        Raises:
            ValueError: If the dataset is too short for the hold-out.
        """
        if not isinstance(holdout, int) or holdout < 1:
            raise ValueError("holdout must be a positive integer.")
        if len(self.series) <= holdout:
            raise ValueError(f"Dataset is too short ({len(self.series)} rows) for a hold-out of {holdout}.")

        self.development_data = self.series.iloc[:-holdout]
        self.test_data = self.series.iloc[-holdout:]
        logger.info(
            f"Data split into development set ({len(self.development_data)} rows) and test set ({len(self.test_data)} rows)."
        )

    def to_timeseries(self, development_only: bool = False) -> TimeSeries:
        """
        Return the price column as a TimeSeries.

        Args:
            development_only: Use only the development set (requires ``split_data``).
        """
        df = self.get_development_data() if development_only else self.series
        return TimeSeries.from_series(df[self.column])

    def get_development_data(self) -> pd.DataFrame:
        """
        Return the development dataset.

        Raises:
            ValueError: If development_data is not set (call split_data() first).
        """
        if self.development_data is None:
            raise ValueError("Data has not been split yet. Call split_data() first.")
        return self.development_data

    def get_test_data(self) -> pd.DataFrame:
        """
        Return the test dataset.

        Raises:
            ValueError: If test_data is not set (call split_data() first).
        """
        if self.test_data is None:
            raise ValueError("Data has not been split yet. Call split_data() first.")
        return self.test_data

    def save_results(
        self,
        predictions: pd.DataFrame,
        model_name: str,
        coefficients: Optional[pd.DataFrame] = None,
        metrics: Optional[Dict[str, float]] = None,
        output_dir: str = "results",
    ) -> Dict[str, str]:
        """
        Save forecasts, the coefficient table and metrics to CSV files.

        Args:
            predictions: Forecast DataFrame ('forecast', 'lower', 'upper').
            model_name: Name of the model (e.g., 'arima').
            coefficients: Optional coefficient table of the fitted model.
            metrics: Optional hold-out metrics.
            output_dir: Root directory for the result files.

        Returns:
            Mapping of result kind to written path.

        Raises:
            ValueError: If predictions are empty or model_name is empty.
            RuntimeError: If file saving fails due to I/O errors.
        """
        if not model_name:
            raise ValueError("model_name cannot be empty.")
        if not isinstance(predictions, pd.DataFrame) or predictions.empty:
            raise ValueError("predictions must be a non-empty DataFrame.")

        paths = {"predictions": os.path.join(output_dir, "predictions", f"{self.name}_{model_name}_predictions.csv")}
        if coefficients is not None:
            paths["coefficients"] = os.path.join(output_dir, "models", f"{self.name}_{model_name}_coefficients.csv")
        if metrics:
            paths["metrics"] = os.path.join(output_dir, "metrics", f"{self.name}_{model_name}_metrics.csv")

        try:
            for path in paths.values():
                os.makedirs(os.path.dirname(path), exist_ok=True)
            predictions.to_csv(paths["predictions"])
            if coefficients is not None:
                coefficients.to_csv(paths["coefficients"])
            if metrics:
                pd.DataFrame([{"dataset": self.name, "model": model_name, **metrics}]).to_csv(
                    paths["metrics"], index=False
                )
        except OSError as e:
            logger.error(f"Failed to save results: {str(e)}")
            raise RuntimeError(f"Failed to save results: {str(e)}")
        logger.info(f"Saved results for model '{model_name}' on dataset '{self.name}': {paths}")
        return paths
