"""Immutable containers for price series and their stationary transforms."""

from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd


def _readonly(values: np.ndarray) -> np.ndarray:
    values = np.array(values, dtype=float)
    values.setflags(write=False)
    return values


@dataclass(frozen=True, eq=False)
class TimeSeries:
    """
    Ordered sequence of (timestamp, value) observations.

    Attributes:
        index: Strictly increasing, unique index (DatetimeIndex for market data,
            RangeIndex when no timestamps are available).
        values: Observed values as a read-only float array.
        name: Optional series name, carried through to pandas conversions.
    """

    index: pd.Index
    values: np.ndarray
    name: Optional[str] = None

    def __post_init__(self) -> None:
        values = _readonly(self.values)
        if values.ndim != 1:
            raise ValueError("TimeSeries values must be one-dimensional.")
        if len(self.index) != len(values):
            raise ValueError(
                f"Index length ({len(self.index)}) does not match values length ({len(values)})."
            )
        if not self.index.is_unique or not self.index.is_monotonic_increasing:
            raise ValueError("TimeSeries index must be strictly increasing.")
        if not np.all(np.isfinite(values)):
            raise ValueError("TimeSeries values cannot contain NaN or infinite values.")
        object.__setattr__(self, "values", values)

    def __len__(self) -> int:
        return len(self.values)

    @classmethod
    def from_series(cls, series: pd.Series) -> "TimeSeries":
        """Build a TimeSeries from a pandas Series, keeping its index and name."""
        if not isinstance(series, pd.Series):
            raise ValueError("series must be a pandas Series.")
        name = None if series.name is None else str(series.name)
        return cls(index=series.index, values=series.to_numpy(dtype=float), name=name)

    @classmethod
    def from_values(cls, values: Sequence[float], name: Optional[str] = None) -> "TimeSeries":
        """Build a TimeSeries over a positional index."""
        return cls(index=pd.RangeIndex(len(values)), values=np.asarray(values, dtype=float), name=name)

    def to_series(self) -> pd.Series:
        return pd.Series(np.array(self.values), index=self.index, name=self.name)


SeriesLike = Union[TimeSeries, pd.Series, pd.DataFrame, Sequence[float], np.ndarray]


def as_timeseries(data: SeriesLike) -> TimeSeries:
    """
    Coerce supported inputs to a TimeSeries.

    Args:
        data: TimeSeries, pandas Series, single-column DataFrame or a 1-D sequence.

    Returns:
        TimeSeries view of the input.

    Raises:
        ValueError: If a DataFrame has more than one column or the input is not one-dimensional.
    """
    if isinstance(data, TimeSeries):
        return data
    if isinstance(data, pd.DataFrame):
        if data.shape[1] != 1:
            raise ValueError("Univariate ARIMA models require a single-column DataFrame.")
        return TimeSeries.from_series(data.iloc[:, 0])
    if isinstance(data, pd.Series):
        return TimeSeries.from_series(data)
    return TimeSeries.from_values(np.asarray(data, dtype=float))


@dataclass(frozen=True, eq=False)
class StationaryResult:
    """
    Series obtained from a TimeSeries by an optional log transform and d-fold differencing.

    Attributes:
        values: Transformed values, length ``len(source) - diff_order``.
        index: Index of the transformed values (source index minus the first d entries).
        source: The untransformed input series.
        log: Whether the natural log was applied before differencing.
        diff_order: Number of first differences applied.
        anchors: Last value of each differencing level, from level 0 (log/levels)
            up to level d-1. Used to integrate forecasts back to levels.
    """

    values: np.ndarray
    index: pd.Index
    source: TimeSeries
    log: bool = False
    diff_order: int = 0
    anchors: Tuple[float, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", _readonly(self.values))
        object.__setattr__(self, "anchors", tuple(float(a) for a in self.anchors))
        if len(self.anchors) != self.diff_order:
            raise ValueError("StationaryResult needs exactly one anchor per differencing level.")

    def __len__(self) -> int:
        return len(self.values)

    def to_series(self) -> pd.Series:
        return pd.Series(np.array(self.values), index=self.index, name=self.source.name)
