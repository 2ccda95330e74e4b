"""Log and differencing transforms used to make price series stationary.

Every function is pure: inputs are never modified and a new array (or
StationaryResult) is returned. Inverses are provided so forecasts produced on
the stationary scale can be mapped back to prices.
"""

import logging
from typing import List, Sequence, Tuple

import numpy as np

from utils.exceptions import DomainError, InsufficientDataError
from utils.timeseries import SeriesLike, StationaryResult, as_timeseries

logger = logging.getLogger(__name__)


def log_transform(values: Sequence[float]) -> np.ndarray:
    """
    Apply the natural logarithm.

    Args:
        values: Strictly positive observations.

    Returns:
        Log of the values.

    Raises:
        DomainError: If any value is zero or negative.
    """
    values = np.asarray(values, dtype=float)
    if np.any(values <= 0):
        bad = int(np.sum(values <= 0))
        logger.error(f"Log transform rejected {bad} non-positive value(s).")
        raise DomainError(f"Log transform requires strictly positive values; found {bad} non-positive value(s).")
    return np.log(values)


def exp_transform(values: Sequence[float]) -> np.ndarray:
    """Inverse of :func:`log_transform`."""
    return np.exp(np.asarray(values, dtype=float))


def difference(values: Sequence[float], order: int = 1) -> np.ndarray:
    """
    Apply the first difference ``y'_t = y_t - y_{t-1}`` ``order`` times.

    Args:
        values: Input observations.
        order: Number of differencing passes (d).

    Returns:
        Differenced values of length ``len(values) - order``.

    Raises:
        ValueError: If order is negative.
        InsufficientDataError: If the series has no more than ``order`` values.
    """
    if not isinstance(order, (int, np.integer)) or order < 0:
        raise ValueError("order must be a non-negative integer.")
    values = np.asarray(values, dtype=float)
    if order > 0 and len(values) <= order:
        raise InsufficientDataError(
            f"Series of length {len(values)} is too short for differencing of order {order}."
        )
    return np.diff(values, n=order) if order else values.copy()


def difference_anchors(values: Sequence[float], order: int) -> Tuple[float, ...]:
    """
    Last value of each differencing level 0..order-1.

    These are the seeds that :func:`integrate` needs to continue a differenced
    sequence past the end of the original series.
    """
    level = np.asarray(values, dtype=float)
    anchors: List[float] = []
    for _ in range(order):
        anchors.append(float(level[-1]))
        level = np.diff(level)
    return tuple(anchors)


def integrate(diffs: Sequence[float], anchors: Sequence[float]) -> np.ndarray:
    """
    Undo :func:`difference` for values that follow the anchored series.

    Args:
        diffs: Values on the d-times differenced scale, starting right after the
            last observation used to compute ``anchors``.
        anchors: Output of :func:`difference_anchors` (one entry per level).

    Returns:
        Values on the level scale.
    """
    result = np.asarray(diffs, dtype=float)
    for anchor in reversed(tuple(anchors)):
        result = anchor + np.cumsum(result)
    return result


def reconstruct(diffs: Sequence[float], initial_values: Sequence[float]) -> np.ndarray:
    """
    Rebuild a full series from its d-times differenced values and the first d originals.

    Args:
        diffs: Output of ``difference(x, d)``.
        initial_values: ``x[:d]``.

    Returns:
        The reconstructed series ``x`` (length ``len(diffs) + d``).
    """
    initial_values = np.asarray(initial_values, dtype=float)
    d = len(initial_values)
    # heads[k] is the first value of differencing level k
    heads = []
    level = initial_values
    for _ in range(d):
        heads.append(level[0])
        level = np.diff(level)
    result = np.asarray(diffs, dtype=float)
    for head in reversed(heads):
        result = np.concatenate([[head], head + np.cumsum(result)])
    return result


def log_returns(values: Sequence[float]) -> np.ndarray:
    """Log returns ``log(y_t) - log(y_{t-1})``; length ``n - 1``."""
    return difference(log_transform(values), 1)


def make_stationary(series: SeriesLike, log: bool = False, diff_order: int = 0) -> StationaryResult:
    """
    Apply an optional log transform followed by d-fold differencing.

    Args:
        series: Source observations (TimeSeries, pandas Series or sequence).
        log: Whether to take the natural log first.
        diff_order: Number of first differences to apply.

    Returns:
        StationaryResult of length ``n - diff_order`` referencing the source series.

    Raises:
        DomainError: If ``log`` is requested and a value is not strictly positive.
        InsufficientDataError: If the series is too short for ``diff_order``.
    """
    source = as_timeseries(series)
    levels = log_transform(source.values) if log else np.array(source.values)
    values = difference(levels, diff_order)
    anchors = difference_anchors(levels, diff_order)
    logger.debug(f"Transformed series of length {len(source)} with log={log}, d={diff_order} -> {len(values)} values")
    return StationaryResult(
        values=values,
        index=source.index[diff_order:],
        source=source,
        log=log,
        diff_order=diff_order,
        anchors=anchors,
    )
