"""Autocorrelation, partial autocorrelation and residual whiteness tests."""

import logging
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np
from scipy import stats

from utils.exceptions import DomainError, InsufficientDataError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class CorrelationResult:
    """
    Correlation coefficients for lags ``0..max_lag``.

    Attributes:
        kind: 'acf' or 'pacf'.
        values: Coefficients indexed by lag (``values[0] == 1.0``).
        nobs: Length of the series the coefficients were computed from.
    """

    kind: str
    values: np.ndarray
    nobs: int

    @property
    def max_lag(self) -> int:
        return len(self.values) - 1

    @property
    def lags(self) -> np.ndarray:
        return np.arange(len(self.values))

    def __getitem__(self, lag: int) -> float:
        return float(self.values[lag])

    def __len__(self) -> int:
        return len(self.values)

    def significance_band(self, alpha: float = 0.05) -> float:
        return significance_band(self.nobs, alpha)

    def significant_lags(self, alpha: float = 0.05) -> np.ndarray:
        """Lags ``>= 1`` whose coefficient lies outside the white-noise band."""
        band = self.significance_band(alpha)
        lags = self.lags[1:]
        return lags[np.abs(self.values[1:]) > band]


def _validate(values: Sequence[float], max_lag: int) -> np.ndarray:
    x = np.asarray(values, dtype=float)
    if x.ndim != 1:
        raise ValueError("values must be one-dimensional.")
    if not isinstance(max_lag, (int, np.integer)) or max_lag < 1:
        raise ValueError("max_lag must be a positive integer.")
    if max_lag >= len(x):
        raise InsufficientDataError(f"max_lag ({max_lag}) must be smaller than the series length ({len(x)}).")
    if np.ptp(x) == 0:
        raise DomainError("Autocorrelation is undefined for a constant series.")
    return x


def _autocorrelations(x: np.ndarray, max_lag: int) -> np.ndarray:
    centered = x - x.mean()
    n = len(x)
    denom = centered @ centered
    r = np.empty(max_lag + 1)
    r[0] = 1.0
    for k in range(1, max_lag + 1):
        r[k] = (centered[k:] @ centered[:n - k]) / denom
    return r


def acf(values: Sequence[float], max_lag: int) -> CorrelationResult:
    """
    Sample autocorrelation function.

    ``ACF(k)`` is the lag-k autocovariance (denominator n) divided by the sample
    variance, so ``ACF(0) == 1.0``.

    Args:
        values: Observations.
        max_lag: Largest lag to compute; must be smaller than the series length.

    Returns:
        CorrelationResult of length ``max_lag + 1``.

    Raises:
        InsufficientDataError: If ``max_lag >= len(values)``.
        DomainError: If the series is constant.
    """
    x = _validate(values, max_lag)
    return CorrelationResult(kind="acf", values=_autocorrelations(x, max_lag), nobs=len(x))


def durbin_levinson(r: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Durbin-Levinson recursion on autocorrelations ``r[0..m]``.

    Returns:
        Tuple of (partial autocorrelations for lags 0..m, AR(m) coefficients).
    """
    m = len(r) - 1
    partial = np.zeros(m + 1)
    partial[0] = 1.0
    phi = np.zeros(m)
    if m == 0:
        return partial, phi
    phi[0] = r[1]
    partial[1] = r[1]
    variance = 1.0 - r[1] ** 2
    for k in range(2, m + 1):
        if variance <= 0:
            # perfectly predictable from earlier lags; higher partials are zero
            break
        prev = phi[:k - 1].copy()
        phi_kk = (r[k] - prev @ r[k - 1:0:-1]) / variance
        phi[:k - 1] = prev - phi_kk * prev[::-1]
        phi[k - 1] = phi_kk
        partial[k] = phi_kk
        variance *= 1.0 - phi_kk ** 2
    return partial, phi


def pacf(values: Sequence[float], max_lag: int) -> CorrelationResult:
    """
    Sample partial autocorrelation function via the Durbin-Levinson recursion.

    ``PACF(k)`` is the coefficient of ``y_{t-k}`` in the regression of ``y_t`` on
    ``y_{t-1}..y_{t-k}`` implied by the sample autocorrelations; ``PACF(1)``
    equals ``ACF(1)``.

    Raises:
        InsufficientDataError: If ``max_lag >= len(values)``.
        DomainError: If the series is constant.
    """
    x = _validate(values, max_lag)
    partial, _ = durbin_levinson(_autocorrelations(x, max_lag))
    return CorrelationResult(kind="pacf", values=np.clip(partial, -1.0, 1.0), nobs=len(x))


def significance_band(nobs: int, alpha: float = 0.05) -> float:
    """Half-width of the white-noise band ``z_{1-alpha/2} / sqrt(n)``."""
    if nobs < 1:
        raise ValueError("nobs must be positive.")
    if not 0.0 < alpha < 1.0:
        raise ValueError("alpha must be in (0, 1).")
    return float(stats.norm.ppf(1 - alpha / 2) / np.sqrt(nobs))


@dataclass(frozen=True)
class LjungBoxResult:
    statistic: float
    pvalue: float
    lags: int
    df: int


def ljung_box(values: Sequence[float], lags: int = 10, model_df: int = 0) -> LjungBoxResult:
    """
    Ljung-Box portmanteau test for residual autocorrelation.

    Args:
        values: Residuals (or any series) to test.
        lags: Number of autocorrelations included in the statistic.
        model_df: Degrees of freedom consumed by the fitted model (p + q).

    Returns:
        LjungBoxResult; the p-value is NaN when ``lags <= model_df``.
    """
    x = _validate(values, lags)
    n = len(x)
    r = _autocorrelations(x, lags)[1:]
    statistic = float(n * (n + 2) * np.sum(r ** 2 / (n - np.arange(1, lags + 1))))
    df = lags - model_df
    pvalue = float(stats.chi2.sf(statistic, df)) if df > 0 else float("nan")
    logger.debug(f"Ljung-Box Q={statistic:.4f} (lags={lags}, df={df}), p-value={pvalue:.4f}")
    return LjungBoxResult(statistic=statistic, pvalue=pvalue, lags=lags, df=df)
