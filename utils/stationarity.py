"""Unit-root and stationarity tests for time series.

The Augmented Dickey-Fuller regression is estimated here with ordinary least
squares; the p-value and critical values come from MacKinnon's response
surfaces shipped with statsmodels. KPSS is delegated to statsmodels and is only
used as an alternative criterion when choosing a differencing order.
"""

import logging
import warnings
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Tuple

import numpy as np
from statsmodels.tools.sm_exceptions import InterpolationWarning
from statsmodels.tsa.adfvalues import mackinnoncrit, mackinnonp
from statsmodels.tsa.stattools import kpss

from utils.exceptions import DomainError, InsufficientDataError

logger = logging.getLogger(__name__)

REGRESSIONS = ("n", "c", "ct")
AUTOLAG_METHODS = ("aic", "bic")


@dataclass(frozen=True)
class ADFResult:
    """
    Outcome of an Augmented Dickey-Fuller test.

    Attributes:
        statistic: t-ratio of the lagged-level coefficient.
        pvalue: MacKinnon approximate p-value.
        lags: Number of lagged differences in the regression.
        nobs: Observations used in the regression.
        critical_values: Critical values at the 1%, 5% and 10% levels.
        regression: Deterministic terms ('n', 'c' or 'ct').
        icbest: Information criterion of the chosen lag when autolag was used.
    """

    statistic: float
    pvalue: float
    lags: int
    nobs: int
    critical_values: Dict[str, float] = field(default_factory=dict)
    regression: str = "c"
    icbest: Optional[float] = None

    def is_stationary(self, significance: float = 0.05) -> bool:
        """Reject the unit-root null when the p-value is below ``significance``."""
        if not 0.0 < significance < 1.0:
            raise ValueError("significance must be in (0, 1).")
        return self.pvalue < significance


@dataclass(frozen=True)
class KPSSResult:
    """Outcome of a KPSS test (null hypothesis: the series is stationary)."""

    statistic: float
    pvalue: float
    lags: int
    critical_values: Dict[str, float] = field(default_factory=dict)

    def is_stationary(self, significance: float = 0.05) -> bool:
        if not 0.0 < significance < 1.0:
            raise ValueError("significance must be in (0, 1).")
        return self.pvalue > significance


def _adf_design(x: np.ndarray, lags: int, regression: str, start: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Build the ADF regression for ``lags`` lagged differences.

    ``start`` is the first usable position in the differenced series; passing the
    maximum lag keeps the sample identical across lag candidates.
    """
    dx = np.diff(x)
    n = len(dx)
    y = dx[start:]
    columns = [x[start:n]]
    for i in range(1, lags + 1):
        columns.append(dx[start - i:n - i])
    nobs = len(y)
    if regression in ("c", "ct"):
        columns.append(np.ones(nobs))
    if regression == "ct":
        columns.append(np.arange(1, nobs + 1, dtype=float))
    return y, np.column_stack(columns)


def _ols(y: np.ndarray, X: np.ndarray) -> Tuple[np.ndarray, np.ndarray, float]:
    """Return coefficients, standard errors and residual sum of squares."""
    nobs, ncols = X.shape
    if nobs <= ncols:
        raise InsufficientDataError(
            f"ADF regression needs more observations ({nobs}) than regressors ({ncols})."
        )
    beta, _, rank, _ = np.linalg.lstsq(X, y, rcond=None)
    if rank < ncols:
        raise DomainError("ADF regression is singular; the series is constant or perfectly collinear.")
    resid = y - X @ beta
    ssr = float(resid @ resid)
    scale = ssr / (nobs - ncols)
    cov = scale * np.linalg.inv(X.T @ X)
    return beta, np.sqrt(np.diag(cov)), ssr


def _information_criterion(ssr: float, nobs: int, ncols: int, method: str) -> float:
    llf = -0.5 * nobs * (np.log(2 * np.pi) + np.log(ssr / nobs) + 1)
    if method == "aic":
        return -2 * llf + 2 * ncols
    return -2 * llf + np.log(nobs) * ncols


def adf_test(
    values: Sequence[float],
    lags: int = 0,
    regression: str = "c",
    autolag: Optional[str] = None,
    max_lags: Optional[int] = None,
) -> ADFResult:
    """
    Augmented Dickey-Fuller unit-root test.

    Regresses ``Δy_t`` on ``y_{t-1}``, ``k`` lagged differences and the chosen
    deterministic terms. The test statistic is the t-ratio of the ``y_{t-1}``
    coefficient.

    Args:
        values: Observations to test.
        lags: Number of lagged differences (k) when ``autolag`` is None.
        regression: 'n' (none), 'c' (constant) or 'ct' (constant and trend).
        autolag: 'aic' or 'bic' to pick k in ``0..max_lags`` on a common sample.
        max_lags: Upper bound for autolag. Defaults to ``12 * (n / 100) ** 0.25``.

    Returns:
        ADFResult with statistic, p-value and critical values.

    Raises:
        ValueError: If regression, autolag or lags are invalid.
        InsufficientDataError: If the series is too short for the regression.
        DomainError: If the series is constant.
    """
    if regression not in REGRESSIONS:
        raise ValueError(f"regression must be one of {REGRESSIONS}.")
    if autolag is not None and autolag not in AUTOLAG_METHODS:
        raise ValueError(f"autolag must be one of {AUTOLAG_METHODS} or None.")
    if not isinstance(lags, (int, np.integer)) or lags < 0:
        raise ValueError("lags must be a non-negative integer.")

    x = np.asarray(values, dtype=float)
    if x.ndim != 1:
        raise ValueError("values must be one-dimensional.")
    if not np.all(np.isfinite(x)):
        raise ValueError("values cannot contain NaN or infinite values.")
    if len(x) < 3:
        raise InsufficientDataError(f"ADF test needs at least 3 observations; got {len(x)}.")
    if np.ptp(x) == 0:
        raise DomainError("ADF test is undefined for a constant series.")

    icbest = None
    if autolag is not None:
        if max_lags is None:
            max_lags = int(np.ceil(12.0 * np.power(len(x) / 100.0, 1 / 4.0)))
        # keep enough rows for the largest regression
        max_lags = max(0, min(max_lags, (len(x) - 1) // 2 - 2))
        best = None
        for k in range(max_lags + 1):
            y, X = _adf_design(x, k, regression, start=max_lags)
            _, _, ssr = _ols(y, X)
            ic = _information_criterion(ssr, len(y), X.shape[1], autolag)
            if best is None or ic < best[0]:
                best = (ic, k)
        icbest, lags = best
        logger.debug(f"ADF autolag={autolag} selected {lags} lag(s) (ic={icbest:.4f})")

    if len(x) - 1 - lags < 1:
        raise InsufficientDataError(f"Series of length {len(x)} is too short for {lags} ADF lag(s).")
    y, X = _adf_design(x, lags, regression, start=lags)
    beta, bse, _ = _ols(y, X)
    statistic = float(beta[0] / bse[0])
    pvalue = float(mackinnonp(statistic, regression=regression, N=1))
    crit = mackinnoncrit(N=1, regression=regression, nobs=len(y))
    critical_values = {"1%": float(crit[0]), "5%": float(crit[1]), "10%": float(crit[2])}
    logger.info(f"ADF statistic={statistic:.4f}, p-value={pvalue:.4f}, lags={lags}, nobs={len(y)}")
    return ADFResult(
        statistic=statistic,
        pvalue=pvalue,
        lags=int(lags),
        nobs=len(y),
        critical_values=critical_values,
        regression=regression,
        icbest=None if icbest is None else float(icbest),
    )


def kpss_test(values: Sequence[float], regression: str = "c", lags: str = "auto") -> KPSSResult:
    """
    KPSS stationarity test via statsmodels.

    p-values outside the tabulated range are clipped to the table bounds by
    statsmodels; the interpolation warning is suppressed.
    """
    if regression not in ("c", "ct"):
        raise ValueError("regression must be 'c' or 'ct' for the KPSS test.")
    x = np.asarray(values, dtype=float)
    if len(x) < 3:
        raise InsufficientDataError(f"KPSS test needs at least 3 observations; got {len(x)}.")
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", InterpolationWarning)
        statistic, pvalue, used_lags, crit = kpss(x, regression=regression, nlags=lags)
    return KPSSResult(
        statistic=float(statistic),
        pvalue=float(pvalue),
        lags=int(used_lags),
        critical_values={key: float(val) for key, val in crit.items()},
    )


def _is_stationary(values: np.ndarray, test: str, threshold: float) -> bool:
    if np.ptp(values) == 0 or len(values) < 10:
        return True
    if test == "adf":
        return adf_test(values, autolag="aic").is_stationary(threshold)
    return kpss_test(values).is_stationary(threshold)


def determine_differencing_order(
    values: Sequence[float], test: str = "adf", max_d: int = 2, threshold: float = 0.05
) -> int:
    """
    Smallest differencing order that makes the series stationary.

    Args:
        values: Observations (levels, possibly logged).
        test: 'adf' or 'kpss'.
        max_d: Maximum order to try.
        threshold: Significance level passed to the test.

    Returns:
        Differencing order in ``0..max_d``; ``max_d`` when no order passes.

    Raises:
        ValueError: If test, max_d or threshold are invalid.
    """
    if test not in ("adf", "kpss"):
        raise ValueError("test must be 'adf' or 'kpss'.")
    if not isinstance(max_d, (int, np.integer)) or max_d < 0:
        raise ValueError("max_d must be a non-negative integer.")
    if not 0.0 < threshold < 1.0:
        raise ValueError("threshold must be in (0, 1).")

    work = np.asarray(values, dtype=float)
    for d in range(max_d + 1):
        if d > 0:
            if len(work) <= 1:
                return d - 1
            work = np.diff(work)
        if _is_stationary(work, test, threshold):
            logger.info(f"{test.upper()} selected differencing order d={d}")
            return d
    logger.warning(f"No differencing order up to {max_d} passed the {test.upper()} test. Using d={max_d}.")
    return max_d
