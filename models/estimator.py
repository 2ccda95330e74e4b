"""Maximum-likelihood estimation of ARMA(p, q) models.

The estimator fits

    y_t = c + sum(phi_i * y_{t-i}) + e_t + sum(theta_j * e_{t-j})

to a (differenced) series. Two likelihoods are available:

- ``css``: conditional sum of squares, pre-sample innovations set to zero;
- ``mle``: exact Gaussian likelihood evaluated with a Kalman filter on the
  Harvey state-space form, with the innovation variance concentrated out.

The default ``css-mle`` uses the CSS estimate as the starting point of the exact
search. The optimizer works on unconstrained parameters that are mapped onto the
stationary / invertible region through partial autocorrelations, so every
trial point is admissible. The final estimate is checked again and rejected with
``InvalidParameterRegion`` if numerical saturation put a root on the unit circle.
"""

import functools
import logging
import threading
import time
from typing import Callable, Dict, Optional, Sequence, Tuple, Union

import numpy as np
from scipy import linalg, optimize, signal
from statsmodels.tools.numdiff import approx_hess3
from statsmodels.tsa.statespace.tools import (
    constrain_stationary_univariate,
    unconstrain_stationary_univariate,
)

from models.results import ARIMAOrder, FittedModel
from utils.correlation import durbin_levinson
from utils.exceptions import ConvergenceError, DomainError, InsufficientDataError, InvalidParameterRegion
from utils.timeseries import SeriesLike, StationaryResult
from utils.transforms import make_stationary

logger = logging.getLogger(__name__)

METHODS = ("css", "mle", "css-mle")

# Bound on unconstrained starting values; |x| = 10 already maps to |r| > 0.995
_MAX_START = 10.0


def ar_roots(ar_params: Sequence[float]) -> np.ndarray:
    """Roots of the AR polynomial ``1 - phi_1 z - ... - phi_p z^p``."""
    ar_params = np.asarray(ar_params, dtype=float)
    if ar_params.size == 0:
        return np.array([], dtype=complex)
    return np.roots(np.r_[1.0, -ar_params][::-1])


def ma_roots(ma_params: Sequence[float]) -> np.ndarray:
    """Roots of the MA polynomial ``1 + theta_1 z + ... + theta_q z^q``."""
    ma_params = np.asarray(ma_params, dtype=float)
    if ma_params.size == 0:
        return np.array([], dtype=complex)
    return np.roots(np.r_[1.0, ma_params][::-1])


def is_stationary(ar_params: Sequence[float]) -> bool:
    return bool(np.all(np.abs(ar_roots(ar_params)) > 1.0))


def is_invertible(ma_params: Sequence[float]) -> bool:
    return bool(np.all(np.abs(ma_roots(ma_params)) > 1.0))


def check_parameter_region(ar_params: Sequence[float], ma_params: Sequence[float]) -> None:
    """
    Require a stationary AR part and an invertible MA part.

    Raises:
        InvalidParameterRegion: If any characteristic root lies on or inside the unit circle.
    """
    if not np.all(np.isfinite(ar_params)) or not np.all(np.isfinite(ma_params)):
        raise InvalidParameterRegion("ARMA coefficients must be finite.")
    if not is_stationary(ar_params):
        raise InvalidParameterRegion(
            f"AR coefficients {np.round(ar_params, 6).tolist()} are non-stationary "
            f"(min |root| = {np.min(np.abs(ar_roots(ar_params))):.6f})."
        )
    if not is_invertible(ma_params):
        raise InvalidParameterRegion(
            f"MA coefficients {np.round(ma_params, 6).tolist()} are non-invertible "
            f"(min |root| = {np.min(np.abs(ma_roots(ma_params))):.6f})."
        )


# ---------------------------------------------------------------------------------
# Likelihoods (unit-scale data, innovation variance concentrated out)
# ---------------------------------------------------------------------------------

def css_residuals(
    z: np.ndarray, ar: np.ndarray, ma: np.ndarray, mu: float, n_cond: Optional[int] = None
) -> np.ndarray:
    """
    Conditional residuals for ``t = m..n-1`` with innovations before ``m`` set to zero.

    ``m`` is ``n_cond`` when given and at least p, otherwise p. Observations before
    ``m`` still enter as AR lags.
    """
    p = len(ar)
    m = p if n_cond is None else max(int(n_cond), p)
    w = signal.lfilter(np.r_[1.0, -ar], [1.0], z - mu)[m:]
    return signal.lfilter([1.0], np.r_[1.0, ma], w)


def css_loglike(
    z: np.ndarray, ar: np.ndarray, ma: np.ndarray, mu: float, n_cond: Optional[int] = None
) -> Tuple[float, float, np.ndarray]:
    """Concentrated CSS log-likelihood, innovation variance and residuals."""
    resid = css_residuals(z, ar, ma, mu, n_cond)
    if resid.size == 0:
        return -np.inf, np.nan, resid
    nobs = len(resid)
    sigma2 = float(resid @ resid) / nobs
    if not np.isfinite(sigma2) or sigma2 <= 0:
        return -np.inf, np.nan, resid
    llf = -0.5 * nobs * (np.log(2 * np.pi) + np.log(sigma2) + 1.0)
    return float(llf), sigma2, resid


def kalman_loglike(
    z: np.ndarray, ar: np.ndarray, ma: np.ndarray, mu: float, tol: float = 1e-9
) -> Tuple[float, float, np.ndarray]:
    """
    Exact Gaussian log-likelihood of an ARMA process via the Kalman filter.

    The state vector follows Harvey's representation with dimension
    ``r = max(p, q + 1)``, initialized at its stationary covariance. Once the
    state covariance settles, gain and prediction variance are frozen.

    Returns:
        Tuple of (log-likelihood, innovation variance, one-step innovations).
    """
    p, q = len(ar), len(ma)
    r = max(p, q + 1)
    T = np.zeros((r, r))
    T[:p, 0] = ar
    T[:-1, 1:] = np.eye(r - 1)
    R = np.zeros(r)
    R[0] = 1.0
    R[1:q + 1] = ma
    RR = np.outer(R, R)
    P = linalg.solve_discrete_lyapunov(T, RR)

    y = z - mu
    n = len(y)
    a = np.zeros(r)
    v = np.empty(n)
    F = np.empty(n)
    steady = False
    f, K = 1.0, np.zeros(r)
    for t in range(n):
        if not steady:
            f = P[0, 0]
            if not np.isfinite(f) or f <= 0:
                return -np.inf, np.nan, v
            K = (T @ P[:, 0]) / f
        v[t] = y[t] - a[0]
        F[t] = f
        a = T @ a + K * v[t]
        if not steady:
            P_next = T @ P @ T.T + RR - f * np.outer(K, K)
            steady = np.max(np.abs(P_next - P)) < tol
            P = P_next

    sigma2 = float(np.mean(v ** 2 / F))
    if not np.isfinite(sigma2) or sigma2 <= 0:
        return -np.inf, np.nan, v
    llf = -0.5 * n * (np.log(2 * np.pi) + np.log(sigma2) + 1.0) - 0.5 * float(np.sum(np.log(F)))
    return float(llf), sigma2, v


_LIKELIHOODS: Dict[str, Callable] = {"css": css_loglike, "mle": kalman_loglike}


def _likelihood(name: str, n_cond: Optional[int]) -> Callable:
    if name == "css":
        return functools.partial(css_loglike, n_cond=n_cond)
    return _LIKELIHOODS[name]


# ---------------------------------------------------------------------------------
# Estimator
# ---------------------------------------------------------------------------------

class ARMAEstimator:
    """
    Fit ARMA(p, q) models to a stationary series by numerical likelihood maximization.

    Attributes:
        include_mean: Estimate the process mean (otherwise it is fixed at zero).
        method: 'css', 'mle' or 'css-mle'.
        maxiter: Iteration cap of each Nelder-Mead search.
        timeout: Wall-clock budget in seconds for one call to ``fit`` (None: no limit).
        tol: Absolute tolerance on parameters and objective.
        cancel_event: Optional event; setting it aborts a running fit.
    """

    def __init__(
        self,
        include_mean: bool = True,
        method: str = "css-mle",
        maxiter: int = 2000,
        timeout: Optional[float] = None,
        tol: float = 1e-6,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        if method not in METHODS:
            raise ValueError(f"method must be one of {METHODS}.")
        if not isinstance(maxiter, int) or maxiter < 1:
            raise ValueError("maxiter must be a positive integer.")
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be positive.")
        if tol <= 0:
            raise ValueError("tol must be positive.")
        self.include_mean = include_mean
        self.method = method
        self.maxiter = maxiter
        self.timeout = timeout
        self.tol = tol
        self.cancel_event = cancel_event

    def get_params(self) -> Dict[str, object]:
        """Constructor arguments, excluding the cancellation event (used to rebuild estimators in workers)."""
        return {
            "include_mean": self.include_mean,
            "method": self.method,
            "maxiter": self.maxiter,
            "timeout": self.timeout,
            "tol": self.tol,
        }

    # -- parameter packing ----------------------------------------------------------

    def _unpack(self, x: np.ndarray, p: int, q: int) -> Tuple[np.ndarray, np.ndarray, float]:
        """Map unconstrained optimizer coordinates to (ar, ma, mean)."""
        ar = constrain_stationary_univariate(x[:p]) if p else np.empty(0)
        ma = -constrain_stationary_univariate(x[p:p + q]) if q else np.empty(0)
        mu = float(x[p + q]) if self.include_mean else 0.0
        return np.asarray(ar, dtype=float), np.asarray(ma, dtype=float), mu

    def _pack(self, ar: np.ndarray, ma: np.ndarray, mu: float) -> np.ndarray:
        parts = []
        if len(ar):
            parts.append(unconstrain_stationary_univariate(np.asarray(ar, dtype=float)))
        if len(ma):
            parts.append(unconstrain_stationary_univariate(-np.asarray(ma, dtype=float)))
        if self.include_mean:
            parts.append(np.array([mu]))
        x = np.concatenate(parts) if parts else np.empty(0)
        return np.clip(x, -_MAX_START, _MAX_START)

    def _default_start(self, z: np.ndarray, p: int, q: int) -> np.ndarray:
        """Yule-Walker AR coefficients, zero MA coefficients and the sample mean."""
        ar = np.empty(0)
        if p:
            centered = z - z.mean()
            denom = centered @ centered
            r = np.array([1.0] + [(centered[k:] @ centered[:-k]) / denom for k in range(1, p + 1)])
            _, ar = durbin_levinson(r)
            if not is_stationary(ar):
                ar = np.zeros(p)
        mu = float(z.mean()) if self.include_mean else 0.0
        return self._pack(ar, np.zeros(q), mu)

    # -- budget -----------------------------------------------------------------------

    def _check_budget(self, deadline: Optional[float]) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise ConvergenceError("Estimation cancelled.")
        if deadline is not None and time.monotonic() > deadline:
            raise ConvergenceError(f"Estimation exceeded the time budget of {self.timeout} s.")

    # -- optimization -----------------------------------------------------------------

    def _optimize(
        self,
        z: np.ndarray,
        x0: np.ndarray,
        p: int,
        q: int,
        likelihood: str,
        deadline: Optional[float] = None,
        n_cond: Optional[int] = None,
    ) -> Tuple[np.ndarray, int]:
        loglike = _likelihood(likelihood, n_cond)
        n = len(z)

        def objective(x: np.ndarray) -> float:
            self._check_budget(deadline)
            ar, ma, mu = self._unpack(x, p, q)
            llf = loglike(z, ar, ma, mu)[0]
            return -llf / n if np.isfinite(llf) else np.inf

        if x0.size == 0:
            return x0, 0

        start_value = objective(x0)
        if not np.isfinite(start_value):
            raise ConvergenceError(f"{likelihood.upper()} likelihood is not finite at the starting values.")

        result = optimize.minimize(
            objective,
            x0,
            method="Nelder-Mead",
            options={"maxiter": self.maxiter, "maxfev": self.maxiter * 4, "xatol": self.tol, "fatol": self.tol, "adaptive": x0.size > 2},
        )
        if not result.success:
            raise ConvergenceError(f"{likelihood.upper()} optimization failed after {result.nit} iterations: {result.message}")
        if not np.isfinite(result.fun) or result.fun > start_value:
            raise ConvergenceError(f"{likelihood.upper()} optimization did not improve the likelihood.")
        logger.debug(f"{likelihood.upper()} converged in {result.nit} iterations (objective={result.fun:.6f})")
        return np.asarray(result.x, dtype=float), int(result.nit)

    def _standard_errors(
        self,
        z: np.ndarray,
        ar: np.ndarray,
        ma: np.ndarray,
        mu: float,
        likelihood: str,
        scale: float,
        n_cond: Optional[int] = None,
    ) -> Dict[str, float]:
        """Standard errors from the inverse Hessian of the concentrated log-likelihood."""
        p, q = len(ar), len(ma)
        names = [f"ar.L{i}" for i in range(1, p + 1)] + [f"ma.L{j}" for j in range(1, q + 1)]
        theta = list(ar) + list(ma)
        if self.include_mean:
            names.append("mean")
            theta.append(mu)
        if not names:
            return {}
        loglike = _likelihood(likelihood, n_cond)

        def llf(params: np.ndarray) -> float:
            params = np.asarray(params, dtype=float)
            mean = params[p + q] if self.include_mean else 0.0
            return loglike(z, params[:p], params[p:p + q], mean)[0]

        bse = np.full(len(names), np.nan)
        try:
            hessian = approx_hess3(np.asarray(theta, dtype=float), llf)
            cov = np.linalg.inv(-hessian)
            variances = np.diag(cov)
            valid = np.isfinite(variances) & (variances > 0)
            bse[valid] = np.sqrt(variances[valid])
        except np.linalg.LinAlgError as e:
            logger.warning(f"Could not invert the Hessian for standard errors: {str(e)}")
        if not np.all(np.isfinite(bse)):
            logger.warning("Some standard errors are undefined (Hessian not negative definite).")
        if self.include_mean:
            bse[-1] *= scale
        return dict(zip(names, (float(b) for b in bse)))

    # -- public API -------------------------------------------------------------------

    def fit(
        self,
        data: Union[StationaryResult, SeriesLike],
        order: Union[ARIMAOrder, Tuple[int, int, int]],
        start_params: Optional[Dict[str, Union[float, Sequence[float]]]] = None,
        n_cond: Optional[int] = None,
    ) -> FittedModel:
        """
        Estimate an ARIMA(p, d, q) model.

        Args:
            data: A StationaryResult whose ``diff_order`` equals ``order.d`` (differencing
                already applied), or level data that is differenced ``order.d`` times here.
            order: (p, d, q) order.
            start_params: Optional starting values ``{'ar': [...], 'ma': [...], 'mean': float}``
                on the original scale.
            n_cond: Leading (differenced) observations the CSS likelihood conditions on.
                Defaults to p; values below p are raised to p. Fitting several orders with
                the same ``n_cond`` scores them all on the same observations.

        Returns:
            Immutable FittedModel.

        Raises:
            ValueError: If the order is invalid or does not match a StationaryResult.
            InsufficientDataError: If there are too few observations for the order.
            InvalidParameterRegion: If starting values or the final estimate are non-stationary
                or non-invertible.
            ConvergenceError: If the optimizer fails, exceeds its budget or is cancelled.
        """
        order = ARIMAOrder(*order).validate()
        p, d, q = order
        if isinstance(data, StationaryResult):
            if data.diff_order != d:
                raise ValueError(
                    f"StationaryResult was differenced {data.diff_order} time(s) but the order has d={d}."
                )
            stationary = data
        else:
            stationary = make_stationary(data, log=False, diff_order=d)

        if n_cond is not None and (not isinstance(n_cond, (int, np.integer)) or n_cond < 0):
            raise ValueError("n_cond must be a non-negative integer.")
        n_cond = p if n_cond is None else max(int(n_cond), p)

        y = np.asarray(stationary.values, dtype=float)
        k = order.n_params(self.include_mean)
        conditioned = p if self.method == "mle" else n_cond
        if len(y) - conditioned <= k:
            raise InsufficientDataError(
                f"{order} with {k} parameters needs more than {k + conditioned} observations; got {len(y)}."
            )
        if np.ptp(y) == 0:
            raise DomainError("Cannot fit an ARMA model to a constant series.")

        deadline = time.monotonic() + self.timeout if self.timeout is not None else None
        center = float(y.mean()) if self.include_mean else 0.0
        scale = float(np.sqrt(np.mean((y - center) ** 2)))
        z = (y - center) / scale

        if start_params is not None:
            ar0 = np.asarray(start_params.get("ar", np.zeros(p)), dtype=float)
            ma0 = np.asarray(start_params.get("ma", np.zeros(q)), dtype=float)
            if len(ar0) != p or len(ma0) != q:
                raise ValueError(f"start_params must contain {p} AR and {q} MA value(s).")
            check_parameter_region(ar0, ma0)
            mu0 = (float(start_params.get("mean", center)) - center) / scale
            x0 = self._pack(ar0, ma0, mu0)
        else:
            x0 = self._default_start(z, p, q)

        logger.info(f"Fitting {order} with method={self.method} on {len(y)} observations")
        iterations = 0
        if self.method in ("css", "css-mle"):
            x0, iterations = self._optimize(z, x0, p, q, "css", deadline, n_cond)
        likelihood = "css" if self.method == "css" else "mle"
        if self.method != "css":
            x0, nit = self._optimize(z, x0, p, q, "mle", deadline)
            iterations += nit

        ar, ma, mu_z = self._unpack(x0, p, q)
        check_parameter_region(ar, ma)
        llf_z, sigma2_z, resid_z = _likelihood(likelihood, n_cond)(z, ar, ma, mu_z)
        if not np.isfinite(llf_z):
            raise ConvergenceError(f"Log-likelihood is not finite at the estimate of {order}.")

        nobs = len(resid_z)
        bse = self._standard_errors(z, ar, ma, mu_z, likelihood, scale, n_cond)
        residuals = resid_z * scale
        if likelihood == "css":
            # align with endog; the conditioning observations have no residual
            residuals = np.r_[np.zeros(len(y) - nobs), residuals]

        model = FittedModel(
            order=order,
            ar_params=ar,
            ma_params=ma,
            mean=center + scale * mu_z,
            sigma2=sigma2_z * scale ** 2,
            llf=llf_z - nobs * np.log(scale),
            nobs=nobs,
            endog=y,
            residuals=residuals,
            include_mean=self.include_mean,
            method=self.method,
            anchors=stationary.anchors,
            bse=bse,
            converged=True,
            iterations=iterations,
        )
        logger.info(f"Fitted {order}: llf={model.llf:.4f}, aic={model.aic:.4f}, sigma2={model.sigma2:.6g}")
        return model


def fit_arima(
    data: Union[StationaryResult, SeriesLike],
    order: Union[ARIMAOrder, Tuple[int, int, int]],
    **estimator_kwargs,
) -> FittedModel:
    """Convenience wrapper: ``ARMAEstimator(**estimator_kwargs).fit(data, order)``."""
    return ARMAEstimator(**estimator_kwargs).fit(data, order)
