"""Multi-step forecasts with confidence intervals from a fitted ARIMA model."""

import logging

import numpy as np
from scipy import signal, stats

from models.estimator import check_parameter_region
from models.results import FittedModel, Forecast
from utils.transforms import integrate

logger = logging.getLogger(__name__)

DISTRIBUTIONS = ("normal", "t")


def psi_weights(model: FittedModel, steps: int) -> np.ndarray:
    """
    First ``steps`` impulse-response weights of the integrated ARMA process.

    The weights solve ``phi(B) (1 - B)^d psi(B) = theta(B)`` with ``psi_0 = 1``.
    """
    ar_poly = np.r_[1.0, -np.asarray(model.ar_params)]
    for _ in range(model.order.d):
        ar_poly = np.convolve(ar_poly, [1.0, -1.0])
    ma_poly = np.r_[1.0, np.asarray(model.ma_params)]
    impulse = np.zeros(steps)
    impulse[0] = 1.0
    return signal.lfilter(ma_poly, ar_poly, impulse)


def _critical_value(model: FittedModel, confidence_level: float, distribution: str) -> float:
    upper_tail = 0.5 + confidence_level / 2.0
    if distribution == "normal":
        return float(stats.norm.ppf(upper_tail))
    df = model.nobs - model.n_params
    if df < 1:
        raise ValueError(f"Student-t intervals need positive degrees of freedom; got {df}.")
    return float(stats.t.ppf(upper_tail, df))


def forecast(
    model: FittedModel,
    steps: int,
    confidence_level: float = 0.95,
    distribution: str = "normal",
) -> Forecast:
    """
    Project a fitted model ``steps`` periods ahead.

    Unobserved future innovations are replaced by zero and earlier forecasts are
    fed back as autoregressive inputs. The variance at horizon h is
    ``sigma2 * sum(psi_j ** 2 for j < h)``, so intervals widen with the horizon.
    For d > 0 the ARMA-scale forecasts are integrated back to levels with the
    model's anchors.

    Args:
        model: A FittedModel produced by the estimator.
        steps: Forecast horizon (positive integer).
        confidence_level: Interval coverage in (0, 1).
        distribution: 'normal' or 't' (Student-t with nobs - n_params degrees of freedom).

    Returns:
        Forecast ordered by horizon.

    Raises:
        ValueError: If the model is not a FittedModel or the arguments are invalid.
        InvalidParameterRegion: If the model's AR part is non-stationary or its MA
            part non-invertible.
    """
    if not isinstance(model, FittedModel):
        raise ValueError("model must be a FittedModel; fit the model before forecasting.")
    if not isinstance(steps, (int, np.integer)) or isinstance(steps, bool) or steps < 1:
        raise ValueError("steps must be a positive integer.")
    if not 0.0 < confidence_level < 1.0:
        raise ValueError("confidence_level must be in (0, 1).")
    if distribution not in DISTRIBUTIONS:
        raise ValueError(f"distribution must be one of {DISTRIBUTIONS}.")
    check_parameter_region(model.ar_params, model.ma_params)

    p, d, q = model.order
    y = np.asarray(model.endog)
    resid = np.asarray(model.residuals)
    if len(y) < p or len(resid) < q:
        raise ValueError(f"{model.order} needs at least {max(p, q)} stored observations to forecast.")

    n = len(y)
    path = np.r_[y, np.zeros(steps)]
    shocks = np.r_[resid, np.zeros(steps)]
    const = model.const
    for h in range(steps):
        t = n + h
        value = const
        for i in range(p):
            value += model.ar_params[i] * path[t - 1 - i]
        for j in range(q):
            value += model.ma_params[j] * shocks[t - 1 - j]
        path[t] = value
    mean = path[n:]
    if d > 0:
        mean = integrate(mean, model.anchors)

    std_errors = np.sqrt(model.sigma2 * np.cumsum(psi_weights(model, steps) ** 2))
    crit = _critical_value(model, confidence_level, distribution)
    logger.debug(f"Forecasting {model.order} {steps} step(s) ahead at {confidence_level:.0%} ({distribution})")
    return Forecast(
        mean=mean,
        lower=mean - crit * std_errors,
        upper=mean + crit * std_errors,
        std_errors=std_errors,
        confidence_level=confidence_level,
        order=model.order,
    )
