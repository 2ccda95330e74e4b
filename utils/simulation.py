"""Simulation of ARMA processes and price paths driven by them.

Used by the synthetic-data script and by tests that need series with a known
data-generating process.
"""

import logging
from typing import Optional, Sequence

import numpy as np
import pandas as pd
from scipy import signal

logger = logging.getLogger(__name__)


def simulate_arma(
    ar: Sequence[float],
    ma: Sequence[float],
    n: int,
    sigma: float = 1.0,
    mean: float = 0.0,
    burn: int = 200,
    seed: Optional[int] = None,
) -> np.ndarray:
    """
    Simulate ``n`` observations of ``y_t - mean = sum(ar_i (y_{t-i} - mean)) + e_t + sum(ma_j e_{t-j})``.

    Args:
        ar: AR coefficients phi_1..phi_p.
        ma: MA coefficients theta_1..theta_q.
        n: Number of observations returned.
        sigma: Standard deviation of the Gaussian innovations.
        mean: Process mean.
        burn: Initial observations discarded so the start-up transient dies out.
        seed: Seed for ``numpy.random.default_rng``.

    Returns:
        Simulated values of length ``n``.

    Raises:
        ValueError: If n, sigma or burn are invalid.
    """
    if not isinstance(n, int) or n < 1:
        raise ValueError("n must be a positive integer.")
    if sigma <= 0:
        raise ValueError("sigma must be positive.")
    if burn < 0:
        raise ValueError("burn must be non-negative.")
    rng = np.random.default_rng(seed)
    shocks = rng.normal(0.0, sigma, n + burn)
    ar_poly = np.r_[1.0, -np.asarray(ar, dtype=float)]
    ma_poly = np.r_[1.0, np.asarray(ma, dtype=float)]
    return mean + signal.lfilter(ma_poly, ar_poly, shocks)[burn:]


def simulate_prices(
    n: int,
    start_price: float = 100.0,
    drift: float = 0.005,
    ar: Sequence[float] = (0.3,),
    ma: Sequence[float] = (),
    sigma: float = 0.04,
    start_date: str = "2010-01-01",
    freq: str = "MS",
    seed: Optional[int] = None,
) -> pd.Series:
    """
    Simulate a price path whose log returns follow an ARMA process.

    Args:
        n: Number of prices.
        start_price: First price.
        drift: Mean log return per period.
        ar: AR coefficients of the log returns.
        ma: MA coefficients of the log returns.
        sigma: Innovation standard deviation of the log returns.
        start_date: First timestamp.
        freq: pandas frequency of the index.
        seed: Random seed.

    Returns:
        Price series indexed by date and named 'Close'.
    """
    if start_price <= 0:
        raise ValueError("start_price must be positive.")
    returns = simulate_arma(ar, ma, n - 1, sigma=sigma, mean=drift, seed=seed) if n > 1 else np.empty(0)
    log_prices = np.log(start_price) + np.r_[0.0, np.cumsum(returns)]
    index = pd.date_range(start=start_date, periods=n, freq=freq, name="Date")
    logger.debug(f"Simulated {n} prices with ar={list(ar)}, ma={list(ma)}, drift={drift}, sigma={sigma}")
    return pd.Series(np.exp(log_prices), index=index, name="Close")
