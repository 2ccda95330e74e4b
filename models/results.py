"""Result containers for ARIMA estimation and forecasting.

ARIMAOrder identifies a candidate model, FittedModel holds the estimated
parameters and diagnostics, and Forecast holds the projected values with their
confidence bounds. All three are immutable once created.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy import stats


class ARIMAOrder(NamedTuple):
    """(p, d, q) order of an ARIMA model."""

    p: int
    d: int
    q: int

    def validate(self) -> "ARIMAOrder":
        for name, value in zip(self._fields, self):
            if not isinstance(value, (int, np.integer)) or value < 0:
                raise ValueError(f"Order component {name} must be a non-negative integer.")
        return self

    def n_params(self, include_mean: bool = True) -> int:
        """Free parameters: AR + MA coefficients, the mean (optional) and the innovation variance."""
        return self.p + self.q + int(include_mean) + 1

    def as_dict(self) -> Dict[str, int]:
        return {"p": int(self.p), "d": int(self.d), "q": int(self.q)}

    def __str__(self) -> str:
        return f"ARIMA({self.p},{self.d},{self.q})"


def _frozen_array(values: Optional[Sequence[float]]) -> np.ndarray:
    array = np.array([] if values is None else values, dtype=float)
    array.setflags(write=False)
    return array


@dataclass(frozen=True, eq=False)
class FittedModel:
    """
    Estimated ARIMA model.

    Attributes:
        order: (p, d, q) order.
        ar_params: AR coefficients phi_1..phi_p.
        ma_params: MA coefficients theta_1..theta_q.
        mean: Process mean mu of the ARMA-scale series (0 when not estimated).
        sigma2: Innovation variance.
        llf: Log-likelihood at the estimate.
        nobs: Observations entering the likelihood.
        endog: ARMA-scale (d-times differenced) data the model was fit on.
        residuals: One-step-ahead innovations aligned with ``endog``.
        include_mean: Whether the mean was estimated.
        method: Estimation method ('mle', 'css' or 'css-mle').
        anchors: Integration anchors for d > 0 (see ``utils.transforms.integrate``).
        bse: Standard errors keyed by parameter name (NaN when unavailable).
        converged: Whether the optimizer reported convergence.
        iterations: Optimizer iterations used.
    """

    order: ARIMAOrder
    ar_params: np.ndarray
    ma_params: np.ndarray
    mean: float
    sigma2: float
    llf: float
    nobs: int
    endog: np.ndarray = field(default_factory=lambda: _frozen_array(None))
    residuals: np.ndarray = field(default_factory=lambda: _frozen_array(None))
    include_mean: bool = True
    method: str = "mle"
    anchors: Tuple[float, ...] = field(default_factory=tuple)
    bse: Dict[str, float] = field(default_factory=dict)
    converged: bool = True
    iterations: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "order", ARIMAOrder(*self.order).validate())
        for name in ("ar_params", "ma_params", "endog", "residuals"):
            object.__setattr__(self, name, _frozen_array(getattr(self, name)))
        object.__setattr__(self, "anchors", tuple(float(a) for a in self.anchors))
        if len(self.ar_params) != self.order.p:
            raise ValueError(f"Expected {self.order.p} AR coefficient(s), got {len(self.ar_params)}.")
        if len(self.ma_params) != self.order.q:
            raise ValueError(f"Expected {self.order.q} MA coefficient(s), got {len(self.ma_params)}.")
        if len(self.anchors) != self.order.d:
            raise ValueError(f"Expected {self.order.d} integration anchor(s), got {len(self.anchors)}.")
        if not np.isfinite(self.sigma2) or self.sigma2 <= 0:
            raise ValueError("sigma2 must be a positive finite number.")

    @property
    def const(self) -> float:
        """Intercept c of ``y_t = c + sum(phi_i y_{t-i}) + e_t + sum(theta_j e_{t-j})``."""
        return float(self.mean * (1.0 - np.sum(self.ar_params)))

    @property
    def n_params(self) -> int:
        return self.order.n_params(self.include_mean)

    @property
    def aic(self) -> float:
        return float(2 * self.n_params - 2 * self.llf)

    @property
    def bic(self) -> float:
        return float(np.log(self.nobs) * self.n_params - 2 * self.llf)

    @property
    def param_names(self) -> List[str]:
        names = [f"ar.L{i}" for i in range(1, self.order.p + 1)]
        names += [f"ma.L{j}" for j in range(1, self.order.q + 1)]
        if self.include_mean:
            names.append("mean")
        return names

    @property
    def params(self) -> Dict[str, float]:
        values = list(self.ar_params) + list(self.ma_params)
        if self.include_mean:
            values.append(self.mean)
        return dict(zip(self.param_names, (float(v) for v in values)))

    @property
    def pvalues(self) -> Dict[str, float]:
        """Two-sided normal p-values of the coefficients."""
        result = {}
        for name, value in self.params.items():
            se = self.bse.get(name, float("nan"))
            result[name] = float(2 * stats.norm.sf(abs(value / se))) if np.isfinite(se) and se > 0 else float("nan")
        return result

    def coefficient_table(self) -> pd.DataFrame:
        """Coefficients, standard errors, z-scores and p-values as a DataFrame."""
        params = self.params
        bse = [self.bse.get(name, float("nan")) for name in params]
        table = pd.DataFrame({"coef": list(params.values()), "std_err": bse}, index=list(params))
        table["z"] = table["coef"] / table["std_err"]
        table["p_value"] = pd.Series(self.pvalues)
        return table

    def summary(self) -> Dict[str, Any]:
        return {
            "order": str(self.order),
            "method": self.method,
            "nobs": self.nobs,
            "llf": float(self.llf),
            "aic": self.aic,
            "bic": self.bic,
            "sigma2": float(self.sigma2),
            "const": self.const,
        }


class ForecastStep(NamedTuple):
    step: int
    mean: float
    lower: float
    upper: float


@dataclass(frozen=True, eq=False)
class Forecast:
    """
    Point forecasts and confidence intervals for horizons ``1..steps``.

    Attributes:
        mean: Point forecasts.
        lower: Lower confidence bounds.
        upper: Upper confidence bounds.
        std_errors: Forecast standard errors.
        confidence_level: Coverage of the interval, e.g. 0.99.
        order: Order of the model that produced the forecast.
    """

    mean: np.ndarray
    lower: np.ndarray
    upper: np.ndarray
    std_errors: np.ndarray
    confidence_level: float
    order: Optional[ARIMAOrder] = None

    def __post_init__(self) -> None:
        for name in ("mean", "lower", "upper", "std_errors"):
            object.__setattr__(self, name, _frozen_array(getattr(self, name)))
        if not len(self.mean) == len(self.lower) == len(self.upper) == len(self.std_errors):
            raise ValueError("Forecast arrays must have the same length.")

    @property
    def steps(self) -> int:
        return len(self.mean)

    def __len__(self) -> int:
        return self.steps

    def __iter__(self):
        return iter(self.rows())

    def rows(self) -> List[ForecastStep]:
        return [
            ForecastStep(step=h + 1, mean=float(m), lower=float(lo), upper=float(hi))
            for h, (m, lo, hi) in enumerate(zip(self.mean, self.lower, self.upper))
        ]

    def to_frame(self, index: Optional[pd.Index] = None) -> pd.DataFrame:
        """DataFrame with ``forecast``, ``lower`` and ``upper`` columns."""
        if index is None:
            index = pd.RangeIndex(1, self.steps + 1, name="step")
        if len(index) != self.steps:
            raise ValueError(f"index has {len(index)} entries, but the forecast has {self.steps} steps.")
        return pd.DataFrame(
            {"forecast": self.mean, "lower": self.lower, "upper": self.upper, "std_error": self.std_errors},
            index=index,
        )
