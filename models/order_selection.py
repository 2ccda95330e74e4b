"""AIC-based ARIMA order selection over an explicit (p, d, q) grid."""

import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from models.estimator import ARMAEstimator
from models.results import ARIMAOrder, FittedModel
from utils.exceptions import ARIMAError, ConvergenceError
from utils.hyperopt.grid_params import generate_order_grid
from utils.logging_utils import log_best_order, log_candidate_failure
from utils.timeseries import SeriesLike, TimeSeries, as_timeseries

logger = logging.getLogger(__name__)

AIC_TIE_TOLERANCE = 1e-8

_Outcome = Tuple[ARIMAOrder, Optional[FittedModel], Optional[ARIMAError]]


@dataclass(frozen=True, eq=False)
class OrderSelectionResult:
    """
    Outcome of an order search.

    Attributes:
        best: Minimum-AIC model (refitted if a refit estimator was given).
        table: One row per candidate in grid order with p, d, q, aic, bic, llf,
            nobs, n_params and status ('ok' or the error class name).
        failures: Error message keyed by the string form of each failed order.
    """

    best: FittedModel
    table: pd.DataFrame
    failures: Dict[str, str] = field(default_factory=dict)

    @property
    def order(self) -> ARIMAOrder:
        return self.best.order


def _fit_candidate(series: TimeSeries, order: ARIMAOrder, n_cond: int, estimator_params: Dict) -> _Outcome:
    """Fit one candidate; estimator errors are returned rather than raised."""
    return _fit_candidate_with(ARMAEstimator(**estimator_params), series, order, n_cond)


def _fit_candidate_with(estimator: ARMAEstimator, series: TimeSeries, order: ARIMAOrder, n_cond: int) -> _Outcome:
    try:
        return order, estimator.fit(series, order, n_cond=n_cond), None
    except ARIMAError as e:
        return order, None, e


def _common_window(series: TimeSeries, order: ARIMAOrder, max_d: int) -> TimeSeries:
    """Drop leading levels so that every d leaves ``len(series) - max_d`` differences."""
    offset = max_d - order.d
    if offset == 0:
        return series
    return TimeSeries(index=series.index[offset:], values=series.values[offset:], name=series.name)


def _is_better(candidate: FittedModel, incumbent: Optional[FittedModel], tol: float) -> bool:
    """Lower AIC wins; within ``tol`` fewer parameters, then the smaller (p, d, q)."""
    if incumbent is None:
        return True
    if candidate.aic < incumbent.aic - tol:
        return True
    if abs(candidate.aic - incumbent.aic) <= tol:
        return (candidate.n_params, tuple(candidate.order)) < (incumbent.n_params, tuple(incumbent.order))
    return False


def select_order(
    data: SeriesLike,
    grid: Optional[Sequence[Union[ARIMAOrder, Tuple[int, int, int]]]] = None,
    estimator: Optional[ARMAEstimator] = None,
    n_jobs: int = 1,
    refit_estimator: Optional[ARMAEstimator] = None,
    model_name: str = "auto_arima",
    tie_tolerance: float = AIC_TIE_TOLERANCE,
) -> OrderSelectionResult:
    """
    Fit every candidate order and return the one with minimum AIC.

    Every candidate is scored on the same observations so that AIC values are
    comparable: levels are trimmed so each d leaves ``n - max_d`` differences, and
    the CSS likelihood conditions on the first ``max_p`` of them for every p.

    Candidates whose fit raises an estimator error (insufficient data, invalid
    parameter region, convergence or domain failure) are logged and excluded.
    The result does not depend on ``n_jobs``: candidates are evaluated and
    compared in grid order.

    Args:
        data: Level observations (already log-transformed if required); each
            candidate differences them ``d`` times.
        grid: Candidate orders. Defaults to p, q in 0..5 and d in 0..2.
        estimator: Estimator used for every candidate. Defaults to ``ARMAEstimator()``.
        n_jobs: Worker processes; 1 runs sequentially in this process.
        refit_estimator: Optional estimator used to refit the winning order on the
            full series, e.g. exact MLE after a CSS search.
        model_name: Name used in log messages.
        tie_tolerance: AIC differences up to this value count as ties.

    Returns:
        OrderSelectionResult with the best model and the per-candidate table.

    Raises:
        ValueError: If the grid is empty or n_jobs is invalid.
        ConvergenceError: If no candidate could be fitted.
    """
    if not isinstance(n_jobs, int) or n_jobs < 1:
        raise ValueError("n_jobs must be a positive integer.")
    orders = generate_order_grid() if grid is None else [ARIMAOrder(*order).validate() for order in grid]
    if not orders:
        raise ValueError("grid cannot be empty.")
    estimator = estimator or ARMAEstimator()
    series = as_timeseries(data)
    max_p = max(order.p for order in orders)
    max_d = max(order.d for order in orders)
    windows = [_common_window(series, order, max_d) for order in orders]

    logger.info(
        f"[{model_name}] Searching {len(orders)} candidate orders on {len(series)} observations "
        f"(common sample: last {len(series) - max_d} differences, conditioning on {max_p}; n_jobs={n_jobs})"
    )
    if n_jobs == 1:
        outcomes: List[_Outcome] = [
            _fit_candidate_with(estimator, window, order, max_p) for window, order in zip(windows, orders)
        ]
    else:
        if estimator.cancel_event is not None:
            logger.warning(f"[{model_name}] cancel_event is not propagated to worker processes")
        params = estimator.get_params()
        with ProcessPoolExecutor(max_workers=n_jobs) as executor:
            outcomes = list(
                executor.map(_fit_candidate, windows, orders, [max_p] * len(orders), [params] * len(orders))
            )

    best: Optional[FittedModel] = None
    rows = []
    failures: Dict[str, str] = {}
    for order, model, error in outcomes:
        row = {"p": order.p, "d": order.d, "q": order.q}
        if model is None:
            log_candidate_failure(model_name, order, error)
            failures[str(order)] = str(error)
            row.update(
                aic=np.nan, bic=np.nan, llf=np.nan, nobs=np.nan, n_params=np.nan, status=type(error).__name__
            )
        else:
            row.update(
                aic=model.aic, bic=model.bic, llf=model.llf, nobs=model.nobs, n_params=model.n_params, status="ok"
            )
            if _is_better(model, best, tie_tolerance):
                best = model
        rows.append(row)

    table = pd.DataFrame(rows, columns=["p", "d", "q", "aic", "bic", "llf", "nobs", "n_params", "status"])
    if best is None:
        logger.error(f"[{model_name}] All {len(orders)} candidate orders failed to fit")
        raise ConvergenceError(f"No candidate order could be fitted ({len(orders)} tried).")

    log_best_order(model_name, best.order, best.aic, len(orders), len(failures))

    if refit_estimator is not None:
        try:
            best = refit_estimator.fit(series, best.order)
        except ARIMAError as e:
            logger.warning(
                f"[{model_name}] Refit of {best.order} with method={refit_estimator.method} failed, "
                f"keeping the search estimate: {str(e)}"
            )
    return OrderSelectionResult(best=best, table=table, failures=failures)
