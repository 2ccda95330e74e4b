"""Exception hierarchy for the ARIMA forecasting toolkit.

Transform and analysis errors abort a pipeline immediately. Estimator errors are
caught per candidate during order selection and the candidate is excluded.
"""


class ARIMAError(Exception):
    """Base class for all errors raised by the forecasting pipeline."""


class DomainError(ARIMAError, ValueError):
    """Input is outside the domain of a transform (e.g. log of a non-positive value)."""


class InsufficientDataError(ARIMAError, ValueError):
    """Series is too short for the requested lag, order or regression."""


class InvalidParameterRegion(ARIMAError, ValueError):
    """AR polynomial is non-stationary or MA polynomial is non-invertible."""


class ConvergenceError(ARIMAError, RuntimeError):
    """Optimizer exceeded its iteration or time budget, or failed to improve the likelihood."""
