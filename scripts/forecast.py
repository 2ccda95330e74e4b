"""
Command-line workflow for ARIMA modelling of a price series.

Loads a price column, reports stationarity and autocorrelation diagnostics of log prices
and log returns, fits a fixed-order or automatically selected ARIMA model, and writes the
forecast with confidence bounds, the coefficient table and (optionally) hold-out metrics
under ``results/``.
"""

import argparse
import logging
import os
import pickle
import sys
from typing import Any, Dict, Optional

import pandas as pd

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models.factory import ModelFactory  # noqa: E402
from models.results import FittedModel  # noqa: E402
from utils.config_utils import ConfigValidationError, get_section, load_config  # noqa: E402
from utils.correlation import acf, ljung_box, pacf  # noqa: E402
from utils.dataset import TimeSeriesDataset  # noqa: E402
from utils.exceptions import ARIMAError  # noqa: E402
from utils.metrics import calculate_metrics, interval_coverage  # noqa: E402
from utils.stationarity import adf_test  # noqa: E402
from utils.transforms import log_returns, log_transform  # noqa: E402
from utils.visualizer import Visualizer  # noqa: E402

logger = logging.getLogger(__name__)


def setup_logging(log_dir: str = "results/logs") -> None:
    """
    Configure logging to file and console.

    Args:
        log_dir (str): Directory to store log files. Defaults to 'results/logs'.
    """
    os.makedirs(log_dir, exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(os.path.join(log_dir, "forecast.log")),
            logging.StreamHandler()
        ]
    )


def parse_arguments() -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        argparse.Namespace: Parsed arguments.
    """
    parser = argparse.ArgumentParser(description="Fit ARIMA models to a price series and forecast it")
    parser.add_argument('--config', default='config.yaml', help="Path to the configuration file")
    parser.add_argument('--dataset', required=True, help="Name of the dataset in the configuration")
    parser.add_argument('--model', default='auto_arima', choices=['arima', 'auto_arima'], help="Model to fit")
    parser.add_argument('--steps', type=int, default=None, help="Forecast horizon (overrides forecast.steps)")
    parser.add_argument('--confidence', type=float, default=None,
                        help="Interval coverage (overrides forecast.confidence_level)")
    parser.add_argument('--holdout', type=int, default=None,
                        help="Hold out the last N observations and score the forecast on them")
    parser.add_argument('--no-plots', action='store_true', help="Skip writing PNG plots")
    parser.add_argument('--save-model', action='store_true', help="Pickle the fitted model under results/models")
    return parser.parse_args()


def run_diagnostics(dataset: TimeSeriesDataset, analysis: Dict[str, Dict[str, Any]], plots: bool) -> Dict[str, Any]:
    """
    Stationarity and autocorrelation diagnostics of log prices and log returns.

    Args:
        dataset: Loaded dataset.
        analysis: The 'analysis' configuration section with defaults applied.
        plots: Whether to write plots.

    Returns:
        Dictionary of diagnostic results, keyed by name.
    """
    prices = dataset.series[dataset.column]
    stationarity = analysis["stationarity"]
    correlation = analysis["correlation"]
    adf_kwargs = {
        "regression": stationarity["regression"],
        "autolag": stationarity["autolag"],
        "lags": stationarity.get("lags", 0),
    }

    log_prices = pd.Series(log_transform(prices.to_numpy()), index=prices.index, name="log_price")
    returns = pd.Series(log_returns(prices.to_numpy()), index=prices.index[1:], name="log_return")
    results: Dict[str, Any] = {}
    for name, values in (("log_price", log_prices), ("log_return", returns)):
        adf = adf_test(values.to_numpy(), **adf_kwargs)
        verdict = "stationary" if adf.is_stationary(stationarity["significance"]) else "unit root not rejected"
        logger.info(f"ADF on {name}: statistic={adf.statistic:.4f}, p-value={adf.pvalue:.4f} -> {verdict}")
        results[f"adf_{name}"] = adf

    max_lag = min(correlation["max_lag"], len(returns) - 1)
    results["acf"] = acf(returns.to_numpy(), max_lag)
    results["pacf"] = pacf(returns.to_numpy(), max_lag)
    alpha = correlation["alpha"]
    logger.info(f"Significant ACF lags of log returns: {results['acf'].significant_lags(alpha).tolist()}")
    logger.info(f"Significant PACF lags of log returns: {results['pacf'].significant_lags(alpha).tolist()}")
    results["ljung_box"] = ljung_box(returns.to_numpy(), lags=min(correlation.get("ljung_box_lags", 10), max_lag))
    logger.info(f"Ljung-Box on log returns: Q={results['ljung_box'].statistic:.4f}, p-value={results['ljung_box'].pvalue:.4f}")

    if plots:
        Visualizer.plot_series(dataset.name, prices, "Close price", "Price")
        Visualizer.plot_series(dataset.name, returns, "Log returns", "Log return")
        Visualizer.plot_correlations(dataset.name, results["acf"], results["pacf"], alpha=alpha)
    return results


def residual_check(fitted: FittedModel, lags: int) -> None:
    """Log a Ljung-Box test of the model residuals."""
    lags = min(lags, len(fitted.residuals) - 1)
    if lags <= fitted.order.p + fitted.order.q:
        logger.info("Too few residuals for a Ljung-Box test beyond the model's degrees of freedom.")
        return
    result = ljung_box(fitted.residuals, lags=lags, model_df=fitted.order.p + fitted.order.q)
    logger.info(f"Ljung-Box on residuals: Q={result.statistic:.4f} (df={result.df}), p-value={result.pvalue:.4f}")


def fit_and_forecast(
    model_name: str,
    dataset: TimeSeriesDataset,
    config: Dict,
    steps: int,
    confidence_level: float,
    holdout: Optional[int],
    plots: bool,
    save_model: bool,
) -> Dict[str, str]:
    """
    Fit the model, forecast, and write the results.

    Returns:
        Mapping of result kind to written path.
    """
    model_config = dict(config["models"].get(model_name, {}))
    model_config.setdefault("confidence_level", confidence_level)
    model = ModelFactory.from_config(model_name, model_config, steps)

    if holdout:
        dataset.split_data(holdout)
        train = dataset.get_development_data()
    else:
        train = dataset.series
    model.fit(train)
    fitted = model.fitted_model
    logger.info(f"Selected model: {fitted.order}\n{fitted.coefficient_table().to_string()}")
    residual_check(fitted, get_section(config, "analysis")["correlation"].get("ljung_box_lags", 10))

    horizon = holdout or steps
    predictions = model.predict(forecast_steps=horizon, confidence_level=confidence_level)
    metrics = None
    actual = None
    if holdout:
        actual = dataset.get_test_data()[dataset.column]
        metrics = calculate_metrics(actual.to_numpy(), predictions["forecast"].to_numpy())
        metrics["coverage"] = interval_coverage(
            actual.to_numpy(), predictions["lower"].to_numpy(), predictions["upper"].to_numpy()
        )
        logger.info(f"Hold-out metrics: {metrics}")

    paths = dataset.save_results(predictions, model_name, coefficients=fitted.coefficient_table(), metrics=metrics)
    if plots:
        paths["plot"] = Visualizer.plot_forecast(dataset.name, model_name, train[dataset.column], predictions, actual)
    if save_model:
        paths["model"] = os.path.join("results", "models", f"{dataset.name}_{model_name}.pkl")
        os.makedirs(os.path.dirname(paths["model"]), exist_ok=True)
        with open(paths["model"], "wb") as f:
            pickle.dump(fitted, f)
        logger.info(f"Model saved to {paths['model']}")
    return paths


def main() -> None:
    """
    Main function to run the forecasting workflow.

    Parses arguments, loads configuration and data, runs diagnostics, and fits the model.
    """
    args = parse_arguments()
    setup_logging()
    try:
        config = load_config(args.config)
    except ConfigValidationError as e:
        logger.error(f"Invalid configuration: {str(e)}")
        sys.exit(2)

    forecast_config = get_section(config, "forecast")
    steps = args.steps or forecast_config["steps"]
    confidence_level = args.confidence or forecast_config["confidence_level"]
    holdout = args.holdout if args.holdout is not None else forecast_config.get("holdout", 0)
    if args.model not in config.get("models", {}):
        logger.warning(f"Model '{args.model}' not found in {args.config}. Using defaults.")
        config.setdefault("models", {})[args.model] = {"p": 1, "d": 1, "q": 0} if args.model == "arima" else {}

    dataset = TimeSeriesDataset(args.dataset, config)
    try:
        run_diagnostics(dataset, get_section(config, "analysis"), plots=not args.no_plots)
        paths = fit_and_forecast(
            args.model, dataset, config, steps, confidence_level, holdout, not args.no_plots, args.save_model
        )
    except ARIMAError as e:
        logger.error(f"ARIMA workflow failed ({type(e).__name__}): {str(e)}")
        sys.exit(1)
    logger.info(f"Results written: {paths}")


if __name__ == "__main__":
    main()
