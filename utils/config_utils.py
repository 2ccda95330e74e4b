"""Module for loading and validating configuration files in the forecasting framework.

This module provides utilities to load YAML configuration files and validate their structure
for datasets, ARIMA models, preprocessing steps, and the analysis and forecast defaults that
are passed explicitly into the stationarity, correlation and forecasting routines.
"""

import logging
import os
from typing import Dict, Optional

import pandas as pd
import yaml
from pandas.tseries.frequencies import to_offset
from schema import And, Or, Schema, SchemaError, Optional as SchemaOptional

logger = logging.getLogger(__name__)

# Model names for validation, aligned with model_registry.py
MODEL_NAMES = {
    "arima",
    "auto_arima",
}

ESTIMATION_METHODS = ["css", "mle", "css-mle"]

DEFAULT_ANALYSIS = {
    "stationarity": {"regression": "c", "autolag": "aic", "significance": 0.05},
    "correlation": {"max_lag": 20, "alpha": 0.05},
}

DEFAULT_FORECAST = {"steps": 12, "confidence_level": 0.95, "distribution": "normal"}


class ConfigValidationError(Exception):
    """Compact, human-readable configuration validation error."""
    pass


def _compact_schema_error(err: Exception) -> str:
    """
    Turn a verbose SchemaError into a short, readable message.
    We try err.code first (often the clearest), then fallback to str(err).
    """
    msg = (getattr(err, "code", None) or str(err) or "").strip()
    return " ".join(msg.split())


def is_valid_freq(x: str) -> bool:
    try:
        return to_offset(x) is not None
    except ValueError:
        return False


def _probability(name: str) -> And:
    return And(Or(int, float), lambda x: 0.0 < x < 1.0, error=f"`{name}` must be in (0, 1)")


def _define_preprocessing_schema() -> Schema:
    """
    Define the schema for preprocessing configuration.

    Returns:
        Schema for validating preprocessing settings.
    """
    return Schema({
        SchemaOptional("log_transform"): {
            SchemaOptional("enabled"): bool,
        },
        SchemaOptional("differencing"): {
            SchemaOptional("enabled"): bool,
            SchemaOptional("auto"): And(
                str,
                lambda x: x in ["adf", "kpss", "none"],
                error="`differencing.auto` must be one of ['adf', 'kpss', 'none']",
            ),
            SchemaOptional("order"): And(int, lambda x: x >= 0),
            SchemaOptional("max_d"): And(int, lambda x: x >= 0),
            SchemaOptional("p_value_threshold"): _probability("differencing.p_value_threshold"),
        },
    })


def _define_estimation_schema() -> Dict:
    """Keys shared by every ARIMA model section."""
    return {
        SchemaOptional("include_mean"): bool,
        SchemaOptional("method"): And(
            str, lambda x: x in ESTIMATION_METHODS, error=f"`method` must be one of {ESTIMATION_METHODS}"
        ),
        SchemaOptional("maxiter"): And(int, lambda x: x > 0),
        SchemaOptional("timeout"): And(Or(int, float), lambda x: x > 0),
        SchemaOptional("tol"): And(float, lambda x: x > 0),
        SchemaOptional("distribution"): And(str, lambda x: x in ["normal", "t"]),
        SchemaOptional("preprocessing"): _define_preprocessing_schema(),
    }


def _define_model_schemas() -> Dict[str, Schema]:
    integer_range = Schema(
        And({
            "min": And(int, lambda x: x >= 0),
            "max": And(int, lambda x: x >= 0),
            SchemaOptional("step"): And(int, lambda x: x > 0),
        },
        lambda d: d["min"] <= d["max"],
        error="`min` must be less than or equal to `max` in integer range")
    )
    order_values = Or([And(int, lambda x: x >= 0)], integer_range)

    return {
        "arima": Schema({
            "p": And(int, lambda x: x >= 0),
            "d": And(int, lambda x: x >= 0),
            "q": And(int, lambda x: x >= 0),
            **_define_estimation_schema(),
        }),
        "auto_arima": Schema({
            SchemaOptional("search"): {
                SchemaOptional("p"): order_values,
                SchemaOptional("d"): order_values,
                SchemaOptional("q"): order_values,
            },
            SchemaOptional("max_params"): And(int, lambda x: x >= 0),
            SchemaOptional("refit_method"): Or(None, And(str, lambda x: x in ESTIMATION_METHODS)),
            SchemaOptional("n_jobs"): And(int, lambda x: x > 0),
            **_define_estimation_schema(),
        }),
    }


def _define_analysis_schema() -> Schema:
    return Schema({
        SchemaOptional("stationarity"): {
            SchemaOptional("regression"): And(str, lambda x: x in ["n", "c", "ct"]),
            SchemaOptional("lags"): And(int, lambda x: x >= 0),
            SchemaOptional("autolag"): Or(None, And(str, lambda x: x in ["aic", "bic"])),
            SchemaOptional("significance"): _probability("stationarity.significance"),
        },
        SchemaOptional("correlation"): {
            SchemaOptional("max_lag"): And(int, lambda x: x > 0),
            SchemaOptional("alpha"): _probability("correlation.alpha"),
            SchemaOptional("ljung_box_lags"): And(int, lambda x: x > 0),
        },
    })


def _define_forecast_schema() -> Schema:
    return Schema({
        SchemaOptional("steps"): And(int, lambda x: x > 0),
        SchemaOptional("confidence_level"): _probability("forecast.confidence_level"),
        SchemaOptional("distribution"): And(str, lambda x: x in ["normal", "t"]),
        SchemaOptional("holdout"): And(int, lambda x: x >= 0),
    })


def validate_preprocessing(config: Dict, data: Optional[pd.DataFrame] = None) -> None:
    """
    Validate the preprocessing section of the configuration.

    Args:
        config: Preprocessing configuration dictionary.
        data: Optional input data; a fixed differencing order must leave observations.

    Raises:
        SchemaError: If the preprocessing configuration is invalid.
        ValueError: If the differencing order is invalid relative to data length.
    """
    try:
        _define_preprocessing_schema().validate(config)

        diff = config.get("differencing", {})
        if data is not None and diff.get("enabled", False):
            order = diff.get("order", 1)
            if order >= len(data):
                raise ValueError(
                    f"`differencing.order` ({order}) must be less than data length ({len(data)})"
                )
        logger.debug("Validated preprocessing configuration: %s", config)
    except (SchemaError, ValueError) as e:
        logger.error("Preprocessing validation failed: %s", str(e))
        raise


def validate_config(config: Dict, data: Optional[pd.DataFrame] = None) -> Dict:
    """
    Validate the configuration for datasets, models, analysis and forecast settings.

    Args:
        config: Configuration dictionary loaded from YAML.
        data: Optional input DataFrame for preprocessing validation.

    Returns:
        Validated configuration dictionary.

    Raises:
        ValueError: If a model name or a model's preprocessing is invalid.
        SchemaError: If the configuration does not match the schema.
    """
    model_schemas = _define_model_schemas()

    schema = Schema({
        "datasets": {
            str: {
                "path": And(str, lambda x: os.path.exists(x), error="Dataset file path does not exist"),
                "columns": And([And(str, len)], lambda l: len(l) == 1, error="ARIMA datasets need exactly one value column"),
                SchemaOptional("date_column"): And(str, len),
                SchemaOptional("freq"): And(str, is_valid_freq, error="Invalid frequency string"),
                SchemaOptional("preprocessing"): _define_preprocessing_schema(),
            },
        },
        "models": {
            SchemaOptional("arima"): model_schemas["arima"],
            SchemaOptional("auto_arima"): model_schemas["auto_arima"],
        },
        SchemaOptional("analysis"): _define_analysis_schema(),
        SchemaOptional("forecast"): _define_forecast_schema(),
    })

    try:
        validated_config = schema.validate(config)
        for dataset_name, dataset_config in config.get("datasets", {}).items():
            if "preprocessing" in dataset_config:
                validate_preprocessing(dataset_config["preprocessing"], data)
        for model_name, model_config in config.get("models", {}).items():
            if model_name not in MODEL_NAMES:
                raise ValueError(f"Invalid model name: {model_name}. Must be one of {MODEL_NAMES}")
            if "preprocessing" in model_config:
                validate_preprocessing(model_config["preprocessing"], data)
        logger.info("Configuration validation passed successfully")
        return validated_config
    except (SchemaError, ValueError) as e:
        logger.error(f"Configuration validation failed: {str(e)}")
        raise


def load_config(config_path: str = "config.yaml") -> Dict:
    """
    Load and validate a configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file. Defaults to 'config.yaml'.

    Returns:
        Validated configuration dictionary.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        ValueError: If the configuration file is empty.
        ConfigValidationError: If the YAML is malformed or does not match the schema.
    """
    if not os.path.exists(config_path):
        logger.error(f"Configuration file not found: {config_path}")
        raise FileNotFoundError(f"Configuration file not found: {config_path}")
    try:
        with open(config_path, "r") as file:
            config = yaml.safe_load(file)
        if not config:
            logger.error("Configuration file is empty")
            raise ValueError("Configuration file is empty")
        return validate_config(config)
    except (yaml.YAMLError, SchemaError) as e:
        # Wrap with a short message (no stack trace) for the caller.
        raise ConfigValidationError(_compact_schema_error(e))
    except Exception as e:
        logger.error(f"Failed to load configuration from {config_path}: {str(e)}")
        raise


def get_model_config(model_name: str, config_path: str = "config.yaml") -> Dict:
    """
    Load configuration for a specific model from a YAML file.

    Args:
        model_name: Name of the model ('arima' or 'auto_arima').
        config_path: Path to the YAML configuration file. Defaults to 'config.yaml'.

    Returns:
        Model configuration dictionary (empty if the model has no section).

    Raises:
        ValueError: If model_name is invalid.
        FileNotFoundError: If the configuration file does not exist.
        ConfigValidationError: If the configuration is invalid.
    """
    if model_name not in MODEL_NAMES:
        raise ValueError(f"Invalid model name: {model_name}. Must be one of {MODEL_NAMES}")
    config = load_config(config_path)
    model_config = config.get("models", {}).get(model_name, {})
    if not model_config:
        logger.warning(f"No configuration found for model {model_name}. Using empty config.")
    return model_config


def get_section(config: Dict, section: str) -> Dict:
    """
    Return the 'analysis' or 'forecast' section merged over its defaults.

    Raises:
        ValueError: If section is not 'analysis' or 'forecast'.
    """
    if section == "analysis":
        user = config.get("analysis", {})
        return {key: {**defaults, **user.get(key, {})} for key, defaults in DEFAULT_ANALYSIS.items()}
    if section == "forecast":
        return {**DEFAULT_FORECAST, **config.get("forecast", {})}
    raise ValueError("section must be 'analysis' or 'forecast'.")
