"""Module for creating forecasting model instances using a factory pattern.

This module defines the ModelFactory class, which provides a high-level interface for
instantiating the registered ARIMA forecasters by delegating to the model registry,
either from explicit arguments or from a validated configuration section.
"""

import logging
from typing import Any, Dict, List

from models.model_registry import create_model, list_registered_models, load_builtin_models
from utils.dependencies import check_dependencies

logger = logging.getLogger(__name__)


class ModelFactory:
    """Factory class for creating instances of registered forecasting models."""

    @staticmethod
    def create(model_name: str, *args: Any, **kwargs: Any) -> Any:
        """
        Create an instance of a registered forecasting model.

        Args:
            model_name: Name of the model to instantiate ('arima' or 'auto_arima').
            *args: Positional arguments to pass to the model class constructor
                (model_params, num_features, forecast_steps).
            **kwargs: Additional keyword arguments to pass to the model class constructor.

        Returns:
            Instance of the registered model class.

        Raises:
            ValueError: If model_name is empty or not registered.
            RuntimeError: If model instantiation fails due to invalid arguments.
        """
        if not model_name:
            raise ValueError("model_name cannot be empty.")
        if model_name not in list_registered_models():
            load_builtin_models()
        if model_name not in list_registered_models():
            raise ValueError(
                f"Model '{model_name}' is not registered. Available models: {list_registered_models()}"
            )
        check_dependencies([model_name])
        try:
            logger.info(f"Creating model '{model_name}'")
            model = create_model(model_name, *args, **kwargs)
            logger.info(f"Successfully created model '{model_name}'")
            return model
        except (ValueError, TypeError) as e:
            logger.error(f"Failed to create model '{model_name}': {str(e)}", exc_info=True)
            raise RuntimeError(f"Model creation failed: {str(e)}")

    @staticmethod
    def from_config(model_name: str, model_config: Dict[str, Any], forecast_steps: int) -> Any:
        """
        Create a univariate model from its configuration section.

        Args:
            model_name: Name of the model.
            model_config: The ``models.<model_name>`` section of the configuration.
            forecast_steps: Default forecast horizon.

        Returns:
            Instance of the registered model class.
        """
        return ModelFactory.create(model_name, dict(model_config), 1, forecast_steps)

    @staticmethod
    def list_models() -> List[str]:
        """
        Get a list of all registered model names.

        Returns:
            List of registered model names.
        """
        return load_builtin_models()
