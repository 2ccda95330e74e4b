"""Unit tests for the dependency checking utility.

This module tests the `check_dependencies` function located in
`utils/dependencies.py`: successful validation, missing model dependencies,
missing optional dependencies, and invalid function arguments. Library lookup
and the model registry are mocked so the tests run deterministically.
"""

import logging
from unittest.mock import MagicMock

import pytest

from utils import dependencies

# --- Fixtures and Mocks Setup ---


@pytest.fixture
def mock_importer(mocker):
    """
    Fixture to mock `importlib.util.find_spec`.
    By default, it simulates that all libraries are installed by returning a mock spec object.
    """
    return mocker.patch('utils.dependencies.importlib.util.find_spec', return_value=MagicMock())


@pytest.fixture
def mock_model_registry(mocker):
    """Fixture to mock the model registry."""
    return mocker.patch('utils.dependencies.list_registered_models', return_value=["arima", "auto_arima"])


# --- Test Cases ---

def test_check_dependencies_all_installed(mock_importer, mock_model_registry, caplog):
    """
    Scenario: All required and optional dependencies are installed.
    Assumptions: The function should not raise and should log a success message.
    """
    with caplog.at_level(logging.INFO):
        dependencies.check_dependencies()
    assert "All required libraries for models" in caplog.text
    assert "Missing required libraries" not in caplog.text


def test_check_dependencies_missing_model_specific_library(mock_importer, mock_model_registry):
    """
    Scenario: A required dependency for a specific model is missing.
    Assumptions: The ImportError names the library, its purpose and the install command.
    """
    mock_importer.side_effect = lambda module_name: None if module_name == 'statsmodels' else MagicMock()

    with pytest.raises(ImportError) as excinfo:
        dependencies.check_dependencies(model_names=['arima'])

    error_message = str(excinfo.value)
    assert "Missing required libraries" in error_message
    assert "unit-root p-values" in error_message
    assert "pip install statsmodels" in error_message


def test_check_dependencies_missing_optional_library(mock_importer, mock_model_registry):
    """
    Scenario: An optional dependency is missing when checking all models.
    Assumptions: The function should raise an ImportError with the correct details.
    """
    mock_importer.side_effect = lambda module_name: None if module_name == 'matplotlib' else MagicMock()

    with pytest.raises(ImportError) as excinfo:
        dependencies.check_dependencies(model_names=None)

    error_message = str(excinfo.value)
    assert "Matplotlib" in error_message
    assert "plotting" in error_message


def test_optional_libraries_are_skipped_for_explicit_models(mock_importer, mock_model_registry):
    mock_importer.side_effect = lambda module_name: None if module_name == 'matplotlib' else MagicMock()
    dependencies.check_dependencies(model_names=['auto_arima'])


def test_check_dependencies_multiple_missing(mock_importer, mock_model_registry):
    """
    Scenario: Multiple required dependencies are missing.
    Assumptions: The ImportError message should list all missing libraries once.
    """
    mock_importer.side_effect = lambda module_name: None if module_name in ['scipy', 'statsmodels'] else MagicMock()

    with pytest.raises(ImportError) as excinfo:
        dependencies.check_dependencies(model_names=['arima', 'auto_arima'])

    error_message = str(excinfo.value)
    assert error_message.count("- SciPy") == 1
    assert "statsmodels" in error_message


def test_check_dependencies_invalid_model_name(mock_model_registry):
    with pytest.raises(ValueError, match=r"Invalid model names: \['sarima'\]"):
        dependencies.check_dependencies(model_names=['sarima'])


def test_check_dependencies_invalid_package_manager(mock_model_registry):
    with pytest.raises(ValueError, match="package_manager must be 'pip' or 'conda'"):
        dependencies.check_dependencies(package_manager='npm')


def test_check_dependencies_generates_conda_install_command(mock_importer, mock_model_registry):
    """
    Scenario: A dependency is missing, and the package manager is set to 'conda'.
    Assumptions: The installation command in the error message should use 'conda install'.
    """
    mock_importer.side_effect = lambda module_name: None if module_name == 'statsmodels' else MagicMock()

    with pytest.raises(ImportError) as excinfo:
        dependencies.check_dependencies(model_names=['arima'], package_manager='conda')

    assert "conda install statsmodels" in str(excinfo.value)
