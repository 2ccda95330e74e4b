import pytest
import yaml
from schema import SchemaError

from utils.config_utils import (
    ConfigValidationError,
    DEFAULT_FORECAST,
    get_model_config,
    get_section,
    is_valid_freq,
    load_config,
    validate_config,
    validate_preprocessing,
)


@pytest.fixture
def dummy_data_path(tmp_path):
    """Creates a dummy data file for config validation and returns its path."""
    data_file = tmp_path / "prices.csv"
    data_file.write_text("Date,Close\n2023-01-01,10.5\n2023-01-02,10.7\n")
    return str(data_file)


@pytest.fixture
def valid_config_dict(dummy_data_path):
    """Pytest fixture to provide a base valid configuration using a temporary data file."""
    return {
        'datasets': {
            'prices': {
                'path': dummy_data_path,
                'date_column': 'Date',
                'columns': ['Close'],
                'freq': 'D',
            }
        },
        'models': {
            'arima': {
                'p': 1, 'd': 1, 'q': 0,
                'method': 'css-mle',
                'preprocessing': {'log_transform': {'enabled': True}},
            },
            'auto_arima': {
                'search': {'p': {'min': 0, 'max': 2}, 'd': [1], 'q': [0, 1]},
                'refit_method': 'mle',
                'n_jobs': 1,
            },
        },
        'analysis': {'stationarity': {'regression': 'ct', 'autolag': 'bic'}},
        'forecast': {'steps': 5, 'confidence_level': 0.99},
    }


# --- validate_config ---

def test_config_validation_succeeds_with_valid_config(valid_config_dict):
    """Test that a correctly structured config passes validation."""
    validated = validate_config(valid_config_dict)
    assert isinstance(validated, dict)
    assert validated['models']['arima']['p'] == 1


def test_config_validation_fails_on_missing_top_level_key(valid_config_dict):
    """Test that a config missing a required top-level key (e.g., 'datasets') fails."""
    del valid_config_dict['datasets']
    with pytest.raises(SchemaError, match="Missing key: 'datasets'"):
        validate_config(valid_config_dict)


def test_config_validation_fails_on_missing_nested_key(valid_config_dict):
    """Test that a config missing a required nested key (e.g., 'path') fails."""
    del valid_config_dict['datasets']['prices']['path']
    with pytest.raises(SchemaError, match="Missing key: 'path'"):
        validate_config(valid_config_dict)


def test_config_validation_fails_on_missing_order(valid_config_dict):
    del valid_config_dict['models']['arima']['q']
    with pytest.raises(SchemaError, match="Missing key: 'q'"):
        validate_config(valid_config_dict)


def test_config_validation_fails_on_unknown_model(valid_config_dict):
    valid_config_dict['models']['sarima'] = {'p': 1}
    with pytest.raises(SchemaError):
        validate_config(valid_config_dict)


def test_config_validation_requires_single_value_column(valid_config_dict):
    valid_config_dict['datasets']['prices']['columns'] = ['Open', 'Close']
    with pytest.raises(SchemaError, match="exactly one value column"):
        validate_config(valid_config_dict)


def test_config_validation_fails_on_missing_file(valid_config_dict, tmp_path):
    valid_config_dict['datasets']['prices']['path'] = str(tmp_path / "missing.csv")
    with pytest.raises(SchemaError, match="does not exist"):
        validate_config(valid_config_dict)


@pytest.mark.parametrize("section, key, value", [
    ('forecast', 'confidence_level', 1.0),
    ('forecast', 'steps', 0),
    ('forecast', 'steps', "ten"),
])
def test_config_validation_fails_on_bad_forecast_settings(valid_config_dict, section, key, value):
    valid_config_dict[section][key] = value
    with pytest.raises(SchemaError):
        validate_config(valid_config_dict)


def test_config_validation_fails_on_bad_method(valid_config_dict):
    valid_config_dict['models']['arima']['method'] = 'ols'
    with pytest.raises(SchemaError, match="`method` must be one of"):
        validate_config(valid_config_dict)


def test_config_validation_fails_on_inverted_search_range(valid_config_dict):
    valid_config_dict['models']['auto_arima']['search']['p'] = {'min': 3, 'max': 1}
    with pytest.raises(SchemaError):
        validate_config(valid_config_dict)


# --- validate_preprocessing ---

def test_validate_preprocessing_accepts_auto_differencing():
    validate_preprocessing({'differencing': {'enabled': True, 'auto': 'adf', 'max_d': 2}})


def test_validate_preprocessing_rejects_unknown_test():
    with pytest.raises(SchemaError, match="differencing.auto"):
        validate_preprocessing({'differencing': {'enabled': True, 'auto': 'pp'}})


def test_validate_preprocessing_rejects_order_longer_than_data():
    with pytest.raises(ValueError, match="must be less than data length"):
        validate_preprocessing({'differencing': {'enabled': True, 'order': 3}}, data=[1.0, 2.0, 3.0])


# --- load_config / get_model_config / get_section ---

def test_load_config_reads_yaml(valid_config_dict, tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(valid_config_dict))
    config = load_config(str(path))
    assert config['forecast']['steps'] == 5


def test_load_config_wraps_schema_errors(valid_config_dict, tmp_path):
    valid_config_dict['models']['arima']['p'] = -1
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(valid_config_dict))
    with pytest.raises(ConfigValidationError):
        load_config(str(path))


def test_load_config_missing_and_empty_files(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "nope.yaml"))
    empty = tmp_path / "empty.yaml"
    empty.write_text("")
    with pytest.raises(ValueError, match="empty"):
        load_config(str(empty))


def test_get_model_config_retrieves_correctly(valid_config_dict, mocker):
    """Test retrieval of model config using a mocked load_config."""
    mocker.patch('utils.config_utils.load_config', return_value=valid_config_dict)
    model_config = get_model_config('arima', config_path="dummy_path.yaml")
    assert model_config == valid_config_dict['models']['arima']


def test_get_model_config_raises_error_for_nonexistent_model(valid_config_dict, mocker):
    """Test that requesting a nonexistent model correctly raises a ValueError."""
    mocker.patch('utils.config_utils.load_config', return_value=valid_config_dict)
    with pytest.raises(ValueError, match="Invalid model name: nonexistent_model"):
        get_model_config('nonexistent_model', config_path="dummy_path.yaml")


def test_get_section_merges_defaults(valid_config_dict):
    analysis = get_section(valid_config_dict, 'analysis')
    assert analysis['stationarity']['regression'] == 'ct'
    assert analysis['stationarity']['significance'] == 0.05
    assert analysis['correlation']['max_lag'] == 20

    forecast = get_section({}, 'forecast')
    assert forecast == DEFAULT_FORECAST

    with pytest.raises(ValueError):
        get_section(valid_config_dict, 'models')


@pytest.mark.parametrize("freq, expected", [("D", True), ("MS", True), ("bogus", False)])
def test_is_valid_freq(freq, expected):
    assert is_valid_freq(freq) is expected
