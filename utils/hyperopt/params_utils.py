import logging
from typing import Dict, List, Tuple, Union

logger = logging.getLogger(__name__)

ORDER_KEYS = ("p", "d", "q")


def _validate_order_space(search_space: Dict[str, Union[List, Dict]]) -> List[Tuple[str, List[int]]]:
    """
    Validate and expand an ARIMA order search space.

    Each of 'p', 'd' and 'q' is either a non-empty list of non-negative integers or a
    dictionary with integer 'min' and 'max' keys and an optional positive integer 'step'.
    A missing key defaults to ``[0]``.

    Args:
        search_space: Dictionary keyed by 'p', 'd' and 'q'.

    Returns:
        List[Tuple[str, List[int]]]: ('p', values), ('d', values), ('q', values) in that order,
            each list sorted and free of duplicates.

    Raises:
        ValueError: If a key is unknown, a list is empty, or a range is invalid.
        TypeError: If a bound, step or value is not an integer.

    Example:
        >>> _validate_order_space({'p': {'min': 0, 'max': 2}, 'd': [1], 'q': [0, 1]})
        [('p', [0, 1, 2]), ('d', [1]), ('q', [0, 1])]
    """
    if not search_space:
        raise ValueError("search_space cannot be empty")
    unknown = set(search_space) - set(ORDER_KEYS)
    if unknown:
        raise ValueError(f"Unknown order keys in search_space: {sorted(unknown)}")

    validated = []
    for key in ORDER_KEYS:
        value = search_space.get(key, [0])

        if isinstance(value, list):
            if not value:
                raise ValueError(f"Order '{key}' has an empty list of values")
            values = value
        elif isinstance(value, dict):
            if 'min' not in value or 'max' not in value:
                raise ValueError(f"Order '{key}' range must include 'min' and 'max' keys")
            min_value, max_value = value['min'], value['max']
            step = value.get('step', 1)
            for name, bound in (("min", min_value), ("max", max_value), ("step", step)):
                if not _is_int(bound):
                    raise TypeError(f"Order '{key}' {name} must be an integer")
            if min_value > max_value:
                raise ValueError(f"Order '{key}' has invalid range: min ({min_value}) > max ({max_value})")
            if step <= 0:
                raise ValueError(f"Order '{key}' has invalid step: must be positive")
            values = list(range(min_value, max_value + 1, step))
        else:
            raise ValueError(f"Invalid format for order '{key}': must be list or dict")

        for v in values:
            if not _is_int(v):
                raise TypeError(f"Order '{key}' values must be integers, got {v!r}")
            if v < 0:
                raise ValueError(f"Order '{key}' values must be non-negative, got {v}")
        validated.append((key, sorted(set(int(v) for v in values))))

    return validated


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
