"""Candidate (p, d, q) orders for the AIC grid search.

The grid is the full Cartesian product of the requested values, enumerated in
lexicographic (p, d, q) order so that searches are reproducible.
"""

import itertools
import logging
from typing import Dict, List, Optional, Union

from models.results import ARIMAOrder
from utils.hyperopt.params_utils import _validate_order_space

logger = logging.getLogger(__name__)

DEFAULT_ORDER_SPACE = {
    "p": {"min": 0, "max": 5},
    "d": {"min": 0, "max": 2},
    "q": {"min": 0, "max": 5},
}


def generate_order_grid(
    search_space: Optional[Dict[str, Union[List, Dict]]] = None,
    max_params: Optional[int] = None,
) -> List[ARIMAOrder]:
    """
    Generate all (p, d, q) combinations of a search space.

    Args:
        search_space: Dictionary with 'p', 'd' and 'q' keys whose values are either
            lists of integers or dictionaries with 'min', 'max' and optional 'step'.
            Defaults to p, q in 0..5 and d in 0..2.
        max_params: Optional cap on ``p + q``; larger candidates are dropped.

    Returns:
        List of ARIMAOrder in lexicographic order.

    Raises:
        ValueError: If the search space is invalid or no candidate survives ``max_params``.
    """
    if search_space is None:
        search_space = DEFAULT_ORDER_SPACE
    if max_params is not None and (not isinstance(max_params, int) or max_params < 0):
        logger.error(f"Invalid max_params: {max_params}. Must be a non-negative integer.")
        raise ValueError("max_params must be a non-negative integer")

    try:
        order_values = _validate_order_space(search_space)
    except (TypeError, ValueError) as e:
        logger.error(f"Failed to validate search_space: {str(e)}")
        raise ValueError(f"Invalid search_space: {str(e)}")

    grid = [ARIMAOrder(*combo) for combo in itertools.product(*(values for _, values in order_values))]
    if max_params is not None:
        grid = [order for order in grid if order.p + order.q <= max_params]
    if not grid:
        logger.error("No candidate orders left after applying max_params")
        raise ValueError("No candidate orders in search_space")

    logger.info(f"Generated {len(grid)} candidate orders")
    return grid
