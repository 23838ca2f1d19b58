# src/lidartrees/analysis/percentile.py

"""
This module implements height-percentile selection of the tallest detected trees.
"""

from typing import Sequence, Union
import logging

import numpy as np

from lidartrees.errors import InvalidInputError
from lidartrees.vector import Vector, resolve_vector, filter_vector

log = logging.getLogger(__name__)

__all__ = [
    "height_quantile",
    "select_tall_trees"
]

def height_quantile(heights: Union[Sequence[float], np.ndarray], p: float) -> float:
    """
    Value at quantile p of the heights, interpolating linearly between order statistics.

    For n sorted values the position is p * (n - 1); the result interpolates between the
    values at the floor and ceiling of that position.

    Raises:
        InvalidInputError: If there are no heights or p is outside (0, 1).
    """
    if not 0 < p < 1:
        raise InvalidInputError(f"Percentile must lie in the open interval (0, 1), got {p}")

    heights = np.asarray(heights, dtype=np.float64)
    if heights.size == 0:
        raise InvalidInputError("Cannot compute a percentile of an empty height sequence")

    return float(np.quantile(heights, p, method="linear"))

@resolve_vector
def select_tall_trees(
    trees: Vector,
    percentile: float = 0.9,
    column: str = "height"
) -> Vector:
    """
    Keeps the trees strictly taller than the given height percentile of the whole set.

    Args:
        trees: Tree candidates (Vector or path to a vector file).
        percentile: Quantile in (0, 1), e.g. 0.9 keeps roughly the tallest 10%.
        column: Name of the height column.

    Returns:
        Vector: The tall-tree subset, input order preserved.
    """
    if column not in trees.columns:
        raise InvalidInputError(f"Column '{column}' not found in tree records. Available: {trees.columns}")

    threshold = height_quantile(trees.data[column].to_numpy(), percentile)
    tall = filter_vector(trees, trees.data[column] > threshold)

    log.info(f"{len(tall)} of {len(trees)} trees exceed the p{percentile * 100:g} height of {threshold:.2f}")
    return tall
