"""
costs.py
~~~~~~~~

Cost functions used to train a network.

Each cost is a class of static methods: ``fn(a, y)`` returns the cost of
output ``a`` against the expected output ``y`` as a float, and
``delta(z, a, y)`` returns the error of the output layer given its weighted
input ``z``. All arguments are column matrices.
"""

from typing import Dict, Type, Union

import numpy as np

from densenn.activations import apply_sigmoid_prime
from densenn.matrix import Matrix, hadamard, subtract


class QuadraticCost:
    """Half the squared Euclidean distance between output and target."""

    name = 'quadratic'

    @staticmethod
    def fn(a: Matrix, y: Matrix) -> float:
        diff = subtract(a, y).to_array().astype(np.float64)
        return 0.5 * float(np.sum(diff ** 2))

    @staticmethod
    def delta(z: Matrix, a: Matrix, y: Matrix) -> Matrix:
        return hadamard(subtract(a, y), apply_sigmoid_prime(z))


class CrossEntropyCost:
    """
    Binary cross-entropy for sigmoid outputs.

    Saturated outputs (``a == y == 1`` or ``a == y == 0``) would produce
    ``0 * log(0)``; ``nan_to_num`` maps those terms to 0.
    """

    name = 'cross_entropy'

    @staticmethod
    def fn(a: Matrix, y: Matrix) -> float:
        a_values = a.to_array().astype(np.float64)
        y_values = y.to_array().astype(np.float64)
        with np.errstate(divide='ignore', invalid='ignore'):
            terms = -y_values * np.log(a_values) - (1 - y_values) * np.log(1 - a_values)
        return float(np.sum(np.nan_to_num(terms)))

    @staticmethod
    def delta(z: Matrix, a: Matrix, y: Matrix) -> Matrix:
        # The sigmoid derivative cancels against the cost's own derivative.
        return subtract(a, y)


CostFunction = Union[Type[QuadraticCost], Type[CrossEntropyCost]]

COSTS: Dict[str, CostFunction] = {
    QuadraticCost.name: QuadraticCost,
    CrossEntropyCost.name: CrossEntropyCost,
}


def get_cost(name: str) -> CostFunction:
    """
    Look up a cost class by name.

    Raises:
        ValueError: If the name is unknown
    """
    if not isinstance(name, str) or name not in COSTS:
        raise ValueError(f"Unknown cost {name!r}, expected one of {sorted(COSTS)}")
    return COSTS[name]
