"""
activations.py
~~~~~~~~~~~~~~

Logistic sigmoid activation and its derivative.
"""

from typing import Union

import numpy as np

from densenn.matrix import Matrix, elementwise

ArrayLike = Union[float, np.ndarray]


def sigmoid(z: ArrayLike) -> ArrayLike:
    """
    The sigmoid function ``1 / (1 + e^-z)``, applied element-wise to arrays.

    Very negative inputs overflow ``exp`` to ``inf`` and give exactly 0.0,
    which is the IEEE-754 result; the overflow warning is silenced. Float
    inputs keep their precision, anything else is computed in float64.
    """
    z = np.asarray(z)
    if z.dtype.kind != 'f':
        z = z.astype(np.float64)
    with np.errstate(over='ignore'):
        return 1.0 / (1.0 + np.exp(-z))


def sigmoid_prime(z: ArrayLike) -> ArrayLike:
    """Derivative of the sigmoid function."""
    s = sigmoid(z)
    return s * (1.0 - s)


def apply_sigmoid(matrix: Matrix) -> Matrix:
    """Return a new matrix with the sigmoid applied to every element."""
    return elementwise(matrix, sigmoid)


def apply_sigmoid_prime(matrix: Matrix) -> Matrix:
    """Return a new matrix of sigmoid derivatives, one per element."""
    return elementwise(matrix, sigmoid_prime)
