"""
test_activations.py
~~~~~~~~~~~~~~~~~~~

Unit tests for the sigmoid activation and the cost functions.
"""

import math
import warnings

import numpy as np
import pytest

from densenn.activations import apply_sigmoid, sigmoid, sigmoid_prime
from densenn.costs import COSTS, CrossEntropyCost, QuadraticCost, get_cost
from densenn.matrix import Matrix


@pytest.mark.unit
class TestSigmoid:
    """Test the logistic sigmoid."""

    def test_sigmoid_of_zero(self):
        """Test that sigmoid(0) is exactly one half."""
        assert sigmoid(0.0) == 0.5

    def test_sigmoid_strictly_increasing_and_bounded(self):
        """Test monotonicity and the (0, 1) bound over a range of inputs."""
        z = np.linspace(-30.0, 30.0, 601)
        values = sigmoid(z)

        assert np.all(np.diff(values) > 0)
        assert np.all(values > 0.0)
        assert np.all(values < 1.0)

    def test_sigmoid_saturates_without_warnings(self):
        """Test that huge inputs saturate to the IEEE-754 limits silently."""
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            assert sigmoid(-1000.0) == 0.0
            assert sigmoid(1000.0) == 1.0

    def test_sigmoid_keeps_float32(self):
        """Test that float32 inputs are not promoted."""
        assert sigmoid(np.zeros(3, dtype=np.float32)).dtype == np.float32

    def test_sigmoid_prime(self):
        """Test the derivative against s(x) * (1 - s(x))."""
        assert sigmoid_prime(0.0) == 0.25
        s = 1.0 / (1.0 + math.exp(-1.5))
        assert sigmoid_prime(1.5) == pytest.approx(s * (1.0 - s))

    def test_apply_sigmoid_on_matrix(self):
        """Test that apply_sigmoid maps each element and keeps the shape."""
        m = Matrix(3, 1)
        result = apply_sigmoid(m)

        assert result.shape == (3, 1)
        assert list(result) == [0.5, 0.5, 0.5]
        assert list(m) == [0.0, 0.0, 0.0]


@pytest.mark.unit
class TestCosts:
    """Test the cost functions."""

    def test_quadratic_cost(self):
        """Test half the squared error."""
        a = Matrix.column([0.5, 0.0])
        y = Matrix.column([1.0, 1.0])

        assert QuadraticCost.fn(a, y) == pytest.approx(0.5 * (0.25 + 1.0))

    def test_quadratic_delta(self):
        """Test that the quadratic delta includes the sigmoid derivative."""
        z = Matrix.column([0.0])
        a = Matrix.column([0.5])
        y = Matrix.column([1.0])

        assert QuadraticCost.delta(z, a, y).get(0, 0) == pytest.approx(-0.5 * 0.25)

    def test_cross_entropy_cost(self):
        """Test binary cross-entropy for a single output."""
        a = Matrix.column([0.5])
        y = Matrix.column([1.0])

        assert CrossEntropyCost.fn(a, y) == pytest.approx(math.log(2.0))

    def test_cross_entropy_saturated_output(self):
        """Test that a saturated, correct output costs nothing."""
        a = Matrix.column([1.0, 0.0])
        y = Matrix.column([1.0, 0.0])

        assert CrossEntropyCost.fn(a, y) == 0.0

    def test_cross_entropy_delta(self):
        """Test that the cross-entropy delta is a - y."""
        z = Matrix.column([0.3])
        a = Matrix.column([0.8])
        y = Matrix.column([1.0])

        assert CrossEntropyCost.delta(z, a, y).get(0, 0) == pytest.approx(-0.2)

    def test_get_cost(self):
        """Test cost lookup by name."""
        assert get_cost('quadratic') is QuadraticCost
        assert get_cost('cross_entropy') is CrossEntropyCost
        assert set(COSTS) == {'quadratic', 'cross_entropy'}

    @pytest.mark.parametrize("name", ["hinge", "", None, ["quadratic"]])
    def test_get_cost_unknown(self, name):
        """Test that unknown cost names raise ValueError."""
        with pytest.raises(ValueError):
            get_cost(name)
