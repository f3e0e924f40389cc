"""
network.py
~~~~~~~~~~

Feedforward sigmoid network built from weight/bias layers.

A network of sizes ``[n0, n1, ..., nk]`` holds k layers; layer i maps a
column of ``sizes[i]`` activations to a column of ``sizes[i + 1]``. Training
uses gradient descent with backpropagation. The update granularity is chosen
with ``mini_batch_size``: 1 updates after every example (stochastic), None
averages the gradient over the whole dataset once per epoch (batch), and any
other positive value updates once per mini-batch.

All arithmetic goes through ``densenn.matrix``.
"""

import logging
import time
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from densenn.activations import apply_sigmoid, apply_sigmoid_prime
from densenn.costs import CostFunction, QuadraticCost
from densenn.dataset import split_cases
from densenn.matrix import (
    CreateError,
    Matrix,
    ShapeError,
    add,
    hadamard,
    multiply,
    scale,
    subtract,
    transpose,
)

logger = logging.getLogger(__name__)

Case = Tuple[Matrix, Matrix]
Gradients = Tuple[List[Matrix], List[Matrix]]


class CaseResult(NamedTuple):
    """Network output for one dataset case next to the expected label."""

    index: int
    predicted: Matrix
    expected: Matrix


def _flat(matrix: Matrix) -> List[float]:
    return [float(value) for value in matrix]


# ============================================================================
# LAYER
# ============================================================================

class Layer:
    """
    One fully connected sigmoid layer.

    Holds a ``(current_size, previous_size)`` weight matrix and a
    ``(current_size, 1)`` bias column, both zero until randomized.
    """

    def __init__(self, previous_size: int, current_size: int, dtype: Any = np.float64):
        """
        Args:
            previous_size: Neurons in the previous layer (or network inputs)
            current_size: Neurons in this layer
            dtype: Element type of the parameters

        Raises:
            CreateError: If either size is not a positive integer
        """
        self.weights = Matrix(current_size, previous_size, dtype)
        self.biases = Matrix(current_size, 1, dtype)

    @property
    def previous_size(self) -> int:
        return self.weights.cols

    @property
    def current_size(self) -> int:
        return self.weights.rows

    def weighted_input(self, x: Matrix) -> Matrix:
        """
        Pre-activation ``weights * x + biases``.

        Raises:
            ShapeError: If ``x`` is not a ``(previous_size, 1)`` column
        """
        if x.shape != (self.previous_size, 1):
            raise ShapeError(
                f"Layer expects a ({self.previous_size}, 1) input, got {x.shape}"
            )
        return add(multiply(self.weights, x), self.biases)

    def activate(self, x: Matrix) -> Matrix:
        """Return ``sigmoid(weights * x + biases)`` as a new column matrix."""
        return apply_sigmoid(self.weighted_input(x))

    def randomize(self, rng: np.random.Generator) -> None:
        self.weights.randomize(rng)
        self.biases.randomize(rng)

    def __str__(self) -> str:
        return f"Weights:\n {self.weights}\nBiases: \n {self.biases}"


# ============================================================================
# NETWORK
# ============================================================================

class Network:
    """Ordered stack of sigmoid layers."""

    def __init__(self, sizes: Sequence[int], dtype: Any = np.float64):
        """
        Build one layer per consecutive pair of sizes.

        Args:
            sizes: Neuron counts, input layer first, e.g. ``[2, 2, 1]``
            dtype: Element type of every parameter matrix

        Raises:
            CreateError: If fewer than two sizes are given or a size is not
                a positive integer
        """
        sizes = list(sizes)
        if len(sizes) < 2:
            raise CreateError(
                f"A network needs at least an input and an output size, got {sizes}"
            )

        self.sizes = sizes
        self.dtype = np.dtype(dtype)
        self.layers = [
            Layer(previous, current, self.dtype)
            for previous, current in zip(sizes[:-1], sizes[1:])
        ]
        logger.debug(f"Created network with sizes {sizes}")

    @property
    def num_layers(self) -> int:
        """Number of weight layers (one less than ``len(sizes)``)."""
        return len(self.layers)

    @property
    def input_size(self) -> int:
        return self.sizes[0]

    @property
    def output_size(self) -> int:
        return self.sizes[-1]

    def randomize_parameters(self, rng: Optional[np.random.Generator] = None) -> None:
        """
        Overwrite every weight and bias with an independent uniform [0, 1) sample.

        Args:
            rng: Source of randomness; a fresh unseeded generator if omitted
        """
        if rng is None:
            rng = np.random.default_rng()
        for layer in self.layers:
            layer.randomize(rng)

    # ------------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------------

    def infer(self, x: Matrix) -> Matrix:
        """
        Feed a column of inputs through every layer.

        Args:
            x: Column matrix of shape ``(input_size, 1)``

        Returns:
            Column matrix of shape ``(output_size, 1)``

        Raises:
            ShapeError: If ``x`` has the wrong shape
        """
        if x.shape != (self.input_size, 1):
            raise ShapeError(
                f"Network expects a ({self.input_size}, 1) input, got {x.shape}"
            )
        activation = x
        for layer in self.layers:
            activation = layer.activate(activation)
        return activation

    def feedforward(self, x: Any) -> Matrix:
        """``infer`` for a column matrix or a flat sequence of input values."""
        if not isinstance(x, Matrix):
            x = Matrix.column(x, self.dtype)
        return self.infer(x)

    def _cases(self, dataset: Matrix) -> List[Case]:
        return split_cases(dataset, self.input_size, self.output_size, self.dtype)

    def evaluate(self, dataset: Matrix) -> List[CaseResult]:
        """
        Run every dataset case through the network and report the outputs.

        Each case is logged next to its expected label. Nothing is scored.

        Raises:
            ShapeError: If the dataset rows do not fit the network
        """
        results = []
        for i, (x, y) in enumerate(self._cases(dataset)):
            output = self.infer(x)
            logger.info(f"Case {i}: result={_flat(output)} expected={_flat(y)}")
            results.append(CaseResult(i, output, y))
        return results

    def _total_cost(self, cases: List[Case], cost: CostFunction) -> float:
        return sum(cost.fn(self.infer(x), y) for x, y in cases)

    def total_cost(self, dataset: Matrix, cost: CostFunction = QuadraticCost) -> float:
        """Sum of ``cost`` over every case in the dataset."""
        return self._total_cost(self._cases(dataset), cost)

    # ------------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------------

    def backprop(self, x: Matrix, y: Matrix, cost: CostFunction = QuadraticCost) -> Gradients:
        """
        Gradient of the cost for a single case.

        Returns:
            ``(nabla_b, nabla_w)``, lists of matrices shaped like each
            layer's biases and weights
        """
        activation = x
        activations = [x]
        zs = []
        for layer in self.layers:
            z = layer.weighted_input(activation)
            zs.append(z)
            activation = apply_sigmoid(z)
            activations.append(activation)

        nabla_b: List[Matrix] = [None] * self.num_layers
        nabla_w: List[Matrix] = [None] * self.num_layers

        delta = cost.delta(zs[-1], activations[-1], y)
        nabla_b[-1] = delta
        nabla_w[-1] = multiply(delta, transpose(activations[-2]))

        # l counts back from the output: l = 2 is the last hidden layer
        for l in range(2, self.num_layers + 1):
            delta = hadamard(
                multiply(transpose(self.layers[-l + 1].weights), delta),
                apply_sigmoid_prime(zs[-l])
            )
            nabla_b[-l] = delta
            nabla_w[-l] = multiply(delta, transpose(activations[-l - 1]))

        return nabla_b, nabla_w

    def update_mini_batch(
        self,
        batch: List[Case],
        learning_rate: float,
        cost: CostFunction = QuadraticCost
    ) -> None:
        """Apply one gradient-descent step using the gradient averaged over ``batch``."""
        nabla_b = [Matrix(*layer.biases.shape, dtype=self.dtype) for layer in self.layers]
        nabla_w = [Matrix(*layer.weights.shape, dtype=self.dtype) for layer in self.layers]

        for x, y in batch:
            delta_nabla_b, delta_nabla_w = self.backprop(x, y, cost)
            nabla_b = [add(nb, dnb) for nb, dnb in zip(nabla_b, delta_nabla_b)]
            nabla_w = [add(nw, dnw) for nw, dnw in zip(nabla_w, delta_nabla_w)]

        step = learning_rate / len(batch)
        for layer, nb, nw in zip(self.layers, nabla_b, nabla_w):
            layer.weights = subtract(layer.weights, scale(nw, step))
            layer.biases = subtract(layer.biases, scale(nb, step))

    def train(
        self,
        dataset: Matrix,
        epochs: int,
        learning_rate: float = 0.5,
        mini_batch_size: Optional[int] = 1,
        cost: CostFunction = QuadraticCost,
        shuffle: bool = False,
        rng: Optional[np.random.Generator] = None,
        callback: Optional[Callable[[Dict[str, Any]], None]] = None,
        log_interval: Optional[int] = None
    ) -> List[float]:
        """
        Train the network with gradient descent.

        Args:
            dataset: Labeled examples, one per row (see ``densenn.dataset``)
            epochs: Number of passes over the dataset
            learning_rate: Step size applied to the averaged gradient
            mini_batch_size: Examples per update; 1 is stochastic, None is
                full batch
            cost: Cost class from ``densenn.costs``
            shuffle: Shuffle the case order at the start of every epoch
            rng: Generator used for shuffling
            callback: Called after each epoch with a progress dict holding
                ``epoch``, ``total_epochs``, ``cost`` and ``elapsed_time``
            log_interval: Log the cost every this many epochs; defaults to a
                tenth of ``epochs``

        Returns:
            Total cost over the dataset after each epoch

        Raises:
            ValueError: If a hyper-parameter is out of range
            ShapeError: If the dataset rows do not fit the network
        """
        if isinstance(epochs, bool) or not isinstance(epochs, int) or epochs < 0:
            raise ValueError(f"epochs must be a non-negative integer, got {epochs!r}")
        if (isinstance(learning_rate, bool) or not isinstance(learning_rate, (int, float))
                or learning_rate <= 0):
            raise ValueError(f"learning_rate must be a positive number, got {learning_rate!r}")
        if mini_batch_size is not None and (
                isinstance(mini_batch_size, bool) or not isinstance(mini_batch_size, int)
                or mini_batch_size <= 0):
            raise ValueError(
                f"mini_batch_size must be a positive integer or None, got {mini_batch_size!r}"
            )
        if log_interval is not None and (
                isinstance(log_interval, bool) or not isinstance(log_interval, int)
                or log_interval <= 0):
            raise ValueError(
                f"log_interval must be a positive integer or None, got {log_interval!r}"
            )

        cases = self._cases(dataset)
        batch_size = len(cases) if mini_batch_size is None else mini_batch_size
        if shuffle and rng is None:
            rng = np.random.default_rng()

        logger.info(
            f"Training network {self.sizes} on {len(cases)} case(s): "
            f"epochs={epochs}, batch_size={batch_size}, lr={learning_rate}, "
            f"cost={cost.name}"
        )

        if log_interval is None:
            log_interval = max(1, epochs // 10)
        history = []
        start_time = time.time()
        for epoch in range(1, epochs + 1):
            order = list(range(len(cases)))
            if shuffle:
                rng.shuffle(order)

            for start in range(0, len(order), batch_size):
                batch = [cases[i] for i in order[start:start + batch_size]]
                self.update_mini_batch(batch, learning_rate, cost)

            epoch_cost = self._total_cost(cases, cost)
            history.append(epoch_cost)

            if epoch % log_interval == 0:
                logger.info(f"Epoch {epoch}/{epochs}: cost {epoch_cost:.6f}")

            if callback is not None:
                callback({
                    'epoch': epoch,
                    'total_epochs': epochs,
                    'cost': epoch_cost,
                    'elapsed_time': time.time() - start_time
                })

        if history:
            logger.info(
                f"Training finished in {time.time() - start_time:.2f}s, "
                f"final cost {history[-1]:.6f}"
            )
        return history

    def __str__(self) -> str:
        return ''.join(f"\n{layer}\n" for layer in self.layers)
