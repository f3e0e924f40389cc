"""
matrix.py
~~~~~~~~~

Dense row-major matrix container and the arithmetic the network is built on.

Elements live in a single flat numpy array owned by the matrix. The element
type is the array's dtype: float and integer dtypes work directly, and the
``object`` dtype carries exact types such as ``fractions.Fraction`` or
``decimal.Decimal``. Anything that has a zero and supports addition and
multiplication can be stored.

Arithmetic is exposed as module-level functions (``add``, ``multiply``, ...)
rather than operator overloads so the shape requirements are visible at the
call site.
"""

import numbers
from typing import Any, Callable, Generator, Iterable, List, Optional, Tuple

import numpy as np


# ============================================================================
# ERRORS
# ============================================================================

class MatrixError(Exception):
    """Base class for all matrix errors."""


class CreateError(MatrixError):
    """Raised when a matrix cannot be built with the requested shape or data."""


class GetError(MatrixError, IndexError):
    """Raised when an element access falls outside the matrix."""


class ShapeError(MatrixError, ValueError):
    """Raised when operand shapes are incompatible with an operation."""


# Array kinds that hold numbers: bool, signed, unsigned, float, complex, object
_NUMERIC_KINDS = 'biufcO'


def _is_index(value: Any) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


def _check_dimension(name: str, value: Any) -> int:
    if not _is_index(value) or value <= 0:
        raise CreateError(f"{name} must be a positive integer, got {value!r}")
    return int(value)


def _check_dtype(dtype: Any) -> np.dtype:
    try:
        dtype = np.dtype(dtype)
    except TypeError as e:
        raise CreateError(f"Invalid matrix dtype {dtype!r}: {e}") from e
    if dtype.kind not in _NUMERIC_KINDS:
        raise CreateError(f"Matrix elements must be numeric, got dtype {dtype}")
    return dtype


def _to_array(data: Any, dtype: Any) -> np.ndarray:
    """
    Copy caller data into a fresh numpy array, rejecting non-numeric input.

    ``None`` elements, non-number objects and NaN or infinite floats are all
    refused, including a ``None`` that numpy would silently turn into NaN
    under a float dtype.
    """
    try:
        if not isinstance(data, (np.ndarray, list, tuple)):
            data = list(data)
        # Build without the target dtype first so None survives as an object
        raw = np.array(data, dtype=object if dtype is not None else None)
    except (TypeError, ValueError) as e:
        raise CreateError(f"Cannot build matrix storage from data: {e}") from e

    if raw.dtype.kind == 'O':
        for value in raw.flat:
            if value is None or not isinstance(value, numbers.Number):
                raise CreateError(f"Matrix elements must be numeric, got {value!r}")

    try:
        array = np.array(data, dtype=dtype)
    except (TypeError, ValueError) as e:
        raise CreateError(f"Cannot build matrix storage from data: {e}") from e

    _check_dtype(array.dtype)
    if array.dtype.kind in 'fc' and not np.all(np.isfinite(array)):
        raise CreateError("Matrix elements must be finite numbers")
    return array


# ============================================================================
# MATRIX CONTAINER
# ============================================================================

class Matrix:
    """
    A ``rows x cols`` dense matrix stored as one flat row-major array.

    Invariant: ``size == rows * cols`` with both dimensions positive. The
    matrix exclusively owns its storage; constructors copy the data they are
    given and ``copy()`` returns an independent matrix.
    """

    __slots__ = ('_rows', '_cols', '_data')

    def __init__(self, rows: int, cols: int, dtype: Any = np.float64):
        """
        Create a matrix filled with the dtype's zero value.

        Args:
            rows: Number of rows, must be > 0
            cols: Number of columns, must be > 0
            dtype: numpy dtype of the elements

        Raises:
            CreateError: If either dimension is not a positive integer or the
                dtype is not numeric
        """
        self._rows = _check_dimension('rows', rows)
        self._cols = _check_dimension('cols', cols)
        self._data = np.zeros(self._rows * self._cols, dtype=_check_dtype(dtype))

    @classmethod
    def _wrap(cls, rows: int, cols: int, data: np.ndarray) -> 'Matrix':
        """Build a matrix around a flat array that nobody else references."""
        matrix = cls.__new__(cls)
        matrix._rows = rows
        matrix._cols = cols
        matrix._data = data
        return matrix

    @classmethod
    def from_sequence(
        cls,
        rows: int,
        cols: int,
        data: Iterable[Any],
        dtype: Any = None
    ) -> 'Matrix':
        """
        Create a matrix from a flat row-major sequence.

        Args:
            rows: Number of rows, must be > 0
            cols: Number of columns, must be > 0
            data: Flat sequence of exactly ``rows * cols`` numbers
            dtype: numpy dtype, inferred from ``data`` when omitted

        Returns:
            Matrix owning a copy of ``data``

        Raises:
            CreateError: If a dimension is invalid or the length does not match
        """
        rows = _check_dimension('rows', rows)
        cols = _check_dimension('cols', cols)
        array = _to_array(data, dtype)

        if array.ndim != 1:
            raise CreateError(f"Expected a flat sequence, got shape {array.shape}")
        if array.size != rows * cols:
            raise CreateError(
                f"Sequence of length {array.size} cannot fill a {rows}x{cols} matrix"
            )
        return cls._wrap(rows, cols, array)

    @classmethod
    def from_rows(cls, values: Iterable[Iterable[Any]], dtype: Any = None) -> 'Matrix':
        """
        Create a matrix from nested row lists, e.g. ``[[1, 2], [3, 4]]``.

        Raises:
            CreateError: If the rows are empty or of unequal length
        """
        array = _to_array(values, dtype)
        if array.ndim != 2 or array.shape[0] == 0 or array.shape[1] == 0:
            raise CreateError(f"Expected non-empty rows of equal length, got shape {array.shape}")
        rows, cols = array.shape
        return cls._wrap(rows, cols, array.reshape(-1))

    @classmethod
    def column(cls, values: Iterable[Any], dtype: Any = None) -> 'Matrix':
        """Create an ``(n, 1)`` column matrix from a flat sequence of n values."""
        array = _to_array(values, dtype)
        if array.ndim != 1:
            raise CreateError(f"Expected a flat sequence for a column, got shape {array.shape}")
        return cls.from_sequence(array.size, 1, array)

    # ------------------------------------------------------------------------
    # Shape queries
    # ------------------------------------------------------------------------

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def cols(self) -> int:
        return self._cols

    @property
    def size(self) -> int:
        return self._rows * self._cols

    @property
    def shape(self) -> Tuple[int, int]:
        return (self._rows, self._cols)

    @property
    def dtype(self) -> np.dtype:
        return self._data.dtype

    # ------------------------------------------------------------------------
    # Element access
    # ------------------------------------------------------------------------

    def _offset(self, row: Any, col: Any) -> int:
        # Row and column are checked separately; a linear-index check alone
        # would accept (0, cols) on any matrix with more than one row.
        if not (_is_index(row) and _is_index(col)
                and 0 <= row < self._rows and 0 <= col < self._cols):
            raise GetError(
                f"Index ({row!r}, {col!r}) out of range for "
                f"{self._rows}x{self._cols} matrix"
            )
        return row * self._cols + col

    def get(self, row: int, col: int) -> Any:
        """
        Return the element at ``(row, col)``.

        Raises:
            GetError: If row or column is out of range
        """
        return self._data[self._offset(row, col)]

    def set(self, row: int, col: int, value: Any) -> None:
        """
        Overwrite the element at ``(row, col)``.

        Raises:
            GetError: If row or column is out of range
        """
        self._data[self._offset(row, col)] = value

    def __getitem__(self, key: Tuple[int, int]) -> Any:
        if not isinstance(key, tuple) or len(key) != 2:
            raise GetError(f"Matrix indices must be a (row, col) pair, got {key!r}")
        return self.get(*key)

    def __setitem__(self, key: Tuple[int, int], value: Any) -> None:
        if not isinstance(key, tuple) or len(key) != 2:
            raise GetError(f"Matrix indices must be a (row, col) pair, got {key!r}")
        self.set(key[0], key[1], value)

    # ------------------------------------------------------------------------
    # Iteration and bulk updates
    # ------------------------------------------------------------------------

    def iter(self) -> Generator[Any, None, None]:
        """Yield every element in row-major order."""
        for value in self._data:
            yield value

    def __iter__(self) -> Generator[Any, None, None]:
        return self.iter()

    def row_chunks(self) -> Generator[np.ndarray, None, None]:
        """Yield one read-only view per row, top to bottom."""
        for start in range(0, self._data.size, self._cols):
            chunk = self._data[start:start + self._cols]
            chunk.flags.writeable = False
            yield chunk

    def apply(self, func: Callable[[Any], Any]) -> None:
        """Replace every element ``x`` with ``func(x)``, in place."""
        for i in range(self._data.size):
            self._data[i] = func(self._data[i])

    def fill(self, value: Any) -> None:
        """Overwrite every element with ``value``."""
        self._data.fill(value)

    def randomize(self, rng: Optional[np.random.Generator] = None) -> None:
        """
        Overwrite every element with an independent uniform [0, 1) sample.

        Args:
            rng: Source of randomness; a fresh unseeded generator if omitted
        """
        if rng is None:
            rng = np.random.default_rng()
        self._data[:] = rng.random(self._data.size)

    # ------------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------------

    def copy(self) -> 'Matrix':
        """Return an independent copy."""
        return Matrix._wrap(self._rows, self._cols, self._data.copy())

    def to_array(self) -> np.ndarray:
        """Return a 2-D numpy copy of the elements."""
        return self._data.reshape(self._rows, self._cols).copy()

    def to_list(self) -> List[List[Any]]:
        """Return the elements as nested row lists."""
        return self._data.reshape(self._rows, self._cols).tolist()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.shape == other.shape and bool(np.array_equal(self._data, other._data))

    __hash__ = None  # mutable

    def __repr__(self) -> str:
        return f"Matrix(rows={self._rows}, cols={self._cols}, dtype={self._data.dtype})"

    def __str__(self) -> str:
        as_number = complex if self._data.dtype.kind == 'c' else float
        parts = ['[ ']
        for i, value in enumerate(self._data, start=1):
            parts.append(f"{as_number(value):.2f} ")
            if i == self._data.size:
                parts.append(']')
            elif i % self._cols == 0:
                parts.append('\n   ')
        return ''.join(parts)


# ============================================================================
# ARITHMETIC
# ============================================================================

def _require_same_shape(a: Matrix, b: Matrix, operation: str) -> None:
    if a.shape != b.shape:
        raise ShapeError(f"Cannot {operation} {a.rows}x{a.cols} and {b.rows}x{b.cols} matrices")


def add(a: Matrix, b: Matrix) -> Matrix:
    """
    Element-wise sum of two matrices of identical shape.

    Raises:
        ShapeError: If the shapes differ
    """
    _require_same_shape(a, b, 'add')
    return Matrix._wrap(a.rows, a.cols, a._data + b._data)


def subtract(a: Matrix, b: Matrix) -> Matrix:
    """Element-wise difference ``a - b`` of two matrices of identical shape."""
    _require_same_shape(a, b, 'subtract')
    return Matrix._wrap(a.rows, a.cols, a._data - b._data)


def hadamard(a: Matrix, b: Matrix) -> Matrix:
    """Element-wise product of two matrices of identical shape."""
    _require_same_shape(a, b, 'take the element-wise product of')
    return Matrix._wrap(a.rows, a.cols, a._data * b._data)


def multiply(a: Matrix, b: Matrix) -> Matrix:
    """
    Matrix product ``a * b``.

    Each output element starts from the element type's zero and accumulates
    ``a[i, k] * b[k, j]`` for k in order, so exact types keep exact results.

    Args:
        a: Left operand of shape (n, m)
        b: Right operand of shape (m, p)

    Returns:
        New matrix of shape (n, p)

    Raises:
        ShapeError: If ``a.cols != b.rows``
    """
    if a.cols != b.rows:
        raise ShapeError(
            f"Cannot multiply {a.rows}x{a.cols} by {b.rows}x{b.cols}: "
            f"inner dimensions {a.cols} and {b.rows} differ"
        )

    left = a._data.reshape(a.rows, a.cols)
    right = b._data.reshape(b.rows, b.cols)
    result = np.zeros((a.rows, b.cols), dtype=np.result_type(left, right))
    for k in range(a.cols):
        result += np.multiply.outer(left[:, k], right[k, :])
    return Matrix._wrap(a.rows, b.cols, result.reshape(-1))


def scale(a: Matrix, scalar: Any) -> Matrix:
    """Multiply every element by ``scalar``."""
    return Matrix._wrap(a.rows, a.cols, a._data * scalar)


def transpose(a: Matrix) -> Matrix:
    """Return the ``(cols, rows)`` transpose."""
    return Matrix._wrap(a.cols, a.rows, a._data.reshape(a.rows, a.cols).T.flatten())


def elementwise(a: Matrix, func: Callable[[np.ndarray], np.ndarray]) -> Matrix:
    """
    Apply a vectorised function to all elements and return a new matrix.

    ``func`` receives a copy of the flat storage and must return an array of
    the same length (numpy ufuncs do).
    """
    values = np.asarray(func(a._data.copy()))
    if values.shape != (a.size,):
        raise ShapeError(
            f"Element-wise function returned shape {values.shape}, expected ({a.size},)"
        )
    return Matrix._wrap(a.rows, a.cols, values)
