"""
dataset.py
~~~~~~~~~~

Labeled datasets stored as a single matrix, one example per row.

Two row layouts are accepted for a network with ``input_size`` inputs and
``output_size`` outputs:

- ``[features..., labels...]``, width ``input_size + output_size``
- ``[leading, features..., labels...]``, width ``input_size + output_size + 1``

The leading column of the second layout (a constant bias flag in the XOR
example) is skipped; the network carries its own biases.
"""

import logging
from typing import Any, List, Tuple

from densenn.matrix import Matrix, ShapeError

logger = logging.getLogger(__name__)

# XOR truth table with a constant leading column: [1, x1, x2, x1 ^ x2]
XOR_ROWS: List[List[float]] = [
    [1.0, 0.0, 0.0, 0.0],
    [1.0, 0.0, 1.0, 1.0],
    [1.0, 1.0, 0.0, 1.0],
    [1.0, 1.0, 1.0, 0.0],
]


def xor_dataset(leading_column: bool = True) -> Matrix:
    """
    Build the XOR dataset.

    Args:
        leading_column: Keep the constant first column (4x4) or drop it (4x3)

    Returns:
        Dataset matrix with one row per truth-table entry
    """
    rows = XOR_ROWS if leading_column else [row[1:] for row in XOR_ROWS]
    return Matrix.from_rows(rows)


def split_cases(
    dataset: Matrix,
    input_size: int,
    output_size: int = 1,
    dtype: Any = None
) -> List[Tuple[Matrix, Matrix]]:
    """
    Split a dataset matrix into ``(input, expected)`` column-matrix pairs.

    Args:
        dataset: One example per row
        input_size: Number of feature columns
        output_size: Number of label columns at the end of each row
        dtype: dtype of the returned matrices, inferred when omitted

    Returns:
        List of ``(x, y)`` with shapes ``(input_size, 1)`` and ``(output_size, 1)``

    Raises:
        ShapeError: If the row width matches neither layout
    """
    width = dataset.cols
    if width == input_size + output_size:
        skip = 0
    elif width == input_size + output_size + 1:
        skip = 1
    else:
        raise ShapeError(
            f"Dataset rows have {width} columns; a network with {input_size} "
            f"input(s) and {output_size} output(s) needs {input_size + output_size} "
            f"or {input_size + output_size + 1}"
        )

    cases = []
    for row in dataset.row_chunks():
        features = row[skip:skip + input_size]
        labels = row[skip + input_size:]
        cases.append((Matrix.column(features, dtype), Matrix.column(labels, dtype)))

    logger.debug(f"Split dataset into {len(cases)} case(s), skipping {skip} leading column(s)")
    return cases
