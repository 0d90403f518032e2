"""
Utilities for exact rational matrices.

Exact matrices are numpy arrays with dtype=object holding fractions.Fraction
values. They support the same slicing and elementwise operations as float
matrices, which keeps the geometry code identical for both representations.
"""

from fractions import Fraction
from typing import Iterable, List, Optional, Sequence

import numpy as np


def to_fraction(value) -> Fraction:

    """
    Converts a scalar to a Fraction without rounding.

    Floats are converted exactly (every finite float is a dyadic rational).
    """

    if isinstance(value, Fraction):
        return value
    if isinstance(value, (float, np.floating)):
        if not np.isfinite(value):
            raise ValueError(f"Can't convert {value} to an exact rational")
        return Fraction(float(value))
    return Fraction(int(value))


def to_fraction_matrix(matrix, num_cols: Optional[int] = None) -> np.ndarray:

    """
    Converts a 2-D array-like to an exact matrix.

    Args:
        matrix      : The matrix, any nested sequence or numpy array.
        num_cols    : The number of columns, only needed for empty input.

    Returns:
        A dtype=object array of Fractions.
    """

    rows = [[to_fraction(value) for value in row] for row in matrix]
    if len(rows) == 0:
        return np.empty((0, num_cols if num_cols is not None else 0), dtype=object)

    exact = np.empty((len(rows), len(rows[0])), dtype=object)
    for i, row in enumerate(rows):
        assert len(row) == exact.shape[1], "All rows should have the same length"
        exact[i, :] = row
    return exact


def to_float_matrix(matrix: np.ndarray) -> np.ndarray:
    return np.asarray(matrix, dtype=np.float64)


def normalize_rows(matrix: np.ndarray) -> np.ndarray:

    """
    Divides every row by its maximum absolute coefficient.

    Rows that are identically zero are left unchanged.
    """

    normalized = matrix.copy()
    for i in range(normalized.shape[0]):
        abs_coef = max((abs(value) for value in normalized[i]), default=0)
        if abs_coef != 0:
            normalized[i, :] = [value / abs_coef for value in normalized[i]]
    return normalized


def canonical_row(row: Sequence) -> tuple:

    """
    Returns a hashable representation of the halfspace spanned by row.

    Two rows describe the same halfspace iff one is a positive multiple of the
    other, which is exactly when their canonical rows are equal.
    """

    abs_coef = max((abs(value) for value in row), default=0)
    if abs_coef == 0:
        return tuple(Fraction(0) for _ in row)
    return tuple(Fraction(value) / abs_coef for value in row)


def independent_rows(matrix) -> List[int]:

    """
    Selects a maximal set of linearly independent rows.

    Rows are taken greedily in order and reduced with exact Gaussian elimination
    against the rows selected before them.

    Args:
        matrix: A 2-D array-like of exact or integer values

    Returns:
        The sorted indexes of the selected rows
    """

    basis: List[List[Fraction]] = []
    pivots: List[int] = []
    independent = []

    for i, row in enumerate(matrix):
        reduced = [to_fraction(value) for value in row]
        for basis_row, pivot in zip(basis, pivots):
            if reduced[pivot] != 0:
                factor = reduced[pivot] / basis_row[pivot]
                reduced = [x - factor * y for x, y in zip(reduced, basis_row)]

        pivot = next((j for j, value in enumerate(reduced) if value != 0), None)
        if pivot is not None:
            basis.append(reduced)
            pivots.append(pivot)
            independent.append(i)

    return independent


class VertexArena:

    """
    Owning handle for exact vertex rows of a fixed width.

    The arena is the only owner of its rows. Ownership is either moved to a
    new arena with move() or ends with release(); using the arena as a context
    manager releases it on every exit path.
    """

    def __init__(self, dim: int, rows: Optional[Iterable[Sequence]] = None):

        """
        Args:
            dim     : The width of each row (K+1 for homogeneous K-dim vertices)
            rows    : Initial rows, copied into the arena
        """

        self._dim = dim
        self._rows: Optional[List[List[Fraction]]] = []
        self._released = False

        if rows is not None:
            self.extend(rows)

    @property
    def dim(self) -> int:
        return self._dim

    @property
    def released(self) -> bool:
        return self._released

    @property
    def rows(self) -> List[List[Fraction]]:
        self._check_alive()
        return self._rows

    def __len__(self) -> int:
        return len(self.rows)

    def __enter__(self) -> "VertexArena":
        self._check_alive()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.release()

    def append(self, row: Sequence):
        self._check_alive()
        if len(row) != self._dim:
            raise ValueError(f"Expected a row of length {self._dim}, got {len(row)}")
        self._rows.append([to_fraction(value) for value in row])

    def extend(self, rows: Iterable[Sequence]):
        for row in rows:
            self.append(row)

    def to_matrix(self) -> np.ndarray:

        """
        Copies the rows into an exact (num_rows x dim) matrix.
        """

        return to_fraction_matrix(self.rows, num_cols=self._dim)

    def move(self) -> "VertexArena":

        """
        Transfers the rows to a new arena and releases this one.
        """

        target = VertexArena(self._dim)
        target._rows = self.rows
        self._rows = None
        self._released = True
        return target

    def release(self):
        self._rows = None
        self._released = True

    def _check_alive(self):
        if self._released:
            raise RuntimeError("Vertex arena was already released")
