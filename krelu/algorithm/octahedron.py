"""
The octahedral input region of a k-ReLU and the enumeration of its vertices.

The input is a halfspace matrix A with one row c_0 + c . x >= 0 for every non-zero
coefficient vector c in {-1, 0, 1}^K. The rows follow a fixed order given by
K2OCTAHEDRON_COEFS, only the constants c_0 depend on the concrete input region.
"""

import itertools
import logging
from typing import Dict, List, Sequence, Tuple

import numpy as np

from krelu.algorithm.double_description import compute_generators
from krelu.algorithm.exceptions import (
    InvalidBoundsException,
    InvalidInputFormatException,
)
from krelu.algorithm.incidence import compute_incidence
from krelu.util import config
from krelu.util.rational import VertexArena, to_fraction, to_fraction_matrix

logger = logging.getLogger(__name__)

POW3: Tuple[int, ...] = tuple(3 ** k for k in range(config.MAX_K + 1))


def _octahedron_coefs(k: int) -> Tuple[Tuple[int, ...], ...]:
    return tuple(
        tuple(-c for c in combination)
        for combination in itertools.product((-1, 0, 1), repeat=k)
        if any(combination)
    )


K2OCTAHEDRON_COEFS: Dict[int, Tuple[Tuple[int, ...], ...]] = {
    k: _octahedron_coefs(k) for k in range(config.MIN_K, config.MAX_K + 1)
}


def verify_k(k: int):
    if not config.MIN_K <= k <= config.MAX_K:
        raise InvalidInputFormatException(
            f"K should be within [{config.MIN_K}, {config.MAX_K}], got {k}"
        )


def verify_krelu_input(A: np.ndarray) -> int:

    """
    Checks that A is an octahedral input matrix.

    Args:
        A: The (3^K - 1)x(K + 1) halfspace matrix

    Returns:
        K, the number of input dimensions
    """

    if not isinstance(A, np.ndarray) or A.ndim != 2:
        raise InvalidInputFormatException("Input should be a two-dimensional np array")

    k = A.shape[1] - 1
    verify_k(k)

    if A.shape[0] != POW3[k] - 1:
        raise InvalidInputFormatException(
            f"Unexpected number of rows in the input: {A.shape[0]} != {POW3[k] - 1}"
        )

    coefs = K2OCTAHEDRON_COEFS[k]
    for i in range(A.shape[0]):
        for j in range(k):
            if A[i, j + 1] != coefs[i][j]:
                raise InvalidInputFormatException(
                    f"Input is not of correct format: row {i}, column {j + 1}"
                )

    return k


def octahedron_from_offsets(offsets: Sequence) -> np.ndarray:

    """
    Builds the input matrix from the constants of each row.

    offsets[j] is an upper bound of -K2OCTAHEDRON_COEFS[K][j] . x over the input
    region, so that row j reads offsets[j] + K2OCTAHEDRON_COEFS[K][j] . x >= 0.
    """

    num_rows = len(offsets)
    ks = [k for k, coefs in K2OCTAHEDRON_COEFS.items() if len(coefs) == num_rows]
    if len(ks) != 1:
        raise InvalidInputFormatException(
            f"No octahedron with {num_rows} constraints exists"
        )

    coefs = np.array(K2OCTAHEDRON_COEFS[ks[0]])
    A = np.empty((num_rows, ks[0] + 1), dtype=np.result_type(np.asarray(offsets), 0))
    A[:, 0] = offsets
    A[:, 1:] = coefs

    return A


def octahedron_from_box(lbs: Sequence, ubs: Sequence) -> np.ndarray:

    """
    Builds the input matrix of the box [lbs, ubs].

    Each constant is the exact maximum of -c . x over the box, so the resulting
    octahedron equals the box.
    """

    if len(lbs) != len(ubs):
        raise InvalidInputFormatException("Lower and upper bounds differ in length")
    verify_k(len(lbs))

    for lb, ub in zip(lbs, ubs):
        if lb > ub:
            raise InvalidBoundsException(f"Lower bound {lb} is larger than {ub}")

    offsets = []
    for coef_row in K2OCTAHEDRON_COEFS[len(lbs)]:
        offsets.append(
            sum(-c * (lb if c > 0 else ub) for c, lb, ub in zip(coef_row, lbs, ubs))
        )

    return octahedron_from_offsets(offsets)


class OctahedronV:

    """
    The vertices of an octahedron refined by the coordinate hyperplanes.
    """

    def __init__(
        self, V: VertexArena, incidence: np.ndarray, orthant_adjacencies: np.ndarray
    ):

        """
        Args:
            V                   : The exact vertices [1, x_1, ..., x_K]. Contains
                                  every vertex of the octahedron intersected with
                                  any closed orthant.
            incidence           : A Nx(M + K) array, the first M columns mark the
                                  rows of A the vertex lies on, column M + i marks
                                  x_i = 0.
            orthant_adjacencies : A NxK array, entry (v, i) is True iff vertex v
                                  lies on the boundary between the two orthants
                                  that are adjacent across dimension i.
        """

        self.V = V
        self.incidence = incidence
        self.orthant_adjacencies = orthant_adjacencies


class _VertexStore:

    """
    Deduplicating store for exact vertices with their incidence.
    """

    def __init__(self, halfspaces: np.ndarray):
        self._halfspaces = halfspaces
        self._index: Dict[tuple, int] = {}
        self.vertices: List[np.ndarray] = []
        self.incidence: List[np.ndarray] = []

    def add(self, vertex: np.ndarray) -> int:
        key = tuple(vertex)
        if key not in self._index:
            self._index[key] = len(self.vertices)
            self.vertices.append(vertex)
            self.incidence.append(
                compute_incidence(vertex[np.newaxis, :], self._halfspaces)[0]
            )
        return self._index[key]


class _Cell:

    """
    A polytope obtained by cutting the octahedron with some coordinate
    hyperplanes, given by the indexes of its vertices in a _VertexStore.
    """

    def __init__(self, vertex_ids: List[int], constraint_mask: np.ndarray):
        self.vertex_ids = vertex_ids
        self.constraint_mask = constraint_mask


def compute_octahedron_V(A: np.ndarray) -> OctahedronV:

    """
    Computes the vertices of the octahedron in every closed orthant.

    The vertices of the octahedron are enumerated exactly with the double
    description method. Then the polytope is cut by x_1 = 0, ..., x_K = 0, one
    hyperplane at a time. When a cell is cut, the new vertices are the
    intersections of the hyperplane with the cell edges crossing it.

    Args:
        A: The octahedral input matrix

    Returns:
        The OctahedronV with every vertex of every orthant cell.
    """

    k = verify_krelu_input(A)
    num_h = A.shape[0]

    A_exact = to_fraction_matrix(A)
    sign_halfspaces = np.zeros((k, k + 1), dtype=int)
    sign_halfspaces[np.arange(k), np.arange(k) + 1] = 1
    halfspaces = np.vstack((A_exact, to_fraction_matrix(sign_halfspaces)))

    octahedron_vertices = compute_generators(A_exact)
    if octahedron_vertices.shape[0] == 0:
        raise InvalidBoundsException("The input octahedron is empty")

    store = _VertexStore(halfspaces)
    vertex_ids = [store.add(vertex) for vertex in octahedron_vertices]

    constraint_mask = np.zeros(num_h + k, dtype=bool)
    constraint_mask[:num_h] = True
    cells = [_Cell(vertex_ids, constraint_mask)]

    for xi in range(k):
        cells = [
            part for cell in cells for part in _split_cell(cell, xi, num_h, store)
        ]

    V = VertexArena(k + 1, store.vertices)
    incidence = np.array(store.incidence, dtype=bool).reshape(-1, num_h + k)
    orthant_adjacencies = incidence[:, num_h:].copy()

    logger.debug(
        f"Octahedron has {octahedron_vertices.shape[0]} vertices, "
        f"{len(store.vertices)} after refinement by {k} orthant hyperplanes"
    )

    return OctahedronV(V, incidence, orthant_adjacencies)


def _split_cell(
    cell: _Cell, xi: int, num_h: int, store: _VertexStore
) -> List[_Cell]:

    """
    Cuts a cell with the hyperplane x_xi = 0.

    Args:
        cell    : The cell
        xi      : The dimension of the hyperplane
        num_h   : The number of rows of the input matrix
        store   : The vertex store, receives the new vertices

    Returns:
        The non-empty parts of the cell with x_xi <= 0 and x_xi >= 0.
    """

    ids = cell.vertex_ids
    coords = [store.vertices[v][xi + 1] for v in ids]

    neg = [pos for pos, x in enumerate(coords) if x < 0]
    plus = [pos for pos, x in enumerate(coords) if x > 0]
    zero = [pos for pos, x in enumerate(coords) if x == 0]

    new_ids: List[int] = []
    if len(neg) > 0 and len(plus) > 0:
        cell_incidence = np.array([store.incidence[v] for v in ids])[
            :, cell.constraint_mask
        ]
        for u in neg:
            for v in plus:
                if not _adjacent(cell_incidence, u, v):
                    continue
                t = coords[v] / (coords[v] - coords[u])
                vertex = t * store.vertices[ids[u]] + (1 - t) * store.vertices[ids[v]]
                vertex[xi + 1] = to_fraction(0)
                new_ids.append(store.add(vertex))

    constraint_mask = cell.constraint_mask.copy()
    constraint_mask[num_h + xi] = True

    boundary = [ids[pos] for pos in zero] + new_ids
    parts = []
    for side in (neg, plus):
        part_ids = list(dict.fromkeys([ids[pos] for pos in side] + boundary))
        if len(part_ids) > 0:
            parts.append(_Cell(part_ids, constraint_mask))

    return parts


def _adjacent(cell_incidence: np.ndarray, u: int, v: int) -> bool:

    """
    Combinatorial adjacency test of two vertices of a polytope.

    u and v span an edge iff no other vertex lies on every constraint that is
    tight at both of them.
    """

    common = cell_incidence[u] & cell_incidence[v]
    on_common_face = np.all(cell_incidence[:, common], axis=1)
    return int(np.count_nonzero(on_common_face)) == 2
