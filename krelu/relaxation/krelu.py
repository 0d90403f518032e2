"""
Exact convex relaxation of the k-ReLU y = max(x, 0) over an octahedral input.

The octahedron is split into quadrants. In every quadrant the ReLU is linear,
so the graph over a quadrant is the quadrant polytope lifted into the output
space. The relaxation is the convex hull of the union of the lifted quadrants,
computed by the decomposition.

Rows of a relaxation are [c, a_1, ..., a_K, b_1, ..., b_K] and represent
c + a . x + b . y >= 0.
"""

import logging
from fractions import Fraction
from typing import Dict

import numpy as np

from krelu.algorithm.exceptions import (
    InternalInconsistencyException,
    InvalidBoundsException,
)
from krelu.algorithm.incidence import compute_maximal_indexes, transpose_incidence
from krelu.algorithm.octahedron import compute_octahedron_V, verify_krelu_input
from krelu.algorithm.quadrants import Quadrant, QuadrantInfo, split_in_quadrants
from krelu.algorithm.sign import Sign
from krelu.domains.pdd import PDD, reduce_equalities
from krelu.relaxation.decomposition import decompose_to_pdd, lift_pdd
from krelu.util import config
from krelu.util.rational import (
    normalize_rows,
    to_float_matrix,
    to_fraction,
    to_fraction_matrix,
)

logger = logging.getLogger(__name__)


def relax_relu_1d(lb, ub) -> np.ndarray:

    """
    Computes the triangle relaxation of the 1-ReLU over [lb, ub].

    The rows are y >= 0, y >= x and y <= mu * x + lmd. The arithmetic is done in
    the type of the bounds, Fraction bounds give an exact result.

    Args:
        lb  : The lower bound, lb < 0
        ub  : The upper bound, ub > 0

    Returns:
        The 3x3 relaxation
    """

    if not lb <= ub:
        raise InvalidBoundsException(
            f"Unsoundness - lower bound {lb} should be <= upper bound {ub}"
        )
    if not (lb < 0 < ub):
        raise InvalidBoundsException(
            f"Expecting non-trivial input where lb < 0 < ub, got [{lb}, {ub}]"
        )

    lmd = -lb * ub / (ub - lb)
    mu = ub / (ub - lb)
    assert lmd > 0, "Expected lmd > 0"
    assert mu > 0, "Expected mu > 0"

    rows = [
        [0, 0, 1],  # y >= 0
        [0, -1, 1],  # y >= x
        [lmd, mu, -1],  # y <= mu * x + lmd
    ]

    if isinstance(lmd, Fraction):
        return to_fraction_matrix(rows)
    return np.array(rows, dtype=np.float64)


def compute_quadrant_pdd(
    A: np.ndarray, quadrant: Quadrant, quadrant_info: QuadrantInfo
) -> PDD:

    """
    Computes the dual description of the input region inside one quadrant.

    The candidate halfspaces are the M rows of A and the K sign constraints of the
    quadrant. Only the candidates with a maximal set of incident vertices are
    kept, which are exactly the facets of the quadrant polytope. Candidates that
    hold with equality on a lower dimensional quadrant are reduced to an
    independent set of equalities.

    The exact vertices of the quadrant are released when this returns.

    Args:
        A               : The exact Mx(K + 1) input matrix
        quadrant        : The quadrant
        quadrant_info   : The vertices of the quadrant and their incidence

    Returns:
        The PDD of the quadrant, empty if the quadrant contains no input.
    """

    k = len(quadrant)
    num_h = A.shape[0]

    with quadrant_info.V as vertices:
        if len(vertices) == 0:
            return PDD.empty(k + 1)
        V = vertices.to_matrix()

    incidence_V_to_H = quadrant_info.V_to_H_incidence
    if incidence_V_to_H.shape[0] != V.shape[0]:
        raise InternalInconsistencyException(
            f"Incidence has {incidence_V_to_H.shape[0]} rows, expected {V.shape[0]}"
        )

    incidence_H_to_V_with_redundancy = transpose_incidence(incidence_V_to_H)
    if incidence_H_to_V_with_redundancy.shape[0] != num_h + k:
        raise InternalInconsistencyException(
            f"Incidence covers {incidence_H_to_V_with_redundancy.shape[0]} "
            f"halfspaces, expected {num_h + k}"
        )

    maximal_H = compute_maximal_indexes(incidence_H_to_V_with_redundancy)

    H = np.empty((len(maximal_H), k + 1), dtype=object)
    for i, maximal in enumerate(maximal_H):
        if maximal < num_h:
            H[i, :] = A[maximal]
        else:
            xi = maximal - num_h
            assert 0 <= xi < k, "Sanity checking the range of xi"
            H[i, :] = to_fraction(0)
            H[i, xi + 1] = to_fraction(-1 if quadrant[xi] == Sign.MINUS else 1)

    logger.debug(
        f"Quadrant {[sign.name for sign in quadrant]}: {V.shape[0]} vertices, "
        f"{len(maximal_H)} of {num_h + k} halfspaces maximal"
    )

    H, incidence_H_to_V = reduce_equalities(
        H, incidence_H_to_V_with_redundancy[maximal_H]
    )
    return PDD(k + 1, V, H, incidence_H_to_V)


def relax_krelu_exact(A: np.ndarray) -> np.ndarray:

    """
    Computes the exact convex hull of the k-ReLU over the octahedron A.

    For K = 1 the closed form triangle relaxation is returned. For K > 1 every
    row is normalized by its maximum absolute coefficient.

    Args:
        A: The (3^K - 1)x(K + 1) octahedral input matrix

    Returns:
        The exact relaxation with 2K + 1 columns
    """

    k = verify_krelu_input(A)
    if k == 1:
        return relax_relu_1d(-to_fraction(A[0, 0]), to_fraction(A[1, 0]))

    A_exact = to_fraction_matrix(A)
    octahedron = compute_octahedron_V(A)

    # Ownership of the exact vertices moves into the quadrant infos
    quadrant2info = split_in_quadrants(
        octahedron.V, octahedron.incidence, octahedron.orthant_adjacencies, k
    )

    quadrant2pdd: Dict[Quadrant, PDD] = {}
    for quadrant, quadrant_info in quadrant2info.items():
        quadrant2pdd[quadrant] = compute_quadrant_pdd(A_exact, quadrant, quadrant_info)

    H = normalize_rows(decompose_to_pdd(quadrant2pdd, k).H)

    if config.CHECK_SOUNDNESS:
        _check_soundness(H, quadrant2pdd)

    return H


def relax_krelu(A: np.ndarray) -> np.ndarray:

    """
    Computes the convex hull of the k-ReLU over the octahedron A.

    Args:
        A: The (3^K - 1)x(K + 1) octahedral input matrix

    Returns:
        The relaxation with 2K + 1 columns as a float array
    """

    k = verify_krelu_input(A)
    if k == 1:
        return relax_relu_1d(-float(A[0, 0]), float(A[1, 0]))
    return to_float_matrix(relax_krelu_exact(A))


def _check_soundness(H: np.ndarray, quadrant2pdd: Dict[Quadrant, PDD]):

    """
    Checks that every lifted quadrant vertex satisfies every row of H.
    """

    for quadrant, pdd in quadrant2pdd.items():
        lifted = lift_pdd(pdd, quadrant)
        if lifted.is_empty:
            continue
        if not np.all(lifted.V.dot(H.T) >= 0):
            raise InternalInconsistencyException(
                f"Relaxation cuts off a vertex of quadrant "
                f"{[sign.name for sign in quadrant]}"
            )
