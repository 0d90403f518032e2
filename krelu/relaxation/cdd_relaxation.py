"""
Direct computation of the k-ReLU relaxation with one double description call.

The vertices of every quadrant are enumerated independently, lifted into the
input-output space and handed to cdd at once. The result is the same polytope
as the one computed by the decomposition and is used to cross-check it.
"""

import logging

import numpy as np

from krelu.algorithm.double_description import compute_inequalities
from krelu.algorithm.exceptions import (
    InternalInconsistencyException,
    InvalidBoundsException,
)
from krelu.algorithm.octahedron import verify_k
from krelu.algorithm.quadrants import compute_quadrants_with_cdd
from krelu.algorithm.sign import Sign
from krelu.util import config
from krelu.util.rational import (
    normalize_rows,
    to_float_matrix,
    to_fraction,
    to_fraction_matrix,
)

logger = logging.getLogger(__name__)


def relax_krelu_with_cdd_exact(A: np.ndarray) -> np.ndarray:

    """
    Computes the exact convex hull of the k-ReLU over the polytope A with cdd.

    Args:
        A: A Mx(K + 1) halfspace matrix of the input region

    Returns:
        The exact relaxation with 2K + 1 columns, every row normalized by its
        maximum absolute coefficient.
    """

    k = A.shape[1] - 1
    verify_k(k)

    quadrant2info = compute_quadrants_with_cdd(A)

    vertices = []
    for quadrant, quadrant_info in quadrant2info.items():
        with quadrant_info.V as quadrant_vertices:
            for v in quadrant_vertices.rows:
                v_projection = [to_fraction(0)] * (2 * k + 1)
                v_projection[: k + 1] = v
                for xi, sign in enumerate(quadrant):
                    # MINUS outputs stay 0
                    if sign == Sign.PLUS:
                        v_projection[1 + xi + k] = v[1 + xi]
                vertices.append(v_projection)

    if len(vertices) == 0:
        raise InvalidBoundsException("The input region is empty")

    V = to_fraction_matrix(vertices)
    H = compute_inequalities(V)

    if config.CHECK_SOUNDNESS and not np.all(V.dot(H.T) >= 0):
        raise InternalInconsistencyException("Relaxation cuts off an input vertex")

    logger.debug(f"cdd relaxation: {V.shape[0]} vertices, {H.shape[0]} halfspaces")

    return normalize_rows(H)


def relax_krelu_with_cdd(A: np.ndarray) -> np.ndarray:

    """
    Computes the convex hull of the k-ReLU over the polytope A with cdd.

    Args:
        A: A Mx(K + 1) halfspace matrix of the input region

    Returns:
        The relaxation with 2K + 1 columns as a float array
    """

    return to_float_matrix(relax_krelu_with_cdd_exact(A))
