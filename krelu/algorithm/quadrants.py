"""
Splitting of the input region into quadrants, the regions where every input
dimension has a fixed sign and the ReLU is linear.
"""

import itertools
import logging
from typing import Dict, List, Tuple

import numpy as np

from krelu.algorithm.double_description import compute_generators
from krelu.algorithm.exceptions import InternalInconsistencyException
from krelu.algorithm.incidence import compute_incidence
from krelu.algorithm.octahedron import verify_k
from krelu.algorithm.sign import Sign
from krelu.util.rational import VertexArena, to_fraction_matrix

logger = logging.getLogger(__name__)

Quadrant = Tuple[Sign, ...]


class QuadrantInfo:

    """
    The vertices of the input region inside one quadrant.
    """

    def __init__(self, V: VertexArena, V_to_H_incidence: np.ndarray):

        """
        Args:
            V                   : The exact vertices inside the quadrant, owned by
                                  this object until the quadrant is solved.
            V_to_H_incidence    : A Nx(M + K) array with the incidence of the
                                  vertices with the M input halfspaces and the K
                                  sign constraints of the quadrant.
        """

        self.V = V
        self.V_to_H_incidence = V_to_H_incidence


def all_quadrants(k: int) -> List[Quadrant]:
    return list(itertools.product((Sign.MINUS, Sign.PLUS), repeat=k))


def quadrant_sign_halfspaces(quadrant: Quadrant) -> np.ndarray:

    """
    Returns the K sign constraints s_i * x_i >= 0 of a quadrant as a Kx(K + 1)
    matrix.
    """

    k = len(quadrant)
    halfspaces = np.zeros((k, k + 1), dtype=int)
    for xi, sign in enumerate(quadrant):
        halfspaces[xi, xi + 1] = sign.value
    return halfspaces


def split_in_quadrants(
    V: VertexArena, incidence: np.ndarray, orthant_adjacencies: np.ndarray, k: int
) -> Dict[Quadrant, QuadrantInfo]:

    """
    Distributes the vertices of the refined octahedron over the quadrants.

    A vertex belongs to every quadrant whose signs agree with the signs of its
    non-zero coordinates, so vertices on the boundary between orthants are
    shared by all adjacent quadrants. Quadrants without vertices are kept with an
    empty vertex set.

    The rows of V are moved into the quadrant arenas and V is released.

    Args:
        V                   : The vertices of the refined octahedron
        incidence           : The Nx(M + K) vertex to halfspace incidence
        orthant_adjacencies : A NxK array, True where the coordinate is zero
        k                   : The number of input dimensions

    Returns:
        A map from every quadrant to its QuadrantInfo
    """

    verify_k(k)

    with V:
        rows = V.rows
        if incidence.shape[0] != len(rows):
            raise InternalInconsistencyException(
                f"Incidence has {incidence.shape[0]} rows, expected {len(rows)}"
            )
        if orthant_adjacencies.shape != (len(rows), k):
            raise InternalInconsistencyException(
                f"Orthant adjacencies of shape {orthant_adjacencies.shape}, "
                f"expected {(len(rows), k)}"
            )

        signs = np.array(
            [[(x > 0) - (x < 0) for x in row[1:]] for row in rows], dtype=int
        ).reshape(len(rows), k)

        quadrant2info: Dict[Quadrant, QuadrantInfo] = {}
        for quadrant in all_quadrants(k):
            quadrant_signs = np.array([sign.value for sign in quadrant])
            compatible = np.all(
                orthant_adjacencies | (signs == quadrant_signs[np.newaxis, :]), axis=1
            )
            idx = np.argwhere(compatible)[:, 0]
            quadrant2info[quadrant] = QuadrantInfo(
                VertexArena(k + 1, [rows[i] for i in idx]), incidence[idx].copy()
            )

    logger.debug(
        "Vertices per quadrant: "
        + ", ".join(str(len(info.V)) for info in quadrant2info.values())
    )

    return quadrant2info


def compute_quadrants_with_cdd(A: np.ndarray) -> Dict[Quadrant, QuadrantInfo]:

    """
    Computes the vertices of every quadrant independently with cdd.

    Each quadrant is the input region intersected with its K sign constraints,
    its vertices are enumerated from scratch.

    Args:
        A: A Mx(K + 1) halfspace matrix of the input region

    Returns:
        A map from every quadrant to its QuadrantInfo
    """

    k = A.shape[1] - 1
    verify_k(k)

    A_exact = to_fraction_matrix(A)

    quadrant2info: Dict[Quadrant, QuadrantInfo] = {}
    for quadrant in all_quadrants(k):
        halfspaces = np.vstack(
            (A_exact, to_fraction_matrix(quadrant_sign_halfspaces(quadrant)))
        )
        vertices = compute_generators(halfspaces)
        quadrant2info[quadrant] = QuadrantInfo(
            VertexArena(k + 1, vertices), compute_incidence(vertices, halfspaces)
        )

    return quadrant2info
