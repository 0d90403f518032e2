"""
Polyhedron dual description: a polytope stored both by its vertices and by its
halfspaces, together with the incidence between the two.
"""

from typing import Optional, Tuple

import numpy as np

from krelu.algorithm.exceptions import InternalInconsistencyException
from krelu.algorithm.incidence import compute_incidence
from krelu.util.rational import independent_rows


class PDD:

    """
    Vertex and halfspace representation of the same polytope.

    Both matrices are exact and homogeneous: a vertex is stored as [1, x] and a
    halfspace h as [h_0, h_1, ...] meaning h . [1, x] >= 0.
    """

    def __init__(
        self,
        dim: int,
        V: np.ndarray,
        H: np.ndarray,
        incidence: Optional[np.ndarray] = None,
    ):

        """
        Args:
            dim         : The number of columns of V and H
            V           : A NxD matrix with the vertices
            H           : A MxD matrix with the halfspaces
            incidence   : A MxN array, entry (h, v) is True iff vertex v lies on
                          the hyperplane of halfspace h. Computed if not given.
        """

        if V.shape[1] != dim or H.shape[1] != dim:
            raise InternalInconsistencyException(
                f"Expected {dim} columns, got V: {V.shape} and H: {H.shape}"
            )

        if incidence is None:
            incidence = compute_incidence(V, H).T
        if incidence.shape != (H.shape[0], V.shape[0]):
            raise InternalInconsistencyException(
                f"Incidence of shape {incidence.shape} does not match "
                f"{H.shape[0]} halfspaces and {V.shape[0]} vertices"
            )

        self._dim = dim
        self._V = V
        self._H = H
        self._incidence = incidence

    @classmethod
    def empty(cls, dim: int) -> "PDD":
        empty = np.empty((0, dim), dtype=object)
        return cls(dim, empty, empty.copy(), np.zeros((0, 0), dtype=bool))

    @property
    def dim(self) -> int:
        return self._dim

    @property
    def V(self) -> np.ndarray:
        return self._V

    @property
    def H(self) -> np.ndarray:
        return self._H

    @property
    def incidence(self) -> np.ndarray:

        """
        A MxN boolean array, the halfspace to vertex incidence.
        """

        return self._incidence

    @property
    def is_empty(self) -> bool:
        return self._V.shape[0] == 0

    def is_sound(self) -> bool:

        """
        Checks in exact arithmetic that every vertex satisfies every halfspace.
        """

        if self.is_empty or self._H.shape[0] == 0:
            return True
        return bool(np.all(self._V.dot(self._H.T) >= 0))


def reduce_equalities(
    H: np.ndarray, incidence: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:

    """
    Replaces the implicit equalities of a polytope by an independent set.

    Rows incident to every vertex hold with equality on the whole polytope. They
    span the equalities of its affine hull, which is described by a basis of that
    span, each basis row written as a pair of opposite halfspaces.

    Args:
        H           : A MxD exact halfspace matrix
        incidence   : The MxN halfspace to vertex incidence, N > 0

    Returns:
        The halfspaces without implicit equalities followed by the equality pairs,
        and their incidence.
    """

    if incidence.shape[1] == 0:
        return H, incidence

    universal = incidence.all(axis=1)
    if not np.any(universal):
        return H, incidence

    equalities = H[universal]
    basis = equalities[independent_rows(equalities)]

    pairs = np.empty((2 * basis.shape[0], H.shape[1]), dtype=object)
    pairs[0::2] = basis
    pairs[1::2] = -basis

    H_reduced = np.vstack((H[~universal], pairs))
    incidence_reduced = np.vstack(
        (
            incidence[~universal],
            np.ones((pairs.shape[0], incidence.shape[1]), dtype=bool),
        )
    )
    return H_reduced, incidence_reduced
