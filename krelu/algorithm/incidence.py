"""
Incidence between vertices and halfspaces stored as fixed-width bitsets.

An incidence matrix is a boolean numpy array. Row r is the bitset of row object
r (a vertex or a halfspace) over the column objects, bit c is set iff the pair
is incident, i.e. the vertex lies on the hyperplane of the halfspace.
"""

from typing import List

import numpy as np

from krelu.algorithm.exceptions import InternalInconsistencyException


def compute_incidence(points: np.ndarray, halfspaces: np.ndarray) -> np.ndarray:

    """
    Computes the vertex to halfspace incidence.

    Args:
        points      : A NxD matrix of homogeneous points
        halfspaces  : A MxD matrix of halfspaces, row h represents h . x >= 0

    Returns:
        A NxM boolean array where entry (i, j) is True iff h_j . v_i == 0
    """

    if points.shape[0] == 0 or halfspaces.shape[0] == 0:
        return np.zeros((points.shape[0], halfspaces.shape[0]), dtype=bool)

    assert points.shape[1] == halfspaces.shape[1], "Dimension mismatch"
    return np.asarray(points.dot(halfspaces.T) == 0, dtype=bool)


def transpose_incidence(incidence: np.ndarray) -> np.ndarray:
    if incidence.shape[0] == 0:
        raise InternalInconsistencyException(
            "Transposing an empty incidence is not supported"
        )
    return np.ascontiguousarray(incidence.T)


def compute_maximal_indexes(incidence: np.ndarray) -> List[int]:

    """
    Computes the rows of an incidence that are not dominated by another row.

    A row is dominated if its bitset is a strict subset of another row's bitset,
    or if an earlier row has the same bitset. Used on halfspace to vertex
    incidence this keeps exactly one row per facet; used on vertex to halfspace
    incidence it keeps exactly the extreme points.

    Rows that are incident to all columns correspond to implicit equalities of a
    lower dimensional polytope. They are always kept, since each of them is needed
    to describe the affine hull, and they take no part in the dominance check.
    Rows incident to no column are dropped.

    Args:
        incidence: A MxN boolean array

    Returns:
        The sorted list of maximal row indexes.
    """

    num_rows, num_cols = incidence.shape
    if num_rows == 0:
        return []

    universal = incidence.all(axis=1)
    empty = ~incidence.any(axis=1)
    candidates = np.argwhere(~universal & ~empty)[:, 0]
    candidate_incidence = incidence[candidates]

    maximal = [int(i) for i in np.argwhere(universal)[:, 0]]
    for pos, row in enumerate(candidate_incidence):

        # is_superset[j] is True iff candidate j contains every bit of row
        is_superset = ~np.any(row & ~candidate_incidence, axis=1)
        is_equal = is_superset & (candidate_incidence.sum(axis=1) == row.sum())

        strictly_dominated = np.any(is_superset & ~is_equal)
        equal_before = np.any(is_equal[:pos])

        if not strictly_dominated and not equal_before:
            maximal.append(int(candidates[pos]))

    if num_cols > 0 and len(maximal) == 0:
        # Every row is incident to nothing, keep them all
        return list(range(num_rows))

    return sorted(maximal)
