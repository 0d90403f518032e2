"""
Union of the per-quadrant dual descriptions into one relaxation.

Every quadrant PDD is lifted into the (2K + 1)-dimensional input-output space,
where the ReLU restricted to the quadrant is the linear map y_i = x_i (PLUS) or
y_i = 0 (MINUS). The lifted quadrants are merged pairwise along one input
dimension at a time. Every merge computes the dual description of the convex
hull of two lifted polytopes from the dual description of one of them, adding
the vertices of the other with double description updates.
"""

import logging
from typing import Dict, List, Tuple

import numpy as np

from krelu.algorithm.incidence import compute_maximal_indexes, transpose_incidence
from krelu.algorithm.quadrants import Quadrant, all_quadrants
from krelu.algorithm.sign import Sign
from krelu.domains.pdd import PDD
from krelu.util.rational import independent_rows, to_fraction, to_fraction_matrix

logger = logging.getLogger(__name__)


def lift_pdd(pdd: PDD, quadrant: Quadrant) -> PDD:

    """
    Embeds the PDD of a quadrant into the input-output space.

    Vertices get the output coordinates of the ReLU in the quadrant. The
    halfspaces get zero output coefficients and are extended by the equalities
    y_i = x_i (PLUS) or y_i = 0 (MINUS), each as a pair of inequalities.

    Args:
        pdd         : The PDD of the quadrant with K + 1 columns
        quadrant    : The quadrant

    Returns:
        The lifted PDD with 2K + 1 columns
    """

    k = len(quadrant)
    dim = 2 * k + 1
    assert pdd.dim == k + 1, "Expected a PDD of the input space"

    if pdd.is_empty:
        return PDD.empty(dim)

    num_v = pdd.V.shape[0]
    V = np.empty((num_v, dim), dtype=object)
    V[:, : k + 1] = pdd.V

    equalities = np.empty((2 * k, dim), dtype=object)
    equalities[:, :] = to_fraction(0)

    for xi, sign in enumerate(quadrant):
        if sign == Sign.PLUS:
            V[:, k + 1 + xi] = pdd.V[:, xi + 1]
            equalities[2 * xi, [xi + 1, k + 1 + xi]] = [to_fraction(-1), to_fraction(1)]
        else:
            V[:, k + 1 + xi] = to_fraction(0)
            equalities[2 * xi, k + 1 + xi] = to_fraction(1)
        equalities[2 * xi + 1, :] = -equalities[2 * xi, :]

    H = np.empty((pdd.H.shape[0], dim), dtype=object)
    H[:, : k + 1] = pdd.H
    H[:, k + 1 :] = to_fraction(0)

    incidence = np.vstack((pdd.incidence, np.ones((2 * k, num_v), dtype=bool)))

    return PDD(dim, V, np.vstack((H, equalities)), incidence)


class _ValidHalfspaces:

    """
    Double description of the cone of halfspaces valid for a set of points,
    updated one point at a time.

    The cone is the span of the equalities plus the cone generated by the
    facets. Every facet is a facet of the convex hull of the points relative to
    its affine hull, incidence[f, p] is True iff facet f is tight at point p.
    """

    def __init__(self, pdd: PDD):

        """
        Args:
            pdd: A non-empty PDD with extreme vertices and a minimal H, its
                 implicit equalities given as pairs of opposite rows
        """

        universal = pdd.incidence.all(axis=1)
        equalities = pdd.H[universal]

        self.points: List[np.ndarray] = list(pdd.V)
        self.equalities: List[np.ndarray] = [
            equalities[i] for i in independent_rows(equalities)
        ]
        self.facets: List[np.ndarray] = list(pdd.H[~universal])
        self.incidence = pdd.incidence[~universal]

        if len(self.facets) == 0:
            # A single point, only 1 >= 0 is valid beyond the equalities
            trivial = np.empty(pdd.dim, dtype=object)
            trivial[:] = to_fraction(0)
            trivial[0] = to_fraction(1)
            self.facets = [trivial]
            self.incidence = np.zeros((1, len(self.points)), dtype=bool)

    def add_point(self, point: np.ndarray):

        """
        Updates the description to the convex hull of the points and point.
        """

        values = [equality.dot(point) for equality in self.equalities]
        pivot = next((i for i, value in enumerate(values) if value != 0), None)

        if pivot is None:
            self._add_point_in_affine_hull(point)
        else:
            self._add_point_outside_affine_hull(point, values, pivot)

        self.points.append(point)

    def _add_point_in_affine_hull(self, point: np.ndarray):

        """
        Keeps the facets satisfied by point and combines every adjacent pair of a
        satisfied and a violated facet into a new facet tight at point.
        """

        values = [facet.dot(point) for facet in self.facets]
        plus = [i for i, value in enumerate(values) if value > 0]
        minus = [i for i, value in enumerate(values) if value < 0]

        facets = []
        incidence = []
        for i, value in enumerate(values):
            if value >= 0:
                facets.append(self.facets[i])
                incidence.append(np.append(self.incidence[i], value == 0))

        for i in plus:
            for j in minus:
                if not self._adjacent(i, j):
                    continue
                facet = values[i] * self.facets[j] - values[j] * self.facets[i]
                facets.append(_scaled(facet))
                incidence.append(
                    np.append(self.incidence[i] & self.incidence[j], True)
                )

        self.facets = facets
        self.incidence = np.array(incidence, dtype=bool).reshape(
            len(facets), len(self.points) + 1
        )

    def _add_point_outside_affine_hull(
        self, point: np.ndarray, values: List, pivot: int
    ):

        """
        The hull becomes a pyramid over the current hull with apex point.

        The pivot equality turns into the facet containing the base, every other
        equality and facet is shifted along it until it is tight at point.
        """

        base = self.equalities.pop(pivot)
        base_value = values.pop(pivot)
        if base_value < 0:
            base, base_value = -base, -base_value

        self.equalities = [
            equality - (value / base_value) * base
            for equality, value in zip(self.equalities, values)
        ]
        self.facets = [
            _scaled(facet - (facet.dot(point) / base_value) * base)
            for facet in self.facets
        ]
        self.facets.append(_scaled(base))

        num_points = len(self.points)
        self.incidence = np.vstack(
            (
                np.hstack(
                    (self.incidence, np.ones((self.incidence.shape[0], 1), dtype=bool))
                ),
                np.append(np.ones(num_points, dtype=bool), False)[np.newaxis, :],
            )
        )

    def _adjacent(self, i: int, j: int) -> bool:

        """
        Combinatorial adjacency test, facets i and j are adjacent iff no other
        facet is tight at every point where both of them are tight.
        """

        common = self.incidence[i] & self.incidence[j]
        on_common_face = np.all(self.incidence[:, common], axis=1)
        return int(np.count_nonzero(on_common_face)) == 2

    def to_pdd(self) -> PDD:

        """
        Returns the PDD with the extreme points and the halfspaces of the hull.
        """

        dim = len(self.points[0])
        V = to_fraction_matrix(self.points, num_cols=dim)

        pairs = []
        for equality in self.equalities:
            pairs.extend((equality, -equality))

        H = to_fraction_matrix(self.facets + pairs, num_cols=dim)
        incidence_H_to_V = np.vstack(
            (self.incidence, np.ones((len(pairs), V.shape[0]), dtype=bool))
        )

        extreme_V = compute_maximal_indexes(transpose_incidence(incidence_H_to_V))
        return PDD(dim, V[extreme_V], H, incidence_H_to_V[:, extreme_V])


def merge_pdds(minus: PDD, plus: PDD) -> PDD:

    """
    Computes the dual description of the convex hull of two lifted PDDs.

    The halfspaces of the minus side are the starting point. The vertices of the
    plus side are inserted one at a time with a double description update, which
    only combines adjacent facets, found with the incidences. Finally the
    maximal incidence sets select the extreme points among all vertices.

    Args:
        minus   : The PDD of the half with x_i <= 0
        plus    : The PDD of the half with x_i >= 0

    Returns:
        The merged PDD
    """

    assert minus.dim == plus.dim, "Can only merge PDDs of the same dimension"

    if minus.is_empty:
        return plus
    if plus.is_empty:
        return minus

    hull = _ValidHalfspaces(minus)

    known = {tuple(v) for v in minus.V}
    for v in plus.V:
        if tuple(v) not in known:
            known.add(tuple(v))
            hull.add_point(v)

    merged = hull.to_pdd()

    logger.debug(
        f"Merged {minus.V.shape[0]} + {plus.V.shape[0]} vertices into "
        f"{merged.V.shape[0]} vertices and {merged.H.shape[0]} halfspaces"
    )

    return merged


def decompose_to_pdd(quadrant2pdd: Dict[Quadrant, PDD], k: int) -> PDD:

    """
    Merges the PDDs of all quadrants into the PDD of the relaxation.

    Args:
        quadrant2pdd    : The PDD of every quadrant, empty ones included
        k               : The number of input dimensions

    Returns:
        The PDD of the convex hull of the lifted quadrants, 2K + 1 columns
    """

    if set(quadrant2pdd.keys()) != set(all_quadrants(k)):
        raise ValueError("Expected a PDD for each of the 2^K quadrants")

    lifted = {
        quadrant: lift_pdd(pdd, quadrant) for quadrant, pdd in quadrant2pdd.items()
    }
    return _decompose_recursive((), lifted, k)


def decomposition(quadrant2pdd: Dict[Quadrant, PDD], k: int) -> np.ndarray:

    """
    Returns the exact halfspaces of the relaxation given the quadrant PDDs.
    """

    return decompose_to_pdd(quadrant2pdd, k).H


def _decompose_recursive(
    prefix: Tuple[Sign, ...], lifted: Dict[Quadrant, PDD], k: int
) -> PDD:
    if len(prefix) == k:
        return lifted[prefix]

    minus = _decompose_recursive(prefix + (Sign.MINUS,), lifted, k)
    plus = _decompose_recursive(prefix + (Sign.PLUS,), lifted, k)
    return merge_pdds(minus, plus)


def _scaled(row: np.ndarray) -> np.ndarray:

    """
    Divides a halfspace by its maximum absolute coefficient.
    """

    abs_coef = max(abs(value) for value in row)
    return np.array([value / abs_coef for value in row], dtype=object)
