"""
Exact vertex/facet enumeration with the double description method of cddlib.

All conversions run in exact rational arithmetic (the GMP backend of pycddlib),
the inputs and outputs are exact matrices of Fractions.
"""

import logging

import cdd
import numpy as np
from cdd import gmp

from krelu.algorithm.exceptions import DoubleDescriptionException
from krelu.util.rational import to_fraction_matrix

logger = logging.getLogger(__name__)


def compute_generators(halfspaces: np.ndarray) -> np.ndarray:

    """
    Computes the vertices of a bounded polyhedron given by halfspaces.

    Args:
        halfspaces  : A MxD exact matrix, row h represents h[0] + h[1:] . x >= 0

    Returns:
        A NxD exact matrix of vertices [1, x_1, ..., x_{D-1}], N = 0 if the
        polyhedron is empty.
    """

    dim = halfspaces.shape[1]
    mat = gmp.matrix_from_array(
        [list(row) for row in halfspaces], rep_type=cdd.RepType.INEQUALITY
    )

    try:
        poly = gmp.polyhedron_from_matrix(mat)
        generators = gmp.copy_generators(poly)
    except (RuntimeError, ValueError) as e:
        raise DoubleDescriptionException(
            f"Converting inequalities to generators failed: {e}"
        ) from e

    if len(generators.lin_set) > 0:
        raise DoubleDescriptionException("Polyhedron contains a line")

    vertices = []
    for row in generators.array:
        if row[0] == 0:
            raise DoubleDescriptionException("Polyhedron is unbounded")
        vertices.append([value / row[0] for value in row])

    logger.debug(
        f"Enumerated {len(vertices)} vertices from {halfspaces.shape[0]} halfspaces"
    )

    return to_fraction_matrix(vertices, num_cols=dim)


def compute_inequalities(generators: np.ndarray) -> np.ndarray:

    """
    Computes the facets of the convex hull of the given points.

    Equalities of lower dimensional hulls are returned as two opposite
    inequalities, so the result only contains rows of the form h . x >= 0.

    Args:
        generators  : A NxD exact matrix of points [1, x_1, ..., x_{D-1}], N > 0

    Returns:
        A MxD exact matrix of inequalities.
    """

    assert generators.shape[0] > 0, "The convex hull of no points is not defined"

    dim = generators.shape[1]
    mat = gmp.matrix_from_array(
        [list(row) for row in generators], rep_type=cdd.RepType.GENERATOR
    )

    try:
        poly = gmp.polyhedron_from_matrix(mat)
        inequalities = gmp.copy_inequalities(poly)
    except (RuntimeError, ValueError) as e:
        raise DoubleDescriptionException(
            f"Converting generators to inequalities failed: {e}"
        ) from e

    rows = []
    for i, row in enumerate(inequalities.array):
        if all(value == 0 for value in row[1:]):
            # Constant rows such as 1 >= 0 carry no information
            if row[0] < 0:
                raise DoubleDescriptionException("Convex hull is empty")
            continue
        rows.append(list(row))
        if i in inequalities.lin_set:
            rows.append([-value for value in row])

    logger.debug(
        f"Enumerated {len(rows)} inequalities from {generators.shape[0]} generators"
    )

    return to_fraction_matrix(rows, num_cols=dim)
