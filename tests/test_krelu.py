from fractions import Fraction

import numpy as np
import pytest

from krelu.algorithm.double_description import compute_generators
from krelu.algorithm.exceptions import (
    InternalInconsistencyException,
    InvalidBoundsException,
    InvalidInputFormatException,
)
from krelu.algorithm.incidence import compute_incidence, compute_maximal_indexes
from krelu.algorithm.octahedron import compute_octahedron_V, octahedron_from_box
from krelu.algorithm.quadrants import QuadrantInfo, split_in_quadrants
from krelu.algorithm.sign import Sign
from krelu.relaxation.krelu import (
    compute_quadrant_pdd,
    relax_krelu,
    relax_krelu_exact,
    relax_relu_1d,
)
from krelu.util import config
from krelu.util.rational import (
    VertexArena,
    canonical_row,
    independent_rows,
    to_fraction_matrix,
)

FIXTURES = [
    "box_2d",
    "octagon_2d",
    "octahedron_2d_fractional",
    "box_3d",
    "octahedron_3d",
    "nonnegative_box_2d",
    "orthant_box_2d",
    "touching_box_3d",
]


def _graph_points(A: np.ndarray) -> np.ndarray:

    """
    Returns [1, x, max(x, 0)] for every vertex of the octahedron in every orthant.
    """

    k = A.shape[1] - 1
    with compute_octahedron_V(A).V as vertices:
        rows = vertices.to_matrix()

    points = np.empty((rows.shape[0], 2 * k + 1), dtype=object)
    points[:, : k + 1] = rows
    for i in range(rows.shape[0]):
        for xi in range(k):
            points[i, k + 1 + xi] = max(rows[i, xi + 1], Fraction(0))
    return points


def _triangle_rows(lbs, ubs) -> set:

    """
    The canonical rows of the product of the 1-ReLU triangles over a box.
    """

    k = len(lbs)
    rows = set()
    for xi, (lb, ub) in enumerate(zip(lbs, ubs)):
        for c, a, b in relax_relu_1d(Fraction(lb), Fraction(ub)):
            row = [0] * (2 * k + 1)
            row[0], row[1 + xi], row[1 + k + xi] = c, a, b
            rows.add(canonical_row(row))
    return rows


def test_relax_relu_1d():
    np.testing.assert_allclose(
        relax_relu_1d(-1.0, 2.0),
        [[0, 0, 1], [0, -1, 1], [2 / 3, 2 / 3, -1]],
    )


def test_relax_relu_1d_exact():
    H = relax_relu_1d(Fraction(-1), Fraction(2))

    assert H.dtype == object
    assert H[2, 0] == Fraction(2, 3)
    assert H[2, 1] == Fraction(2, 3)
    assert H[2, 2] == -1


@pytest.mark.parametrize("lb, ub", [(1, -1), (0, 2), (-2, 0), (1, 2), (-3, -1)])
def test_relax_relu_1d_rejects_trivial_bounds(lb, ub):
    with pytest.raises(InvalidBoundsException):
        relax_relu_1d(lb, ub)


def test_relax_krelu_one_dimension(box_1d):
    exact = relax_krelu_exact(box_1d)

    assert (exact == relax_relu_1d(Fraction(-1), Fraction(2))).all()
    np.testing.assert_allclose(relax_krelu(box_1d), relax_relu_1d(-1.0, 2.0))


def test_relax_krelu_one_dimension_rejects_nonnegative_input():
    with pytest.raises(InvalidBoundsException):
        relax_krelu(octahedron_from_box([0], [2]))


def test_relax_krelu_rejects_malformed_input():
    with pytest.raises(InvalidInputFormatException):
        relax_krelu(np.zeros((7, 3)))


@pytest.mark.parametrize("fixture", FIXTURES)
def test_relaxation_is_sound_and_tight(fixture, request):
    A = request.getfixturevalue(fixture)
    k = A.shape[1] - 1

    H = relax_krelu_exact(A)
    points = _graph_points(A)

    assert H.shape[1] == 2 * k + 1
    assert np.all(points.dot(H.T) >= 0)

    # Every vertex of the relaxation is a point of the ReLU graph
    point_set = {tuple(p) for p in points}
    assert all(tuple(v) in point_set for v in compute_generators(H))


@pytest.mark.parametrize("fixture", FIXTURES)
def test_relaxation_is_minimal(fixture, request):
    A = request.getfixturevalue(fixture)

    H = relax_krelu_exact(A)
    incidence = compute_incidence(compute_generators(H), H).T

    assert compute_maximal_indexes(incidence) == list(range(H.shape[0]))
    assert len({canonical_row(h) for h in H}) == H.shape[0]

    # Implicit equalities come as independent pairs of opposite rows
    equalities = H[incidence.all(axis=1)]
    assert len(independent_rows(equalities)) * 2 == equalities.shape[0]


@pytest.mark.parametrize("fixture", FIXTURES)
def test_relaxation_is_normalized(fixture, request):
    H = relax_krelu_exact(request.getfixturevalue(fixture))

    assert all(max(abs(value) for value in h) == 1 for h in H)


def test_relaxation_is_deterministic(octagon_2d):
    assert (relax_krelu_exact(octagon_2d) == relax_krelu_exact(octagon_2d)).all()


def test_relaxation_of_box_is_product_of_triangles(box_2d):
    H = relax_krelu_exact(box_2d)

    assert {canonical_row(h) for h in H} == _triangle_rows([-1, -1], [2, 3])


def test_relaxation_of_4d_box():
    lbs, ubs = [-1, -2, -1, -1], [1, 1, 2, 1]

    H = relax_krelu(octahedron_from_box(lbs, ubs))

    assert H.shape == (12, 9)
    assert H.dtype == np.float64
    expected = {tuple(float(x) for x in row) for row in _triangle_rows(lbs, ubs)}
    assert {tuple(h) for h in H} == expected


def test_relaxation_with_nonnegative_input(nonnegative_box_2d):
    H = relax_krelu_exact(nonnegative_box_2d)
    rows = {canonical_row(h) for h in H}

    # y_2 = x_2 holds on the whole input region
    assert canonical_row([0, 0, -1, 0, 1]) in rows
    assert canonical_row([0, 0, 1, 0, -1]) in rows
    assert np.all(_graph_points(nonnegative_box_2d).dot(H.T) >= 0)


def test_relaxation_with_soundness_check(monkeypatch, octagon_2d):
    monkeypatch.setattr(config, "CHECK_SOUNDNESS", True)

    H = relax_krelu_exact(octagon_2d)

    assert np.all(_graph_points(octagon_2d).dot(H.T) >= 0)


def test_compute_quadrant_pdd(box_2d):
    octahedron = compute_octahedron_V(box_2d)
    quadrant2info = split_in_quadrants(
        octahedron.V, octahedron.incidence, octahedron.orthant_adjacencies, 2
    )
    quadrant = (Sign.PLUS, Sign.PLUS)
    info = quadrant2info[quadrant]

    pdd = compute_quadrant_pdd(to_fraction_matrix(box_2d), quadrant, info)

    assert info.V.released
    assert pdd.V.shape == (4, 3)
    assert {canonical_row(h) for h in pdd.H} == {
        canonical_row(h) for h in [[0, 1, 0], [0, 0, 1], [2, -1, 0], [3, 0, -1]]
    }
    assert pdd.is_sound()


def test_compute_quadrant_pdd_of_empty_quadrant(box_2d):
    info = QuadrantInfo(VertexArena(3), np.zeros((0, 10), dtype=bool))

    pdd = compute_quadrant_pdd(
        to_fraction_matrix(box_2d), (Sign.MINUS, Sign.MINUS), info
    )

    assert pdd.is_empty
    assert pdd.dim == 3
    assert info.V.released


def test_compute_quadrant_pdd_rejects_inconsistent_incidence(box_2d):
    info = QuadrantInfo(
        VertexArena(3, [[1, 0, 0], [1, 2, 0]]), np.zeros((3, 10), dtype=bool)
    )

    with pytest.raises(InternalInconsistencyException):
        compute_quadrant_pdd(to_fraction_matrix(box_2d), (Sign.PLUS, Sign.PLUS), info)

    assert info.V.released


def test_compute_quadrant_pdd_of_single_point(orthant_box_2d):
    octahedron = compute_octahedron_V(orthant_box_2d)
    quadrant2info = split_in_quadrants(
        octahedron.V, octahedron.incidence, octahedron.orthant_adjacencies, 2
    )
    quadrant = (Sign.MINUS, Sign.MINUS)

    pdd = compute_quadrant_pdd(
        to_fraction_matrix(orthant_box_2d), quadrant, quadrant2info[quadrant]
    )

    # x_1 = 0 and x_2 = 0, each as two opposite rows
    assert pdd.V.shape == (1, 3)
    assert pdd.H.shape == (4, 3)
    assert pdd.incidence.all()
    assert len(independent_rows(pdd.H)) == 2
    assert [tuple(v) for v in compute_generators(pdd.H)] == [(1, 0, 0)]


def test_compute_quadrant_pdd_of_segment(orthant_box_2d):
    octahedron = compute_octahedron_V(orthant_box_2d)
    quadrant2info = split_in_quadrants(
        octahedron.V, octahedron.incidence, octahedron.orthant_adjacencies, 2
    )
    quadrant = (Sign.MINUS, Sign.PLUS)

    pdd = compute_quadrant_pdd(
        to_fraction_matrix(orthant_box_2d), quadrant, quadrant2info[quadrant]
    )

    # 0 <= x_2 <= 3 on the line x_1 = 0
    assert pdd.H.shape == (4, 3)
    assert int(np.count_nonzero(pdd.incidence.all(axis=1))) == 2
    assert {tuple(v) for v in compute_generators(pdd.H)} == {(1, 0, 0), (1, 0, 3)}


def test_relaxation_of_orthant_box(orthant_box_2d):
    H = relax_krelu_exact(orthant_box_2d)

    # The ReLU is the identity: the box in x, y_1 = x_1 and y_2 = x_2
    assert H.shape == (8, 5)
    assert {tuple(v) for v in compute_generators(H)} == {
        (1, x1, x2, x1, x2) for x1 in (0, 2) for x2 in (0, 3)
    }
