import numpy as np
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from krelu.algorithm.double_description import compute_generators
from krelu.algorithm.exceptions import InvalidBoundsException
from krelu.algorithm.octahedron import (
    K2OCTAHEDRON_COEFS,
    octahedron_from_box,
    octahedron_from_offsets,
)
from krelu.relaxation.cdd_relaxation import (
    relax_krelu_with_cdd,
    relax_krelu_with_cdd_exact,
)
from krelu.relaxation.krelu import relax_krelu_exact
from krelu.util.rational import canonical_row


def _rows(H) -> set:
    return {canonical_row(h) for h in H}


@pytest.mark.parametrize(
    "fixture",
    [
        "box_1d",
        "box_2d",
        "octagon_2d",
        "octahedron_2d_fractional",
        "box_3d",
        "octahedron_3d",
    ],
)
def test_cdd_agrees_with_decomposition(fixture, request):
    A = request.getfixturevalue(fixture)

    assert _rows(relax_krelu_with_cdd_exact(A)) == _rows(relax_krelu_exact(A))


@pytest.mark.parametrize(
    "fixture", ["nonnegative_box_2d", "orthant_box_2d", "touching_box_3d"]
)
def test_cdd_agrees_with_decomposition_on_lower_dimensional_hull(fixture, request):
    A = request.getfixturevalue(fixture)

    H_cdd = relax_krelu_with_cdd_exact(A)
    H_decomposition = relax_krelu_exact(A)

    # Equalities may be written differently, the vertices are unique
    assert {tuple(v) for v in compute_generators(H_cdd)} == {
        tuple(v) for v in compute_generators(H_decomposition)
    }


def test_cdd_output_is_float(box_2d):
    H = relax_krelu_with_cdd(box_2d)

    assert H.dtype == np.float64
    assert H.shape == (6, 5)


def test_cdd_rejects_empty_region():
    A = octahedron_from_box([-1, -1], [1, 1])
    A[list(K2OCTAHEDRON_COEFS[2]).index((1, 0)), 0] = -2

    with pytest.raises(InvalidBoundsException):
        relax_krelu_with_cdd_exact(A)


@st.composite
def octahedra_2d(draw):
    lbs = draw(st.lists(st.integers(-4, -1), min_size=2, max_size=2))
    ubs = draw(st.lists(st.integers(1, 4), min_size=2, max_size=2))
    offsets = list(octahedron_from_box(lbs, ubs)[:, 0])

    # Tighten the diagonal rows, their constants stay positive
    for j, coefs in enumerate(K2OCTAHEDRON_COEFS[2]):
        if all(coefs):
            offsets[j] -= draw(st.integers(0, 1))

    return octahedron_from_offsets(offsets)


@settings(max_examples=15, deadline=None)
@given(octahedra_2d())
def test_cdd_agrees_with_decomposition_on_random_octahedra(A):
    assert _rows(relax_krelu_with_cdd_exact(A)) == _rows(relax_krelu_exact(A))
