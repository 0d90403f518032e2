"""
Benchmarks the decomposition against the direct cdd relaxation on random
octahedra and checks that both compute the same polytope.

python -m krelu.scripts.benchmark_krelu k num_samples result_path
"""

import logging
import sys
import time
from typing import Dict

import numpy as np

from krelu.algorithm.octahedron import (
    K2OCTAHEDRON_COEFS,
    octahedron_from_box,
    octahedron_from_offsets,
)
from krelu.relaxation.cdd_relaxation import relax_krelu_with_cdd_exact
from krelu.relaxation.krelu import relax_krelu_exact
from krelu.util.rational import canonical_row

logger = logging.getLogger(__name__)

RANDOM_SEED: int = 0


def random_octahedron(k: int, rng: np.random.Generator) -> np.ndarray:

    """
    Samples an octahedral input around the origin.

    The box bounds are integers with lb < 0 < ub, the constants of all rows are
    shrunk by a random factor, which keeps the origin feasible.
    """

    lbs = -rng.integers(1, 5, size=k)
    ubs = rng.integers(1, 5, size=k)
    offsets = octahedron_from_box(lbs, ubs)[:, 0].astype(np.float64)

    shrink = rng.integers(5, 11, size=len(K2OCTAHEDRON_COEFS[k])) / 10
    return octahedron_from_offsets(offsets * shrink)


def run_benchmark(k: int, num_samples: int, result_path: str) -> Dict[str, float]:

    """
    Relaxes num_samples random octahedra with both methods.

    Args:
        k           : The number of input dimensions
        num_samples : The number of random inputs
        result_path : The file the per sample results are written to

    Returns:
        The total time of each method and the number of disagreements
    """

    rng = np.random.default_rng(RANDOM_SEED)
    totals = {"decomposition": 0.0, "cdd": 0.0, "disagreements": 0}

    with open(result_path, "w", buffering=1, encoding="UTF-8") as f:
        f.write("sample, decomposition time, cdd time, facets, agree\n")

        for sample in range(num_samples):
            A = random_octahedron(k, rng)

            start = time.time()
            H_decomposition = relax_krelu_exact(A)
            decomposition_time = time.time() - start

            start = time.time()
            H_cdd = relax_krelu_with_cdd_exact(A)
            cdd_time = time.time() - start

            agree = {canonical_row(row) for row in H_decomposition} == {
                canonical_row(row) for row in H_cdd
            }

            totals["decomposition"] += decomposition_time
            totals["cdd"] += cdd_time
            totals["disagreements"] += int(not agree)

            f.write(
                f"{sample}, {decomposition_time:.4f}, {cdd_time:.4f}, "
                f"{H_decomposition.shape[0]}, {agree}\n"
            )
            logger.info(
                f"Sample {sample}: decomposition {decomposition_time:.2f}s, "
                f"cdd {cdd_time:.2f}s, {H_decomposition.shape[0]} facets, "
                f"agree: {agree}"
            )

    return totals


if __name__ == "__main__":
    assert len(sys.argv) == 4
    # pylint: disable=unbalanced-tuple-unpacking
    _, k, num_samples, result_path = sys.argv

    totals = run_benchmark(int(k), int(num_samples), result_path)

    print(
        f"Decomposition: {totals['decomposition']:.2f} seconds, cdd:"
        f" {totals['cdd']:.2f} seconds, disagreements: {totals['disagreements']}"
    )
