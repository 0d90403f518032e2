"""
Relaxation of many independent k-ReLU groups, e.g. all groups of one layer.

Each relaxation only uses its own exact scratch space (Python Fractions and
GMP rationals inside cdd have no shared state), so groups can be distributed
over worker processes.
"""

import multiprocessing
from typing import List, Optional, Sequence

import numpy as np

from krelu.algorithm.relaxation_method import RelaxationMethod
from krelu.relaxation.cdd_relaxation import relax_krelu_with_cdd
from krelu.relaxation.krelu import relax_krelu
from krelu.util import config


def relax(A: np.ndarray, method: Optional[RelaxationMethod] = None) -> np.ndarray:

    """
    Relaxes one k-ReLU group with the given method.

    Args:
        A       : The octahedral input matrix of the group
        method  : The relaxation method, defaults to config.RELAXATION_METHOD

    Returns:
        The relaxation with 2K + 1 columns as a float array
    """

    method = config.RELAXATION_METHOD if method is None else method

    if method == RelaxationMethod.DECOMPOSITION:
        return relax_krelu(A)
    if method == RelaxationMethod.CDD:
        return relax_krelu_with_cdd(A)

    raise ValueError(f"Relaxation method {method} not supported")


def relax_krelu_batch(
    inputs: Sequence[np.ndarray],
    method: Optional[RelaxationMethod] = None,
    max_procs: Optional[int] = 1,
) -> List[np.ndarray]:

    """
    Relaxes several independent k-ReLU groups.

    Args:
        inputs      : The octahedral input matrices
        method      : The relaxation method, defaults to config.RELAXATION_METHOD
        max_procs   : The maximum number of worker processes, None uses all cpus

    Returns:
        The relaxations in the order of the inputs
    """

    method = config.RELAXATION_METHOD if method is None else method
    max_procs = multiprocessing.cpu_count() if max_procs is None else max_procs

    if max_procs <= 1 or len(inputs) <= 1:
        return [relax(A, method) for A in inputs]

    with multiprocessing.Pool(processes=min(max_procs, len(inputs))) as pool:
        return pool.starmap(relax, [(A, method) for A in inputs])
