"""
Config file
"""

import logging

from krelu.algorithm.relaxation_method import RelaxationMethod

LOGS_LEVEL = logging.INFO
logging.basicConfig(level=LOGS_LEVEL)

MIN_K: int = 1
MAX_K: int = 4

RELAXATION_METHOD: RelaxationMethod = RelaxationMethod.DECOMPOSITION

# Checks every output row against every lifted vertex in exact arithmetic
CHECK_SOUNDNESS: bool = False

LP_TOLERANCE: float = 1e-7
