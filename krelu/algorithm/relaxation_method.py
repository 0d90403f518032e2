"""
Defines list of possible relaxation methods.
"""

from enum import Enum


class RelaxationMethod(Enum):
    DECOMPOSITION = 1
    CDD = 2
