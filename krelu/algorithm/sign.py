"""
Sign of an input dimension inside a quadrant
"""

from enum import Enum


class Sign(Enum):
    """
    For keeping track of which side of x_i = 0 a quadrant lies on.
    """

    MINUS = -1
    PLUS = 1
