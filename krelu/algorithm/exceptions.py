"""
Exceptions raised while computing k-ReLU relaxations.

There is no recoverable error in the relaxation itself: a malformed input or an
inconsistent intermediate result aborts the computation for that tuple.
"""


class KReluException(Exception):
    pass


class InvalidInputFormatException(KReluException):
    pass


class InvalidBoundsException(KReluException):
    pass


class InternalInconsistencyException(KReluException):
    pass


class DoubleDescriptionException(KReluException):
    pass
