"""
Error kinds raised by the alignment and phylogeny routines
"""


class ProtPhyloError(ValueError):
    """Base class for all ProtPhylo input/parameter errors"""


class EmptyInputError(ProtPhyloError):
    """Zero-length sequence or empty target set"""


class InsufficientInputError(ProtPhyloError):
    """Fewer sequences (or columns) than an algorithm requires"""


class InvalidParameterError(ProtPhyloError):
    """Non-positive top-N / bootstrap count, invalid length range, empty motif"""


class NumericDegeneracyError(ProtPhyloError):
    """
    Distance correction undefined.

    The distance estimator clamps to a sentinel distance instead of raising
    this; it exists for callers that want to treat saturation as an error.
    """


class OperationCancelledError(RuntimeError):
    """A long-running operation was aborted through its CancelToken"""
