"""
Error taxonomy for manipulability analysis.
"""


class ManipulabilityError(Exception):
    """Base class for all manipulability analysis errors."""
    pass


class InvalidInputError(ManipulabilityError, ValueError):
    """Malformed input: non-finite entries, bad shape, bad threshold or epsilon."""
    pass


class IndexOutOfRangeError(InvalidInputError, IndexError):
    """Eigenvector column index outside the valid range."""
    pass


class NumericalError(ManipulabilityError, ArithmeticError):
    """Eigen-decomposition failed or violated the PSD invariant beyond tolerance."""
    pass
