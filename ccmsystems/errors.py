"""
Exception types raised by the CCM engine.

Fatal input errors also derive from ``ValueError`` so that callers catching
bad-argument errors keep working. ``InvalidLibrarySizeError`` and
``InsufficientNeighborsError`` are recoverable: the sweep records or excludes
the offending library size / point and continues.
"""


class CCMError(Exception):
    """Base class for all CCM errors."""


class InvalidParameterError(CCMError, ValueError):
    """An option is outside its allowed range."""


class InvalidSeriesError(CCMError, ValueError):
    """Input series is not a one-dimensional sequence of finite reals."""


class InsufficientDataError(CCMError, ValueError):
    """Series is too short for the requested embedding."""


class LengthMismatchError(CCMError, ValueError):
    """The two series differ in length."""


class InvalidLibrarySizeError(CCMError, ValueError):
    """Library size is non-positive or exceeds the valid manifold points."""

    def __init__(self, library_size, n_available, message=None):
        self.library_size = library_size
        self.n_available = n_available
        if message is None:
            message = (f"library size {library_size} is outside "
                       f"[1, {n_available}] valid manifold points")
        super().__init__(message)


class InsufficientNeighborsError(CCMError):
    """An anchor point cannot find E+1 neighbors within its library."""

    def __init__(self, anchor, n_candidates, n_required):
        self.anchor = anchor
        self.n_candidates = n_candidates
        self.n_required = n_required
        super().__init__(
            f"anchor {anchor}: {n_candidates} candidate neighbors, "
            f"{n_required} required"
        )
