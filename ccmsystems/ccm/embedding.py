"""
Time-delay embedding of a scalar series into its shadow manifold.
"""

from dataclasses import dataclass

import numpy as np

from ..errors import InsufficientDataError, InvalidParameterError, InvalidSeriesError


@dataclass(frozen=True)
class Manifold:
    """
    Shadow manifold of one series.

    Attributes
    ----------
    vectors : np.ndarray, shape (n_points, E)
        Row i is ``(s[t], s[t-tau], ..., s[t-(E-1)tau])`` for ``t = indices[i]``
    indices : np.ndarray, shape (n_points,)
        Anchor time index of each row, ascending
    E : int
        Embedding dimension
    tau : int
        Time lag between coordinates
    """

    vectors: np.ndarray
    indices: np.ndarray
    E: int
    tau: int

    @property
    def n_points(self) -> int:
        return len(self.indices)

    @property
    def offset(self) -> int:
        """First valid anchor index, ``(E-1)*tau``."""
        return (self.E - 1) * self.tau

    def rows(self, anchors: np.ndarray) -> np.ndarray:
        """Embedding vectors for the given anchor time indices."""
        return self.vectors[np.asarray(anchors) - self.offset]


def as_series(values, name: str = 'series') -> np.ndarray:
    """Coerce input to a 1-D float array of finite values."""
    try:
        arr = np.asarray(values, dtype=float)
    except (TypeError, ValueError) as exc:
        raise InvalidSeriesError(f"{name} must be numeric") from exc

    if arr.ndim != 1:
        raise InvalidSeriesError(f"{name} must be one-dimensional, got shape {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise InvalidSeriesError(f"{name} contains NaN or infinite values")

    return arr


def embed(series, E: int, tau: int) -> Manifold:
    """
    Build the time-delay embedding of a series.

    Parameters
    ----------
    series : array-like, shape (n,)
        Input time series
    E : int
        Embedding dimension (>= 2)
    tau : int
        Time lag (>= 1)

    Returns
    -------
    Manifold
        One embedding vector per anchor ``t >= (E-1)*tau``, in index order.
        The arrays are read-only.

    Raises
    ------
    InsufficientDataError
        If ``len(series) < (E-1)*tau + 1``
    """
    if int(E) != E or E < 2:
        raise InvalidParameterError(f"embedding dimension E must be an integer >= 2, got {E}")
    if int(tau) != tau or tau < 1:
        raise InvalidParameterError(f"tau must be an integer >= 1, got {tau}")
    E, tau = int(E), int(tau)

    x = as_series(series)
    n = len(x)
    offset = (E - 1) * tau

    if n < offset + 1:
        raise InsufficientDataError(
            f"series of length {n} is too short for E={E}, tau={tau} "
            f"(need at least {offset + 1} points)"
        )

    indices = np.arange(offset, n)
    # Column j holds the lag-j coordinate s[t - j*tau]
    vectors = np.column_stack([x[indices - j * tau] for j in range(E)])

    vectors.setflags(write=False)
    indices.setflags(write=False)

    return Manifold(vectors=vectors, indices=indices, E=E, tau=tau)
