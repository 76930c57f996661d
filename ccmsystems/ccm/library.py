"""
Random library construction for CCM convergence testing.

A library is a sorted array of anchor time indices restricting which manifold
points may serve as neighbors in one cross-mapping trial.
"""

import numpy as np
from typing import List, Sequence, Tuple

from ..errors import InvalidLibrarySizeError, InvalidParameterError


def sample_libraries(valid_indices: Sequence[int],
                     library_size: int,
                     count: int,
                     rng: np.random.Generator) -> List[np.ndarray]:
    """
    Draw random libraries without replacement.

    Parameters
    ----------
    valid_indices : sequence of int
        Anchor indices of the manifold (the domain to draw from)
    library_size : int
        Number of anchors per library, 1 <= library_size <= len(valid_indices)
    count : int
        Number of independent libraries to draw (>= 1)
    rng : np.random.Generator
        Random source. Passed explicitly so draws are reproducible.

    Returns
    -------
    list of np.ndarray
        ``count`` sorted index arrays of length ``library_size``

    Raises
    ------
    InvalidLibrarySizeError
        If ``library_size`` is non-positive or larger than the index domain
    """
    valid_indices = np.asarray(valid_indices)
    n_available = len(valid_indices)

    if library_size < 1 or library_size > n_available:
        raise InvalidLibrarySizeError(library_size, n_available)
    if count < 1:
        raise InvalidLibrarySizeError(library_size, n_available,
                                      message=f"library count must be >= 1, got {count}")

    return [
        np.sort(rng.choice(valid_indices, size=int(library_size), replace=False))
        for _ in range(count)
    ]


def min_library_size(E: int, exclusion_radius: int = 0) -> int:
    """
    Smallest library in which an anchor can find E+1 neighbors.

    The anchor itself and, with a positive exclusion radius, up to
    ``2*exclusion_radius`` temporal neighbors are not candidates.
    """
    return E + 2 + 2 * exclusion_radius


def default_library_sizes(n_points: int,
                          E: int,
                          n_lib_sizes: int = 10,
                          exclusion_radius: int = 0,
                          lib_frac_range: Tuple[float, float] = (0.05, 1.0)) -> np.ndarray:
    """
    Evenly spaced ladder of library sizes.

    Parameters
    ----------
    n_points : int
        Number of valid manifold points (largest usable library)
    E : int
        Embedding dimension
    n_lib_sizes : int, default 10
        Number of sizes in the ladder (fewer if the range is narrow)
    exclusion_radius : int, default 0
        Temporal exclusion radius, raises the smallest useful size
    lib_frac_range : tuple, default (0.05, 1.0)
        Smallest and largest library as fractions of ``n_points``. The
        smallest is never below ``min_library_size(E, exclusion_radius)``.

    Returns
    -------
    np.ndarray
        Strictly ascending integer library sizes
    """
    lib_small = max(min_library_size(E, exclusion_radius), int(round(lib_frac_range[0] * n_points)))
    lib_large = min(n_points, int(round(lib_frac_range[1] * n_points)))
    lib_small = min(lib_small, lib_large)

    if n_lib_sizes < 2 or lib_small >= lib_large:
        return np.array([max(lib_large, 1)], dtype=int)

    sizes = np.linspace(lib_small, lib_large, n_lib_sizes)
    return np.unique(np.round(sizes).astype(int))


def normalize_library_sizes(library_sizes: Sequence[int]) -> np.ndarray:
    """Sort and de-duplicate caller-supplied library sizes."""
    sizes = np.asarray(list(library_sizes))
    if sizes.size == 0:
        raise InvalidParameterError("library_sizes must not be empty")
    if not np.all(np.equal(np.mod(sizes, 1), 0)):
        raise InvalidParameterError(f"library sizes must be integers, got {list(library_sizes)}")

    return np.unique(sizes.astype(int))
