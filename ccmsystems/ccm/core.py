"""
Core Convergent Cross Mapping (CCM) functions.

Cross mapping estimates a target series at an anchor time from the target
values observed at the anchor's nearest neighbors in a shadow manifold. The
neighbors are chosen by proximity in the manifold, the values are borrowed
from the target series at the neighbors' own time indices.
"""

import numpy as np
from typing import Optional, Tuple
from scipy.spatial.distance import cdist

from .embedding import Manifold
from ..errors import InsufficientNeighborsError


def find_neighbors(vectors: np.ndarray,
                   anchors: np.ndarray,
                   k: int,
                   exclusion_radius: int = 0) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Brute-force k-nearest-neighbor search within one library.

    Parameters
    ----------
    vectors : np.ndarray, shape (L, E)
        Embedding vectors of the library points
    anchors : np.ndarray, shape (L,)
        Anchor time index of each row, ascending
    k : int
        Number of neighbors per point
    exclusion_radius : int, default 0
        Candidates with ``|anchor_j - anchor_i| <= exclusion_radius`` are
        skipped. The point itself is always skipped.

    Returns
    -------
    neighbors : np.ndarray, shape (L, k)
        Row positions (into ``vectors``) of the neighbors, nearest first.
        Distance ties resolve to the smaller anchor index.
    distances : np.ndarray, shape (L, k)
        Euclidean distances matching ``neighbors``
    n_candidates : np.ndarray, shape (L,)
        Number of admissible candidates per point. Rows with fewer than
        ``k`` candidates are not usable.
    """
    L = len(anchors)
    dist = cdist(vectors, vectors)

    excluded = np.eye(L, dtype=bool)
    if exclusion_radius > 0:
        excluded |= np.abs(anchors[:, None] - anchors[None, :]) <= exclusion_radius
    dist[excluded] = np.inf

    n_candidates = L - excluded.sum(axis=1)

    if L - 1 < k:
        empty = np.zeros((L, 0), dtype=int)
        return empty, np.zeros((L, 0)), n_candidates

    # Stable sort keeps ascending-anchor order among equal distances
    neighbors = np.argsort(dist, axis=1, kind='stable')[:, :k]
    distances = np.take_along_axis(dist, neighbors, axis=1)

    return neighbors, distances, n_candidates


def neighbor_weights(distances: np.ndarray) -> np.ndarray:
    """
    Exponential simplex weights for sorted neighbor distances.

    ``w_i = exp(-d_i / d_1)`` when the nearest distance ``d_1`` is positive.
    When ``d_1 == 0`` every neighbor at distance zero gets weight 1 and the
    rest 0. Rows are normalized to sum to one.

    Parameters
    ----------
    distances : np.ndarray, shape (L, k)
        Ascending neighbor distances per row

    Returns
    -------
    np.ndarray, shape (L, k)
    """
    d1 = distances[:, :1]

    with np.errstate(divide='ignore', invalid='ignore'):
        weights = np.where(d1 > 0, np.exp(-distances / d1), (distances == 0).astype(float))

    return weights / weights.sum(axis=1, keepdims=True)


def _neighborhoods(manifold: Manifold,
                   library: np.ndarray,
                   k: int,
                   exclusion_radius: int = 0,
                   strict: bool = False) -> Tuple[np.ndarray, np.ndarray, Optional[np.ndarray]]:
    """Usable-row mask, neighbor rows and weights of one library."""
    neighbors, distances, n_candidates = find_neighbors(
        manifold.rows(library), library, k, exclusion_radius=exclusion_radius
    )

    usable = n_candidates >= k
    if strict and not np.all(usable):
        first = int(np.argmin(usable))
        raise InsufficientNeighborsError(int(library[first]), int(n_candidates[first]), k)

    if not np.any(usable):
        return usable, neighbors, None

    return usable, neighbors[usable], neighbor_weights(distances[usable])


def _reconstruct(target: np.ndarray,
                 library: np.ndarray,
                 usable: np.ndarray,
                 neighbors: np.ndarray,
                 weights: Optional[np.ndarray]) -> np.ndarray:
    estimates = np.full(len(library), np.nan)
    if weights is not None:
        estimates[usable] = np.sum(weights * target[library[neighbors]], axis=1)
    return estimates


def cross_map(manifold: Manifold,
              target: np.ndarray,
              library: np.ndarray,
              E: Optional[int] = None,
              exclusion_radius: int = 0,
              strict: bool = False) -> np.ndarray:
    """
    Estimate the target series at every library anchor from manifold neighbors.

    Parameters
    ----------
    manifold : Manifold
        Shadow manifold whose local geometry selects the neighbors
    target : np.ndarray, shape (n,)
        Full target series, indexed by time
    library : np.ndarray
        Sorted anchor indices of this library
    E : int or None
        Embedding dimension; ``E + 1`` neighbors are used. Defaults to
        ``manifold.E``.
    exclusion_radius : int, default 0
        Temporal exclusion radius for neighbor candidates
    strict : bool, default False
        Raise ``InsufficientNeighborsError`` instead of excluding a point
        that lacks E+1 candidates

    Returns
    -------
    np.ndarray, shape (L,)
        Estimates aligned with ``library``; NaN where a point was excluded
    """
    if E is None:
        E = manifold.E

    library = np.asarray(library)
    target = np.asarray(target, dtype=float)

    usable, neighbors, weights = _neighborhoods(manifold, library, E + 1, exclusion_radius, strict)
    return _reconstruct(target, library, usable, neighbors, weights)


def score(estimates: np.ndarray, observed: np.ndarray) -> float:
    """
    Pearson correlation between cross-map estimates and observations.

    Points where either value is NaN are dropped pairwise. Returns NaN when
    fewer than two points remain or either vector is constant.
    """
    estimates = np.asarray(estimates, dtype=float)
    observed = np.asarray(observed, dtype=float)

    valid = np.isfinite(estimates) & np.isfinite(observed)
    if np.sum(valid) < 2:
        return np.nan

    e = estimates[valid]
    o = observed[valid]

    if np.ptp(e) == 0 or np.ptp(o) == 0:
        return np.nan

    e = e - e.mean()
    o = o - o.mean()
    denom = np.sqrt(np.sum(e ** 2) * np.sum(o ** 2))
    if denom == 0:
        return np.nan

    return float(np.clip(np.sum(e * o) / denom, -1.0, 1.0))


def compute_xmap(manifold: Manifold,
                 target: np.ndarray,
                 library: np.ndarray,
                 exclusion_radius: int = 0) -> float:
    """Cross-map skill (rho) of one library."""
    library = np.asarray(library)
    estimates = cross_map(manifold, target, library, exclusion_radius=exclusion_radius)
    return score(estimates, np.asarray(target, dtype=float)[library])


def compute_xmap_baseline(manifold: Manifold,
                          target: np.ndarray,
                          library: np.ndarray,
                          shifts: np.ndarray,
                          exclusion_radius: int = 0) -> Tuple[float, float]:
    """
    Cross-map skill of one library and of time-shifted copies of the target.

    A circular time shift keeps the target's own temporal structure but
    breaks its alignment with the manifold, so the shifted skill is what
    the library would score without any coupling. The neighbor search is
    shared between the target and its shifted copies.

    Parameters
    ----------
    manifold : Manifold
    target : np.ndarray, shape (n,)
    library : np.ndarray
        Sorted anchor indices
    shifts : np.ndarray of int
        Circular shifts applied to ``target``
    exclusion_radius : int, default 0

    Returns
    -------
    rho : float
        Skill for the target
    rho_null : float
        Mean finite skill over the shifted targets (NaN if none)
    """
    library = np.asarray(library)
    target = np.asarray(target, dtype=float)

    usable, neighbors, weights = _neighborhoods(manifold, library, manifold.E + 1, exclusion_radius)
    rho = score(_reconstruct(target, library, usable, neighbors, weights), target[library])

    null = []
    for shift in shifts:
        shifted = np.roll(target, int(shift))
        null.append(score(_reconstruct(shifted, library, usable, neighbors, weights), shifted[library]))

    null = np.asarray(null, dtype=float)
    finite = null[np.isfinite(null)]
    rho_null = float(np.mean(finite)) if len(finite) else np.nan

    return rho, rho_null
