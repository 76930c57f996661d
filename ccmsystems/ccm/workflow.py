"""
CCM workflow for a pair of series.

A session embeds both series once (first-differenced if either has a unit
root), then each direction sweeps the library sizes: draw random libraries,
cross map, score, average, and classify convergence. Each library is also
scored against circularly time-shifted copies of the target, giving the
no-coupling baseline the default policy compares against.

Randomness: each (direction, library size position) unit of work owns a
generator seeded from ``SeedSequence(entropy, spawn_key=(direction, 0,
position))``; the baseline shifts come from the same generator. Results do
not depend on evaluation order, so the sweep gives bit-identical output
serially or in a process pool.
"""

import multiprocessing
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np
from tqdm import tqdm

from .convergence import ConvergenceSeries, evaluate
from .core import compute_xmap, compute_xmap_baseline
from .embedding import Manifold, as_series, embed
from .library import default_library_sizes, normalize_library_sizes, sample_libraries
from .parameters import CCMOptions
from .results import BidirectionalResult, DirectionalResult
from ..errors import InvalidLibrarySizeError, InvalidParameterError, LengthMismatchError
from ..preprocessing import stationarize_pair
from ..surrogates import get_surrogate_generator, test_significance

DIRECTION_CODES = {('x', 'y'): 0, ('y', 'x'): 1}

_LIBRARY_STREAM = 0
_SURROGATE_STREAM = 1
_SURROGATE_LIBRARY_STREAM = 2


@dataclass(frozen=True)
class CCMSession:
    """
    Validated inputs of a CCM analysis.

    Attributes
    ----------
    x, y : np.ndarray
        Analysed series (equal length, finite; differenced if
        ``differenced``)
    options : CCMOptions
        Private copy of the run options, with the exclusion radius resolved
    manifolds : dict
        Shadow manifolds keyed 'x' and 'y'
    library_sizes : np.ndarray
        Ascending library sizes to sweep (may include sizes that turn out
        invalid; those are skipped and reported)
    entropy : int
        Root entropy for all random draws
    differenced : bool
        Whether both input series were first-differenced
    """

    x: np.ndarray
    y: np.ndarray
    options: CCMOptions
    manifolds: Dict[str, Manifold]
    library_sizes: np.ndarray
    entropy: int
    differenced: bool = False

    def series(self, name: str) -> np.ndarray:
        return {'x': self.x, 'y': self.y}[name]

    @property
    def n_points(self) -> int:
        return self.manifolds['x'].n_points


def _unit_rng(entropy: int, direction: int, stream: int, position: int) -> np.random.Generator:
    seq = np.random.SeedSequence(entropy, spawn_key=(direction, stream, position))
    return np.random.default_rng(seq)


def create_session(x, y, options: Optional[CCMOptions] = None, **overrides) -> CCMSession:
    """
    Validate the series and options and build both shadow manifolds.

    Parameters
    ----------
    x, y : array-like
        Equal-length numeric series
    options : CCMOptions or None
        Run options (defaults if None)
    **overrides
        Option fields to replace, e.g. ``embedding_dim=2, random_seed=1``

    Returns
    -------
    CCMSession
        Holds its own copy of the options; later changes to ``options``
        do not reach it.

    Raises
    ------
    InvalidParameterError
        Option out of range
    InvalidSeriesError
        Non-numeric, multi-dimensional or non-finite series
    LengthMismatchError
        ``len(x) != len(y)``
    InsufficientDataError
        Series too short for the embedding
    """
    if options is None:
        options = CCMOptions()
    options = options.updated(**overrides)
    options.validate()
    if options.library_sizes is not None:
        options = options.updated(library_sizes=tuple(np.ravel(options.library_sizes).tolist()))

    x = as_series(x, 'x')
    y = as_series(y, 'y')
    if len(x) != len(y):
        raise LengthMismatchError(f"x and y must have equal length, got {len(x)} and {len(y)}")

    E, tau = options.embedding_dim, options.tau
    if options.exclusion_radius is None:
        options = options.updated(exclusion_radius=E * tau)

    x, y, differenced = stationarize_pair(x, y, options.difference)

    manifolds = {'x': embed(x, E, tau), 'y': embed(y, E, tau)}
    n_points = manifolds['x'].n_points

    if options.library_sizes is None:
        library_sizes = default_library_sizes(
            n_points, E, n_lib_sizes=options.n_lib_sizes,
            exclusion_radius=options.exclusion_radius,
            lib_frac_range=options.lib_frac_range
        )
    else:
        library_sizes = normalize_library_sizes(options.library_sizes)
    library_sizes.setflags(write=False)

    if options.random_seed is not None:
        entropy = int(options.random_seed)
    else:
        entropy = int(np.random.SeedSequence().entropy)

    if options.verbose:
        if differenced:
            print("Warning: unit root detected, analysing first differences")
        print(f"CCM session: n={len(x)}, E={E}, tau={tau}, "
              f"{n_points} manifold points, {len(library_sizes)} library sizes")

    return CCMSession(
        x=x,
        y=y,
        options=options,
        manifolds=manifolds,
        library_sizes=library_sizes,
        entropy=entropy,
        differenced=differenced,
    )


def _null_shifts(n: int, count: int, rng: np.random.Generator) -> np.ndarray:
    """Circular shifts kept away from zero lag."""
    low = max(1, n // 4)
    high = max(low + 1, n - n // 4)
    return rng.integers(low, high, size=count)


def _process_library_size(args) -> Tuple[int, Optional[List[float]], Optional[List[float]], Optional[str]]:
    """
    Score ``num_samples`` random libraries of one size.

    Module level so it can be pickled for multiprocessing.

    Parameters
    ----------
    args : tuple
        (manifold, target, size, num_samples, exclusion_radius,
        baseline_shifts, entropy, direction, position)

    Returns
    -------
    tuple
        (size, scores, null_scores, None), or (size, None, None, reason) for
        an invalid size. ``null_scores`` is None when ``baseline_shifts`` is 0.
    """
    (manifold, target, size, num_samples, exclusion_radius,
     baseline_shifts, entropy, direction, position) = args

    rng = _unit_rng(entropy, direction, _LIBRARY_STREAM, position)
    try:
        libraries = sample_libraries(manifold.indices, size, num_samples, rng)
    except InvalidLibrarySizeError as exc:
        return size, None, None, str(exc)

    if baseline_shifts == 0:
        scores = [compute_xmap(manifold, target, library, exclusion_radius) for library in libraries]
        return size, scores, None, None

    scores = []
    null_scores = []
    for library in libraries:
        shifts = _null_shifts(len(target), baseline_shifts, rng)
        rho, rho_null = compute_xmap_baseline(manifold, target, library, shifts, exclusion_radius)
        scores.append(rho)
        null_scores.append(rho_null)

    return size, scores, null_scores, None


def _sweep(session: CCMSession,
           manifold: Manifold,
           target: np.ndarray,
           direction: int,
           desc: str) -> Tuple[Dict[int, List[float]], Optional[Dict[int, List[float]]], Dict[int, str]]:
    options = session.options
    args_list = [
        (manifold, target, int(size), options.num_samples, options.exclusion_radius,
         options.baseline_shifts, session.entropy, direction, position)
        for position, size in enumerate(session.library_sizes)
    ]

    if options.n_jobs > 1:
        with multiprocessing.Pool(processes=options.n_jobs) as pool:
            outputs = list(tqdm(
                pool.imap(_process_library_size, args_list),
                total=len(args_list),
                desc=desc,
                disable=not options.verbose
            ))
    else:
        outputs = [
            _process_library_size(args)
            for args in tqdm(args_list, desc=desc, disable=not options.verbose)
        ]

    per_size_scores = {}
    null_scores = {} if options.baseline_shifts > 0 else None
    skipped_sizes = {}
    for size, scores, null, reason in outputs:
        if scores is None:
            skipped_sizes[size] = reason
            continue
        per_size_scores[size] = scores
        if null_scores is not None:
            null_scores[size] = null

    return per_size_scores, null_scores, skipped_sizes


def _surrogate_test(session: CCMSession,
                    manifold: Manifold,
                    target: np.ndarray,
                    series: ConvergenceSeries,
                    direction: int) -> Optional[dict]:
    """
    Compare the largest-library rho with rho of surrogate targets.

    The cross-mapped series is replaced by surrogates while the manifold is
    kept; each surrogate is scored at the largest evaluated library size.
    """
    options = session.options
    if len(series) == 0:
        return None

    lib_size = int(series.lib_sizes[-1])
    observed = float(series.rho[-1])

    generator = get_surrogate_generator(options.surrogate_method)
    surrogates = generator(
        target, options.n_surrogates,
        rng=_unit_rng(session.entropy, direction, _SURROGATE_STREAM, 0),
    )

    rho_surr = []
    for j, surrogate in enumerate(tqdm(surrogates, desc="Surrogates", disable=not options.verbose)):
        rng = _unit_rng(session.entropy, direction, _SURROGATE_LIBRARY_STREAM, j)
        libraries = sample_libraries(manifold.indices, lib_size, options.num_samples, rng)
        scores = np.array([
            compute_xmap(manifold, surrogate, library, options.exclusion_radius)
            for library in libraries
        ])
        finite = scores[np.isfinite(scores)]
        rho_surr.append(float(np.mean(finite)) if len(finite) else np.nan)

    result = test_significance(observed, np.array(rho_surr), alpha=options.alpha)
    result['lib_size'] = lib_size
    result['method'] = options.surrogate_method
    return result


def run_directional(session: CCMSession, driver: str, target: str) -> DirectionalResult:
    """
    Test whether ``driver`` causally influences ``target``.

    The shadow manifold of ``target`` (the putative effect) is used to cross
    map ``driver`` (the putative cause).

    Parameters
    ----------
    session : CCMSession
    driver : {'x', 'y'}
        Putative cause
    target : {'x', 'y'}
        Putative effect

    Returns
    -------
    DirectionalResult
    """
    if (driver, target) not in DIRECTION_CODES:
        raise InvalidParameterError(
            f"driver/target must be ('x', 'y') or ('y', 'x'), got ({driver!r}, {target!r})")

    options = session.options
    direction = DIRECTION_CODES[(driver, target)]
    manifold = session.manifolds[target]
    cross_mapped = session.series(driver)

    if options.verbose:
        print(f"Testing {driver} -> {target} ({target} xmap {driver})...")

    per_size_scores, null_scores, skipped_sizes = _sweep(
        session, manifold, cross_mapped, direction, desc=f"{target} xmap {driver}"
    )

    if options.verbose:
        for size, reason in skipped_sizes.items():
            print(f"  Warning: skipped library size {size}: {reason}")

    series, convergent = evaluate(per_size_scores, options.policy(), null_scores)

    significance = None
    if options.n_surrogates > 0 and convergent:
        significance = _surrogate_test(session, manifold, cross_mapped, series, direction)

    result = DirectionalResult(
        cause=driver,
        effect=target,
        results=series,
        convergent=convergent,
        skipped_sizes=skipped_sizes,
        significance=significance,
    )

    if options.verbose:
        print(f"  rho = {result.rho:.3f}, gain = {result.rho_gain:.3f}, convergent = {convergent}")

    return result


def run_bidirectional(session: CCMSession) -> BidirectionalResult:
    """Run both directions, x -> y and y -> x."""
    if session.options.verbose:
        print("=" * 70)
        print("CONVERGENT CROSS MAPPING")
        print("=" * 70)

    result = BidirectionalResult(
        x_causes_y=run_directional(session, 'x', 'y'),
        y_causes_x=run_directional(session, 'y', 'x'),
    )

    if session.options.verbose:
        print("=" * 70)
        print()

    return result


def run_ccm(x, y, options: Optional[CCMOptions] = None, **overrides) -> BidirectionalResult:
    """
    Create a session and run both directions.

    Examples
    --------
    >>> result = run_ccm(x, y, embedding_dim=3, num_samples=30, random_seed=1)
    >>> result.y_causes_x.convergent
    """
    return run_bidirectional(create_session(x, y, options, **overrides))
