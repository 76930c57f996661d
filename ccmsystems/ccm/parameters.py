"""
CCM run options.

Embedding dimension, lag and library sizes are supplied by the caller;
this module only holds and validates them.
"""

import numbers
from dataclasses import dataclass, field, replace
from typing import Optional, Sequence, Tuple

from .convergence import ConvergencePolicy, EndpointTrendPolicy
from ..errors import InvalidParameterError

SURROGATE_METHODS = ('random', 'fourier')


@dataclass
class CCMOptions:
    """
    Options for a CCM session.

    Parameters
    ----------
    embedding_dim : int, default 3
        Embedding dimension E (>= 2)
    tau : int, default 1
        Time lag between embedding coordinates (>= 1)
    num_samples : int, default 25
        Random libraries drawn per library size
    library_sizes : sequence of int or None
        Library sizes to test. If None, an evenly spaced ladder of
        ``n_lib_sizes`` sizes from the smallest useful size to the number of
        valid manifold points.
    convergence_threshold : float, default 0.1
        Threshold of the default EndpointTrendPolicy
    random_seed : int or None
        Seed for reproducible library draws
    exclusion_radius : int or None
        Temporal exclusion radius for neighbor candidates (default: E * tau)
    n_lib_sizes : int, default 10
        Length of the default library size ladder
    lib_frac_range : tuple, default (0.05, 1.0)
        Smallest and largest default library as fractions of the manifold
    baseline_shifts : int, default 5
        Time-shifted copies of the target scored per library as the
        no-coupling baseline (0 = off, convergence judged on raw rho)
    difference : bool or None
        First-difference both series before embedding. None differences
        them when either fails an ADF stationarity test.
    convergence_policy : ConvergencePolicy or None
        Overrides the default EndpointTrendPolicy(convergence_threshold)
    n_surrogates : int, default 0
        Surrogates for significance testing of convergent directions (0 = off)
    surrogate_method : {'random', 'fourier'}, default 'random'
        Surrogate generator applied to the cross-mapped series
    alpha : float, default 0.05
        Significance level for the surrogate test
    n_jobs : int, default 1
        Worker processes for the library size sweep
    verbose : bool, default False
        Print progress
    """

    embedding_dim: int = 3
    tau: int = 1
    num_samples: int = 25
    library_sizes: Optional[Sequence[int]] = None
    convergence_threshold: float = 0.1
    random_seed: Optional[int] = None
    exclusion_radius: Optional[int] = None
    n_lib_sizes: int = 10
    lib_frac_range: Tuple[float, float] = (0.05, 1.0)
    baseline_shifts: int = 5
    difference: Optional[bool] = None
    convergence_policy: Optional[ConvergencePolicy] = field(default=None, repr=False)
    n_surrogates: int = 0
    surrogate_method: str = 'random'
    alpha: float = 0.05
    n_jobs: int = 1
    verbose: bool = False

    def validate(self) -> 'CCMOptions':
        """Raise InvalidParameterError on out-of-range options."""
        _check_int(self.embedding_dim, 'embedding_dim', minimum=2)
        _check_int(self.tau, 'tau', minimum=1)
        _check_int(self.num_samples, 'num_samples', minimum=1)
        if self.exclusion_radius is not None:
            _check_int(self.exclusion_radius, 'exclusion_radius', minimum=0)
        _check_int(self.n_lib_sizes, 'n_lib_sizes', minimum=1)
        _check_int(self.baseline_shifts, 'baseline_shifts', minimum=0)
        _check_int(self.n_surrogates, 'n_surrogates', minimum=0)
        _check_int(self.n_jobs, 'n_jobs', minimum=1)

        if not self.convergence_threshold >= 0:
            raise InvalidParameterError(
                f"convergence_threshold must be non-negative, got {self.convergence_threshold}")
        try:
            low, high = self.lib_frac_range
        except (TypeError, ValueError) as exc:
            raise InvalidParameterError(f"lib_frac_range must be a (low, high) pair, got {self.lib_frac_range!r}") from exc
        if not 0 <= low <= high <= 1:
            raise InvalidParameterError(f"lib_frac_range must satisfy 0 <= low <= high <= 1, got {self.lib_frac_range}")
        if self.difference not in (None, True, False):
            raise InvalidParameterError(f"difference must be True, False or None, got {self.difference!r}")
        if not 0 < self.alpha < 1:
            raise InvalidParameterError(f"alpha must be in (0, 1), got {self.alpha}")
        if self.surrogate_method not in SURROGATE_METHODS:
            raise InvalidParameterError(
                f"surrogate_method must be one of {SURROGATE_METHODS}, got {self.surrogate_method!r}")
        if self.convergence_policy is not None and not isinstance(self.convergence_policy, ConvergencePolicy):
            raise InvalidParameterError("convergence_policy must be a ConvergencePolicy")
        if self.random_seed is not None:
            _check_int(self.random_seed, 'random_seed', minimum=0)

        return self

    def policy(self) -> ConvergencePolicy:
        if self.convergence_policy is not None:
            return self.convergence_policy
        return EndpointTrendPolicy(self.convergence_threshold, baseline=self.baseline_shifts > 0)

    def updated(self, **overrides) -> 'CCMOptions':
        """Copy with the given fields replaced."""
        try:
            return replace(self, **overrides)
        except TypeError as exc:
            raise InvalidParameterError(str(exc)) from exc


def _check_int(value, name: str, minimum: int) -> None:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise InvalidParameterError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise InvalidParameterError(f"{name} must be >= {minimum}, got {value}")
