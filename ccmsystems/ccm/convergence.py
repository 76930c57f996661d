"""
Convergence evaluation for CCM library-size sweeps.

Per-library-size correlations are averaged across random samples into a
``ConvergenceSeries``; a ``ConvergencePolicy`` then decides whether the
sequence shows convergence. The default policy is a two-sided monotonic trend
check on the endpoints. Two alternatives are provided: a saturating curve fit
and an OLS slope test.
"""

from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import statsmodels.api as sm
from scipy.optimize import curve_fit


@dataclass(frozen=True)
class ConvergenceSeries:
    """
    Averaged cross-map skill per library size, ascending in size.

    Attributes
    ----------
    lib_sizes : np.ndarray
        Strictly ascending library sizes
    rho : np.ndarray
        Mean correlation per size (NaN if every sample was NaN)
    rho_std : np.ndarray
        Standard deviation of the finite samples per size
    n_valid : np.ndarray
        Number of finite samples per size
    rho_null : np.ndarray or None
        Mean skill of time-shifted targets per size, the no-coupling
        baseline (None when not computed)
    """

    lib_sizes: np.ndarray
    rho: np.ndarray
    rho_std: np.ndarray
    n_valid: np.ndarray
    rho_null: Optional[np.ndarray] = None

    def __len__(self):
        return len(self.lib_sizes)

    def __iter__(self):
        return iter(zip(self.lib_sizes.tolist(), self.rho.tolist()))

    def finite(self) -> Tuple[np.ndarray, np.ndarray]:
        """Library sizes and rho restricted to finite averages."""
        mask = np.isfinite(self.rho)
        return self.lib_sizes[mask], self.rho[mask]

    def excess(self) -> np.ndarray:
        """Skill above the no-coupling baseline, or rho if there is none."""
        if self.rho_null is None:
            return self.rho.copy()
        return self.rho - self.rho_null

    def to_frame(self) -> pd.DataFrame:
        frame = pd.DataFrame({
            'LibSize': self.lib_sizes,
            'rho': self.rho,
            'rho_std': self.rho_std,
            'n_valid': self.n_valid,
        })
        if self.rho_null is not None:
            frame['rho_null'] = self.rho_null
        return frame


def aggregate_scores(per_size_scores: Mapping[int, Sequence[float]],
                     null_scores: Optional[Mapping[int, Sequence[float]]] = None) -> ConvergenceSeries:
    """
    Average per-sample correlations for each library size.

    NaN samples are excluded from the mean; a size whose samples are all NaN
    is kept with a NaN average. ``null_scores``, keyed like
    ``per_size_scores``, are averaged the same way into ``rho_null``.
    """
    lib_sizes = np.array(sorted(per_size_scores), dtype=int)
    rho = np.full(len(lib_sizes), np.nan)
    rho_std = np.full(len(lib_sizes), np.nan)
    n_valid = np.zeros(len(lib_sizes), dtype=int)
    rho_null = None if null_scores is None else np.full(len(lib_sizes), np.nan)

    for i, size in enumerate(lib_sizes):
        samples = np.asarray(per_size_scores[size], dtype=float)
        finite = samples[np.isfinite(samples)]
        n_valid[i] = len(finite)
        if len(finite) > 0:
            rho[i] = float(np.clip(np.mean(finite), -1.0, 1.0))
            rho_std[i] = float(np.std(finite))

        if rho_null is not None:
            null = np.asarray(null_scores.get(size, []), dtype=float)
            null = null[np.isfinite(null)]
            if len(null) > 0:
                rho_null[i] = float(np.mean(null))

    return ConvergenceSeries(lib_sizes=lib_sizes, rho=rho, rho_std=rho_std,
                             n_valid=n_valid, rho_null=rho_null)


class ConvergencePolicy:
    """Decides whether a ConvergenceSeries shows convergence."""

    def is_convergent(self, series: ConvergenceSeries) -> bool:
        raise NotImplementedError

    def __call__(self, series: ConvergenceSeries) -> bool:
        return bool(self.is_convergent(series))


class EndpointTrendPolicy(ConvergencePolicy):
    """
    Two-sided monotonic trend check.

    Convergent when, over the finite values, the last exceeds the first by
    more than ``threshold`` and no entry drops more than ``threshold`` below
    the running maximum before it. NaN sizes are ignored.

    With ``baseline=True`` the check runs on ``series.excess()``, the skill
    above the time-shifted baseline, when the series carries one. Without
    coupling, small libraries score below zero and autocorrelated targets
    still gain skill with library size; the baseline shows the same rise.

    This favors a single boolean over statistical rigor and is sensitive to
    noise when few samples are drawn per library size.
    """

    def __init__(self, threshold: float = 0.1, baseline: bool = True):
        if threshold < 0:
            raise ValueError(f"threshold must be non-negative, got {threshold}")
        self.threshold = float(threshold)
        self.baseline = baseline

    def is_convergent(self, series: ConvergenceSeries) -> bool:
        values = series.excess() if self.baseline else series.rho
        values = values[np.isfinite(values)]
        if len(values) < 2:
            return False

        rises = values[-1] - values[0] > self.threshold
        drawdown = np.maximum.accumulate(values) - values
        return bool(rises and np.all(drawdown <= self.threshold))

    def __repr__(self):
        return f"EndpointTrendPolicy(threshold={self.threshold}, baseline={self.baseline})"


def saturating_curve(L: np.ndarray, a: float, K: float, b: float) -> np.ndarray:
    """
    Saturating curve model for CCM convergence.

    Model: y = a*L / (K + L) + b

    Parameters
    ----------
    L : np.ndarray
        Library sizes
    a : float
        Amplitude parameter (asymptotic increase)
    K : float
        Half-saturation constant (library size at half of asymptote)
    b : float
        Baseline/offset parameter
    """
    return a * L / (K + L) + b


def fit_ccm_curve(lib_sizes: np.ndarray,
                  rho_values: np.ndarray) -> Optional[Dict[str, float]]:
    """
    Fit a saturating curve to CCM library size convergence.

    Parameters
    ----------
    lib_sizes : np.ndarray
        Library sizes
    rho_values : np.ndarray
        Corresponding rho values

    Returns
    -------
    dict or None
        Fit parameters and diagnostics:
        - 'a', 'K', 'b': curve parameters
        - 'R2': R-squared of fit
        - 'Lmax': maximum library size
        - 'slope_tail': slope in last third of points
        - 'rho_conv': mean rho in convergence region (last third)
        None if fewer than three finite points or the fit fails.
    """
    lib_sizes = np.asarray(lib_sizes, dtype=float)
    rho_values = np.asarray(rho_values, dtype=float)

    valid = np.isfinite(lib_sizes) & np.isfinite(rho_values)
    if np.sum(valid) < 3:
        return None

    x = lib_sizes[valid]
    y = rho_values[valid]
    Lmax = float(np.max(x))

    # Initial guesses
    p0 = [max(1e-6, np.max(y) - np.min(y)),
          float(np.median(x)),
          float(np.min(y))]

    try:
        popt, _ = curve_fit(saturating_curve, x, y, p0=p0, maxfev=10000)
    except (RuntimeError, ValueError):
        return None

    a, K, b = map(float, popt)
    resid = y - saturating_curve(x, a, K, b)
    ss_res = np.sum(resid ** 2)
    ss_tot = np.sum((y - np.mean(y)) ** 2)
    r2 = 1 - ss_res / ss_tot if ss_tot > 0 else 0.0

    # Tail slope (plateau region = last third of points)
    tail_n = max(3, int(np.ceil(len(x) / 3)))
    x_tail = x[-tail_n:]
    y_tail = y[-tail_n:]
    slope_tail = np.polyfit(x_tail, y_tail, 1)[0]

    return {
        'a': a,
        'K': K,
        'b': b,
        'R2': float(r2),
        'Lmax': Lmax,
        'slope_tail': float(slope_tail),
        'rho_conv': float(np.mean(y_tail)),
    }


class SaturatingFitPolicy(ConvergencePolicy):
    """
    Convergence from a saturating curve fit.

    Criteria:
    - Positive amplitude (a > 0)
    - Good fit (R² > r2_threshold)
    - Positive convergence rho
    - Flat tail (slope < slope_threshold)
    - Half-saturation K below k_threshold_ratio * Lmax
    """

    def __init__(self,
                 r2_threshold: float = 0.7,
                 slope_threshold: float = 1e-3,
                 k_threshold_ratio: float = 0.8):
        self.r2_threshold = r2_threshold
        self.slope_threshold = slope_threshold
        self.k_threshold_ratio = k_threshold_ratio

    def is_convergent(self, series: ConvergenceSeries) -> bool:
        fit = fit_ccm_curve(*series.finite())
        if fit is None:
            return False

        return (
            fit['a'] > 0 and
            fit['R2'] > self.r2_threshold and
            fit['rho_conv'] > 0 and
            fit['slope_tail'] < self.slope_threshold and
            fit['K'] < self.k_threshold_ratio * fit['Lmax']
        )


class RegressionSlopePolicy(ConvergencePolicy):
    """
    OLS slope test of rho against library size.

    Convergent when the fitted slope is positive and its one-sided p-value
    is below ``alpha``. Needs at least three finite sizes.
    """

    def __init__(self, alpha: float = 0.05):
        self.alpha = alpha

    def slope_test(self, series: ConvergenceSeries) -> Optional[Dict[str, float]]:
        lib_sizes, rho = series.finite()
        if len(rho) < 3 or np.ptp(rho) == 0:
            return None

        model = sm.OLS(rho, sm.add_constant(lib_sizes.astype(float))).fit()
        slope = float(model.params[1])
        p_two_sided = float(model.pvalues[1])
        p_one_sided = p_two_sided / 2 if slope > 0 else 1 - p_two_sided / 2

        return {'slope': slope, 'p_value': p_one_sided, 'R2': float(model.rsquared)}

    def is_convergent(self, series: ConvergenceSeries) -> bool:
        test = self.slope_test(series)
        if test is None or not np.isfinite(test['p_value']):
            return False
        return test['slope'] > 0 and test['p_value'] < self.alpha


def evaluate(per_size_scores: Mapping[int, Sequence[float]],
             policy: Optional[ConvergencePolicy] = None,
             null_scores: Optional[Mapping[int, Sequence[float]]] = None) -> Tuple[ConvergenceSeries, bool]:
    """
    Aggregate per-size scores and classify the trend.

    Parameters
    ----------
    per_size_scores : mapping of int -> sequence of float
        Correlations of every sampled library, keyed by library size
    policy : ConvergencePolicy or None
        Defaults to ``EndpointTrendPolicy()``
    null_scores : mapping of int -> sequence of float, optional
        Time-shifted baseline correlations, keyed like ``per_size_scores``

    Returns
    -------
    series : ConvergenceSeries
    convergent : bool
    """
    if policy is None:
        policy = EndpointTrendPolicy()

    series = aggregate_scores(per_size_scores, null_scores)
    return series, policy(series)
