"""
Statistical significance testing using surrogate time series.

This module provides functions for computing empirical p-values and
significance summaries from surrogate distributions.
"""

import numpy as np
from typing import Literal


def empirical_p(observed: float,
                surrogates: np.ndarray,
                tail: Literal["greater", "less", "two-sided"] = "greater") -> float:
    """
    Calculate empirical p-value from surrogate distribution.

    Parameters
    ----------
    observed : float
        Observed test statistic
    surrogates : np.ndarray
        Array of surrogate test statistics. NaN entries are ignored.
    tail : {'greater', 'less', 'two-sided'}, default 'greater'
        Type of test:
        - 'greater': Test if observed > surrogates (causal signal)
        - 'less': Test if observed < surrogates
        - 'two-sided': Test if observed differs from surrogates

    Returns
    -------
    float
        Empirical p-value, NaN if ``observed`` is NaN or no surrogate is finite

    Notes
    -----
    Uses +1 trick: p = (k + 1) / (n + 1) to avoid p=0
    """
    surrogates = np.asarray(surrogates, dtype=float)
    surrogates = surrogates[np.isfinite(surrogates)]
    n = len(surrogates)

    if n == 0 or not np.isfinite(observed):
        return np.nan

    if tail == "greater":
        k = np.sum(surrogates >= observed)
    elif tail == "less":
        k = np.sum(surrogates <= observed)
    elif tail == "two-sided":
        # Distance from median, two-sided
        med = np.median(surrogates)
        k = np.sum(np.abs(surrogates - med) >= np.abs(observed - med))
    else:
        raise ValueError("tail must be 'greater', 'less', or 'two-sided'")

    # +1 trick to avoid p=0
    return float((k + 1) / (n + 1))


def test_significance(observed: float,
                      surrogates: np.ndarray,
                      alpha: float = 0.05,
                      tail: str = "greater") -> dict:
    """
    Test significance of observed statistic against surrogates.

    Parameters
    ----------
    observed : float
        Observed test statistic
    surrogates : np.ndarray
        Surrogate distribution
    alpha : float, default 0.05
        Significance level
    tail : str, default 'greater'
        Type of test

    Returns
    -------
    dict
        Results with p-value, significance, and summary statistics
    """
    surrogates = np.asarray(surrogates, dtype=float)
    finite = surrogates[np.isfinite(surrogates)]
    p_value = empirical_p(observed, finite, tail=tail)

    if len(finite) == 0:
        stats = dict.fromkeys(['surr_mean', 'surr_std', 'surr_median', 'surr_95p', 'surr_99p'], np.nan)
    else:
        stats = {
            'surr_mean': float(np.mean(finite)),
            'surr_std': float(np.std(finite)),
            'surr_median': float(np.median(finite)),
            'surr_95p': float(np.percentile(finite, 95)),
            'surr_99p': float(np.percentile(finite, 99)),
        }

    return {
        'observed': observed,
        'p_value': p_value,
        'significant': bool(p_value < alpha) if np.isfinite(p_value) else False,
        'alpha': alpha,
        'n_surrogates': len(finite),
        **stats,
    }

