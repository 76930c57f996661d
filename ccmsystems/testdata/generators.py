"""
Test data generators with known ground truth for CCM validation.
"""

import numpy as np
import pandas as pd
from typing import Tuple, Optional


def make_coupled_logistic(n: int = 400,
                          rx: float = 3.7,
                          ry: float = 3.8,
                          beta_xy: float = 0.0,
                          beta_yx: float = 0.0,
                          x0: float = 0.4,
                          y0: float = 0.2,
                          transient: int = 100,
                          noise_level: float = 0.0,
                          seed: Optional[int] = None) -> Tuple[np.ndarray, np.ndarray]:
    """
    Two coupled logistic maps (Sugihara et al. 2012).

        x[t+1] = x[t] * (rx - rx*x[t] - beta_xy*y[t])
        y[t+1] = y[t] * (ry - ry*y[t] - beta_yx*x[t])

    ``beta_xy`` is the forcing of X by Y, ``beta_yx`` the forcing of Y by X.

    Parameters
    ----------
    n : int, default 400
        Number of time points returned
    rx, ry : float
        Growth rates (chaotic near 3.7-3.9)
    beta_xy, beta_yx : float, default 0
        Coupling strengths
    x0, y0 : float
        Initial conditions
    transient : int, default 100
        Initial iterations discarded
    noise_level : float, default 0
        Standard deviation of additive noise per step (values are clipped
        into (0, 1))
    seed : int or None
        Random seed, only used when ``noise_level > 0``

    Returns
    -------
    x, y : np.ndarray, shape (n,)
    """
    rng = np.random.default_rng(seed)
    total = n + transient
    x = np.zeros(total)
    y = np.zeros(total)
    x[0], y[0] = x0, y0

    for t in range(total - 1):
        x[t + 1] = x[t] * (rx - rx * x[t] - beta_xy * y[t])
        y[t + 1] = y[t] * (ry - ry * y[t] - beta_yx * x[t])
        if noise_level > 0:
            x[t + 1] += noise_level * rng.standard_normal()
            y[t + 1] += noise_level * rng.standard_normal()
            x[t + 1] = np.clip(x[t + 1], 1e-6, 1 - 1e-6)
            y[t + 1] = np.clip(y[t + 1], 1e-6, 1 - 1e-6)

    return x[transient:], y[transient:]


def make_random_walks(n: int = 400,
                      seed: Optional[int] = None) -> Tuple[np.ndarray, np.ndarray]:
    """Two statistically independent Gaussian random walks."""
    rng = np.random.default_rng(seed)
    steps = rng.standard_normal((2, n))
    return np.cumsum(steps[0]), np.cumsum(steps[1])


def make_independent_series(n: int = 400,
                            seed: Optional[int] = None) -> Tuple[np.ndarray, np.ndarray]:
    """Two independent white noise series."""
    rng = np.random.default_rng(seed)
    return rng.standard_normal(n), rng.standard_normal(n)


def make_independent_logistic(n: int = 400,
                              seed: Optional[int] = None) -> Tuple[np.ndarray, np.ndarray]:
    """
    Two uncoupled chaotic logistic maps with random initial conditions.
    """
    rng = np.random.default_rng(seed)
    x0, y0 = rng.uniform(0.1, 0.9, 2)
    return make_coupled_logistic(n, x0=x0, y0=y0)


def make_test_dataframe(n: int = 400,
                        seed: Optional[int] = None) -> pd.DataFrame:
    """
    Dataframe of series pairs with known causal structure.

    Columns (pairs share a prefix):
    - independent_X / independent_Y: white noise, no relationship
    - randomwalk_X / randomwalk_Y: independent random walks
    - uncoupled_X / uncoupled_Y: independent chaotic logistic maps
    - unidirectional_X / unidirectional_Y: Y -> X forcing
    - bidirectional_X / bidirectional_Y: X <-> Y forcing
    """
    rng = np.random.default_rng(seed)
    sub_seeds = rng.integers(0, 2**31 - 1, size=3)

    X_indep, Y_indep = make_independent_series(n, seed=sub_seeds[0])
    X_walk, Y_walk = make_random_walks(n, seed=sub_seeds[1])
    X_unc, Y_unc = make_independent_logistic(n, seed=sub_seeds[2])
    X_uni, Y_uni = make_coupled_logistic(n, beta_xy=0.1)
    X_bi, Y_bi = make_coupled_logistic(n, rx=3.8, ry=3.5, beta_xy=0.02, beta_yx=0.1)

    return pd.DataFrame({
        'time': np.arange(n),
        'independent_X': X_indep,
        'independent_Y': Y_indep,
        'randomwalk_X': X_walk,
        'randomwalk_Y': Y_walk,
        'uncoupled_X': X_unc,
        'uncoupled_Y': Y_unc,
        'unidirectional_X': X_uni,
        'unidirectional_Y': Y_uni,
        'bidirectional_X': X_bi,
        'bidirectional_Y': Y_bi,
    })
