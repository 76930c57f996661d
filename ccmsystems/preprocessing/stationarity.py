"""
Stationarity checks and differencing for CCM series pairs.
"""

import numpy as np
from statsmodels.tsa.stattools import adfuller
from typing import Optional, Tuple

# Below this length the ADF regression is not reliable; series are kept as is.
MIN_ADF_LENGTH = 20


def adf_pvalue(x: np.ndarray) -> float:
    """
    Augmented Dickey-Fuller p-value (H0: unit root).

    Parameters
    ----------
    x : np.ndarray
        Finite 1-D series

    Returns
    -------
    float
        MacKinnon p-value; small values indicate stationarity
    """
    return float(adfuller(np.asarray(x, dtype=float), autolag='AIC')[1])


def is_stationary(x: np.ndarray, alpha: float = 0.01) -> bool:
    """
    True if the ADF test rejects a unit root at level ``alpha``.

    Constant series and series shorter than ``MIN_ADF_LENGTH`` count as
    stationary (nothing to remove).
    """
    x = np.asarray(x, dtype=float)
    if len(x) < MIN_ADF_LENGTH or np.ptp(x) == 0:
        return True
    return adf_pvalue(x) < alpha


def difference(x: np.ndarray, order: int = 1) -> np.ndarray:
    """First (or higher order) differences, ``order`` values shorter."""
    return np.diff(np.asarray(x, dtype=float), n=order)


def stationarize_pair(x: np.ndarray,
                      y: np.ndarray,
                      difference_series: Optional[bool] = None,
                      alpha: float = 0.01) -> Tuple[np.ndarray, np.ndarray, bool]:
    """
    Difference both series when either has a unit root.

    Both series are treated alike so they stay aligned in time.

    Parameters
    ----------
    x, y : np.ndarray
        Equal-length finite series
    difference_series : bool or None
        True/False forces the choice; None decides with the ADF test
    alpha : float, default 0.01
        ADF significance level for the automatic choice

    Returns
    -------
    x, y : np.ndarray
        Series to analyse
    differenced : bool
        Whether differencing was applied
    """
    if difference_series is None:
        difference_series = not (is_stationary(x, alpha) and is_stationary(y, alpha))

    if not difference_series:
        return x, y, False

    return difference(x), difference(y), True
