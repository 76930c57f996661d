"""
Result containers for CCM runs.

Results are plain dataclasses handed to rendering code; ``to_frame`` gives
the library-size table as a pandas DataFrame.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

import numpy as np
import pandas as pd

from .convergence import ConvergenceSeries


@dataclass
class DirectionalResult:
    """
    CCM result for one causal direction, ``cause -> effect``.

    The shadow manifold of the effect (``library_variable``) is used to
    cross map the cause (``target_variable``): if the cause forces the
    effect, the effect's dynamics carry a signature of the cause that can be
    recovered, and recovery improves with library size.

    Attributes
    ----------
    cause, effect : str
        Series names, 'x' or 'y'
    results : ConvergenceSeries
        Averaged rho per library size
    convergent : bool
        Verdict of the convergence policy
    skipped_sizes : dict of int -> str
        Library sizes that could not be evaluated, with the reason
    significance : dict or None
        Surrogate test of the largest-library rho, if requested and convergent
    """

    cause: str
    effect: str
    results: ConvergenceSeries
    convergent: bool
    skipped_sizes: Dict[int, str] = field(default_factory=dict)
    significance: Optional[dict] = None

    @property
    def library_variable(self) -> str:
        return self.effect

    @property
    def target_variable(self) -> str:
        return self.cause

    @property
    def label(self) -> str:
        return f"{self.cause}_causes_{self.effect}"

    @property
    def rho(self) -> float:
        """Averaged rho at the largest evaluated library size."""
        if len(self.results) == 0:
            return np.nan
        return float(self.results.rho[-1])

    @property
    def rho_gain(self) -> float:
        """Finite rho at the largest size minus finite rho at the smallest."""
        _, rho = self.results.finite()
        if len(rho) < 2:
            return np.nan
        return float(rho[-1] - rho[0])

    @property
    def excess_gain(self) -> float:
        """Like ``rho_gain``, on the skill above the time-shifted baseline."""
        excess = self.results.excess()
        excess = excess[np.isfinite(excess)]
        if len(excess) < 2:
            return np.nan
        return float(excess[-1] - excess[0])

    def to_frame(self) -> pd.DataFrame:
        frame = self.results.to_frame()
        frame.insert(0, 'direction', self.label)
        frame.attrs['library'] = self.library_variable
        frame.attrs['target'] = self.target_variable
        frame.attrs['convergent'] = self.convergent
        frame.attrs['skipped_sizes'] = dict(self.skipped_sizes)
        return frame

    def summary(self) -> dict:
        summary = {
            'direction': self.label,
            'lib': self.library_variable,
            'target': self.target_variable,
            'ccm_rho': self.rho,
            'rho_gain': self.rho_gain,
            'excess_gain': self.excess_gain,
            'convergence': self.convergent,
            'n_lib_sizes': len(self.results),
            'n_skipped': len(self.skipped_sizes),
        }
        if self.significance is not None:
            summary['p_rho'] = self.significance['p_value']
            summary['ccm_norm'] = self.rho - self.significance['surr_mean']
        return summary


@dataclass
class BidirectionalResult:
    """CCM results for both directions between series x and y."""

    x_causes_y: DirectionalResult
    y_causes_x: DirectionalResult

    def __iter__(self):
        return iter((self.x_causes_y, self.y_causes_x))

    def to_frame(self) -> pd.DataFrame:
        """Long-format table, one row per (direction, library size)."""
        return pd.concat([d.to_frame() for d in self], ignore_index=True)

    def summary(self) -> pd.DataFrame:
        """One row per direction with rho, gain and verdict."""
        return pd.DataFrame([d.summary() for d in self])
