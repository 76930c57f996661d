"""
Preprocessing for CCM input series.

Unit-root (random-walk-like) series make nearby times nearby in the shadow
manifold, which inflates cross-map skill with library size regardless of
coupling. This module detects such series and differences them.
"""

from .stationarity import (
    adf_pvalue,
    is_stationary,
    difference,
    stationarize_pair,
)

__all__ = [
    'adf_pvalue',
    'is_stationary',
    'difference',
    'stationarize_pair',
]
