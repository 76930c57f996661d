"""
Test data generation for CCM validation and demonstration.

This module provides synthetic time series with known ground truth
causal relationships.
"""

from .generators import (
    make_coupled_logistic,
    make_random_walks,
    make_independent_series,
    make_independent_logistic,
    make_test_dataframe,
)

__all__ = [
    'make_coupled_logistic',
    'make_random_walks',
    'make_independent_series',
    'make_independent_logistic',
    'make_test_dataframe',
]
