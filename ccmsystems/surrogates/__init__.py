"""
Surrogate time series generation and significance testing for CCM.

This module provides methods for generating null models that preserve
different statistical properties while destroying causal temporal structure.
"""

from .generators import (
    generate_random_surrogates,
    generate_fourier_surrogates,
    get_surrogate_generator,
)

from .testing import (
    empirical_p,
    test_significance,
)

__all__ = [
    # Generators
    'generate_random_surrogates',
    'generate_fourier_surrogates',
    'get_surrogate_generator',
    # Testing
    'empirical_p',
    'test_significance',
]
