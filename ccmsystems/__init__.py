"""
CCMsystems: Convergent Cross Mapping for pairs of time series.

This package provides tools for:
- Unit-root detection and differencing of input series
- Shadow manifold reconstruction by time-delay embedding
- Convergent Cross Mapping (CCM) in both directions
- Convergence classification with pluggable policies
- Surrogate-based significance testing
"""

__version__ = "0.1.0"

# Import main modules for convenient access
from . import ccm
from . import surrogates
from . import preprocessing
from . import errors

# Import key functions for direct access
from .ccm import (
    CCMOptions,
    create_session,
    run_directional,
    run_bidirectional,
    run_ccm,
    embed,
    sample_libraries,
    cross_map,
    score,
    evaluate,
    EndpointTrendPolicy,
)

from .errors import (
    CCMError,
    InsufficientDataError,
    LengthMismatchError,
    InvalidLibrarySizeError,
    InsufficientNeighborsError,
    InvalidParameterError,
    InvalidSeriesError,
)

__all__ = [
    'ccm',
    'surrogates',
    'preprocessing',
    'errors',
    # CCM
    'CCMOptions',
    'create_session',
    'run_directional',
    'run_bidirectional',
    'run_ccm',
    'embed',
    'sample_libraries',
    'cross_map',
    'score',
    'evaluate',
    'EndpointTrendPolicy',
    # Errors
    'CCMError',
    'InsufficientDataError',
    'LengthMismatchError',
    'InvalidLibrarySizeError',
    'InsufficientNeighborsError',
    'InvalidParameterError',
    'InvalidSeriesError',
]
