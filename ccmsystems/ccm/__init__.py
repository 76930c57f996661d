"""
Convergent Cross Mapping (CCM) for causal inference.

This module provides the CCM engine for a pair of series:
- Time-delay embedding into shadow manifolds
- Random library sampling for convergence testing
- Nearest-neighbor cross mapping and correlation scoring
- Pluggable convergence policies
- Bidirectional orchestration with optional surrogate testing
"""

from .embedding import (
    Manifold,
    embed,
)

from .library import (
    sample_libraries,
    default_library_sizes,
)

from .core import (
    find_neighbors,
    neighbor_weights,
    cross_map,
    score,
    compute_xmap,
    compute_xmap_baseline,
)

from .convergence import (
    ConvergenceSeries,
    ConvergencePolicy,
    EndpointTrendPolicy,
    SaturatingFitPolicy,
    RegressionSlopePolicy,
    aggregate_scores,
    fit_ccm_curve,
    evaluate,
)

from .parameters import CCMOptions

from .results import (
    DirectionalResult,
    BidirectionalResult,
)

from .workflow import (
    CCMSession,
    create_session,
    run_directional,
    run_bidirectional,
    run_ccm,
)

__all__ = [
    # Embedding and libraries
    'Manifold',
    'embed',
    'sample_libraries',
    'default_library_sizes',
    # Core functions
    'find_neighbors',
    'neighbor_weights',
    'cross_map',
    'score',
    'compute_xmap',
    'compute_xmap_baseline',
    # Convergence
    'ConvergenceSeries',
    'ConvergencePolicy',
    'EndpointTrendPolicy',
    'SaturatingFitPolicy',
    'RegressionSlopePolicy',
    'aggregate_scores',
    'fit_ccm_curve',
    'evaluate',
    # Workflow
    'CCMOptions',
    'CCMSession',
    'DirectionalResult',
    'BidirectionalResult',
    'create_session',
    'run_directional',
    'run_bidirectional',
    'run_ccm',
]
