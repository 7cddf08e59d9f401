"""
Simple State-space Ecosystem Model (SSEM) for ecoassim.

A three-pool (leaf, wood, soil) carbon-cycle model with light-use-efficiency
photosynthesis, fixed-fraction allocation, Q10 decomposition and stochastic
process error, vectorized over ensemble members.

Usage:
    from ecoassim.models.ssem import SSEMState, create_params, step

    params = create_params(3, falloc=(0.5, 0.25, 0.25), sla=15.0, alpha=0.02, ...)
    new_state, outputs = step(state, params, par=500.0, temp=20.0, rngs=rngs)
"""

from .model import (
    LAI_INDEX,
    N_VARIABLES,
    SCALAR_PARAMS,
    STATE_VARIABLES,
    TRAJECTORY_VARIABLES,
    SSEMParameters,
    SSEMState,
    allocation_routine,
    canopy_routine,
    create_params,
    decomposition_routine,
    leaf_area_index,
    step,
    turnover_routine,
    validate_params,
)

__all__ = [
    'LAI_INDEX',
    'N_VARIABLES',
    'SCALAR_PARAMS',
    'STATE_VARIABLES',
    'TRAJECTORY_VARIABLES',
    'SSEMParameters',
    'SSEMState',
    'allocation_routine',
    'canopy_routine',
    'create_params',
    'decomposition_routine',
    'leaf_area_index',
    'step',
    'turnover_routine',
    'validate_params',
]
