"""
Configuration models for ecoassim.

All models are immutable (frozen=True) and accept either their field
names or upper-case aliases (``PF_ENSEMBLE_SIZE``).
"""

from .assimilation_config import (
    EcoAssimConfig,
    ObservationConfig,
    ParticleFilterConfig,
    PriorConfig,
)
from .base import FROZEN_CONFIG

__all__ = [
    'FROZEN_CONFIG',
    'EcoAssimConfig',
    'ObservationConfig',
    'ParticleFilterConfig',
    'PriorConfig',
]
