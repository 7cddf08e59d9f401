"""Configuration models and loading for ecoassim."""

from .config_loader import load_config
from .models import (
    EcoAssimConfig,
    ObservationConfig,
    ParticleFilterConfig,
    PriorConfig,
)

__all__ = [
    'load_config',
    'EcoAssimConfig',
    'ObservationConfig',
    'ParticleFilterConfig',
    'PriorConfig',
]
