"""Common utilities and core system components."""

from .constants import UnitConversion, ModelDefaults, FLUX_TO_POOL_DEFAULT
from .exceptions import (
    EcoAssimError,
    ConfigurationError,
    DataAcquisitionError,
    ValidationError,
    DimensionMismatchError,
    DegenerateWeightsError,
)
from .mixins import TimingMixin

__all__ = [
    'UnitConversion',
    'ModelDefaults',
    'FLUX_TO_POOL_DEFAULT',
    'EcoAssimError',
    'ConfigurationError',
    'DataAcquisitionError',
    'ValidationError',
    'DimensionMismatchError',
    'DegenerateWeightsError',
    'TimingMixin',
]
