# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 ecoassim developers

"""
Data assimilation for ecoassim.

Provides ensemble forecasting of the SSEM and particle filter
assimilation (non-resampling and resampling) of LAI observations.
"""

from .config import EcoAssimConfig, ObservationConfig, ParticleFilterConfig, PriorConfig
from .ensemble import Ensemble, RandomStreams, spawn_member_rngs, spawn_streams
from .forcing import Forcing, load_forcing
from .observations import (
    ObservationSeries,
    apply_quality_control,
    load_observations,
    n_windows,
    window_means,
)
from .particle_filter import (
    NonResamplingParticleFilter,
    NonResamplingResult,
    ResamplingParticleFilter,
    ResamplingResult,
    multinomial_resample,
)
from .priors import PriorSampler
from .simulator import ForwardSimulator, sanitize_trajectory
from .statistics import weighted_quantile

__all__ = [
    "EcoAssimConfig",
    "ObservationConfig",
    "ParticleFilterConfig",
    "PriorConfig",
    "Ensemble",
    "RandomStreams",
    "spawn_member_rngs",
    "spawn_streams",
    "Forcing",
    "load_forcing",
    "ObservationSeries",
    "apply_quality_control",
    "load_observations",
    "n_windows",
    "window_means",
    "NonResamplingParticleFilter",
    "NonResamplingResult",
    "ResamplingParticleFilter",
    "ResamplingResult",
    "multinomial_resample",
    "PriorSampler",
    "ForwardSimulator",
    "sanitize_trajectory",
    "weighted_quantile",
]
