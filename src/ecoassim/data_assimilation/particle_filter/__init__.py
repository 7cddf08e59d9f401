# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 ecoassim developers

"""
Particle filters for LAI assimilation.
"""

from .non_resampling import NonResamplingParticleFilter, NonResamplingResult
from .resampling import ResamplingParticleFilter, ResamplingResult, multinomial_resample

__all__ = [
    "NonResamplingParticleFilter",
    "NonResamplingResult",
    "ResamplingParticleFilter",
    "ResamplingResult",
    "multinomial_resample",
]
