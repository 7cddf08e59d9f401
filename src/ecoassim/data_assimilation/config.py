# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 ecoassim developers

"""
Data assimilation configuration.

Re-exports from the core config module for convenience.
"""

from ecoassim.core.config.models.assimilation_config import (
    EcoAssimConfig,
    ObservationConfig,
    ParticleFilterConfig,
    PriorConfig,
)

__all__ = [
    "EcoAssimConfig",
    "ObservationConfig",
    "ParticleFilterConfig",
    "PriorConfig",
]
