# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 ecoassim developers

"""
Forward (open-loop) ensemble simulation.

The ForwardSimulator owns one Ensemble and advances it through the
forcing record one timestep at a time. It never looks at observations;
the resampling particle filter drives the same object and swaps in a
resampled ensemble between steps.
"""

import logging
from typing import List, Optional, Sequence

import numpy as np

from ecoassim.core.constants import ModelDefaults, UnitConversion
from ecoassim.core.exceptions import DimensionMismatchError, ValidationError
from ecoassim.models.ssem import N_VARIABLES, step as ssem_step
from .ensemble import Ensemble, spawn_member_rngs
from .forcing import Forcing

logger = logging.getLogger(__name__)


def sanitize_trajectory(trajectory: np.ndarray) -> np.ndarray:
    """Replace NaN and infinite values with 0 in a copy of the trajectory."""
    trajectory = np.asarray(trajectory, dtype=np.float64)
    n_bad = int(np.sum(~np.isfinite(trajectory)))
    if n_bad:
        logger.warning("Replacing %d non-finite trajectory values with 0", n_bad)
    return np.where(np.isfinite(trajectory), trajectory, 0.0)


class ForwardSimulator:
    """Ensemble forward simulator for the SSEM.

    Args:
        ensemble: Initial ensemble (copied; the caller's object is not modified).
        forcing: Forcing record; must cover every step that will be taken.
        timestep_seconds: Model timestep length, sets the flux conversion factor.
        seed: Seed for the per-member generators (ignored if ``rngs`` is given).
        rngs: Explicit per-member generators.
    """

    def __init__(
        self,
        ensemble: Ensemble,
        forcing: Forcing,
        timestep_seconds: float = ModelDefaults.TIMESTEP_SECONDS,
        seed: Optional[int] = None,
        rngs: Optional[Sequence[np.random.Generator]] = None,
    ):
        if timestep_seconds <= 0:
            raise ValidationError(f"timestep_seconds must be positive, got {timestep_seconds}")

        self.ensemble = ensemble.copy()
        self.forcing = forcing
        self.timestep_seconds = timestep_seconds
        self.k = UnitConversion.flux_to_pool(timestep_seconds)

        if rngs is None:
            rngs = spawn_member_rngs(seed, ensemble.n_members)
        if len(rngs) != ensemble.n_members:
            raise DimensionMismatchError(
                f"Got {len(rngs)} member generators for {ensemble.n_members} members"
            )
        self.rngs: List[np.random.Generator] = list(rngs)
        self.current_step = 0

    @property
    def n_members(self) -> int:
        return self.ensemble.n_members

    def step(self) -> np.ndarray:
        """Advance every member one timestep.

        Returns:
            Output row of shape (n_members, 12), raw (not sanitized).
        """
        t = self.current_step
        if t >= len(self.forcing):
            raise DimensionMismatchError(
                f"Forcing has {len(self.forcing)} timesteps; cannot simulate step {t}"
            )

        new_state, outputs = ssem_step(
            self.ensemble.state,
            self.ensemble.params,
            self.forcing.par[t],
            self.forcing.temp[t],
            self.rngs,
            self.k,
        )
        self.ensemble = self.ensemble.with_state(new_state)
        self.current_step = t + 1
        return outputs

    def run(self, horizon: Optional[int] = None) -> np.ndarray:
        """Simulate ``horizon`` timesteps from the current position.

        Args:
            horizon: Number of timesteps (default: the rest of the forcing record).

        Returns:
            Trajectory of shape (horizon, n_members, 12) with non-finite
            values replaced by 0.
        """
        remaining = len(self.forcing) - self.current_step
        if horizon is None:
            horizon = remaining
        if horizon < 1:
            raise ValidationError(f"horizon must be at least 1, got {horizon}")
        if horizon > remaining:
            raise DimensionMismatchError(
                f"Horizon of {horizon} steps exceeds the {remaining} remaining forcing steps"
            )

        trajectory = np.empty((horizon, self.n_members, N_VARIABLES))
        for i in range(horizon):
            trajectory[i] = self.step()

        logger.info(
            "Forward simulation: %d steps, %d members", horizon, self.n_members
        )
        return sanitize_trajectory(trajectory)
