# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 ecoassim developers

"""
Resampling (bootstrap) particle filter.

The filter alternates two phases:

FORECASTING
    Every timestep, each member is advanced by the SSEM and its output row
    is appended to the trajectory.

ANALYZING
    After every ``window`` steps the window-mean simulated LAI of each
    member is compared with that window's observation. With an
    observation, members are drawn with replacement in proportion to
    their Gaussian likelihood and state and parameters are replaced
    together. Without one the ensemble is left alone. A parameter
    snapshot is recorded either way.

A trailing partial window is forecast but never analysed.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np

from ecoassim.core.constants import ModelDefaults
from ecoassim.core.exceptions import (
    DegenerateWeightsError,
    DimensionMismatchError,
    ValidationError,
)
from ecoassim.models.ssem import LAI_INDEX, N_VARIABLES, SSEMParameters
from ..diagnostics import effective_sample_size
from ..ensemble import Ensemble, spawn_streams
from ..forcing import Forcing
from ..observations import ObservationSeries
from ..simulator import ForwardSimulator, sanitize_trajectory
from ..statistics import gaussian_likelihood

logger = logging.getLogger(__name__)


def multinomial_resample(weights: np.ndarray, rng: np.random.Generator) -> np.ndarray:
    """Draw ``len(weights)`` member indices with replacement.

    Args:
        weights: Non-negative, not necessarily normalized, weights.
        rng: Generator for the draw.

    Returns:
        Integer index array; member i of the resampled ensemble is
        member ``indices[i]`` of the current one.
    """
    weights = np.asarray(weights, dtype=np.float64)
    if weights.ndim != 1 or weights.size == 0:
        raise ValidationError(f"Weights must be a non-empty 1-D array, got shape {weights.shape}")
    if np.any(weights < 0):
        raise ValidationError("Resampling weights must be non-negative")

    total = weights.sum()
    if not np.isfinite(total) or total <= np.finfo(float).tiny:
        raise DegenerateWeightsError(f"Resampling weights sum to {total}")

    n = weights.size
    return rng.choice(n, size=n, replace=True, p=weights / total)


@dataclass
class ResamplingResult:
    """Output of a resampling filter run.

    Attributes:
        trajectory: Output rows, shape (horizon, n_members, 12), non-finite
            values replaced by 0.
        ensemble: Ensemble after the last timestep.
        parameter_history: Parameter snapshots, the prior first and then
            one per analysed window.
        resampled: Whether each analysed window resampled.
        analysis_steps: Number of completed timesteps at each analysis.
        effective_sizes: Effective sample size of each analysis
            (NaN where the observation was missing).
    """
    trajectory: np.ndarray
    ensemble: Ensemble
    parameter_history: List[SSEMParameters] = field(default_factory=list)
    resampled: List[bool] = field(default_factory=list)
    analysis_steps: List[int] = field(default_factory=list)
    effective_sizes: List[float] = field(default_factory=list)

    @property
    def n_analyses(self) -> int:
        return len(self.analysis_steps)


class ResamplingParticleFilter:
    """Bootstrap particle filter over the SSEM.

    Args:
        window: Simulation steps per observation window.
        timestep_seconds: Model timestep length.
        seed: Seed for member and resampling streams (used for any stream
            not passed explicitly).
        member_rngs: Per-member process-error generators.
        resample_rng: Generator for the multinomial draws.
    """

    def __init__(
        self,
        window: int = ModelDefaults.OBS_WINDOW_STEPS,
        timestep_seconds: float = ModelDefaults.TIMESTEP_SECONDS,
        seed: Optional[int] = None,
        member_rngs: Optional[Sequence[np.random.Generator]] = None,
        resample_rng: Optional[np.random.Generator] = None,
    ):
        if window < 1:
            raise ValidationError(f"window must be a positive number of timesteps, got {window}")
        self.window = int(window)
        self.timestep_seconds = timestep_seconds
        self.seed = seed
        self.member_rngs = None if member_rngs is None else list(member_rngs)
        self.resample_rng = resample_rng
        # Streams of the current run
        self._simulator: Optional[ForwardSimulator] = None
        self._resample_rng: Optional[np.random.Generator] = None

    @property
    def ensemble(self) -> Optional[Ensemble]:
        """Ensemble currently held by the filter (None before ``run``)."""
        return None if self._simulator is None else self._simulator.ensemble

    def _streams(self, n_members: int):
        streams = spawn_streams(self.seed, n_members)
        members = streams.members if self.member_rngs is None else self.member_rngs
        resample = streams.resample if self.resample_rng is None else self.resample_rng
        return members, resample

    def run(
        self,
        ensemble: Ensemble,
        forcing: Forcing,
        observations: ObservationSeries,
        horizon: Optional[int] = None,
    ) -> ResamplingResult:
        """Forecast and analyse through ``horizon`` timesteps.

        Args:
            ensemble: Prior ensemble (not modified).
            forcing: Forcing covering at least ``horizon`` steps.
            observations: At least one observation per complete window.
            horizon: Number of timesteps (default: the full forcing record).

        Returns:
            ResamplingResult.

        Raises:
            DimensionMismatchError: Forcing or observations too short.
            DegenerateWeightsError: Every member has zero likelihood at some
                window; ``self.ensemble`` then holds the pre-analysis ensemble.
        """
        if horizon is None:
            horizon = len(forcing)
        if horizon < 1:
            raise ValidationError(f"horizon must be at least 1, got {horizon}")
        if horizon > len(forcing):
            raise DimensionMismatchError(
                f"Horizon of {horizon} steps exceeds the {len(forcing)} forcing steps"
            )

        n_complete = horizon // self.window
        if len(observations) < n_complete:
            raise DimensionMismatchError(
                f"{n_complete} complete windows but only {len(observations)} observations"
            )

        member_rngs, resample_rng = self._streams(ensemble.n_members)
        self._simulator = ForwardSimulator(
            ensemble, forcing, timestep_seconds=self.timestep_seconds, rngs=member_rngs,
        )
        self._resample_rng = resample_rng

        result = ResamplingResult(
            trajectory=np.empty((horizon, ensemble.n_members, N_VARIABLES)),
            ensemble=self._simulator.ensemble,
            parameter_history=[self._simulator.ensemble.params.copy()],
        )

        for t in range(horizon):
            result.trajectory[t] = self._simulator.step()

            if (t + 1) % self.window == 0:
                w = (t + 1) // self.window - 1
                window_lai = result.trajectory[t + 1 - self.window:t + 1, :, LAI_INDEX]
                resampled, ess = self.analyze(
                    w, window_lai, observations.lai[w], observations.lai_sd[w],
                    missing=bool(observations.is_missing[w]),
                )
                result.resampled.append(resampled)
                result.effective_sizes.append(ess)
                result.analysis_steps.append(t + 1)
                result.parameter_history.append(self._simulator.ensemble.params.copy())

        result.trajectory = sanitize_trajectory(result.trajectory)
        result.ensemble = self._simulator.ensemble
        logger.info(
            "Resampling filter: %d steps, %d analyses, %d resampling events",
            horizon, result.n_analyses, sum(result.resampled),
        )
        return result

    def analyze(
        self,
        window_index: int,
        window_lai: np.ndarray,
        obs_lai: float,
        obs_sd: float,
        missing: bool = False,
    ):
        """Resample the held ensemble against one window's observation.

        Args:
            window_index: Index of the completed window.
            window_lai: Simulated LAI over the window, shape (window, n_members).
            obs_lai: Observed LAI.
            obs_sd: Observation std-dev.
            missing: True if the window has no usable observation.

        Returns:
            Tuple of (resampled, effective sample size).
        """
        if self._simulator is None:
            raise ValidationError("analyze() requires an ensemble; call run() first")
        if missing:
            logger.debug("Window %d: no observation, ensemble kept", window_index)
            return False, float('nan')

        lai_mean = np.asarray(window_lai, dtype=np.float64).mean(axis=0)
        weights = gaussian_likelihood(obs_lai, lai_mean, obs_sd)
        weights = np.where(np.isfinite(weights), weights, 0.0)

        total = weights.sum()
        if not np.isfinite(total) or total <= np.finfo(float).tiny:
            logger.error(
                "Window %d: all %d members have zero likelihood (observed LAI %.3f)",
                window_index, weights.size, obs_lai,
            )
            raise DegenerateWeightsError(
                f"All resampling weights are zero at window {window_index}",
                window=window_index,
            )

        ess = effective_sample_size(weights)
        indices = multinomial_resample(weights, self._resample_rng)
        self._simulator.ensemble = self._simulator.ensemble.take(indices)

        logger.debug(
            "Window %d: resampled, ESS %.1f, %d unique members",
            window_index, ess, len(np.unique(indices)),
        )
        return True, ess
