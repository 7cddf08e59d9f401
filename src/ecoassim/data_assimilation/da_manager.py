"""
Data Assimilation Manager.

Top-level orchestrator for the LAI particle filter workflow.
Coordinates input loading, prior sampling, the open-loop forecast,
both particle filters and output writing.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

import numpy as np
import pandas as pd

from ecoassim.core.exceptions import (
    ConfigurationError,
    DegenerateWeightsError,
    DimensionMismatchError,
)
from ecoassim.core.mixins import TimingMixin
from ecoassim.models.ssem import LAI_INDEX
from .config import EcoAssimConfig
from .diagnostics import crps, open_loop_comparison, parameter_summary, spread_error_ratio
from .ensemble import Ensemble, spawn_streams
from .forcing import Forcing, load_forcing
from .observations import (
    ObservationSeries,
    apply_quality_control,
    load_observations,
    n_windows,
    window_means,
)
from .output import DAOutputManager
from .particle_filter import (
    NonResamplingParticleFilter,
    NonResamplingResult,
    ResamplingParticleFilter,
    ResamplingResult,
)
from .priors import PriorSampler
from .simulator import ForwardSimulator


@dataclass
class AssimilationResults:
    """Everything produced by one assimilation run.

    Attributes:
        seed: Seed all random streams were spawned from.
        prior: Initial ensemble.
        open_loop: Open-loop trajectory (horizon, n_members, 12).
        observations: Observations used, one per window.
        non_resampling: Non-resampling filter result.
        resampling: Resampling filter result (None when disabled).
        diagnostics: Scalar verification metrics.
        parameter_summary: Per-snapshot parameter mean and std-dev from the
            resampling filter (None when disabled).
    """
    seed: int
    prior: Ensemble
    open_loop: np.ndarray
    observations: ObservationSeries
    non_resampling: NonResamplingResult
    resampling: Optional[ResamplingResult] = None
    diagnostics: Dict[str, float] = field(default_factory=dict)
    parameter_summary: Optional[pd.DataFrame] = None

    @property
    def horizon(self) -> int:
        return self.open_loop.shape[0]


class DataAssimilationManager(TimingMixin):
    """Orchestrates particle filter data assimilation of LAI.

    Workflow:
        1. Load forcing and observations, apply observation QC
        2. Spawn member, resampling and prior streams from one seed
        3. Draw the prior ensemble
        4. Open-loop forecast over the horizon
        5. Non-resampling filter on the window-mean open-loop LAI
        6. Resampling filter from the same prior and member streams
        7. Diagnostics and NetCDF output

    Args:
        config: Workflow configuration.
        logger: Logger to use (default: this module's logger).
    """

    def __init__(self, config: EcoAssimConfig, logger: Optional[logging.Logger] = None):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.experiment_id = config.experiment_id
        self.output_dir = Path(config.output_dir)

    def load_inputs(self) -> Tuple[Forcing, ObservationSeries]:
        """Load forcing and quality-controlled observations from the configured paths."""
        if not self.config.forcing_path:
            raise ConfigurationError("FORCING_PATH is not set")
        if not self.config.observations_path:
            raise ConfigurationError("OBSERVATIONS_PATH is not set")

        obs_cfg = self.config.observations
        forcing = load_forcing(
            Path(self.config.forcing_path),
            par_column=self.config.par_column,
            temp_column=self.config.temp_column,
        )
        raw = load_observations(
            Path(self.config.observations_path),
            lai_column=obs_cfg.lai_column,
            sd_column=obs_cfg.sd_column,
            qc_column=obs_cfg.qc_column,
        )
        observations = apply_quality_control(raw, obs_cfg.qc_threshold, obs_cfg.sd_floor)
        return forcing, observations

    def _resolve_seed(self) -> int:
        seed = self.config.particle_filter.seed
        if seed is None:
            seed = int(np.random.SeedSequence().entropy % (2 ** 63))
            self.logger.info("No seed configured, using %d", seed)
        return seed

    def assimilate(
        self,
        forcing: Forcing,
        observations: ObservationSeries,
        prior: Optional[Ensemble] = None,
    ) -> AssimilationResults:
        """Run the open-loop forecast and both particle filters.

        Args:
            forcing: Forcing record.
            observations: Quality-controlled observations, at least one per window.
            prior: Initial ensemble (default: drawn from the configured priors).

        Returns:
            AssimilationResults.

        Raises:
            DimensionMismatchError: Forcing or observations too short.
            DegenerateWeightsError: The resampling filter lost every member.
        """
        pf_cfg = self.config.particle_filter
        window = self.config.observations.window_steps

        horizon = pf_cfg.horizon or len(forcing)
        if horizon > len(forcing):
            raise DimensionMismatchError(
                f"PF_HORIZON of {horizon} steps exceeds the {len(forcing)} forcing steps"
            )
        n_win = n_windows(horizon, window)
        observations = observations.slice(n_win)

        n_members = prior.n_members if prior is not None else pf_cfg.ensemble_size
        seed = self._resolve_seed()
        streams = spawn_streams(seed, n_members)

        self.logger.info(
            "Assimilating %d observation windows (%d available) over %d steps with %d members",
            n_win, observations.n_available(), horizon, n_members,
        )

        if prior is None:
            prior = PriorSampler(self.config.priors, streams.priors).sample(n_members)

        with self.time_limit("Open-loop forecast"):
            simulator = ForwardSimulator(
                prior, forcing, timestep_seconds=pf_cfg.timestep_seconds, rngs=streams.members,
            )
            open_loop = simulator.run(horizon)

        with self.time_limit("Non-resampling particle filter"):
            simulated_lai = window_means(open_loop[:, :, LAI_INDEX], window)
            non_resampling = NonResamplingParticleFilter(pf_cfg.quantiles).analyze(
                simulated_lai, observations
            )

        resampling = None
        if pf_cfg.resample:
            rpf = ResamplingParticleFilter(
                window=window, timestep_seconds=pf_cfg.timestep_seconds, seed=seed,
            )
            with self.time_limit("Resampling particle filter"):
                try:
                    resampling = rpf.run(prior, forcing, observations, horizon=horizon)
                except DegenerateWeightsError as e:
                    self.logger.error(
                        "Resampling filter degenerated at window %s: %s", e.window, e
                    )
                    raise

        results = AssimilationResults(
            seed=seed,
            prior=prior,
            open_loop=open_loop,
            observations=observations,
            non_resampling=non_resampling,
            resampling=resampling,
        )
        results.diagnostics = self._diagnostics(results)
        if resampling is not None:
            results.parameter_summary = parameter_summary(resampling.parameter_history)
        return results

    def _diagnostics(self, results: AssimilationResults) -> Dict[str, float]:
        """Verification of the open-loop and reweighted LAI against observations."""
        observed = np.where(results.observations.is_missing, np.nan, results.observations.lai)
        simulated = results.non_resampling.simulated_lai

        median_index = int(np.argmin(np.abs(np.asarray(results.non_resampling.probs) - 0.5)))
        weighted_median = results.non_resampling.quantiles[:, median_index]

        metrics = {
            'open_loop_crps': crps(simulated, observed),
            'open_loop_spread_error_ratio': spread_error_ratio(simulated, observed),
        }
        metrics.update(open_loop_comparison(weighted_median, simulated.mean(axis=1), observed))

        for name, value in metrics.items():
            self.logger.debug("Diagnostic %s = %.4f", name, value)
        self.logger.info(
            "LAI RMSE: open loop %.3f, reweighted %.3f",
            metrics['ol_rmse'], metrics['da_rmse'],
        )
        return metrics

    def write_output(self, results: AssimilationResults) -> Path:
        """Write results to NetCDF (and the parameter summary to CSV).

        Returns:
            Path to the NetCDF file.
        """
        output_dir = self.output_dir / self.experiment_id / 'data_assimilation'
        output_dir.mkdir(parents=True, exist_ok=True)

        output_path = output_dir / f"{self.experiment_id}_pf_results.nc"
        writer = DAOutputManager()
        writer.write(
            output_path=output_path,
            open_loop=results.open_loop,
            observations=results.observations,
            window=self.config.observations.window_steps,
            non_resampling=results.non_resampling,
            resampling=results.resampling,
            attrs={
                'experiment_id': self.experiment_id,
                'seed': str(results.seed),
                'timestep_seconds': float(self.config.particle_filter.timestep_seconds),
            },
        )

        if results.parameter_summary is not None:
            summary_path = output_dir / f"{self.experiment_id}_parameter_summary.csv"
            results.parameter_summary.to_csv(summary_path)
            self.logger.info("Parameter summary written to %s", summary_path)

        self.logger.info("DA results written to %s", output_path)
        return output_path

    def run_data_assimilation(self) -> Path:
        """Execute the full data assimilation workflow.

        Returns:
            Path to the output NetCDF file.
        """
        self.logger.info("Starting data assimilation workflow: %s", self.experiment_id)

        with self.time_limit("Loading inputs"):
            forcing, observations = self.load_inputs()

        results = self.assimilate(forcing, observations)
        output_path = self.write_output(results)

        self.logger.info(
            "Data assimilation completed: %d timesteps, %d windows",
            results.horizon, len(results.observations),
        )
        return output_path
