"""Tests for the data assimilation workflow manager."""

import logging

import numpy as np
import pandas as pd
import pytest
import xarray as xr

from ecoassim.core.config import load_config
from ecoassim.core.exceptions import (
    ConfigurationError,
    DegenerateWeightsError,
    DimensionMismatchError,
)
from ecoassim.data_assimilation.da_manager import AssimilationResults, DataAssimilationManager
from ecoassim.data_assimilation.observations import ObservationSeries
from ecoassim.data_assimilation.simulator import ForwardSimulator


def _config(tmp_path, **overrides):
    values = {
        'EXPERIMENT_ID': 'unit',
        'OUTPUT_DIR': str(tmp_path / 'out'),
        'PF_ENSEMBLE_SIZE': 12,
        'PF_SEED': 2024,
        'OBS_WINDOW_STEPS': 24,
    }
    values.update(overrides)
    return load_config(overrides=values, use_env=False)


class TestAssimilate:

    def test_full_run(self, tmp_path, diurnal_forcing):
        obs = ObservationSeries(lai=[4.0, np.nan, 4.1, 4.2], lai_sd=[0.66] * 4)
        manager = DataAssimilationManager(_config(tmp_path))
        results = manager.assimilate(diurnal_forcing, obs)

        assert isinstance(results, AssimilationResults)
        assert results.seed == 2024
        assert results.horizon == 96
        assert results.open_loop.shape == (96, 12, 12)
        assert results.non_resampling.quantiles.shape == (4, 3)
        assert results.resampling.resampled == [True, False, True, True]
        assert isinstance(results.parameter_summary, pd.DataFrame)
        assert len(results.parameter_summary) == 5
        assert 'open_loop_crps' in results.diagnostics

    def test_seeded_runs_reproducible(self, tmp_path, diurnal_forcing):
        obs = ObservationSeries(lai=[4.0, 4.0, 4.1, 4.2], lai_sd=[0.66] * 4)
        a = DataAssimilationManager(_config(tmp_path)).assimilate(diurnal_forcing, obs)
        b = DataAssimilationManager(_config(tmp_path)).assimilate(diurnal_forcing, obs)
        np.testing.assert_array_equal(a.open_loop, b.open_loop)
        np.testing.assert_array_equal(a.resampling.trajectory, b.resampling.trajectory)

    def test_missing_observations_resampling_matches_open_loop(self, tmp_path, diurnal_forcing):
        obs = ObservationSeries(lai=np.full(4, np.nan), lai_sd=np.full(4, 0.66))
        results = DataAssimilationManager(_config(tmp_path)).assimilate(diurnal_forcing, obs)
        np.testing.assert_array_equal(results.resampling.trajectory, results.open_loop)

    def test_caller_supplied_prior(self, tmp_path, diurnal_forcing, noisy_ensemble):
        obs = ObservationSeries(lai=np.full(4, np.nan), lai_sd=np.full(4, 0.66))
        results = DataAssimilationManager(_config(tmp_path)).assimilate(
            diurnal_forcing, obs, prior=noisy_ensemble,
        )
        expected = ForwardSimulator(noisy_ensemble, diurnal_forcing, seed=2024).run()
        np.testing.assert_array_equal(results.open_loop, expected)

    def test_resampling_disabled(self, tmp_path, diurnal_forcing):
        obs = ObservationSeries(lai=[4.0, 4.0, 4.1, 4.2], lai_sd=[0.66] * 4)
        results = DataAssimilationManager(_config(tmp_path, PF_RESAMPLE=False)).assimilate(diurnal_forcing, obs)
        assert results.resampling is None
        assert results.parameter_summary is None

    def test_horizon_limits_windows(self, tmp_path, diurnal_forcing):
        obs = ObservationSeries(lai=[4.0, 4.0, 4.1, 4.2], lai_sd=[0.66] * 4)
        results = DataAssimilationManager(_config(tmp_path, PF_HORIZON=50)).assimilate(diurnal_forcing, obs)
        assert results.horizon == 50
        assert len(results.observations) == 3
        assert results.resampling.analysis_steps == [24, 48]

    def test_horizon_longer_than_forcing(self, tmp_path, diurnal_forcing):
        obs = ObservationSeries(lai=np.full(5, np.nan), lai_sd=np.full(5, 0.66))
        with pytest.raises(DimensionMismatchError):
            DataAssimilationManager(_config(tmp_path, PF_HORIZON=200)).assimilate(diurnal_forcing, obs)

    def test_too_few_observations(self, tmp_path, diurnal_forcing):
        obs = ObservationSeries(lai=[4.0, 4.0], lai_sd=[0.66, 0.66])
        with pytest.raises(DimensionMismatchError):
            DataAssimilationManager(_config(tmp_path)).assimilate(diurnal_forcing, obs)

    def test_degenerate_weights_logged_and_raised(self, tmp_path, diurnal_forcing, caplog):
        obs = ObservationSeries(lai=[1e6] * 4, lai_sd=[0.66] * 4)
        manager = DataAssimilationManager(_config(tmp_path))
        with caplog.at_level(logging.ERROR):
            with pytest.raises(DegenerateWeightsError) as exc_info:
                manager.assimilate(diurnal_forcing, obs)
        assert exc_info.value.window == 0
        assert "degenerated at window 0" in caplog.text


class TestWorkflow:

    def test_run_from_files(self, tmp_path, forcing_csv, observation_csv_factory):
        obs_csv = observation_csv_factory(
            [4.0, 4.1, 9.9, 4.2], [0.2, 0.8, 0.5, 0.5], [0, 1, 3, 0],
        )
        config = _config(
            tmp_path, FORCING_PATH=str(forcing_csv), OBSERVATIONS_PATH=str(obs_csv),
        )
        manager = DataAssimilationManager(config)
        output_path = manager.run_data_assimilation()

        assert output_path.exists()
        assert output_path.name == 'unit_pf_results.nc'
        assert (output_path.parent / 'unit_parameter_summary.csv').exists()

        with xr.open_dataset(output_path) as ds:
            # qc 3 is masked, sd 0.2 is floored to 0.66
            assert np.isnan(ds['observed_lai'].values[2])
            assert ds['observed_lai_sd'].values[0] == pytest.approx(0.66)
            assert ds.attrs['seed'] == '2024'

    def test_missing_paths(self, tmp_path):
        manager = DataAssimilationManager(_config(tmp_path))
        with pytest.raises(ConfigurationError, match="FORCING_PATH"):
            manager.run_data_assimilation()
