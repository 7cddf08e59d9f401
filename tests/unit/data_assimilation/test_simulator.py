"""Tests for the forward ensemble simulator."""

import numpy as np
import pytest

from ecoassim.core.constants import FLUX_TO_POOL_DEFAULT
from ecoassim.core.exceptions import DimensionMismatchError, ValidationError
from ecoassim.data_assimilation.ensemble import spawn_member_rngs
from ecoassim.data_assimilation.forcing import Forcing
from ecoassim.data_assimilation.observations import window_means
from ecoassim.data_assimilation.simulator import ForwardSimulator, sanitize_trajectory
from ecoassim.models.ssem import LAI_INDEX, N_VARIABLES, step


class TestForwardSimulator:

    def test_run_shape(self, deterministic_ensemble, constant_forcing):
        sim = ForwardSimulator(deterministic_ensemble, constant_forcing, seed=1)
        traj = sim.run()
        assert traj.shape == (4, 3, N_VARIABLES)
        assert sim.current_step == 4

    def test_step_matches_model(self, deterministic_ensemble, constant_forcing):
        sim = ForwardSimulator(deterministic_ensemble, constant_forcing, seed=1)
        row = sim.step()
        _, expected = step(
            deterministic_ensemble.state, deterministic_ensemble.params,
            500.0, 20.0, spawn_member_rngs(1, 3),
        )
        np.testing.assert_allclose(row, expected)
        np.testing.assert_array_equal(sim.ensemble.state.leaf, row[:, 0])

    def test_does_not_modify_input_ensemble(self, deterministic_ensemble, constant_forcing):
        leaf_before = deterministic_ensemble.state.leaf.copy()
        ForwardSimulator(deterministic_ensemble, constant_forcing, seed=1).run()
        np.testing.assert_array_equal(deterministic_ensemble.state.leaf, leaf_before)

    def test_fixed_seed_reproducible(self, noisy_ensemble, diurnal_forcing):
        a = ForwardSimulator(noisy_ensemble, diurnal_forcing, seed=123).run()
        b = ForwardSimulator(noisy_ensemble, diurnal_forcing, seed=123).run()
        np.testing.assert_array_equal(a, b)

    def test_different_seeds_differ(self, noisy_ensemble, diurnal_forcing):
        a = ForwardSimulator(noisy_ensemble, diurnal_forcing, seed=1).run()
        b = ForwardSimulator(noisy_ensemble, diurnal_forcing, seed=2).run()
        assert not np.array_equal(a, b)

    def test_explicit_generators(self, noisy_ensemble, diurnal_forcing):
        a = ForwardSimulator(noisy_ensemble, diurnal_forcing, rngs=spawn_member_rngs(9, 10)).run(10)
        b = ForwardSimulator(noisy_ensemble, diurnal_forcing, seed=9).run(10)
        np.testing.assert_array_equal(a, b)

    def test_generator_count_mismatch(self, noisy_ensemble, diurnal_forcing):
        with pytest.raises(DimensionMismatchError):
            ForwardSimulator(noisy_ensemble, diurnal_forcing, rngs=spawn_member_rngs(9, 3))

    def test_horizon_too_long(self, deterministic_ensemble, constant_forcing):
        sim = ForwardSimulator(deterministic_ensemble, constant_forcing, seed=1)
        with pytest.raises(DimensionMismatchError):
            sim.run(5)

    def test_horizon_must_be_positive(self, deterministic_ensemble, constant_forcing):
        sim = ForwardSimulator(deterministic_ensemble, constant_forcing, seed=1)
        with pytest.raises(ValidationError):
            sim.run(0)

    def test_step_past_forcing(self, deterministic_ensemble, constant_forcing):
        sim = ForwardSimulator(deterministic_ensemble, constant_forcing, seed=1)
        sim.run()
        with pytest.raises(DimensionMismatchError):
            sim.step()

    def test_invalid_timestep(self, deterministic_ensemble, constant_forcing):
        with pytest.raises(ValidationError):
            ForwardSimulator(deterministic_ensemble, constant_forcing, timestep_seconds=0)

    def test_pools_non_negative(self, ensemble_factory, diurnal_forcing):
        ensemble = ensemble_factory(
            n_members=20, leaf=np.full(20, 0.05), wood=0.05, soil=0.05,
            tau_leaf=0.5, tau_wood=0.5, tau_soil=0.5,
        )
        traj = ForwardSimulator(ensemble, diurnal_forcing, seed=3).run()
        assert np.all(traj[:, :, :3] >= 0.0)
        assert np.all(traj[:, :, LAI_INDEX] >= 0.0)

    def test_night_steps_have_zero_gpp(self, deterministic_ensemble):
        forcing = Forcing(par=[0.0, 500.0, 0.0], temp=[10.0, 10.0, 10.0])
        traj = ForwardSimulator(deterministic_ensemble, forcing, seed=1).run()
        np.testing.assert_array_equal(traj[0, :, 4], np.zeros(3))
        np.testing.assert_array_equal(traj[2, :, 4], np.zeros(3))
        assert np.all(traj[1, :, 4] > 0)

    def test_nan_forcing_sanitized(self, deterministic_ensemble):
        forcing = Forcing(par=[500.0, np.nan, 500.0], temp=[20.0, 20.0, 20.0])
        traj = ForwardSimulator(deterministic_ensemble, forcing, seed=1).run()
        assert np.all(np.isfinite(traj))
        # NaN PAR poisons GPP and the leaf pool; both are reported as 0
        np.testing.assert_array_equal(traj[1, :, 4], np.zeros(3))
        np.testing.assert_array_equal(traj[2, :, 0], np.zeros(3))


class TestSanitizeTrajectory:

    def test_replaces_non_finite(self):
        traj = np.array([[1.0, np.nan], [np.inf, -np.inf]])
        np.testing.assert_array_equal(sanitize_trajectory(traj), [[1.0, 0.0], [0.0, 0.0]])

    def test_returns_copy(self):
        traj = np.array([1.0, np.nan])
        sanitize_trajectory(traj)
        assert np.isnan(traj[1])


class TestDeterministicScenario:
    """Three members, zero process error, two windows of two steps."""

    def test_trajectory_follows_mass_balance(self, deterministic_ensemble, constant_forcing):
        traj = ForwardSimulator(deterministic_ensemble, constant_forcing, seed=0).run()

        k = FLUX_TO_POOL_DEFAULT
        leaf = np.array([2.0, 2.5, 3.0])
        wood = np.full(3, 100.0)
        soil = np.full(3, 120.0)
        for t in range(4):
            lai = leaf * 15.0 * 0.1
            gpp = 0.02 * (1 - np.exp(-0.5 * lai)) * 500.0
            ra, npp_wood, npp_leaf = 0.5 * gpp, 0.25 * gpp, 0.25 * gpp
            rh = 0.01 * soil * 2.0 ** 2.0
            litter = leaf * 1e-4
            cwd = wood * 1e-5

            leaf = leaf + npp_leaf * k - litter
            wood = wood + npp_wood * k - cwd
            soil = soil + litter + cwd - rh * k

            expected = np.column_stack([
                leaf, wood, soil, leaf * 15.0 * 0.1, gpp, gpp - ra - rh,
                ra, npp_wood, npp_leaf, rh, litter, cwd,
            ])
            np.testing.assert_allclose(traj[t], expected, rtol=1e-12)

    def test_window_means_of_scenario(self, deterministic_ensemble, constant_forcing):
        traj = ForwardSimulator(deterministic_ensemble, constant_forcing, seed=0).run()
        means = window_means(traj[:, :, LAI_INDEX], 2)
        assert means.shape == (2, 3)
        np.testing.assert_allclose(means[1], traj[2:, :, LAI_INDEX].mean(axis=0))
        # Leaf carbon grows in daylight with these parameters
        assert np.all(means[1] > means[0])
