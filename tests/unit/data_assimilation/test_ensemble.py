"""Tests for the ensemble container and random streams."""

import numpy as np
import pytest

from ecoassim.core.exceptions import DimensionMismatchError, ValidationError
from ecoassim.data_assimilation.ensemble import (
    Ensemble,
    spawn_member_rngs,
    spawn_streams,
)
from ecoassim.models.ssem import SSEMState


class TestEnsemble:

    def test_n_members(self, deterministic_ensemble):
        assert deterministic_ensemble.n_members == 3

    def test_negative_pool_rejected(self, deterministic_ensemble):
        state = deterministic_ensemble.state._replace(soil=np.array([1.0, -1.0, 1.0]))
        with pytest.raises(ValidationError, match="soil"):
            Ensemble(state=state, params=deterministic_ensemble.params)

    def test_every_negative_pool_reported(self, deterministic_ensemble):
        state = deterministic_ensemble.state._replace(
            leaf=np.array([-1.0, 1.0, 1.0]), soil=np.array([1.0, 1.0, -2.0]),
        )
        with pytest.raises(ValidationError, match="leaf, soil"):
            Ensemble(state=state, params=deterministic_ensemble.params)

    def test_state_parameter_count_mismatch(self, deterministic_ensemble):
        state = SSEMState(leaf=np.ones(2), wood=np.ones(2), soil=np.ones(2))
        with pytest.raises(DimensionMismatchError):
            Ensemble(state=state, params=deterministic_ensemble.params)

    def test_ragged_state_rejected(self, deterministic_ensemble):
        state = deterministic_ensemble.state._replace(wood=np.ones(4))
        with pytest.raises(DimensionMismatchError, match="wood"):
            Ensemble(state=state, params=deterministic_ensemble.params)

    def test_take_duplicates_state_and_params_together(self, ensemble_factory):
        ensemble = ensemble_factory(n_members=3, leaf=[1.0, 2.0, 3.0])
        params = ensemble.params._replace(sla=np.array([10.0, 20.0, 30.0]))
        ensemble = Ensemble(state=ensemble.state, params=params)

        taken = ensemble.take(np.array([1, 1, 2]))
        np.testing.assert_array_equal(taken.state.leaf, [2.0, 2.0, 3.0])
        np.testing.assert_array_equal(taken.params.sla, [20.0, 20.0, 30.0])
        # Source is unchanged
        np.testing.assert_array_equal(ensemble.state.leaf, [1.0, 2.0, 3.0])

    def test_take_copies_arrays(self, deterministic_ensemble):
        taken = deterministic_ensemble.take(np.array([0, 1, 2]))
        taken.state.leaf[0] = 99.0
        assert deterministic_ensemble.state.leaf[0] == 2.0

    def test_take_rejects_wrong_length(self, deterministic_ensemble):
        with pytest.raises(DimensionMismatchError):
            deterministic_ensemble.take(np.array([0, 1]))

    def test_take_rejects_out_of_range(self, deterministic_ensemble):
        with pytest.raises(ValidationError):
            deterministic_ensemble.take(np.array([0, 1, 3]))

    def test_with_state_keeps_params(self, deterministic_ensemble):
        state = SSEMState(leaf=np.zeros(3), wood=np.zeros(3), soil=np.zeros(3))
        updated = deterministic_ensemble.with_state(state)
        assert updated.params is deterministic_ensemble.params
        np.testing.assert_array_equal(updated.state.leaf, np.zeros(3))


class TestRandomStreams:

    def test_member_streams_reproducible(self):
        a = [rng.standard_normal() for rng in spawn_member_rngs(11, 4)]
        b = [rng.standard_normal() for rng in spawn_member_rngs(11, 4)]
        assert a == b

    def test_member_streams_independent(self):
        draws = [rng.standard_normal() for rng in spawn_member_rngs(11, 4)]
        assert len(set(draws)) == 4

    def test_member_stream_independent_of_ensemble_size(self):
        small = spawn_member_rngs(3, 2)[1].standard_normal(5)
        large = spawn_member_rngs(3, 10)[1].standard_normal(5)
        np.testing.assert_array_equal(small, large)

    def test_streams_share_member_generators(self):
        streams = spawn_streams(5, 3)
        members = spawn_member_rngs(5, 3)
        for a, b in zip(streams.members, members):
            assert a.standard_normal() == b.standard_normal()

    def test_resample_and_prior_streams_distinct(self):
        streams = spawn_streams(5, 3)
        assert len(streams.members) == 3
        assert streams.resample.random() != streams.priors.random()
