"""
Root conftest.py - fixtures shared across all tests.

Provides small deterministic ensembles, forcing and observations so
individual tests can build end-to-end scenarios with a handful of members
and timesteps.
"""

import numpy as np
import pytest

from ecoassim.data_assimilation.ensemble import Ensemble
from ecoassim.data_assimilation.forcing import Forcing
from ecoassim.data_assimilation.observations import ObservationSeries
from ecoassim.models.ssem import SSEMState, create_params

# Parameter values shared by the deterministic scenarios
BASE_PARAMS = dict(
    sla=15.0,
    alpha=0.02,
    q10=2.0,
    rbasal=0.01,
    tau_leaf=0.0,
    tau_wood=0.0,
    tau_soil=0.0,
    litterfall=1e-4,
    mortality=1e-5,
)
BASE_FALLOC = (0.5, 0.25, 0.25)


def make_ensemble(
    n_members=3,
    leaf=None,
    wood=100.0,
    soil=120.0,
    falloc=BASE_FALLOC,
    **param_overrides,
):
    """Ensemble with identical parameters; ``leaf`` may vary per member."""
    values = dict(BASE_PARAMS, **param_overrides)
    params = create_params(n_members, falloc, **values)
    if leaf is None:
        leaf = np.linspace(2.0, 3.0, n_members)
    state = SSEMState(
        leaf=np.asarray(leaf, dtype=np.float64) * np.ones(n_members),
        wood=np.full(n_members, float(wood)),
        soil=np.full(n_members, float(soil)),
    )
    return Ensemble(state=state, params=params)


@pytest.fixture
def rng():
    """Seeded generator for test data."""
    return np.random.default_rng(42)


@pytest.fixture
def deterministic_ensemble():
    """Three members with zero process error and distinct leaf pools."""
    return make_ensemble(n_members=3, leaf=[2.0, 2.5, 3.0])


@pytest.fixture
def noisy_ensemble():
    """Ten members with the default process error."""
    return make_ensemble(
        n_members=10,
        leaf=np.linspace(2.0, 3.0, 10),
        tau_leaf=0.005,
        tau_wood=0.01,
        tau_soil=0.01,
    )


@pytest.fixture
def constant_forcing():
    """Four daytime steps of PAR 500 at 20 degC."""
    return Forcing(par=np.full(4, 500.0), temp=np.full(4, 20.0))


@pytest.fixture
def diurnal_forcing():
    """Two days of half-hourly forcing with a PAR diurnal cycle."""
    t = np.arange(96)
    par = np.maximum(0.0, 1500.0 * np.sin(2 * np.pi * (t % 48 - 12) / 48))
    temp = 15.0 + 5.0 * np.sin(2 * np.pi * (t % 48 - 18) / 48)
    return Forcing(par=par, temp=temp)


@pytest.fixture
def missing_observations():
    """Two windows, both without observations."""
    return ObservationSeries(lai=np.full(2, np.nan), lai_sd=np.full(2, 0.5))


def make_forcing_csv(path, n_steps=96):
    """Write a forcing CSV with PAR and temp columns; returns the path."""
    t = np.arange(n_steps)
    par = np.maximum(0.0, 1500.0 * np.sin(2 * np.pi * (t % 48 - 12) / 48))
    temp = 15.0 + 5.0 * np.sin(2 * np.pi * (t % 48 - 18) / 48)
    lines = ["PAR,temp"] + [f"{p:.6f},{c:.6f}" for p, c in zip(par, temp)]
    path.write_text("\n".join(lines) + "\n")
    return path


def make_observation_csv(path, lai, lai_sd, qc):
    """Write an observation CSV with LAI, LAI_sd and qc columns; returns the path."""
    lines = ["LAI,LAI_sd,qc"] + [
        f"{'' if np.isnan(v) else v},{s},{q}" for v, s, q in zip(lai, lai_sd, qc)
    ]
    path.write_text("\n".join(lines) + "\n")
    return path


@pytest.fixture
def ensemble_factory():
    """Factory building ensembles with identical parameters (see ``make_ensemble``)."""
    return make_ensemble


@pytest.fixture
def forcing_csv(tmp_path):
    """Two days of half-hourly forcing written to CSV."""
    return make_forcing_csv(tmp_path / "forcing.csv")


@pytest.fixture
def observation_csv_factory(tmp_path):
    """Factory writing an observation CSV into the test's temporary directory."""
    def _write(lai, lai_sd, qc, name="observations.csv"):
        return make_observation_csv(tmp_path / name, lai, lai_sd, qc)
    return _write
