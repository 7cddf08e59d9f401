# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 ecoassim developers

"""
Ensemble container and random-number streams.

An Ensemble pairs the SSEM state of N members with their parameter
record. Resampling goes through ``Ensemble.take`` so state and every
parameter field are permuted together.
"""

from dataclasses import dataclass
from typing import List, NamedTuple, Optional

import numpy as np

from ecoassim.core.exceptions import DimensionMismatchError, ValidationError
from ecoassim.models.ssem import SSEMParameters, SSEMState, validate_params


@dataclass(frozen=True)
class Ensemble:
    """State and parameters of N ensemble members.

    Attributes:
        state: Pools of every member.
        params: Parameter record of every member.
    """
    state: SSEMState
    params: SSEMParameters

    def __post_init__(self):
        n_members = len(self.state.leaf)
        for name, pool in zip(self.state._fields, self.state):
            pool = np.asarray(pool)
            if pool.shape != (n_members,):
                raise DimensionMismatchError(
                    f"State pool '{name}' has shape {pool.shape}, expected ({n_members},)"
                )
        negative = np.any(self.state.as_array() < 0, axis=0)
        if negative.any():
            names = [name for name, bad in zip(self.state._fields, negative) if bad]
            raise ValidationError(f"State pools contain negative values: {', '.join(names)}")
        validate_params(self.params, n_members=n_members)

    @property
    def n_members(self) -> int:
        return self.state.n_members

    def take(self, indices: np.ndarray) -> 'Ensemble':
        """Return the ensemble whose member i is a copy of member ``indices[i]``.

        Args:
            indices: Integer array of length n_members with values in [0, n_members).

        Returns:
            New Ensemble; this one is left unchanged.
        """
        indices = np.asarray(indices)
        if indices.shape != (self.n_members,):
            raise DimensionMismatchError(
                f"Resampling index has shape {indices.shape}, expected ({self.n_members},)"
            )
        if np.any(indices < 0) or np.any(indices >= self.n_members):
            raise ValidationError("Resampling indices out of range")
        return Ensemble(state=self.state.take(indices), params=self.params.take(indices))

    def with_state(self, state: SSEMState) -> 'Ensemble':
        """Return an ensemble with new pools and the same parameters."""
        return Ensemble(state=state, params=self.params)

    def copy(self) -> 'Ensemble':
        return self.take(np.arange(self.n_members))


class RandomStreams(NamedTuple):
    """Independent generators for one run.

    Attributes:
        members: One generator per ensemble member for process error.
        resample: Generator for resampling draws.
        priors: Generator for prior draws.
    """
    members: List[np.random.Generator]
    resample: np.random.Generator
    priors: np.random.Generator


def spawn_member_rngs(seed: Optional[int], n_members: int) -> List[np.random.Generator]:
    """Spawn one independent generator per member from a single seed.

    Member i always receives child stream i of ``SeedSequence(seed)``, so
    a fixed seed reproduces each member's draws regardless of evaluation
    order.
    """
    children = np.random.SeedSequence(seed).spawn(n_members)
    return [np.random.default_rng(child) for child in children]


def spawn_streams(seed: Optional[int], n_members: int) -> RandomStreams:
    """Spawn member, resampling and prior generators from a single seed.

    Member streams are identical to ``spawn_member_rngs(seed, n_members)``;
    the resampling and prior streams are children n_members and
    n_members + 1 of the same seed sequence.
    """
    children = np.random.SeedSequence(seed).spawn(n_members + 2)
    return RandomStreams(
        members=[np.random.default_rng(child) for child in children[:n_members]],
        resample=np.random.default_rng(children[n_members]),
        priors=np.random.default_rng(children[n_members + 1]),
    )
