# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 ecoassim developers

"""
SSEM Model Core - NumPy Implementation.

Simple State-space Ecosystem Model (SSEM): a three-pool carbon-cycle model
driven by photosynthetically active radiation (PAR) and air temperature,
vectorized over ensemble members.

The model consists of four routines applied every timestep:
1. Canopy routine - LAI from leaf carbon, light-use-efficiency GPP
2. Allocation routine - GPP partitioned into autotrophic respiration,
   wood NPP and leaf NPP by per-member allocation fractions
3. Decomposition routine - Q10 heterotrophic respiration of soil carbon
4. Turnover routine - litterfall (leaf -> soil) and coarse woody debris
   (wood -> soil)

State Update
============

Each pool is drawn from a Normal distribution centred on its mass-balance
update, with the member's process-error standard deviation, then floored
at zero:

    leaf' ~ N(leaf + NPP_leaf·k - litterfall, tau_leaf)
    wood' ~ N(wood + NPP_wood·k - CWD, tau_wood)
    soil' ~ N(soil + litterfall + CWD - Rh·k, tau_soil)

Fluxes (GPP, Ra, NPP, Rh) are in µmol C m⁻² s⁻¹; pools are in Mg C/ha, and
k converts between them for one timestep (see
``UnitConversion.flux_to_pool``). Turnover fluxes are pool fractions per
timestep and are already in Mg C/ha.

Random Numbers
==============

Every member draws its noise from its own ``numpy.random.Generator`` so a
fixed seed reproduces each member's trajectory regardless of how members
are scheduled.

Non-finite forcing is not rejected here: NaN or infinite PAR/temperature
propagate into the outputs and are sanitized by the caller once the
trajectory is complete.
"""

from typing import Any, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from ecoassim.core.constants import FLUX_TO_POOL_DEFAULT, ModelDefaults, UnitConversion
from ecoassim.core.exceptions import DimensionMismatchError, ValidationError


# =============================================================================
# OUTPUT LAYOUT
# =============================================================================

STATE_VARIABLES: Tuple[str, ...] = ('leaf_c', 'wood_c', 'soil_c')

TRAJECTORY_VARIABLES: Tuple[str, ...] = (
    'leaf_c',       # Leaf carbon (Mg C/ha)
    'wood_c',       # Wood carbon (Mg C/ha)
    'soil_c',       # Soil organic carbon (Mg C/ha)
    'lai',          # Leaf area index (-)
    'gpp',          # Gross primary production (umol C m-2 s-1)
    'nep',          # Net ecosystem production (umol C m-2 s-1)
    'ra',           # Autotrophic respiration (umol C m-2 s-1)
    'npp_wood',     # Wood NPP (umol C m-2 s-1)
    'npp_leaf',     # Leaf NPP (umol C m-2 s-1)
    'rh',           # Heterotrophic respiration (umol C m-2 s-1)
    'litterfall',   # Leaf litter flux (Mg C/ha per timestep)
    'cwd',          # Coarse woody debris flux (Mg C/ha per timestep)
)

N_VARIABLES = len(TRAJECTORY_VARIABLES)
LAI_INDEX = TRAJECTORY_VARIABLES.index('lai')

# Scalar (one value per member) parameters, in record order
SCALAR_PARAMS: Tuple[str, ...] = (
    'sla', 'alpha', 'q10', 'rbasal',
    'tau_leaf', 'tau_wood', 'tau_soil',
    'litterfall', 'mortality',
)


# =============================================================================
# DATA STRUCTURES
# =============================================================================

class SSEMState(NamedTuple):
    """
    SSEM state variables for N ensemble members.

    Attributes:
        leaf: Leaf carbon (Mg C/ha), shape (N,)
        wood: Wood carbon (Mg C/ha), shape (N,)
        soil: Soil organic carbon (Mg C/ha), shape (N,)
    """
    leaf: Any
    wood: Any
    soil: Any

    @property
    def n_members(self) -> int:
        return len(self.leaf)

    def as_array(self) -> np.ndarray:
        """Stack the pools into an (N, 3) matrix."""
        return np.column_stack([self.leaf, self.wood, self.soil])

    @classmethod
    def from_array(cls, X: np.ndarray) -> 'SSEMState':
        """Build a state from an (N, 3) matrix (columns leaf, wood, soil)."""
        X = np.asarray(X, dtype=np.float64)
        if X.ndim != 2 or X.shape[1] != 3:
            raise DimensionMismatchError(f"State matrix must have shape (N, 3), got {X.shape}")
        return cls(leaf=X[:, 0].copy(), wood=X[:, 1].copy(), soil=X[:, 2].copy())

    def take(self, indices: np.ndarray) -> 'SSEMState':
        """Return a new state whose member i is this state's member ``indices[i]``."""
        indices = np.asarray(indices, dtype=np.intp)
        return SSEMState(*(np.asarray(pool)[indices] for pool in self))


class SSEMParameters(NamedTuple):
    """
    SSEM parameters for N ensemble members.

    Every field holds one value per member; ``falloc`` holds one row per
    member. The record is only ever re-indexed as a whole through
    ``take`` so a member's parameters always travel together.

    Attributes:
        sla: Specific leaf area (m²/kg C)
        alpha: Light-use efficiency (µmol C / µmol photon)
        q10: Temperature sensitivity of heterotrophic respiration (-)
        rbasal: Basal heterotrophic respiration rate at 0 °C
            (µmol C m⁻² s⁻¹ per Mg C/ha)
        tau_leaf: Process-error std-dev of the leaf pool (Mg C/ha)
        tau_wood: Process-error std-dev of the wood pool (Mg C/ha)
        tau_soil: Process-error std-dev of the soil pool (Mg C/ha)
        falloc: Allocation fractions (Ra, NPP wood, NPP leaf), shape (N, 3),
            rows on the simplex
        litterfall: Leaf turnover fraction per timestep
        mortality: Wood (coarse woody debris) turnover fraction per timestep
    """
    sla: Any
    alpha: Any
    q10: Any
    rbasal: Any
    tau_leaf: Any
    tau_wood: Any
    tau_soil: Any
    falloc: Any
    litterfall: Any
    mortality: Any

    @property
    def n_members(self) -> int:
        return len(self.sla)

    def take(self, indices: np.ndarray) -> 'SSEMParameters':
        """Return a new record whose member i is this record's member ``indices[i]``."""
        indices = np.asarray(indices, dtype=np.intp)
        return SSEMParameters(*(np.asarray(field)[indices] for field in self))

    def copy(self) -> 'SSEMParameters':
        return SSEMParameters(*(np.array(field, dtype=np.float64, copy=True) for field in self))


def create_params(n_members: int, falloc: Sequence[float], **values: float) -> SSEMParameters:
    """
    Create an SSEMParameters record with identical values for every member.

    Args:
        n_members: Number of ensemble members.
        falloc: Allocation fractions (Ra, NPP wood, NPP leaf) shared by all members.
        **values: One scalar per name in SCALAR_PARAMS.

    Returns:
        Validated SSEMParameters.
    """
    missing = [name for name in SCALAR_PARAMS if name not in values]
    if missing:
        raise ValidationError(f"Missing parameter values: {', '.join(missing)}")

    fields = {name: np.full(n_members, float(values[name])) for name in SCALAR_PARAMS}
    fields['falloc'] = np.tile(np.asarray(falloc, dtype=np.float64), (n_members, 1))
    params = SSEMParameters(**fields)
    validate_params(params)
    return params


def validate_params(
    params: SSEMParameters,
    n_members: Optional[int] = None,
    tolerance: float = ModelDefaults.ALLOCATION_TOLERANCE,
) -> None:
    """
    Check shapes and physical constraints of a parameter record.

    Raises:
        DimensionMismatchError: If member counts disagree.
        ValidationError: If allocation rows leave the simplex or a
            process-error std-dev is negative.
    """
    expected = params.n_members if n_members is None else n_members

    for name in SCALAR_PARAMS:
        value = np.asarray(getattr(params, name))
        if value.shape != (expected,):
            raise DimensionMismatchError(
                f"Parameter '{name}' has shape {value.shape}, expected ({expected},)"
            )

    falloc = np.asarray(params.falloc)
    if falloc.shape != (expected, 3):
        raise DimensionMismatchError(
            f"Parameter 'falloc' has shape {falloc.shape}, expected ({expected}, 3)"
        )
    if np.any(falloc < 0) or np.any(np.abs(falloc.sum(axis=1) - 1.0) > tolerance):
        raise ValidationError("Allocation fractions must be non-negative and sum to 1 for every member")

    for name in ('tau_leaf', 'tau_wood', 'tau_soil'):
        if np.any(np.asarray(getattr(params, name)) < 0):
            raise ValidationError(f"Process-error std-dev '{name}' must be non-negative")


# =============================================================================
# ROUTINES
# =============================================================================

def leaf_area_index(leaf: np.ndarray, sla: np.ndarray) -> np.ndarray:
    """LAI from leaf carbon (Mg C/ha) and specific leaf area (m²/kg C)."""
    return leaf * sla * UnitConversion.LAI_CONVERSION


def canopy_routine(lai: np.ndarray, alpha: np.ndarray, par: float) -> np.ndarray:
    """
    Light-use-efficiency GPP with Beer's-law canopy light interception.

    At night (PAR at or below ``PAR_THRESHOLD``) GPP is zero for every
    member. NaN PAR is not treated as night and propagates.
    """
    if par <= ModelDefaults.PAR_THRESHOLD:
        return np.zeros_like(lai, dtype=np.float64)
    return np.maximum(0.0, alpha * (1.0 - np.exp(-0.5 * lai)) * par)


def allocation_routine(gpp: np.ndarray, falloc: np.ndarray) -> np.ndarray:
    """Partition GPP into (Ra, NPP wood, NPP leaf); returns shape (N, 3)."""
    return gpp[:, np.newaxis] * falloc


def decomposition_routine(soil: np.ndarray, rbasal: np.ndarray, q10: np.ndarray, temp: float) -> np.ndarray:
    """Heterotrophic respiration; floored at zero so a depleted soil pool cannot respire negatively."""
    return np.maximum(rbasal * soil * q10 ** (temp / 10.0), 0.0)


def turnover_routine(
    leaf: np.ndarray, wood: np.ndarray, litterfall: np.ndarray, mortality: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:
    """Litterfall and coarse-woody-debris fluxes (Mg C/ha per timestep)."""
    return leaf * litterfall, wood * mortality


def member_noise(rngs: Sequence[np.random.Generator], n_members: int) -> np.ndarray:
    """
    Draw one standard-normal triple per member from that member's generator.

    Returns:
        Array of shape (n_members, 3).
    """
    if len(rngs) != n_members:
        raise DimensionMismatchError(
            f"Expected {n_members} member generators, got {len(rngs)}"
        )
    noise = np.empty((n_members, 3))
    for i, rng in enumerate(rngs):
        noise[i] = rng.standard_normal(3)
    return noise


# =============================================================================
# SINGLE TIMESTEP
# =============================================================================

def step(
    state: SSEMState,
    params: SSEMParameters,
    par: float,
    temp: float,
    rngs: Sequence[np.random.Generator],
    k: float = FLUX_TO_POOL_DEFAULT,
) -> Tuple[SSEMState, np.ndarray]:
    """
    Advance all ensemble members by one timestep.

    Args:
        state: Current pools for N members.
        params: Parameter record for N members.
        par: Incident PAR for this timestep (µmol photons m⁻² s⁻¹).
        temp: Air temperature for this timestep (°C).
        rngs: One generator per member for the process-error draws.
        k: Flux-to-pool conversion factor for the timestep length.

    Returns:
        Tuple of (new_state, outputs) where outputs has shape (N, 12) and
        columns ordered as TRAJECTORY_VARIABLES.
    """
    leaf = np.asarray(state.leaf, dtype=np.float64)
    wood = np.asarray(state.wood, dtype=np.float64)
    soil = np.asarray(state.soil, dtype=np.float64)
    n_members = len(leaf)

    # Canopy
    lai = leaf_area_index(leaf, params.sla)
    gpp = canopy_routine(lai, params.alpha, par)

    # Allocation: columns Ra, NPP wood, NPP leaf
    alloc = allocation_routine(gpp, params.falloc)
    ra, npp_wood, npp_leaf = alloc[:, 0], alloc[:, 1], alloc[:, 2]

    # Decomposition and turnover
    rh = decomposition_routine(soil, params.rbasal, params.q10, temp)
    litter, cwd = turnover_routine(leaf, wood, params.litterfall, params.mortality)

    # Stochastic mass balance
    noise = member_noise(rngs, n_members)
    expected = np.column_stack([
        leaf + npp_leaf * k - litter,
        wood + npp_wood * k - cwd,
        soil + litter + cwd - rh * k,
    ])
    tau = np.column_stack([params.tau_leaf, params.tau_wood, params.tau_soil])
    new_state = SSEMState.from_array(np.maximum(expected + tau * noise, 0.0))

    outputs = np.column_stack([
        new_state.as_array(),
        leaf_area_index(new_state.leaf, params.sla),
        gpp,
        gpp - ra - rh,
        ra,
        npp_wood,
        npp_leaf,
        rh,
        litter,
        cwd,
    ])

    return new_state, outputs
