# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 ecoassim developers

"""
Prior ensemble generation.

Draws initial pools and per-member parameters from the distributions
configured in ``PriorConfig``:

- Initial LAI, wood and soil carbon: Normal, floored at zero; leaf carbon
  is derived from LAI through the member's specific leaf area
- sla, q10: Normal, floored at a small positive value
- alpha, rbasal: Log-Normal matched to an arithmetic mean and std-dev
- tau_leaf, tau_wood, tau_soil: Gamma-distributed precisions
- litterfall, mortality: Beta matched to a mean and variance
- falloc: Dirichlet built from Gamma draws, with a Poisson-distributed
  concentration per member
"""

import logging
from typing import Optional, Tuple

import numpy as np

from ecoassim.core.config.models import PriorConfig
from ecoassim.core.constants import UnitConversion
from ecoassim.core.exceptions import ValidationError
from ecoassim.models.ssem import SSEMParameters, SSEMState
from .ensemble import Ensemble

logger = logging.getLogger(__name__)

POSITIVE_FLOOR = 1e-6


def lognormal_moments(mean: float, sd: float) -> Tuple[float, float]:
    """(meanlog, sdlog) of the Log-Normal with arithmetic ``mean`` and ``sd``."""
    if mean <= 0:
        raise ValidationError(f"Log-Normal mean must be positive, got {mean}")
    if sd < 0:
        raise ValidationError(f"Log-Normal std-dev must be non-negative, got {sd}")
    sdlog = np.sqrt(np.log1p((sd / mean) ** 2))
    meanlog = np.log(mean) - 0.5 * sdlog ** 2
    return float(meanlog), float(sdlog)


def beta_moments(mean: float, var: float) -> Tuple[float, float]:
    """Shape parameters (a, b) of the Beta with the given mean and variance.

    Raises:
        ValidationError: If the mean is outside (0, 1) or the variance is not
            below mean * (1 - mean).
    """
    if not 0 < mean < 1:
        raise ValidationError(f"Beta mean must lie in (0, 1), got {mean}")
    if var <= 0 or var >= mean * (1 - mean):
        raise ValidationError(
            f"Beta variance must lie in (0, {mean * (1 - mean)}), got {var}"
        )
    common = mean * (1 - mean) / var - 1
    return float(mean * common), float((1 - mean) * common)


def dirichlet_from_gamma(concentration: np.ndarray, rng: np.random.Generator) -> np.ndarray:
    """Dirichlet draws, one per row of ``concentration``, via normalized Gamma variates.

    Args:
        concentration: Shape (n, k), non-negative with a positive row sum.
        rng: Generator for the Gamma draws.

    Returns:
        Array of shape (n, k) whose rows sum to 1.
    """
    concentration = np.atleast_2d(np.asarray(concentration, dtype=np.float64))
    if np.any(concentration < 0) or np.any(concentration.sum(axis=1) <= 0):
        raise ValidationError("Dirichlet concentrations must be non-negative with a positive total")
    draws = rng.gamma(concentration)
    return draws / draws.sum(axis=1, keepdims=True)


class PriorSampler:
    """Builds an initial Ensemble from prior hyperparameters.

    Args:
        config: Prior hyperparameters.
        rng: Generator for every prior draw.
    """

    def __init__(self, config: Optional[PriorConfig] = None, rng: Optional[np.random.Generator] = None):
        self.config = config or PriorConfig()
        self.rng = rng if rng is not None else np.random.default_rng()

    def _normal(self, mean: float, sd: float, n: int, floor: float) -> np.ndarray:
        return np.maximum(self.rng.normal(mean, sd, n), floor)

    def _lognormal(self, mean: float, sd: float, n: int) -> np.ndarray:
        meanlog, sdlog = lognormal_moments(mean, sd)
        return self.rng.lognormal(meanlog, sdlog, n)

    def _beta(self, mean: float, sd: float, n: int) -> np.ndarray:
        a, b = beta_moments(mean, sd ** 2)
        return self.rng.beta(a, b, n)

    def _process_error(self, tau: float, n: int) -> np.ndarray:
        # Precision ~ Gamma(shape, rate = shape * tau^2), centred on 1 / tau^2
        shape = self.config.tau_shape
        precision = self.rng.gamma(shape, 1.0 / (shape * tau ** 2), n)
        return 1.0 / np.sqrt(precision)

    def sample_params(self, n_members: int) -> SSEMParameters:
        """Draw a parameter record for ``n_members`` members."""
        cfg = self.config
        n_eff = 1 + self.rng.poisson(cfg.falloc_n_eff, n_members)
        concentration = np.asarray(cfg.falloc_mean)[np.newaxis, :] * n_eff[:, np.newaxis]

        return SSEMParameters(
            sla=self._normal(cfg.sla_mean, cfg.sla_sd, n_members, POSITIVE_FLOOR),
            alpha=self._lognormal(cfg.alpha_mean, cfg.alpha_sd, n_members),
            q10=self._normal(cfg.q10_mean, cfg.q10_sd, n_members, POSITIVE_FLOOR),
            rbasal=self._lognormal(cfg.rbasal_mean, cfg.rbasal_sd, n_members),
            tau_leaf=self._process_error(cfg.tau_leaf, n_members),
            tau_wood=self._process_error(cfg.tau_wood, n_members),
            tau_soil=self._process_error(cfg.tau_soil, n_members),
            falloc=dirichlet_from_gamma(concentration, self.rng),
            litterfall=self._beta(cfg.litterfall_mean, cfg.litterfall_sd, n_members),
            mortality=self._beta(cfg.mortality_mean, cfg.mortality_sd, n_members),
        )

    def sample_state(self, n_members: int, sla: np.ndarray) -> SSEMState:
        """Draw initial pools; leaf carbon follows from a LAI draw and ``sla``."""
        cfg = self.config
        lai = self._normal(cfg.lai_mean, cfg.lai_sd, n_members, 0.0)
        return SSEMState(
            leaf=lai / (np.asarray(sla) * UnitConversion.LAI_CONVERSION),
            wood=self._normal(cfg.wood_mean, cfg.wood_sd, n_members, 0.0),
            soil=self._normal(cfg.soil_mean, cfg.soil_sd, n_members, 0.0),
        )

    def sample(self, n_members: int) -> Ensemble:
        """Draw a complete prior ensemble.

        Args:
            n_members: Ensemble size.

        Returns:
            Validated Ensemble.
        """
        if n_members < 1:
            raise ValidationError(f"n_members must be positive, got {n_members}")

        params = self.sample_params(n_members)
        state = self.sample_state(n_members, params.sla)
        ensemble = Ensemble(state=state, params=params)

        logger.info(
            "Drew %d prior members (mean LAI %.2f, mean alpha %.4f)",
            n_members,
            float(np.mean(state.leaf * params.sla * UnitConversion.LAI_CONVERSION)),
            float(np.mean(params.alpha)),
        )
        return ensemble
