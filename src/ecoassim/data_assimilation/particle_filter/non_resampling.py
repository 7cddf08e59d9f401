# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 ecoassim developers

"""
Non-resampling (sequential importance) particle filter.

Members are never modified: the filter weights an existing open-loop
ensemble by how well each member's window-mean LAI matches the
observations seen so far, and summarizes the weighted ensemble per window.

The weight of member i after window w is the product of its Gaussian
likelihoods over windows 0..w (a cumulative sum in log space). Missing
observations contribute a likelihood of 1 and leave the weights unchanged.
"""

import logging
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from ecoassim.core.constants import ModelDefaults
from ecoassim.core.exceptions import DimensionMismatchError, ValidationError
from ..observations import ObservationSeries
from ..statistics import gaussian_log_likelihood, mean_normalized_weights, weighted_quantile

logger = logging.getLogger(__name__)


@dataclass
class NonResamplingResult:
    """Output of the non-resampling filter; every array has windows on axis 0.

    Attributes:
        simulated_lai: Window-mean simulated LAI, shape (n_windows, n_members).
        log_likelihood: Per-window log-likelihood, shape (n_windows, n_members).
        log_weights: Cumulative log-likelihood, shape (n_windows, n_members).
        weights: exp(log_weights).
        normalized_weights: Weights divided by their ensemble mean per window
            (each row sums to n_members).
        quantiles: Weighted LAI quantiles, shape (n_windows, n_quantiles).
        probs: Quantile probabilities.
    """
    simulated_lai: np.ndarray
    log_likelihood: np.ndarray
    log_weights: np.ndarray
    weights: np.ndarray
    normalized_weights: np.ndarray
    quantiles: np.ndarray
    probs: Tuple[float, ...]

    @property
    def n_windows(self) -> int:
        return self.log_weights.shape[0]


class NonResamplingParticleFilter:
    """Weights an open-loop ensemble against LAI observations.

    Args:
        quantiles: Probabilities for the weighted LAI summary.
    """

    def __init__(self, quantiles: Sequence[float] = ModelDefaults.QUANTILES):
        probs = tuple(float(p) for p in quantiles)
        if not probs or any(p < 0 or p > 1 for p in probs):
            raise ValidationError(f"Quantile probabilities must lie in [0, 1], got {quantiles}")
        self.quantiles = probs

    @staticmethod
    def log_likelihood(simulated_lai: np.ndarray, observations: ObservationSeries) -> np.ndarray:
        """Gaussian log-likelihood of each window's observation under each member.

        Missing windows get 0. Members whose simulated LAI is not finite get
        -inf (zero weight).
        """
        simulated_lai = np.asarray(simulated_lai, dtype=np.float64)
        if simulated_lai.ndim != 2:
            raise DimensionMismatchError(
                f"Simulated LAI must have shape (n_windows, n_members), got {simulated_lai.shape}"
            )
        if simulated_lai.shape[0] != len(observations):
            raise DimensionMismatchError(
                f"{simulated_lai.shape[0]} simulated windows but {len(observations)} observations"
            )

        missing = observations.is_missing
        obs = np.where(missing, 0.0, observations.lai)[:, np.newaxis]
        sd = np.where(missing, 1.0, observations.lai_sd)[:, np.newaxis]

        log_like = gaussian_log_likelihood(obs, simulated_lai, sd)
        log_like = np.where(np.isnan(log_like), -np.inf, log_like)
        log_like[missing, :] = 0.0
        return log_like

    def analyze(self, simulated_lai: np.ndarray, observations: ObservationSeries) -> NonResamplingResult:
        """Weight the ensemble window by window.

        Args:
            simulated_lai: Window-mean LAI, shape (n_windows, n_members).
            observations: One observation per window.

        Returns:
            NonResamplingResult.
        """
        simulated_lai = np.array(simulated_lai, dtype=np.float64)
        log_like = self.log_likelihood(simulated_lai, observations)

        log_weights = np.cumsum(log_like, axis=0)
        weights = np.exp(log_weights)
        normalized = mean_normalized_weights(log_weights, axis=1)

        quantiles = np.vstack([
            weighted_quantile(simulated_lai[w], normalized[w], self.quantiles)
            for w in range(simulated_lai.shape[0])
        ]) if simulated_lai.shape[0] else np.empty((0, len(self.quantiles)))

        n_degenerate = int(np.sum(~np.isfinite(normalized).all(axis=1)))
        if n_degenerate:
            logger.warning(
                "Non-resampling filter: %d windows with all-zero weights", n_degenerate
            )
        logger.info(
            "Non-resampling filter: %d windows (%d observed), %d members",
            simulated_lai.shape[0], observations.n_available(), simulated_lai.shape[1],
        )

        return NonResamplingResult(
            simulated_lai=simulated_lai,
            log_likelihood=log_like,
            log_weights=log_weights,
            weights=weights,
            normalized_weights=normalized,
            quantiles=quantiles,
            probs=self.quantiles,
        )
