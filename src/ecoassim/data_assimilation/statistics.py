# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 ecoassim developers

"""
Weighted statistics shared by the particle filters.
"""

from typing import Sequence

import numpy as np
from scipy import stats
from scipy.special import logsumexp

from ecoassim.core.exceptions import DimensionMismatchError, ValidationError


def weighted_quantile(
    values: np.ndarray,
    weights: np.ndarray,
    probs: Sequence[float],
) -> np.ndarray:
    """Quantiles of an empirical distribution with explicit sample weights.

    Weights are not renormalized: their total acts as the sample size, so
    weights that average 1 across members behave like N equally weighted
    samples. For each probability p the fractional rank
    ``1 + (total - 1) * p`` is located on the cumulative weights of the
    sorted values, and the values at the floor and ceiling ranks are
    mixed by the fractional part. With unit weights this reduces to the
    usual linearly interpolated sample quantile.

    Args:
        values: Sample values, shape (n,).
        weights: Non-negative weights, shape (n,).
        probs: Probabilities in [0, 1].

    Returns:
        Array of quantiles, one per probability; all NaN when the weights
        are empty or sum to zero.
    """
    values = np.asarray(values, dtype=np.float64).ravel()
    weights = np.asarray(weights, dtype=np.float64).ravel()
    probs = np.asarray(probs, dtype=np.float64)

    if values.shape != weights.shape:
        raise DimensionMismatchError(
            f"values and weights differ in length: {values.shape} vs {weights.shape}"
        )
    if np.any((probs < 0) | (probs > 1)):
        raise ValidationError(f"Probabilities must lie in [0, 1], got {probs}")
    if np.any(weights < 0):
        raise ValidationError("Weights must be non-negative")

    total = weights.sum()
    if values.size == 0 or not np.isfinite(total) or total <= 0:
        return np.full(probs.shape, np.nan)

    order = np.argsort(values, kind='stable')
    sorted_values = values[order]
    cumulative = np.cumsum(weights[order])

    rank = 1.0 + (total - 1.0) * probs
    low = np.maximum(np.floor(rank), 1.0)
    high = np.minimum(low + 1.0, total)
    frac = rank % 1.0

    def lookup(target):
        idx = np.searchsorted(cumulative, target, side='left')
        return sorted_values[np.minimum(idx, len(sorted_values) - 1)]

    return (1.0 - frac) * lookup(low) + frac * lookup(high)


def gaussian_log_likelihood(observed: np.ndarray, simulated: np.ndarray, sd: np.ndarray) -> np.ndarray:
    """Normal log-density of ``observed`` under mean ``simulated`` and std-dev ``sd`` (broadcast)."""
    return stats.norm.logpdf(observed, loc=simulated, scale=sd)


def gaussian_likelihood(observed: np.ndarray, simulated: np.ndarray, sd: np.ndarray) -> np.ndarray:
    """Normal density of ``observed`` under mean ``simulated`` and std-dev ``sd`` (broadcast)."""
    return stats.norm.pdf(observed, loc=simulated, scale=sd)


def mean_normalized_weights(log_weights: np.ndarray, axis: int = -1) -> np.ndarray:
    """Weights divided by their mean along ``axis``, computed in log space.

    Equivalent to ``w / w.mean(axis)`` with ``w = exp(log_weights)`` but
    without underflow when every log-weight is very negative. Slices in
    which every weight is zero give NaN.
    """
    log_weights = np.asarray(log_weights, dtype=np.float64)
    n = log_weights.shape[axis]
    with np.errstate(divide='ignore', invalid='ignore'):
        log_mean = logsumexp(log_weights, axis=axis, keepdims=True) - np.log(n)
        return np.exp(log_weights - log_mean)
